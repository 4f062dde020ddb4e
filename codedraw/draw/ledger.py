"""Append-only history of committed draw rounds."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Sequence

from ..db.utils import dt_iso
from .pool import drawn_codes


@dataclass(frozen=True)
class DrawRound:
    """One completed draw.

    Attributes
    ----------
    round : int
        1-based sequence number within the ledger.
    time : str
        ISO-8601 timestamp captured when the round was committed.
    codes : tuple[str, ...]
        Committed codes in the order the sampler returned them.
    """

    round: int
    time: str
    codes: tuple[str, ...]

    def to_json(self) -> dict[str, Any]:
        return {"round": self.round, "time": self.time, "codes": list(self.codes)}

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "DrawRound":
        """Rebuild a round from its persisted mapping.

        Raises
        ------
        ValueError
            If a field is missing or has the wrong shape.
        """

        try:
            number = data["round"]
            time = data["time"]
            codes = data["codes"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"malformed draw round: {data!r}") from exc
        if isinstance(number, bool) or not isinstance(number, int) or number < 1:
            raise ValueError(f"round number must be a positive integer: {number!r}")
        if not isinstance(time, str):
            raise ValueError(f"round time must be a string: {time!r}")
        if not isinstance(codes, list) or not all(isinstance(c, str) for c in codes):
            raise ValueError(f"round codes must be a list of strings: {codes!r}")
        return cls(round=number, time=time, codes=tuple(codes))


class HistoryLedger:
    """Ordered collection of :class:`DrawRound`, newest first.

    Rounds are only ever added through :meth:`append`; the sole way to remove
    them is :meth:`reset`, which drops everything.
    """

    def __init__(
        self,
        rounds: Optional[Iterable[DrawRound]] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._rounds: list[DrawRound] = list(rounds or [])
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def __len__(self) -> int:
        return len(self._rounds)

    def __iter__(self) -> Iterator[DrawRound]:
        return iter(self._rounds)

    @property
    def rounds(self) -> list[DrawRound]:
        """Rounds newest first, as shown in the history panel."""
        return list(self._rounds)

    def chronological(self) -> list[DrawRound]:
        return list(reversed(self._rounds))

    @property
    def next_round(self) -> int:
        return len(self._rounds) + 1

    def drawn_codes(self) -> set[str]:
        return drawn_codes(self._rounds)

    def append(self, codes: Sequence[str], when: Optional[datetime] = None) -> DrawRound:
        """Record a committed selection as the next round.

        Parameters
        ----------
        codes : Sequence[str]
            Output of :meth:`Sampler.commit`.
        when : Optional[datetime], default: None
            Commit time; the ledger clock is used when omitted.

        Returns
        -------
        DrawRound
            The new round, numbered ``len(self) + 1``.
        """

        for code in codes:
            if not isinstance(code, str):
                raise TypeError("codes must be strings")
        draw_round = DrawRound(
            round=self.next_round,
            time=dt_iso(when or self._clock()) or "",
            codes=tuple(codes),
        )
        self._rounds.insert(0, draw_round)
        return draw_round

    def reset(self) -> None:
        self._rounds.clear()


__all__ = ["DrawRound", "HistoryLedger"]
