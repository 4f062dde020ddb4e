"""Derive the pool of undrawn codes from a range and the draw history."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Collection, Iterable, Optional

from .codes import format_code

_DIGITS_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class CodeRange:
    """Inclusive range of fixed-width codes.

    Attributes
    ----------
    start : str
        First code of the range, as typed (digits only).
    end : str
        Last code of the range. Its width must match ``start``.
    """

    start: str
    end: str

    @property
    def width(self) -> int:
        return len(self.start)

    @property
    def length_mismatch(self) -> bool:
        """``True`` when both bounds are filled in but differ in width."""
        return self.start != "" and self.end != "" and len(self.start) != len(self.end)

    def bounds(self) -> Optional[tuple[int, int]]:
        """Return the numeric ``(low, high)`` bounds, or ``None`` if invalid."""
        if not (_DIGITS_RE.fullmatch(self.start) and _DIGITS_RE.fullmatch(self.end)):
            return None
        if len(self.start) != len(self.end):
            return None
        try:
            low, high = int(self.start), int(self.end)
        except ValueError:
            # beyond the interpreter's int-conversion digit limit
            return None
        if low > high:
            return None
        return low, high

    @property
    def is_valid(self) -> bool:
        return self.bounds() is not None

    @property
    def size(self) -> int:
        """Number of codes in the range; ``0`` for an invalid range."""
        bounds = self.bounds()
        if bounds is None:
            return 0
        return bounds[1] - bounds[0] + 1

    def codes(self) -> list[str]:
        """Every code of the range in ascending order."""
        return resolve_pool(self, ())


def drawn_codes(rounds: Iterable) -> set[str]:
    """Flatten the ``codes`` of every round into a single set."""
    drawn: set[str] = set()
    for draw_round in rounds:
        drawn.update(draw_round.codes)
    return drawn


def resolve_pool(code_range: CodeRange, drawn: Collection[str]) -> list[str]:
    """Return the ascending list of codes in ``code_range`` not yet drawn.

    An invalid range (non-digit bounds, mismatched widths, or start greater
    than end) resolves to an empty pool instead of raising.

    Parameters
    ----------
    code_range : CodeRange
        Operator-configured bounds.
    drawn : Collection[str]
        Codes already committed in earlier rounds. Membership is checked
        afresh on each call.

    Returns
    -------
    list[str]
        Undrawn codes, zero-padded to the width of ``code_range.start``.
    """

    bounds = code_range.bounds()
    if bounds is None:
        return []
    drawn_set = drawn if isinstance(drawn, (set, frozenset)) else set(drawn)
    width = code_range.width
    pool: list[str] = []
    for value in range(bounds[0], bounds[1] + 1):
        code = format_code(value, width)
        if code not in drawn_set:
            pool.append(code)
    return pool


__all__ = ["CodeRange", "drawn_codes", "resolve_pool"]
