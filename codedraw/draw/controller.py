"""State machine orchestrating rolling previews and committed draws."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence, Union

from .codes import parse_count, sanitize_digits
from .ledger import DrawRound, HistoryLedger
from .pool import CodeRange, resolve_pool
from .sampler import Sampler, effective_count
from .scheduler import Scheduler, TaskHandle, ThreadingScheduler
from ..store import SessionState, SessionStore

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.05


class DrawState(str, enum.Enum):
    IDLE = "idle"
    ROLLING = "rolling"


@dataclass(frozen=True)
class DrawStatus:
    """Guard flags and counters derived from the current settings.

    Attributes
    ----------
    state : DrawState
        Whether a cycle is currently rolling.
    remaining : int
        Size of the pool for the configured range.
    length_mismatch : bool
        Both bounds are filled in but have different widths.
    settings_invalid : bool
        The range is blank, mismatched, or reversed.
    count_invalid : bool
        The requested count is blank or zero.
    over_limit : bool
        The requested count exceeds ``remaining``; the draw is clamped.
    effective_count : int
        Number of codes the next cycle would select.
    """

    state: DrawState
    remaining: int
    length_mismatch: bool
    settings_invalid: bool
    count_invalid: bool
    over_limit: bool
    effective_count: int

    @property
    def rolling(self) -> bool:
        return self.state is DrawState.ROLLING

    @property
    def can_start(self) -> bool:
        return (
            not self.rolling
            and not self.settings_invalid
            and not self.count_invalid
            and self.remaining > 0
        )

    @property
    def can_stop(self) -> bool:
        return self.rolling

    @property
    def can_reset(self) -> bool:
        return not self.rolling


@dataclass(frozen=True)
class _Cycle:
    pool: tuple[str, ...]
    count: int
    task: TaskHandle


DisplayListener = Callable[[list[str]], None]


class DrawController:
    """Owns a :class:`SessionState` and drives the Idle/Rolling cycle.

    The controller loads its state from ``store`` on construction and writes
    it back after every settings change and every committed round.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        sampler: Optional[Sampler] = None,
        scheduler: Optional[Scheduler] = None,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        clock: Optional[Callable[[], datetime]] = None,
        on_display: Optional[DisplayListener] = None,
    ) -> None:
        """Create a controller bound to a session store.

        Parameters
        ----------
        store : SessionStore
            Persistence for range, count and history.
        sampler : Optional[Sampler], default: None
            Sampler used for previews and commits. Inject one with a seeded
            random source for reproducible draws.
        scheduler : Optional[Scheduler], default: None
            Source of the repeating preview task. Defaults to a thread-backed
            scheduler.
        tick_interval : float, default: 0.05
            Seconds between preview snapshots.
        clock : Optional[Callable[[], datetime]], default: None
            Wall clock used to timestamp rounds.
        on_display : Optional[DisplayListener], default: None
            Called with every published display (previews and commits).
        """

        self._store = store
        self._sampler = sampler or Sampler()
        self._scheduler: Scheduler = scheduler or ThreadingScheduler()
        self._tick_interval = tick_interval
        self._on_display = on_display
        self._lock = threading.RLock()

        state = store.load()
        self._start = state.start
        self._end = state.end
        self._count = state.count
        self._ledger = HistoryLedger(state.history, clock=clock)
        self._display: list[str] = []
        self._cycle: Optional[_Cycle] = None

    # ------------------------------------------------------------------ views

    @property
    def code_range(self) -> CodeRange:
        return CodeRange(self._start, self._end)

    @property
    def count(self) -> Optional[int]:
        return self._count

    @property
    def state(self) -> DrawState:
        return DrawState.ROLLING if self._cycle is not None else DrawState.IDLE

    @property
    def rolling(self) -> bool:
        return self._cycle is not None

    @property
    def display(self) -> list[str]:
        with self._lock:
            return list(self._display)

    @property
    def history(self) -> list[DrawRound]:
        with self._lock:
            return self._ledger.rounds

    @property
    def pool(self) -> list[str]:
        """Undrawn codes of the configured range, re-derived from history on every access."""
        with self._lock:
            return resolve_pool(self.code_range, self._ledger.drawn_codes())

    @property
    def remaining(self) -> int:
        return len(self.pool)

    @property
    def status(self) -> DrawStatus:
        with self._lock:
            code_range = self.code_range
            remaining = self.remaining
            count_invalid = not self._count
            settings_invalid = (
                code_range.length_mismatch
                or self._start == ""
                or self._end == ""
                or not code_range.is_valid
            )
            return DrawStatus(
                state=self.state,
                remaining=remaining,
                length_mismatch=code_range.length_mismatch,
                settings_invalid=settings_invalid,
                count_invalid=count_invalid,
                over_limit=not count_invalid and (self._count or 0) > remaining,
                effective_count=0 if count_invalid else effective_count(self._count or 0, remaining),
            )

    def session_state(self) -> SessionState:
        with self._lock:
            return SessionState(
                start=self._start,
                end=self._end,
                count=self._count,
                history=tuple(self._ledger.rounds),
            )

    # --------------------------------------------------------------- settings

    def set_range(self, start: Optional[str], end: Optional[str]) -> CodeRange:
        """Update the range bounds from raw operator input and persist them.

        Non-digit characters are stripped. An active cycle keeps drawing
        from the pool it froze at start.
        """

        with self._lock:
            self._start = sanitize_digits(start)
            self._end = sanitize_digits(end)
            self._persist()
            return self.code_range

    def set_count(self, count: Union[str, int, None]) -> Optional[int]:
        with self._lock:
            self._count = parse_count(count)
            self._persist()
            return self._count

    # ----------------------------------------------------------- transitions

    def start(self) -> bool:
        """Begin a rolling cycle if every guard passes.

        Returns
        -------
        bool
            ``True`` when a new cycle started; ``False`` when a guard failed
            (already rolling, invalid settings, blank count, empty pool).
        """

        with self._lock:
            status = self.status
            if not status.can_start:
                logger.debug("Start ignored: %s", status)
                return False

            pool = tuple(self.pool)
            count = status.effective_count
            if status.over_limit:
                logger.warning(
                    "Requested %s codes but only %d remain; drawing %d",
                    self._count,
                    len(pool),
                    count,
                )

            # The task is registered before the first tick can take the lock.
            holder: list[TaskHandle] = []
            task = self._scheduler.every(self._tick_interval, lambda: self._tick(holder[0]))
            holder.append(task)
            self._cycle = _Cycle(pool=pool, count=count, task=task)
            logger.info("Draw cycle started: %d codes from a pool of %d", count, len(pool))
            return True

    def stop(self) -> Optional[DrawRound]:
        """Finish the rolling cycle and commit its selection.

        The preview task is cancelled before the commit is computed, so the
        committed codes are always the last published display.

        Returns
        -------
        Optional[DrawRound]
            The appended round, or ``None`` when no cycle was rolling.
        """

        with self._lock:
            cycle = self._cycle
            if cycle is None:
                return None
            cycle.task.cancel()
            self._cycle = None

            picked = self._sampler.commit(cycle.pool, cycle.count)
            draw_round = self._ledger.append(picked)
            self._persist()
            self._publish(list(draw_round.codes))
            logger.info("Round %d committed: %s", draw_round.round, ", ".join(draw_round.codes))
            return draw_round

    def reset(self) -> bool:
        """Clear history and display and discard the persisted session.

        Only allowed while idle; returns ``False`` when a cycle is rolling.
        """

        with self._lock:
            if self._cycle is not None:
                logger.debug("Reset ignored while rolling")
                return False
            self._ledger.reset()
            self._display = []
            self._store.clear()
            logger.info("Draw session reset")
            return True

    def close(self, timeout: float = 1.0) -> None:
        """Cancel a rolling cycle without committing it.

        Waits up to ``timeout`` seconds for the preview thread to exit. The
        wait happens outside the lock, since a pending tick needs it to
        observe the cancellation.
        """
        with self._lock:
            cycle = self._cycle
            if cycle is None:
                return
            cycle.task.cancel()
            self._cycle = None
        cycle.task.join(timeout)

    # -------------------------------------------------------------- internals

    def _tick(self, task: TaskHandle) -> None:
        with self._lock:
            cycle = self._cycle
            if cycle is None or cycle.task is not task or task.cancelled:
                return
            self._publish(self._sampler.preview(cycle.pool, cycle.count))

    def _publish(self, codes: Sequence[str]) -> None:
        self._display = list(codes)
        if self._on_display is not None:
            self._on_display(list(self._display))

    def _persist(self) -> None:
        self._store.save(self.session_state())


__all__ = ["DrawController", "DrawState", "DrawStatus", "DEFAULT_TICK_INTERVAL"]
