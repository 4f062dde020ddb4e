from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from .config import DrawSettings
from .db.engine import get_sessionmaker, make_engine
from .draw.controller import DisplayListener, DrawController
from .draw.ledger import DrawRound
from .draw.sampler import PseudoRandomSource, Sampler
from .draw.scheduler import Scheduler
from .models import Base
from .store import SessionStore, SqlAlchemyStorage

logger = logging.getLogger(__name__)


def open_controller(
    session_factory: Optional[sessionmaker[Session]] = None,
    *,
    settings: Optional[DrawSettings] = None,
    sampler: Optional[Sampler] = None,
    scheduler: Optional[Scheduler] = None,
    on_display: Optional[DisplayListener] = None,
    create_tables: bool = False,
) -> DrawController:
    """Build a :class:`DrawController` persisting to the configured database.

    The workflow wires the pieces together:

    1. Resolve settings from the environment unless supplied.
    2. Create a session factory for ``DB_URL`` when none is given, optionally
       creating the ``stored_sessions`` table.
    3. Restore the session stored under ``settings.storage_key`` (or the
       defaults on first run).

    Parameters
    ----------
    session_factory : Optional[sessionmaker[Session]]
        Factory for database sessions. If not provided, one bound to the
        default engine is created.
    settings : Optional[DrawSettings]
        Storage key, tick cadence and seed. Read from the environment when
        omitted.
    sampler : Optional[Sampler]
        Custom sampler; by default one seeded with ``settings.seed``.
    scheduler : Optional[Scheduler]
        Custom preview scheduler; a thread-backed one is used by default.
    on_display : Optional[DisplayListener]
        Callback receiving every published display.
    create_tables : bool, default: False
        Run ``Base.metadata.create_all`` before loading. Useful for ad-hoc
        SQLite files that have not been migrated.

    Returns
    -------
    DrawController
        A controller in the idle state with the restored session.
    """

    settings = settings or DrawSettings.from_env()

    if session_factory is None:
        engine = make_engine()
        if create_tables:
            Base.metadata.create_all(engine)
        session_factory = get_sessionmaker(engine)
    elif create_tables:
        bind = session_factory.kw.get("bind")
        if bind is None:
            raise ValueError("session_factory must be bound to create tables")
        Base.metadata.create_all(bind)

    store = SessionStore(SqlAlchemyStorage(session_factory), key=settings.storage_key)
    controller = DrawController(
        store,
        sampler=sampler or Sampler(PseudoRandomSource(settings.seed)),
        scheduler=scheduler,
        tick_interval=settings.tick_interval,
        on_display=on_display,
    )
    logger.debug(
        "Opened draw session %s with %d completed rounds",
        settings.storage_key,
        len(controller.history),
    )
    return controller


def run_timed_draw(
    controller: DrawController,
    duration: float,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[DrawRound]:
    """Roll for ``duration`` seconds, then commit.

    Returns ``None`` without sleeping when the controller refuses to start
    (invalid settings, blank count, exhausted pool, or already rolling).
    """

    if duration < 0:
        raise ValueError("duration must not be negative")
    if not controller.start():
        return None
    try:
        sleep(duration)
    finally:
        draw_round = controller.stop()
    return draw_round


def snapshot(controller: DrawController) -> dict[str, Any]:
    """Return the presentation-facing view of ``controller`` as plain data.

    The dictionary carries the current display, pool counters, guard flags
    and the history (newest first), ready for JSON encoding.
    """

    status = controller.status
    code_range = controller.code_range
    return {
        "start": code_range.start,
        "end": code_range.end,
        "count": controller.count if controller.count is not None else "",
        "state": status.state.value,
        "display": controller.display,
        "remaining": status.remaining,
        "effective_count": status.effective_count,
        "flags": {
            "settings_invalid": status.settings_invalid,
            "length_mismatch": status.length_mismatch,
            "count_invalid": status.count_invalid,
            "over_limit": status.over_limit,
        },
        "can_start": status.can_start,
        "can_stop": status.can_stop,
        "can_reset": status.can_reset,
        "history": [r.to_json() for r in controller.history],
    }


__all__ = ["open_controller", "run_timed_draw", "snapshot"]
