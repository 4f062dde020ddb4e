"""Persistence of the draw session as a single JSON blob.

``load_state`` and ``dump_state`` are pure conversions between bytes and
:class:`SessionState`; a :class:`SessionStore` pairs them with a storage
backend that reads and writes the blob under one key.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from sqlalchemy.orm import Session, sessionmaker

from .draw.ledger import DrawRound
from .draw.pool import drawn_codes
from .models import StoredSession

logger = logging.getLogger(__name__)

STORAGE_KEY = "lottery-state-v3"
DEFAULT_START = "0000"
DEFAULT_END = "0165"
DEFAULT_COUNT = 1


@dataclass(frozen=True)
class SessionState:
    """Everything needed to restore a draw session.

    Attributes
    ----------
    start : str
        First code of the configured range.
    end : str
        Last code of the configured range.
    count : Optional[int]
        Requested number of codes per round; ``None`` when the field is blank.
    history : tuple[DrawRound, ...]
        Completed rounds, newest first.
    """

    start: str = DEFAULT_START
    end: str = DEFAULT_END
    count: Optional[int] = DEFAULT_COUNT
    history: tuple[DrawRound, ...] = field(default_factory=tuple)

    def drawn_codes(self) -> set[str]:
        return drawn_codes(self.history)

    @property
    def next_round(self) -> int:
        return len(self.history) + 1

    def to_json(self) -> dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "count": "" if self.count is None else self.count,
            "history": [r.to_json() for r in self.history],
        }


def default_state() -> SessionState:
    return SessionState()


def _parse_count(value: Any) -> Optional[int]:
    if value == "" or value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"count must be a non-negative integer or empty: {value!r}")
    return value


def _parse_code(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string: {value!r}")
    return value


def state_from_json(data: Any) -> SessionState:
    """Build a :class:`SessionState` from a decoded JSON document.

    Missing fields take their defaults. Fields of the wrong type raise
    :class:`ValueError`.
    """

    if not isinstance(data, dict):
        raise ValueError("session state must be a JSON object")
    history_raw = data.get("history", [])
    if not isinstance(history_raw, list):
        raise ValueError("history must be a list")
    return SessionState(
        start=_parse_code(data.get("start", DEFAULT_START), "start"),
        end=_parse_code(data.get("end", DEFAULT_END), "end"),
        count=_parse_count(data.get("count", DEFAULT_COUNT)),
        history=tuple(DrawRound.from_json(item) for item in history_raw),
    )


def load_state(raw: Optional[bytes]) -> SessionState:
    """Decode a persisted blob, falling back to defaults on any problem.

    Parameters
    ----------
    raw : Optional[bytes]
        Blob previously produced by :func:`dump_state`, or ``None`` on first
        run.

    Returns
    -------
    SessionState
        The decoded state, or :func:`default_state` when ``raw`` is absent or
        cannot be decoded.
    """

    if raw is None:
        return default_state()
    try:
        data = json.loads(raw.decode("utf-8"))
        return state_from_json(data)
    except (UnicodeDecodeError, ValueError, RecursionError) as exc:
        # json.JSONDecodeError is a ValueError subclass
        logger.warning("Discarding unreadable session state: %s", exc)
        return default_state()


def dump_state(state: SessionState) -> bytes:
    return json.dumps(state.to_json(), ensure_ascii=False).encode("utf-8")


class Storage(Protocol):
    """Key-value backend holding serialized sessions."""

    def read(self, key: str) -> Optional[bytes]: ...

    def write(self, key: str, data: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStorage:
    """In-process backend, mainly for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, bytes]] = None) -> None:
        self._data: dict[str, bytes] = dict(initial or {})

    def read(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def write(self, key: str, data: bytes) -> None:
        self._data[key] = bytes(data)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class SqlAlchemyStorage:
    """Backend storing each key as a :class:`StoredSession` row.

    Every write runs in its own transaction, so the blob is either fully
    replaced or left untouched.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def read(self, key: str) -> Optional[bytes]:
        with self._session_factory() as session:
            row = StoredSession.get_by_key(session, key)
            if row is None:
                return None
            return row.payload.encode("utf-8")

    def write(self, key: str, data: bytes) -> None:
        with self._session_factory.begin() as session:
            StoredSession.upsert(session, key, data.decode("utf-8"))
        logger.debug("Stored session %s (%d bytes)", key, len(data))

    def delete(self, key: str) -> None:
        with self._session_factory.begin() as session:
            row = StoredSession.get_by_key(session, key)
            if row is not None:
                session.delete(row)
        logger.debug("Deleted session %s", key)


class SessionStore:
    """Load and save :class:`SessionState` under a single storage key."""

    def __init__(self, storage: Storage, key: str = STORAGE_KEY) -> None:
        self.storage = storage
        self.key = key

    def load(self) -> SessionState:
        return load_state(self.storage.read(self.key))

    def save(self, state: SessionState) -> None:
        self.storage.write(self.key, dump_state(state))

    def clear(self) -> None:
        self.storage.delete(self.key)


__all__ = [
    "DEFAULT_COUNT",
    "DEFAULT_END",
    "DEFAULT_START",
    "MemoryStorage",
    "STORAGE_KEY",
    "SessionState",
    "SessionStore",
    "SqlAlchemyStorage",
    "Storage",
    "default_state",
    "dump_state",
    "load_state",
    "state_from_json",
]
