"""Environment-based settings for the draw engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .store import STORAGE_KEY

logger = logging.getLogger(__name__)

DEFAULT_TICK_MS = 50


def _int_env(env: Mapping[str, str], name: str) -> Optional[int]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return None


@dataclass(frozen=True)
class DrawSettings:
    """Runtime knobs read from the environment.

    Attributes
    ----------
    storage_key : str
        Slot under which the session blob is persisted.
    tick_ms : int
        Milliseconds between preview snapshots while rolling.
    seed : Optional[int]
        Seed for the pseudorandom source; ``None`` draws from OS entropy.
    """

    storage_key: str = STORAGE_KEY
    tick_ms: int = DEFAULT_TICK_MS
    seed: Optional[int] = None

    @property
    def tick_interval(self) -> float:
        return self.tick_ms / 1000.0

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "DrawSettings":
        """Build settings from ``env`` (defaults to ``os.environ`` after loading ``.env``)."""

        if env is None:
            load_dotenv()
            env = os.environ

        tick_ms = _int_env(env, "CODEDRAW_TICK_MS")
        if tick_ms is not None and tick_ms <= 0:
            logger.warning("Ignoring CODEDRAW_TICK_MS=%d: must be positive", tick_ms)
            tick_ms = None

        return cls(
            storage_key=env.get("CODEDRAW_STORAGE_KEY") or STORAGE_KEY,
            tick_ms=tick_ms if tick_ms is not None else DEFAULT_TICK_MS,
            seed=_int_env(env, "CODEDRAW_SEED"),
        )


__all__ = ["DEFAULT_TICK_MS", "DrawSettings"]
