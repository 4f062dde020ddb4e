"""Building blocks of the draw engine.

The controller lives in :mod:`codedraw.draw.controller` and is imported from
there; it depends on :mod:`codedraw.store`, which in turn uses the leaf
modules re-exported here.
"""

from .codes import format_code, parse_count, sanitize_digits
from .ledger import DrawRound, HistoryLedger
from .pool import CodeRange, drawn_codes, resolve_pool
from .sampler import PseudoRandomSource, RandomSource, Sampler, effective_count
from .scheduler import RepeatingTask, Scheduler, TaskHandle, ThreadingScheduler

__all__ = [
    "CodeRange",
    "DrawRound",
    "HistoryLedger",
    "PseudoRandomSource",
    "RandomSource",
    "RepeatingTask",
    "Sampler",
    "Scheduler",
    "TaskHandle",
    "ThreadingScheduler",
    "drawn_codes",
    "effective_count",
    "format_code",
    "parse_count",
    "resolve_pool",
    "sanitize_digits",
]
