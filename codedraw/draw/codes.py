"""Helpers for normalizing operator input into codes and counts."""

from __future__ import annotations

import re
from typing import Optional, Union

_NON_DIGIT_RE = re.compile(r"[^0-9]")

# Counts longer than this are capped; no pool can hold that many codes.
MAX_COUNT_DIGITS = 18
MAX_COUNT = 10**MAX_COUNT_DIGITS - 1


def sanitize_digits(raw: Optional[str]) -> str:
    """Strip every non-digit character from ``raw``.

    Parameters
    ----------
    raw : Optional[str]
        Text typed by the operator for a range bound. ``None`` is treated as
        an empty field.

    Returns
    -------
    str
        The digits of ``raw`` in their original order; possibly empty.
    """

    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise TypeError("code input must be a string")
    return _NON_DIGIT_RE.sub("", raw)


def parse_count(raw: Union[str, int, None]) -> Optional[int]:
    """Normalize a requested count into a non-negative integer or ``None``.

    Strings are sanitized with :func:`sanitize_digits`; an empty result means
    the field is blank and yields ``None``. Longer digit strings than
    ``MAX_COUNT_DIGITS`` are capped at ``MAX_COUNT``, which still clamps to the
    pool size. Non-negative integers are capped the same way.

    Raises
    ------
    ValueError
        If an integer count is negative.
    """

    if raw is None:
        return None
    if isinstance(raw, bool):
        raise TypeError("count must be an integer or a string")
    if isinstance(raw, int):
        if raw < 0:
            raise ValueError("count must not be negative")
        return min(raw, MAX_COUNT)
    digits = sanitize_digits(raw)
    if not digits:
        return None
    if len(digits.lstrip("0")) > MAX_COUNT_DIGITS:
        return MAX_COUNT
    return int(digits)


def format_code(value: int, width: int) -> str:
    """Render ``value`` as a code zero-padded to ``width`` digits."""

    if value < 0:
        raise ValueError("code value must not be negative")
    return str(value).zfill(width)


__all__ = ["MAX_COUNT", "MAX_COUNT_DIGITS", "format_code", "parse_count", "sanitize_digits"]
