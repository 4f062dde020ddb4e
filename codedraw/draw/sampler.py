"""Random selection of codes: animated previews and the committed draw."""

from __future__ import annotations

import random
from typing import Optional, Protocol, Sequence


class RandomSource(Protocol):
    """Source of uniformly distributed integers used by :class:`Sampler`."""

    def randbelow(self, n: int) -> int:
        """Return an integer chosen uniformly from ``[0, n)``."""
        ...


class PseudoRandomSource:
    """``random.Random`` backed source; pass ``seed`` for reproducible draws."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._seed = seed
        self._rng = random.Random(seed)

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    def randbelow(self, n: int) -> int:
        if n <= 0:
            raise ValueError("n must be positive")
        return self._rng.randrange(n)


def effective_count(requested: int, pool_size: int) -> int:
    """Clamp ``requested`` to the number of codes left in the pool."""
    if requested < 0:
        raise ValueError("requested count must not be negative")
    return max(0, min(requested, pool_size))


class Sampler:
    """Draw codes from a pool using an injectable :class:`RandomSource`.

    The sampler keeps no state between calls apart from the random source,
    so the same instance serves every cycle of a controller.
    """

    def __init__(self, rng: Optional[RandomSource] = None) -> None:
        self._rng: RandomSource = rng or PseudoRandomSource()

    @property
    def rng(self) -> RandomSource:
        return self._rng

    def preview(self, pool: Sequence[str], n: int) -> list[str]:
        """Return ``n`` codes picked independently, with replacement.

        Previews only feed the rolling display. Duplicates across slots are
        allowed and nothing is removed from ``pool``.

        Parameters
        ----------
        pool : Sequence[str]
            Frozen pool captured when the cycle started.
        n : int
            Number of display slots; clamped to ``len(pool)``.

        Returns
        -------
        list[str]
            Preview snapshot; empty when ``pool`` is empty.
        """

        count = effective_count(n, len(pool))
        size = len(pool)
        return [pool[self._rng.randbelow(size)] for _ in range(count)]

    def shuffle(self, pool: Sequence[str]) -> list[str]:
        """Return a uniformly random permutation of ``pool`` (Fisher-Yates)."""
        items = list(pool)
        for i in range(len(items) - 1, 0, -1):
            j = self._rng.randbelow(i + 1)
            items[i], items[j] = items[j], items[i]
        return items

    def commit(self, pool: Sequence[str], n: int) -> list[str]:
        """Select ``n`` distinct codes from ``pool`` without replacement.

        The whole pool is shuffled and the first ``effective_count(n,
        len(pool))`` items are returned, so every subset of that size is
        equally likely regardless of the pool's order. ``pool`` itself is
        not modified.

        Raises
        ------
        ValueError
            If ``n`` is negative.
        """

        count = effective_count(n, len(pool))
        if count == 0:
            return []
        return self.shuffle(pool)[:count]


__all__ = ["PseudoRandomSource", "RandomSource", "Sampler", "effective_count"]
