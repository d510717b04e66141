"""Random sources used by the game logic.

Production draws go through :meth:`RandomService.secure`, which is backed by
the operating system entropy pool. Seeded services exist for tests and for the
case-opening replay, which must be reproducible on every client.
"""

from __future__ import annotations

from random import Random, SystemRandom
from typing import Protocol

_LCG_MULTIPLIER = 9301
_LCG_INCREMENT = 49297
_LCG_MODULUS = 233280


class RandomSource(Protocol):
    """Minimal interface required by the weighted draws."""

    def random(self) -> float:
        """Return a float uniformly distributed in ``[0, 1)``."""

    def uniform(self, a: float, b: float) -> float:
        """Return a float uniformly distributed in ``[a, b]``."""


class RandomService:
    """Thin wrapper around :class:`random.Random` exposing the draws the engine needs."""

    def __init__(self, generator: Random | None = None, *, seed: int | None = None) -> None:
        self._seed = seed
        self._random = generator if generator is not None else Random(seed)  # noqa: S311

    @classmethod
    def secure(cls) -> RandomService:
        """Return a service backed by :class:`random.SystemRandom`."""
        return cls(SystemRandom())

    @classmethod
    def seeded(cls, seed: int) -> RandomService:
        """Return a reproducible service for tests and simulations."""
        return cls(seed=seed)

    @property
    def seed(self) -> int | None:
        """Return the base seed for the service, ``None`` when unseeded."""
        return self._seed

    def random(self) -> float:
        """Return the next float in ``[0, 1)``."""
        return self._random.random()

    def uniform(self, a: float, b: float) -> float:
        """Return a float in ``[a, b]``."""
        return self._random.uniform(a, b)

    def new_seed(self) -> int:
        """Return a seed suitable for :class:`ReplayRandom`."""
        return self._random.randrange(_LCG_MODULUS)


class ReplayRandom:
    """Linear congruential generator shared with clients for case replays.

    The sequence only depends on the initial seed, so a client holding the seed
    can rebuild the decoy reel without trusting any other input.
    """

    def __init__(self, seed: int) -> None:
        self._state = seed % _LCG_MODULUS

    def random(self) -> float:
        """Advance the generator and return a float in ``[0, 1)``."""
        self._state = (self._state * _LCG_MULTIPLIER + _LCG_INCREMENT) % _LCG_MODULUS
        return self._state / _LCG_MODULUS

    def uniform(self, a: float, b: float) -> float:
        """Return a float in ``[a, b)`` derived from the next state."""
        return a + (b - a) * self.random()


__all__ = ["RandomService", "RandomSource", "ReplayRandom"]
