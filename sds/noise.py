"""SDS — keyed white-noise source.

Every run owns one ``NoiseSource``.  The forward and inverse transforms for
the same key must pull exactly one draw per recurrence step, in the same
order, or every later sample decodes to garbage.

The generator is numpy's PCG64 (``np.random.default_rng``): its output is a
pure function of the seed and the number of draws, and drawing a block of
``k`` values yields the same stream as ``k`` single draws.
"""

import numpy as np
from numpy.typing import NDArray

from .profiles import DEFAULT_PROFILE, get_profile, noise_scale


def noise_from_uniform(u, profile: dict):
    """n = (Z1 + Z2·u) · sqrt(N0/DT).  Works on floats and arrays alike."""
    z = profile["z1"] + profile["z2"] * u
    return z * noise_scale(profile)


def validate_key(seed) -> int:
    """Return *seed* as an int; raise ValueError unless it is an integer ≥ 0."""
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)):
        raise ValueError(f"key must be an integer, got {seed!r}")
    if seed < 0:
        raise ValueError(f"key must be non-negative, got {seed}")
    return int(seed)


class NoiseSource:
    """Reproducible noise sequence for one transform run."""

    def __init__(self, seed: int, profile: dict | None = None):
        self.seed    = validate_key(seed)
        self.profile = profile if profile is not None else get_profile(DEFAULT_PROFILE)
        self._rng    = np.random.default_rng(self.seed)
        self.draws   = 0

    def next_uniform(self) -> float:
        self.draws += 1
        return float(self._rng.random())

    def next(self) -> float:
        """Next noise value n[i]."""
        return float(noise_from_uniform(self.next_uniform(), self.profile))

    def take(self, count: int) -> NDArray[np.float64]:
        """Next *count* noise values; same stream as *count* calls to next()."""
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        u = self._rng.random(count)
        self.draws += count
        return noise_from_uniform(u, self.profile)

    def __repr__(self) -> str:
        return f"NoiseSource(seed={self.seed}, draws={self.draws})"
