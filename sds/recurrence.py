"""SDS — forward recurrence and its exact algebraic inverse.

Forward (one step per input sample, c3 = normalized sample):

    x1 = x1p + x2p·DT
    x2 = x2p + (n_prev − B1·x2p − B2·x2p·|x2p| − C1·x1p − c3·x1p³ − C5·x1p⁵)·DT

Only x1 is emitted.  Because x2 = (x1[i+1] − x1[i]) / DT, three consecutive
x1 values pin down x2 twice, and the x2 update can be solved for c3:

    c3 = ( (2·x1[i+1] − x1[i] − x1[i+2]) / DT²  +  n[i]
          − C1·x1[i] − C5·x1[i]⁵
          − B1·(x1[i+1] − x1[i]) / DT
          − B2·(x1[i+1] − x1[i])·|x1[i+1] − x1[i]| / DT² )  /  x1[i]³

The order of operations here is part of the file format: the inverse must
see the same rounding the forward pass produced.
"""

import math

import numpy as np
from numpy.typing import NDArray

from .diagnostics import DegenerateStateError, DivergenceError


# ── forward ───────────────────────────────────────────────────────────────────

def forward_x1(x1p: float, x2p: float, profile: dict) -> float:
    return x1p + x2p * profile["dt"]


def forward_x2(c3: float, x1p: float, x2p: float, n_prev: float, profile: dict) -> float:
    return x2p + (
        n_prev
        - profile["b1"] * x2p
        - profile["b2"] * x2p * abs(x2p)
        - profile["c1"] * x1p
        - c3 * x1p ** 3.0
        - profile["c5"] * x1p ** 5.0
    ) * profile["dt"]


def forward_step(
    x1p: float, x2p: float, n_prev: float, c3: float, profile: dict,
) -> tuple[float, float]:
    """Advance the state by one sample.  Returns the new (x1, x2)."""
    return forward_x1(x1p, x2p, profile), forward_x2(c3, x1p, x2p, n_prev, profile)


class SDSState:
    """Mutable (x1, x2, n_prev) owned by a single forward run.

    ``steps`` counts consumed samples and is the index reported when the
    state diverges.
    """

    __slots__ = ("x1", "x2", "n_prev", "steps", "profile")

    def __init__(self, x1: float, x2: float, n_prev: float, profile: dict):
        self.x1      = x1
        self.x2      = x2
        self.n_prev  = n_prev
        self.steps   = 0
        self.profile = profile

    @classmethod
    def initial(cls, noise, profile: dict) -> "SDSState":
        """Starting state; draws the initial noise value from *noise*."""
        return cls(profile["x10"], profile["x20"], noise.next(), profile)

    def advance(self, c3: float, n_next: float) -> float:
        """Consume one normalized sample, return the emitted x1."""
        try:
            x1, x2 = forward_step(self.x1, self.x2, self.n_prev, c3, self.profile)
        except OverflowError:
            raise DivergenceError(self.steps, self.x1, self.x2) from None
        if not (math.isfinite(x1) and math.isfinite(x2)):
            raise DivergenceError(self.steps, x1, x2)

        self.x1, self.x2, self.n_prev = x1, x2, n_next
        self.steps += 1
        return x1

    def __repr__(self) -> str:
        return f"SDSState(x1={self.x1!r}, x2={self.x2!r}, steps={self.steps})"


# ── inverse ───────────────────────────────────────────────────────────────────

def inverse_step(
    x1i: float, x1i1: float, x1i2: float, n: float, profile: dict, index: int = 0,
) -> float:
    """Recover the normalized sample that moved x1[i] → x1[i+1] → x1[i+2].

    Raises DegenerateStateError when x1[i]³ is zero (x1[i] == 0 or so small
    the cube underflows).  An overflowing numerator yields NaN, which the
    sample codec rejects.
    """
    cube = x1i ** 3.0
    if cube == 0.0:
        raise DegenerateStateError(index)

    dt = profile["dt"]
    d  = x1i1 - x1i
    try:
        return (
            (2.0 * x1i1 - x1i - x1i2) / (dt * dt)
            + n
            - profile["c1"] * x1i
            - profile["c5"] * x1i ** 5.0
            - profile["b1"] * d / dt
            - profile["b2"] * d * abs(d) / (dt * dt)
        ) / cube
    except OverflowError:
        return math.nan


def inverse_window(
    x1: NDArray[np.float64],
    noise: NDArray[np.float64],
    profile: dict,
    offset: int = 0,
) -> NDArray[np.float64]:
    """Vectorized inverse over every full 3-value window of *x1*.

    Window i is (x1[i], x1[i+1], x1[i+2]) and pairs with noise[i]; the window
    slides by one value, so ``len(x1) - 2`` samples come out.  *offset* is the
    absolute index of the first window, used for fault reports.

    Non-finite results (overflow) are returned as-is for the sample codec to
    reject.
    """
    x1 = np.asarray(x1, dtype=np.float64)
    n_win = max(len(x1) - 2, 0)
    if len(noise) != n_win:
        raise ValueError(f"need {n_win} noise values for {len(x1)} x1 values, got {len(noise)}")
    if n_win == 0:
        return np.empty(0, dtype=np.float64)

    a, b, c = x1[:-2], x1[1:-1], x1[2:]
    with np.errstate(all="ignore"):
        cube = a ** 3.0
    zero = np.flatnonzero(cube == 0.0)
    if zero.size:
        raise DegenerateStateError(offset + int(zero[0]))

    dt = profile["dt"]
    d  = b - a
    with np.errstate(all="ignore"):
        return (
            (2.0 * b - a - c) / (dt * dt)
            + noise
            - profile["c1"] * a
            - profile["c5"] * a ** 5.0
            - profile["b1"] * d / dt
            - profile["b2"] * d * np.abs(d) / (dt * dt)
        ) / cube
