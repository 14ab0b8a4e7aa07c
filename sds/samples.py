"""SDS — int16 sample ↔ normalized float conversion.

Negative samples scale by 32768 and non-negative ones by 32767, so -32768
and 32767 land exactly on -1.0 and +1.0.  The return trip rounds half to
even (Python ``round`` / ``np.rint``) and never clamps: a value that does
not fit int16 is a DecodeRangeError.
"""

import math

import numpy as np
from numpy.typing import NDArray

from .diagnostics import DecodeRangeError
from .profiles import INT16_MAX, INT16_MIN, MODIF_NEG, MODIF_POS


def normalize(sample: int) -> float:
    if sample < 0:
        return sample / MODIF_NEG
    return sample / MODIF_POS


def denormalize(c3: float, index: int = 0) -> int:
    if not math.isfinite(c3):
        raise DecodeRangeError(index, c3)
    value = round(c3 * (MODIF_NEG if c3 < 0 else MODIF_POS))
    if not INT16_MIN <= value <= INT16_MAX:
        raise DecodeRangeError(index, c3)
    return value


def normalize_block(samples: NDArray[np.int16]) -> NDArray[np.float64]:
    s = np.asarray(samples).astype(np.float64)
    return np.where(s < 0, s / MODIF_NEG, s / MODIF_POS)


def denormalize_block(c3: NDArray[np.float64], offset: int = 0) -> NDArray[np.int16]:
    """Vectorized :func:`denormalize`; *offset* is the index of ``c3[0]``."""
    c3 = np.asarray(c3, dtype=np.float64)
    with np.errstate(all="ignore"):
        scaled = np.rint(np.where(c3 < 0, c3 * MODIF_NEG, c3 * MODIF_POS))
        bad = ~np.isfinite(scaled) | (scaled < INT16_MIN) | (scaled > INT16_MAX)
    if bad.any():
        i = int(np.flatnonzero(bad)[0])
        raise DecodeRangeError(offset + i, float(c3[i]))
    return scaled.astype(np.int16)
