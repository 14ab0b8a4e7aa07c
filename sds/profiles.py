"""SDS — all compile-time constants, keyed in one place.

Nothing here is computed at runtime except the derived values at the bottom.
Changing any model constant breaks compatibility with files encrypted
before the change.
"""

import math

# ── SDS model ─────────────────────────────────────────────────────────────────
# Damping / restoring coefficients of the oscillator.  These keep the
# recurrence bounded for any normalized input in [-1, 1].
B1 = 0.02
B2 = 2.0
C1 = 1.0
C5 = 0.5

N0 = 0.0004   # white noise intensity
DT = 0.1      # integration time step

# Starting state of every forward run
X10 = 0.1
X20 = 0.0

# Uniform draw u in [0, 1) → z in [Z1, Z1 + Z2)
Z1 = -5.0
Z2 = 10.0

# ── named parameter sets ──────────────────────────────────────────────────────
# The profile is NOT stored in the encrypted file — like the key, the same
# profile must be used to decrypt.
PROFILES: dict[str, dict] = {
    "c3_c5": {
        "b1": B1, "b2": B2, "c1": C1, "c5": C5,
        "n0": N0, "dt": DT, "x10": X10, "x20": X20, "z1": Z1, "z2": Z2,
    },
    # Same system without the quintic restoring term.
    "c3": {
        "b1": B1, "b2": B2, "c1": C1, "c5": 0.0,
        "n0": N0, "dt": DT, "x10": X10, "x20": X20, "z1": Z1, "z2": Z2,
    },
}
DEFAULT_PROFILE = "c3_c5"

DEFAULT_KEY = 1

# ── sample codec ──────────────────────────────────────────────────────────────
# int16 [-32768, 32767] ↔ [-1, 1]; negative and non-negative halves scale apart
# so both ends map exactly onto ±1.
MODIF_NEG = 32768.0
MODIF_POS = 32767.0
INT16_MIN = -32768
INT16_MAX = 32767

# ── container ─────────────────────────────────────────────────────────────────
HEADER_LEN      = 44    # canonical RIFF/WAVE header, data follows immediately
RIFF_OVERHEAD   = 36    # ChunkSize - Subchunk2Size
PCM_SAMPLE_SIZE = 2     # bytes per int16 sample
ENC_SAMPLE_SIZE = 8     # bytes per float64 recurrence value
UINT32_MAX      = 0xFFFF_FFFF

AUDIO_FORMAT_PCM   = 1
SUPPORTED_BITS     = 16
SUPPORTED_CHANNELS = (1, 2)

# ── streaming ─────────────────────────────────────────────────────────────────
CHUNK_SAMPLES = 65_536   # values read per block; output never depends on it


def get_profile(name: str) -> dict:
    """Return the parameter dict for *name* (raises ValueError if unknown)."""
    if name not in PROFILES:
        raise ValueError(f"Unknown profile '{name}': choose from {list(PROFILES)}")
    return PROFILES[name]


def noise_scale(profile: dict) -> float:
    """sqrt(N0 / DT) — converts z to a noise sample."""
    return math.sqrt(profile["n0"] / profile["dt"])
