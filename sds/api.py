"""SDS — high-level encrypt / decrypt API.

encrypt_wav(src, dst, key, *, profile) -> TransformResult
decrypt_wav(src, dst, key, *, profile) -> TransformResult

Full pipeline
=============

Encrypt
-------
  source WAV
    → read + validate 44-byte header                 (header.read_header)
    → write derive_forward(header) to the output     (header.derive_forward)
    → seed NoiseSource(key), draw n[0]               (noise.NoiseSource)
    → emit leading x1 = X10 as float64
    → per int16 sample: normalize → draw n[i+1] → forward step → emit x1
    → TransformResult(samples = input sample count)

Decrypt
-------
  encrypted WAV
    → read + validate header, recover source header  (header.derive_source)
    → write derive_inverse(source) to the output     (header.derive_inverse)
    → seed NoiseSource(key)
    → per 3-value window (sliding by one): draw n[i] → inverse step
      → denormalize → emit int16
    → TransformResult(samples = float64 count − 2)

The data region is processed in blocks of CHUNK_SAMPLES values; the inverse
carries the last two values of each block into the next one, so block size
never changes the output.
"""

import logging
import os

import numpy as np

from .diagnostics import (
    ConfigurationError, TransformFault, TransformResult,
)
from .header import (
    WavHeader, read_header, write_header,
    derive_forward, derive_inverse, derive_source,
)
from .noise import NoiseSource, validate_key
from .profiles import (
    CHUNK_SAMPLES, DEFAULT_KEY, DEFAULT_PROFILE, HEADER_LEN,
    PCM_SAMPLE_SIZE, ENC_SAMPLE_SIZE,
    get_profile,
)
from .recurrence import SDSState, inverse_window
from .samples import denormalize_block, normalize_block

log = logging.getLogger(__name__)

_PCM = np.dtype("<i2")
_ENC = np.dtype("<f8")


# ── stream level ──────────────────────────────────────────────────────────────

def encrypt_stream(
    src,
    dst,
    key: int,
    *,
    profile: str = DEFAULT_PROFILE,
    chunk_samples: int = CHUNK_SAMPLES,
) -> int:
    """Encrypt int16 samples read from *src* until EOF into float64s on *dst*.

    Both are binary file objects already positioned at the data region.
    Writes one leading value plus one value per sample and returns the
    number of samples consumed.  Raises DivergenceError if the state stops
    being finite; everything emitted before that is already written.
    """
    prof  = get_profile(profile)
    noise = NoiseSource(key, prof)
    state = SDSState.initial(noise, prof)

    dst.write(np.array([state.x1], dtype=_ENC).tobytes())

    while True:
        raw = src.read(chunk_samples * PCM_SAMPLE_SIZE)
        if not raw:
            break
        if len(raw) % PCM_SAMPLE_SIZE:
            raise ConfigurationError(
                f"data region ends in a partial sample after {state.steps} samples"
            )

        c3 = normalize_block(np.frombuffer(raw, dtype=_PCM))
        n  = noise.take(len(c3))

        out: list[float] = []
        try:
            for c, n_next in zip(c3.tolist(), n.tolist()):
                out.append(state.advance(c, n_next))
        finally:
            dst.write(np.asarray(out, dtype=_ENC).tobytes())

    return state.steps


def _decode_block(dst, window, noise, profile: dict, offset: int) -> int:
    """Decode every full window of *window* and append the int16s to *dst*.

    On a fault, the samples before it are still written and the fault with
    the lowest index is raised.
    """
    count   = len(window) - 2
    pending = None
    while True:
        try:
            c3  = inverse_window(window[:count + 2], noise[:count], profile, offset=offset)
            pcm = denormalize_block(c3, offset=offset)
        except TransformFault as fault:
            count   = fault.index - offset
            pending = fault
            continue
        dst.write(pcm.astype(_PCM).tobytes())
        if pending is not None:
            raise pending
        return count


def decrypt_stream(
    src,
    dst,
    key: int,
    *,
    profile: str = DEFAULT_PROFILE,
    chunk_samples: int = CHUNK_SAMPLES,
) -> int:
    """Decrypt float64 values read from *src* until EOF into int16s on *dst*.

    Returns the number of samples recovered (values read − 2, or 0 when
    fewer than three values exist).  Raises DecodeRangeError or
    DegenerateStateError at the first bad window.
    """
    prof  = get_profile(profile)
    noise = NoiseSource(key, prof)

    carry = np.empty(0, dtype=np.float64)
    done  = 0
    while True:
        raw = src.read(chunk_samples * ENC_SAMPLE_SIZE)
        if not raw:
            break
        if len(raw) % ENC_SAMPLE_SIZE:
            raise ConfigurationError(
                f"data region ends in a partial value after {done} samples"
            )

        window = np.concatenate([carry, np.frombuffer(raw, dtype=_ENC)])
        n_win  = len(window) - 2
        if n_win > 0:
            done += _decode_block(dst, window, noise.take(n_win), prof, done)
            carry = window[-2:]
        else:
            carry = window

    return done


# ── file level ────────────────────────────────────────────────────────────────

def _check_config(key: int, profile: str) -> None:
    try:
        validate_key(key)
        get_profile(profile)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def _load_header(path: str, value_size: int) -> WavHeader:
    """Read and validate the header of *path*; the data region must hold whole values."""
    header = read_header(path).validate()
    data_len = os.path.getsize(path) - HEADER_LEN
    if data_len % value_size:
        raise ConfigurationError(
            f"{path}: data region of {data_len} bytes is not a whole number "
            f"of {value_size}-byte values"
        )
    return header


def _run(direction: str, stream_fn, src_path: str, dst_path: str,
         header: WavHeader, key: int, profile: str) -> TransformResult:
    if os.path.abspath(src_path) == os.path.abspath(dst_path):
        raise ConfigurationError(f"{direction} output would overwrite its input: {src_path}")

    write_header(dst_path, header)
    log.debug("%s %s → %s  key=%d profile=%s", direction, src_path, dst_path, key, profile)

    with open(src_path, "rb") as src, open(dst_path, "ab") as dst:
        src.seek(HEADER_LEN)
        try:
            count = stream_fn(src, dst, key, profile=profile)
        except TransformFault as fault:
            log.debug("%s aborted: %s", direction, fault)
            return TransformResult.from_fault(direction, fault)

    log.debug("%s finished: %d samples", direction, count)
    return TransformResult(success=True, direction=direction, samples=count)


def encrypt_wav(
    src_path: str,
    dst_path: str,
    key: int = DEFAULT_KEY,
    *,
    profile: str = DEFAULT_PROFILE,
) -> TransformResult:
    """Encrypt the 16-bit PCM WAV at *src_path* into *dst_path*.

    Raises:
        ConfigurationError / HeaderError: bad key, profile or input file —
            nothing is written.

    Returns:
        :class:`TransformResult` — a DivergenceError during the data pass is
        reported there rather than raised.
    """
    _check_config(key, profile)
    header = _load_header(src_path, PCM_SAMPLE_SIZE)
    return _run("encrypt", encrypt_stream, src_path, dst_path,
                derive_forward(header), key, profile)


def decrypt_wav(
    src_path: str,
    dst_path: str,
    key: int = DEFAULT_KEY,
    *,
    profile: str = DEFAULT_PROFILE,
) -> TransformResult:
    """Decrypt an encrypted WAV at *src_path* into 16-bit PCM at *dst_path*.

    *key* and *profile* must match the ones used to encrypt; a mismatch is
    not detected and usually ends in a decode range fault.
    """
    _check_config(key, profile)
    header = _load_header(src_path, ENC_SAMPLE_SIZE)
    return _run("decrypt", decrypt_stream, src_path, dst_path,
                derive_inverse(derive_source(header)), key, profile)


__all__ = [
    "encrypt_stream", "decrypt_stream", "encrypt_wav", "decrypt_wav",
]
