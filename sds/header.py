"""SDS — 44-byte canonical RIFF/WAVE header.

Layout (all multi-byte integers little-endian):
  [0:4]   chunk_id        = "RIFF"
  [4:8]   chunk_size      uint32 — always subchunk2_size + 36
  [8:12]  format          = "WAVE"
  [12:16] subchunk1_id    = "fmt "
  [16:20] subchunk1_size  uint32 — 16 for PCM
  [20:22] audio_format    uint16 — 1 = PCM
  [22:24] num_channels    uint16
  [24:28] sample_rate     uint32
  [28:32] byte_rate       uint32 — sample_rate · num_channels · bits / 8
  [32:34] block_align     uint16 — num_channels · bits / 8
  [34:36] bits_per_sample uint16
  [36:40] subchunk2_id    = "data"
  [40:44] subchunk2_size  uint32 — bytes of sample data that follow
  ── 44 bytes total, sample data starts right after ──

Headers are immutable.  The encrypted and decrypted outputs get derived
copies that differ from the source only in subchunk2_size / chunk_size.
"""

import struct
from dataclasses import dataclass, replace

from .diagnostics import HeaderError
from .profiles import (
    HEADER_LEN, RIFF_OVERHEAD, UINT32_MAX,
    PCM_SAMPLE_SIZE, ENC_SAMPLE_SIZE,
    AUDIO_FORMAT_PCM, SUPPORTED_BITS, SUPPORTED_CHANNELS,
)

# struct format: <4s  I     4s    4s     I      H     H     I     I      H      H     4s    I
# Field:          id  size  WAVE  fmt_id fmt_sz fmt   chans rate  brate  align  bits  data  data_sz
_STRUCT = struct.Struct("<4sI4s4sIHHIIHH4sI")
assert _STRUCT.size == HEADER_LEN, f"Header struct size mismatch: {_STRUCT.size}"

RIFF = b"RIFF"
WAVE = b"WAVE"
FMT  = b"fmt "
DATA = b"data"


@dataclass(frozen=True)
class WavHeader:
    """Parsed representation of the 44-byte RIFF/WAVE header."""

    chunk_size:      int
    subchunk1_size:  int
    audio_format:    int
    num_channels:    int
    sample_rate:     int
    byte_rate:       int
    block_align:     int
    bits_per_sample: int
    subchunk2_size:  int
    chunk_id:        bytes = RIFF
    format:          bytes = WAVE
    subchunk1_id:    bytes = FMT
    subchunk2_id:    bytes = DATA

    @classmethod
    def pcm16(cls, sample_rate: int, num_channels: int, data_size: int) -> "WavHeader":
        """Canonical 16-bit PCM header for *data_size* bytes of samples."""
        block_align = num_channels * PCM_SAMPLE_SIZE
        return cls(
            chunk_size=data_size + RIFF_OVERHEAD,
            subchunk1_size=16,
            audio_format=AUDIO_FORMAT_PCM,
            num_channels=num_channels,
            sample_rate=sample_rate,
            byte_rate=sample_rate * block_align,
            block_align=block_align,
            bits_per_sample=SUPPORTED_BITS,
            subchunk2_size=data_size,
        )

    # ── derived helpers ───────────────────────────────────────────────────────

    @property
    def num_samples(self) -> int:
        """Sample count over all channels, as the header states it."""
        return self.subchunk2_size // max(self.bits_per_sample // 8, 1)

    @property
    def duration(self) -> tuple[int, float]:
        """(minutes, seconds) of audio the header describes."""
        bytes_per_sample = self.bits_per_sample // 8
        if not (bytes_per_sample and self.num_channels and self.sample_rate):
            return 0, 0.0
        seconds = self.subchunk2_size / bytes_per_sample / self.num_channels / self.sample_rate
        minutes = int(seconds // 60)
        return minutes, seconds - minutes * 60

    def validate(self) -> "WavHeader":
        """Raise HeaderError unless this is 16-bit PCM mono or stereo."""
        if self.audio_format != AUDIO_FORMAT_PCM:
            raise HeaderError(f"Unsupported audio format {self.audio_format} (only PCM = 1)")
        if self.bits_per_sample != SUPPORTED_BITS:
            raise HeaderError(f"Unsupported sample width: {self.bits_per_sample} bits (only 16)")
        if self.num_channels not in SUPPORTED_CHANNELS:
            raise HeaderError(f"Unsupported channel count: {self.num_channels}")
        return self

    def describe(self) -> list[str]:
        minutes, seconds = self.duration
        return [
            f"Number of channels: {self.num_channels}",
            f"Sample rate: {self.sample_rate}",
            f"Bytes per second: {self.byte_rate}",
            f"Bytes per sample: {self.block_align}",
            f"Bits per sample: {self.bits_per_sample}",
            f"Size of data (bytes): {self.subchunk2_size}",
            f"Size of chunk (data size + 36 bytes): {self.chunk_size}",
            f"Sound duration: {minutes:02d}:{seconds:05.2f}",
        ]

    # ── pack / unpack ─────────────────────────────────────────────────────────

    def pack(self) -> bytes:
        """Serialise to a 44-byte bytes object."""
        try:
            return _STRUCT.pack(
                self.chunk_id,
                self.chunk_size,
                self.format,
                self.subchunk1_id,
                self.subchunk1_size,
                self.audio_format,
                self.num_channels,
                self.sample_rate,
                self.byte_rate,
                self.block_align,
                self.bits_per_sample,
                self.subchunk2_id,
                self.subchunk2_size,
            )
        except struct.error as exc:
            raise HeaderError(f"Header field out of range: {exc}") from exc

    @classmethod
    def unpack(cls, data: bytes) -> "WavHeader":
        """Deserialise from the first 44 bytes of *data*.

        Raises HeaderError on short data or unexpected chunk tags.
        """
        if len(data) < HEADER_LEN:
            raise HeaderError(f"Data too short for WAV header: {len(data)} < {HEADER_LEN}")

        (
            chunk_id,
            chunk_size,
            fmt,
            subchunk1_id,
            subchunk1_size,
            audio_format,
            num_channels,
            sample_rate,
            byte_rate,
            block_align,
            bits_per_sample,
            subchunk2_id,
            subchunk2_size,
        ) = _STRUCT.unpack(data[:HEADER_LEN])

        for name, got, want in (
            ("ChunkID", chunk_id, RIFF),
            ("Format", fmt, WAVE),
            ("Subchunk1ID", subchunk1_id, FMT),
            ("Subchunk2ID", subchunk2_id, DATA),
        ):
            if got != want:
                raise HeaderError(f"Bad {name}: {got!r} (expected {want!r})")

        return cls(
            chunk_size=chunk_size,
            subchunk1_size=subchunk1_size,
            audio_format=audio_format,
            num_channels=num_channels,
            sample_rate=sample_rate,
            byte_rate=byte_rate,
            block_align=block_align,
            bits_per_sample=bits_per_sample,
            subchunk2_size=subchunk2_size,
        )

    def __repr__(self) -> str:
        return (
            f"WavHeader({self.num_channels}ch {self.sample_rate}Hz "
            f"{self.bits_per_sample}bit data={self.subchunk2_size}B)"
        )


# ── derivations ───────────────────────────────────────────────────────────────

def _with_data_size(h: WavHeader, data_size: int) -> WavHeader:
    if not 0 <= data_size <= UINT32_MAX - RIFF_OVERHEAD:
        raise HeaderError(f"Derived data size {data_size} does not fit the RIFF header")
    return replace(h, subchunk2_size=data_size, chunk_size=data_size + RIFF_OVERHEAD)


def derive_forward(h: WavHeader) -> WavHeader:
    """Header for the encrypted file.

    Every int16 sample becomes a float64 (×4 bytes), plus the leading x1
    value.  The format fields are left alone, so players see four times as
    much 16-bit audio.
    """
    return _with_data_size(
        h, h.subchunk2_size * (ENC_SAMPLE_SIZE // PCM_SAMPLE_SIZE) + ENC_SAMPLE_SIZE,
    )


def derive_inverse(h: WavHeader) -> WavHeader:
    """Header for the decrypted file.

    The last two encrypted values never fill a window; with the extra leading
    value that costs exactly one int16 sample.  An empty source stays empty.
    """
    return _with_data_size(h, max(h.subchunk2_size - PCM_SAMPLE_SIZE, 0))


def derive_source(h: WavHeader) -> WavHeader:
    """Undo :func:`derive_forward`: the source header of an encrypted file.

    Raises HeaderError if the data size cannot have come from derive_forward.
    """
    size = h.subchunk2_size - ENC_SAMPLE_SIZE
    ratio = ENC_SAMPLE_SIZE // PCM_SAMPLE_SIZE
    if size < 0 or size % ratio:
        raise HeaderError(
            f"Data size {h.subchunk2_size} is not that of an encrypted file"
        )
    return _with_data_size(h, size // ratio)


# ── file helpers ──────────────────────────────────────────────────────────────

def read_header(path: str) -> WavHeader:
    try:
        with open(path, "rb") as f:
            data = f.read(HEADER_LEN)
    except FileNotFoundError:
        raise HeaderError(f"No such file: {path}") from None
    except IsADirectoryError:
        raise HeaderError(f"Not a file: {path}") from None
    return WavHeader.unpack(data)


def write_header(path: str, header: WavHeader) -> None:
    """Create (or truncate) *path* and write exactly the 44 header bytes."""
    with open(path, "wb") as f:
        f.write(header.pack())
