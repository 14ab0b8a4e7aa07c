"""SDS — stochastic differential system audio encryption.

Public API:
    encrypt_wav(src, dst, key=1, *, profile="c3_c5") -> TransformResult
    decrypt_wav(src, dst, key=1, *, profile="c3_c5") -> TransformResult
    encrypt_stream(src, dst, key, *, profile)          -> int
    decrypt_stream(src, dst, key, *, profile)          -> int
"""

from .api import decrypt_stream, decrypt_wav, encrypt_stream, encrypt_wav
from .diagnostics import (
    ConfigurationError,
    DecodeRangeError,
    DegenerateStateError,
    DivergenceError,
    FailureCode,
    HeaderError,
    SDSError,
    TransformFault,
    TransformResult,
)
from .header import WavHeader, derive_forward, derive_inverse, derive_source

__version__ = "1.0.0"
__all__ = [
    "encrypt_wav", "decrypt_wav", "encrypt_stream", "decrypt_stream",
    "WavHeader", "derive_forward", "derive_inverse", "derive_source",
    "SDSError", "ConfigurationError", "HeaderError", "TransformFault",
    "DecodeRangeError", "DegenerateStateError", "DivergenceError",
    "FailureCode", "TransformResult",
]
