"""SDS — failure codes, typed faults and the run result record."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FailureCode(str, Enum):
    """Reason a transform run stopped before the end of its input."""

    OK               = "ok"
    DECODE_RANGE     = "decode_range"       # denormalized sample does not fit int16
    DEGENERATE_STATE = "degenerate_state"   # x1[i] == 0, inverse undefined
    DIVERGED         = "diverged"           # forward state became inf / NaN


class SDSError(Exception):
    """Base class for every error raised by the sds package."""


class ConfigurationError(SDSError):
    """Input cannot be transformed at all: missing file, bad shape, bad key."""


class HeaderError(ConfigurationError):
    """The 44-byte RIFF/WAVE header is short, malformed or unsupported."""


class TransformFault(SDSError):
    """A run aborted part-way through; *index* is the sample it stopped at."""

    code = FailureCode.OK

    def __init__(self, index: int, message: str):
        super().__init__(f"sample {index}: {message}")
        self.index = index


class DecodeRangeError(TransformFault):
    code = FailureCode.DECODE_RANGE

    def __init__(self, index: int, value: float):
        super().__init__(index, f"decoded value {value!r} is outside the int16 range")
        self.value = value


class DegenerateStateError(TransformFault):
    code = FailureCode.DEGENERATE_STATE

    def __init__(self, index: int):
        super().__init__(index, "x1 is zero, window cannot be inverted")


class DivergenceError(TransformFault):
    code = FailureCode.DIVERGED

    def __init__(self, index: int, x1: float, x2: float):
        super().__init__(index, f"state diverged (x1={x1!r}, x2={x2!r})")
        self.x1 = x1
        self.x2 = x2


@dataclass
class TransformResult:
    """Outcome of :func:`sds.encrypt_wav` / :func:`sds.decrypt_wav`.

    On success : ``success=True``,  ``samples`` is the number processed.
    On failure : ``success=False``, ``failure`` and ``index`` say where the run
                 stopped; ``samples`` counts what was written before that.
    """

    success:   bool
    direction: str
    samples:   int                   = 0
    failure:   FailureCode           = FailureCode.OK
    index:     Optional[int]         = None
    message:   Optional[str]         = None

    @classmethod
    def from_fault(cls, direction: str, fault: TransformFault) -> "TransformResult":
        return cls(
            success=False,
            direction=direction,
            samples=fault.index,
            failure=fault.code,
            index=fault.index,
            message=str(fault),
        )

    def summary(self) -> str:
        if self.success:
            return f"[OK] {self.direction} {self.samples} samples"
        return f"[FAIL:{self.failure.value}] {self.direction} stopped at sample {self.index}"

    def __repr__(self) -> str:
        return f"TransformResult({self.summary()})"
