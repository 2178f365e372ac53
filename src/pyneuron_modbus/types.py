"""Core data model: point ids, group capabilities, Modbus exception codes, write outcomes."""

from dataclasses import dataclass
from enum import Enum, IntEnum


class PointPrefix(str, Enum):
    """Point kinds addressable on a board."""

    DI = "DI"
    DO = "DO"
    AI = "AI"
    AO = "AO"


@dataclass(frozen=True)
class PointId:
    """One addressable I/O point: prefix, 1-based group and 1-based index within the group."""

    prefix: PointPrefix
    group: int
    index: int

    def __post_init__(self) -> None:
        if self.group < 1:
            raise ValueError(f"group must be >= 1, got {self.group}")
        if self.index < 1:
            raise ValueError(f"index must be >= 1, got {self.index}")

    def __str__(self) -> str:
        return f"{self.prefix.value}{self.group}.{self.index}"


@dataclass(frozen=True)
class GroupCapability:
    """I/O counts a group reports at discovery. Immutable once discovered."""

    group: int
    di: int = 0
    do: int = 0
    ai: int = 0
    ao: int = 0
    serial: int = 0

    def __post_init__(self) -> None:
        if self.group < 1:
            raise ValueError(f"group must be >= 1, got {self.group}")
        for name in ("di", "do", "ai", "ao", "serial"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")

    def count_for(self, prefix: PointPrefix) -> int:
        return {
            PointPrefix.DI: self.di,
            PointPrefix.DO: self.do,
            PointPrefix.AI: self.ai,
            PointPrefix.AO: self.ao,
        }[prefix]

    def contains(self, point: PointId) -> bool:
        """True if the point lies within this group's discovered bounds."""
        return point.group == self.group and point.index <= self.count_for(point.prefix)


class ModbusExceptionCode(IntEnum):
    """Modbus exception codes a board may answer with."""

    ILLEGAL_FUNCTION = 0x01
    ILLEGAL_DATA_ADDRESS = 0x02
    ILLEGAL_DATA_VALUE = 0x03
    DEVICE_FAILURE = 0x04
    ACKNOWLEDGE = 0x05
    DEVICE_BUSY = 0x06
    NEGATIVE_ACKNOWLEDGE = 0x07
    MEMORY_PARITY_ERROR = 0x08
    GATEWAY_PATH_UNAVAILABLE = 0x0A
    GATEWAY_TARGET_FAILED = 0x0B

    @classmethod
    def lookup(cls, code: int | None) -> "ModbusExceptionCode | None":
        """Return the matching member, or None for unknown / missing codes."""
        if code is None:
            return None
        try:
            return cls(code)
        except ValueError:
            return None


_EXCEPTION_DESCRIPTIONS: dict[ModbusExceptionCode, str] = {
    ModbusExceptionCode.ILLEGAL_FUNCTION: "Illegal Function",
    ModbusExceptionCode.ILLEGAL_DATA_ADDRESS: "Illegal Data Address",
    ModbusExceptionCode.ILLEGAL_DATA_VALUE: "Illegal Data Value",
    ModbusExceptionCode.DEVICE_FAILURE: "Failure In Associated Device",
    ModbusExceptionCode.ACKNOWLEDGE: "Acknowledge",
    ModbusExceptionCode.DEVICE_BUSY: "Busy, Rejected Message",
    ModbusExceptionCode.NEGATIVE_ACKNOWLEDGE: "NAK - Negative Acknowledgement",
    ModbusExceptionCode.MEMORY_PARITY_ERROR: "Memory Parity Error",
    ModbusExceptionCode.GATEWAY_PATH_UNAVAILABLE: "Gateway Path Unavailable",
    ModbusExceptionCode.GATEWAY_TARGET_FAILED: "Gateway Target Device Failed to respond",
}


def describe_exception(code: int) -> str:
    """Readable reason for a Modbus exception code; unknown codes become a generic transport fault."""
    kind = ModbusExceptionCode.lookup(code)
    if kind is None:
        return f"Transport fault (code 0x{code:02X})"
    return _EXCEPTION_DESCRIPTIONS[kind]


class CounterComposition(str, Enum):
    """How the two registers of a DI pulse counter combine into one value."""

    LOW_HIGH = "low-high"  # first register is the low word
    HIGH_LOW = "high-low"  # first register is the high word
    SUM = "sum"  # legacy: plain addition of both words


class WriteState(str, Enum):
    """States of one pending verified write."""

    SENT = "sent"
    AWAITING_VERIFICATION = "awaiting_verification"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class WriteOutcome:
    """Terminal result of a verified write."""

    point: PointId
    value: bool
    state: WriteState
    attempts: int
    observed: int | None

    @property
    def converged(self) -> bool:
        return self.state == WriteState.CONVERGED
