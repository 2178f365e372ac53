"""pyneuron-modbus: named, change-tracked I/O points over a Modbus I/O board via pymodbus."""

__version__ = "0.1.0"

from .board import Board
from .errors import (
    InvalidPointError,
    ModbusIOError,
    PyNeuronModbusError,
    UnknownPointError,
    WriteNotConvergedError,
)
from .normalize import normalize_point, parse_point
from .state import StateStore
from .transport import PymodbusTransport, Transport
from .types import (
    CounterComposition,
    GroupCapability,
    ModbusExceptionCode,
    PointId,
    PointPrefix,
    WriteOutcome,
    WriteState,
    describe_exception,
)

__all__ = [
    "__version__",
    "Board",
    "InvalidPointError",
    "ModbusIOError",
    "PyNeuronModbusError",
    "UnknownPointError",
    "WriteNotConvergedError",
    "normalize_point",
    "parse_point",
    "StateStore",
    "PymodbusTransport",
    "Transport",
    "CounterComposition",
    "GroupCapability",
    "ModbusExceptionCode",
    "PointId",
    "PointPrefix",
    "WriteOutcome",
    "WriteState",
    "describe_exception",
]
