"""Clear exceptions for pyneuron-modbus: invalid/unknown points, Modbus I/O errors, unconverged writes."""

from .types import ModbusExceptionCode, WriteOutcome, describe_exception


class PyNeuronModbusError(Exception):
    """Base exception for pyneuron-modbus."""

    pass


class InvalidPointError(PyNeuronModbusError):
    """Raised when a point id string is malformed (syntax validation failed)."""

    def __init__(self, point: str, message: str | None = None) -> None:
        self.point = point
        self._msg = message or f"Invalid point id: {point!r}"
        super().__init__(self._msg)


class UnknownPointError(PyNeuronModbusError):
    """Raised when a point id is well-formed but was never observed on the board."""

    def __init__(self, point: str, message: str | None = None) -> None:
        self.point = point
        self._msg = message or f"Unknown point id: {point!r}"
        super().__init__(self._msg)


class ModbusIOError(PyNeuronModbusError):
    """Raised when a register read or coil write fails (wraps pymodbus or connection errors)."""

    def __init__(
        self,
        message: str,
        *,
        address: int | None = None,
        count: int | None = None,
        code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.address = address
        self.count = count
        self.code = code
        self.cause = cause
        super().__init__(message)

    @property
    def kind(self) -> ModbusExceptionCode | None:
        """The Modbus exception kind, or None for a generic transport fault."""
        return ModbusExceptionCode.lookup(self.code)

    def describe(self) -> str:
        """Human-readable reason: the exception table entry if recognized, else the raw message."""
        if self.code is None:
            return str(self)
        return describe_exception(self.code)


class WriteNotConvergedError(PyNeuronModbusError):
    """Raised when a verified write exhausted its retries without the board reporting the value."""

    def __init__(self, outcome: WriteOutcome) -> None:
        self.outcome = outcome
        super().__init__(
            f"Write {outcome.point}={int(outcome.value)} not confirmed after "
            f"{outcome.attempts} attempts (observed {outcome.observed!r})"
        )
