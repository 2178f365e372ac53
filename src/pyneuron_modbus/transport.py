"""Transport: the raw register/coil collaborator a Board talks through; pymodbus-backed implementation."""

import logging
from typing import Any, Protocol

from pymodbus.client import AsyncModbusSerialClient, AsyncModbusTcpClient
from pymodbus.exceptions import ModbusException as PymodbusException

from .errors import ModbusIOError

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Asynchronous raw access to one Modbus unit."""

    async def connect(self) -> None: ...

    def set_unit(self, unit_id: int) -> None: ...

    async def read_registers(self, address: int, count: int) -> list[int]: ...

    async def write_coil(self, address: int, value: bool) -> None: ...

    def close(self) -> None: ...


class PymodbusTransport:
    """
    Transport over a pymodbus async client (TCP or RTU serial).
    Reads holding registers and writes single coils for the currently selected unit.
    """

    def __init__(self, client: "AsyncModbusTcpClient | AsyncModbusSerialClient", label: str = "") -> None:
        self._client = client
        self._label = label or type(client).__name__
        self._unit_id = 1

    @classmethod
    def tcp(cls, host: str, port: int = 502, timeout: float = 3.0, retries: int = 3) -> "PymodbusTransport":
        client = AsyncModbusTcpClient(host=host, port=port, timeout=timeout, retries=retries)
        return cls(client, label=f"{host}:{port}")

    @classmethod
    def serial(
        cls,
        port: str,
        baudrate: int = 19200,
        timeout: float = 3.0,
        retries: int = 3,
    ) -> "PymodbusTransport":
        client = AsyncModbusSerialClient(port=port, baudrate=baudrate, timeout=timeout, retries=retries)
        return cls(client, label=port)

    @property
    def unit_id(self) -> int:
        return self._unit_id

    @property
    def label(self) -> str:
        return self._label

    async def connect(self) -> None:
        """Open the connection; raises ModbusIOError if the device is unreachable."""
        try:
            ok = await self._client.connect()
        except PymodbusException as e:
            raise ModbusIOError(f"Failed to connect to {self._label}: {e}", cause=e) from e
        if not ok:
            raise ModbusIOError(f"Failed to connect to {self._label}")
        logger.debug("Connected to %s", self._label)

    def set_unit(self, unit_id: int) -> None:
        self._unit_id = unit_id

    async def read_registers(self, address: int, count: int) -> list[int]:
        """Read `count` holding registers starting at `address`."""
        try:
            rr = await self._client.read_holding_registers(address, count=count, device_id=self._unit_id)
        except PymodbusException as e:
            raise ModbusIOError(str(e), address=address, count=count, cause=e) from e
        _raise_for_error(rr, address=address, count=count)
        registers = getattr(rr, "registers", None)
        if registers is None or len(registers) < count:
            raise ModbusIOError("Short register response", address=address, count=count)
        return [int(r) for r in registers[:count]]

    async def write_coil(self, address: int, value: bool) -> None:
        try:
            rr = await self._client.write_coil(address, bool(value), device_id=self._unit_id)
        except PymodbusException as e:
            raise ModbusIOError(str(e), address=address, count=1, cause=e) from e
        _raise_for_error(rr, address=address, count=1)

    def close(self) -> None:
        try:
            self._client.close()
        except Exception as e:
            logger.warning("Error closing Modbus client: %s", e)


def _raise_for_error(rr: Any, *, address: int, count: int) -> None:
    if rr.isError():
        raise ModbusIOError(
            str(rr),
            address=address,
            count=count,
            code=getattr(rr, "exception_code", None),
        )
