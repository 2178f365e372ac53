"""Tests for the pymodbus-backed transport (mocked async client)."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymodbus.exceptions import ModbusException as PymodbusException

from pyneuron_modbus import ModbusExceptionCode, PymodbusTransport
from pyneuron_modbus.errors import ModbusIOError


@pytest.fixture
def mock_modbus_client() -> MagicMock:
    client = MagicMock()
    client.connect = AsyncMock(return_value=True)
    client.read_holding_registers = AsyncMock(return_value=MagicMock(isError=lambda: False, registers=[0x0404, 0x0111]))
    client.write_coil = AsyncMock(return_value=MagicMock(isError=lambda: False))
    return client


def test_tcp_factory_builds_async_client() -> None:
    with patch("pyneuron_modbus.transport.AsyncModbusTcpClient") as client_class:
        transport = PymodbusTransport.tcp("192.168.1.10", port=1502, timeout=2.0, retries=1)
    client_class.assert_called_once_with(host="192.168.1.10", port=1502, timeout=2.0, retries=1)
    assert transport.label == "192.168.1.10:1502"


def test_serial_factory_builds_async_client() -> None:
    with patch("pyneuron_modbus.transport.AsyncModbusSerialClient") as client_class:
        transport = PymodbusTransport.serial("/dev/ttyNS0", baudrate=9600)
    client_class.assert_called_once_with(port="/dev/ttyNS0", baudrate=9600, timeout=3.0, retries=3)
    assert transport.label == "/dev/ttyNS0"


def test_read_registers_uses_selected_unit(mock_modbus_client: MagicMock) -> None:
    transport = PymodbusTransport(mock_modbus_client)
    transport.set_unit(5)
    words = asyncio.run(transport.read_registers(1001, 2))
    assert words == [0x0404, 0x0111]
    mock_modbus_client.read_holding_registers.assert_awaited_once_with(1001, count=2, device_id=5)


def test_write_coil_dispatch(mock_modbus_client: MagicMock) -> None:
    transport = PymodbusTransport(mock_modbus_client)
    asyncio.run(transport.write_coil(102, 1))
    mock_modbus_client.write_coil.assert_awaited_once_with(102, True, device_id=1)


def test_connect_failure_raises(mock_modbus_client: MagicMock) -> None:
    mock_modbus_client.connect = AsyncMock(return_value=False)
    transport = PymodbusTransport(mock_modbus_client, label="board:502")
    with pytest.raises(ModbusIOError, match="Failed to connect to board:502"):
        asyncio.run(transport.connect())


def test_exception_response_carries_code(mock_modbus_client: MagicMock) -> None:
    mock_modbus_client.read_holding_registers = AsyncMock(
        return_value=MagicMock(isError=lambda: True, exception_code=0x02)
    )
    transport = PymodbusTransport(mock_modbus_client)
    with pytest.raises(ModbusIOError) as exc_info:
        asyncio.run(transport.read_registers(0, 2))
    err = exc_info.value
    assert err.code == 0x02
    assert err.kind is ModbusExceptionCode.ILLEGAL_DATA_ADDRESS
    assert err.describe() == "Illegal Data Address"
    assert err.address == 0


def test_pymodbus_exception_is_wrapped(mock_modbus_client: MagicMock) -> None:
    cause = PymodbusException("timeout")
    mock_modbus_client.write_coil = AsyncMock(side_effect=cause)
    transport = PymodbusTransport(mock_modbus_client)
    with pytest.raises(ModbusIOError) as exc_info:
        asyncio.run(transport.write_coil(0, True))
    assert exc_info.value.cause is cause
    assert exc_info.value.kind is None


def test_short_response_raises(mock_modbus_client: MagicMock) -> None:
    mock_modbus_client.read_holding_registers = AsyncMock(return_value=MagicMock(isError=lambda: False, registers=[1]))
    transport = PymodbusTransport(mock_modbus_client)
    with pytest.raises(ModbusIOError, match="Short register response"):
        asyncio.run(transport.read_registers(8, 4))


def test_close_swallows_client_errors(mock_modbus_client: MagicMock) -> None:
    mock_modbus_client.close.side_effect = OSError("already closed")
    PymodbusTransport(mock_modbus_client).close()
    mock_modbus_client.close.assert_called_once()
