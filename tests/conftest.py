"""Shared fixtures: an in-memory transport standing in for a board."""

import asyncio
from typing import Callable

import pytest

from pyneuron_modbus.errors import ModbusIOError


class FakeTransport:
    """
    Register/coil store with scriptable failures. Reads return the current words;
    addresses in `fail` raise ModbusIOError with the configured exception code.
    """

    def __init__(self, registers: dict[int, int] | None = None) -> None:
        self.registers: dict[int, int] = dict(registers or {})
        self.fail: dict[int, int | None] = {}
        self.reads: list[tuple[int, int]] = []
        self.writes: list[tuple[int, bool]] = []
        self.unit_id: int | None = None
        self.connected = False
        self.closed = False
        self.on_write: Callable[[int, bool], None] | None = None
        self.read_delays: dict[int, list[float]] = {}

    async def connect(self) -> None:
        self.connected = True

    def set_unit(self, unit_id: int) -> None:
        self.unit_id = unit_id

    async def read_registers(self, address: int, count: int) -> list[int]:
        self.reads.append((address, count))
        words = [self.registers.get(address + i, 0) for i in range(count)]
        delays = self.read_delays.get(address)
        if delays:
            await asyncio.sleep(delays.pop(0))
        if address in self.fail:
            raise ModbusIOError("Exception Response", address=address, count=count, code=self.fail[address])
        return words

    async def write_coil(self, address: int, value: bool) -> None:
        self.writes.append((address, value))
        if self.on_write is not None:
            self.on_write(address, value)

    def close(self) -> None:
        self.closed = True


def capability_word(di: int, do: int) -> int:
    return (di << 8) | do


def extension_word(serial: int = 0, ai: int = 0, ao: int = 0) -> int:
    return (serial << 12) | (ai << 8) | ao


@pytest.fixture
def transport() -> FakeTransport:
    """Three groups: 4 DI / 4 DO, 8 DI / 8 DO, 12 DI / 14 DO."""
    return FakeTransport(
        {
            1001: capability_word(4, 4),
            1002: extension_word(serial=1, ai=1, ao=1),
            1101: capability_word(8, 8),
            1102: extension_word(),
            1201: capability_word(12, 14),
            1202: extension_word(),
        }
    )
