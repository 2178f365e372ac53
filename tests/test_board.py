"""End-to-end tests of the Board facade over the fake transport."""

import asyncio

import pytest
from conftest import FakeTransport, capability_word

from pyneuron_modbus import Board, GroupCapability, WriteState
from pyneuron_modbus.errors import UnknownPointError, WriteNotConvergedError


def emulate_outputs(transport: FakeTransport) -> None:
    """Make coil writes show up in the DO state word of their group, like the real board."""

    def apply(address: int, value: bool) -> None:
        group, bit = divmod(address, 100)
        reg = group * 100 + 1
        word = transport.registers.get(reg, 0)
        transport.registers[reg] = word | (1 << bit) if value else word & ~(1 << bit)

    transport.on_write = apply


def test_start_connects_and_discovers(transport: FakeTransport) -> None:
    board = Board(transport, unit_id=7, groups=3)
    asyncio.run(board.start())
    assert transport.connected
    assert transport.unit_id == 7
    assert board.groups[1] == GroupCapability(group=2, di=8, do=8)
    assert len(board.groups) == 3


def test_get_state_unknown_before_poll(transport: FakeTransport) -> None:
    board = Board(transport)
    asyncio.run(board.start())
    assert board.get_state("DO1.1") is None
    with pytest.raises(UnknownPointError):
        board.validate("DO1.1")


def test_group_wider_than_a_state_word_still_polls(transport: FakeTransport, caplog) -> None:
    transport.registers[1101] = capability_word(24, 4)
    transport.registers[0] = 0b1
    transport.registers[100] = 0xFFFF
    board = Board(transport, groups=3)
    asyncio.run(board.start())
    assert board.groups[1] == GroupCapability(group=2, di=24, do=4)
    assert asyncio.run(board.poll_states()) == 3
    assert board.get_state("DI1.1") == 1
    assert board.get_state("DI2.16") == 1
    assert board.get_state("DI2.17") is None
    assert "Group 2 reports 24 DI points" in caplog.text


def test_poll_populates_points_within_bounds(transport: FakeTransport) -> None:
    transport.registers.update({0: 0b0101, 1: 0b0010})
    board = Board(transport)

    async def scenario():
        await board.start()
        await board.poll_states()

    asyncio.run(scenario())
    assert board.get_state("DI1.1") == 1
    assert board.get_state("DI1.3") == 1
    assert board.get_state("DO1.2") == 1
    assert board.get_state("DI1.5") is None
    assert board.get_state("DO3.14") == 0
    assert board.get_state("DO3.15") is None


def test_update_events_after_baseline(transport: FakeTransport) -> None:
    board = Board(transport, groups=1)
    events: list[tuple[str, str]] = []
    board.subscribe(lambda p, v: events.append((p, v)))

    async def scenario():
        await board.start()
        await board.poll_states()
        transport.registers[0] = 0b1000
        await board.poll_states()

    asyncio.run(scenario())
    assert events == [("DI1.4", "1")]


def test_counters(transport: FakeTransport) -> None:
    transport.registers.update({8: 3, 9: 0, 14: 1, 15: 2})
    board = Board(transport, groups=1)

    async def scenario():
        await board.start()
        await board.poll_counters()

    asyncio.run(scenario())
    assert board.get_count("DI1.1") == 3
    assert board.get_count("DI1.4") == 2 * 65536 + 1
    assert board.get_count("DI1.5") is None


def test_write_converges_with_background_polling(transport: FakeTransport) -> None:
    emulate_outputs(transport)
    board = Board(transport, retry_delay=0.01)

    async def scenario():
        async with board:
            await board.poll_states()
            poller = asyncio.create_task(board.poll_forever(0.005, counters=False))
            try:
                return await board.write("DO2.3", True)
            finally:
                poller.cancel()

    outcome = asyncio.run(scenario())
    assert outcome.state == WriteState.CONVERGED
    assert transport.writes[0] == (102, True)
    assert transport.registers[101] == 0b100
    assert transport.closed


def test_write_raises_when_not_converged(transport: FakeTransport) -> None:
    board = Board(transport, retry_delay=0.001)

    async def scenario():
        await board.start()
        await board.poll_states()
        await board.write("DO1.1", True)

    with pytest.raises(WriteNotConvergedError) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.outcome.attempts == 6
    assert len(transport.writes) == 6


def test_degraded_group_has_no_points(transport: FakeTransport) -> None:
    transport.fail[1101] = 0x0B
    board = Board(transport)

    async def scenario():
        await board.start()
        await board.poll_states()

    asyncio.run(scenario())
    assert board.groups[1] is None
    assert board.get_state("DI2.1") is None
    assert board.get_state("DI1.1") == 0
    assert (100, 2) not in transport.reads


def test_groups_must_be_positive(transport: FakeTransport) -> None:
    with pytest.raises(ValueError):
        Board(transport, groups=0)
