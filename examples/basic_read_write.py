#!/usr/bin/env python3
"""Example: connect to a board, discover its groups, read a few points and switch an output."""

import asyncio
import sys

from pyneuron_modbus import Board, PymodbusTransport
from pyneuron_modbus.errors import InvalidPointError, ModbusIOError, UnknownPointError, WriteNotConvergedError


async def main() -> None:
    host = "192.168.1.10"  # change to your board IP
    transport = PymodbusTransport.tcp(host, port=502)

    async with Board(transport, unit_id=1, groups=3) as board:
        for cap in board.groups:
            print(cap)

        # First poll establishes the baseline
        await board.poll_states()
        await board.poll_counters()
        print(f"DI1.1 = {board.get_state('DI1.1')}")
        print(f"DI1.1 pulses = {board.get_count('DI1.1')}")

        # Verified write needs someone polling in the background
        poller = asyncio.create_task(board.poll_forever(0.05, counters=False))
        try:
            outcome = await board.write("DO1.1", True)
            print(f"DO1.1 confirmed after {outcome.attempts} attempt(s)")
        finally:
            poller.cancel()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (InvalidPointError, UnknownPointError) as e:
        print(f"Point error: {e}", file=sys.stderr)
        sys.exit(1)
    except WriteNotConvergedError as e:
        print(f"Write not confirmed: {e}", file=sys.stderr)
        sys.exit(1)
    except ModbusIOError as e:
        print(f"Modbus/connection error: {e.describe()}", file=sys.stderr)
        sys.exit(1)
