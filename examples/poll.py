#!/usr/bin/env python3
"""Example: poll a board on an interval and print every state change; Ctrl+C to stop."""

import asyncio
import sys

from pyneuron_modbus import Board, PymodbusTransport
from pyneuron_modbus.errors import ModbusIOError


def on_update(point: str, value: str) -> None:
    print(f"{point} -> {value}")


async def main() -> None:
    host = "192.168.1.10"  # change to your board IP
    interval_s = 0.5

    async with Board(PymodbusTransport.tcp(host), unit_id=1) as board:
        board.subscribe(on_update)
        print(f"Polling every {interval_s}s (Ctrl+C to stop)...")
        await board.poll_forever(interval_s)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nStopped.")
    except ModbusIOError as e:
        print(f"Modbus/connection error: {e.describe()}", file=sys.stderr)
        sys.exit(1)
