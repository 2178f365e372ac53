#!/usr/bin/env python3
"""Command-line interface for pyneuron-modbus using Typer."""

import asyncio
import contextlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .addressing import coil_address, counter_address, state_address
from .board import Board
from .errors import InvalidPointError, ModbusIOError, UnknownPointError, WriteNotConvergedError
from .normalize import parse_point
from .transport import PymodbusTransport
from .types import CounterComposition, PointId, PointPrefix

app = typer.Typer(
    name="pyneuron",
    help="Read, watch and write the I/O points of a Modbus I/O board.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ============================================================================
# Shared options and helpers
# ============================================================================

HostOption = Annotated[
    Optional[str],
    typer.Option("--host", "-h", help="Board hostname or IP address (Modbus TCP)", envvar="PYNEURON_HOST"),
]
PortOption = Annotated[
    int,
    typer.Option("--port", "-p", help="Modbus TCP port", envvar="PYNEURON_PORT"),
]
SerialOption = Annotated[
    Optional[str],
    typer.Option("--serial", help="Serial device for Modbus RTU (instead of --host)", envvar="PYNEURON_SERIAL"),
]
BaudrateOption = Annotated[
    int,
    typer.Option("--baudrate", help="Serial baud rate", envvar="PYNEURON_BAUDRATE"),
]
UnitIdOption = Annotated[
    int,
    typer.Option("--unit-id", "-u", help="Modbus unit ID", envvar="PYNEURON_UNIT_ID"),
]
GroupsOption = Annotated[
    int,
    typer.Option("--groups", "-g", help="Number of I/O groups on the board", envvar="PYNEURON_GROUPS"),
]
TimeoutOption = Annotated[
    float,
    typer.Option("--timeout", "-t", help="Connection timeout in seconds", envvar="PYNEURON_TIMEOUT"),
]
RetriesOption = Annotated[
    int,
    typer.Option("--retries", "-r", help="Transport retries per request", envvar="PYNEURON_RETRIES"),
]
CountersOption = Annotated[
    CounterComposition,
    typer.Option("--counters", help="How DI counter registers combine", envvar="PYNEURON_COUNTERS"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_board(
    host: Optional[str],
    port: int,
    serial: Optional[str],
    baudrate: int,
    unit_id: int,
    groups: int,
    timeout: float,
    retries: int,
    counters: CounterComposition = CounterComposition.LOW_HIGH,
) -> Board:
    """Create a Board over TCP (--host) or RTU (--serial)."""
    if host:
        transport = PymodbusTransport.tcp(host, port=port, timeout=timeout, retries=retries)
    elif serial:
        transport = PymodbusTransport.serial(serial, baudrate=baudrate, timeout=timeout, retries=retries)
    else:
        typer.echo("Error: --host or --serial is required for this command", err=True)
        raise typer.Exit(2)
    return Board(transport, unit_id=unit_id, groups=groups, counter_composition=counters)


def parse_bool(value: str) -> bool:
    """Parse boolean value from string."""
    v = value.lower().strip()
    if v in ("true", "1", "on", "yes"):
        return True
    if v in ("false", "0", "off", "no"):
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def format_value(value: Optional[int]) -> str:
    """Format a state or counter for display; never-observed points show as 'unknown'."""
    if value is None:
        return "unknown"
    return str(value)


def run_command(verbose: bool, coro_fn: Callable[[], Awaitable[T]]) -> T:
    """Run an async command body, mapping library errors to exit codes."""
    try:
        return asyncio.run(coro_fn())
    except typer.Exit:
        raise
    except (InvalidPointError, UnknownPointError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)
    except ModbusIOError as e:
        typer.echo(f"Error: Connection/Modbus error: {e.describe()}", err=True)
        raise typer.Exit(3)
    except WriteNotConvergedError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(5)
    except Exception as e:
        typer.echo(f"Error: Unexpected error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise typer.Exit(4)


def capability_rows(board: Board) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for slot, cap in enumerate(board.groups, start=1):
        if cap is None:
            rows.append({"group": slot, "status": "unavailable"})
        else:
            rows.append(
                {
                    "group": cap.group,
                    "status": "ok",
                    "di": cap.di,
                    "do": cap.do,
                    "ai": cap.ai,
                    "ao": cap.ao,
                    "serial": cap.serial,
                }
            )
    return rows


# ============================================================================
# Commands
# ============================================================================


@app.command()
def info(
    host: HostOption = None,
    port: PortOption = 502,
    serial: SerialOption = None,
    baudrate: BaudrateOption = 19200,
    unit_id: UnitIdOption = 1,
    groups: GroupsOption = 3,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show package version and, with --host/--serial, connectivity and discovered groups.
    """
    setup_logging(verbose)

    info_data: dict[str, Any] = {"version": __version__}

    if host or serial:
        board = create_board(host, port, serial, baudrate, unit_id, groups, timeout, retries)

        async def _probe() -> None:
            async with board:
                found = sum(1 for g in board.groups if g is not None)
                info_data["connectivity"] = {
                    "status": "connected",
                    "unit_id": unit_id,
                    "groups": f"{found}/{groups}",
                }

        try:
            asyncio.run(_probe())
        except ModbusIOError as e:
            info_data["connectivity"] = {"status": "failed", "unit_id": unit_id, "error": e.describe()}

    if json_output:
        typer.echo(json.dumps(info_data, indent=2))
    else:
        typer.echo(f"pyneuron-modbus version: {info_data['version']}")
        if "connectivity" in info_data:
            conn = info_data["connectivity"]
            if conn["status"] == "connected":
                typer.echo(f"Connectivity: OK (unit {unit_id}, groups {conn['groups']})")
            else:
                typer.echo(f"Connectivity: FAILED - {conn['error']}")


@app.command()
def discover(
    host: HostOption = None,
    port: PortOption = 502,
    serial: SerialOption = None,
    baudrate: BaudrateOption = 19200,
    unit_id: UnitIdOption = 1,
    groups: GroupsOption = 3,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Read and show the I/O capabilities each group reports.
    """
    setup_logging(verbose)
    board = create_board(host, port, serial, baudrate, unit_id, groups, timeout, retries)

    async def _discover() -> list[dict[str, Any]]:
        async with board:
            return capability_rows(board)

    rows = run_command(verbose, _discover)
    if json_output:
        typer.echo(json.dumps(rows, indent=2))
        return
    for row in rows:
        if row["status"] != "ok":
            typer.echo(f"Group {row['group']}: unavailable")
        else:
            typer.echo(
                f"Group {row['group']}: DI={row['di']} DO={row['do']} AI={row['ai']} "
                f"AO={row['ao']} serial={row['serial']}"
            )


@app.command()
def read(
    points: Annotated[list[str], typer.Argument(help="Points to read (e.g. DI1.1 DO2.3)")],
    host: HostOption = None,
    port: PortOption = 502,
    serial: SerialOption = None,
    baudrate: BaudrateOption = 19200,
    unit_id: UnitIdOption = 1,
    groups: GroupsOption = 3,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    counters: CountersOption = CounterComposition.LOW_HIGH,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
    count: Annotated[bool, typer.Option("--count", help="Read DI pulse counters instead of states")] = False,
) -> None:
    """
    Poll the board once and print the requested points.
    """
    setup_logging(verbose)
    parsed = [parse_point_or_exit(p) for p in points]
    board = create_board(host, port, serial, baudrate, unit_id, groups, timeout, retries, counters)

    async def _read() -> dict[str, Optional[int]]:
        async with board:
            if count:
                await board.poll_counters()
                return {str(p): board.get_count(p) for p in parsed}
            await board.poll_states()
            return {str(p): board.get_state(p) for p in parsed}

    values = run_command(verbose, _read)
    if json_output:
        typer.echo(json.dumps(values, indent=2))
    else:
        for name, value in values.items():
            typer.echo(f"{name}={format_value(value)}")


@app.command()
def states(
    host: HostOption = None,
    port: PortOption = 502,
    serial: SerialOption = None,
    baudrate: BaudrateOption = 19200,
    unit_id: UnitIdOption = 1,
    groups: GroupsOption = 3,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Poll the board once and print every observed DI/DO state.
    """
    setup_logging(verbose)
    board = create_board(host, port, serial, baudrate, unit_id, groups, timeout, retries)

    async def _states() -> dict[str, int]:
        async with board:
            await board.poll_states()
            return board.store.snapshot()

    values = run_command(verbose, _states)
    if json_output:
        typer.echo(json.dumps(values, indent=2))
    else:
        for name, value in values.items():
            typer.echo(f"{name}={value}")


@app.command(name="counters")
def counters_cmd(
    host: HostOption = None,
    port: PortOption = 502,
    serial: SerialOption = None,
    baudrate: BaudrateOption = 19200,
    unit_id: UnitIdOption = 1,
    groups: GroupsOption = 3,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    counters: CountersOption = CounterComposition.LOW_HIGH,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Poll the board once and print every DI pulse counter.
    """
    setup_logging(verbose)
    board = create_board(host, port, serial, baudrate, unit_id, groups, timeout, retries, counters)

    async def _counters() -> dict[str, int]:
        async with board:
            await board.poll_counters()
            return board.store.counters()

    values = run_command(verbose, _counters)
    if json_output:
        typer.echo(json.dumps(values, indent=2))
    else:
        for name, value in values.items():
            typer.echo(f"{name}={value}")


@app.command()
def write(
    point: Annotated[str, typer.Argument(help="Output point to write (e.g. DO1.1)")],
    value: Annotated[str, typer.Argument(help="Value: true/false/1/0/on/off/yes/no")],
    host: HostOption = None,
    port: PortOption = 502,
    serial: SerialOption = None,
    baudrate: BaudrateOption = 19200,
    unit_id: UnitIdOption = 1,
    groups: GroupsOption = 3,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    verbose: VerboseOption = False,
    poll_interval: Annotated[
        float, typer.Option("--poll-interval", help="State polling interval while verifying, in seconds")
    ] = 0.05,
) -> None:
    """
    Write an output and wait until the board reports the new value.

    Exits with code 5 if the write is not confirmed after all retries.
    """
    setup_logging(verbose)
    try:
        desired = parse_bool(value)
    except ValueError as e:
        typer.echo(f"Error: Invalid value: {e}", err=True)
        raise typer.Exit(2)
    parsed = parse_point_or_exit(point)
    board = create_board(host, port, serial, baudrate, unit_id, groups, timeout, retries)

    async def _write() -> int:
        async with board:
            await board.poll_states()
            poller = asyncio.create_task(board.poll_forever(poll_interval, counters=False))
            try:
                outcome = await board.write(parsed, desired)
            finally:
                poller.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await poller
            return outcome.attempts

    attempts = run_command(verbose, _write)
    typer.echo(f"OK: Wrote {parsed} = {int(desired)} ({attempts} attempt{'s' if attempts != 1 else ''})")


@app.command()
def watch(
    host: HostOption = None,
    port: PortOption = 502,
    serial: SerialOption = None,
    baudrate: BaudrateOption = 19200,
    unit_id: UnitIdOption = 1,
    groups: GroupsOption = 3,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    verbose: VerboseOption = False,
    interval: Annotated[float, typer.Option("--interval", "-i", help="Polling interval in seconds")] = 0.5,
    once: Annotated[bool, typer.Option("--once", help="Poll once, print all states and exit")] = False,
    format: Annotated[str, typer.Option("--format", "-f", help="Output format: text, json")] = "text",
) -> None:
    """
    Poll states at the given interval and print every change as it is observed.

    The first poll only establishes the baseline (printed in full with --once).
    Press Ctrl+C to stop gracefully.
    """
    setup_logging(verbose)

    if format not in ("text", "json"):
        typer.echo(f"Error: Invalid format '{format}'. Must be text or json.", err=True)
        raise typer.Exit(2)

    if interval <= 0:
        typer.echo(f"Error: Interval must be positive, got {interval}", err=True)
        raise typer.Exit(2)

    board = create_board(host, port, serial, baudrate, unit_id, groups, timeout, retries)

    def emit(point: str, new_value: str) -> None:
        timestamp = datetime.now(timezone.utc).isoformat()
        if format == "json":
            typer.echo(json.dumps({"timestamp": timestamp, "point": point, "value": int(new_value)}))
        else:
            typer.echo(f"{timestamp} {point}={new_value}")

    async def _watch() -> None:
        async with board:
            board.subscribe(emit)
            await board.poll_states()
            if once:
                for point, state in board.store.snapshot().items():
                    emit(point, str(state))
                return
            while True:
                await asyncio.sleep(interval)
                await board.poll_states()

    try:
        run_command(verbose, _watch)
    except KeyboardInterrupt:
        typer.echo("\nStopped by user", err=True)
        raise typer.Exit(0)


@app.command()
def explain(
    point: Annotated[str, typer.Argument(help="Point to explain (e.g. do1.3)")],
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show the registers and coil behind a point. Does not require a connection.
    """
    setup_logging(verbose)
    parsed = parse_point_or_exit(point)

    info: dict[str, Any] = {
        "point": str(parsed),
        "prefix": parsed.prefix.value,
        "group": parsed.group,
        "index": parsed.index,
    }
    if parsed.prefix in (PointPrefix.DI, PointPrefix.DO):
        word = 0 if parsed.prefix == PointPrefix.DI else 1
        info["state_register"] = state_address(parsed.group) + word
        info["state_bit"] = parsed.index - 1
    if parsed.prefix == PointPrefix.DO:
        info["coil"] = coil_address(parsed)
    if parsed.prefix == PointPrefix.DI:
        base = counter_address(parsed.group)
        info["counter_registers"] = None if base is None else [base + (parsed.index - 1) * 2, base + (parsed.index - 1) * 2 + 1]

    if json_output:
        typer.echo(json.dumps(info, indent=2))
    else:
        typer.echo(f"Point:           {info['point']}")
        typer.echo(f"Group:           {info['group']}")
        typer.echo(f"Index:           {info['index']}")
        if "state_register" in info:
            typer.echo(f"State register:  {info['state_register']} (bit {info['state_bit']})")
        if "coil" in info:
            typer.echo(f"Coil:            {info['coil']}")
        if "counter_registers" in info:
            regs = info["counter_registers"]
            typer.echo(f"Counter:         {'n/a' if regs is None else ','.join(str(r) for r in regs)}")


def parse_point_or_exit(raw: str) -> PointId:
    try:
        return parse_point(raw)
    except InvalidPointError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"pyneuron-modbus {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """pyneuron - I/O points of a Modbus I/O board."""
    pass


if __name__ == "__main__":
    app()
