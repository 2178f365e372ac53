"""Board: one Modbus unit seen as named, change-tracked I/O points."""

import asyncio
import logging
from typing import Any, Callable

from .discovery import discover_groups
from .errors import WriteNotConvergedError
from .poller import Poller
from .state import StateStore, UpdateCallback
from .transport import Transport
from .types import CounterComposition, GroupCapability, PointId, WriteOutcome
from .writer import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY, WriteSupervisor

logger = logging.getLogger(__name__)


class Board:
    """
    Logical view of one board: discovers its groups, polls states and counters
    into a StateStore, and writes outputs with read-back verification.

    Polling is on demand; call poll_states()/poll_counters() from your own
    scheduler or use poll_forever().
    """

    def __init__(
        self,
        transport: Transport,
        unit_id: int = 1,
        groups: int = 3,
        counter_composition: CounterComposition = CounterComposition.LOW_HIGH,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        if groups < 1:
            raise ValueError(f"groups must be >= 1, got {groups}")
        self._transport = transport
        self._unit_id = unit_id
        self._group_count = groups
        self._groups: tuple[GroupCapability | None, ...] = ()
        self._store = StateStore()
        self._poller = Poller(transport, self._store, counter_composition)
        self._writer = WriteSupervisor(transport, self._store, retry_delay, max_retries)

    @property
    def unit_id(self) -> int:
        return self._unit_id

    @property
    def groups(self) -> tuple[GroupCapability | None, ...]:
        """Discovered capability per group slot; None where discovery failed."""
        return self._groups

    @property
    def store(self) -> StateStore:
        return self._store

    async def start(self) -> None:
        """Connect, select the unit, and discover group capabilities."""
        await self._transport.connect()
        self._transport.set_unit(self._unit_id)
        await self.discover()

    async def discover(self) -> tuple[GroupCapability | None, ...]:
        self._groups = tuple(await discover_groups(self._transport, self._group_count))
        found = sum(1 for g in self._groups if g is not None)
        logger.debug("Unit %d: %d/%d groups discovered", self._unit_id, found, self._group_count)
        return self._groups

    async def poll_states(self) -> int:
        return await self._poller.poll_states(self._groups)

    async def poll_counters(self) -> int:
        return await self._poller.poll_counters(self._groups)

    async def poll_forever(self, interval: float, counters: bool = True) -> None:
        """Poll states (and counters) every `interval` seconds until cancelled."""
        while True:
            await self.poll_states()
            if counters:
                await self.poll_counters()
            await asyncio.sleep(interval)

    def get_state(self, point: "PointId | str") -> int | None:
        return self._store.get(point)

    def get_count(self, point: "PointId | str") -> int | None:
        return self._store.get_count(point)

    def validate(self, point: "PointId | str") -> PointId:
        return self._store.validate(point)

    def subscribe(self, callback: UpdateCallback) -> Callable[[], None]:
        """Receive update(point, value) notifications as strings, e.g. ('DO1.1', '1')."""
        return self._store.subscribe(callback)

    def set_point(self, point: "PointId | str", value: bool) -> "asyncio.Task[WriteOutcome]":
        """Start a verified write; see WriteSupervisor.set_point."""
        return self._writer.set_point(point, value)

    async def write(self, point: "PointId | str", value: bool) -> WriteOutcome:
        """Verified write that raises WriteNotConvergedError if the board never reports the value."""
        outcome = await self.set_point(point, value)
        if not outcome.converged:
            raise WriteNotConvergedError(outcome)
        return outcome

    async def close(self) -> None:
        await self._writer.wait_idle()
        self._transport.close()

    async def __aenter__(self) -> "Board":
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
