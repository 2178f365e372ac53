"""Write supervisor: coil writes confirmed against the next polled state, retried with linear backoff."""

import asyncio
import logging

from .addressing import coil_address
from .errors import InvalidPointError, ModbusIOError
from .state import StateStore
from .transport import Transport
from .types import PointId, PointPrefix, WriteOutcome, WriteState

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY = 0.1
DEFAULT_MAX_RETRIES = 5


def verification_delay(retries: int, base: float = DEFAULT_RETRY_DELAY) -> float:
    """Seconds to wait before verifying attempt number `retries` (0-based): base, 2*base, ..."""
    return base * (retries + 1)


class PendingWrite:
    """
    One verified write, advanced SENT -> AWAITING_VERIFICATION -> (CONVERGED | SENT ...) -> EXHAUSTED.

    Success means the StateStore, refreshed by an independent poll, reports the
    desired value. The coil write itself is fire-and-forget; a transport failure
    is logged and left for the next verification to catch.
    """

    def __init__(
        self,
        transport: Transport,
        store: StateStore,
        point: PointId,
        value: bool,
        *,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self._transport = transport
        self._store = store
        self.point = point
        self.value = bool(value)
        self.address = coil_address(point)
        self.state = WriteState.SENT
        self.retries = 0
        self.attempts = 0
        self._retry_delay = retry_delay
        self._max_retries = max_retries
        self._sends: list[asyncio.Task[None]] = []

    async def _write(self) -> None:
        try:
            await self._transport.write_coil(self.address, self.value)
        except ModbusIOError as e:
            logger.error("Coil write %s (coil %d) failed: %s", self.point, self.address, e.describe())

    def _send(self) -> None:
        self.attempts += 1
        self.state = WriteState.SENT
        self._sends.append(asyncio.ensure_future(self._write()))

    def _observed(self) -> int | None:
        return self._store.get(self.point)

    def _outcome(self) -> WriteOutcome:
        return WriteOutcome(
            point=self.point,
            value=self.value,
            state=self.state,
            attempts=self.attempts,
            observed=self._observed(),
        )

    async def run(self) -> WriteOutcome:
        self._send()
        while self.retries < self._max_retries:
            self.state = WriteState.AWAITING_VERIFICATION
            await asyncio.sleep(verification_delay(self.retries, self._retry_delay))
            if self._observed() == int(self.value):
                self.state = WriteState.CONVERGED
                break
            self.retries += 1
            logger.warning("Retry (%d) write %s=%d", self.retries, self.point, int(self.value))
            self._send()
        await asyncio.gather(*self._sends)
        if self.state != WriteState.CONVERGED:
            # The last write gets no verification wait, only a check once it has been sent.
            if self._observed() == int(self.value):
                self.state = WriteState.CONVERGED
            else:
                self.state = WriteState.EXHAUSTED
                logger.warning(
                    "Write %s=%d not confirmed after %d attempts (observed %r)",
                    self.point,
                    int(self.value),
                    self.attempts,
                    self._observed(),
                )
        return self._outcome()


class WriteSupervisor:
    """Starts verified writes and keeps their tasks alive until they finish. No cancellation, no per-point locking."""

    def __init__(
        self,
        transport: Transport,
        store: StateStore,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self._transport = transport
        self._store = store
        self._retry_delay = retry_delay
        self._max_retries = max_retries
        self._tasks: set[asyncio.Task[WriteOutcome]] = set()

    def set_point(self, point: "PointId | str", value: bool) -> "asyncio.Task[WriteOutcome]":
        """
        Validate the point and start a verified write. Must be called from a running event loop.

        Raises InvalidPointError / UnknownPointError synchronously; the returned task
        resolves to the WriteOutcome.
        """
        parsed = self._store.validate(point)
        if parsed.prefix != PointPrefix.DO:
            raise InvalidPointError(str(parsed), f"Point {parsed} is not a writable output")
        pending = PendingWrite(
            self._transport,
            self._store,
            parsed,
            value,
            retry_delay=self._retry_delay,
            max_retries=self._max_retries,
        )
        task = asyncio.get_running_loop().create_task(pending.run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait for every in-flight write to reach a terminal state."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
