"""Poll engine: read DI/DO state words and DI counters for every discovered group into the StateStore."""

import asyncio
import logging
from collections import defaultdict
from typing import Sequence

from .addressing import STATE_COUNT, counter_address, state_address
from .codec import WORD_BITS, combine_counter, decode_bits
from .errors import ModbusIOError
from .state import StateStore
from .transport import Transport
from .types import CounterComposition, GroupCapability, PointId, PointPrefix

logger = logging.getLogger(__name__)


class _Sequencer:
    """Monotonic request numbering per group; rejects responses older than the newest applied."""

    def __init__(self) -> None:
        self._issued: dict[int, int] = defaultdict(int)
        self._applied: dict[int, int] = defaultdict(int)

    def issue(self, group: int) -> int:
        self._issued[group] += 1
        return self._issued[group]

    def accept(self, group: int, seq: int) -> bool:
        if seq <= self._applied[group]:
            return False
        self._applied[group] = seq
        return True


class Poller:
    """
    Reads state and counter registers on demand. Scheduling is the caller's job:
    poll_states() and poll_counters() are independent and may overlap.
    """

    def __init__(
        self,
        transport: Transport,
        store: StateStore,
        counter_composition: CounterComposition = CounterComposition.LOW_HIGH,
    ) -> None:
        self._transport = transport
        self._store = store
        self._composition = counter_composition
        self._state_seq = _Sequencer()
        self._counter_seq = _Sequencer()
        self._clamped: set[tuple[PointPrefix, int]] = set()

    def store_state(self, prefix: PointPrefix, group: int, word: int, length: int) -> None:
        """Decode the first `length` bits of a word into <prefix><group>.<n> points."""
        if length > WORD_BITS:
            if (prefix, group) not in self._clamped:
                self._clamped.add((prefix, group))
                logger.warning(
                    "Group %d reports %d %s points but one state word holds %d; decoding the first %d",
                    group,
                    length,
                    prefix.value,
                    WORD_BITS,
                    WORD_BITS,
                )
            length = WORD_BITS
        for i, bit in enumerate(decode_bits(word, length)):
            self._store.set_if_changed(PointId(prefix, group, i + 1), bit)

    async def _poll_group_states(self, cap: GroupCapability) -> bool:
        address = state_address(cap.group)
        seq = self._state_seq.issue(cap.group)
        try:
            words = await self._transport.read_registers(address, STATE_COUNT)
        except ModbusIOError as e:
            logger.error("State read for group %d failed at %d: %s", cap.group, address, e.describe())
            return False
        if not self._state_seq.accept(cap.group, seq):
            logger.debug("Dropping stale state response for group %d (seq %d)", cap.group, seq)
            return False
        self.store_state(PointPrefix.DI, cap.group, words[0], cap.di)
        self.store_state(PointPrefix.DO, cap.group, words[1], cap.do)
        return True

    async def _poll_group_counters(self, cap: GroupCapability) -> bool:
        if cap.di == 0:
            return False
        address = counter_address(cap.group)
        if address is None:
            logger.warning("No counter registers known for group %d; skipping", cap.group)
            return False
        count = cap.di * 2
        seq = self._counter_seq.issue(cap.group)
        try:
            words = await self._transport.read_registers(address, count)
        except ModbusIOError as e:
            logger.error("Counter read for group %d failed at %d: %s", cap.group, address, e.describe())
            return False
        if not self._counter_seq.accept(cap.group, seq):
            logger.debug("Dropping stale counter response for group %d (seq %d)", cap.group, seq)
            return False
        for j in range(cap.di):
            value = combine_counter(words[j * 2], words[j * 2 + 1], self._composition)
            self._store.set_count(PointId(PointPrefix.DI, cap.group, j + 1), value)
        return True

    async def poll_states(self, groups: Sequence[GroupCapability | None]) -> int:
        """Refresh DI/DO states of every discovered group; returns how many groups were applied."""
        results = await asyncio.gather(*(self._poll_group_states(cap) for cap in groups if cap is not None))
        return sum(results)

    async def poll_counters(self, groups: Sequence[GroupCapability | None]) -> int:
        """Refresh DI pulse counters of every discovered group; returns how many groups were applied."""
        results = await asyncio.gather(*(self._poll_group_counters(cap) for cap in groups if cap is not None))
        return sum(results)
