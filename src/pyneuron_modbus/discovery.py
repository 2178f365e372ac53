"""Capability discovery: learn each group's DI/DO/AI/AO/serial counts from its capability registers."""

import asyncio
import logging

from .addressing import CAPABILITY_COUNT, capability_address
from .codec import split_capability, split_extension
from .errors import ModbusIOError
from .transport import Transport
from .types import GroupCapability

logger = logging.getLogger(__name__)


def decode_capability(group: int, words: list[int]) -> GroupCapability:
    """Build a GroupCapability from the two capability words of a 1-based group."""
    di, do = split_capability(words[0])
    serial, ai, ao = split_extension(words[1])
    return GroupCapability(group=group, di=di, do=do, ai=ai, ao=ao, serial=serial)


async def discover_groups(transport: Transport, group_count: int) -> list[GroupCapability | None]:
    """
    Read the capability registers of every group concurrently.

    Returns one slot per group in group order. A group whose read failed is left
    as None (logged) so the rest of the board stays usable.
    """
    slots: list[GroupCapability | None] = [None] * group_count

    async def _discover(i: int) -> None:
        address = capability_address(i + 1)
        try:
            words = await transport.read_registers(address, CAPABILITY_COUNT)
        except ModbusIOError as e:
            logger.error("Capability read for group %d failed at %d: %s", i + 1, address, e.describe())
            return
        slots[i] = decode_capability(i + 1, words)
        logger.debug("Group %d capability: %s", i + 1, slots[i])

    await asyncio.gather(*(_discover(i) for i in range(group_count)))
    return slots
