"""Fixed register/coil layout of a board: where capabilities, states, counters and coils live."""

from .types import PointId

# Each group occupies a block of 100 registers / coils.
GROUP_STRIDE = 100

# Two-register capability read: group 1 at 1001, group 2 at 1101, ...
CAPABILITY_BASE = 1001
CAPABILITY_COUNT = 2

# DI word + DO word at the start of each group block.
STATE_COUNT = 2

# DI counter bases per group slot. Protocol constants, not derivable from the stride.
COUNTER_BASES: tuple[int, ...] = (8, 103, 203)


def capability_address(group: int) -> int:
    """Register holding the capability words of a 1-based group."""
    return CAPABILITY_BASE + (group - 1) * GROUP_STRIDE


def state_address(group: int) -> int:
    """First register of the DI/DO state words of a 1-based group."""
    return (group - 1) * GROUP_STRIDE


def counter_address(group: int) -> int | None:
    """First DI counter register of a 1-based group, or None if the board layout has none."""
    if 1 <= group <= len(COUNTER_BASES):
        return COUNTER_BASES[group - 1]
    return None


def coil_address(point: PointId) -> int:
    """Flat coil index for a point."""
    return (point.group - 1) * GROUP_STRIDE + (point.index - 1)
