"""StateStore: cached point values with change detection, DI counters, and update subscribers."""

import logging
from typing import Callable

from .errors import InvalidPointError, UnknownPointError
from .normalize import parse_point
from .types import PointId

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[str, str], None]


class StateStore:
    """
    Single source of observable truth for a board.

    Digital states are 0/1 keyed by PointId; the first observation of a point is
    stored silently, later changes notify every subscriber with (point, value)
    as strings. Counters are kept separately and never notify.
    """

    def __init__(self) -> None:
        self._state: dict[PointId, int] = {}
        self._counter: dict[PointId, int] = {}
        self._subscribers: list[UpdateCallback] = []

    def subscribe(self, callback: UpdateCallback) -> Callable[[], None]:
        """Register an update callback; returns a function that unsubscribes it."""
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: UpdateCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _emit(self, point: PointId, value: int) -> None:
        for callback in list(self._subscribers):
            try:
                callback(str(point), str(value))
            except Exception:
                logger.exception("Update subscriber %r failed for %s", callback, point)

    def set_if_changed(self, point: "PointId | str", value: "bool | int") -> bool:
        """Store a digital value; returns True if a notification was emitted."""
        point = parse_point(point)
        new = 1 if value else 0
        current = self._state.get(point)
        if current == new:
            return False
        self._state[point] = new
        if current is None:
            return False
        self._emit(point, new)
        return True

    def get(self, point: "PointId | str") -> int | None:
        """Cached 0/1 value, or None if the point was never observed."""
        return self._state.get(parse_point(point))

    def validate(self, point: "PointId | str") -> PointId:
        """Parse and check a point id; raises UnknownPointError if it was never observed."""
        parsed = parse_point(point)
        if parsed not in self._state:
            raise UnknownPointError(str(parsed))
        return parsed

    def set_count(self, point: "PointId | str", value: int) -> None:
        point = parse_point(point)
        if value < 0:
            raise ValueError(f"Counter value must be >= 0, got {value}")
        self._counter[point] = int(value)

    def get_count(self, point: "PointId | str") -> int | None:
        return self._counter.get(parse_point(point))

    def points(self) -> list[PointId]:
        return sorted(self._state, key=_sort_key)

    def snapshot(self) -> dict[str, int]:
        """Observed digital states keyed by point id text, in prefix/group/index order."""
        return {str(p): self._state[p] for p in self.points()}

    def counters(self) -> dict[str, int]:
        return {str(p): self._counter[p] for p in sorted(self._counter, key=_sort_key)}

    def __contains__(self, point: object) -> bool:
        if not isinstance(point, (str, PointId)):
            return False
        try:
            return parse_point(point) in self._state
        except InvalidPointError:
            return False

    def __len__(self) -> int:
        return len(self._state)


def _sort_key(point: PointId) -> tuple[str, int, int]:
    return point.prefix.value, point.group, point.index
