from collections import OrderedDict

from app.application.interfaces.event_deduplicator import EventDeduplicator

DEFAULT_CAPACITY = 10_000


class InMemoryEventDeduplicator(EventDeduplicator):
    """Bounded, process-local set of processed event ids; the oldest id is evicted first."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._seen: OrderedDict[str, None] = OrderedDict()

    async def seen(self, event_id: str) -> bool:
        return event_id in self._seen

    async def mark(self, event_id: str) -> None:
        self._seen[event_id] = None
        self._seen.move_to_end(event_id)
        while len(self._seen) > self._capacity:
            self._seen.popitem(last=False)

    def __len__(self) -> int:
        return len(self._seen)
