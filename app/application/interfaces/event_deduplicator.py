class EventDeduplicator:
    """
    Fast-path guard against re-delivered webhook events.

    Implementations may be process-local or backed by a shared store; handlers
    must stay idempotent either way.
    """

    async def seen(self, event_id: str) -> bool:
        raise NotImplementedError

    async def mark(self, event_id: str) -> None:
        raise NotImplementedError
