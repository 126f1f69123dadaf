from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol


class TransactionManager(Protocol):
    """Unit of work around a single ledger commit (ledger row + booking projection)."""

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        yield
