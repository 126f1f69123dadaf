from contextlib import asynccontextmanager

from app.application.interfaces.transaction_manager import TransactionManager


class NoopTransactionManager(TransactionManager):
    """In-memory stores apply each write immediately; there is nothing to roll back."""

    @asynccontextmanager
    async def start(self):
        yield
