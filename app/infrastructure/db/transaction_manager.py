from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.transaction_manager import TransactionManager


class SQLAlchemyTransactionManager(TransactionManager):
    """
    Commits the request session when the unit of work completes.

    Reads made before start() have already auto-begun a transaction, so the
    commit also closes it; any error rolls the whole unit back.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        try:
            yield
        except Exception:
            await self._session.rollback()
            raise
        await self._session.commit()
