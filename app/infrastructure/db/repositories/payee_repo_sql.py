from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.payee_repo import PayeeRepo
from app.domain.entities.payee import ConnectedAccount, Payee
from app.infrastructure.db.tables import payees


class PayeeRepoSQL(PayeeRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _to_entity(self, row) -> Payee:
        return Payee(
            id=row.id,
            preferred_currency=row.preferred_currency,
            business_country=row.business_country,
            stripe=ConnectedAccount(
                account_id=row.stripe_account_id,
                onboarding_completed=row.onboarding_completed,
                charges_enabled=row.charges_enabled,
                payouts_enabled=row.payouts_enabled,
                details_submitted=row.details_submitted,
                account_status=row.account_status,
            ),
        )

    async def get_by_id(self, payee_id: str) -> Payee | None:
        result = await self._session.execute(select(payees).where(payees.c.id == payee_id))
        row = result.first()
        return self._to_entity(row) if row else None

    async def find_by_account_id(self, stripe_account_id: str) -> Payee | None:
        result = await self._session.execute(
            select(payees).where(payees.c.stripe_account_id == stripe_account_id)
        )
        row = result.first()
        return self._to_entity(row) if row else None

    async def save(self, payee: Payee) -> None:
        values = {
            "preferred_currency": payee.preferred_currency,
            "business_country": payee.business_country,
            "stripe_account_id": payee.stripe.account_id,
            "onboarding_completed": payee.stripe.onboarding_completed,
            "charges_enabled": payee.stripe.charges_enabled,
            "payouts_enabled": payee.stripe.payouts_enabled,
            "details_submitted": payee.stripe.details_submitted,
            "account_status": payee.stripe.account_status,
        }
        exists = await self._session.execute(select(payees.c.id).where(payees.c.id == payee.id))
        if exists.first():
            await self._session.execute(update(payees).where(payees.c.id == payee.id).values(**values))
        else:
            await self._session.execute(insert(payees).values(id=payee.id, **values))
