from app.domain.entities.payee import Payee


class PayeeRepo:
    async def get_by_id(self, payee_id: str) -> Payee | None:
        raise NotImplementedError

    async def find_by_account_id(self, stripe_account_id: str) -> Payee | None:
        raise NotImplementedError

    async def save(self, payee: Payee) -> None:
        raise NotImplementedError
