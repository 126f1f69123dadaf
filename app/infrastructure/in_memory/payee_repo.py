"""Implementación in-memory del repositorio de profesionales."""

import copy

from app.application.interfaces.payee_repo import PayeeRepo
from app.domain.entities.payee import Payee


class InMemoryPayeeRepo(PayeeRepo):
    def __init__(self) -> None:
        self._payees: dict[str, Payee] = {}

    async def get_by_id(self, payee_id: str) -> Payee | None:
        payee = self._payees.get(payee_id)
        return copy.deepcopy(payee) if payee else None

    async def find_by_account_id(self, stripe_account_id: str) -> Payee | None:
        for payee in self._payees.values():
            if payee.stripe.account_id == stripe_account_id:
                return copy.deepcopy(payee)
        return None

    async def save(self, payee: Payee) -> None:
        self._payees[payee.id] = copy.deepcopy(payee)
