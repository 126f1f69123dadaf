from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class VatCalculation:
    vat_amount: Decimal
    vat_rate: Decimal
    total: Decimal


class VatCalculator:
    """Port to the VAT collaborator; implementations must be pure."""

    def calculate(
        self,
        amount: Decimal,
        customer_country: str,
        customer_vat_number: str | None,
        payee_country: str,
        customer_type: str,
    ) -> VatCalculation:
        raise NotImplementedError
