"""Cálculo de IVA intracomunitario para servicios B2C/B2B."""

from decimal import Decimal

from app.application.interfaces.vat_calculator import VatCalculation, VatCalculator
from app.domain.value_objects.money import round_to_currency

# Tipos generales por país miembro (porcentaje)
EU_STANDARD_VAT_RATES: dict[str, Decimal] = {
    "AT": Decimal("20"),
    "BE": Decimal("21"),
    "BG": Decimal("20"),
    "CY": Decimal("19"),
    "CZ": Decimal("21"),
    "DE": Decimal("19"),
    "DK": Decimal("25"),
    "EE": Decimal("22"),
    "ES": Decimal("21"),
    "FI": Decimal("25.5"),
    "FR": Decimal("20"),
    "GR": Decimal("24"),
    "HR": Decimal("25"),
    "HU": Decimal("27"),
    "IE": Decimal("23"),
    "IT": Decimal("22"),
    "LT": Decimal("21"),
    "LU": Decimal("17"),
    "LV": Decimal("21"),
    "MT": Decimal("18"),
    "NL": Decimal("21"),
    "PL": Decimal("23"),
    "PT": Decimal("23"),
    "RO": Decimal("19"),
    "SE": Decimal("25"),
    "SI": Decimal("22"),
    "SK": Decimal("23"),
}

CUSTOMER_TYPE_BUSINESS = "business"


class EuVatCalculator(VatCalculator):
    """
    Reglas aplicadas:

    - Cliente fuera de la UE: sin IVA (exportación de servicios).
    - Empresa con número de IVA en otro país miembro: autoliquidación (0%).
    - Resto: tipo general del país del profesional.
    """

    def calculate(
        self,
        amount: Decimal,
        customer_country: str,
        customer_vat_number: str | None,
        payee_country: str,
        customer_type: str,
    ) -> VatCalculation:
        customer_country = customer_country.upper()
        payee_country = payee_country.upper()

        if customer_country not in EU_STANDARD_VAT_RATES:
            return VatCalculation(vat_amount=Decimal("0"), vat_rate=Decimal("0"), total=amount)

        reverse_charge = (
            customer_type == CUSTOMER_TYPE_BUSINESS
            and bool(customer_vat_number)
            and customer_country != payee_country
        )
        if reverse_charge:
            return VatCalculation(vat_amount=Decimal("0"), vat_rate=Decimal("0"), total=amount)

        rate = EU_STANDARD_VAT_RATES.get(payee_country, Decimal("0"))
        vat_amount = round_to_currency(amount * rate / Decimal(100), "EUR")
        return VatCalculation(vat_amount=vat_amount, vat_rate=rate, total=amount + vat_amount)


class ZeroVatCalculator(VatCalculator):
    """Sin IVA; útil cuando los precios ya se cotizan con impuestos incluidos."""

    def calculate(
        self,
        amount: Decimal,
        customer_country: str,
        customer_vat_number: str | None,
        payee_country: str,
        customer_type: str,
    ) -> VatCalculation:
        return VatCalculation(vat_amount=Decimal("0"), vat_rate=Decimal("0"), total=amount)
