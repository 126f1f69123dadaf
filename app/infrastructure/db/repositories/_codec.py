"""Conversión de columnas SQL a tipos de dominio."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite devuelve datetimes naive aunque la columna sea timezone-aware."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def as_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


def to_json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def parse_datetime(value: str | None) -> datetime | None:
    return as_utc(datetime.fromisoformat(value)) if value else None
