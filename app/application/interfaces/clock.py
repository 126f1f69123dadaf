"""Interface Clock - Puerto para abstracción de tiempo."""

from datetime import datetime, timedelta, timezone


class Clock:
    """
    Puerto para abstracción del tiempo del sistema.

    Los coordinadores sellan captured_at, transferred_at, refunded_at, etc.
    con este reloj; en pruebas se inyecta FakeClock.
    """

    def now(self) -> datetime:
        """Fecha/hora actual (timezone-aware UTC)."""
        raise NotImplementedError

    def timestamp_ms(self) -> int:
        """Milisegundos Unix, usados en llaves de idempotencia de reembolsos."""
        return int(self.now().timestamp() * 1000)


class FakeClock(Clock):
    """Reloj fijo para pruebas deterministas."""

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._fixed_time

    def advance(self, seconds: int = 0, minutes: int = 0, hours: int = 0, days: int = 0) -> None:
        self._fixed_time += timedelta(seconds=seconds, minutes=minutes, hours=hours, days=days)
