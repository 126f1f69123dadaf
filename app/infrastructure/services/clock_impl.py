"""Reloj del sistema usado por los coordinadores de pago."""

import time
from datetime import datetime, timezone

from app.application.interfaces.clock import Clock


class ClockImpl(Clock):
    """Sella los timestamps del ledger en UTC con el reloj del proceso."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def timestamp_ms(self) -> int:
        return time.time_ns() // 1_000_000
