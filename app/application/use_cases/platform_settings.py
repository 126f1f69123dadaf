import logging
from decimal import Decimal, InvalidOperation

from app.application.interfaces.clock import Clock
from app.application.interfaces.platform_settings_repo import (
    PlatformSettingsRecord,
    PlatformSettingsRepo,
)
from app.application.interfaces.transaction_manager import TransactionManager
from app.domain.errors import InvalidAmountError

_MIN_PERCENT = Decimal("0")
_MAX_PERCENT = Decimal("100")


def _to_decimal(value: float | int | str | Decimal | None) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def clamp_commission_percent(value: Decimal) -> Decimal:
    return min(max(value, _MIN_PERCENT), _MAX_PERCENT)


class GetPlatformSettingsUseCase:
    """Returns the platform settings, seeding them from configuration on first read."""

    def __init__(
        self,
        settings_repo: PlatformSettingsRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
        default_commission_percent: float,
    ) -> None:
        self._settings_repo = settings_repo
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._default_commission_percent = default_commission_percent
        self._logger = logging.getLogger(__name__)

    async def execute(self) -> PlatformSettingsRecord:
        current = await self._settings_repo.get()
        if current is not None:
            return current

        seed = _to_decimal(self._default_commission_percent)
        if seed is None:
            self._logger.warning(
                "Configured platform commission is not a finite number, using 0",
                extra={"configured_value": str(self._default_commission_percent)},
            )
            seed = Decimal("0")
        record = PlatformSettingsRecord(
            commission_percent=clamp_commission_percent(seed),
            last_modified=self._clock.now(),
            version=1,
        )
        async with self._transaction_manager.start():
            await self._settings_repo.save(record)
        self._logger.info(
            "Platform settings initialized",
            extra={"commission_percent": str(record.commission_percent)},
        )
        return record


class UpdatePlatformSettingsUseCase:
    def __init__(
        self,
        settings_repo: PlatformSettingsRepo,
        get_settings: GetPlatformSettingsUseCase,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._settings_repo = settings_repo
        self._transaction_manager = transaction_manager
        self._get_settings = get_settings
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        commission_percent: float | int | str | Decimal | None,
        modified_by: str,
    ) -> PlatformSettingsRecord:
        value = _to_decimal(commission_percent)
        if value is None:
            raise InvalidAmountError("Commission percent must be a finite number")
        if value < _MIN_PERCENT or value > _MAX_PERCENT:
            raise InvalidAmountError("Commission percent must be between 0 and 100")

        current = await self._get_settings.execute()
        updated = PlatformSettingsRecord(
            commission_percent=clamp_commission_percent(value),
            last_modified=self._clock.now(),
            version=current.version + 1,
            last_modified_by=modified_by,
        )
        async with self._transaction_manager.start():
            await self._settings_repo.save(updated)
        self._logger.info(
            "Platform commission updated",
            extra={
                "previous_percent": str(current.commission_percent),
                "commission_percent": str(updated.commission_percent),
                "modified_by": modified_by,
                "version": updated.version,
            },
        )
        return updated
