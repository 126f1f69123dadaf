from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class PlatformSettingsRecord:
    commission_percent: Decimal
    last_modified: datetime
    version: int = 1
    last_modified_by: str | None = None


class PlatformSettingsRepo:
    async def get(self) -> PlatformSettingsRecord | None:
        raise NotImplementedError

    async def save(self, settings: PlatformSettingsRecord) -> None:
        raise NotImplementedError
