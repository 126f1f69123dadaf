from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.platform_settings_repo import (
    PlatformSettingsRecord,
    PlatformSettingsRepo,
)
from app.infrastructure.db.repositories._codec import as_decimal, as_utc
from app.infrastructure.db.tables import platform_settings

# Única fila de configuración
SETTINGS_ROW_ID = 1


class PlatformSettingsRepoSQL(PlatformSettingsRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self) -> PlatformSettingsRecord | None:
        result = await self._session.execute(
            select(platform_settings).where(platform_settings.c.id == SETTINGS_ROW_ID)
        )
        row = result.first()
        if not row:
            return None
        return PlatformSettingsRecord(
            commission_percent=as_decimal(row.commission_percent),
            last_modified=as_utc(row.last_modified),
            version=row.version,
            last_modified_by=row.last_modified_by,
        )

    async def save(self, settings: PlatformSettingsRecord) -> None:
        values = {
            "commission_percent": settings.commission_percent,
            "last_modified": settings.last_modified,
            "last_modified_by": settings.last_modified_by,
            "version": settings.version,
        }
        exists = await self._session.execute(
            select(platform_settings.c.id).where(platform_settings.c.id == SETTINGS_ROW_ID)
        )
        if exists.first():
            await self._session.execute(
                update(platform_settings).where(platform_settings.c.id == SETTINGS_ROW_ID).values(**values)
            )
        else:
            await self._session.execute(insert(platform_settings).values(id=SETTINGS_ROW_ID, **values))
