from dataclasses import replace

from app.application.interfaces.platform_settings_repo import (
    PlatformSettingsRecord,
    PlatformSettingsRepo,
)


class InMemoryPlatformSettingsRepo(PlatformSettingsRepo):
    def __init__(self) -> None:
        self._settings: PlatformSettingsRecord | None = None

    async def get(self) -> PlatformSettingsRecord | None:
        return replace(self._settings) if self._settings else None

    async def save(self, settings: PlatformSettingsRecord) -> None:
        self._settings = replace(settings)
