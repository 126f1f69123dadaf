from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_use_cases
from app.api.deps import Requester, require_admin
from app.api.schemas.payments import (
    ApiResponse,
    PlatformSettingsResponse,
    UpdatePlatformSettingsRequest,
)

router = APIRouter()


@router.get(
    "/admin/platform-settings",
    response_model=ApiResponse[PlatformSettingsResponse],
    status_code=status.HTTP_200_OK,
)
async def get_platform_settings(
    admin: Requester = Depends(require_admin),
    use_cases=Depends(get_use_cases),
) -> ApiResponse[PlatformSettingsResponse]:
    record = await use_cases["get_platform_settings"].execute()
    return ApiResponse(data=PlatformSettingsResponse.from_record(record))


@router.put(
    "/admin/platform-settings",
    response_model=ApiResponse[PlatformSettingsResponse],
    status_code=status.HTTP_200_OK,
)
async def update_platform_settings(
    payload: UpdatePlatformSettingsRequest,
    admin: Requester = Depends(require_admin),
    use_cases=Depends(get_use_cases),
) -> ApiResponse[PlatformSettingsResponse]:
    record = await use_cases["update_platform_settings"].execute(
        commission_percent=payload.commission_percent,
        modified_by=admin.id,
    )
    return ApiResponse(data=PlatformSettingsResponse.from_record(record))
