from dataclasses import dataclass

from fastapi import Depends, Header

from app.config import get_settings
from app.domain.constants import ROLE_ADMIN
from app.domain.errors import AuthenticationRequiredError, UnauthorizedError
from app.infrastructure.db.engine import build_engine, build_sessionmaker

settings = get_settings()

engine = build_engine(settings)
AsyncSessionLocal = build_sessionmaker(engine)


@dataclass(frozen=True)
class Requester:
    """Identity forwarded by the authentication layer in front of this service."""

    id: str
    role: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


async def get_requester(
    user_id: str | None = Header(default=None, alias="X-User-Id"),
    user_role: str | None = Header(default=None, alias="X-User-Role"),
) -> Requester:
    if not user_id:
        raise AuthenticationRequiredError()
    return Requester(id=user_id, role=user_role)


async def require_admin(requester: Requester = Depends(get_requester)) -> Requester:
    if not requester.is_admin:
        raise UnauthorizedError("Administrator access required")
    return requester
