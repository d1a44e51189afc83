from fastapi import Depends, Header, Request
from typing_extensions import Annotated

from app.core.config import SettingsDep
from app.core.deadline import with_deadline
from app.core.errors import PermissionDeniedError
from app.services.auth_service import AuthService
from app.services.task_service import TaskService


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def parse_token(authorization: str | None) -> str | None:
    """Accept ``Bearer <token>`` or a bare token."""
    if not authorization:
        return None
    scheme, _, rest = authorization.strip().partition(" ")
    if scheme.lower() == "bearer":
        return rest.strip() or None
    return authorization.strip()


async def get_current_owner(
    auth: AuthServiceDep,
    settings: SettingsDep,
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    token = parse_token(authorization)
    if token is None:
        raise PermissionDeniedError("No session token provided")
    return await with_deadline(auth.authenticate(token), settings.auth_timeout_seconds)


CurrentOwner = Annotated[str, Depends(get_current_owner)]
