from fastapi import APIRouter, Header, status
from typing_extensions import Annotated

from app.core.config import SettingsDep
from app.core.deadline import with_deadline
from app.core.errors import AuthenticationError
from app.dependencies import AuthServiceDep, parse_token
from app.models import SignIn, SignUp

router = APIRouter(tags=["auth"])


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def sign_up(data: SignUp, auth: AuthServiceDep, settings: SettingsDep):
    await with_deadline(auth.sign_up(data), settings.auth_timeout_seconds)
    return {"message": "User registered successfully"}


@router.post("/signin")
async def sign_in(data: SignIn, auth: AuthServiceDep, settings: SettingsDep):
    token = await with_deadline(auth.sign_in(data), settings.auth_timeout_seconds)
    return {"message": "User signed in", "token": token}


@router.post("/refresh")
async def refresh(
    auth: AuthServiceDep,
    settings: SettingsDep,
    authorization: Annotated[str | None, Header()] = None,
):
    token = parse_token(authorization)
    if token is None:
        raise AuthenticationError("No active session")
    new_token = await with_deadline(auth.refresh(token), settings.update_timeout_seconds)
    return {"message": "Session refreshed", "new_token": new_token}
