"""Request-scoped dependencies: injected services and the session gate.

All dependencies are ``async def`` so storage is only touched from the event
loop thread, never from FastAPI's threadpool.
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status

from chatrelay.core.config import Settings
from chatrelay.models.user import User, UserSession
from chatrelay.services.relay.base import BaseRelayClient
from chatrelay.services.storage import Storage


@dataclass
class AuthContext:
    user: User
    login: UserSession
    token: str


async def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_storage(request: Request) -> Storage:
    return request.app.state.storage


async def get_relay(request: Request) -> BaseRelayClient:
    return request.app.state.relay_client


async def get_optional_auth(
    request: Request,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> AuthContext | None:
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        return None
    login = storage.get_session(token)
    if not login:
        return None
    user = storage.get_user(login.user_id)
    if not user:
        return None
    return AuthContext(user=user, login=login, token=token)


async def get_auth(auth: AuthContext | None = Depends(get_optional_auth)) -> AuthContext:
    if auth is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return auth


async def get_current_user(auth: AuthContext = Depends(get_auth)) -> User:
    return auth.user


async def get_optional_user(auth: AuthContext | None = Depends(get_optional_auth)) -> User | None:
    return auth.user if auth else None


async def require_admin(auth: AuthContext = Depends(get_auth)) -> AuthContext:
    if not auth.login.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return auth
