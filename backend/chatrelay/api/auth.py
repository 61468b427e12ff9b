"""Account registration, login/logout and the current-user check."""

import asyncio
import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from chatrelay.api.deps import AuthContext, get_current_user, get_optional_auth, get_settings, get_storage
from chatrelay.core.config import Settings
from chatrelay.core.security import dummy_hash, hash_password, verify_password
from chatrelay.models.activity import LogAction
from chatrelay.models.user import User
from chatrelay.services.storage import Storage, UsernameTakenError

router = APIRouter()
logger = logging.getLogger(__name__)


class Credentials(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=256)


def _start_session(response: Response, user: User, storage: Storage, settings: Settings) -> None:
    # The session record is committed before the cookie goes out, so the
    # client's next request always finds it.
    ttl = timedelta(seconds=settings.session_ttl_seconds)
    token = storage.create_session(user.id, ttl)
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
    )


@router.post("/register")
async def register(
    body: Credentials,
    response: Response,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    if storage.get_user_by_username(body.username):
        storage.append_log("warn", "Registration rejected: username exists", username=body.username, action=LogAction.REGISTER)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")

    # bcrypt is CPU-bound; keep it off the event loop
    password_hash = await asyncio.to_thread(hash_password, body.password, settings.bcrypt_rounds)
    try:
        user = storage.create_user(body.username, password_hash)
    except UsernameTakenError:
        storage.append_log("warn", "Registration rejected: username exists", username=body.username, action=LogAction.REGISTER)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")

    _start_session(response, user, storage, settings)
    storage.append_log("info", "User registered", {"username": user.username}, user.id, user.username, LogAction.REGISTER)
    logger.debug(f"Registered user {user.id}")
    return {"user": user.to_public()}


@router.post("/login")
async def login(
    body: Credentials,
    response: Response,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    user = storage.get_user_by_username(body.username)
    # Unknown usernames still pay for a bcrypt check
    if user:
        stored_hash = user.password
    else:
        stored_hash = await asyncio.to_thread(dummy_hash, settings.bcrypt_rounds)
    valid = await asyncio.to_thread(verify_password, body.password, stored_hash)
    if not user or not valid:
        storage.append_log("error", "Login failed: invalid credentials", username=body.username, action=LogAction.LOGIN)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    _start_session(response, user, storage, settings)
    storage.append_log("info", "User logged in", {"username": user.username}, user.id, user.username, LogAction.LOGIN)
    return {"user": user.to_public()}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    auth: AuthContext | None = Depends(get_optional_auth),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        storage.delete_session(token)
    response.delete_cookie(settings.session_cookie_name, httponly=True, samesite="strict")
    if auth:
        storage.append_log("info", "User logged out", user_id=auth.user.id, username=auth.user.username, action=LogAction.LOGOUT)
    return {"success": True}


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return {"user": user.to_public()}
