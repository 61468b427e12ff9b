"""Admin role, relay configuration and diagnostics.

Admin is a flag on a verified login session, unlocked with the server-side
admin password. Reading the relay URL and model is open to any signed-in user;
changing them and reading the activity log needs the admin flag.
"""

from typing import Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator

from chatrelay.api.deps import AuthContext, get_auth, get_relay, get_settings, get_storage, require_admin
from chatrelay.core.config import Settings
from chatrelay.core.security import check_shared_secret
from chatrelay.models.activity import LogAction
from chatrelay.models.setting import AI_MODEL_KEY, RELAY_URL_KEY
from chatrelay.services.relay.base import BaseRelayClient
from chatrelay.services.relay.ollama import redact_url
from chatrelay.services.relay.service import resolve_model, resolve_target_url
from chatrelay.services.storage import Storage

router = APIRouter()


def _validate_http_url(value: str) -> str:
    value = value.strip()
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("must be an http(s) URL")
    return value.rstrip("/")


class AdminLogin(BaseModel):
    password: str


class RelayUrlUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    relay_url: str = Field(alias="relayUrl")

    @field_validator("relay_url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        return _validate_http_url(v)


class ModelUpdate(BaseModel):
    model: str = Field(min_length=1, max_length=200)


class RelayCheck(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_url: Optional[str] = Field(default=None, alias="targetUrl")

    @field_validator("target_url")
    @classmethod
    def _check_url(cls, v: Optional[str]) -> Optional[str]:
        return _validate_http_url(v) if v else None


def _attribution(auth: AuthContext, action: LogAction) -> dict:
    return {"user_id": auth.user.id, "username": auth.user.username, "action": action}


# --- Admin role ---

@router.post("/admin/login")
async def admin_login(
    body: AdminLogin,
    auth: AuthContext = Depends(get_auth),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    if not check_shared_secret(body.password, settings.admin_password):
        storage.append_log("warn", "Admin login failed", **_attribution(auth, LogAction.ADMIN_LOGIN))
        raise HTTPException(status_code=403, detail="Invalid admin password")

    storage.set_session_admin(auth.token, True)
    storage.append_log("info", "Admin access granted", **_attribution(auth, LogAction.ADMIN_LOGIN))
    return {"is_admin": True}


@router.post("/admin/logout")
async def admin_logout(auth: AuthContext = Depends(get_auth), storage: Storage = Depends(get_storage)):
    storage.set_session_admin(auth.token, False)
    return {"is_admin": False}


# --- Relay configuration ---

@router.get("/settings/relay-url")
async def get_relay_url(
    auth: AuthContext = Depends(get_auth),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    return {"relay_url": resolve_target_url(storage, settings)}


@router.post("/settings/relay-url")
async def set_relay_url(
    body: RelayUrlUpdate,
    auth: AuthContext = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    storage.upsert_setting(RELAY_URL_KEY, body.relay_url)
    storage.append_log("info", "Relay URL changed", {"new_url": redact_url(body.relay_url)}, **_attribution(auth, LogAction.CHANGE_RELAY_URL))
    return {"success": True, "relay_url": body.relay_url}


@router.get("/admin/model")
async def get_model(
    auth: AuthContext = Depends(get_auth),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    return {"model": resolve_model(storage, settings)}


@router.post("/admin/model")
async def set_model(
    body: ModelUpdate,
    auth: AuthContext = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    model = body.model.strip()
    if not model:
        raise HTTPException(status_code=400, detail="Model is required")
    storage.upsert_setting(AI_MODEL_KEY, model)
    storage.append_log("info", "AI model changed", {"new_model": model}, **_attribution(auth, LogAction.CHANGE_AI_MODEL))
    return {"model": model}


@router.post("/admin/relay/check")
async def check_relay(
    body: RelayCheck | None = None,
    auth: AuthContext = Depends(require_admin),
    storage: Storage = Depends(get_storage),
    relay: BaseRelayClient = Depends(get_relay),
    settings: Settings = Depends(get_settings),
):
    """Probe the relay target so admins can tell a dead tunnel from a bad model."""
    target_url = resolve_target_url(storage, settings, body.target_url if body else None)
    result = await relay.probe(target_url)
    if result.reachable:
        storage.append_log(
            "info", "Relay check completed", {"target_url": redact_url(target_url), "status": result.status},
            **_attribution(auth, LogAction.RELAY_CHECK),
        )
    else:
        storage.append_log(
            "error", "Relay check failed", {"target_url": redact_url(target_url), "error": result.error},
            **_attribution(auth, LogAction.RELAY_CHECK),
        )
    return {"target_url": target_url, "reachable": result.reachable, "status": result.status, "error": result.error}


# --- Diagnostics ---

def _clamp_limit(limit: int, settings: Settings) -> int:
    return max(1, min(limit, settings.log_capacity))


def _ensure_diagnostics(settings: Settings) -> None:
    if not settings.diagnostics_enabled:
        raise HTTPException(status_code=404, detail="Not found")


@router.get("/logs")
async def get_logs(
    limit: int = 50,
    auth: AuthContext = Depends(require_admin),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    _ensure_diagnostics(settings)
    logs = storage.recent_logs(_clamp_limit(limit, settings))
    return {"logs": [entry.model_dump(mode="json") for entry in logs]}


@router.get("/errors")
async def get_errors(
    limit: int = 50,
    auth: AuthContext = Depends(require_admin),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    _ensure_diagnostics(settings)
    errors = storage.recent_errors(_clamp_limit(limit, settings))
    return {"errors": [entry.model_dump(mode="json") for entry in errors]}
