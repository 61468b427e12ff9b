import asyncio
import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chatrelay.api import admin, auth, chats, generate
from chatrelay.core.config import Settings, settings as default_settings
from chatrelay.core.security import dummy_hash
from chatrelay.models.activity import LogAction
from chatrelay.services.relay import get_relay_client
from chatrelay.services.relay.base import BaseRelayClient, RelayError
from chatrelay.services.storage import ChatNotFoundError, Storage, create_storage

logger = logging.getLogger(__name__)


def _format_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app(
    app_settings: Settings | None = None,
    storage: Storage | None = None,
    relay_client: BaseRelayClient | None = None,
) -> FastAPI:
    """Build the application. Storage and relay client are created at startup unless injected."""
    app_settings = app_settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Configure logging based on debug setting
        logging.basicConfig(
            level=logging.DEBUG if app_settings.debug else logging.INFO,
            format="%(asctime)s %(levelname)-8s %(name)s: %(message)s" if app_settings.debug
            else "%(levelname)-8s %(name)s: %(message)s",
        )

        if app_settings.is_production and app_settings.session_secret == Settings.model_fields["session_secret"].default:
            logger.warning("CHATRELAY_SESSION_SECRET is not set; using the built-in default in production")

        if app.state.storage is None:
            app.state.storage = create_storage(app_settings)
        if app.state.relay_client is None:
            app.state.relay_client = get_relay_client(app_settings)
        # Unknown-user logins verify against this; build it before the first request
        await asyncio.to_thread(dummy_hash, app_settings.bcrypt_rounds)
        logger.info(
            f"Storage backend: {type(app.state.storage).__name__}, environment: {app_settings.environment}"
        )

        yield

    app = FastAPI(title=app_settings.app_name, lifespan=lifespan)
    app.state.settings = app_settings
    app.state.storage = storage
    app.state.relay_client = relay_client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_api_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        if request.url.path.startswith("/api"):
            duration_ms = (time.perf_counter() - start) * 1000
            logger.debug(f"{request.method} {request.url.path} {response.status_code} in {duration_ms:.0f}ms")
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        detail = _format_validation_error(exc)
        app.state.storage.append_log(
            "warn", f"Invalid request on {request.method} {request.url.path}: {detail}",
            action=LogAction.REQUEST_ERROR,
        )
        return JSONResponse(status_code=400, content={"detail": detail})

    @app.exception_handler(StarletteHTTPException)
    async def logged_http_exception_handler(request: Request, exc: StarletteHTTPException):
        app.state.storage.append_log(
            "error" if exc.status_code >= 500 else "warn",
            f"{exc.status_code} on {request.method} {request.url.path}: {exc.detail}",
            action=LogAction.REQUEST_ERROR,
        )
        return await http_exception_handler(request, exc)

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(ChatNotFoundError)
    async def chat_not_found_handler(request: Request, exc: ChatNotFoundError):
        return JSONResponse(status_code=404, content={"detail": "Chat not found"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        if app.state.storage is not None:
            app.state.storage.append_log(
                "error", f"Unhandled error on {request.method} {request.url.path}",
                {"error": str(exc), "error_type": type(exc).__name__},
                action=LogAction.REQUEST_ERROR,
            )
        detail = "Internal server error" if app_settings.is_production else str(exc)
        return JSONResponse(status_code=500, content={"detail": detail})

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(chats.router, prefix="/api/chats", tags=["chats"])
    app.include_router(generate.router, prefix="/api", tags=["relay"])
    app.include_router(admin.router, prefix="/api", tags=["admin"])

    @app.get("/api/health")
    async def health():
        return {"status": "ok", "app": app_settings.app_name}

    return app


app = create_app()


def run() -> None:
    uvicorn.run("chatrelay.main:app", host=default_settings.host, port=default_settings.port)


if __name__ == "__main__":
    run()
