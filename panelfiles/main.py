"""FastAPI application entrypoint."""
from __future__ import annotations

from contextlib import asynccontextmanager
import hmac
import time
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import Request

from panelfiles.api.error_handlers import register_exception_handlers
from panelfiles.api.router import api_router
from panelfiles.core.config import Settings, get_settings
from panelfiles.core.logging import configure_logging
from panelfiles.core.metrics import metrics
from panelfiles.core.request_context import clear_request_context, set_request_id
from panelfiles.services import ServiceRegistry
from panelfiles.services.remote_client import RemoteDirectoryClient

PUBLIC_PATHS = {"/api/health"}


class RequestIdMiddleware:
    def __init__(self, app, logger):
        self.app = app
        self.logger = logger

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive=receive)
        path = scope.get("path") or ""
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        set_request_id(request_id)
        start = time.perf_counter()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            clear_request_context()

        duration_ms = int((time.perf_counter() - start) * 1000)
        if status_code < 400:
            metric_name = f"api.{path}"
            metrics.record(metric_name, ok=True, duration_ms=duration_ms)
            overrides = self._metric_threshold_overrides(path)
            if metrics.should_alert(metric_name, **overrides):
                self.logger.warning("Metric alert for %s (slow or error rate)", metric_name)

    @classmethod
    def _metric_threshold_overrides(cls, path: str) -> dict[str, int]:
        if path.endswith("/upload") or path.endswith("/archive") or path.endswith("/download"):
            return {"avg_ms": 600_000}
        return {}


def _provided_token(headers: Headers) -> str:
    """Bearer token, falling back to the X-API-Key header."""
    scheme, _, credentials = headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return headers.get("x-api-key", "").strip()


class AuthMiddleware:
    """Require the gateway API token on /api routes except the public ones."""

    def __init__(self, app, settings: Settings):
        self.app = app
        self.settings = settings

    def _is_protected(self, path: str) -> bool:
        if not self.settings.api_token or not self.settings.auth_enabled:
            return False
        return path.startswith("/api") and path not in PUBLIC_PATHS

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not self._is_protected(scope.get("path") or ""):
            await self.app(scope, receive, send)
            return

        provided = _provided_token(Headers(scope=scope))
        if not provided:
            detail = "Missing API token"
        elif not hmac.compare_digest(provided.encode(), self.settings.api_token.encode()):
            detail = "Invalid API token"
        else:
            await self.app(scope, receive, send)
            return
        response = JSONResponse(
            status_code=401,
            content={"detail": detail, "error": "unauthorized"},
            headers={"WWW-Authenticate": "Bearer"},
        )
        await response(scope, receive, send)


def create_app(
    settings: Optional[Settings] = None,
    *,
    client: Optional[RemoteDirectoryClient] = None,
) -> FastAPI:
    """Build the gateway application; `client` replaces the HTTP panel client."""

    settings = settings or get_settings()
    logger = configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage startup and shutdown of the panel connection."""

        registry = ServiceRegistry(settings, client=client)
        app.state.services = registry

        await registry.startup()
        try:
            yield
        finally:
            await registry.shutdown()

    app = FastAPI(
        title="Panel File Manager API",
        description="File transfer and selection gateway for game server panels",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(AuthMiddleware, settings=settings)
    app.add_middleware(RequestIdMiddleware, logger=logger)

    app.include_router(api_router)
    register_exception_handlers(app)
    return app


app = create_app()
