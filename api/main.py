"""
api/main.py -- FastAPI application entry point for the SSO service.

Exposes AuthService (Login, Register, IsAdmin) over HTTP. The transport
layer owns two things the domain does not: request validation (the
InvalidArgument class of errors) and the mapping from AuthError kinds to
HTTP status codes.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Lifespan handles startup (settings, logging, storage, service) and shutdown
(dispose the storage engine) symmetrically.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import AuthError, ErrorKind
from auth.service import AuthService
from auth.store import Storage
from core.config import get_settings
from core.log import request_id_var, setup_logging

__version__ = "0.1.0"

logger = logging.getLogger("sso.api")

# ---------------------------------------------------------------------------
# Domain error -> HTTP status
#
# InvalidCredentials and InvalidAppId are deliberately different statuses:
# app ids are public, account existence is not.
# ---------------------------------------------------------------------------

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.invalid_credentials: 401,
    ErrorKind.invalid_app_id: 400,
    ErrorKind.already_exists: 409,
    ErrorKind.cancelled: 504,
    ErrorKind.internal: 500,
}


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the storage and service once per process and tear them down on exit.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    settings = get_settings()
    service_logger = setup_logging(settings.env, settings.log_level)
    logger.info("SSO API starting up (env=%s)", settings.env)

    storage = Storage(settings.storage_url)
    app.state.settings = settings
    app.state.storage = storage
    app.state.auth_service = AuthService(
        service_logger.getChild("auth"),
        storage,
        storage,
        storage,
        token_ttl=timedelta(seconds=settings.token_ttl_seconds),
        password_rounds=settings.bcrypt_rounds,
    )
    logger.info("Auth initialized (token_ttl=%ds)", settings.token_ttl_seconds)

    yield

    storage.close()
    logger.info("SSO API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="SSO API",
    description="Credential login, registration and admin checks. Issues per-app signed tokens.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Request context + logging middleware
#
# Binds a correlation id for the duration of the request (incoming
# X-Request-ID is honoured, otherwise a fresh one is generated). Every log
# record emitted while handling the request, including AuthService's on the
# worker thread, carries it. Latency is reported on every response.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def request_context(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:16]
    token = request_id_var.set(request_id)
    start = time.perf_counter()
    try:
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
        )
        response.headers["X-Request-ID"] = request_id
        return response
    finally:
        request_id_var.reset(token)


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map a domain error to its HTTP status.

    Only exc.message (a fixed, caller-safe string per kind) reaches the
    client. The wrapped cause stays in the logs.
    """
    status_code = _STATUS_BY_KIND.get(exc.kind, 500)
    logger.info("%s failed: %s -> %d", exc.op, exc.kind.value, status_code)
    return _error(status_code, exc.kind.value, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 invalid_argument when the request body fails validation.

    The detail lists field locations and messages only. Pydantic's error
    entries also carry the rejected input, which may be a password.
    """
    detail = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors()
    )
    return _error(422, "invalid_argument", "Request validation failed.", detail)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404, 405, ...)."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, ErrorKind.internal.value, "internal error")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and per-component status."""
    database = "ok" if request.app.state.storage.ping() else "error"
    components = {"app": "ok", "database": database}
    status = "healthy" if all(v == "ok" for v in components.values()) else "degraded"
    return HealthResponse(status=status, version=__version__, components=components)
