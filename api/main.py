"""
api/main.py -- FastAPI application entry point for the account service.

Run with:      uvicorn asgi:app --reload

This module is the composition root: it is the only place (besides the CLI in
main.py) that reads Settings. Lifespan builds the store and the services
from those settings and parks them on app.state; routes and dependencies read
them from there.

Middleware stack (outermost to innermost):
  1. CORSMiddleware    -- adds CORS headers for allowed browser origins
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter

Lifespan handles startup (store + services) and shutdown (dispose the engine)
symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.users import router as users_router
from auth.dependencies import get_identity
from auth.encryption import PasswordEncryptor
from auth.errors import AuthError, ErrorCategory, TokenError
from auth.models import AuthenticatedIdentity
from auth.service import AccountService
from auth.store import AccountStore
from auth.tokens import TokenService
from auth.validation import CredentialPolicy
from core.config import Settings, get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("storybook.api")

# ---------------------------------------------------------------------------
# Service assembly
# ---------------------------------------------------------------------------


def build_services(settings: Settings, store: AccountStore) -> tuple[TokenService, AccountService]:
    """Construct the token service and the orchestrator from settings.

    Every service receives plain values; none of them reads settings itself.
    """
    tokens = TokenService(
        settings.secret_key,
        access_lifetime=timedelta(seconds=settings.access_token_expire_seconds),
        refresh_lifetime=timedelta(seconds=settings.refresh_token_expire_seconds),
    )
    service = AccountService(
        store=store,
        encryptor=PasswordEncryptor(salt_length=settings.salt_length, rounds=settings.bcrypt_rounds),
        policy=CredentialPolicy(min_password_length=settings.min_password_length, salt_length=settings.salt_length),
        tokens=tokens,
    )
    return tokens, service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the account store and wire services onto app.state; close on shutdown."""
    settings = get_settings()
    logger.info("Account service starting up")
    store = AccountStore(settings.database_url, timeout=settings.store_timeout_seconds)
    app.state.account_store = store
    app.state.token_service, app.state.account_service = build_services(settings, store)
    logger.info(
        "Auth initialized (access_ttl=%ss, refresh_ttl=%ss)",
        settings.access_token_expire_seconds,
        settings.refresh_token_expire_seconds,
    )

    yield

    store.close()
    logger.info("Account service shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Storybook Accounts API",
    description="Sign-up, login, token refresh and password recovery for Storybook.",
    version=VERSION,
    lifespan=lifespan,
    # Built-in /docs and /redoc are replaced below by authenticated versions.
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://127.0.0.1"],
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
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
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])


# ---------------------------------------------------------------------------
# Auth-protected API documentation
# ---------------------------------------------------------------------------


@app.get("/docs", include_in_schema=False)
async def docs(identity: AuthenticatedIdentity = Depends(get_identity)):
    """Swagger UI -- requires a bearer token."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title="Storybook Accounts API")


@app.get("/redoc", include_in_schema=False)
async def redoc(identity: AuthenticatedIdentity = Depends(get_identity)):
    """ReDoc UI -- requires a bearer token."""
    return get_redoc_html(openapi_url="/openapi.json", title="Storybook Accounts API")


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------

_STATUS_BY_CATEGORY: dict[ErrorCategory, int] = {
    ErrorCategory.validation: 400,
    ErrorCategory.authentication: 401,
    ErrorCategory.authorization: 403,
    ErrorCategory.not_found: 404,
    ErrorCategory.conflict: 409,
    ErrorCategory.infrastructure: 500,
}


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map the auth core's exception taxonomy onto HTTP statuses.

    Token verification failures all look the same to the client ("Unauthorized.");
    the precise reason is logged by the gate. Infrastructure failures are logged
    with a traceback and answered with a generic message.
    """
    status_code = _STATUS_BY_CATEGORY[exc.category]
    if exc.category is ErrorCategory.infrastructure:
        logger.error("Infrastructure failure on %s %s", request.method, request.url.path, exc_info=exc)
        return _error(status_code, exc.code, "An unexpected error occurred.")
    if isinstance(exc, TokenError):
        resp = _error(status_code, exc.code, "Unauthorized.")
    else:
        resp = _error(status_code, exc.code, str(exc))
    if status_code == 401:
        resp.headers["WWW-Authenticate"] = "Bearer"
    return resp


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return _error(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404 routes, 405...)."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py so it is always reachable regardless of router
# registration state. No rate limit and no auth.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", response_model=HealthResponse, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and a database check."""
    db_ok = request.app.state.account_store.ping()
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
