"""
api/main.py -- FastAPI application entry point for Inkwell.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests         -- one access-log line per request
  2. CORSMiddleware       -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware    -- enforces per-route rate limits from api.limiter
  4. AuthorizationFilter  -- bearer token check on every non-public path

Starlette wraps each add_middleware() call around the stack built so far, so
the registration order below is innermost first.

Lifespan builds the stores and services from Settings on startup and
disposes the database engines on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import Response

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.posts import router as posts_router
from auth.dependencies import AuthorizationFilter, unauthorized_response
from auth.errors import (
    InkwellError,
    InvalidCredentialsError,
    NotFoundError,
    TokenError,
    UsernameTakenError,
)
from auth.passwords import BcryptPasswordHasher, PasswordHasher
from auth.service import AuthenticationService
from auth.store import UserStore
from auth.tokens import TokenCodec
from blog.service import PostService
from blog.store import PostStore
from core.config import get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("inkwell.api")

# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def wire_services(
    app: FastAPI,
    user_store: UserStore,
    post_store: PostStore,
    hasher: PasswordHasher,
    codec: TokenCodec,
) -> None:
    """Attach stores and services to app.state. Shared by the real and test lifespans."""
    app.state.user_store = user_store
    app.state.post_store = post_store
    app.state.token_codec = codec
    app.state.auth_service = AuthenticationService(user_store, hasher, codec)
    app.state.post_service = PostService(post_store, user_store)


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build every collaborator once per process; dispose engines on shutdown.

    The signing key is read from Settings here and handed to TokenCodec. It
    is never mutated afterwards.
    """
    settings = get_settings()
    logger.info("Inkwell API starting up")
    user_store = UserStore(settings.database_url)
    post_store = PostStore(settings.database_url)
    wire_services(
        app,
        user_store,
        post_store,
        BcryptPasswordHasher(rounds=settings.bcrypt_rounds),
        TokenCodec.from_settings(settings),
    )
    logger.info("Stores initialized (token ttl=%ss)", settings.token_expire_seconds)

    yield

    post_store.close()
    user_store.close()
    logger.info("Inkwell API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Inkwell API",
    description="Blogging backend: signup, bearer-token auth and per-user posts.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(AuthorizationFilter)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


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

app.include_router(auth_router, tags=["Auth"])
app.include_router(posts_router, tags=["Posts"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# This is the only place domain errors become HTTP status codes. Everything
# except authorization failures uses the ErrorResponse envelope.
# ---------------------------------------------------------------------------

_STATUS_BY_ERROR: dict[type[InkwellError], int] = {
    UsernameTakenError: 409,
    InvalidCredentialsError: 401,
    NotFoundError: 404,
}


def _error_json(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(TokenError)
async def token_error_handler(request: Request, exc: TokenError) -> Response:
    """Any token failure is a bare 401. The kind is logged, never returned."""
    logger.debug("Token rejected on %s %s: %s", request.method, request.url.path, exc.code)
    return unauthorized_response()


@app.exception_handler(InkwellError)
async def domain_error_handler(request: Request, exc: InkwellError) -> JSONResponse:
    status_code = 400
    for error_type, mapped in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            status_code = mapped
            break
    response = _error_json(status_code, exc.code, exc.message)
    if isinstance(exc, InvalidCredentialsError):
        response.headers["Cache-Control"] = "no-store"
    return response


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    Plain def: SlowAPIMiddleware calls this handler directly without awaiting it.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_json(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or params fail validation."""
    return _error_json(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for HTTPException raised by dependencies.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)
    response = _error_json(exc.status_code, f"http_{exc.status_code}", str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_json(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Public (see auth.dependencies.PUBLIC_PATHS) and not rate limited.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and database reachability."""
    try:
        database = "ok" if request.app.state.user_store.ping() else "error"
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        database = "error"
    status = "healthy" if database == "ok" else "degraded"
    return HealthResponse(status=status, version=VERSION, components={"app": "ok", "database": database})
