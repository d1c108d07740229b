"""
auth/dependencies.py -- Request authorization: middleware plus FastAPI Depends() helpers.

Every request that is not on the public allow-list passes through
AuthorizationFilter before any route runs:

  no Authorization header         -> 401
  header is not "Bearer <token>"  -> 401
  TokenCodec.verify() fails       -> 401
  otherwise                       -> request.state.principal = Principal, continue

Rejections carry an empty body and WWW-Authenticate: Bearer. The failure
kind goes to the DEBUG log only, never to the client.

request.state is per request, so the principal disappears with the request.
Route handlers read it with get_current_principal() and gate admin routes
with require_authority().

Layer rule: no imports from api/ or blog/. This module may import from
fastapi/starlette because it is part of the request pipeline.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from auth.errors import MalformedTokenError, MissingCredentialsError, TokenError
from auth.models import Principal
from auth.tokens import TokenCodec

logger = logging.getLogger("inkwell.auth")

PUBLIC_PATHS: frozenset[str] = frozenset(
    {
        "/auth/signup",
        "/auth/login",
        "/health",
        "/docs",
        "/docs/oauth2-redirect",
        "/redoc",
        "/openapi.json",
    }
)

_SCHEME = "bearer"


def parse_bearer(header: str | None) -> str:
    """Extract the token from an Authorization header value.

    Raises MissingCredentialsError when the header is absent or blank, and
    MalformedTokenError when it is not of the form "Bearer <token>".
    """
    if header is None or not header.strip():
        raise MissingCredentialsError()
    scheme, _, token = header.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != _SCHEME or not token or " " in token:
        raise MalformedTokenError("Authorization header is not a bearer token.")
    return token


def authorize(header: str | None, codec: TokenCodec, now: datetime | None = None) -> Principal:
    """Run the full header -> token -> principal chain. Raises a TokenError subtype on any failure."""
    token = parse_bearer(header)
    return codec.verify(token, now=now)


def unauthorized_response() -> Response:
    return Response(status_code=401, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationFilter(BaseHTTPMiddleware):
    """Reject unauthenticated requests before they reach a route handler.

    The TokenCodec is looked up on app.state.token_codec for each request,
    so tests can swap it through the lifespan.
    """

    def __init__(self, app: ASGIApp, public_paths: Iterable[str] = PUBLIC_PATHS) -> None:
        super().__init__(app)
        self.public_paths = frozenset(public_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS" or request.url.path in self.public_paths:
            return await call_next(request)

        codec: TokenCodec = request.app.state.token_codec
        try:
            principal = authorize(request.headers.get("Authorization"), codec)
        except TokenError as exc:
            logger.debug("Rejected %s %s: %s", request.method, request.url.path, exc.code)
            return unauthorized_response()

        request.state.principal = principal
        return await call_next(request)


def get_current_principal(request: Request) -> Principal:
    """Return the principal bound by AuthorizationFilter. Raises HTTP 401 if there is none.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_current_principal)): ...
    """
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def require_authority(authority: str) -> Callable[[Request], Principal]:
    """Build a dependency that requires the principal to hold authority (HTTP 403 otherwise).

        @router.delete("/admin-only")
        def route(principal: Principal = Depends(require_authority("ROLE_ADMIN"))): ...
    """

    def dependency(request: Request) -> Principal:
        principal = get_current_principal(request)
        if not principal.has_authority(authority):
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": f"{authority} required."},
            )
        return principal

    return dependency
