"""
api/routes/v1/auth.py -- Signup, login and account REST endpoints.

Routes:
  POST   /auth/signup       -- create account; 201 with token + public user
  POST   /auth/login        -- password login; 200 with token + public user
  GET    /auth/me           -- what the presented token says (requires auth)
  DELETE /auth/users/{id}   -- delete an account and its posts (ROLE_ADMIN)

Security:
  signup and login are rate-limited per client IP (LOGIN_RATE_LIMIT).
  @limiter.limit sits below @router.post so the registered endpoint is the
  rate-limited wrapper; exceeding the limit returns 429 with Retry-After.
  signup and login responses carry Cache-Control: no-store.
  signup and login are plain `def` handlers: bcrypt runs in FastAPI's
  worker thread pool, not on the event loop.
  Domain errors (UsernameTakenError, InvalidCredentialsError, NotFoundError)
  propagate to the exception handlers in api/main.py.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import AuthResponse, LoginRequest, MeResponse, SignupRequest, UserPublic
from auth.dependencies import get_current_principal, require_authority
from auth.models import Authorities, AuthResult, Principal
from auth.service import AuthenticationService
from blog.store import PostStore

# Auth policy:
# - POST   /auth/signup:       public (listed in auth.dependencies.PUBLIC_PATHS)
# - POST   /auth/login:        public (listed in auth.dependencies.PUBLIC_PATHS)
# - GET    /auth/me:           requires a valid bearer token
# - DELETE /auth/users/{id}:   requires ROLE_ADMIN
router = APIRouter()


def _auth_response(request: Request, result: AuthResult, status_code: int) -> JSONResponse:
    body = AuthResponse(
        token=result.token,
        expires_in=request.app.state.token_codec.ttl_seconds,
        user=UserPublic.from_user(result.user),
    )
    resp = JSONResponse(status_code=status_code, content=body.model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/signup", response_model=AuthResponse, status_code=201)
@limiter.limit(login_rate_limit)
def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Register a new account with the default ROLE_USER authority.

    409 if the username is taken. Nothing is stored in that case.
    """
    service: AuthenticationService = request.app.state.auth_service
    result = service.signup(body.username, body.password)
    return _auth_response(request, result, status_code=201)


@router.post("/auth/login", response_model=AuthResponse)
@limiter.limit(login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password.

    Unknown username and wrong password produce the same 401.
    """
    service: AuthenticationService = request.app.state.auth_service
    result = service.login(body.username, body.password)
    return _auth_response(request, result, status_code=200)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
async def me(principal: Principal = Depends(get_current_principal)) -> MeResponse:
    """Return the identity carried by the bearer token."""
    return MeResponse(username=principal.username, authorities=sorted(principal.authorities))


@router.delete("/auth/users/{user_id}", status_code=204)
def delete_user(
    request: Request,
    user_id: int,
    principal: Principal = Depends(require_authority(Authorities.ROLE_ADMIN)),
) -> Response:
    """Delete an account and the posts it owns. Admin only.

    Outstanding tokens for the account are not revoked; they stop resolving
    to a user and expire on their own.
    """
    service: AuthenticationService = request.app.state.auth_service
    posts: PostStore = request.app.state.post_store

    target = service.get_user(user_id)
    posts.delete_all_by_user(target.id)
    service.delete_user(target.id)
    return Response(status_code=204)
