"""
API request and response models for Inkwell REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
blog/models.py, which own the internal domain representation. Route handlers
map between the two.

Separation of concerns: auth/ and blog/ models = domain truth; api/ models =
API contract. In particular User.hashed_password has no API counterpart.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import User
from auth.passwords import MAX_PASSWORD_BYTES
from blog.models import Post

USERNAME_PATTERN = r"^[A-Za-z0-9_.@-]+$"


def _check_password_bytes(value: str) -> str:
    # bcrypt limits bytes, not characters: "é" * 40 is 80 bytes.
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return value


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /auth/signup."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=1, max_length=50, pattern=USERNAME_PATTERN)
    password: str = Field(min_length=8, max_length=MAX_PASSWORD_BYTES)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    """Request body for POST /auth/login.

    No minimum password length here: a short wrong password must get the
    same 401 as any other wrong password, not a 422.
    """

    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_BYTES)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class UserPublic(BaseModel):
    """Public view of a user: never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(id=user.id, username=user.username)


class AuthResponse(BaseModel):
    """Response for POST /auth/signup and POST /auth/login."""

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserPublic


class MeResponse(BaseModel):
    """Response for GET /auth/me -- what the presented token says about its bearer."""

    model_config = ConfigDict(frozen=True)

    username: str
    authorities: list[str]


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


class PostCreate(BaseModel):
    """Request body for POST /posts."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    body: str = Field(min_length=1, max_length=50_000)


class PostResponse(BaseModel):
    """One post. Serialized as {id, title, body, userId}."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    title: str
    body: str
    user_id: int = Field(alias="userId")

    @classmethod
    def from_post(cls, post: Post) -> "PostResponse":
        return cls(id=post.id, title=post.title, body=post.body, user_id=post.user_id)


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
