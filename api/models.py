"""
API request and response models for the SSO REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request validation here is the "InvalidArgument" boundary: an empty email or
password, or a zero or out-of-range app_id / user_id, never reaches
AuthService. The validation handler in api/main.py turns these failures into
422 invalid_argument responses.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# bcrypt only hashes the first 72 bytes; longer passwords are refused outright
# rather than silently truncated.
BCRYPT_MAX_PASSWORD_BYTES = 72

# Ids are stored as SQL BIGINT. Anything outside the signed 64-bit range cannot
# name a row and cannot be bound as a query parameter.
ID_MIN = -(2**63)
ID_MAX = 2**63 - 1


def _require_password(value: str) -> str:
    if not value:
        raise ValueError("password is required")
    if len(value.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    return value


def _require_nonzero(value: int, name: str) -> int:
    if value == 0:
        raise ValueError(f"{name} is required")
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = Field(max_length=320)
    password: str
    app_id: int = Field(ge=ID_MIN, le=ID_MAX)

    @field_validator("email")
    @classmethod
    def email_required(cls, value: str) -> str:
        if not value:
            raise ValueError("email is required")
        return value

    @field_validator("password")
    @classmethod
    def password_required(cls, value: str) -> str:
        return _require_password(value)

    @field_validator("app_id")
    @classmethod
    def app_id_required(cls, value: int) -> int:
        return _require_nonzero(value, "app_id")


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    email: str = Field(max_length=320)
    password: str

    @field_validator("email")
    @classmethod
    def email_required(cls, value: str) -> str:
        if not value:
            raise ValueError("email is required")
        return value

    @field_validator("password")
    @classmethod
    def password_required(cls, value: str) -> str:
        return _require_password(value)


class IsAdminRequest(BaseModel):
    """Request body for POST /api/v1/auth/is-admin."""

    user_id: int = Field(ge=ID_MIN, le=ID_MAX)

    @field_validator("user_id")
    @classmethod
    def user_id_required(cls, value: int) -> int:
        return _require_nonzero(value, "user_id")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int


class IsAdminResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_admin: bool


class HealthResponse(BaseModel):
    """Response body for GET /api/v1/health.

    status is "healthy" only when every component reports "ok".
    """

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


class ErrorDetail(BaseModel):
    """Structured error detail included in every error response."""

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned by all error responses.

    Wrapping errors in an 'error' key is a common REST convention that
    distinguishes error payloads from success payloads at the top level.
    """

    error: ErrorDetail
