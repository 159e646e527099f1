"""
API request and response models for Storefront REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from auth.credentials import PASSWORD_MAX_BYTES


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
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class AccountCreate(BaseModel):
    """Request body for POST /api/v1/users.

    password_confirmation is compared in the route, not here, so a mismatch
    is reported as 400 rather than folded into the generic 422.

    Passwords are taken byte for byte. Only email and name are stripped.
    """

    email: EmailStr
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=6, max_length=PASSWORD_MAX_BYTES)
    password_confirmation: str = Field(max_length=PASSWORD_MAX_BYTES)

    @field_validator("email", "name", mode="before")
    @classmethod
    def strip_whitespace(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded.")
        return v


class AccountResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: str
    created_at: str


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/sessions.

    email is a plain string, not EmailStr: an unknown or odd-looking email
    must produce the same 401 as a wrong password, not a 422 that reveals
    which field was wrong. password has no bcrypt length cap for the same
    reason; an overlong password simply fails to match.
    """

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=4096)


class TokenPairResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1, max_length=4096)


class AccessTokenResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str


class LogoutResponse(BaseModel):
    """Both tokens are returned as null so clients can overwrite what they stored."""

    model_config = ConfigDict(frozen=True)

    access_token: None = None
    refresh_token: None = None


class SessionResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    valid: bool
    user_agent: str
    created_at: str
    updated_at: str


class MeResponse(BaseModel):
    """Public claims of the caller's access token."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: str
    session: str
    issued_at: int
    expires_at: int
