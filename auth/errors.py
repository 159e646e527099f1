"""
auth/errors.py -- Exception taxonomy for the auth core.

Fine-grained classes (AccountNotFound vs InvalidCredentials, MalformedToken vs
BadSignature vs TokenExpired) exist for logging and tests. SessionManager
collapses them to LoginFailure / RefreshFailure before anything reaches the
HTTP layer, and both of those carry one fixed public message regardless of
cause so a client cannot tell which check failed.
"""

from __future__ import annotations

from enum import Enum

LOGIN_FAILED_MESSAGE = "Invalid email or password."
REFRESH_FAILED_MESSAGE = "Could not refresh session."


class AuthError(Exception):
    """Base class for every failure raised by auth/."""


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


class NotFound(AuthError):
    pass


class AccountNotFound(NotFound):
    pass


class SessionNotFound(NotFound):
    pass


class DuplicateAccount(AuthError):
    """An account with the same normalized email already exists."""


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class InvalidCredentials(AuthError):
    pass


# ---------------------------------------------------------------------------
# Token integrity
# ---------------------------------------------------------------------------


class Unauthorized(AuthError):
    """Any token integrity failure. Callers outside auth/ only see this."""


class MalformedToken(Unauthorized):
    pass


class BadSignature(Unauthorized):
    pass


class TokenExpired(Unauthorized):
    pass


class WrongTokenType(Unauthorized):
    """An access token presented as a refresh token, or the reverse."""


# ---------------------------------------------------------------------------
# Boundary outcomes (SessionManager)
# ---------------------------------------------------------------------------


class LoginFailure(AuthError):
    def __init__(self, cause: AuthError | None = None) -> None:
        super().__init__(LOGIN_FAILED_MESSAGE)
        self.cause = cause


class RefreshFailureReason(str, Enum):
    UNAUTHORIZED = "unauthorized"
    ACCOUNT_GONE = "account_gone"


class RefreshFailure(AuthError):
    """Refresh was refused.

    reason is for logs and tests; str(exc) is identical for every reason.
    """

    def __init__(self, reason: RefreshFailureReason, cause: AuthError | None = None) -> None:
        super().__init__(REFRESH_FAILED_MESSAGE)
        self.reason = reason
        self.cause = cause
