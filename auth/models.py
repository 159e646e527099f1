"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, minimal logic). Stores own
persistence, SessionManager owns the protocol; these only own shape.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SessionState(str, Enum):
    """Lifecycle of a login session. REVOKED is terminal."""

    ACTIVE = "active"
    REVOKED = "revoked"


@dataclass
class Account:
    """An identity that can log in.

    email is stored lowercased; stores normalize on write and on lookup so
    "Jane.Doe@Example.com" and "jane.doe@example.com" are the same account.
    The auth core reads password_hash but never writes it.
    """

    id: str
    email: str
    name: str
    password_hash: str
    created_at: str = ""

    def public_fields(self) -> dict:
        """Claims safe to embed in an access token (no password hash)."""
        return {"sub": self.id, "email": self.email, "name": self.name}


@dataclass
class Session:
    """One login. Revocation is a soft delete: the row is kept for audit.

    user_agent is advisory only -- it is recorded, never checked.
    """

    id: str
    account_id: str
    state: SessionState = SessionState.ACTIVE
    user_agent: str = ""
    created_at: str = ""
    updated_at: str = ""

    @property
    def valid(self) -> bool:
        return self.state is SessionState.ACTIVE


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
