"""
auth/credentials.py -- Password hashing and the credential check behind login.

Passwords: bcrypt directly, no passlib wrapper. passlib's wrap-bug detection
builds a password longer than 72 bytes, which bcrypt 4.x rejects with an
explicit error. Direct bcrypt usage is simpler and actively maintained.

Timing equalization: _DUMMY_HASH is computed once at module load. When the
email has no account, bcrypt still runs against the dummy hash so response
time does not reveal whether the account exists.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import bcrypt

from auth.errors import AccountNotFound, InvalidCredentials

if TYPE_CHECKING:
    from auth.models import Account
    from auth.store import AccountStore

logger = logging.getLogger("storefront.auth")

# bcrypt works on at most 72 bytes of input, not 72 characters.
PASSWORD_MAX_BYTES = 72


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Raises ValueError when the UTF-8 encoding is longer than
    PASSWORD_MAX_BYTES. Registration rejects such passwords with a 422
    before they get here.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > PASSWORD_MAX_BYTES:
        raise ValueError(f"password cannot be longer than {PASSWORD_MAX_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A corrupt stored hash makes bcrypt raise ValueError; that counts as a
    mismatch, not a server error. So does a password no stored hash can have
    been made from, one longer than PASSWORD_MAX_BYTES.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > PASSWORD_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError:
        return False


_DUMMY_HASH: str = hash_password("storefront_timing_dummy")


class CredentialVerifier(Protocol):
    def verify(self, identifier: str, secret: str) -> Account: ...


class PasswordVerifier:
    """Checks an email/password pair against the AccountStore.

    Raises AccountNotFound or InvalidCredentials. The distinction is logged
    here and then discarded by SessionManager.
    """

    def __init__(self, accounts: AccountStore) -> None:
        self._accounts = accounts

    def verify(self, identifier: str, secret: str) -> Account:
        account = self._accounts.get_by_email(identifier)
        if account is None:
            # Do NOT return before running bcrypt
            verify_password(secret, _DUMMY_HASH)
            logger.info("Credential check failed: no such account")
            raise AccountNotFound(identifier)
        if not verify_password(secret, account.password_hash):
            logger.info("Credential check failed: wrong password for account %s", account.id)
            raise InvalidCredentials(account.id)
        return account
