"""
auth/sessions.py -- Login, refresh and logout.

SessionManager is the only component that knows the protocol:

  login:   verify credentials -> create session -> mint access + refresh token
  refresh: verify refresh token -> session still ACTIVE? -> reload account
           -> mint a new access token
  logout:  revoke the session

Per-request authorization (authenticate) only checks the access token's
signature and expiry. It never reads the session store, which keeps it O(1);
revocation takes effect at the next refresh, i.e. within one access-token TTL.

Known tradeoffs, kept as-is:
  - The refresh token is never rotated or consumed. A stolen refresh token
    keeps working until its own expiry or until the session is logged out.
  - refresh() reads the session and then mints without holding a lock, so a
    refresh that read the session just before a concurrent logout can still
    return one access token.

Boundary policy: fine-grained errors from the verifier, codec and store are
logged here and then collapsed to LoginFailure / RefreshFailure, whose
messages do not depend on the cause.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from auth.credentials import CredentialVerifier
from auth.errors import (
    AccountNotFound,
    InvalidCredentials,
    LoginFailure,
    RefreshFailure,
    RefreshFailureReason,
    SessionNotFound,
    Unauthorized,
)
from auth.models import Account, Session, TokenPair
from auth.store import AccountStore, SessionStore
from auth.tokens import TokenCodec, TokenType

logger = logging.getLogger("storefront.auth")


class SessionManager:
    """Orchestrates the session lifecycle over its four collaborators.

    Usage:
        manager = SessionManager(accounts, sessions, PasswordVerifier(accounts), JWTCodec(keys),
                                 access_ttl=900, refresh_ttl=31536000)
        pair = manager.login("jane.doe@example.com", "Password123", "curl/8.0")
        access = manager.refresh(pair.refresh_token)
        claims = manager.authenticate(access)
        manager.logout(claims["session"])
    """

    def __init__(
        self,
        accounts: AccountStore,
        sessions: SessionStore,
        verifier: CredentialVerifier,
        codec: TokenCodec,
        access_ttl: int,
        refresh_ttl: int,
    ) -> None:
        self._accounts = accounts
        self._sessions = sessions
        self._verifier = verifier
        self._codec = codec
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------

    def login(self, identifier: str, secret: str, user_agent: str) -> TokenPair:
        """Exchange an email/password pair for an access + refresh token pair.

        Raises LoginFailure for an unknown email or a wrong password; no
        session is created in either case.
        """
        try:
            account = self._verifier.verify(identifier, secret)
        except (AccountNotFound, InvalidCredentials) as exc:
            logger.info("Login refused (%s)", type(exc).__name__)
            raise LoginFailure(exc) from exc

        session = self._sessions.create_session(account.id, user_agent)
        pair = TokenPair(
            access_token=self._mint_access(account, session.id),
            refresh_token=self._codec.sign({"session": session.id}, self.refresh_ttl, TokenType.REFRESH),
        )
        logger.info("Login for account %s opened session %s", account.id, session.id)
        return pair

    def refresh(self, refresh_token: str) -> str:
        """Mint a new access token from a refresh token.

        The password is not re-checked. The account is re-loaded so the new
        token carries its current email and name, not the ones from login.
        """
        try:
            claims = self._codec.verify(refresh_token, TokenType.REFRESH)
        except Unauthorized as exc:
            logger.info("Refresh refused: %s", type(exc).__name__)
            raise RefreshFailure(RefreshFailureReason.UNAUTHORIZED, exc) from exc

        session_id = claims.get("session")
        if not isinstance(session_id, str):
            logger.info("Refresh refused: token has no session claim")
            raise RefreshFailure(RefreshFailureReason.UNAUTHORIZED)

        try:
            session = self._sessions.get_session(session_id)
        except SessionNotFound as exc:
            logger.info("Refresh refused: session %s not found", session_id)
            raise RefreshFailure(RefreshFailureReason.UNAUTHORIZED, exc) from exc
        if not session.valid:
            logger.info("Refresh refused: session %s is revoked", session_id)
            raise RefreshFailure(RefreshFailureReason.UNAUTHORIZED)

        account = self._accounts.get_by_id(session.account_id)
        if account is None:
            logger.info("Refresh refused: account %s for session %s is gone", session.account_id, session_id)
            raise RefreshFailure(RefreshFailureReason.ACCOUNT_GONE)

        return self._mint_access(account, session.id)

    def logout(self, session_id: str) -> None:
        """Revoke a session. Repeat calls succeed; unknown ids raise SessionNotFound."""
        self._sessions.invalidate_session(session_id)
        logger.info("Session %s logged out", session_id)

    # ------------------------------------------------------------------
    # Request-side helpers
    # ------------------------------------------------------------------

    def authenticate(self, access_token: str) -> dict:
        """Return the claims of a valid access token. Raises Unauthorized.

        Stateless: does not consult the session store.
        """
        return self._codec.verify(access_token, TokenType.ACCESS)

    def list_sessions(self, account_id: str) -> list[Session]:
        """Return the account's still-valid sessions, newest first."""
        return self._sessions.list_sessions(account_id, valid_only=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _mint_access(self, account: Account, session_id: str) -> str:
        payload = account.public_fields()
        payload["session"] = session_id
        return self._codec.sign(payload, self.access_ttl, TokenType.ACCESS)
