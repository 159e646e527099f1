"""
auth/memory.py -- In-process AccountStore and SessionStore.

Same contract as auth/store.AuthStore, backed by dicts behind one lock.
Used by the unit tests and handy for local experiments; nothing survives
the process.

Records are copied on the way in and out, so a caller mutating a returned
Session cannot change what the store holds.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone

from auth.errors import DuplicateAccount, SessionNotFound
from auth.models import Account, Session, SessionState
from auth.store import normalize_email


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryAccountStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_id: dict[str, Account] = {}

    def create_account(self, email: str, name: str, password_hash: str) -> Account:
        email = normalize_email(email)
        with self._lock:
            if any(a.email == email for a in self._by_id.values()):
                raise DuplicateAccount(email)
            account = Account(
                id=uuid.uuid4().hex,
                email=email,
                name=name,
                password_hash=password_hash,
                created_at=_now_iso(),
            )
            self._by_id[account.id] = account
        return replace(account)

    def get_by_email(self, email: str) -> Account | None:
        email = normalize_email(email)
        with self._lock:
            for account in self._by_id.values():
                if account.email == email:
                    return replace(account)
        return None

    def get_by_id(self, account_id: str) -> Account | None:
        with self._lock:
            account = self._by_id.get(account_id)
        return replace(account) if account is not None else None

    def delete_account(self, account_id: str) -> bool:
        with self._lock:
            return self._by_id.pop(account_id, None) is not None


class InMemorySessionStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}

    def create_session(self, account_id: str, user_agent: str) -> Session:
        now = _now_iso()
        session = Session(
            id=uuid.uuid4().hex,
            account_id=account_id,
            state=SessionState.ACTIVE,
            user_agent=user_agent or "",
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._sessions[session.id] = session
        return replace(session)

    def get_session(self, session_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return replace(session)

    def invalidate_session(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            if session.state is SessionState.ACTIVE:
                self._sessions[session_id] = replace(session, state=SessionState.REVOKED, updated_at=_now_iso())

    def list_sessions(self, account_id: str, valid_only: bool = True) -> list[Session]:
        with self._lock:
            sessions = [
                replace(s)
                for s in self._sessions.values()
                if s.account_id == account_id and (s.valid or not valid_only)
            ]
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)
