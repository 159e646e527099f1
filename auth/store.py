"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts and sessions.

Pattern: Repository + Data Mapper. AuthStore is the repository;
_row_to_account / _row_to_session are the mappers. SessionManager and route
code never touch SQL directly.

AccountStore and SessionStore are the capability interfaces SessionManager
depends on. AuthStore implements both against one database; auth/memory.py
implements them in process for tests and local experiments.

Atomicity: every write is a single statement (or a statement plus an
existence probe) inside one transaction, so create / get / invalidate are
each atomic per record. Nothing holds a lock across calls.

Sessions are never deleted. invalidate_session() flips valid to 0 and only
ever in that direction -- there is no statement in this module that sets
valid back to 1.

Security: all queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateAccount, SessionNotFound
from auth.models import Account, Session, SessionState

logger = logging.getLogger("storefront.auth")

# ---------------------------------------------------------------------------
# Capability interfaces
# ---------------------------------------------------------------------------


class AccountStore(Protocol):
    def create_account(self, email: str, name: str, password_hash: str) -> Account: ...

    def get_by_email(self, email: str) -> Account | None: ...

    def get_by_id(self, account_id: str) -> Account | None: ...


class SessionStore(Protocol):
    def create_session(self, account_id: str, user_agent: str) -> Session: ...

    def get_session(self, session_id: str) -> Session: ...

    def invalidate_session(self, session_id: str) -> None: ...

    def list_sessions(self, account_id: str, valid_only: bool = True) -> list[Session]: ...


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),  # lowercased
    Column("name", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

# account_id is deliberately not a FOREIGN KEY: deleting an account must not
# cascade into (or be blocked by) its audit trail of sessions.
_sessions = Table(
    "sessions",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("account_id", String(32), nullable=False, index=True),
    Column("valid", Integer, nullable=False, server_default="1"),
    Column("user_agent", Text, nullable=False, server_default=""),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block on writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AuthStore:
    """SQLAlchemy repository for Account and Session records.

    Usage:
        store = AuthStore()                                 # SQLite default
        store = AuthStore("postgresql://user:pw@host/db")   # PostgreSQL
        account = store.create_account("jane@example.com", "Jane", hash_password("pw"))
        session = store.create_session(account.id, "curl/8.0")
        store.invalidate_session(session.id)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(self, email: str, name: str, password_hash: str) -> Account:
        """Insert a new account and return it.

        Raises DuplicateAccount if the normalized email is already taken.
        The UNIQUE constraint decides, so two concurrent registrations for
        the same email cannot both succeed.
        """
        account = Account(
            id=_new_id(),
            email=normalize_email(email),
            name=name,
            password_hash=password_hash,
            created_at=_now_iso(),
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _accounts.insert().values(
                        id=account.id,
                        email=account.email,
                        name=account.name,
                        password_hash=account.password_hash,
                        created_at=account.created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateAccount(account.email) from exc
        return account

    def get_by_email(self, email: str) -> Account | None:
        """Look up an account by email (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.email == normalize_email(email))).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_id(self, account_id: str) -> Account | None:
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def delete_account(self, account_id: str) -> bool:
        """Permanently delete an account. Its sessions are left in place.

        Outstanding refresh tokens for the account stop working because
        refresh re-loads the account. Returns False if it did not exist.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_accounts.delete().where(_accounts.c.id == account_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, account_id: str, user_agent: str) -> Session:
        now = _now_iso()
        session = Session(
            id=_new_id(),
            account_id=account_id,
            state=SessionState.ACTIVE,
            user_agent=user_agent or "",
            created_at=now,
            updated_at=now,
        )
        with self.engine.connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    id=session.id,
                    account_id=session.account_id,
                    valid=1,
                    user_agent=session.user_agent,
                    created_at=session.created_at,
                    updated_at=session.updated_at,
                )
            )
            conn.commit()
        logger.info("Session %s created for account %s", session.id, account_id)
        return session

    def get_session(self, session_id: str) -> Session:
        """Return the session with this id. Raises SessionNotFound."""
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.id == session_id)).fetchone()
        if row is None:
            raise SessionNotFound(session_id)
        return _row_to_session(row)

    def invalidate_session(self, session_id: str) -> None:
        """Mark a session revoked. Idempotent; raises SessionNotFound for unknown ids.

        The UPDATE only matches still-valid rows, so a repeat call leaves
        updated_at at the original revocation time. When it matches nothing
        the existence probe tells "already revoked" apart from "never existed".
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _sessions.update()
                .where((_sessions.c.id == session_id) & (_sessions.c.valid == 1))
                .values(valid=0, updated_at=_now_iso())
            )
            if result.rowcount == 0:
                exists = conn.execute(select(_sessions.c.id).where(_sessions.c.id == session_id)).fetchone()
                conn.commit()
                if exists is None:
                    raise SessionNotFound(session_id)
                return
            conn.commit()
        logger.info("Session %s revoked", session_id)

    def list_sessions(self, account_id: str, valid_only: bool = True) -> list[Session]:
        """Return an account's sessions, newest first."""
        query = _sessions.select().where(_sessions.c.account_id == account_id)
        if valid_only:
            query = query.where(_sessions.c.valid == 1)
        with self.engine.connect() as conn:
            rows = conn.execute(query.order_by(_sessions.c.created_at.desc())).fetchall()
        return [_row_to_session(r) for r in rows]

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(select(1))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        name=row.name,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        account_id=row.account_id,
        state=SessionState.ACTIVE if row.valid else SessionState.REVOKED,
        user_agent=row.user_agent,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
