"""
api/routes/v1/users.py -- Account registration endpoint.

Routes:
  POST /api/v1/users -- create an account; returns its public fields

The password is hashed here with auth.credentials.hash_password() before it
reaches the store. The store never sees plaintext.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from api.models import AccountCreate, AccountResponse
from auth.credentials import hash_password
from auth.errors import DuplicateAccount
from auth.store import AccountStore

logger = logging.getLogger("storefront.api")

# Auth policy:
# - POST /api/v1/users: public -- self-registration
router = APIRouter()


@router.post("/users", response_model=AccountResponse, status_code=201)
def create_account(request: Request, body: AccountCreate) -> AccountResponse:
    """Register a new account.

    400 when password and password_confirmation differ, 409 when the email
    is already registered (compared case-insensitively).
    """
    if body.password != body.password_confirmation:
        raise HTTPException(
            status_code=400,
            detail={"code": "password_mismatch", "message": "Passwords do not match."},
        )

    accounts: AccountStore = request.app.state.account_store
    try:
        account = accounts.create_account(body.email, body.name, hash_password(body.password))
    except DuplicateAccount as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "An account with that email already exists."},
        ) from exc

    logger.info("Account %s registered", account.id)
    return AccountResponse(
        id=account.id,
        email=account.email,
        name=account.name,
        created_at=account.created_at,
    )
