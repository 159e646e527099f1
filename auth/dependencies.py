"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The access token is read from the Authorization: Bearer header and verified
statelessly via SessionManager.authenticate(). No session store lookup
happens on this path.

Silent re-issue: when the access token has expired and the client also sent
its refresh token in an x-refresh header, the request is authenticated with
a freshly minted access token and that token is returned to the client in an
x-access-token response header. A revoked session fails the refresh and the
request is treated as unauthenticated.

try_get_current_claims() is the soft variant (returns None on failure).
get_current_claims() wraps it and raises HTTP 401 if unauthenticated.

Layer rule: auth/dependencies.py may import from fastapi (for Request,
Response, HTTPException) because it is part of the FastAPI dependency
injection system. It does not import from api/.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, Response

from auth.errors import RefreshFailure, TokenExpired, Unauthorized
from auth.sessions import SessionManager

logger = logging.getLogger("storefront.auth")

REFRESH_HEADER = "x-refresh"
REISSUED_ACCESS_HEADER = "x-access-token"


def get_session_manager(request: Request) -> SessionManager:
    """Return the SessionManager wired into app.state by the lifespan."""
    return request.app.state.session_manager


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def try_get_current_claims(request: Request, response: Response) -> dict | None:
    """Authenticate the request from its Bearer token. Returns claims or None.

    Never raises -- callers that need a hard 401 use get_current_claims().
    """
    manager = get_session_manager(request)
    token = _bearer_token(request)
    if token is None:
        return None

    try:
        return manager.authenticate(token)
    except TokenExpired:
        refresh_token = request.headers.get(REFRESH_HEADER)
        if not refresh_token:
            return None
    except Unauthorized as exc:
        logger.info("Rejected access token: %s", type(exc).__name__)
        return None

    try:
        new_token = manager.refresh(refresh_token)
    except RefreshFailure as exc:
        logger.info("Silent re-issue refused (%s)", exc.reason.value)
        return None
    response.headers[REISSUED_ACCESS_HEADER] = new_token
    return manager.authenticate(new_token)


def get_current_claims(request: Request, response: Response) -> dict:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: dict = Depends(get_current_claims)): ...
    """
    claims = try_get_current_claims(request, response)
    if claims is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return claims
