"""
api/routes/v1/sessions.py -- Session (login / refresh / logout) REST endpoints.

Routes:
  POST   /api/v1/sessions           -- password login; returns access + refresh token
  POST   /api/v1/sessions/refresh   -- exchange a refresh token for a new access token
  GET    /api/v1/sessions           -- caller's still-valid sessions (requires auth)
  DELETE /api/v1/sessions           -- revoke the caller's current session (requires auth)
  GET    /api/v1/me                 -- public claims of the caller's access token (requires auth)

Security:
  Login and refresh failures return one fixed body regardless of cause, so a
  client cannot tell "no such account" from "wrong password", or "expired"
  from "revoked".
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import (
    AccessTokenResponse,
    LoginRequest,
    LogoutResponse,
    MeResponse,
    RefreshRequest,
    SessionResponse,
    TokenPairResponse,
)
from auth.dependencies import get_current_claims, get_session_manager
from auth.errors import LOGIN_FAILED_MESSAGE, REFRESH_FAILED_MESSAGE, LoginFailure, RefreshFailure, SessionNotFound
from auth.models import Session
from auth.sessions import SessionManager

# Auth policy:
# - POST   /api/v1/sessions:          public -- login endpoint must be unauthenticated
# - POST   /api/v1/sessions/refresh:  public -- the refresh token is the credential
# - GET    /api/v1/sessions:          requires auth (get_current_claims)
# - DELETE /api/v1/sessions:          requires auth (get_current_claims)
# - GET    /api/v1/me:                requires auth (get_current_claims)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/sessions", response_model=TokenPairResponse)
def create_session(
    request: Request,
    response: Response,
    body: LoginRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> TokenPairResponse:
    """Log in with email and password.

    The User-Agent header is recorded on the session for audit only.
    """
    try:
        pair = manager.login(body.email, body.password, request.headers.get("user-agent", ""))
    except LoginFailure as exc:
        raise HTTPException(
            status_code=401,
            detail={"code": "bad_credentials", "message": LOGIN_FAILED_MESSAGE},
            headers={"Cache-Control": "no-store"},
        ) from exc

    response.headers["Cache-Control"] = "no-store"
    return TokenPairResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/sessions/refresh", response_model=AccessTokenResponse)
def refresh_session(
    response: Response,
    body: RefreshRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> AccessTokenResponse:
    """Mint a new access token. The refresh token itself stays valid."""
    try:
        access_token = manager.refresh(body.refresh_token)
    except RefreshFailure as exc:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": REFRESH_FAILED_MESSAGE},
            headers={"Cache-Control": "no-store"},
        ) from exc

    response.headers["Cache-Control"] = "no-store"
    return AccessTokenResponse(access_token=access_token)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/sessions", response_model=list[SessionResponse])
def list_sessions(
    claims: dict = Depends(get_current_claims),
    manager: SessionManager = Depends(get_session_manager),
) -> list[SessionResponse]:
    return [_session_to_response(s) for s in manager.list_sessions(claims["sub"])]


@router.delete("/sessions", response_model=LogoutResponse)
def delete_session(
    claims: dict = Depends(get_current_claims),
    manager: SessionManager = Depends(get_session_manager),
) -> LogoutResponse:
    """Revoke the session the caller's access token belongs to.

    The access token itself stays verifiable until it expires; the refresh
    token stops working immediately.
    """
    try:
        manager.logout(claims["session"])
    except SessionNotFound as exc:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Session not found."},
        ) from exc
    return LogoutResponse()


@router.get("/me", response_model=MeResponse)
def me(claims: dict = Depends(get_current_claims)) -> MeResponse:
    return MeResponse(
        id=claims["sub"],
        email=claims["email"],
        name=claims["name"],
        session=claims["session"],
        issued_at=claims["iat"],
        expires_at=claims["exp"],
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _session_to_response(session: Session) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        valid=session.valid,
        user_agent=session.user_agent,
        created_at=session.created_at,
        updated_at=session.updated_at,
    )
