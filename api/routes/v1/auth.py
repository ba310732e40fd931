"""
api/routes/v1/auth.py -- Authentication and user REST endpoints.

Routes:
  POST /api/v1/signup   -- create an account (no token issued)
  POST /api/v1/login    -- email/password login; returns {token, user}
  POST /api/v1/logout   -- revoke the presented bearer token
  GET  /api/v1/user     -- current user profile (requires auth)
  GET  /api/v1/users    -- list all users (admin only)

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  authenticate_user() provides timing equalization -- use it, never inline.
  Unknown email and wrong password return the identical 401 body.
  Cache-Control: no-store on login responses so tokens are never cached.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter
from api.models import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    SignupRequest,
    UserResponse,
)
from auth.dependencies import get_bearer_token, get_current_user, require_admin
from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenIssuer, authenticate_user, hash_password
from core.config import get_settings

logger = logging.getLogger("estore.api.auth")

# Auth policy:
# - POST /signup:  public
# - POST /login:   public, rate limited
# - POST /logout:  bearer header required; unknown/revoked tokens still 200
# - GET  /user:    requires auth (get_current_user)
# - GET  /users:   requires admin (require_admin)
router = APIRouter()

_INVALID_CREDENTIALS = {"code": "invalid_credentials", "message": "Invalid credentials."}


def _email_taken(email: str) -> RequestValidationError:
    """Build the same 422 shape pydantic produces, so one handler renders both."""
    return RequestValidationError(
        [
            {
                "type": "unique",
                "loc": ("body", "email"),
                "msg": "The email has already been taken.",
                "input": email,
            }
        ]
    )


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/signup", response_model=UserResponse, status_code=201)
def signup(request: Request, body: SignupRequest) -> UserResponse:
    """Create a customer account and return its public profile.

    No token is issued here; the client switches to the login view and the
    user logs in explicitly. The pre-check gives the common duplicate case a
    cheap answer; the UNIQUE constraint settles concurrent races, where the
    losing INSERT raises IntegrityError and gets the same 422.
    """
    user_store: UserStore = request.app.state.user_store

    if user_store.get_by_email(body.email) is not None:
        raise _email_taken(body.email)

    new_user = User(
        name=body.name,
        email=body.email,
        phone=body.phone,
        hashed_password=hash_password(body.password),
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        raise _email_taken(body.email) from exc

    logger.info("Account created (user_id=%d)", user_id)
    return UserResponse.from_user(user_store.get_by_id(user_id))


@limiter.limit(lambda: get_settings().login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a fresh bearer token.

    Returns the same generic 401 for unknown email and wrong password so the
    response does not leak which emails are registered.
    """
    user_store: UserStore = request.app.state.user_store
    issuer: TokenIssuer = request.app.state.token_issuer

    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        logger.info("Login failed")
        resp = JSONResponse(status_code=401, content=_INVALID_CREDENTIALS)
        resp.headers["Cache-Control"] = "no-store"
        return resp

    token = issuer.issue(user.id)
    logger.info("Login succeeded (user_id=%d)", user.id)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(token=token, user=UserResponse.from_user(user)).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, token: str = Depends(get_bearer_token)) -> MessageResponse:
    """Revoke the presented token.

    Idempotent from the caller's side: a token that is already revoked (or
    was never issued) still gets 200, so a double logout is not an error.
    """
    issuer: TokenIssuer = request.app.state.token_issuer
    if not issuer.revoke(token):
        logger.info("Logout with a token that was already invalid")
    return MessageResponse(message="Logged out.")


@router.get("/user", response_model=UserResponse)
def current_user(user: User = Depends(get_current_user)) -> UserResponse:
    """Return the profile of the user the bearer token belongs to."""
    return UserResponse.from_user(user)


@router.get("/users", response_model=list[UserResponse])
def list_users(request: Request, admin: User = Depends(require_admin)) -> list[UserResponse]:
    """List all accounts. Admin only."""
    user_store: UserStore = request.app.state.user_store
    return [UserResponse.from_user(u) for u in user_store.list_users()]
