"""
auth/dependencies.py -- FastAPI Depends() helpers guarding protected routes.

Every user-scoped route declares one of these dependencies. FastAPI runs the
dependency before the handler body, so a failed check short-circuits with
401/403 and the handler never executes.

get_bearer_token()      -- extracts the raw token, 401 when the header is absent.
try_get_current_user()  -- soft variant, returns None on any failure.
get_current_user()      -- hard variant, raises HTTP 401 if unauthenticated.
require_admin()         -- wraps get_current_user(), raises HTTP 403 if not admin.

On success the resolved user and the raw token are attached to
request.state so downstream code (logging, logout) can read them.

Layer rule: may import from fastapi because this module is part of the
FastAPI dependency injection system. No imports from api/ or addresses/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import User

_UNAUTHENTICATED = {"code": "unauthenticated", "message": "Unauthenticated."}


def _extract_bearer(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


def get_bearer_token(request: Request) -> str:
    """Return the raw bearer token. Raises HTTP 401 if no Authorization: Bearer header."""
    token = _extract_bearer(request)
    if token is None:
        raise HTTPException(
            status_code=401,
            detail=_UNAUTHENTICATED,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


def try_get_current_user(request: Request) -> User | None:
    """Resolve the bearer token to an active User, or None.

    Never raises -- callers that need a hard 401 should use get_current_user().
    """
    token = _extract_bearer(request)
    if token is None:
        return None
    user_id = request.app.state.token_issuer.resolve(token)
    if user_id is None:
        return None
    user = request.app.state.user_store.get_by_id(user_id)
    if user is None or not user.is_active:
        return None
    request.state.user = user
    request.state.access_token = token
    return user


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail=_UNAUTHENTICATED,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(request: Request) -> User:
    """Require admin role. Raises HTTP 401 if unauthenticated, HTTP 403 if not admin."""
    user = get_current_user(request)
    if user.role != "admin":
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "This action is unauthorized."},
        )
    return user
