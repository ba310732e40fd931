"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; these only own the shape.

Layer rule: no imports from api/, addresses/, or client/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered identity.

    email is the login identifier and is stored normalized (stripped,
    lower-cased) so "Jane@X.com" and "jane@x.com" are the same account.
    hashed_password is the bcrypt hash; the plaintext is never stored.
    """

    name: str
    email: str
    hashed_password: str
    role: str = "customer"  # "customer", "admin"
    phone: str | None = None
    id: int | None = None
    created_at: str | None = None
    is_active: bool = True


@dataclass
class AccessToken:
    """A persisted bearer token record.

    token_hash is HMAC-SHA256(SECRET_KEY, raw_token). The raw token is handed
    to the client once at login and never stored. expires_at is None unless
    TOKEN_EXPIRE_SECONDS is configured.
    """

    user_id: int
    token_hash: str
    name: str = "login"
    id: int | None = None
    created_at: str | None = None
    last_used_at: str | None = None
    expires_at: str | None = None
