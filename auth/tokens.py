"""
auth/tokens.py -- Password hashing, credential checks, and the bearer token issuer.

Security design decisions:
  Passwords: bcrypt directly (no passlib wrapper). The _DUMMY_HASH constant
       enables timing equalization in authenticate_user() so response time
       does not reveal whether an email is registered.

  Tokens: opaque strings "est_<64 hex>" from secrets.token_hex(32) -- 256 bits
       of entropy, never sequential. The database stores only
       HMAC-SHA256(SECRET_KEY, raw_token), so a leaked database cannot be
       replayed without also knowing SECRET_KEY, and lookup stays O(1).

  Lifecycle: a token is valid from issue() until revoke(). When
       TOKEN_EXPIRE_SECONDS > 0 it also stops resolving after expires_at.

Layer rule: no imports from api/, addresses/, or client/. Import from core/
is allowed.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt

from auth.models import AccessToken
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("estore.auth")

_TOKEN_PREFIX = "est_"
_TOKEN_RE = re.compile(r"^est_[0-9a-f]{64}$")

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


# bcrypt rejects input longer than this many bytes (older releases truncate).
PASSWORD_MAX_BYTES = 72


def password_too_long(plain: str) -> bool:
    """True if the UTF-8 encoding of plain exceeds what bcrypt accepts."""
    return len(plain.encode("utf-8")) > PASSWORD_MAX_BYTES


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Callers reject passwords where password_too_long() is true before
    hashing. Multi-byte characters count by their encoded length.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash or >72-byte input on newer bcrypt releases.
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("estore_timing_dummy")


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure. Callers must respond
    identically to every None so the client cannot tell the cases apart.
    """
    user = store.get_by_email(email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        return None
    return user


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------


def generate_token() -> str:
    """Generate a new bearer token in the format: est_<64 hex chars>."""
    return f"{_TOKEN_PREFIX}{secrets.token_hex(32)}"


def hash_token(raw_token: str) -> str:
    """Return HMAC-SHA256(SECRET_KEY, raw_token) as a hex string."""
    return hmac.new(
        get_settings().secret_key.encode(),
        raw_token.encode(),
        hashlib.sha256,
    ).hexdigest()


def is_well_formed(raw_token: str | None) -> bool:
    """Cheap shape check so garbage never reaches the database."""
    return bool(raw_token) and _TOKEN_RE.match(raw_token) is not None


# ---------------------------------------------------------------------------
# Token issuer
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Issues, resolves, and revokes bearer tokens backed by a UserStore.

    Usage:
        issuer = TokenIssuer(store)
        token = issuer.issue(user.id)
        issuer.resolve(token)   # -> user.id
        issuer.revoke(token)    # -> True
        issuer.resolve(token)   # -> None
    """

    def __init__(self, store: UserStore, expire_seconds: int | None = None) -> None:
        self.store = store
        self.expire_seconds = get_settings().token_expire_seconds if expire_seconds is None else expire_seconds

    def issue(self, user_id: int, name: str = "login") -> str:
        """Create and persist a fresh token for user_id. Returns the raw token.

        The raw value is returned exactly once; only its HMAC is stored.
        """
        raw = generate_token()
        expires_at = None
        if self.expire_seconds > 0:
            expires_at = (datetime.now(timezone.utc) + timedelta(seconds=self.expire_seconds)).isoformat()
        self.store.create_token(
            AccessToken(
                user_id=user_id,
                token_hash=hash_token(raw),
                name=name,
                expires_at=expires_at,
            )
        )
        return raw

    def resolve(self, raw_token: str | None) -> int | None:
        """Return the owning user_id, or None for malformed, unknown, revoked or expired tokens."""
        if not is_well_formed(raw_token):
            return None
        record = self.store.get_token_by_hash(hash_token(raw_token))
        if record is None:
            return None
        if record.expires_at and record.expires_at <= datetime.now(timezone.utc).isoformat():
            return None
        self.store.touch_token(record.id)
        return record.user_id

    def revoke(self, raw_token: str | None) -> bool:
        """Delete the token. Returns False (not_found) instead of raising when
        the token is malformed, unknown, or already revoked."""
        if not is_well_formed(raw_token):
            logger.info("Revoke skipped: malformed token")
            return False
        removed = self.store.delete_token_by_hash(hash_token(raw_token))
        if not removed:
            logger.info("Revoke found no matching token")
        return removed
