"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper (same as addresses/store.py).
UserStore is the repository; _row_to_user / _row_to_token are the mappers.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  users.email carries a UNIQUE constraint. Two concurrent signups with the
  same email race on the INSERT and the database lets exactly one through;
  the loser gets IntegrityError, which the signup route turns into a 422.

  personal_access_tokens.token_hash is UNIQUE and indexed, so resolving a
  bearer token is a single indexed lookup. Issue and revoke are single
  INSERT / DELETE statements: a concurrent reader sees the token either
  fully present or fully gone.

Layer rule: no imports from api/, addresses/, or client/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine

from auth.models import AccessToken, User
from core.config import get_settings

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("phone", String(50)),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default="customer"),
    Column("created_at", String(32), nullable=False),
    Column("is_active", Integer, nullable=False, server_default="1"),
)

_tokens = Table(
    "personal_access_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("name", String(100), nullable=False),
    Column("token_hash", String(64), nullable=False, unique=True),  # HMAC-SHA256 hex
    Column("created_at", String(32), nullable=False),
    Column("last_used_at", String(32)),
    Column("expires_at", String(32)),  # NULL = revocation-only
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine with the SQLite settings every store needs."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and AccessToken entities.

    Usage:
        store = UserStore()
        uid = store.create_user(User(name="Jane", email="jane@x.com", hashed_password=hash_password("secret12")))
        user = store.get_by_email("jane@x.com")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=user.name,
                    email=user.email.strip().lower(),
                    phone=user.phone,
                    hashed_password=user.hashed_password,
                    role=user.role,
                    created_at=_now_iso(),
                    is_active=1 if user.is_active else 0,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (normalized). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email.strip().lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by email. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.email)).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Token queries
    # ------------------------------------------------------------------

    def create_token(self, token: AccessToken) -> int:
        """Insert a token record and return its ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _tokens.insert().values(
                    user_id=token.user_id,
                    name=token.name,
                    token_hash=token.token_hash,
                    created_at=_now_iso(),
                    expires_at=token.expires_at,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_token_by_hash(self, token_hash: str) -> AccessToken | None:
        """Look up a token record by its HMAC hash. O(1) via UNIQUE index."""
        with self.engine.connect() as conn:
            row = conn.execute(_tokens.select().where(_tokens.c.token_hash == token_hash)).fetchone()
        return _row_to_token(row) if row is not None else None

    def touch_token(self, token_id: int) -> None:
        """Stamp last_used_at after a successful resolve."""
        with self.engine.connect() as conn:
            conn.execute(_tokens.update().where(_tokens.c.id == token_id).values(last_used_at=_now_iso()))
            conn.commit()

    def delete_token_by_hash(self, token_hash: str) -> bool:
        """Delete a token record. Returns True if a row was removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_tokens.delete().where(_tokens.c.token_hash == token_hash))
            conn.commit()
        return result.rowcount > 0

    def delete_expired_tokens(self, now_iso: str | None = None) -> int:
        """Delete token records whose expires_at has passed. Returns rows removed.

        ISO 8601 UTC timestamps sort lexically, so a string comparison is
        a correct time comparison here.
        """
        cutoff = now_iso or _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _tokens.delete().where(_tokens.c.expires_at.is_not(None) & (_tokens.c.expires_at < cutoff))
            )
            conn.commit()
        return result.rowcount

    def count_tokens(self, user_id: int) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                text("SELECT COUNT(*) FROM personal_access_tokens WHERE user_id = :uid"), {"uid": user_id}
            ).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        hashed_password=row.hashed_password,
        role=row.role,
        created_at=row.created_at,
        is_active=bool(row.is_active),
    )


def _row_to_token(row) -> AccessToken:
    return AccessToken(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        token_hash=row.token_hash,
        created_at=row.created_at,
        last_used_at=row.last_used_at,
        expires_at=row.expires_at,
    )
