"""
addresses/store.py -- SQLAlchemy Core persistence for user addresses.

Pattern: Repository + Data Mapper (same as auth/store.py).

IDOR guard: every read and write filters on (id, user_id). A user who knows
another user's address id gets the same "not found" answer as for an id
that does not exist.

Default flag: set_default-style writes run inside one engine.begin()
transaction so readers never observe two defaults for the same user.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table
from sqlalchemy.engine import Engine

from addresses.models import Address
from auth.store import make_engine
from core.config import get_settings

_metadata = MetaData()

_addresses = Table(
    "addresses",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("full_name", String(255), nullable=False),
    Column("phone", String(50), nullable=False),
    Column("address_line1", String(255), nullable=False),
    Column("address_line2", String(255)),
    Column("city", String(100), nullable=False),
    Column("state", String(100), nullable=False),
    Column("postal_code", String(20), nullable=False),
    Column("country", String(100), nullable=False, server_default="Philippines"),
    Column("is_default", Integer, nullable=False, server_default="0"),
    Column("type", String(10), nullable=False, server_default="both"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Columns a PATCH may touch. user_id, id and timestamps are never client-writable.
_MUTABLE_FIELDS = {
    "full_name",
    "phone",
    "address_line1",
    "address_line2",
    "city",
    "state",
    "postal_code",
    "country",
    "is_default",
    "type",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AddressStore:
    """Repository for Address entities, always scoped to an owning user."""

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        _metadata.create_all(self.engine)

    def create(self, address: Address) -> int:
        """Insert an address and return its ID. Clears other defaults if is_default."""
        now = _now_iso()
        with self.engine.begin() as conn:
            if address.is_default:
                conn.execute(
                    _addresses.update().where(_addresses.c.user_id == address.user_id).values(is_default=0)
                )
            result = conn.execute(
                _addresses.insert().values(
                    user_id=address.user_id,
                    full_name=address.full_name,
                    phone=address.phone,
                    address_line1=address.address_line1,
                    address_line2=address.address_line2,
                    city=address.city,
                    state=address.state,
                    postal_code=address.postal_code,
                    country=address.country,
                    is_default=1 if address.is_default else 0,
                    type=address.type,
                    created_at=now,
                    updated_at=now,
                )
            )
            return result.inserted_primary_key[0]

    def list_for_user(self, user_id: int) -> list[Address]:
        """Return the user's addresses, default first, then oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _addresses.select()
                .where(_addresses.c.user_id == user_id)
                .order_by(_addresses.c.is_default.desc(), _addresses.c.id)
            ).fetchall()
        return [_row_to_address(r) for r in rows]

    def get(self, address_id: int, user_id: int) -> Address | None:
        """Return the address if it exists AND belongs to user_id."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _addresses.select().where((_addresses.c.id == address_id) & (_addresses.c.user_id == user_id))
            ).fetchone()
        return _row_to_address(row) if row is not None else None

    def update(self, address_id: int, user_id: int, **fields) -> bool:
        """Update mutable fields on an owned address.

        Unknown field names raise ValueError. Returns True if a row was
        updated, False if the address was not found for this user.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown address fields: {unknown!r}")
        if "is_default" in fields:
            fields["is_default"] = 1 if fields["is_default"] else 0
        fields["updated_at"] = _now_iso()
        owned = (_addresses.c.id == address_id) & (_addresses.c.user_id == user_id)
        with self.engine.begin() as conn:
            exists = conn.execute(_addresses.select().where(owned)).fetchone()
            if exists is None:
                return False
            if fields.get("is_default"):
                conn.execute(
                    _addresses.update()
                    .where((_addresses.c.user_id == user_id) & (_addresses.c.id != address_id))
                    .values(is_default=0)
                )
            conn.execute(_addresses.update().where(owned).values(**fields))
        return True

    def delete(self, address_id: int, user_id: int) -> bool:
        """Delete an owned address. Returns True if deleted, False if not found."""
        with self.engine.begin() as conn:
            result = conn.execute(
                _addresses.delete().where((_addresses.c.id == address_id) & (_addresses.c.user_id == user_id))
            )
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


def _row_to_address(row) -> Address:
    return Address(
        id=row.id,
        user_id=row.user_id,
        full_name=row.full_name,
        phone=row.phone,
        address_line1=row.address_line1,
        address_line2=row.address_line2,
        city=row.city,
        state=row.state,
        postal_code=row.postal_code,
        country=row.country,
        is_default=bool(row.is_default),
        type=row.type,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
