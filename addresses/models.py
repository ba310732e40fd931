"""
addresses/models.py -- Domain dataclass for a user's postal address.

Pattern: Data class (pure data container, zero logic), like auth/models.py.
"""

from __future__ import annotations

from dataclasses import dataclass

ADDRESS_TYPES = ("shipping", "billing", "both")


@dataclass
class Address:
    """A postal address owned by exactly one user.

    At most one address per user has is_default=True; AddressStore clears the
    flag on the others in the same transaction that sets it.
    """

    user_id: int
    full_name: str
    phone: str
    address_line1: str
    city: str
    state: str
    postal_code: str
    address_line2: str | None = None
    country: str = "Philippines"
    is_default: bool = False
    type: str = "both"  # "shipping", "billing", "both"
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
