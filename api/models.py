"""
API request and response models for E-Store REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
addresses/models.py, which own the internal domain representation. Route
handlers map between the two.

Validation messages are raised as PydanticCustomError so the text reaches the
client unprefixed; api/main.py folds them into {"errors": {field: [msg]}}.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from addresses.models import Address
from auth.models import User
from auth.tokens import PASSWORD_MAX_BYTES, password_too_long

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_MIN_LENGTH = 8


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise PydanticCustomError("email", "The email must be a valid email address.")
    return value


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/v1/signup.

    Field order matters: password is declared before password_confirmation so
    the confirmation validator can see the already-validated password.
    Passwords are taken verbatim; only name, email and phone are stripped.
    """

    name: str = Field(max_length=255)
    email: str = Field(max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    password: str = Field(max_length=72)
    password_confirmation: str = Field(max_length=72)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise PydanticCustomError("required", "The name field is required.")
        return value

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("phone")
    @classmethod
    def blank_phone_is_none(cls, value: Optional[str]) -> Optional[str]:
        return (value or "").strip() or None

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < PASSWORD_MIN_LENGTH:
            raise PydanticCustomError(
                "password_too_short",
                "The password must be at least {min_length} characters.",
                {"min_length": PASSWORD_MIN_LENGTH},
            )
        if password_too_long(value):
            raise PydanticCustomError(
                "password_too_long",
                "The password may not be greater than {max_bytes} bytes.",
                {"max_bytes": PASSWORD_MAX_BYTES},
            )
        return value

    @field_validator("password_confirmation")
    @classmethod
    def validate_confirmation(cls, value: str, info: ValidationInfo) -> str:
        # password missing from info.data means it already failed; do not pile on.
        password = info.data.get("password")
        if password is not None and value != password:
            raise PydanticCustomError("password_mismatch", "The password confirmation does not match.")
        return value


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/login."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public user profile. Never carries the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    phone: Optional[str]
    role: str
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            role=user.role,
            created_at=user.created_at or "",
        )


class LoginResponse(BaseModel):
    """Response body for POST /api/v1/login."""

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    user: UserResponse


class MessageResponse(BaseModel):
    """General (non-field) response or error: {"message": ...}."""

    model_config = ConfigDict(frozen=True)

    message: str


class ValidationErrorResponse(BaseModel):
    """422 body: a summary message plus per-field messages."""

    model_config = ConfigDict(frozen=True)

    message: str
    errors: dict[str, list[str]]


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


class AddressTypeEnum(str, Enum):
    shipping = "shipping"
    billing = "billing"
    both = "both"


class AddressCreate(BaseModel):
    """Request body for POST /api/v1/addresses."""

    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: str = Field(min_length=1, max_length=255)
    phone: str = Field(min_length=1, max_length=50)
    address_line1: str = Field(min_length=1, max_length=255)
    address_line2: Optional[str] = Field(default=None, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    postal_code: str = Field(min_length=1, max_length=20)
    country: str = Field(default="Philippines", min_length=1, max_length=100)
    is_default: bool = False
    type: AddressTypeEnum = AddressTypeEnum.both


class AddressPatch(BaseModel):
    """Request body for PATCH /api/v1/addresses/{id}. Omitted fields are unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=50)
    address_line1: Optional[str] = Field(default=None, min_length=1, max_length=255)
    address_line2: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    state: Optional[str] = Field(default=None, min_length=1, max_length=100)
    postal_code: Optional[str] = Field(default=None, min_length=1, max_length=20)
    country: Optional[str] = Field(default=None, min_length=1, max_length=100)
    is_default: Optional[bool] = None
    type: Optional[AddressTypeEnum] = None


class AddressResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    full_name: str
    phone: str
    address_line1: str
    address_line2: Optional[str]
    city: str
    state: str
    postal_code: str
    country: str
    is_default: bool
    type: str
    created_at: str
    updated_at: str

    @classmethod
    def from_address(cls, address: Address) -> "AddressResponse":
        """Factory Method -- the mapping lives beside the output model."""
        return cls(
            id=address.id,
            full_name=address.full_name,
            phone=address.phone,
            address_line1=address.address_line1,
            address_line2=address.address_line2,
            city=address.city,
            state=address.state,
            postal_code=address.postal_code,
            country=address.country,
            is_default=address.is_default,
            type=address.type,
            created_at=address.created_at or "",
            updated_at=address.updated_at or "",
        )
