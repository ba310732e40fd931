"""
api/routes/v1/addresses.py -- Address book REST endpoints (user-scoped).

Routes:
  GET    /api/v1/addresses          -- list own addresses
  POST   /api/v1/addresses          -- create
  GET    /api/v1/addresses/{id}     -- detail
  PATCH  /api/v1/addresses/{id}     -- partial update
  DELETE /api/v1/addresses/{id}     -- delete

Every route depends on get_current_user, and every store call passes the
authenticated user's id. Another user's address is reported as 404, never
403, so ids cannot be probed.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from addresses.models import Address
from addresses.store import AddressStore
from api.models import AddressCreate, AddressPatch, AddressResponse
from auth.dependencies import get_current_user
from auth.models import User

# Auth policy: every route requires auth. The router-level dependency guards
# routes added later; handlers still declare it to receive the User, and
# FastAPI resolves it once per request.
router = APIRouter(dependencies=[Depends(get_current_user)])

_NOT_FOUND = {"code": "not_found", "message": "Address not found."}


def _store(request: Request) -> AddressStore:
    return request.app.state.address_store


@router.get("/addresses", response_model=list[AddressResponse])
def list_addresses(request: Request, user: User = Depends(get_current_user)) -> list[AddressResponse]:
    return [AddressResponse.from_address(a) for a in _store(request).list_for_user(user.id)]


@router.post("/addresses", response_model=AddressResponse, status_code=201)
def create_address(
    request: Request,
    body: AddressCreate,
    user: User = Depends(get_current_user),
) -> AddressResponse:
    """Create an address for the current user. is_default=true demotes the previous default."""
    store = _store(request)
    address_id = store.create(
        Address(
            user_id=user.id,
            full_name=body.full_name,
            phone=body.phone,
            address_line1=body.address_line1,
            address_line2=body.address_line2,
            city=body.city,
            state=body.state,
            postal_code=body.postal_code,
            country=body.country,
            is_default=body.is_default,
            type=body.type.value,
        )
    )
    return AddressResponse.from_address(store.get(address_id, user.id))


@router.get("/addresses/{address_id}", response_model=AddressResponse)
def get_address(request: Request, address_id: int, user: User = Depends(get_current_user)) -> AddressResponse:
    address = _store(request).get(address_id, user.id)
    if address is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return AddressResponse.from_address(address)


@router.patch("/addresses/{address_id}", response_model=AddressResponse)
def update_address(
    request: Request,
    address_id: int,
    body: AddressPatch,
    user: User = Depends(get_current_user),
) -> AddressResponse:
    """Apply the fields present in the body. An empty body is a 400.

    An explicit null clears address_line2; on any other field it is ignored.
    """
    updates = {
        k: v
        for k, v in body.model_dump(mode="json", exclude_unset=True).items()
        if v is not None or k == "address_line2"
    }
    if not updates:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )
    store = _store(request)
    if not store.update(address_id, user.id, **updates):
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return AddressResponse.from_address(store.get(address_id, user.id))


@router.delete("/addresses/{address_id}", status_code=204)
def delete_address(request: Request, address_id: int, user: User = Depends(get_current_user)) -> Response:
    if not _store(request).delete(address_id, user.id):
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return Response(status_code=204)
