"""
emergency_contacts.py
---------------------
Purpose:
    Manage the trusted recipients that receive credentials on disclosure.

Usage:
    1. GET /emergency-contacts - List active contacts
    2. POST /emergency-contacts - Add a contact
    3. PATCH /emergency-contacts/{id} - Update email, label or active flag
    4. DELETE /emergency-contacts/{id} - Remove a contact

A contact that does not exist and a contact owned by someone else both
return 404.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from escrow.auth.verify import current_user_id
from escrow.infrastructure.observability.logging import get_logger
from escrow.models.api.escrow_request import (
    EmergencyContactCreateRequest,
    EmergencyContactUpdateRequest,
)
from escrow.models.api.escrow_response import EmergencyContactListResponse
from escrow.models.domain.errors import (
    DuplicateContact,
    EscrowError,
    InvalidEmail,
    NotFoundOrUnauthorized,
)
from escrow.models.domain.escrow_domain import EmergencyContact
from escrow.services.emergency_contact_service import emergency_contact_service

router = APIRouter(prefix="/emergency-contacts", tags=["emergency-contacts"])
logger = get_logger(__name__)

_STATUS_BY_ERROR = {
    InvalidEmail: status.HTTP_400_BAD_REQUEST,
    DuplicateContact: status.HTTP_409_CONFLICT,
    NotFoundOrUnauthorized: status.HTTP_404_NOT_FOUND,
}


def _to_http(error: EscrowError) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_ERROR.get(type(error), status.HTTP_400_BAD_REQUEST),
        detail={"code": error.code, "message": error.message},
    )


@router.get("", response_model=EmergencyContactListResponse)
async def list_contacts(
    include_inactive: bool = Query(False), user_id: str = Depends(current_user_id)
):
    contacts = await emergency_contact_service.list(user_id, include_inactive=include_inactive)
    return EmergencyContactListResponse(contacts=contacts, count=len(contacts))


@router.post("", response_model=EmergencyContact, status_code=status.HTTP_201_CREATED)
async def add_contact(
    request: EmergencyContactCreateRequest, user_id: str = Depends(current_user_id)
):
    try:
        return await emergency_contact_service.add(user_id, request.email, request.label)
    except EscrowError as e:
        raise _to_http(e) from e


@router.patch("/{contact_id}", response_model=EmergencyContact)
async def update_contact(
    contact_id: int,
    request: EmergencyContactUpdateRequest,
    user_id: str = Depends(current_user_id),
):
    try:
        return await emergency_contact_service.update(user_id, contact_id, request.to_patch())
    except EscrowError as e:
        raise _to_http(e) from e


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(
    contact_id: int,
    hard: bool = Query(True, description="False deactivates instead of deleting"),
    user_id: str = Depends(current_user_id),
):
    try:
        await emergency_contact_service.remove(user_id, contact_id, hard=hard)
    except EscrowError as e:
        raise _to_http(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
