"""
disclosure.py
-------------
Purpose:
    On-demand credential disclosure for the signed-in user, plus the
    sharing audit trail.

Usage:
    1. POST /credentials/share - Decrypt and mail credentials to contacts
    2. GET /credentials/share/history - Recent share events

The secret key in the request body is used for this call only and is
never stored or logged.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from escrow.auth.verify import current_user_id
from escrow.infrastructure.observability.logging import get_logger
from escrow.models.api.escrow_request import ShareCredentialsRequest
from escrow.models.api.escrow_response import ShareCredentialsResponse, SharingHistoryResponse
from escrow.models.domain.escrow_domain import ShareReason
from escrow.services.disclosure_service import disclosure_service

router = APIRouter(prefix="/credentials/share", tags=["disclosure"])
logger = get_logger(__name__)


@router.post("", response_model=ShareCredentialsResponse)
async def share_credentials(
    request: ShareCredentialsRequest, user_id: str = Depends(current_user_id)
):
    """
    Share every stored credential with the emergency contacts, or with the
    listed recipients that are active contacts.

    Returns 200 when at least one recipient received the email, 400 otherwise.
    Recipients that failed are listed in failed_emails either way.
    """
    result = await disclosure_service.share_credentials(
        user_id,
        request.secret_key,
        reason=ShareReason(request.reason),
        recipients=request.recipients,
    )

    body = ShareCredentialsResponse(**result.to_dict())
    if not result.success:
        logger.info("Manual share unsuccessful", user_id=user_id, error=result.error)
        return JSONResponse(status_code=400, content=body.model_dump())
    return body


@router.get("/history", response_model=SharingHistoryResponse)
async def sharing_history(
    limit: int = Query(10, ge=1, le=100), user_id: str = Depends(current_user_id)
):
    shares = await disclosure_service.sharing_history(user_id, limit)
    return SharingHistoryResponse(shares=shares)
