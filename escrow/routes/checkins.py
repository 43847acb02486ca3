"""
checkins.py
-----------
Purpose:
    Proof-of-life endpoints. A check-in resets the user's inactivity clock.

Usage:
    1. POST /checkins - Record a check-in
    2. GET /checkins - Recent check-in history
    3. GET /checkins/status - Days since last check-in and days until disclosure
"""

from fastapi import APIRouter, Depends, Query, Request, status

from escrow.auth.verify import current_user_id
from escrow.infrastructure.observability.logging import get_logger
from escrow.models.api.escrow_response import (
    CheckInHistoryResponse,
    CheckInResponse,
    InactivityStatusResponse,
)
from escrow.services.activity_tracker import activity_tracker

router = APIRouter(prefix="/checkins", tags=["checkins"])
logger = get_logger(__name__)


@router.post("", response_model=CheckInResponse, status_code=status.HTTP_201_CREATED)
async def check_in(request: Request, user_id: str = Depends(current_user_id)):
    checkin = await activity_tracker.record_check_in(
        user_id,
        ip_address=getattr(request.state, "ip_address", None),
        user_agent=getattr(request.state, "user_agent", None),
    )
    return CheckInResponse(checkin=checkin)


@router.get("", response_model=CheckInHistoryResponse)
async def check_in_history(
    limit: int = Query(10, ge=1, le=100), user_id: str = Depends(current_user_id)
):
    checkins = await activity_tracker.check_in_history(user_id, limit)
    return CheckInHistoryResponse(
        last_check_in=checkins[0].checkin_at if checkins else None,
        checkins=checkins,
    )


@router.get("/status", response_model=InactivityStatusResponse)
async def inactivity_status(user_id: str = Depends(current_user_id)):
    last_check_in = await activity_tracker.last_check_in(user_id)
    current = await activity_tracker.inactivity_status(user_id)
    return InactivityStatusResponse(**current.model_dump(), last_check_in=last_check_in)
