"""
notifications.py
----------------
Purpose:
    In-app notification inbox for the signed-in user.

Usage:
    1. GET /notifications - Unread first, newest first
    2. POST /notifications/{id}/read - Mark one notification read
    3. GET /notifications/settings - Settings, created with defaults on first use
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from escrow.auth.verify import current_user_id
from escrow.models.api.escrow_response import (
    NotificationListResponse,
    NotificationSettingsResponse,
)
from escrow.services.notification_service import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    limit: int = Query(50, ge=1, le=200), user_id: str = Depends(current_user_id)
):
    notifications = await notification_service.list_notifications(user_id, limit)
    return NotificationListResponse(
        notifications=notifications,
        unread_count=sum(1 for n in notifications if not n.is_read),
    )


@router.post("/{notification_id}/read")
async def mark_read(notification_id: int, user_id: str = Depends(current_user_id)):
    if not await notification_service.mark_read(user_id, notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found or unauthorized")
    return {"success": True}


@router.get("/settings", response_model=NotificationSettingsResponse)
async def get_settings(user_id: str = Depends(current_user_id)):
    settings = await notification_service.get_or_create_settings(user_id)
    return NotificationSettingsResponse(settings=settings)
