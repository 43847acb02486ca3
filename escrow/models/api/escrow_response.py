# escrow/models/api/escrow_response.py
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from escrow.models.domain.escrow_domain import (
    CheckIn,
    EmergencyContact,
    InactivityStatus,
    Notification,
    NotificationSettings,
    ShareEvent,
)


class CheckInResponse(BaseModel):
    success: bool = True
    checkin: CheckIn


class CheckInHistoryResponse(BaseModel):
    last_check_in: datetime | None
    checkins: list[CheckIn]


class InactivityStatusResponse(InactivityStatus):
    """GET /checkins/status"""

    last_check_in: datetime | None = None


class EmergencyContactListResponse(BaseModel):
    contacts: list[EmergencyContact]
    count: int


class ShareCredentialsResponse(BaseModel):
    success: bool
    shared_count: int
    failed_emails: list[str] = Field(default_factory=list)
    credential_count: int = 0
    failed_items: list[str] = Field(default_factory=list)
    error: str | None = None
    unrecorded_emails: list[str] = Field(default_factory=list)


class SharingHistoryResponse(BaseModel):
    shares: list[ShareEvent]


class NotificationListResponse(BaseModel):
    notifications: list[Notification]
    unread_count: int


class NotificationSettingsResponse(BaseModel):
    settings: NotificationSettings


class SweepResponse(BaseModel):
    """Cron trigger response. Only the first few errors are returned."""

    success: bool
    message: str
    result: dict[str, Any]
