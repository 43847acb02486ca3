from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter


class ShareReason(StrEnum):
    MANUAL = "MANUAL"
    EMERGENCY = "EMERGENCY"
    INACTIVITY = "INACTIVITY"


class NotificationType(StrEnum):
    LOW_BALANCE = "LOW_BALANCE"
    DUE_DATE_REMINDER = "DUE_DATE_REMINDER"
    SPENDING_ALERT = "SPENDING_ALERT"
    INVESTMENT_MATURITY = "INVESTMENT_MATURITY"
    DEBT_REMINDER = "DEBT_REMINDER"
    LOAN_REMINDER = "LOAN_REMINDER"
    PASSWORD_EXPIRY = "PASSWORD_EXPIRY"
    MONTHLY_SUMMARY = "MONTHLY_SUMMARY"
    PASSWORD_SHARED = "PASSWORD_SHARED"
    INACTIVITY_REMINDER = "INACTIVITY_REMINDER"
    INACTIVITY_WARNING = "INACTIVITY_WARNING"


class NotificationPriority(StrEnum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class UserIdentity(BaseModel):
    """Read-only view of a dashboard user."""

    user_id: str
    email: str | None = None
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Unknown User"


class CheckIn(BaseModel):
    id: int
    user_id: str
    checkin_at: datetime
    ip_address: str | None = None
    user_agent: str | None = None


class InactiveUser(BaseModel):
    user_id: str
    email: str | None = None
    name: str | None = None
    last_check_in: datetime | None = None


class InactivityStatus(BaseModel):
    should_warn: bool
    never_checked_in: bool
    days_since_last_check_in: int | None
    days_until_disclosure: int


class EmergencyContact(BaseModel):
    id: int
    user_id: str
    email: str
    label: str | None = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class ContactPatch(BaseModel):
    """Partial update for an emergency contact; unset fields are left alone."""

    email: str | None = None
    label: str | None = None
    is_active: bool | None = None


class Credential(BaseModel):
    """Stored credential. Secret and PIN stay encrypted at rest."""

    id: int
    user_id: str
    website_name: str
    description: str | None = None
    username: str
    encrypted_secret: str
    encrypted_pin: str | None = None
    notes: str | None = None
    category: str | None = None
    validity: datetime | None = None


class DecryptedCredential(BaseModel):
    website_name: str
    description: str | None = None
    username: str
    password: str
    transaction_pin: str | None = None
    notes: str | None = None
    category: str | None = None
    validity: datetime | None = None


class ShareEvent(BaseModel):
    id: int
    user_id: str
    recipient_email: str
    password_count: int
    share_reason: ShareReason
    sent_at: datetime
    expires_at: datetime | None = None


# =================================================================
# Notification metadata: tagged union keyed by "kind"
# =================================================================


class LowBalancePayload(BaseModel):
    kind: Literal["low_balance"] = "low_balance"
    entity_id: str | None = None
    account_id: str
    balance: float
    threshold: float


class DisclosurePayload(BaseModel):
    kind: Literal["disclosure"] = "disclosure"
    entity_id: str | None = None
    credential_count: int
    recipient_count: int
    share_reason: ShareReason
    sent_at: datetime


class InactivityPayload(BaseModel):
    kind: Literal["inactivity"] = "inactivity"
    entity_id: str | None = None
    last_check_in: datetime | None = None
    inactive_days: int | None = None
    days_until_disclosure: int | None = None


class GenericPayload(BaseModel):
    kind: Literal["generic"] = "generic"
    entity_id: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


NotificationMetadata = Annotated[
    LowBalancePayload | DisclosurePayload | InactivityPayload | GenericPayload,
    Field(discriminator="kind"),
]

metadata_adapter: TypeAdapter[NotificationMetadata] = TypeAdapter(NotificationMetadata)


class Notification(BaseModel):
    id: int
    user_id: str
    title: str
    message: str
    type: NotificationType
    priority: NotificationPriority = NotificationPriority.NORMAL
    is_read: bool = False
    action_url: str | None = None
    metadata: NotificationMetadata | None = None
    created_at: datetime

    @property
    def entity_id(self) -> str | None:
        return self.metadata.entity_id if self.metadata else None


class NotificationSettings(BaseModel):
    user_id: str
    low_balance_enabled: bool = True
    low_balance_threshold: float = 500
    due_date_enabled: bool = True
    due_date_days_before: int = 7
    spending_alerts_enabled: bool = True
    monthly_spending_limit: float = 5000
    investment_alerts_enabled: bool = True
    password_expiry_enabled: bool = True
    email_notifications: bool = False
    push_notifications: bool = True


# =================================================================
# Workflow results
# =================================================================


@dataclass(slots=True)
class CredentialDecryption:
    """Outcome of decrypting one credential."""

    credential_id: int
    website_name: str
    credential: DecryptedCredential | None = None
    error: str | None = None
    pin_error: str | None = None

    @property
    def failed(self) -> bool:
        return self.credential is None


@dataclass(slots=True)
class DecryptionBatch:
    decrypted: list[DecryptedCredential] = field(default_factory=list)
    failed_items: list[str] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)


@dataclass(slots=True)
class DisclosurePackage:
    """Everything one disclosure email needs."""

    credentials: list[DecryptedCredential]
    user_name: str | None
    share_reason: ShareReason
    last_check_in: datetime | None = None


@dataclass(slots=True)
class ShareResult:
    success: bool
    shared_count: int = 0
    failed_emails: list[str] = field(default_factory=list)
    credential_count: int = 0
    failed_items: list[str] = field(default_factory=list)
    error: str | None = None
    unrecorded_emails: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "shared_count": self.shared_count,
            "failed_emails": list(self.failed_emails),
            "credential_count": self.credential_count,
            "failed_items": list(self.failed_items),
            "error": self.error,
            "unrecorded_emails": list(self.unrecorded_emails),
        }


class AutomaticOutcome(StrEnum):
    SKIPPED_NO_CONTACTS = "skipped_no_contacts"
    SKIPPED_COOLDOWN = "skipped_cooldown"
    WARNED = "warned"
    ALREADY_WARNED = "already_warned"
    DISCLOSED = "disclosed"
    FAILED = "failed"
