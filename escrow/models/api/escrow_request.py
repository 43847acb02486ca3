# escrow/models/api/escrow_request.py
from typing import Literal

from pydantic import BaseModel, Field

from escrow.models.domain.escrow_domain import ContactPatch


class ShareCredentialsRequest(BaseModel):
    """Request body for an on-demand disclosure."""

    secret_key: str = Field(..., min_length=1, description="Key the credentials were encrypted with")
    reason: Literal["MANUAL", "EMERGENCY"] = "MANUAL"
    recipients: list[str] | None = Field(
        default=None,
        description="Subset of the active emergency contacts to mail; defaults to all of them",
    )


class EmergencyContactCreateRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    label: str | None = Field(default=None, max_length=100)


class EmergencyContactUpdateRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    email: str | None = Field(default=None, max_length=254)
    label: str | None = Field(default=None, max_length=100)
    is_active: bool | None = None

    def to_patch(self) -> ContactPatch:
        return ContactPatch(**self.model_dump(exclude_unset=True))
