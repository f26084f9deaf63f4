from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from expense_tracker.models.invitation import InvitationStatus
from expense_tracker.models.role import CompanyRole


class InvitationCreate(BaseModel):
    """Invite an email address to the caller's company"""

    email: EmailStr = Field(..., description="Invitee email")
    role: CompanyRole = Field(
        default=CompanyRole.USER, description="Role to assign on acceptance (default: USER)"
    )


class InvitationResponse(BaseModel):
    """Invitation details"""

    id: int
    company_id: int
    company_name: str
    invitee_email: str
    inviter_id: int
    role: CompanyRole
    status: InvitationStatus
    created_at: datetime
    accepted_by_id: int | None = None
    accepted_at: datetime | None = None

    model_config = {"from_attributes": True}
