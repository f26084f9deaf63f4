from pydantic import BaseModel, Field
from datetime import datetime
from expense_tracker.models.role import CompanyRole


class CompanyCreate(BaseModel):
    """Create a company owned by the caller"""

    name: str = Field(..., min_length=1, max_length=255)


class CompanyUpdate(BaseModel):
    """Update company name (OWNER only)"""

    name: str = Field(..., min_length=1, max_length=255)


class CompanyResponse(BaseModel):
    """Company details response"""

    id: int
    name: str
    owner_id: int
    member_ids: list[int]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CompanyMemberResponse(BaseModel):
    """Company member details with user info"""

    id: int
    user_id: int
    auth_user_id: str  # From user.auth_user_id
    email: str | None = None
    display_name: str | None = None
    role: CompanyRole
    is_owner: bool = False
    created_at: datetime

    model_config = {"from_attributes": True}


class CompanyRoleUpdate(BaseModel):
    """Update member's role; OWNER transfers ownership"""

    role: CompanyRole = Field(..., description="New role to assign")


class CompanyMemberRemoveResponse(BaseModel):
    """Response after removing member"""

    message: str
    removed_user_id: int


class LeaveCompanyResponse(BaseModel):
    """Response after leaving a company"""

    message: str
    company_id: int
