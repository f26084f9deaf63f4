from datetime import datetime
from pydantic import BaseModel
from expense_tracker.models.role import CompanyRole


class ProfileResponse(BaseModel):
    """Caller profile; company_id and role are null in personal mode"""

    id: int
    auth_user_id: str
    email: str | None
    display_name: str | None
    company_id: int | None
    role: CompanyRole | None
    created_at: datetime

    model_config = {"from_attributes": True}


class DisplayNameUpdate(BaseModel):
    """Display name is trimmed and must be 2-50 characters"""

    display_name: str
