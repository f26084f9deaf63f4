from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from expense_tracker.database import get_db
from expense_tracker.dependencies import get_current_user
from expense_tracker.models.user import User
from expense_tracker.services.profile_service import ProfileService
from expense_tracker.schemas.profile_schemas import DisplayNameUpdate, ProfileResponse

router = APIRouter()


@router.get("", response_model=ProfileResponse)
async def get_profile(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Get the caller's profile.

    The profile is created on first authenticated request; company_id and
    role are null in personal mode.
    """
    service = ProfileService(db)
    return service.get_profile(user)


@router.patch("", response_model=ProfileResponse)
async def update_display_name(
    update: DisplayNameUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update the caller's display name.

    - Trimmed, 2-50 characters
    """
    service = ProfileService(db)
    return service.update_display_name(user, update.display_name)
