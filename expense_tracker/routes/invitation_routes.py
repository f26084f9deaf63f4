from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from expense_tracker.core.security import Identity
from expense_tracker.database import get_db
from expense_tracker.dependencies import get_current_user, get_identity
from expense_tracker.models.user import User
from expense_tracker.services.invitation_service import InvitationService
from expense_tracker.schemas.invitation_schemas import InvitationResponse

router = APIRouter()


@router.get("", response_model=list[InvitationResponse])
async def list_my_invitations(
    identity: Identity = Depends(get_identity),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    List pending invitations addressed to the email on the caller's token.

    Does not require company membership.
    """
    service = InvitationService(db)
    return service.list_my_invitations(identity.email)


@router.post("/{invitation_id}/accept", response_model=InvitationResponse)
async def accept_invitation(
    invitation_id: int,
    identity: Identity = Depends(get_identity),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Accept a pending invitation and join its company with the invited role.

    - Only the addressed invitee may accept
    - A member of another company moves to the new one
    """
    service = InvitationService(db)
    return service.accept_invitation(invitation_id, user, identity.email)


@router.post("/{invitation_id}/decline", response_model=InvitationResponse)
async def decline_invitation(
    invitation_id: int,
    identity: Identity = Depends(get_identity),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Decline a pending invitation."""
    service = InvitationService(db)
    return service.decline_invitation(invitation_id, user, identity.email)
