"""Repository for Invitation model operations."""

from sqlalchemy.orm import Session
from expense_tracker.models.invitation import Invitation, InvitationStatus


class InvitationRepository:
    """Repository for Invitation model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, invitation_id: int) -> Invitation | None:
        """Get invitation by ID"""
        return self.db.query(Invitation).filter(Invitation.id == invitation_id).first()

    def get_pending_for_email(self, email: str) -> list[Invitation]:
        """
        Get pending invitations addressed to an email.

        Emails are stored lowercased, so the lookup lowercases its input.

        Args:
            email: Invitee email

        Returns:
            Pending invitations, newest first
        """
        return (
            self.db.query(Invitation)
            .filter(
                Invitation.invitee_email == email.strip().lower(),
                Invitation.status == InvitationStatus.PENDING,
            )
            .order_by(Invitation.created_at.desc(), Invitation.id.desc())
            .all()
        )

    def get_pending_for_company_email(self, company_id: int, email: str) -> Invitation | None:
        """Get the pending invitation for an email in a company, if any"""
        return (
            self.db.query(Invitation)
            .filter(
                Invitation.company_id == company_id,
                Invitation.invitee_email == email.strip().lower(),
                Invitation.status == InvitationStatus.PENDING,
            )
            .first()
        )

    def get_for_company(
        self, company_id: int, status: InvitationStatus | None = None
    ) -> list[Invitation]:
        """Get invitations sent by a company, optionally filtered by status"""
        query = self.db.query(Invitation).filter(Invitation.company_id == company_id)
        if status is not None:
            query = query.filter(Invitation.status == status)
        return query.order_by(Invitation.created_at.desc(), Invitation.id.desc()).all()

    def create(self, invitation: Invitation) -> Invitation:
        """Create new invitation"""
        self.db.add(invitation)
        self.db.commit()
        self.db.refresh(invitation)
        return invitation

    def update(self, invitation: Invitation) -> Invitation:
        """Update existing invitation"""
        self.db.commit()
        self.db.refresh(invitation)
        return invitation
