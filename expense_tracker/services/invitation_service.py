import logging
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expense_tracker.core import permissions
from expense_tracker.core.exceptions import NotFoundException, ValidationException
from expense_tracker.core.transitions import check_invitation_transition
from expense_tracker.models.base import utcnow
from expense_tracker.models.caller_context import CallerContext
from expense_tracker.models.company_membership import CompanyMembership
from expense_tracker.models.invitation import Invitation, InvitationStatus
from expense_tracker.models.role import CompanyRole
from expense_tracker.models.user import User
from expense_tracker.repositories.company_membership_repository import CompanyMembershipRepository
from expense_tracker.repositories.invitation_repository import InvitationRepository
from expense_tracker.repositories.user_repository import UserRepository
from expense_tracker.schemas.invitation_schemas import InvitationCreate

logger = logging.getLogger(__name__)


class InvitationService:
    """Service layer for company invitations"""

    def __init__(self, db: Session):
        self.db = db
        self.invitation_repo = InvitationRepository(db)
        self.membership_repo = CompanyMembershipRepository(db)
        self.user_repo = UserRepository(db)

    def send_invitation(self, invite_request: InvitationCreate, context: CallerContext) -> Invitation:
        """
        Invite an email address to the caller's company (ADMIN or OWNER).

        Args:
            invite_request: Invitee email and role
            context: Caller context

        Returns:
            Created pending invitation

        Raises:
            ForbiddenException: If the caller may not invite with this role
            ValidationException: If the email already belongs to a member or
                already has a pending invitation
        """
        permissions.ensure_allowed(permissions.can_invite(context, invite_request.role))

        email = invite_request.email.strip().lower()
        company = context.company

        existing_user = self.user_repo.get_by_email(email)
        if existing_user and self.membership_repo.get_membership(existing_user.id, company.id):
            raise ValidationException(f"{email} is already a member of this company")

        if self.invitation_repo.get_pending_for_company_email(company.id, email):
            raise ValidationException(f"An invitation is already pending for {email}")

        invitation = Invitation(
            company_id=company.id,
            company_name=company.name,
            invitee_email=email,
            inviter_id=context.user_id,
            role=invite_request.role,
            status=InvitationStatus.PENDING,
        )
        invitation = self.invitation_repo.create(invitation)
        logger.info(
            "Invitation %s sent for company %s by user %s (role=%s)",
            invitation.id,
            company.id,
            context.user_id,
            invitation.role.value,
        )
        return invitation

    def list_my_invitations(self, email: str | None) -> list[Invitation]:
        """Pending invitations addressed to the email on the caller's current token"""
        if not email:
            return []
        return self.invitation_repo.get_pending_for_email(email)

    def list_company_invitations(
        self, context: CallerContext, status: InvitationStatus | None = None
    ) -> list[Invitation]:
        """Invitations sent by the caller's company (OWNER, ADMIN or AUDITOR)"""
        permissions.ensure_allowed(permissions.can_list_invitations(context))
        return self.invitation_repo.get_for_company(context.company_id, status)

    def _get_for_response(
        self, invitation_id: int, email: str | None, target: InvitationStatus
    ) -> Invitation:
        invitation = self.invitation_repo.get_by_id(invitation_id)
        if not invitation:
            raise NotFoundException(f"Invitation {invitation_id} not found")

        permissions.ensure_allowed(permissions.can_respond_to_invitation(email, invitation))

        decision = check_invitation_transition(invitation.status, target)
        if not decision:
            raise ValidationException(decision.reason)
        return invitation

    def accept_invitation(self, invitation_id: int, user: User, email: str | None) -> Invitation:
        """
        Accept an invitation and join its company.

        Membership, invitation status and acceptance metadata are committed
        in one transaction. A member of another company switches companies;
        the owner of another company must transfer ownership first.

        Raises:
            NotFoundException: If invitation doesn't exist
            ForbiddenException: If the invitation is addressed to someone else
            ValidationException: If the invitation is not pending or the
                caller cannot switch companies
        """
        invitation = self._get_for_response(invitation_id, email, InvitationStatus.ACCEPTED)

        current = self.membership_repo.get_by_user(user.id)
        if current and current.company_id == invitation.company_id:
            raise ValidationException(f"You are already a member of {invitation.company_name}")
        if current and current.role == CompanyRole.OWNER:
            raise ValidationException(
                "You own another company; transfer ownership before joining another one"
            )

        try:
            if current:
                current.company_id = invitation.company_id
                current.role = invitation.role
            else:
                self.membership_repo.add_no_commit(
                    CompanyMembership(
                        company_id=invitation.company_id,
                        user_id=user.id,
                        role=invitation.role,
                    )
                )
            invitation.status = InvitationStatus.ACCEPTED
            invitation.accepted_by_id = user.id
            invitation.accepted_at = utcnow()
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(invitation)
        logger.info(
            "Invitation %s accepted by user %s; joined company %s as %s",
            invitation.id,
            user.id,
            invitation.company_id,
            invitation.role.value,
        )
        return invitation

    def decline_invitation(self, invitation_id: int, user: User, email: str | None) -> Invitation:
        """
        Decline an invitation.

        Raises:
            NotFoundException: If invitation doesn't exist
            ForbiddenException: If the invitation is addressed to someone else
            ValidationException: If the invitation is not pending
        """
        invitation = self._get_for_response(invitation_id, email, InvitationStatus.DECLINED)
        invitation.status = InvitationStatus.DECLINED
        invitation = self.invitation_repo.update(invitation)
        logger.info("Invitation %s declined by user %s", invitation.id, user.id)
        return invitation
