import logging
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from expense_tracker.models.company import Company
from expense_tracker.models.company_membership import CompanyMembership
from expense_tracker.models.caller_context import CallerContext
from expense_tracker.models.role import CompanyRole
from expense_tracker.repositories.company_repository import CompanyRepository
from expense_tracker.repositories.company_membership_repository import CompanyMembershipRepository
from expense_tracker.repositories.expense_repository import ExpenseRepository
from expense_tracker.schemas.company_schemas import (
    CompanyCreate,
    CompanyUpdate,
    CompanyRoleUpdate,
)
from expense_tracker.core import permissions
from expense_tracker.core.exceptions import NotFoundException

logger = logging.getLogger(__name__)


def member_summary(membership: CompanyMembership) -> dict:
    """Membership row joined with the member's profile fields"""
    user = membership.user
    return {
        "id": membership.id,
        "user_id": membership.user_id,
        "auth_user_id": user.auth_user_id,
        "email": user.email,
        "display_name": user.display_name,
        "role": membership.role,
        "is_owner": membership.user_id == membership.company.owner_id,
        "created_at": membership.created_at,
    }


class CompanyService:
    """Service layer for company management business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.company_repo = CompanyRepository(db)
        self.membership_repo = CompanyMembershipRepository(db)
        self.expense_repo = ExpenseRepository(db)

    def _current_company(self, context: CallerContext) -> Company:
        if context.company is None:
            raise NotFoundException("You are not part of a company")
        return context.company

    def create_company(self, company_data: CompanyCreate, context: CallerContext) -> Company:
        """
        Create a company owned by the caller.

        The company row and the owner membership are written in one
        transaction, so the owner is a member from the start.

        Raises:
            ForbiddenException: If the caller already belongs to a company
        """
        permissions.ensure_allowed(permissions.can_create_company(context))

        try:
            company = self.company_repo.create_no_commit(
                Company(name=company_data.name.strip(), owner_id=context.user_id)
            )
            self.membership_repo.add_no_commit(
                CompanyMembership(
                    company_id=company.id,
                    user_id=context.user_id,
                    role=CompanyRole.OWNER,
                )
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(company)
        logger.info("Company %s created by user %s", company.id, context.user_id)
        return company

    def get_current_company(self, context: CallerContext) -> Company:
        """
        Get the caller's company.

        Raises:
            NotFoundException: If the caller is in personal mode
        """
        return self._current_company(context)

    def rename_company(self, company_update: CompanyUpdate, context: CallerContext) -> Company:
        """
        Update company name (OWNER only).

        Raises:
            ForbiddenException: If user is not OWNER
        """
        company = self._current_company(context)
        permissions.ensure_allowed(permissions.can_rename_company(context))

        company.name = company_update.name.strip()
        return self.company_repo.update(company)

    def delete_company(self, context: CallerContext) -> None:
        """
        Delete the caller's company (OWNER only).

        Memberships and invitations go with it; expenses are kept and
        detached from the company, all in one transaction.

        Raises:
            ForbiddenException: If user is not OWNER
        """
        company = self._current_company(context)
        permissions.ensure_allowed(permissions.can_delete_company(context))

        company_id = company.id
        try:
            detached = self.expense_repo.detach_company_no_commit(company_id)
            self.company_repo.delete_no_commit(company)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(
            "Company %s deleted by user %s (%d expenses detached)",
            company_id,
            context.user_id,
            detached,
        )

    def get_members(self, context: CallerContext) -> list[dict]:
        """
        Get all members of current company with user details.

        Args:
            context: Caller context

        Returns:
            List of members with user info
        """
        company = self._current_company(context)
        memberships = self.membership_repo.get_company_members(company.id)

        return [member_summary(membership) for membership in memberships]

    def _get_member(self, user_id: int, company: Company) -> CompanyMembership:
        membership = self.membership_repo.get_membership(user_id, company.id)
        if not membership:
            raise NotFoundException("Member not found in this company")
        return membership

    def update_member_role(
        self, user_id: int, role_update: CompanyRoleUpdate, context: CallerContext
    ) -> CompanyMembership:
        """
        Update member's role (OWNER or ADMIN).

        Setting OWNER transfers ownership: see transfer_ownership.

        Raises:
            ForbiddenException: If the role change breaks a role rule
            NotFoundException: If membership not found
        """
        company = self._current_company(context)
        membership = self._get_member(user_id, company)

        permissions.ensure_allowed(
            permissions.can_change_role(context, user_id, membership.role, role_update.role)
        )

        if role_update.role == CompanyRole.OWNER:
            return self.transfer_ownership(membership, context)

        previous = membership.role
        membership = self.membership_repo.update_role(membership, role_update.role)
        logger.info(
            "User %s role in company %s changed %s -> %s by user %s",
            user_id,
            company.id,
            previous.value,
            membership.role.value,
            context.user_id,
        )
        return membership

    def transfer_ownership(
        self, new_owner: CompanyMembership, context: CallerContext
    ) -> CompanyMembership:
        """
        Make another member the owner.

        The new owner's role, the company's owner_id and the previous
        owner's demotion to ADMIN are committed together or not at all.
        """
        company = self._current_company(context)
        previous_owner = self._get_member(context.user_id, company)

        try:
            new_owner.role = CompanyRole.OWNER
            previous_owner.role = CompanyRole.ADMIN
            company.owner_id = new_owner.user_id
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(new_owner)
        logger.info(
            "Ownership of company %s transferred from user %s to user %s",
            company.id,
            context.user_id,
            new_owner.user_id,
        )
        return new_owner

    def remove_member(self, user_id: int, context: CallerContext) -> None:
        """
        Remove member from company (ADMIN or OWNER).

        Raises:
            ForbiddenException: If user lacks permissions or trying to remove owner
            NotFoundException: If membership not found
        """
        company = self._current_company(context)
        membership = self._get_member(user_id, company)

        permissions.ensure_allowed(
            permissions.can_remove_member(context, user_id, membership.role)
        )

        self.membership_repo.delete(membership)
        logger.info("User %s removed from company %s by user %s", user_id, company.id, context.user_id)

    def leave_company(self, context: CallerContext) -> int:
        """
        Leave the caller's company (anyone but the owner).

        Returns:
            ID of the company that was left

        Raises:
            ForbiddenException: If the caller is the owner
        """
        company = self._current_company(context)
        permissions.ensure_allowed(permissions.can_leave_company(context))

        membership = self._get_member(context.user_id, company)
        self.membership_repo.delete(membership)
        logger.info("User %s left company %s", context.user_id, company.id)
        return company.id
