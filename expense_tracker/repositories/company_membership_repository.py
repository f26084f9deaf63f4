"""Repository for CompanyMembership model operations."""

from sqlalchemy.orm import Session
from expense_tracker.models.company_membership import CompanyMembership
from expense_tracker.models.role import CompanyRole


class CompanyMembershipRepository:
    """Repository for CompanyMembership model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_membership(self, user_id: int, company_id: int) -> CompanyMembership | None:
        """
        Get membership for a specific user in a specific company.

        Args:
            user_id: User ID
            company_id: Company ID

        Returns:
            CompanyMembership object or None if not found
        """
        return (
            self.db.query(CompanyMembership)
            .filter(
                CompanyMembership.user_id == user_id,
                CompanyMembership.company_id == company_id,
            )
            .first()
        )

    def get_by_user(self, user_id: int) -> CompanyMembership | None:
        """Get the single membership of a user, if any"""
        return (
            self.db.query(CompanyMembership)
            .filter(CompanyMembership.user_id == user_id)
            .first()
        )

    def get_company_members(self, company_id: int) -> list[CompanyMembership]:
        """
        Get all memberships for a company.

        Args:
            company_id: Company ID

        Returns:
            List of CompanyMembership objects, oldest first
        """
        return (
            self.db.query(CompanyMembership)
            .filter(CompanyMembership.company_id == company_id)
            .order_by(CompanyMembership.created_at.asc(), CompanyMembership.id.asc())
            .all()
        )

    def add_no_commit(self, membership: CompanyMembership) -> CompanyMembership:
        """Add membership without committing (for atomic ops)"""
        self.db.add(membership)
        self.db.flush()
        return membership

    def update_role(
        self, membership: CompanyMembership, new_role: CompanyRole
    ) -> CompanyMembership:
        """
        Update a member's role.

        Args:
            membership: CompanyMembership object to update
            new_role: New role to assign

        Returns:
            Updated CompanyMembership object
        """
        membership.role = new_role
        self.db.commit()
        self.db.refresh(membership)
        return membership

    def delete(self, membership: CompanyMembership) -> None:
        """
        Remove a user from a company.

        Args:
            membership: CompanyMembership object to delete
        """
        self.db.delete(membership)
        self.db.commit()
