"""Repository for Company model operations."""

from sqlalchemy.orm import Session
from expense_tracker.models.company import Company


class CompanyRepository:
    """Repository for Company model operations"""

    def __init__(self, db: Session):
        self.db = db

    def create_no_commit(self, company: Company) -> Company:
        """
        Add a company without committing.

        Caller responsible for commit. Flushes so the ID is available for
        the owner membership created in the same transaction.
        """
        self.db.add(company)
        self.db.flush()
        return company

    def update(self, company: Company) -> Company:
        """
        Update an existing company.

        Args:
            company: Company object with updated fields

        Returns:
            Updated Company object
        """
        self.db.commit()
        self.db.refresh(company)
        return company

    def delete_no_commit(self, company: Company) -> None:
        """
        Delete a company without committing.

        WARNING: This cascades to memberships and invitations. Expenses must
        be detached by the caller in the same transaction.
        """
        self.db.delete(company)
        self.db.flush()
