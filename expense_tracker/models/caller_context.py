"""Caller context for request authorization."""

from dataclasses import dataclass
from expense_tracker.models.user import User
from expense_tracker.models.company import Company
from expense_tracker.models.role import CompanyRole


@dataclass
class CallerContext:
    """
    Complete caller context for request authorization.

    Built once per request from the verified token and the stored profile,
    then passed explicitly to every service call. Never cached across
    requests.

    Attributes:
        user: The authenticated User profile
        company: The company the user belongs to, or None in personal mode
        role: The user's role within that company, or None in personal mode
    """

    user: User
    company: Company | None = None
    role: CompanyRole | None = None

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def company_id(self) -> int | None:
        return self.company.id if self.company else None

    def in_company(self) -> bool:
        """Check if user belongs to a company (otherwise personal mode)."""
        return self.company is not None

    def __repr__(self) -> str:
        role = self.role.value if self.role else None
        return f"<CallerContext(user_id={self.user.id}, company_id={self.company_id}, role={role})>"
