"""Company membership model linking users to companies with roles."""

from sqlalchemy import Integer, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from expense_tracker.models.base import Base, TimestampMixin
from expense_tracker.models.role import CompanyRole

if TYPE_CHECKING:
    from expense_tracker.models.user import User
    from expense_tracker.models.company import Company


class CompanyMembership(Base, TimestampMixin):
    """
    Join table linking users to companies with roles.

    The membership row is the source of a user profile's company id and
    role, and the set of rows for a company is its member set.

    Constraints:
    - Unique(user_id) - a user belongs to at most one company
    - Unique(company_id, user_id) - one membership per user per company
    - Each company has exactly one OWNER (enforced at application layer)
    """

    __tablename__ = "company_memberships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    role: Mapped[CompanyRole] = mapped_column(
        Enum(CompanyRole, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=CompanyRole.USER,
    )

    # Relationships
    company: Mapped["Company"] = relationship("Company", back_populates="memberships")
    user: Mapped["User"] = relationship("User", back_populates="membership")

    # Constraints
    __table_args__ = (
        UniqueConstraint("company_id", "user_id", name="uq_company_user"),
    )

    def __repr__(self) -> str:
        return f"<CompanyMembership(company_id={self.company_id}, user_id={self.user_id}, role={self.role.value})>"
