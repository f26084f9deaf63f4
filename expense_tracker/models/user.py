from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, Optional
from expense_tracker.models.base import Base, TimestampMixin
from expense_tracker.models.role import CompanyRole

if TYPE_CHECKING:
    from expense_tracker.models.company_membership import CompanyMembership
    from expense_tracker.models.expense import Expense


class User(Base, TimestampMixin):
    """
    User profile for an identity issued by the external auth provider.

    Only stores the provider's user id (sub from JWT) plus profile fields,
    never credentials. Auto-created on first API request with a valid JWT.

    A user belongs to at most one company. The company id and role are read
    from the membership row; a user without one is in personal mode.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    auth_user_id: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    # auth_user_id is the 'sub' claim from JWT
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)
    display_name: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Relationships
    membership: Mapped[Optional["CompanyMembership"]] = relationship(
        "CompanyMembership",
        back_populates="user",
        uselist=False,
    )
    expenses: Mapped[list["Expense"]] = relationship(
        "Expense",
        back_populates="user",
    )

    @property
    def company_id(self) -> int | None:
        return self.membership.company_id if self.membership else None

    @property
    def role(self) -> CompanyRole | None:
        return self.membership.role if self.membership else None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, auth_user_id='{self.auth_user_id}')>"
