"""Company model: the shared workspace boundary."""

from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from expense_tracker.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from expense_tracker.models.company_membership import CompanyMembership
    from expense_tracker.models.invitation import Invitation


class Company(Base, TimestampMixin):
    """
    Workspace grouping users and their expenses under role-based permissions.

    Invariants (enforced at application layer):
    - exactly one owner, referenced by owner_id
    - the owner always has a membership row with role OWNER
    - owner_id only changes through an ownership transfer, which also
      demotes the previous owner to ADMIN in the same transaction
    """

    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Relationships
    memberships: Mapped[list["CompanyMembership"]] = relationship(
        "CompanyMembership",
        back_populates="company",
        cascade="all, delete-orphan",
    )
    invitations: Mapped[list["Invitation"]] = relationship(
        "Invitation",
        back_populates="company",
        cascade="all, delete-orphan",
    )

    @property
    def member_ids(self) -> list[int]:
        return [membership.user_id for membership in self.memberships]

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name='{self.name}')>"
