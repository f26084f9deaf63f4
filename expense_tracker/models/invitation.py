"""Invitation model: an offer for an email address to join a company."""

from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, ForeignKey, Enum, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from expense_tracker.models.base import Base, TimestampMixin
from expense_tracker.models.role import CompanyRole

if TYPE_CHECKING:
    from expense_tracker.models.company import Company


class InvitationStatus(str, PyEnum):
    """Invitation lifecycle; only PENDING can move, and only once"""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class Invitation(Base, TimestampMixin):
    """
    Pending offer for an email address to join a company with a role.

    company_name is denormalized so invitees can see where they are invited
    without being able to read the company. invitee_email is stored
    lowercased and matched against the verified token email.
    """

    __tablename__ = "invitations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    invitee_email: Mapped[str] = mapped_column(String(320), nullable=False)
    inviter_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[CompanyRole] = mapped_column(
        Enum(CompanyRole, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=CompanyRole.USER,
    )
    status: Mapped[InvitationStatus] = mapped_column(
        Enum(InvitationStatus, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=InvitationStatus.PENDING,
    )
    accepted_by_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    company: Mapped["Company"] = relationship("Company", back_populates="invitations")

    __table_args__ = (
        Index("ix_invitations_email_status", "invitee_email", "status"),
    )

    def __repr__(self) -> str:
        return f"<Invitation(id={self.id}, company_id={self.company_id}, status={self.status.value})>"
