from datetime import date
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Numeric, Float, ForeignKey, Date, Enum, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING
from expense_tracker.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from expense_tracker.models.user import User


class ExpenseCategory(str, PyEnum):
    """Fixed expense category allow-list"""

    FOOD = "food"
    TRAVEL = "travel"
    SUPPLIES = "supplies"
    ENTERTAINMENT = "entertainment"
    OTHER = "other"


class PaymentMethod(str, PyEnum):
    """Fixed payment method allow-list"""

    CARD = "card"
    CASH = "cash"
    ONLINE = "online"
    OTHER = "other"


class ExpenseStatus(str, PyEnum):
    """Approval workflow state (company expenses only)"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Expense(Base, TimestampMixin):
    """
    Expense submitted by a user, optionally scoped to their company.

    total_amount is derived from the line items on create and never set
    directly. Only status changes after creation.
    """

    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    company_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    # company is the vendor name printed on the receipt
    category: Mapped[ExpenseCategory] = mapped_column(
        Enum(ExpenseCategory, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=ExpenseCategory.OTHER,
    )
    total_amount: Mapped[float] = mapped_column(
        Numeric(precision=15, scale=2, asdecimal=False), nullable=False, default=0.00
    )
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=PaymentMethod.OTHER,
    )
    status: Mapped[ExpenseStatus] = mapped_column(
        Enum(ExpenseStatus, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        index=True,
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="expenses")
    items: Mapped[list["ExpenseItem"]] = relationship(
        "ExpenseItem",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseItem.position",
    )

    # Composite indexes for the history queries
    __table_args__ = (
        Index("ix_expenses_user_date", "user_id", "expense_date"),
        Index("ix_expenses_company_date", "company_id", "expense_date"),
    )


class ExpenseItem(Base):
    """Receipt line; net_price is the final, already-discounted line amount"""

    __tablename__ = "expense_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    expense_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=1)
    net_price: Mapped[float] = mapped_column(
        Numeric(precision=15, scale=2, asdecimal=False), nullable=False, default=0.00
    )

    expense: Mapped["Expense"] = relationship("Expense", back_populates="items")
