import logging
from datetime import date
from typing import Optional
from sqlalchemy.orm import Session

from expense_tracker.core.exceptions import NotFoundException, ValidationException
from expense_tracker.core import permissions
from expense_tracker.core.transitions import check_expense_transition, initial_expense_status
from expense_tracker.models.caller_context import CallerContext
from expense_tracker.models.expense import Expense, ExpenseCategory, ExpenseItem, ExpenseStatus
from expense_tracker.repositories.expense_repository import ExpenseRepository
from expense_tracker.schemas.expense_schemas import (
    ExpenseCreate,
    ExpenseItemCreate,
    ExpenseUpdate,
)
from expense_tracker.services.extraction_service import coerce_net_price, coerce_quantity

logger = logging.getLogger(__name__)


def build_items(items_data: list[ExpenseItemCreate]) -> list[ExpenseItem]:
    """
    Normalize submitted line items for storage.

    Quantity is never below 1 and net price falls back to 0.
    """
    return [
        ExpenseItem(
            position=position,
            name=item.name.strip(),
            quantity=max(1.0, coerce_quantity(item.quantity)),
            net_price=coerce_net_price(item.net_price),
        )
        for position, item in enumerate(items_data)
    ]


def total_of(items: list[ExpenseItem]) -> float:
    """Total amount is the exact sum of the line net prices"""
    return round(sum(item.net_price for item in items), 2)


class ExpenseService:
    """Service layer for expense business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.expense_repo = ExpenseRepository(db)

    def create_expense(self, expense_data: ExpenseCreate, context: CallerContext) -> Expense:
        """
        Create a new expense for the caller.

        The company scope comes from the caller's profile, never from the
        request body, and the status is derived from it: personal expenses
        are approved immediately, company expenses start pending.

        Args:
            expense_data: Expense creation data
            context: Caller context

        Returns:
            Created expense
        """
        items = build_items(expense_data.items)
        company_id = context.company_id

        expense = Expense(
            user_id=context.user_id,
            company_id=company_id,
            company=expense_data.company.strip(),
            items=items,
            category=expense_data.category,
            total_amount=total_of(items),
            expense_date=expense_data.expense_date,
            payment_method=expense_data.payment_method,
            status=initial_expense_status(company_id),
        )
        expense = self.expense_repo.create(expense)

        logger.info(
            "Expense %s created by user %s (company=%s, status=%s)",
            expense.id,
            context.user_id,
            company_id,
            expense.status.value,
        )
        return expense

    def get_expense(self, expense_id: int, context: CallerContext) -> Expense:
        """
        Get expense by ID with visibility check.

        Raises:
            NotFoundException: If expense doesn't exist
            ForbiddenException: If the caller may not see it
        """
        expense = self.expense_repo.get_by_id(expense_id)
        if not expense:
            raise NotFoundException(f"Expense {expense_id} not found")
        permissions.ensure_allowed(permissions.can_read_expense(context, expense))
        return expense

    def list_expenses(
        self,
        context: CallerContext,
        status: Optional[ExpenseStatus] = None,
        category: Optional[ExpenseCategory] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[Expense], int]:
        """
        List the expenses visible to the caller.

        - personal mode: the caller's own expenses
        - owner/admin/auditor: every expense of the company
        - user: the caller's own expenses within the company

        Returns:
            Tuple of (expenses, total_count)
        """
        if not context.in_company():
            user_id, company_id = context.user_id, None
        elif permissions.role_allows(context.role, permissions.Operation.READ_EXPENSE):
            user_id, company_id = None, context.company_id
        else:
            user_id, company_id = context.user_id, context.company_id

        return self.expense_repo.get_with_filters(
            user_id=user_id,
            company_id=company_id,
            status=status,
            category=category,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=offset,
        )

    def update_expense(
        self, expense_id: int, expense_data: ExpenseUpdate, context: CallerContext
    ) -> Expense:
        """
        Edit expense details; replacing items re-derives the total.

        Raises:
            NotFoundException: If expense doesn't exist or isn't visible
            ForbiddenException: If the caller may not edit it
        """
        expense = self.get_expense(expense_id, context)
        permissions.ensure_allowed(permissions.can_update_expense(context, expense))

        if expense_data.company is not None:
            expense.company = expense_data.company.strip()
        if expense_data.category is not None:
            expense.category = expense_data.category
        if expense_data.expense_date is not None:
            expense.expense_date = expense_data.expense_date
        if expense_data.payment_method is not None:
            expense.payment_method = expense_data.payment_method
        if expense_data.items is not None:
            expense.items = build_items(expense_data.items)
            expense.total_amount = total_of(expense.items)

        return self.expense_repo.update(expense)

    def update_expense_status(
        self, expense_id: int, new_status: ExpenseStatus, context: CallerContext
    ) -> Expense:
        """
        Approve or reject a pending company expense (OWNER or ADMIN).

        Raises:
            NotFoundException: If expense doesn't exist or isn't visible
            ForbiddenException: If the caller may not review it
            ValidationException: If the expense is no longer pending
        """
        expense = self.get_expense(expense_id, context)
        permissions.ensure_allowed(permissions.can_change_expense_status(context, expense))

        decision = check_expense_transition(expense.status, new_status)
        if not decision:
            raise ValidationException(decision.reason)

        previous = expense.status
        expense.status = new_status
        expense = self.expense_repo.update(expense)

        logger.info(
            "Expense %s moved %s -> %s by user %s",
            expense.id,
            previous.value,
            new_status.value,
            context.user_id,
        )
        return expense

    def delete_expense(self, expense_id: int, context: CallerContext) -> None:
        """
        Delete expense.

        Raises:
            NotFoundException: If expense doesn't exist or isn't visible
            ForbiddenException: If the caller may not delete it
        """
        expense = self.get_expense(expense_id, context)
        permissions.ensure_allowed(permissions.can_delete_expense(context, expense))
        self.expense_repo.delete(expense)
        logger.info("Expense %s deleted by user %s", expense_id, context.user_id)
