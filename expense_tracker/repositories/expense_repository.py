from datetime import date
from typing import Optional
from sqlalchemy.orm import Session, selectinload

from expense_tracker.models.expense import Expense, ExpenseCategory, ExpenseStatus


class ExpenseRepository:
    """Repository for Expense data access"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, expense: Expense) -> Expense:
        """Create a new expense together with its items"""
        self.db.add(expense)
        self.db.commit()
        self.db.refresh(expense)
        return expense

    def get_by_id(self, expense_id: int) -> Optional[Expense]:
        """Get expense by ID"""
        return self.db.query(Expense).filter(Expense.id == expense_id).first()

    def get_with_filters(
        self,
        user_id: Optional[int] = None,
        company_id: Optional[int] = None,
        status: Optional[ExpenseStatus] = None,
        category: Optional[ExpenseCategory] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[Expense], int]:
        """
        Get expenses with filters.

        The caller decides the visibility scope: user_id restricts to one
        creator, company_id to one company, both to a creator within a
        company.

        Args:
            user_id: Optional creator filter
            company_id: Optional company filter
            status: Optional status filter
            category: Optional category filter
            start_date: Optional start date filter (inclusive)
            end_date: Optional end date filter (inclusive)
            limit: Maximum number of results
            offset: Pagination offset

        Returns:
            Tuple of (expenses list, total count)
        """
        query = self.db.query(Expense)

        if user_id is not None:
            query = query.filter(Expense.user_id == user_id)

        if company_id is not None:
            query = query.filter(Expense.company_id == company_id)

        if status is not None:
            query = query.filter(Expense.status == status)

        if category is not None:
            query = query.filter(Expense.category == category)

        if start_date is not None:
            query = query.filter(Expense.expense_date >= start_date)

        if end_date is not None:
            query = query.filter(Expense.expense_date <= end_date)

        # Get total count before pagination
        total = query.count()

        # Newest expense date first, then newest submission
        expenses = (
            query.options(selectinload(Expense.items))
            .order_by(
                Expense.expense_date.desc(),
                Expense.created_at.desc(),
                Expense.id.desc(),
            )
            .limit(limit)
            .offset(offset)
            .all()
        )

        return expenses, total

    def update(self, expense: Expense) -> Expense:
        """Update an expense"""
        self.db.commit()
        self.db.refresh(expense)
        return expense

    def delete(self, expense: Expense) -> None:
        """Delete an expense (cascades to items)"""
        self.db.delete(expense)
        self.db.commit()

    def detach_company_no_commit(self, company_id: int) -> int:
        """
        Clear company_id on every expense of a company without committing.

        Returns:
            Number of expenses detached
        """
        return (
            self.db.query(Expense)
            .filter(Expense.company_id == company_id)
            .update({Expense.company_id: None}, synchronize_session="fetch")
        )
