from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from expense_tracker.database import get_db
from expense_tracker.dependencies import get_caller_context, get_current_user
from expense_tracker.models.caller_context import CallerContext
from expense_tracker.models.expense import ExpenseCategory, ExpenseStatus
from expense_tracker.models.user import User
from expense_tracker.services import extraction_service
from expense_tracker.services.expense_service import ExpenseService
from expense_tracker.schemas.expense_schemas import (
    ExpenseCreate,
    ExpenseUpdate,
    ExpenseResponse,
    ExpenseListResponse,
    ReceiptExtractionRequest,
    ExtractedReceipt,
    CategorySuggestionRequest,
    CategorySuggestionResponse,
)

router = APIRouter()


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
def create_expense(
    expense_data: ExpenseCreate,
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    Create a new expense.

    - Total is derived from the item net prices
    - Company members' expenses start pending, personal ones approved
    - Any client-supplied status is ignored
    """
    service = ExpenseService(db)
    return service.create_expense(expense_data, context)


@router.get("", response_model=ExpenseListResponse)
def list_expenses(
    status_filter: Optional[ExpenseStatus] = Query(None, alias="status", description="Filter by status"),
    category: Optional[ExpenseCategory] = Query(None, description="Filter by category"),
    start_date: Optional[date] = Query(None, description="Start date (inclusive)"),
    end_date: Optional[date] = Query(None, description="End date (inclusive)"),
    limit: int = Query(100, ge=1, le=1000, description="Max results"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    List expenses visible to the caller.

    - Owners, admins and auditors see every company expense
    - Users and personal-mode callers see their own
    - Results sorted by expense date (newest first)
    """
    service = ExpenseService(db)
    expenses, total = service.list_expenses(
        context=context,
        status=status_filter,
        category=category,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return ExpenseListResponse(expenses=expenses, total=total)


@router.post("/extract", response_model=ExtractedReceipt)
async def extract_receipt(
    request: ReceiptExtractionRequest,
    user: User = Depends(get_current_user),
):
    """
    Extract expense fields from a receipt photo.

    The result is a suggestion for the client to review; nothing is stored.
    Returns 502 when the model call or its answer is unusable.
    """
    return await extraction_service.extract_receipt_data(request.photo_data_uri)


@router.post("/suggest-category", response_model=CategorySuggestionResponse)
async def suggest_category(
    request: CategorySuggestionRequest,
    user: User = Depends(get_current_user),
):
    """Suggest a category from the vendor name and line items."""
    items = [(item.name, item.price) for item in request.items]
    category = await extraction_service.suggest_category(request.company, items)
    return CategorySuggestionResponse(category=category)


@router.get("/{expense_id}", response_model=ExpenseResponse)
def get_expense(
    expense_id: int,
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """Get expense details."""
    service = ExpenseService(db)
    return service.get_expense(expense_id, context)


@router.patch("/{expense_id}", response_model=ExpenseResponse)
def update_expense(
    expense_id: int,
    expense_data: ExpenseUpdate,
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    Edit expense details.

    - Only the creator may edit, and only while the expense is pending
      or personal
    - Replacing items recomputes the total
    - Status changes go through approve/reject
    """
    service = ExpenseService(db)
    return service.update_expense(expense_id, expense_data, context)


@router.post("/{expense_id}/approve", response_model=ExpenseResponse)
def approve_expense(
    expense_id: int,
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    Approve a pending company expense.

    - Requires OWNER or ADMIN role
    """
    service = ExpenseService(db)
    return service.update_expense_status(expense_id, ExpenseStatus.APPROVED, context)


@router.post("/{expense_id}/reject", response_model=ExpenseResponse)
def reject_expense(
    expense_id: int,
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    Reject a pending company expense.

    - Requires OWNER or ADMIN role
    """
    service = ExpenseService(db)
    return service.update_expense_status(expense_id, ExpenseStatus.REJECTED, context)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: int,
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """Delete expense."""
    service = ExpenseService(db)
    service.delete_expense(expense_id, context)
