from datetime import date, datetime
from pydantic import BaseModel, Field
from typing import Optional

from expense_tracker.models.expense import ExpenseCategory, ExpenseStatus, PaymentMethod


class ExpenseItemCreate(BaseModel):
    """
    Line item as submitted by a form.

    quantity and net_price accept numbers or numeric strings; anything else
    falls back to the defaults (1 and 0) when the expense is saved.
    """

    name: str = Field(..., min_length=1, max_length=255)
    quantity: Optional[float | str] = 1
    net_price: Optional[float | str] = 0


class ExpenseCreate(BaseModel):
    """Schema for creating a new expense"""

    company: str = Field(..., min_length=1, max_length=255, description="Vendor name")
    items: list[ExpenseItemCreate] = Field(..., min_length=1)
    category: ExpenseCategory = ExpenseCategory.OTHER
    expense_date: date
    payment_method: PaymentMethod = PaymentMethod.OTHER
    status: Optional[ExpenseStatus] = Field(
        None, description="Ignored: status is derived from the submitter's company"
    )


class ExpenseUpdate(BaseModel):
    """Schema for editing expense details; items replace the existing list"""

    company: Optional[str] = Field(None, min_length=1, max_length=255)
    items: Optional[list[ExpenseItemCreate]] = Field(None, min_length=1)
    category: Optional[ExpenseCategory] = None
    expense_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None


class ExpenseItemResponse(BaseModel):
    model_config = {"from_attributes": True}

    name: str
    quantity: float
    net_price: float


class ExpenseResponse(BaseModel):
    """Schema for expense response"""

    model_config = {"from_attributes": True}

    id: int
    user_id: int
    company_id: Optional[int]
    company: str
    items: list[ExpenseItemResponse]
    category: ExpenseCategory
    total_amount: float
    expense_date: date
    payment_method: PaymentMethod
    status: ExpenseStatus
    created_at: datetime
    updated_at: datetime


class ExpenseListResponse(BaseModel):
    """Schema for list of expenses"""

    expenses: list[ExpenseResponse]
    total: int


class ReceiptExtractionRequest(BaseModel):
    """Receipt photo as 'data:<mimetype>;base64,<encoded_data>'"""

    photo_data_uri: str = Field(..., min_length=1)


class ExtractedItem(BaseModel):
    name: str
    quantity: float = 1
    net_price: float = 0


class ExtractedReceipt(BaseModel):
    """Normalized model guess, ready to prefill an expense form"""

    company: str
    items: list[ExtractedItem]
    category: ExpenseCategory
    payment_method: PaymentMethod
    expense_date: date
    total_amount: float


class CategorySuggestionItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: float


class CategorySuggestionRequest(BaseModel):
    company: str = Field(..., min_length=1, max_length=255)
    items: list[CategorySuggestionItem] = Field(default_factory=list)


class CategorySuggestionResponse(BaseModel):
    category: ExpenseCategory
