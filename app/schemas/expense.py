"""
Expense and category schemas.
"""

from datetime import date as date_type, datetime
from decimal import Decimal
from pydantic import Field, field_validator

from app.schemas.base import BaseSchema, reject_null
from app.models.expense import ExpensePaymentMethod


class CategoryCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(default="#64748b", pattern=r"^#[0-9a-fA-F]{6}$")
    icon: str = Field(default="receipt", max_length=50)


class CategoryResponse(CategoryCreate):
    id: int
    created_at: datetime


class ExpenseBase(BaseSchema):
    category_id: int
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    date: date_type
    vendor: str | None = Field(None, max_length=255)
    description: str = Field(..., min_length=1)
    notes: str | None = None
    payment_method: ExpensePaymentMethod | None = None
    tax_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    is_billable: bool = False
    client_id: int | None = None
    is_recurring: bool = False


class ExpenseCreate(ExpenseBase):
    pass


class ExpenseUpdate(BaseSchema):
    category_id: int | None = None
    amount: Decimal | None = Field(None, gt=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    date: date_type | None = None
    vendor: str | None = Field(None, max_length=255)
    description: str | None = Field(None, min_length=1)
    notes: str | None = None
    payment_method: ExpensePaymentMethod | None = None
    tax_amount: Decimal | None = Field(None, ge=0)
    is_billable: bool | None = None
    client_id: int | None = None
    is_recurring: bool | None = None

    @field_validator(
        "category_id", "amount", "currency", "date", "description",
        "tax_amount", "is_billable", "is_recurring",
    )
    @classmethod
    def required_not_null(cls, value):
        return reject_null(value)


class ExpenseResponse(ExpenseBase):
    id: int
    owner_id: int
    invoice_id: int | None
    category: CategoryResponse | None = None
    created_at: datetime
    updated_at: datetime


class ExpenseListResponse(BaseSchema):
    items: list[ExpenseResponse]
    total: int
    page: int
    per_page: int
    pages: int


class CategoryTotal(BaseSchema):
    category_id: int
    category_name: str
    color: str
    total: Decimal
    count: int


class ExpenseStats(BaseSchema):
    months: int
    total_amount: Decimal
    total_tax: Decimal
    billable_amount: Decimal
    count: int
    by_category: list[CategoryTotal]


class LinkExpensesRequest(BaseSchema):
    expense_ids: list[int] = Field(..., min_length=1)
    invoice_id: int
