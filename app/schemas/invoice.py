"""
Invoice schemas for request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import Field, model_validator

from app.schemas.base import BaseSchema
from app.schemas.client import ClientResponse
from app.models.invoice import InvoiceStatus
from app.utils.totals import DiscountType


class LineItemBase(BaseSchema):
    """Base line item schema, shared with estimates."""

    description: str = Field(..., min_length=1)
    quantity: Decimal = Field(default=Decimal("1.00"), gt=0)
    rate: Decimal = Field(..., ge=0)


class LineItemCreate(BaseSchema):
    """
    A new line. With ``product_id`` the description and rate default to the
    product's; without it both are required.
    """

    product_id: int | None = None
    description: str | None = Field(None, min_length=1)
    quantity: Decimal = Field(default=Decimal("1.00"), gt=0)
    rate: Decimal | None = Field(None, ge=0)

    @model_validator(mode="after")
    def check_source(self):
        if self.product_id is None and (self.description is None or self.rate is None):
            raise ValueError("Line items need a description and rate unless they reference a product")
        return self


class LineItemResponse(LineItemBase):
    id: int
    product_id: int | None = None
    amount: Decimal
    sort_order: int


class PricingFields(BaseSchema):
    """Tax and discount inputs of an invoice or estimate."""

    currency: str = Field(default="USD", min_length=3, max_length=3)
    tax_rate: Decimal = Field(default=Decimal("0.00"), ge=0, le=100)
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: Decimal = Field(default=Decimal("0.00"), ge=0)
    notes: str | None = None

    @model_validator(mode="after")
    def check_percentage(self):
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class InvoiceCreate(PricingFields):
    """Schema for creating an invoice."""

    client_id: int
    issue_date: date
    due_date: date
    payment_terms: str | None = None
    line_items: list[LineItemCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_dates(self):
        if self.due_date < self.issue_date:
            raise ValueError("Due date must be on or after the issue date")
        return self


class InvoiceUpdate(BaseSchema):
    """
    Schema for updating an invoice.
    When line_items is given the existing lines are replaced.
    """

    client_id: int | None = None
    issue_date: date | None = None
    due_date: date | None = None
    currency: str | None = Field(None, min_length=3, max_length=3)
    tax_rate: Decimal | None = Field(None, ge=0, le=100)
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(None, ge=0)
    notes: str | None = None
    payment_terms: str | None = None
    line_items: list[LineItemCreate] | None = None

    @model_validator(mode="after")
    def check_percentage(self):
        if self.discount_type == DiscountType.PERCENTAGE and (self.discount_value or 0) > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class InvoiceResponse(BaseSchema):
    """Invoice response schema."""

    id: int
    owner_id: int
    client_id: int
    invoice_number: str
    status: InvoiceStatus
    currency: str
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal
    total: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    notes: str | None
    payment_terms: str | None
    issue_date: date
    due_date: date
    sent_at: datetime | None
    paid_at: datetime | None
    line_items: list[LineItemResponse]
    client: Optional[ClientResponse] = None
    created_at: datetime
    updated_at: datetime


class InvoiceListResponse(BaseSchema):
    """Paginated invoice list response."""

    items: list[InvoiceResponse]
    total: int
    page: int
    per_page: int
    pages: int


class SendInvoiceRequest(BaseSchema):
    """Request body for sending an invoice."""

    message: str | None = None


class InvoiceStats(BaseSchema):
    status_counts: dict[str, int]
    total_invoiced: Decimal
    total_paid: Decimal
    outstanding: Decimal
    overdue_amount: Decimal


class OverdueCheckResponse(BaseSchema):
    updated: int
