"""
Recurring invoice schemas for request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import Field, field_validator, model_validator

from app.models.recurring import GenerationStatus, RecurringFrequency
from app.schemas.base import BaseSchema, reject_null
from app.schemas.client import ClientResponse
from app.schemas.invoice import LineItemCreate, LineItemResponse, PricingFields
from app.utils.totals import DiscountType


class RecurringInvoiceCreate(PricingFields):
    """Schema for creating a recurring invoice template."""

    client_id: int
    frequency: RecurringFrequency
    start_date: date
    end_date: date | None = None
    due_in_days: int = Field(default=30, ge=0, le=365)
    payment_terms: str | None = None
    line_items: list[LineItemCreate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("End date must be on or after the start date")
        return self


class RecurringInvoiceUpdate(BaseSchema):
    """
    Schema for updating a template.
    Changing start_date or frequency reschedules the next invoice.
    """

    client_id: int | None = None
    frequency: RecurringFrequency | None = None
    start_date: date | None = None
    end_date: date | None = None
    due_in_days: int | None = Field(None, ge=0, le=365)
    currency: str | None = Field(None, min_length=3, max_length=3)
    tax_rate: Decimal | None = Field(None, ge=0, le=100)
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(None, ge=0)
    notes: str | None = None
    payment_terms: str | None = None
    is_active: bool | None = None
    line_items: list[LineItemCreate] | None = Field(None, min_length=1)

    @field_validator(
        "client_id", "frequency", "start_date", "due_in_days", "currency",
        "tax_rate", "discount_type", "discount_value", "is_active", "line_items",
    )
    @classmethod
    def required_not_null(cls, value):
        return reject_null(value)

    @model_validator(mode="after")
    def check_percentage(self):
        if self.discount_type == DiscountType.PERCENTAGE and (self.discount_value or 0) > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class RecurringInvoiceResponse(BaseSchema):
    """Recurring invoice template response."""

    id: int
    owner_id: int
    client_id: int
    frequency: RecurringFrequency
    start_date: date
    end_date: date | None
    next_invoice_date: date
    due_in_days: int
    currency: str
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal
    total: Decimal
    notes: str | None
    payment_terms: str | None
    is_active: bool
    last_generated_at: datetime | None
    line_items: list[LineItemResponse]
    client: Optional[ClientResponse] = None
    created_at: datetime
    updated_at: datetime


class RecurringInvoiceListResponse(BaseSchema):
    items: list[RecurringInvoiceResponse]
    total: int
    page: int
    per_page: int
    pages: int


class GenerationLogResponse(BaseSchema):
    id: int
    recurring_invoice_id: int
    invoice_id: int | None
    period_date: date
    status: GenerationStatus
    error_message: str | None
    created_at: datetime


class GenerationResult(BaseSchema):
    """Outcome of one generation run."""

    generated: int = 0
    failed: int = 0
    deactivated: int = 0
    invoice_ids: list[int] = Field(default_factory=list)
