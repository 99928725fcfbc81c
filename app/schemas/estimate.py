"""
Estimate schemas for request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import Field, model_validator

from app.schemas.base import BaseSchema
from app.schemas.client import ClientResponse
from app.schemas.invoice import LineItemCreate, LineItemResponse, PricingFields
from app.models.estimate import EstimateStatus
from app.utils.totals import DiscountType


class EstimateCreate(PricingFields):
    """Schema for creating an estimate."""

    client_id: int
    title: str | None = Field(None, max_length=255)
    terms: str | None = Field(None, max_length=2000)
    issue_date: date
    valid_until: date
    line_items: list[LineItemCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_dates(self):
        if self.valid_until < self.issue_date:
            raise ValueError("Validity date must be on or after the issue date")
        return self


class EstimateUpdate(BaseSchema):
    client_id: int | None = None
    title: str | None = Field(None, max_length=255)
    terms: str | None = Field(None, max_length=2000)
    issue_date: date | None = None
    valid_until: date | None = None
    currency: str | None = Field(None, min_length=3, max_length=3)
    tax_rate: Decimal | None = Field(None, ge=0, le=100)
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(None, ge=0)
    notes: str | None = None
    line_items: list[LineItemCreate] | None = None

    @model_validator(mode="after")
    def check_percentage(self):
        if self.discount_type == DiscountType.PERCENTAGE and (self.discount_value or 0) > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class EstimateResponse(BaseSchema):
    """Estimate response schema."""

    id: int
    owner_id: int
    client_id: int
    estimate_number: str
    title: str | None
    terms: str | None
    status: EstimateStatus
    currency: str
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal
    total: Decimal
    notes: str | None
    issue_date: date
    valid_until: date
    sent_at: datetime | None
    accepted_at: datetime | None
    rejected_at: datetime | None
    converted_invoice_id: int | None
    line_items: list[LineItemResponse]
    client: Optional[ClientResponse] = None
    created_at: datetime
    updated_at: datetime


class EstimateListResponse(BaseSchema):
    items: list[EstimateResponse]
    total: int
    page: int
    per_page: int
    pages: int


class EstimateConversionResponse(BaseSchema):
    estimate_id: int
    invoice_id: int
    invoice_number: str
