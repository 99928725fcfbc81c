"""
User schemas for request/response validation.
"""

from datetime import datetime
from pydantic import EmailStr, Field, field_validator

from app.core.subscription import SubscriptionStatus
from app.schemas.base import BaseSchema, reject_null


class UserUpdate(BaseSchema):
    """Schema for updating the account profile."""

    full_name: str | None = Field(None, min_length=2, max_length=255)
    company_name: str | None = Field(None, max_length=255)
    company_address: str | None = None
    company_phone: str | None = Field(None, max_length=50)
    base_currency: str | None = Field(None, min_length=3, max_length=3)

    @field_validator("full_name", "base_currency")
    @classmethod
    def required_not_null(cls, value):
        return reject_null(value)


class PasswordChange(BaseSchema):
    current_password: str
    new_password: str = Field(..., min_length=8)


class UserResponse(BaseSchema):
    """User response schema (public data)."""

    id: int
    email: EmailStr
    full_name: str
    company_name: str | None
    company_address: str | None
    company_phone: str | None
    base_currency: str
    logo_url: str | None
    subscription_status: SubscriptionStatus
    current_period_end: datetime | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class UsageResponse(BaseSchema):
    """Invoice usage for the current calendar month."""

    plan: str
    is_pro: bool
    invoices_this_month: int
    invoice_limit: int | None
    can_create_invoice: bool


class LogoUploadResponse(BaseSchema):
    logo_url: str
    format: str
    original_size: int
    optimized_size: int
    compression_ratio: float
