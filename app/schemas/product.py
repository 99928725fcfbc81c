"""
Product schemas for request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from pydantic import Field, field_validator

from app.schemas.base import BaseSchema, reject_null


class ProductBase(BaseSchema):
    """Base product schema with common fields."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    sku: str | None = Field(None, max_length=100)
    rate: Decimal = Field(..., ge=0, decimal_places=2)
    unit: str | None = Field(None, max_length=50)
    category: str | None = Field(None, max_length=100)
    taxable: bool = True


class ProductCreate(ProductBase):
    """Schema for creating a new product."""
    pass


class ProductUpdate(BaseSchema):
    """Schema for updating a product."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    sku: str | None = Field(None, max_length=100)
    rate: Decimal | None = Field(None, ge=0, decimal_places=2)
    unit: str | None = Field(None, max_length=50)
    category: str | None = Field(None, max_length=100)
    taxable: bool | None = None
    is_active: bool | None = None

    @field_validator("name", "rate", "taxable", "is_active")
    @classmethod
    def required_not_null(cls, value):
        return reject_null(value)


class ProductResponse(ProductBase):
    """Product response schema."""

    id: int
    owner_id: int
    is_active: bool
    usage_count: int
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseSchema):
    """Paginated product list response."""

    items: list[ProductResponse]
    total: int
    page: int
    per_page: int
    pages: int
