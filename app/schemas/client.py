"""
Client schemas for request/response validation.
"""

from datetime import datetime
from pydantic import EmailStr, Field, field_validator

from app.schemas.base import BaseSchema, reject_null


class ClientBase(BaseSchema):
    """Base client schema with common fields."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None
    company_name: str | None = Field(None, max_length=255)
    address: str | None = None
    phone: str | None = Field(None, max_length=50)
    notes: str | None = None
    vat_number: str | None = Field(None, max_length=50)
    tax_exempt: bool = False


class ClientCreate(ClientBase):
    """Schema for creating a new client."""
    pass


class ClientUpdate(BaseSchema):
    """Schema for updating a client."""

    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    company_name: str | None = Field(None, max_length=255)
    address: str | None = None
    phone: str | None = Field(None, max_length=50)
    notes: str | None = None
    vat_number: str | None = Field(None, max_length=50)
    tax_exempt: bool | None = None

    @field_validator("name", "tax_exempt")
    @classmethod
    def required_not_null(cls, value):
        return reject_null(value)


class ClientResponse(ClientBase):
    """Client response schema."""

    email: str | None = None
    id: int
    owner_id: int
    created_at: datetime
    updated_at: datetime


class ClientListResponse(BaseSchema):
    """Paginated client list response."""

    items: list[ClientResponse]
    total: int
    page: int
    per_page: int
    pages: int


class BulkDeleteRequest(BaseSchema):
    ids: list[int] = Field(..., min_length=1)


class BulkDeleteResponse(BaseSchema):
    deleted: int


# CSV import

class ImportedClient(BaseSchema):
    """A client row already parsed from CSV."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(None, max_length=320)
    company_name: str | None = Field(None, max_length=255)
    address: str | None = None
    phone: str | None = Field(None, max_length=50)
    notes: str | None = None
    vat_number: str | None = Field(None, max_length=50)


class ClientImportRequest(BaseSchema):
    clients: list[ImportedClient]
    skip_duplicates: bool = True


class CSVRowError(BaseSchema):
    row: int
    field: str
    message: str
    value: str | None = None


class CSVPreviewResponse(BaseSchema):
    """Result of parsing an uploaded CSV without saving anything."""

    success: bool
    clients: list[ImportedClient]
    errors: list[CSVRowError]
    total_rows: int
    valid_rows: int
    duplicates: list[str]


class ClientImportResponse(BaseSchema):
    imported: int
    skipped: int
    errors: list[CSVRowError] = Field(default_factory=list)
    duplicate_emails: list[str] = Field(default_factory=list)


# VAT

class VATValidationRequest(BaseSchema):
    vat_number: str = Field(..., min_length=4, max_length=20)


class VATValidationResponse(BaseSchema):
    valid: bool
    country_code: str | None = None
    vat_number: str | None = None
    name: str | None = None
    address: str | None = None
    request_date: str | None = None
    error_message: str | None = None
