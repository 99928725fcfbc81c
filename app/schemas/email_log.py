"""
Email history schemas.
"""

from datetime import datetime

from app.schemas.base import BaseSchema
from app.models.email_log import EmailType, DeliveryStatus


class EmailLogResponse(BaseSchema):
    id: int
    invoice_id: int | None
    recipient_email: str
    subject: str
    email_type: EmailType
    sent_at: datetime
    success: bool
    error_message: str | None
    message_id: str | None
    delivery_status: DeliveryStatus
    retry_count: int
    last_retry_at: datetime | None
    next_retry_at: datetime | None


class EmailLogListResponse(BaseSchema):
    items: list[EmailLogResponse]
    total: int
    page: int
    per_page: int
    pages: int


class RetryStatus(BaseSchema):
    can_retry: bool
    retries_remaining: int
    next_retry_at: datetime | None


class RetryResult(BaseSchema):
    success: bool
    error: str | None = None
    retry_count: int
    next_retry_at: datetime | None = None


class EmailStats(BaseSchema):
    total: int
    sent: int
    failed: int
    pending_retry: int
    by_type: dict[str, int]
    by_delivery_status: dict[str, int]
