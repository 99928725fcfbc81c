"""
EmailLog model: one row per outgoing email attempt, with retry bookkeeping.
"""

from typing import Optional, TYPE_CHECKING
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    String,
    Text,
    ForeignKey,
    Integer,
    Boolean,
    DateTime,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel, utcnow

if TYPE_CHECKING:
    from app.models.user import User


class EmailType(str, Enum):
    INVOICE = "invoice"
    ESTIMATE = "estimate"
    REMINDER = "reminder"
    RECEIPT = "receipt"


class DeliveryStatus(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    OPENED = "opened"
    CLICKED = "clicked"
    BOUNCED = "bounced"
    COMPLAINED = "complained"
    FAILED = "failed"


class EmailLog(BaseModel):
    """
    Email delivery record.

    Attributes:
        invoice_id: Invoice the email was about, if any
        recipient_email: Address the email went to
        email_type: What kind of document was sent
        success: Whether the last attempt was accepted by the mail server
        error_message: Error of the last failed attempt
        message_id: Message-ID header of the sent email
        retry_count: Retries attempted so far
        next_retry_at: When the next automatic retry is due, None when exhausted
    """

    __tablename__ = "email_logs"

    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    invoice_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    recipient_email: Mapped[str] = mapped_column(String(320), nullable=False)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email_type: Mapped[EmailType] = mapped_column(SQLEnum(EmailType), nullable=False)

    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    message_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    delivery_status: Mapped[DeliveryStatus] = mapped_column(
        SQLEnum(DeliveryStatus),
        default=DeliveryStatus.SENT,
        nullable=False,
    )

    # Retry bookkeeping
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_retry_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    next_retry_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="email_logs",
    )

    def __repr__(self) -> str:
        return f"<EmailLog(id={self.id}, to='{self.recipient_email}', success={self.success})>"
