"""
Recurring invoice templates and their generation log.
"""

from typing import Optional, List, TYPE_CHECKING
from datetime import date, datetime
from enum import Enum
from sqlalchemy import (
    Text,
    ForeignKey,
    Integer,
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel
from app.models.invoice import PricedDocumentMixin, LineItemMixin

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.client import Client


class RecurringFrequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class GenerationStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class RecurringInvoice(PricedDocumentMixin, BaseModel):
    """
    Template that issues a draft invoice every period.

    Attributes:
        owner_id: Account the generated invoices belong to
        client_id: Recipient of every generated invoice
        frequency: Period between two invoices
        start_date: Date of the first invoice; also anchors the day of month
        end_date: No invoice is issued after this date
        next_invoice_date: Issue date of the next generated invoice
        due_in_days: Days between issue and due date on generated invoices
        payment_terms: Copied to generated invoices
        is_active: Only active templates generate invoices
        last_generated_at: Time of the last successful generation
    """

    __tablename__ = "recurring_invoices"

    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    client_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    frequency: Mapped[RecurringFrequency] = mapped_column(
        SQLEnum(RecurringFrequency),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    next_invoice_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    due_in_days: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    payment_terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    last_generated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    owner: Mapped["User"] = relationship(
        "User",
        back_populates="recurring_invoices",
    )
    client: Mapped["Client"] = relationship(
        "Client",
        lazy="selectin",
    )
    line_items: Mapped[List["RecurringInvoiceLineItem"]] = relationship(
        "RecurringInvoiceLineItem",
        back_populates="recurring_invoice",
        cascade="all, delete-orphan",
        order_by="RecurringInvoiceLineItem.sort_order",
        lazy="selectin",
    )
    generation_logs: Mapped[List["RecurringGenerationLog"]] = relationship(
        "RecurringGenerationLog",
        back_populates="recurring_invoice",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<RecurringInvoice(id={self.id}, frequency='{self.frequency}', next={self.next_invoice_date})>"


class RecurringInvoiceLineItem(LineItemMixin, BaseModel):
    """Line copied onto every generated invoice."""

    __tablename__ = "recurring_invoice_line_items"

    recurring_invoice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("recurring_invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    recurring_invoice: Mapped["RecurringInvoice"] = relationship(
        "RecurringInvoice",
        back_populates="line_items",
    )


class RecurringGenerationLog(BaseModel):
    """One generation attempt for a template."""

    __tablename__ = "recurring_generation_logs"

    recurring_invoice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("recurring_invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    invoice_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
    )
    period_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[GenerationStatus] = mapped_column(
        SQLEnum(GenerationStatus),
        nullable=False,
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    recurring_invoice: Mapped["RecurringInvoice"] = relationship(
        "RecurringInvoice",
        back_populates="generation_logs",
    )
