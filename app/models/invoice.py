"""
Invoice and InvoiceLineItem models.
Invoices move through draft, sent, paid, overdue and canceled.
"""

from typing import Optional, List, TYPE_CHECKING
from decimal import Decimal
from datetime import date, datetime
from enum import Enum
from sqlalchemy import (
    String,
    Text,
    ForeignKey,
    Integer,
    Numeric,
    Date,
    DateTime,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel
from app.utils.totals import DiscountType, Totals, ZERO

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.client import Client
    from app.models.payment import Payment


class InvoiceStatus(str, Enum):
    """Invoice status enumeration."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELED = "canceled"


def money_column(default: Decimal = ZERO):
    return mapped_column(
        Numeric(precision=12, scale=2),
        default=default,
        nullable=False,
    )


class PricedDocumentMixin:
    """
    Money columns shared by invoices and estimates.

    ``total = subtotal - discount_amount + tax_amount`` always holds; the
    columns are only written through :meth:`apply_totals`.
    """

    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    subtotal: Mapped[Decimal] = money_column()
    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(precision=5, scale=2),
        default=ZERO,
        nullable=False,
    )
    tax_amount: Mapped[Decimal] = money_column()
    discount_type: Mapped[DiscountType] = mapped_column(
        SQLEnum(DiscountType),
        default=DiscountType.PERCENTAGE,
        nullable=False,
    )
    discount_value: Mapped[Decimal] = money_column()
    discount_amount: Mapped[Decimal] = money_column()
    total: Mapped[Decimal] = money_column()
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def apply_totals(self, totals: Totals) -> None:
        self.subtotal = totals.subtotal
        self.discount_amount = totals.discount_amount
        self.tax_amount = totals.tax_amount
        self.total = totals.total


class LineItemMixin:
    """quantity x rate = amount, kept in entry order by sort_order."""

    product_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        default=Decimal("1.00"),
        nullable=False,
    )
    rate: Mapped[Decimal] = money_column()
    amount: Mapped[Decimal] = money_column()
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Invoice(PricedDocumentMixin, BaseModel):
    """
    Invoice.

    Attributes:
        owner_id: Account that issued the invoice
        client_id: Recipient
        invoice_number: INV-{year}-{NNNN}, unique per owner
        status: Current invoice status
        amount_paid: Sum of completed payments
        payment_terms: Terms printed on the invoice
        issue_date / due_date: Billing dates
        sent_at / paid_at: Status change timestamps
        pdf_path: Last generated PDF
    """

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("owner_id", "invoice_number", name="uq_invoices_owner_number"),
    )

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

    invoice_number: Mapped[str] = mapped_column(
        String(50),
        index=True,
        nullable=False,
    )
    status: Mapped[InvoiceStatus] = mapped_column(
        SQLEnum(InvoiceStatus),
        default=InvoiceStatus.DRAFT,
        nullable=False,
        index=True,
    )

    amount_paid: Mapped[Decimal] = money_column()
    payment_terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    pdf_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Relationships
    owner: Mapped["User"] = relationship(
        "User",
        back_populates="invoices",
    )
    client: Mapped["Client"] = relationship(
        "Client",
        lazy="selectin",
    )
    line_items: Mapped[List["InvoiceLineItem"]] = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItem.sort_order",
        lazy="selectin",
    )
    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def balance_due(self) -> Decimal:
        return self.total - self.amount_paid

    @property
    def is_fully_paid(self) -> bool:
        return self.amount_paid >= self.total

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', total={self.total})>"


class InvoiceLineItem(LineItemMixin, BaseModel):
    """One billed line on an invoice."""

    __tablename__ = "invoice_line_items"

    invoice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    invoice: Mapped["Invoice"] = relationship(
        "Invoice",
        back_populates="line_items",
    )

    def __repr__(self) -> str:
        return f"<InvoiceLineItem(id={self.id}, description='{self.description[:30]}', amount={self.amount})>"
