"""
Estimate and EstimateLineItem models.
An accepted estimate can be converted into a draft invoice.
"""

from typing import Optional, List, TYPE_CHECKING
from datetime import date, datetime
from enum import Enum
from sqlalchemy import (
    String,
    ForeignKey,
    Integer,
    Date,
    DateTime,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel
from app.models.invoice import PricedDocumentMixin, LineItemMixin

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.client import Client


class EstimateStatus(str, Enum):
    """Estimate status enumeration."""
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CONVERTED = "converted"


# Statuses that lapse to EXPIRED once valid_until has passed
OPEN_ESTIMATE_STATUSES = (
    EstimateStatus.DRAFT,
    EstimateStatus.SENT,
    EstimateStatus.VIEWED,
)


class Estimate(PricedDocumentMixin, BaseModel):
    """
    Estimate (quote) sent to a client before work starts.

    Attributes:
        estimate_number: EST-{year}-{NNNN}, unique per owner
        title: Optional headline
        terms: Terms and conditions
        valid_until: Last day the estimate can be accepted
        converted_invoice_id: Invoice created from this estimate
    """

    __tablename__ = "estimates"
    __table_args__ = (
        UniqueConstraint("owner_id", "estimate_number", name="uq_estimates_owner_number"),
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

    estimate_number: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    terms: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)
    status: Mapped[EstimateStatus] = mapped_column(
        SQLEnum(EstimateStatus),
        default=EstimateStatus.DRAFT,
        nullable=False,
    )

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    valid_until: Mapped[date] = mapped_column(Date, nullable=False)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    converted_invoice_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
    )

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="estimates",
    )
    client: Mapped["Client"] = relationship(
        "Client",
        lazy="selectin",
    )
    line_items: Mapped[List["EstimateLineItem"]] = relationship(
        "EstimateLineItem",
        back_populates="estimate",
        cascade="all, delete-orphan",
        order_by="EstimateLineItem.sort_order",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Estimate(id={self.id}, number='{self.estimate_number}', status='{self.status}')>"


class EstimateLineItem(LineItemMixin, BaseModel):
    """One quoted line on an estimate."""

    __tablename__ = "estimate_line_items"

    estimate_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("estimates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    estimate: Mapped["Estimate"] = relationship(
        "Estimate",
        back_populates="line_items",
    )
