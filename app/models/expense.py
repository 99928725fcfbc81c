"""
Expense and ExpenseCategory models for profit/loss tracking.
"""

from typing import Optional, List, TYPE_CHECKING
from decimal import Decimal
from datetime import date as date_type
from enum import Enum
from sqlalchemy import (
    String,
    Text,
    ForeignKey,
    Integer,
    Numeric,
    Date,
    Boolean,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.user import User


class ExpensePaymentMethod(str, Enum):
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    OTHER = "other"


class ExpenseCategory(BaseModel):
    """
    User-defined expense bucket.

    Attributes:
        name: Category label
        color: Hex color used by charts
        icon: Icon name shown by the UI
    """

    __tablename__ = "expense_categories"

    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str] = mapped_column(String(7), default="#64748b", nullable=False)
    icon: Mapped[str] = mapped_column(String(50), default="receipt", nullable=False)

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="expense_categories",
    )

    def __repr__(self) -> str:
        return f"<ExpenseCategory(id={self.id}, name='{self.name}')>"


class Expense(BaseModel):
    """
    A business cost.

    Billable expenses carry the client to re-bill and, once billed, the
    invoice they were added to.
    """

    __tablename__ = "expenses"

    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("expense_categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)

    vendor: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    payment_method: Mapped[Optional[ExpensePaymentMethod]] = mapped_column(
        SQLEnum(ExpensePaymentMethod),
        nullable=True,
    )
    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        default=Decimal("0.00"),
        nullable=False,
    )

    is_billable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    client_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
    )
    invoice_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="expenses",
    )
    category: Mapped["ExpenseCategory"] = relationship(
        "ExpenseCategory",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Expense(id={self.id}, amount={self.amount}, vendor='{self.vendor}')>"
