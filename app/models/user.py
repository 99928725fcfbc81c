"""
User model: the business owner holding a SleekInvoices account.
"""

from datetime import datetime
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import String, Boolean, Text, DateTime, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.subscription import SubscriptionStatus
from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.client import Client
    from app.models.invoice import Invoice
    from app.models.estimate import Estimate
    from app.models.expense import Expense, ExpenseCategory
    from app.models.email_log import EmailLog
    from app.models.quickbooks import QuickBooksConnection
    from app.models.product import Product
    from app.models.recurring import RecurringInvoice


class User(BaseModel):
    """
    Account owner.

    Attributes:
        email: Login email, unique
        hashed_password: Bcrypt hash
        full_name: Owner's name
        company_name: Name printed on invoices
        company_address: Address printed on invoices
        company_phone: Contact phone
        base_currency: ISO 4217 code used by default on new documents
        logo_url: Path or URL of the optimized company logo
        subscription_status: Billing status, drives plan limits
        current_period_end: End of the paid period
        is_active: Disabled accounts cannot log in
    """

    __tablename__ = "users"

    # Authentication
    email: Mapped[str] = mapped_column(
        String(320),
        unique=True,
        index=True,
        nullable=False,
    )
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Company branding
    company_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    company_address: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    company_phone: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    base_currency: Mapped[str] = mapped_column(
        String(3),
        default="USD",
        nullable=False,
    )
    logo_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    # Subscription
    subscription_status: Mapped[SubscriptionStatus] = mapped_column(
        SQLEnum(SubscriptionStatus),
        default=SubscriptionStatus.FREE,
        nullable=False,
    )
    current_period_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Relationships
    clients: Mapped[List["Client"]] = relationship(
        "Client",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
    invoices: Mapped[List["Invoice"]] = relationship(
        "Invoice",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
    estimates: Mapped[List["Estimate"]] = relationship(
        "Estimate",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
    expense_categories: Mapped[List["ExpenseCategory"]] = relationship(
        "ExpenseCategory",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
    expenses: Mapped[List["Expense"]] = relationship(
        "Expense",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
    email_logs: Mapped[List["EmailLog"]] = relationship(
        "EmailLog",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
    products: Mapped[List["Product"]] = relationship(
        "Product",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
    recurring_invoices: Mapped[List["RecurringInvoice"]] = relationship(
        "RecurringInvoice",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
    quickbooks_connection: Mapped[Optional["QuickBooksConnection"]] = relationship(
        "QuickBooksConnection",
        back_populates="owner",
        cascade="all, delete-orphan",
        uselist=False,
    )

    @property
    def display_name(self) -> str:
        return self.company_name or self.full_name

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', company='{self.company_name}')>"
