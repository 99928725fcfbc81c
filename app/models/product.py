"""
Product model: reusable catalog entries for invoice and estimate lines.
"""

from typing import Optional, TYPE_CHECKING
from decimal import Decimal
from sqlalchemy import String, Text, ForeignKey, Integer, Numeric, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.user import User


class Product(BaseModel):
    """
    Product or service sold by the account owner.

    Attributes:
        owner_id: Foreign key to the account owner
        name: Product/service name
        description: Default line item description
        sku: Stock Keeping Unit, free-form
        rate: Default unit price for line items
        unit: Unit of measurement (hour, item, month...)
        category: Free-form grouping
        taxable: Whether the product is normally taxed
        is_active: Inactive products stay on old lines but cannot be added to new ones
        usage_count: Number of line items created from this product
    """

    __tablename__ = "products"

    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    sku: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
    )

    rate: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
    )
    unit: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    category: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    taxable: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    usage_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="products",
    )

    @property
    def line_description(self) -> str:
        """Text used for a line item that only names the product."""
        return self.description or self.name

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}', rate={self.rate})>"
