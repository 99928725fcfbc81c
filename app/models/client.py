"""
Client model: the people and companies invoices are addressed to.
"""

from typing import Optional, TYPE_CHECKING
from sqlalchemy import String, Text, ForeignKey, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.user import User


class Client(BaseModel):
    """
    Invoice recipient.

    Attributes:
        owner_id: Account that owns the client
        name: Contact name
        email: Billing email, used for invoice delivery
        company_name: Client's company
        address: Postal address
        phone: Phone number
        notes: Free-form notes
        vat_number: EU VAT identifier
        tax_exempt: Whether invoices to this client carry no tax
    """

    __tablename__ = "clients"

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
    email: Mapped[Optional[str]] = mapped_column(
        String(320),
        nullable=True,
        index=True,
    )
    company_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    address: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    phone: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    vat_number: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    tax_exempt: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="clients",
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name='{self.name}', owner_id={self.owner_id})>"
