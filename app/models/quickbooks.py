"""
QuickBooks Online connection and entity mapping models.
OAuth tokens are stored encrypted with app.core.encryption.
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
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.user import User


class QuickBooksEntityType(str, Enum):
    CUSTOMER = "customer"
    INVOICE = "invoice"


class QuickBooksConnection(BaseModel):
    """
    One QuickBooks company linked to an account.

    Attributes:
        realm_id: QuickBooks company identifier
        access_token_encrypted / refresh_token_encrypted: AES-GCM tokens
        token_expires_at: Access token expiry
        is_active: False after disconnect
    """

    __tablename__ = "quickbooks_connections"

    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    realm_id: Mapped[str] = mapped_column(String(50), nullable=False)
    company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    environment: Mapped[str] = mapped_column(String(20), default="sandbox", nullable=False)

    access_token_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    token_expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_sync_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="quickbooks_connection",
    )

    def __repr__(self) -> str:
        return f"<QuickBooksConnection(id={self.id}, realm_id='{self.realm_id}', active={self.is_active})>"


class QuickBooksEntityMapping(BaseModel):
    """Maps a local customer or invoice to its QuickBooks id."""

    __tablename__ = "quickbooks_entity_mappings"
    __table_args__ = (
        UniqueConstraint("owner_id", "entity_type", "local_id", name="uq_qb_mapping_local"),
    )

    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    entity_type: Mapped[QuickBooksEntityType] = mapped_column(
        SQLEnum(QuickBooksEntityType),
        nullable=False,
    )
    local_id: Mapped[int] = mapped_column(Integer, nullable=False)
    qb_id: Mapped[str] = mapped_column(String(50), nullable=False)
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
