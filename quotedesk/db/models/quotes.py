"""Quote and line item models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quotedesk.db.base import Base
from quotedesk.db.enums import DEFAULT_QUOTE_STATUS
from quotedesk.db.models.auth import utcnow

if TYPE_CHECKING:
    from quotedesk.db.models import Customer


class Quote(Base):
    """
    Sales quote that can be accepted once through a public token link.

    Lifecycle fields (status, acceptance_token, token_expires_at,
    accepted_at, order_id) are owned by quote_service / quote_token_service.

    order_id is a cache of Order.source_quote_id. It is set once and must be
    validated against the order on read (quote_service.get_linked_order).
    """

    __tablename__ = "quotes"
    __table_args__ = (
        UniqueConstraint("organization_id", "quote_number", name="uq_quote_org_number"),
        UniqueConstraint("acceptance_token", name="uq_quote_acceptance_token"),
        Index("idx_quotes_org_status", "organization_id", "status"),
        CheckConstraint(
            "status IN ('draft', 'sent', 'accepted', 'declined')",
            name="ck_quotes_status",
        ),
        CheckConstraint(
            "rot_personal_id IS NULL OR rot_org_id IS NULL",
            name="ck_quotes_rot_identifier_exclusive",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True
    )
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    quote_number: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), server_default="0", nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_QUOTE_STATUS.value, nullable=False
    )
    valid_until: Mapped[date | None] = mapped_column(nullable=True)

    # Acceptance
    acceptance_token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    token_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    accepted_by_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    order_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    # ROT deduction
    include_rot: Mapped[bool] = mapped_column(default=False, server_default=false(), nullable=False)
    rot_personal_id: Mapped[str | None] = mapped_column(String(13), nullable=True)
    rot_org_id: Mapped[str | None] = mapped_column(String(11), nullable=True)
    rot_property_designation: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rot_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 4), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    line_items: Mapped[list["QuoteLineItem"]] = relationship(
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteLineItem.sort_order",
    )
    customer: Mapped["Customer | None"] = relationship()


class QuoteLineItem(Base):
    """Quote row. Replaced as a batch whenever the quote is edited."""

    __tablename__ = "quote_line_items"
    __table_args__ = (Index("idx_quote_line_items_quote", "quote_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    quote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)

    quote: Mapped["Quote"] = relationship(back_populates="line_items")
