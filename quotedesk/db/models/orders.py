"""Order, order activity ledger and order note models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quotedesk.db.base import Base
from quotedesk.db.enums import DEFAULT_ORDER_STATUS, OrderSource
from quotedesk.db.models.auth import utcnow

if TYPE_CHECKING:
    from quotedesk.db.models import Customer, Team, User


class Order(Base):
    """
    Work order.

    Orders created from a quote are a frozen snapshot: title, customer, value
    and all ROT fields are copied at acceptance time, never referenced.
    source_quote_id is the authoritative quote link (unique).
    """

    __tablename__ = "orders"
    __table_args__ = (
        Index("idx_orders_org_status", "organization_id", "status"),
        Index("idx_orders_assignee", "assigned_to_user_id"),
        CheckConstraint(
            "assigned_to_user_id IS NULL OR assigned_to_team_id IS NULL",
            name="ck_orders_single_assignment",
        ),
        CheckConstraint(
            "rot_personal_id IS NULL OR rot_org_id IS NULL",
            name="ck_orders_rot_identifier_exclusive",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True
    )
    source_quote_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("quotes.id", ondelete="SET NULL"), unique=True, nullable=True
    )
    source: Mapped[str] = mapped_column(
        String(20), default=OrderSource.MANUAL.value, nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    status: Mapped[str] = mapped_column(
        String(30), default=DEFAULT_ORDER_STATUS.value, nullable=False
    )

    # Assignment: individual xor team
    assigned_to_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    assigned_to_team_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True
    )

    # ROT snapshot
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

    customer: Mapped["Customer | None"] = relationship()
    assigned_to: Mapped["User | None"] = relationship(foreign_keys=[assigned_to_user_id])
    assigned_team: Mapped["Team | None"] = relationship()

    @property
    def assignment_type(self) -> str | None:
        if self.assigned_to_user_id:
            return "individual"
        if self.assigned_to_team_id:
            return "team"
        return None


class OrderActivity(Base):
    """
    Append-only audit trail of every state-affecting order mutation.

    Rows are only ever inserted (activity_service.log_activity).
    """

    __tablename__ = "order_activities"
    __table_args__ = (
        Index("idx_order_activities_order", "order_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    old_value: Mapped[str | None] = mapped_column(String(255), nullable=True)
    new_value: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    actor: Mapped["User | None"] = relationship()


class OrderNote(Base):
    """Free-text note on an order."""

    __tablename__ = "order_notes"
    __table_args__ = (Index("idx_order_notes_order", "order_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    include_in_invoice: Mapped[bool] = mapped_column(
        default=False, server_default=false(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    author: Mapped["User | None"] = relationship()
