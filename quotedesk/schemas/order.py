"""Pydantic schemas for orders, notes and the activity ledger."""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from quotedesk.db.enums import AssignmentType, OrderStatus


# =============================================================================
# Create / Update
# =============================================================================

class OrderCreate(BaseModel):
    """Manual order (not created from a quote)."""
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=10000)
    customer_id: UUID | None = None
    value: Decimal | None = Field(None, ge=0, le=9999999999.99)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderAssignmentUpdate(BaseModel):
    """
    Assignment change.

    type=None clears the assignment; otherwise assignee_id is the user id
    (individual) or team id (team).
    """
    type: Literal["individual", "team"] | None = None
    assignee_id: UUID | None = None

    @model_validator(mode="after")
    def check_assignee(self) -> "OrderAssignmentUpdate":
        if self.type and not self.assignee_id:
            raise ValueError("assignee_id is required when type is set")
        return self


class OrderNoteCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)
    include_in_invoice: bool = False


# =============================================================================
# Read / Response
# =============================================================================

class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    customer_id: UUID | None
    source_quote_id: UUID | None
    source: str
    title: str
    description: str | None
    value: Decimal | None
    status: OrderStatus
    assigned_to_user_id: UUID | None
    assigned_to_team_id: UUID | None
    assignment_type: AssignmentType | None
    include_rot: bool
    rot_personal_id: str | None
    rot_org_id: str | None
    rot_property_designation: str | None
    rot_amount: Decimal | None
    created_at: datetime
    updated_at: datetime


class OrderListResponse(BaseModel):
    items: list[OrderRead]
    total: int
    page: int
    per_page: int


class OrderActivityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    activity_type: str
    description: str
    actor_user_id: UUID | None
    old_value: str | None
    new_value: str | None
    created_at: datetime


class OrderNoteRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    author_id: UUID | None
    content: str
    include_in_invoice: bool
    created_at: datetime


class OrderStats(BaseModel):
    total: int
    by_status: dict[str, int]
    total_value: Decimal
    from_quotes: int
    unassigned: int
