"""Pydantic schemas for quotes and the public acceptance flow."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from quotedesk.db.enums import QuoteStatus, RotIdentifierKind


# =============================================================================
# Line items
# =============================================================================

class QuoteLineItemIn(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Field(..., gt=0, le=99999999, decimal_places=2)
    unit_price: Decimal = Field(..., ge=0, le=9999999999.99, decimal_places=2)


class QuoteLineItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    description: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal
    sort_order: int


# =============================================================================
# Create / Update
# =============================================================================

class QuoteCreate(BaseModel):
    """Schema for creating a draft quote."""
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=10000)
    customer_id: UUID | None = None
    valid_until: date | None = None
    include_rot: bool = False
    rot_personal_id: str | None = Field(None, max_length=13)
    rot_org_id: str | None = Field(None, max_length=11)
    rot_property_designation: str | None = Field(None, max_length=255)
    line_items: list[QuoteLineItemIn] = Field(default_factory=list)


class QuoteUpdate(BaseModel):
    """
    Schema for updating a draft or sent quote.

    When line_items is given the whole set is replaced.
    """
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=10000)
    customer_id: UUID | None = None
    valid_until: date | None = None
    include_rot: bool | None = None
    rot_personal_id: str | None = Field(None, max_length=13)
    rot_org_id: str | None = Field(None, max_length=11)
    rot_property_designation: str | None = Field(None, max_length=255)
    line_items: list[QuoteLineItemIn] | None = None


# =============================================================================
# Read / Response
# =============================================================================

class QuoteRead(BaseModel):
    """Full quote details for internal users."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    customer_id: UUID | None
    quote_number: str
    title: str
    description: str | None
    total_amount: Decimal
    status: QuoteStatus
    valid_until: date | None
    token_expires_at: datetime | None
    accepted_at: datetime | None
    order_id: UUID | None
    include_rot: bool
    rot_personal_id: str | None
    rot_org_id: str | None
    rot_property_designation: str | None
    rot_amount: Decimal | None
    created_at: datetime
    updated_at: datetime
    line_items: list[QuoteLineItemRead] = []


class QuoteListItem(BaseModel):
    """Compact quote for list views."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    quote_number: str
    title: str
    total_amount: Decimal
    status: QuoteStatus
    include_rot: bool
    rot_amount: Decimal | None
    order_id: UUID | None
    created_at: datetime


class QuoteListResponse(BaseModel):
    items: list[QuoteListItem]
    total: int
    page: int
    per_page: int


class QuoteSendResponse(BaseModel):
    """Rendered quote email handed to the outbound mail collaborator."""
    quote_id: UUID
    status: QuoteStatus
    acceptance_url: str
    token_expires_at: datetime
    subject: str
    body: str


class QuoteStats(BaseModel):
    total: int
    by_status: dict[str, int]
    total_value: Decimal
    accepted_value: Decimal
    rot_quotes: int
    rot_total: Decimal


# =============================================================================
# Public (token-gated)
# =============================================================================

class PublicRotPreview(BaseModel):
    include_rot: bool
    rot_amount: Decimal
    net_payable: Decimal
    capped: bool


class PublicQuoteRead(BaseModel):
    """What the customer sees behind the acceptance link. No internal ids."""
    quote_number: str
    title: str
    description: str | None
    total_amount: Decimal
    currency: str
    valid_until: date | None
    token_expires_at: datetime | None
    line_items: list[QuoteLineItemRead]
    rot: PublicRotPreview
    rot_explanation: str


class RotSubmission(BaseModel):
    type: RotIdentifierKind
    identifier: str = Field(..., max_length=32)
    property_designation: str = Field("", max_length=255)


class PublicAcceptRequest(BaseModel):
    rot: RotSubmission | None = None


class PublicAcceptResponse(BaseModel):
    order_id: UUID
    quote_id: UUID
    accepted_at: datetime
    rot_amount: Decimal
    net_payable: Decimal
