"""Pydantic schemas for ROT preview, validation and reporting."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from quotedesk.db.enums import RotIdentifierKind


class RotPreviewRequest(BaseModel):
    total: Decimal = Field(..., ge=0)
    include_rot: bool = True
    service_type: str | None = Field(None, max_length=255)


class RotPreviewResponse(BaseModel):
    total: Decimal
    include_rot: bool
    rot_amount: Decimal
    net_payable: Decimal
    capped: bool
    currency: str
    formatted_rot_amount: str
    formatted_net_payable: str
    eligible: bool | None = None


class IdentifierValidationRequest(BaseModel):
    type: RotIdentifierKind
    identifier: str = Field(..., max_length=32)


class IdentifierValidationResponse(BaseModel):
    valid: bool
    formatted: str | None = None


class RotReportRow(BaseModel):
    order_id: UUID
    title: str
    customer_name: str | None
    identifier_type: RotIdentifierKind | None
    identifier: str | None
    property_designation: str | None
    value: Decimal | None
    rot_amount: Decimal
    status: str
    created_at: datetime


class RotSummary(BaseModel):
    tax_year: int | None
    total_rot: Decimal
    order_count: int
    average_rot: Decimal
    private_count: int
    private_total: Decimal
    company_count: int
    company_total: Decimal
