"""Pydantic schemas for API request/response models."""

from quotedesk.schemas.auth import TokenPayload, UserSession
from quotedesk.schemas.order import (
    OrderAssignmentUpdate,
    OrderCreate,
    OrderRead,
    OrderStatusUpdate,
)
from quotedesk.schemas.quote import (
    PublicAcceptRequest,
    PublicAcceptResponse,
    PublicQuoteRead,
    QuoteCreate,
    QuoteRead,
    QuoteUpdate,
)

__all__ = [
    "OrderAssignmentUpdate",
    "OrderCreate",
    "OrderRead",
    "OrderStatusUpdate",
    "PublicAcceptRequest",
    "PublicAcceptResponse",
    "PublicQuoteRead",
    "QuoteCreate",
    "QuoteRead",
    "QuoteUpdate",
    "TokenPayload",
    "UserSession",
]
