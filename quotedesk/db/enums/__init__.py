"""Enum definitions for application constants."""

from quotedesk.db.enums.auth import Role
from quotedesk.db.enums.notifications import NotificationType
from quotedesk.db.enums.orders import (
    ORDER_STATUS_LABELS,
    AssignmentType,
    OrderActivityType,
    OrderSource,
    OrderStatus,
)
from quotedesk.db.enums.permissions import (
    ROLES_CAN_ADMINISTER,
    ROLES_CAN_ASSIGN,
    ROLES_CAN_MANAGE_QUOTES,
)
from quotedesk.db.enums.quotes import QUOTE_STATUS_LABELS, QuoteStatus, RotIdentifierKind

DEFAULT_QUOTE_STATUS = QuoteStatus.DRAFT
DEFAULT_ORDER_STATUS = OrderStatus.OPEN

__all__ = [
    "AssignmentType",
    "DEFAULT_ORDER_STATUS",
    "DEFAULT_QUOTE_STATUS",
    "NotificationType",
    "ORDER_STATUS_LABELS",
    "OrderActivityType",
    "OrderSource",
    "OrderStatus",
    "QUOTE_STATUS_LABELS",
    "QuoteStatus",
    "ROLES_CAN_ADMINISTER",
    "ROLES_CAN_ASSIGN",
    "ROLES_CAN_MANAGE_QUOTES",
    "Role",
    "RotIdentifierKind",
]
