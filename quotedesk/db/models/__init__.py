"""SQLAlchemy ORM models."""

from quotedesk.db.models.auth import Membership, Organization, Team, TeamMember, User
from quotedesk.db.models.customers import Customer
from quotedesk.db.models.notifications import Notification
from quotedesk.db.models.orders import Order, OrderActivity, OrderNote
from quotedesk.db.models.quotes import Quote, QuoteLineItem

__all__ = [
    "Customer",
    "Membership",
    "Notification",
    "Order",
    "OrderActivity",
    "OrderNote",
    "Organization",
    "Quote",
    "QuoteLineItem",
    "Team",
    "TeamMember",
    "User",
]
