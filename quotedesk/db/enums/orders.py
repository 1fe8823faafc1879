"""Order-related enums."""

from enum import Enum


class OrderStatus(str, Enum):
    """
    Order status.

    open → confirmed → incomplete | ready_to_invoice; any state may go back
    to open or to cancelled_by_customer. No transition graph is enforced.
    """

    OPEN = "open"
    CONFIRMED = "confirmed"
    INCOMPLETE = "incomplete"
    READY_TO_INVOICE = "ready_to_invoice"
    CANCELLED_BY_CUSTOMER = "cancelled_by_customer"

    @property
    def label(self) -> str:
        return ORDER_STATUS_LABELS[self.value]


ORDER_STATUS_LABELS: dict[str, str] = {
    OrderStatus.OPEN.value: "Open order",
    OrderStatus.CONFIRMED.value: "Booked and confirmed",
    OrderStatus.INCOMPLETE.value: "Not completed",
    OrderStatus.READY_TO_INVOICE.value: "Ready to invoice",
    OrderStatus.CANCELLED_BY_CUSTOMER.value: "Cancelled by customer",
}


class OrderActivityType(str, Enum):
    """Types of entries in the order activity ledger."""

    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    TEAM_ASSIGNED = "team_assigned"
    NOTE_ADDED = "note_added"
    MARKED_AS_FINISHED = "marked_as_finished"


class AssignmentType(str, Enum):
    """Order assignment target."""

    INDIVIDUAL = "individual"
    TEAM = "team"


class OrderSource(str, Enum):
    """Where an order came from."""

    QUOTE = "quote"
    MANUAL = "manual"
