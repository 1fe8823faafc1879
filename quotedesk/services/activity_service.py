"""Activity logging service - append-only order activity ledger."""

from uuid import UUID

from sqlalchemy.orm import Session

from quotedesk.db.enums import ORDER_STATUS_LABELS, OrderActivityType
from quotedesk.db.models import OrderActivity


def log_activity(
    db: Session,
    order_id: UUID,
    organization_id: UUID,
    activity_type: OrderActivityType,
    description: str,
    actor_user_id: UUID | None = None,
    old_value: str | None = None,
    new_value: str | None = None,
) -> OrderActivity:
    """
    Append an order activity.

    Args:
        db: Database session
        order_id: The order this activity is for
        organization_id: Organization context
        activity_type: Type of activity (from OrderActivityType enum)
        description: Human readable summary
        actor_user_id: User who performed the action (None for system/public)
        old_value / new_value: Before/after values for state changes

    Returns:
        The created activity entry
    """
    activity = OrderActivity(
        order_id=order_id,
        organization_id=organization_id,
        activity_type=activity_type.value,
        description=description,
        actor_user_id=actor_user_id,
        old_value=old_value,
        new_value=new_value,
    )
    db.add(activity)
    db.flush()  # Don't commit - let caller control transaction
    return activity


def log_order_created(
    db: Session,
    order_id: UUID,
    organization_id: UUID,
    actor_user_id: UUID | None = None,
    quote_number: str | None = None,
) -> OrderActivity:
    """Log order creation (from a quote when quote_number is given)."""
    description = (
        f"Order created from quote {quote_number}" if quote_number else "Order created"
    )
    return log_activity(
        db=db,
        order_id=order_id,
        organization_id=organization_id,
        activity_type=OrderActivityType.CREATED,
        description=description,
        actor_user_id=actor_user_id,
    )


def log_status_changed(
    db: Session,
    order_id: UUID,
    organization_id: UUID,
    actor_user_id: UUID | None,
    old_status: str,
    new_status: str,
) -> OrderActivity:
    """Log a status transition old → new."""
    old_label = ORDER_STATUS_LABELS.get(old_status, old_status)
    new_label = ORDER_STATUS_LABELS.get(new_status, new_status)
    return log_activity(
        db=db,
        order_id=order_id,
        organization_id=organization_id,
        activity_type=OrderActivityType.STATUS_CHANGED,
        description=f"Status changed from {old_label} to {new_label}",
        actor_user_id=actor_user_id,
        old_value=old_status,
        new_value=new_status,
    )


def log_assigned(
    db: Session,
    order_id: UUID,
    organization_id: UUID,
    actor_user_id: UUID | None,
    to_user_id: UUID | None,
    from_user_id: UUID | None = None,
) -> OrderActivity:
    """Log individual assignment (to_user_id=None means unassigned)."""
    return log_activity(
        db=db,
        order_id=order_id,
        organization_id=organization_id,
        activity_type=OrderActivityType.ASSIGNED,
        description="Order assigned" if to_user_id else "Assignment removed",
        actor_user_id=actor_user_id,
        old_value=str(from_user_id) if from_user_id else None,
        new_value=str(to_user_id) if to_user_id else None,
    )


def log_team_assigned(
    db: Session,
    order_id: UUID,
    organization_id: UUID,
    actor_user_id: UUID | None,
    to_team_id: UUID | None,
    team_name: str | None = None,
    from_team_id: UUID | None = None,
) -> OrderActivity:
    """Log team assignment (to_team_id=None means team unassigned)."""
    description = (
        f"Order assigned to team: {team_name}" if to_team_id else "Team assignment removed"
    )
    return log_activity(
        db=db,
        order_id=order_id,
        organization_id=organization_id,
        activity_type=OrderActivityType.TEAM_ASSIGNED,
        description=description,
        actor_user_id=actor_user_id,
        old_value=str(from_team_id) if from_team_id else None,
        new_value=str(to_team_id) if to_team_id else None,
    )


def log_note_added(
    db: Session,
    order_id: UUID,
    organization_id: UUID,
    actor_user_id: UUID | None,
) -> OrderActivity:
    return log_activity(
        db=db,
        order_id=order_id,
        organization_id=organization_id,
        activity_type=OrderActivityType.NOTE_ADDED,
        description="Note added",
        actor_user_id=actor_user_id,
    )


def log_marked_as_finished(
    db: Session,
    order_id: UUID,
    organization_id: UUID,
    actor_user_id: UUID | None,
) -> OrderActivity:
    return log_activity(
        db=db,
        order_id=order_id,
        organization_id=organization_id,
        activity_type=OrderActivityType.MARKED_AS_FINISHED,
        description="Job marked as finished",
        actor_user_id=actor_user_id,
    )


def list_activities(
    db: Session,
    order_id: UUID,
    organization_id: UUID,
) -> list[OrderActivity]:
    """Activities for an order, newest first."""
    return (
        db.query(OrderActivity)
        .filter(
            OrderActivity.order_id == order_id,
            OrderActivity.organization_id == organization_id,
        )
        .order_by(OrderActivity.created_at.desc())
        .all()
    )
