"""
Notification Service - handles in-app notifications.

Provides CRUD for notifications and trigger functions for order events.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from quotedesk.db.enums import ORDER_STATUS_LABELS, NotificationType
from quotedesk.db.models import Notification, Order, Team, TeamMember

DEDUPE_WINDOW = timedelta(hours=1)


# =============================================================================
# Notification CRUD
# =============================================================================


def create_notification(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    type: NotificationType,
    title: str,
    body: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    action_url: Optional[str] = None,
    payload: Optional[dict[str, Any]] = None,
    dedupe_key: Optional[str] = None,
) -> Optional[Notification]:
    """
    Create a notification.

    Dedupes by dedupe_key + org_id + user_id within 1 hour window.
    """
    if dedupe_key:
        window_start = datetime.now(timezone.utc) - DEDUPE_WINDOW
        existing = db.query(Notification).filter(
            Notification.dedupe_key == dedupe_key,
            Notification.organization_id == org_id,
            Notification.user_id == user_id,
            Notification.created_at > window_start,
        ).first()

        if existing:
            return None  # Already notified

    notification = Notification(
        organization_id=org_id,
        user_id=user_id,
        type=type.value,
        title=title,
        body=body,
        entity_type=entity_type,
        entity_id=entity_id,
        action_url=action_url,
        payload=payload,
        dedupe_key=dedupe_key,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def get_notifications(
    db: Session,
    user_id: UUID,
    org_id: UUID,
    unread_only: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> list[Notification]:
    """Get notifications for user."""
    query = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.organization_id == org_id,
    )

    if unread_only:
        query = query.filter(Notification.read_at.is_(None))

    return query.order_by(Notification.created_at.desc()).offset(offset).limit(limit).all()


def mark_read(
    db: Session,
    notification_id: UUID,
    user_id: UUID,
    org_id: UUID,
) -> Optional[Notification]:
    """Mark a notification as read (scoped by org for tenant isolation)."""
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
        Notification.organization_id == org_id,
    ).first()

    if notification and not notification.read_at:
        notification.read_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)

    return notification


# =============================================================================
# Notification Triggers (called after order writes commit)
# =============================================================================


def _order_url(order_id: UUID) -> str:
    return f"/orders?highlight={order_id}"


def notify_order_assigned(db: Session, order: Order, assignee_id: UUID) -> None:
    """Notify user when an order is assigned to them."""
    if not assignee_id:
        return

    create_notification(
        db=db,
        org_id=order.organization_id,
        user_id=assignee_id,
        type=NotificationType.ORDER_ASSIGNED,
        title="New order assigned",
        body=f'You have been assigned the order "{order.title}"',
        entity_type="order",
        entity_id=order.id,
        action_url=_order_url(order.id),
        payload={"order_id": str(order.id), "order_title": order.title},
        dedupe_key=f"order_assigned:{order.id}:{assignee_id}",
    )


def notify_order_status_changed(
    db: Session,
    order: Order,
    recipient_id: UUID,
    old_status: str,
    new_status: str,
) -> None:
    """Notify the assignee that an order moved between statuses."""
    old_label = ORDER_STATUS_LABELS.get(old_status, old_status)
    new_label = ORDER_STATUS_LABELS.get(new_status, new_status)
    create_notification(
        db=db,
        org_id=order.organization_id,
        user_id=recipient_id,
        type=NotificationType.ORDER_STATUS_CHANGED,
        title="Status updated",
        body=f'"{order.title}" changed from "{old_label}" to "{new_label}"',
        entity_type="order",
        entity_id=order.id,
        action_url=_order_url(order.id),
        payload={
            "order_id": str(order.id),
            "order_title": order.title,
            "old_status": old_label,
            "new_status": new_label,
        },
        dedupe_key=f"status_update:{order.id}:{recipient_id}:{old_status}:{new_status}",
    )


def notify_team_assigned(
    db: Session,
    order: Order,
    team_id: UUID,
    exclude_user_id: UUID | None = None,
) -> int:
    """Notify every member of a team. Returns number of notifications created."""
    team = db.query(Team).filter(
        Team.id == team_id,
        Team.organization_id == order.organization_id,
    ).first()
    if not team:
        return 0

    member_ids = [
        row.user_id
        for row in db.query(TeamMember.user_id).filter(TeamMember.team_id == team.id).all()
    ]
    created = 0
    for member_id in member_ids:
        if member_id == exclude_user_id:
            continue
        notification = create_notification(
            db=db,
            org_id=order.organization_id,
            user_id=member_id,
            type=NotificationType.TEAM_ASSIGNED,
            title="New team assignment",
            body=f'Your team "{team.name}" has been assigned the order "{order.title}"',
            entity_type="order",
            entity_id=order.id,
            action_url=_order_url(order.id),
            payload={
                "order_id": str(order.id),
                "order_title": order.title,
                "team_id": str(team.id),
                "team_name": team.name,
            },
            dedupe_key=f"team_assigned:{order.id}:{member_id}",
        )
        if notification:
            created += 1
    return created
