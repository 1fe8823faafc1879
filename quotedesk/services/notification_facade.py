"""Notification facade for domain services.

This module provides a stable interface for event-style notification dispatch
so order_service doesn't depend directly on notification_service internals.

Delivery is fire-and-forget: callers run these after their own commit and
must treat any exception as non-fatal.
"""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from quotedesk.db.enums import NotificationType
from quotedesk.db.models import Notification, Order
from quotedesk.services import notification_service

_DEFAULT_TITLES: dict[NotificationType, str] = {
    NotificationType.ORDER_ASSIGNED: "New order assigned",
    NotificationType.ORDER_STATUS_CHANGED: "Status updated",
    NotificationType.TEAM_ASSIGNED: "New team assignment",
    NotificationType.SYSTEM: "Notification",
}


def send(
    db: Session,
    org_id: UUID,
    recipient_id: UUID,
    kind: NotificationType,
    payload: dict[str, Any],
) -> Optional[Notification]:
    """Generic dispatch. payload may carry title, body, entity_id, action_url."""
    entity_id = payload.get("entity_id")
    return notification_service.create_notification(
        db=db,
        org_id=org_id,
        user_id=recipient_id,
        type=kind,
        title=payload.get("title") or _DEFAULT_TITLES[kind],
        body=payload.get("body"),
        entity_type=payload.get("entity_type"),
        entity_id=entity_id,
        action_url=payload.get("action_url"),
        payload={k: str(v) for k, v in payload.items()},
        dedupe_key=f"{kind.value}:{entity_id}:{recipient_id}" if entity_id else None,
    )


def get_notifications(
    db: Session,
    user_id: UUID,
    org_id: UUID,
    unread_only: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> list[Notification]:
    return notification_service.get_notifications(
        db, user_id, org_id, unread_only=unread_only, limit=limit, offset=offset
    )


def mark_read(
    db: Session, notification_id: UUID, user_id: UUID, org_id: UUID
) -> Optional[Notification]:
    return notification_service.mark_read(db, notification_id, user_id, org_id)


# =============================================================================
# Order events
# =============================================================================


def notify_order_assigned(db: Session, order: Order, assignee_id: UUID) -> None:
    notification_service.notify_order_assigned(db, order, assignee_id)


def notify_order_status_changed(
    db: Session,
    order: Order,
    recipient_id: UUID,
    old_status: str,
    new_status: str,
) -> None:
    notification_service.notify_order_status_changed(
        db, order, recipient_id, old_status, new_status
    )


def notify_team_assigned(
    db: Session,
    order: Order,
    team_id: UUID,
    exclude_user_id: UUID | None = None,
) -> int:
    return notification_service.notify_team_assigned(
        db, order, team_id, exclude_user_id=exclude_user_id
    )
