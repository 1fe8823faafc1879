"""In-app notifications for the signed-in user."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from quotedesk.core.deps import get_current_session, get_db, require_csrf_header
from quotedesk.schemas.auth import UserSession
from quotedesk.schemas.notification import NotificationRead
from quotedesk.services import notification_facade

router = APIRouter(prefix="/me/notifications", tags=["Notifications"])


@router.get("", response_model=list[NotificationRead])
def list_notifications(
    unread_only: bool = False,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    return notification_facade.get_notifications(
        db, session.user_id, session.org_id, unread_only=unread_only, limit=limit, offset=offset
    )


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationRead,
    dependencies=[Depends(require_csrf_header)],
)
def mark_read(
    notification_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    notification = notification_facade.mark_read(
        db, notification_id, session.user_id, session.org_id
    )
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification
