"""Orders router - list, detail, status, assignment, notes and activity."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from quotedesk.core.deps import (
    get_current_session,
    get_db,
    require_csrf_header,
    require_roles,
)
from quotedesk.db.enums import ROLES_CAN_ASSIGN, ROLES_CAN_MANAGE_QUOTES, OrderStatus
from quotedesk.schemas.auth import UserSession
from quotedesk.schemas.order import (
    OrderActivityRead,
    OrderAssignmentUpdate,
    OrderCreate,
    OrderListResponse,
    OrderNoteCreate,
    OrderNoteRead,
    OrderRead,
    OrderStats,
    OrderStatusUpdate,
)
from quotedesk.services import order_service

router = APIRouter(prefix="/orders", tags=["Orders"])


def _get_order_or_404(db: Session, session: UserSession, order_id: UUID):
    order = order_service.get_order(db, session.org_id, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


# =============================================================================
# List / Stats
# =============================================================================

@router.get("", response_model=OrderListResponse)
def list_orders(
    status: OrderStatus | None = None,
    assigned_to: UUID | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    items, total = order_service.list_orders(
        db,
        session.org_id,
        status=status,
        assigned_to=assigned_to,
        page=page,
        per_page=per_page,
    )
    return OrderListResponse(
        items=[OrderRead.model_validate(o) for o in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/stats", response_model=OrderStats)
def get_stats(
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    return order_service.get_order_stats(db, session.org_id)


# =============================================================================
# CRUD
# =============================================================================

@router.post(
    "",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_order(
    data: OrderCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_QUOTES)),
):
    """Create an order without a quote."""
    return order_service.create_order(db, session.org_id, session.user_id, data)


@router.get("/{order_id}", response_model=OrderRead)
def get_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    return _get_order_or_404(db, session, order_id)


# =============================================================================
# Status / Assignment
# =============================================================================

@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_status(
    order_id: UUID,
    data: OrderStatusUpdate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    """Move an order to any status. The assignee is notified after commit."""
    _get_order_or_404(db, session, order_id)
    return order_service.update_status(db, session.org_id, order_id, data.status, session.user_id)


@router.patch(
    "/{order_id}/assignment",
    response_model=OrderRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_assignment(
    order_id: UUID,
    data: OrderAssignmentUpdate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(ROLES_CAN_ASSIGN)),
):
    _get_order_or_404(db, session, order_id)

    assignment: order_service.Assignment
    if data.type == "individual":
        assignment = order_service.IndividualAssignment(user_id=data.assignee_id)
    elif data.type == "team":
        assignment = order_service.TeamAssignment(team_id=data.assignee_id)
    else:
        assignment = None

    try:
        return order_service.update_assignment(
            db, session.org_id, order_id, assignment, session.user_id
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/{order_id}/ready-to-invoice",
    response_model=OrderRead,
    dependencies=[Depends(require_csrf_header)],
)
def mark_ready_to_invoice(
    order_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    """Field worker marks the job as finished."""
    _get_order_or_404(db, session, order_id)
    return order_service.mark_ready_to_invoice(db, session.org_id, order_id, session.user_id)


# =============================================================================
# Notes / Activity
# =============================================================================

@router.get("/{order_id}/notes", response_model=list[OrderNoteRead])
def list_notes(
    order_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    _get_order_or_404(db, session, order_id)
    return order_service.list_notes(db, session.org_id, order_id)


@router.post(
    "/{order_id}/notes",
    response_model=OrderNoteRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def add_note(
    order_id: UUID,
    data: OrderNoteCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    _get_order_or_404(db, session, order_id)
    return order_service.add_note(
        db,
        session.org_id,
        order_id,
        session.user_id,
        data.content,
        include_in_invoice=data.include_in_invoice,
    )


@router.get("/{order_id}/activities", response_model=list[OrderActivityRead])
def list_activities(
    order_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    """Activity ledger for an order, newest first."""
    _get_order_or_404(db, session, order_id)
    return order_service.list_activities(db, session.org_id, order_id)
