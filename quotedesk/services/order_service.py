"""Order service - order CRUD, status state machine and assignment.

Every state-affecting write follows the same shape:

    1. fetch the prior value
    2. write the new value
    3. append exactly one activity (activity_service)
    4. commit
    5. run post-commit effects (notifications)

Effects are collected as PendingEffect objects and applied by
apply_effects once the write is durable. An effect failure is logged and
never reaches the caller.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from quotedesk.db.enums import OrderSource, OrderStatus
from quotedesk.db.models import Order, OrderActivity, OrderNote, Quote, Team, User
from quotedesk.schemas.order import OrderCreate
from quotedesk.services import activity_service, notification_facade

logger = logging.getLogger(__name__)


# =============================================================================
# Assignment and post-commit effects
# =============================================================================

@dataclass(frozen=True)
class IndividualAssignment:
    user_id: UUID


@dataclass(frozen=True)
class TeamAssignment:
    team_id: UUID


Assignment = IndividualAssignment | TeamAssignment | None


@dataclass
class PendingEffect:
    """Side effect to run after the owning write has committed."""

    name: str
    run: Callable[[], object]
    context: dict = field(default_factory=dict)


def apply_effects(effects: list[PendingEffect], db: Session | None = None) -> int:
    """
    Run effects in order. Returns the number that failed.

    A failed effect rolls back only its own uncommitted work.
    """
    failures = 0
    for effect in effects:
        try:
            effect.run()
        except Exception:
            failures += 1
            logger.warning(
                "Post-commit effect failed effect=%s context=%s",
                effect.name,
                effect.context,
                exc_info=True,
            )
            if db is not None:
                db.rollback()
    return failures


# =============================================================================
# Queries
# =============================================================================

def get_order(db: Session, org_id: UUID, order_id: UUID) -> Order | None:
    """Get order by ID (org-scoped)."""
    return db.query(Order).filter(
        Order.id == order_id,
        Order.organization_id == org_id,
    ).first()


def get_order_by_source_quote(db: Session, quote_id: UUID) -> Order | None:
    return db.query(Order).filter(Order.source_quote_id == quote_id).first()


def list_orders(
    db: Session,
    org_id: UUID,
    *,
    status: OrderStatus | None = None,
    assigned_to: UUID | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Order], int]:
    """
    List orders with optional status / assignee filters.

    Returns (items, total_count).
    """
    query = db.query(Order).filter(Order.organization_id == org_id)
    if status:
        query = query.filter(Order.status == status.value)
    if assigned_to:
        query = query.filter(Order.assigned_to_user_id == assigned_to)

    total = query.count()
    per_page = min(per_page, 100)
    offset = (page - 1) * per_page
    items = query.order_by(Order.created_at.desc()).offset(offset).limit(per_page).all()
    return items, total


def _require_order(db: Session, org_id: UUID, order_id: UUID) -> Order:
    order = get_order(db, org_id, order_id)
    if not order:
        raise ValueError("Order not found")
    return order


# =============================================================================
# Creation
# =============================================================================

def create_order_from_quote(db: Session, quote: Quote) -> Order:
    """
    Materialize an order from an accepted quote.

    Title, customer, value and ROT fields are copied (frozen snapshot).
    Commits.
    """
    order = Order(
        organization_id=quote.organization_id,
        customer_id=quote.customer_id,
        source_quote_id=quote.id,
        source=OrderSource.QUOTE.value,
        title=quote.title,
        description=quote.description,
        value=quote.total_amount,
        status=OrderStatus.OPEN.value,
        include_rot=quote.include_rot,
        rot_personal_id=quote.rot_personal_id,
        rot_org_id=quote.rot_org_id,
        rot_property_designation=quote.rot_property_designation,
        rot_amount=quote.rot_amount,
    )
    db.add(order)
    db.flush()
    activity_service.log_order_created(
        db,
        order_id=order.id,
        organization_id=order.organization_id,
        quote_number=quote.quote_number,
    )
    db.commit()
    db.refresh(order)
    logger.info("Order created from quote order_id=%s quote_id=%s", order.id, quote.id)
    return order


def create_order(db: Session, org_id: UUID, actor_user_id: UUID | None, data: OrderCreate) -> Order:
    """Create a manual order."""
    order = Order(
        organization_id=org_id,
        customer_id=data.customer_id,
        source=OrderSource.MANUAL.value,
        title=data.title.strip(),
        description=data.description,
        value=data.value,
        status=OrderStatus.OPEN.value,
    )
    db.add(order)
    db.flush()
    activity_service.log_order_created(
        db,
        order_id=order.id,
        organization_id=org_id,
        actor_user_id=actor_user_id,
    )
    db.commit()
    db.refresh(order)
    return order


# =============================================================================
# Status state machine
# =============================================================================

def write_status(
    db: Session,
    order: Order,
    new_status: OrderStatus,
    actor_user_id: UUID | None,
) -> list[PendingEffect]:
    """
    Persist a status change and return the effects to run after commit.

    Any status may move to any other. Writing the current status again is a
    no-op: nothing is logged and no effect is returned.
    """
    old_status = order.status
    if old_status == new_status.value:
        return []

    order.status = new_status.value
    activity_service.log_status_changed(
        db,
        order_id=order.id,
        organization_id=order.organization_id,
        actor_user_id=actor_user_id,
        old_status=old_status,
        new_status=new_status.value,
    )
    db.commit()
    db.refresh(order)
    logger.info(
        "Order status changed order_id=%s old=%s new=%s", order.id, old_status, new_status.value
    )

    effects: list[PendingEffect] = []
    assignee_id = order.assigned_to_user_id
    if assignee_id:
        effects.append(
            PendingEffect(
                name="notify_order_status_changed",
                run=lambda: notification_facade.notify_order_status_changed(
                    db, order, assignee_id, old_status, new_status.value
                ),
                context={"order_id": str(order.id), "recipient_id": str(assignee_id)},
            )
        )
    return effects


def update_status(
    db: Session,
    org_id: UUID,
    order_id: UUID,
    new_status: OrderStatus,
    actor_user_id: UUID | None,
) -> Order:
    """
    Change order status.

    Raises:
        ValueError: order not found
    """
    order = _require_order(db, org_id, order_id)
    apply_effects(write_status(db, order, new_status, actor_user_id), db)
    return order


def mark_ready_to_invoice(
    db: Session,
    org_id: UUID,
    order_id: UUID,
    actor_user_id: UUID | None,
) -> Order:
    """Field worker finished the job: status ready_to_invoice + marked_as_finished entry."""
    order = _require_order(db, org_id, order_id)
    effects = write_status(db, order, OrderStatus.READY_TO_INVOICE, actor_user_id)
    activity_service.log_marked_as_finished(
        db,
        order_id=order.id,
        organization_id=order.organization_id,
        actor_user_id=actor_user_id,
    )
    db.commit()
    apply_effects(effects, db)
    return order


# =============================================================================
# Assignment
# =============================================================================

def write_assignment(
    db: Session,
    order: Order,
    assignment: Assignment,
    actor_user_id: UUID | None,
) -> list[PendingEffect]:
    """
    Persist an assignment change and return the effects to run after commit.

    Individual and team assignment are exclusive; setting one clears the
    other.

    Raises:
        ValueError: assignee user/team is not in the order's organization
    """
    old_user_id = order.assigned_to_user_id
    old_team_id = order.assigned_to_team_id
    effects: list[PendingEffect] = []

    if isinstance(assignment, IndividualAssignment):
        user = db.query(User).filter(User.id == assignment.user_id).first()
        if not user or not user.membership or user.membership.organization_id != order.organization_id:
            raise ValueError("Assignee is not a member of this organization")
        if old_user_id == assignment.user_id:
            return []

        order.assigned_to_user_id = assignment.user_id
        order.assigned_to_team_id = None
        activity_service.log_assigned(
            db,
            order_id=order.id,
            organization_id=order.organization_id,
            actor_user_id=actor_user_id,
            to_user_id=assignment.user_id,
            from_user_id=old_user_id,
        )
        db.commit()
        db.refresh(order)
        assignee_id = assignment.user_id
        effects.append(
            PendingEffect(
                name="notify_order_assigned",
                run=lambda: notification_facade.notify_order_assigned(db, order, assignee_id),
                context={"order_id": str(order.id), "recipient_id": str(assignee_id)},
            )
        )

    elif isinstance(assignment, TeamAssignment):
        team = db.query(Team).filter(
            Team.id == assignment.team_id,
            Team.organization_id == order.organization_id,
        ).first()
        if not team:
            raise ValueError("Team not found")
        if old_team_id == assignment.team_id:
            return []

        order.assigned_to_team_id = team.id
        order.assigned_to_user_id = None
        activity_service.log_team_assigned(
            db,
            order_id=order.id,
            organization_id=order.organization_id,
            actor_user_id=actor_user_id,
            to_team_id=team.id,
            team_name=team.name,
            from_team_id=old_team_id,
        )
        db.commit()
        db.refresh(order)
        team_id = team.id
        effects.append(
            PendingEffect(
                name="notify_team_assigned",
                run=lambda: notification_facade.notify_team_assigned(
                    db, order, team_id, exclude_user_id=actor_user_id
                ),
                context={"order_id": str(order.id), "team_id": str(team_id)},
            )
        )

    else:
        if not old_user_id and not old_team_id:
            return []
        order.assigned_to_user_id = None
        order.assigned_to_team_id = None
        if old_team_id:
            activity_service.log_team_assigned(
                db,
                order_id=order.id,
                organization_id=order.organization_id,
                actor_user_id=actor_user_id,
                to_team_id=None,
                from_team_id=old_team_id,
            )
        else:
            activity_service.log_assigned(
                db,
                order_id=order.id,
                organization_id=order.organization_id,
                actor_user_id=actor_user_id,
                to_user_id=None,
                from_user_id=old_user_id,
            )
        db.commit()
        db.refresh(order)

    return effects


def update_assignment(
    db: Session,
    org_id: UUID,
    order_id: UUID,
    assignment: Assignment,
    actor_user_id: UUID | None,
) -> Order:
    """
    Assign an order to a user, a team, or nobody (assignment=None).

    Raises:
        ValueError: order not found, or assignee invalid
    """
    order = _require_order(db, org_id, order_id)
    apply_effects(write_assignment(db, order, assignment, actor_user_id), db)
    return order


# =============================================================================
# Notes and activity
# =============================================================================

def add_note(
    db: Session,
    org_id: UUID,
    order_id: UUID,
    actor_user_id: UUID | None,
    content: str,
    include_in_invoice: bool = False,
) -> OrderNote:
    order = _require_order(db, org_id, order_id)
    note = OrderNote(
        order_id=order.id,
        organization_id=org_id,
        author_id=actor_user_id,
        content=content.strip(),
        include_in_invoice=include_in_invoice,
    )
    db.add(note)
    activity_service.log_note_added(
        db,
        order_id=order.id,
        organization_id=org_id,
        actor_user_id=actor_user_id,
    )
    db.commit()
    db.refresh(note)
    return note


def list_notes(db: Session, org_id: UUID, order_id: UUID) -> list[OrderNote]:
    return (
        db.query(OrderNote)
        .filter(OrderNote.order_id == order_id, OrderNote.organization_id == org_id)
        .order_by(OrderNote.created_at.desc())
        .all()
    )


def list_activities(db: Session, org_id: UUID, order_id: UUID) -> list[OrderActivity]:
    return activity_service.list_activities(db, order_id=order_id, organization_id=org_id)


# =============================================================================
# Stats
# =============================================================================

def get_order_stats(db: Session, org_id: UUID) -> dict:
    rows = (
        db.query(Order.status, func.count(Order.id), func.coalesce(func.sum(Order.value), 0))
        .filter(Order.organization_id == org_id)
        .group_by(Order.status)
        .all()
    )
    by_status = {status.value: 0 for status in OrderStatus}
    total_value = Decimal("0")
    for status, count, value in rows:
        by_status[status] = count
        total_value += Decimal(str(value))

    from_quotes = db.query(func.count(Order.id)).filter(
        Order.organization_id == org_id,
        Order.source == OrderSource.QUOTE.value,
    ).scalar()
    unassigned = db.query(func.count(Order.id)).filter(
        Order.organization_id == org_id,
        Order.assigned_to_user_id.is_(None),
        Order.assigned_to_team_id.is_(None),
    ).scalar()
    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "total_value": total_value,
        "from_quotes": from_quotes or 0,
        "unassigned": unassigned or 0,
    }
