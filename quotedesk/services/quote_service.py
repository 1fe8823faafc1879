"""Quote service - business logic for quote CRUD and lifecycle writes.

Lifecycle fields (status, acceptance_token, accepted_at, order_id) are only
moved through compare_and_set_status / link_order so that two writers can
never both win the same transition.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quotedesk.db.enums import QuoteStatus
from quotedesk.db.models import Order, Quote, QuoteLineItem
from quotedesk.db.models.auth import utcnow
from quotedesk.schemas.quote import QuoteCreate, QuoteLineItemIn, QuoteUpdate
from quotedesk.services import rot_service

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


# =============================================================================
# Helpers
# =============================================================================

def _next_quote_number(db: Session, org_id: UUID) -> str:
    """Per-org sequence Q-<n>."""
    count = db.query(func.count(Quote.id)).filter(Quote.organization_id == org_id).scalar() or 0
    n = count + 1
    while db.query(Quote.id).filter(
        Quote.organization_id == org_id,
        Quote.quote_number == f"Q-{n}",
    ).first():
        n += 1
    return f"Q-{n}"


def _is_quote_number_conflict(error: IntegrityError) -> bool:
    constraint_name = getattr(getattr(error.orig, "diag", None), "constraint_name", None)
    if constraint_name == "uq_quote_org_number":
        return True
    message = str(error.orig) if error.orig else str(error)
    return "uq_quote_org_number" in message or "quotes.quote_number" in message


def _build_line_items(items: list[QuoteLineItemIn]) -> list[QuoteLineItem]:
    return [
        QuoteLineItem(
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total=(item.quantity * item.unit_price).quantize(CENT, rounding=ROUND_HALF_UP),
            sort_order=index,
        )
        for index, item in enumerate(items)
    ]


def _normalize_rot_identifiers(
    personal_id: str | None,
    org_id: str | None,
) -> tuple[str | None, str | None]:
    """
    Format and check salesperson-entered identifiers.

    Raises:
        ValueError: both given, or one is malformed
    """
    if personal_id and org_id:
        raise ValueError("Provide either a personal identity number or an organisation number, not both")
    if personal_id:
        parsed = rot_service.parse_identifier("person", personal_id)
        if parsed is None:
            raise ValueError("Invalid personal identity number")
        return parsed.national_id, None
    if org_id:
        parsed = rot_service.parse_identifier("company", org_id)
        if parsed is None:
            raise ValueError("Invalid organisation number")
        return None, parsed.org_id
    return None, None


def _recompute_totals(quote: Quote) -> None:
    quote.total_amount = sum((item.total for item in quote.line_items), Decimal("0"))
    quote.rot_amount = (
        rot_service.calculate_deduction(quote.total_amount) if quote.include_rot else None
    )


# =============================================================================
# CRUD Operations
# =============================================================================

def create_quote(db: Session, org_id: UUID, user_id: UUID | None, data: QuoteCreate) -> Quote:
    """
    Create a draft quote with its line items.

    The quote number is retried when a concurrent create took it first.
    """
    personal_id, rot_org_id = _normalize_rot_identifiers(data.rot_personal_id, data.rot_org_id)

    quote = None
    for attempt in range(3):
        quote = Quote(
            organization_id=org_id,
            created_by_user_id=user_id,
            customer_id=data.customer_id,
            quote_number=_next_quote_number(db, org_id),
            title=data.title.strip(),
            description=data.description,
            valid_until=data.valid_until,
            status=QuoteStatus.DRAFT.value,
            include_rot=data.include_rot,
            rot_personal_id=personal_id,
            rot_org_id=rot_org_id,
            rot_property_designation=data.rot_property_designation,
        )
        quote.line_items = _build_line_items(data.line_items)
        _recompute_totals(quote)

        db.add(quote)
        try:
            db.commit()
            db.refresh(quote)
            break
        except IntegrityError as exc:
            db.rollback()
            if _is_quote_number_conflict(exc) and attempt < 2:
                logger.info("Quote number taken, retrying org_id=%s", org_id)
                continue
            raise

    logger.info("Quote created quote_id=%s org_id=%s", quote.id, org_id)
    return quote


def get_quote(db: Session, org_id: UUID, quote_id: UUID) -> Quote | None:
    """Get quote by ID (org-scoped)."""
    return db.query(Quote).filter(
        Quote.id == quote_id,
        Quote.organization_id == org_id,
    ).first()


def list_quotes(
    db: Session,
    org_id: UUID,
    *,
    status: QuoteStatus | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Quote], int]:
    """
    List quotes with optional status filter.

    Returns (items, total_count).
    """
    query = db.query(Quote).filter(Quote.organization_id == org_id)
    if status:
        query = query.filter(Quote.status == status.value)

    total = query.count()
    per_page = min(per_page, 100)
    offset = (page - 1) * per_page
    items = query.order_by(Quote.created_at.desc()).offset(offset).limit(per_page).all()
    return items, total


def update_quote(db: Session, quote: Quote, data: QuoteUpdate) -> Quote:
    """
    Update a draft or sent quote.

    Line items, when given, replace the existing set as a batch. Totals and
    rot_amount are recomputed on every update. The write is guarded by a
    conditional UPDATE on the status, so an edit that loses the race against
    an acceptance is refused instead of changing the accepted totals.

    Raises:
        ValueError: quote is accepted/declined, or ROT identifiers invalid
    """
    if quote.status not in QuoteStatus.editable():
        raise ValueError(f"Cannot edit a quote in status '{quote.status}'")

    fields = data.model_dump(exclude_unset=True, exclude={"line_items"})

    identifiers = None
    if "rot_personal_id" in fields or "rot_org_id" in fields:
        identifiers = _normalize_rot_identifiers(
            fields.pop("rot_personal_id", quote.rot_personal_id),
            fields.pop("rot_org_id", quote.rot_org_id),
        )

    # Row lock on Postgres until commit; a concurrent claim waits for us.
    guard = db.execute(
        update(Quote)
        .where(
            Quote.id == quote.id,
            Quote.organization_id == quote.organization_id,
            Quote.status.in_(QuoteStatus.editable()),
        )
        .values(updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if guard.rowcount != 1:
        db.rollback()
        db.refresh(quote)
        logger.warning("Quote edit lost to a status change quote_id=%s status=%s", quote.id, quote.status)
        raise ValueError(f"Cannot edit a quote in status '{quote.status}'")

    if identifiers is not None:
        quote.rot_personal_id, quote.rot_org_id = identifiers

    for field, value in fields.items():
        if field == "include_rot" and value is None:
            continue
        setattr(quote, field, value)

    if data.line_items is not None:
        quote.line_items = _build_line_items(data.line_items)

    _recompute_totals(quote)
    db.commit()
    db.refresh(quote)
    return quote


def delete_quote(db: Session, quote: Quote) -> None:
    """
    Delete a quote.

    Raises:
        ValueError: quote is accepted (it backs an order)
    """
    if quote.status == QuoteStatus.ACCEPTED.value:
        raise ValueError("Accepted quotes cannot be deleted")
    db.delete(quote)
    db.commit()


# =============================================================================
# Lifecycle primitives
# =============================================================================

def compare_and_set_status(
    db: Session,
    org_id: UUID,
    quote_id: UUID,
    expected: QuoteStatus,
    new: QuoteStatus,
    **values,
) -> bool:
    """
    Atomically move a quote from `expected` to `new`.

    Single conditional UPDATE guarded by status = expected, committed
    immediately. Extra column values are written in the same statement.
    Returns True only for the one writer whose guard matched.
    """
    result = db.execute(
        update(Quote)
        .where(
            Quote.id == quote_id,
            Quote.organization_id == org_id,
            Quote.status == expected.value,
        )
        .values(status=new.value, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def link_order(db: Session, org_id: UUID, quote_id: UUID, order_id: UUID) -> bool:
    """
    Record the produced order on the quote.

    Set-once: only writes while order_id is NULL. Re-linking the same order
    is a no-op returning True; a different existing link returns False.
    """
    result = db.execute(
        update(Quote)
        .where(
            Quote.id == quote_id,
            Quote.organization_id == org_id,
            Quote.order_id.is_(None),
        )
        .values(order_id=order_id, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount == 1:
        return True

    current = db.query(Quote.order_id).filter(
        Quote.id == quote_id,
        Quote.organization_id == org_id,
    ).scalar()
    if current == order_id:
        return True
    logger.warning(
        "Quote already linked to another order quote_id=%s existing=%s attempted=%s",
        quote_id,
        current,
        order_id,
    )
    return False


def get_linked_order(db: Session, quote: Quote) -> Order | None:
    """
    Order produced by this quote.

    The cached quote.order_id is only trusted when the order's
    source_quote_id points back at the quote.
    """
    if not quote.order_id:
        return None
    order = db.query(Order).filter(
        Order.id == quote.order_id,
        Order.organization_id == quote.organization_id,
    ).first()
    if not order or order.source_quote_id != quote.id:
        logger.warning(
            "Quote/order link drift quote_id=%s order_id=%s", quote.id, quote.order_id
        )
        return None
    return order


def decline_quote(db: Session, quote: Quote) -> Quote:
    """
    Internal sent → declined.

    Raises:
        ValueError: quote is not in 'sent'
    """
    if not compare_and_set_status(
        db, quote.organization_id, quote.id, QuoteStatus.SENT, QuoteStatus.DECLINED
    ):
        raise ValueError("Only sent quotes can be declined")
    db.refresh(quote)
    return quote


# =============================================================================
# Stats
# =============================================================================

def get_quote_stats(db: Session, org_id: UUID) -> dict:
    """Counts by status, total/accepted value and ROT totals."""
    rows = (
        db.query(Quote.status, func.count(Quote.id), func.coalesce(func.sum(Quote.total_amount), 0))
        .filter(Quote.organization_id == org_id)
        .group_by(Quote.status)
        .all()
    )
    by_status = {status.value: 0 for status in QuoteStatus}
    total_value = Decimal("0")
    accepted_value = Decimal("0")
    for status, count, amount in rows:
        by_status[status] = count
        total_value += Decimal(str(amount))
        if status == QuoteStatus.ACCEPTED.value:
            accepted_value = Decimal(str(amount))

    rot_quotes, rot_total = (
        db.query(func.count(Quote.id), func.coalesce(func.sum(Quote.rot_amount), 0))
        .filter(Quote.organization_id == org_id, Quote.include_rot.is_(True))
        .one()
    )
    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "total_value": total_value,
        "accepted_value": accepted_value,
        "rot_quotes": rot_quotes,
        "rot_total": Decimal(str(rot_total)),
    }


# =============================================================================
# Reconciliation (operator tooling)
# =============================================================================

def find_unlinked_accepted_quotes(
    db: Session,
    org_id: UUID | None = None,
) -> list[tuple[Quote, Order | None]]:
    """
    Accepted quotes whose order link is missing or stale.

    Each quote is paired with the order that names it as source_quote_id,
    or None when no order was ever created.
    """
    query = db.query(Quote).filter(Quote.status == QuoteStatus.ACCEPTED.value)
    if org_id:
        query = query.filter(Quote.organization_id == org_id)

    results = []
    for quote in query.order_by(Quote.accepted_at).all():
        if get_linked_order(db, quote) is not None:
            continue
        source_order = db.query(Order).filter(Order.source_quote_id == quote.id).first()
        results.append((quote, source_order))
    return results


def relink_order(db: Session, quote: Quote, order: Order) -> Quote:
    """
    Point quote.order_id at the order that was created from it.

    Bypasses the set-once guard; only for repairing drift, where
    Order.source_quote_id is the source of truth.
    """
    if order.source_quote_id != quote.id:
        raise ValueError("Order was not created from this quote")
    quote.order_id = order.id
    db.commit()
    db.refresh(quote)
    logger.info("Quote relinked quote_id=%s order_id=%s", quote.id, order.id)
    return quote
