"""Quote acceptance - turns a public token submission into a work order.

Flow (each step is its own function so it can be exercised in isolation):

    resolve token           quote_token_service.resolve
    validate_submission     ROT identifier + property designation
    claim_quote             CAS sent -> accepted, committed on its own
    record_acceptance_details
    materialize_order       check-before-create by source_quote_id
    link_order              set-once quote.order_id
    compensate              CAS accepted -> sent when anything after the
                            claim fails

Only the CAS is atomic. Everything after it is idempotent, so retrying an
acceptance that failed half-way converges on one order per quote.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from quotedesk.core.exceptions import (
    AlreadyHandledError,
    FatalInconsistency,
    TransientError,
    ValidationError,
)
from quotedesk.core.structured_logging import build_log_context
from quotedesk.db.enums import QuoteStatus, RotIdentifierKind
from quotedesk.db.models import Order, Quote
from quotedesk.services import order_service, quote_service, quote_token_service, rot_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RotSubmission:
    """Raw ROT input from the public acceptance form."""

    kind: RotIdentifierKind | str
    identifier: str
    property_designation: str


@dataclass(frozen=True)
class AcceptanceSubmission:
    rot: RotSubmission | None = None


@dataclass(frozen=True)
class AcceptanceResult:
    order_id: UUID
    quote_id: UUID
    accepted_at: datetime
    rot_amount: Decimal
    net_payable: Decimal


# =============================================================================
# Steps
# =============================================================================

def validate_submission(quote: Quote, submission: AcceptanceSubmission) -> rot_service.RotClaim | None:
    """
    Check ROT input against the quote.

    Quotes without ROT ignore any submitted identifier. Quotes with ROT
    require a well-formed identifier and a property designation.

    Raises:
        ValidationError: with one message per offending field
    """
    if not quote.include_rot:
        return None

    errors: dict[str, str] = {}
    rot = submission.rot
    if rot is None:
        errors["rot"] = "ROT details are required for this quote"
        raise ValidationError(errors)

    identifier = rot_service.parse_identifier(rot.kind, rot.identifier)
    if identifier is None:
        if str(getattr(rot.kind, "value", rot.kind)) == RotIdentifierKind.COMPANY.value:
            errors["identifier"] = "Invalid organisation number (XXXXXX-XXXX)"
        else:
            errors["identifier"] = "Invalid personal identity number (YYYYMMDD-XXXX or YYMMDD-XXXX)"

    designation = (rot.property_designation or "").strip()
    if not designation:
        errors["property_designation"] = "Property designation is required"

    if errors:
        raise ValidationError(errors)
    return rot_service.RotClaim(identifier=identifier, property_designation=designation)


def claim_quote(db: Session, quote: Quote) -> datetime:
    """
    Win the sent -> accepted transition or fail.

    Raises:
        AlreadyHandledError: another acceptance (or a decline) got there first
    """
    accepted_at = datetime.now(timezone.utc)
    if not quote_service.compare_and_set_status(
        db,
        quote.organization_id,
        quote.id,
        QuoteStatus.SENT,
        QuoteStatus.ACCEPTED,
        accepted_at=accepted_at,
    ):
        logger.info("Quote claim lost quote_id=%s", quote.id)
        raise AlreadyHandledError(f"Quote {quote.id} is no longer 'sent'")
    db.refresh(quote)
    logger.info("Quote claimed quote_id=%s org_id=%s", quote.id, quote.organization_id)
    return accepted_at


def record_acceptance_details(
    db: Session,
    quote: Quote,
    claim: rot_service.RotClaim | None,
    client_ip: str | None = None,
) -> Quote:
    """
    Persist what the customer submitted and the final deduction.

    A submitted identifier replaces whatever the salesperson entered.
    """
    if claim is not None:
        previous = quote.rot_personal_id or quote.rot_org_id
        submitted = claim.personal_id or claim.org_id
        if previous and previous != submitted:
            logger.info(
                "Customer identifier replaces salesperson value quote_id=%s previous=%s submitted=%s",
                quote.id,
                rot_service.mask_identifier(previous),
                rot_service.mask_identifier(submitted),
            )
        quote.rot_personal_id = claim.personal_id
        quote.rot_org_id = claim.org_id
        quote.rot_property_designation = claim.property_designation

    quote.rot_amount = (
        rot_service.calculate_deduction(quote.total_amount) if quote.include_rot else None
    )
    quote.accepted_by_ip = client_ip
    db.commit()
    db.refresh(quote)
    return quote


def materialize_order(db: Session, quote: Quote) -> Order:
    """Return the quote's order, creating it only if none exists yet."""
    existing = order_service.get_order_by_source_quote(db, quote.id)
    if existing:
        logger.info("Reusing existing order order_id=%s quote_id=%s", existing.id, quote.id)
        return existing
    return order_service.create_order_from_quote(db, quote)


def link_order(db: Session, quote: Quote, order: Order) -> None:
    """
    Raises:
        RuntimeError: the quote is already linked to a different order
    """
    if not quote_service.link_order(db, quote.organization_id, quote.id, order.id):
        raise RuntimeError(f"Quote {quote.id} is linked to another order")


def compensate(db: Session, quote_id: UUID, org_id: UUID) -> bool:
    """Return an accepted quote to 'sent' so the customer can retry."""
    return quote_service.compare_and_set_status(
        db,
        org_id,
        quote_id,
        QuoteStatus.ACCEPTED,
        QuoteStatus.SENT,
        accepted_at=None,
        order_id=None,
    )


# =============================================================================
# Orchestration
# =============================================================================

def accept_quote(
    db: Session,
    token: str,
    submission: AcceptanceSubmission,
    client_ip: str | None = None,
) -> AcceptanceResult:
    """
    Accept a quote through its public token.

    Raises:
        NotFoundError / ExpiredError / AlreadyHandledError: token unusable
        ValidationError: ROT input rejected (nothing was written)
        TransientError: order creation failed, quote is 'sent' again
        FatalInconsistency: order creation and compensation both failed
    """
    quote = quote_token_service.resolve(db, token)
    quote_id = quote.id
    org_id = quote.organization_id
    log_context = build_log_context(org_id=str(org_id), quote_id=str(quote_id))

    claim = validate_submission(quote, submission)
    accepted_at = claim_quote(db, quote)

    order: Order | None = None
    try:
        record_acceptance_details(db, quote, claim, client_ip)
        order = materialize_order(db, quote)
        link_order(db, quote, order)
    except Exception as exc:
        db.rollback()
        order_id = order.id if order is not None else None
        logger.error(
            "Order materialization failed, compensating context=%s order_id=%s",
            log_context,
            order_id,
            exc_info=True,
        )
        try:
            reverted = compensate(db, quote_id, org_id)
        except Exception as comp_exc:
            db.rollback()
            logger.critical(
                "Compensation failed, quote left accepted without order context=%s order_id=%s",
                log_context,
                order_id,
                exc_info=True,
            )
            raise FatalInconsistency(
                "Quote accepted but no order could be linked",
                quote_id=quote_id,
                organization_id=org_id,
            ) from comp_exc
        if not reverted:
            logger.critical(
                "Compensation found quote outside 'accepted' context=%s order_id=%s",
                log_context,
                order_id,
            )
            raise FatalInconsistency(
                "Quote accepted but no order could be linked",
                quote_id=quote_id,
                organization_id=org_id,
            ) from exc
        raise TransientError("Order could not be created, please try again") from exc

    rot_amount = quote.rot_amount or Decimal("0")
    logger.info("Quote accepted context=%s order_id=%s", log_context, order.id)
    return AcceptanceResult(
        order_id=order.id,
        quote_id=quote_id,
        accepted_at=quote.accepted_at or accepted_at,
        rot_amount=rot_amount,
        net_payable=rot_service.net_payable(quote.total_amount, rot_amount),
    )
