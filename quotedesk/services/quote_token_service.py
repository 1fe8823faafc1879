"""Acceptance token service - issues and resolves public quote links."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from quotedesk.core.config import settings
from quotedesk.core.exceptions import AlreadyHandledError, ExpiredError, NotFoundError
from quotedesk.db.enums import QuoteStatus
from quotedesk.db.models import Customer, Quote
from quotedesk.services import rot_service

logger = logging.getLogger(__name__)


def _generate_token(db: Session) -> str:
    token = secrets.token_urlsafe(32)
    while db.query(Quote.id).filter(Quote.acceptance_token == token).first() is not None:
        token = secrets.token_urlsafe(32)
    return token


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def issue_token(
    db: Session,
    org_id: UUID,
    quote_id: UUID,
    ttl_days: int | None = None,
) -> Quote:
    """
    Issue a fresh acceptance token and mark the quote as sent.

    draft → sent; on an already sent quote the token is rotated and the
    previous link stops resolving.

    Raises:
        ValueError: quote missing, or already accepted/declined
    """
    quote = db.query(Quote).filter(
        Quote.id == quote_id,
        Quote.organization_id == org_id,
    ).first()
    if not quote:
        raise ValueError("Quote not found")
    if quote.status not in (QuoteStatus.DRAFT.value, QuoteStatus.SENT.value):
        raise ValueError(f"Cannot send a quote in status '{quote.status}'")

    ttl = settings.QUOTE_TOKEN_TTL_DAYS if ttl_days is None else ttl_days
    quote.acceptance_token = _generate_token(db)
    quote.token_expires_at = datetime.now(timezone.utc) + timedelta(days=ttl)
    quote.status = QuoteStatus.SENT.value
    db.commit()
    db.refresh(quote)
    logger.info(
        "Acceptance token issued quote_id=%s org_id=%s expires_at=%s",
        quote.id,
        org_id,
        quote.token_expires_at.isoformat(),
    )
    return quote


def resolve(db: Session, token: str) -> Quote:
    """
    Look up the quote behind a public acceptance token.

    Checked in order: unknown token, expired token (whatever the status),
    status other than 'sent'.

    Raises:
        NotFoundError, ExpiredError, AlreadyHandledError
    """
    if not token:
        raise NotFoundError("Unknown acceptance token")
    quote = db.query(Quote).filter(Quote.acceptance_token == token).first()
    if not quote:
        raise NotFoundError("Unknown acceptance token")

    if quote.token_expires_at and _as_utc(quote.token_expires_at) <= datetime.now(timezone.utc):
        raise ExpiredError(f"Acceptance token expired for quote {quote.id}")

    if quote.status != QuoteStatus.SENT.value:
        raise AlreadyHandledError(f"Quote {quote.id} is '{quote.status}'")

    return quote


def build_acceptance_link(base_url: str, token: str) -> str:
    """Public URL placed in the quote email."""
    return f"{base_url.rstrip('/')}/quote-accept/{token}"


# =============================================================================
# Quote email
# =============================================================================

@dataclass
class QuoteEmail:
    quote: Quote
    acceptance_url: str
    subject: str
    body: str
    recipient_email: str | None = None


def render_quote_email(quote: Quote, acceptance_url: str, customer: Customer | None = None) -> tuple[str, str]:
    """Subject and plain-text body. ROT lines only for quotes that include ROT."""
    subject = f"Quote {quote.quote_number}: {quote.title}"
    greeting = f"Hello {customer.name}," if customer and customer.name else "Hello,"

    lines = [
        greeting,
        "",
        f"Here is our quote {quote.quote_number} for {quote.title}.",
        "",
        f"- Total: {rot_service.format_amount(quote.total_amount)}",
    ]
    rot_amount = quote.rot_amount or 0
    if quote.include_rot and rot_amount > 0:
        lines.append(f"- ROT deduction: -{rot_service.format_amount(rot_amount)}")
        lines.append(
            f"- To pay after ROT: "
            f"{rot_service.format_amount(rot_service.net_payable(quote.total_amount, rot_amount))}"
        )
    if quote.valid_until:
        lines.append(f"- Valid until: {quote.valid_until.isoformat()}")
    if quote.include_rot:
        lines.extend(["", rot_service.ROT_EMAIL_TEXT])
    lines.extend(["", f"Accept the quote online: {acceptance_url}"])
    return subject, "\n".join(lines)


def send_quote(
    db: Session,
    org_id: UUID,
    quote_id: UUID,
    base_url: str | None = None,
    ttl_days: int | None = None,
) -> QuoteEmail:
    """
    Issue a token and render the email for the outbound mail collaborator.

    Delivery itself happens outside this service.
    """
    quote = issue_token(db, org_id, quote_id, ttl_days=ttl_days)
    url = build_acceptance_link(base_url or settings.FRONTEND_URL, quote.acceptance_token)
    subject, body = render_quote_email(quote, url, quote.customer)
    return QuoteEmail(
        quote=quote,
        acceptance_url=url,
        subject=subject,
        body=body,
        recipient_email=quote.customer.email if quote.customer else None,
    )
