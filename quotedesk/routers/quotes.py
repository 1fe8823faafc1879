"""Quotes router - internal CRUD, send and decline."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from quotedesk.core.deps import (
    get_current_session,
    get_db,
    require_csrf_header,
    require_roles,
)
from quotedesk.db.enums import ROLES_CAN_ADMINISTER, ROLES_CAN_MANAGE_QUOTES, QuoteStatus
from quotedesk.schemas.auth import UserSession
from quotedesk.schemas.quote import (
    QuoteCreate,
    QuoteListItem,
    QuoteListResponse,
    QuoteRead,
    QuoteSendResponse,
    QuoteStats,
    QuoteUpdate,
)
from quotedesk.services import quote_service, quote_token_service

router = APIRouter(prefix="/quotes", tags=["Quotes"])


def _get_quote_or_404(db: Session, session: UserSession, quote_id: UUID):
    quote = quote_service.get_quote(db, session.org_id, quote_id)
    if not quote:
        raise HTTPException(status_code=404, detail="Quote not found")
    return quote


# =============================================================================
# List / Stats
# =============================================================================

@router.get("", response_model=QuoteListResponse)
def list_quotes(
    status: QuoteStatus | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    items, total = quote_service.list_quotes(
        db, session.org_id, status=status, page=page, per_page=per_page
    )
    return QuoteListResponse(
        items=[QuoteListItem.model_validate(q) for q in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/stats", response_model=QuoteStats)
def get_stats(
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    """Quote counts by status plus value and ROT totals."""
    return quote_service.get_quote_stats(db, session.org_id)


# =============================================================================
# CRUD
# =============================================================================

@router.post(
    "",
    response_model=QuoteRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
def create_quote(
    data: QuoteCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_QUOTES)),
):
    try:
        return quote_service.create_quote(db, session.org_id, session.user_id, data)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/{quote_id}", response_model=QuoteRead)
def get_quote(
    quote_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    return _get_quote_or_404(db, session, quote_id)


@router.patch("/{quote_id}", response_model=QuoteRead, dependencies=[Depends(require_csrf_header)])
def update_quote(
    quote_id: UUID,
    data: QuoteUpdate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_QUOTES)),
):
    """Update a draft or sent quote. Line items are replaced as a batch."""
    quote = _get_quote_or_404(db, session, quote_id)
    try:
        return quote_service.update_quote(db, quote, data)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete(
    "/{quote_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
def delete_quote(
    quote_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(ROLES_CAN_ADMINISTER)),
):
    quote = _get_quote_or_404(db, session, quote_id)
    try:
        quote_service.delete_quote(db, quote)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


# =============================================================================
# Lifecycle
# =============================================================================

@router.post(
    "/{quote_id}/send",
    response_model=QuoteSendResponse,
    dependencies=[Depends(require_csrf_header)],
)
def send_quote(
    quote_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_QUOTES)),
):
    """
    Issue (or rotate) the acceptance link and render the quote email.

    The returned subject/body are handed to the mail sender by the caller.
    """
    _get_quote_or_404(db, session, quote_id)
    try:
        email = quote_token_service.send_quote(db, session.org_id, quote_id)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return QuoteSendResponse(
        quote_id=email.quote.id,
        status=email.quote.status,
        acceptance_url=email.acceptance_url,
        token_expires_at=email.quote.token_expires_at,
        subject=email.subject,
        body=email.body,
    )


@router.post(
    "/{quote_id}/decline",
    response_model=QuoteRead,
    dependencies=[Depends(require_csrf_header)],
)
def decline_quote(
    quote_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_QUOTES)),
):
    quote = _get_quote_or_404(db, session, quote_id)
    try:
        return quote_service.decline_quote(db, quote)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
