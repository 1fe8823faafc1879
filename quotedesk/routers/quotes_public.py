"""Public quote endpoints for customers (token-gated, no session)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from quotedesk.core.config import settings
from quotedesk.core.deps import get_client_ip, get_db
from quotedesk.core.exceptions import (
    FatalInconsistency,
    QuoteUnavailableError,
    TransientError,
    ValidationError,
)
from quotedesk.core.rate_limit import limiter
from quotedesk.schemas.quote import (
    PublicAcceptRequest,
    PublicAcceptResponse,
    PublicQuoteRead,
    PublicRotPreview,
    QuoteLineItemRead,
)
from quotedesk.services import quote_acceptance_service, quote_token_service, rot_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes/public", tags=["quotes-public"])

UNAVAILABLE_DETAIL = "This offer is no longer available"


@router.get("/{token}", response_model=PublicQuoteRead)
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_READ}/minute")
def get_public_quote(request: Request, token: str, db: Session = Depends(get_db)):
    try:
        quote = quote_token_service.resolve(db, token)
    except QuoteUnavailableError:
        raise HTTPException(status_code=404, detail=UNAVAILABLE_DETAIL)

    preview = rot_service.preview(quote.total_amount, include_rot=quote.include_rot)
    return PublicQuoteRead(
        quote_number=quote.quote_number,
        title=quote.title,
        description=quote.description,
        total_amount=quote.total_amount,
        currency=preview.currency,
        valid_until=quote.valid_until,
        token_expires_at=quote.token_expires_at,
        line_items=[QuoteLineItemRead.model_validate(item) for item in quote.line_items],
        rot=PublicRotPreview(
            include_rot=preview.include_rot,
            rot_amount=preview.rot_amount,
            net_payable=preview.net_payable,
            capped=preview.capped,
        ),
        rot_explanation=rot_service.ROT_EXPLANATION_TEXT,
    )


@router.post("/{token}/accept", response_model=PublicAcceptResponse)
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_ACCEPT}/minute")
def accept_public_quote(
    request: Request,
    token: str,
    data: PublicAcceptRequest,
    db: Session = Depends(get_db),
):
    """
    Accept a quote and create its work order.

    Unknown, expired and already handled tokens all answer with the same
    404 so the endpoint cannot be used to discover quote state.
    """
    submission = quote_acceptance_service.AcceptanceSubmission(
        rot=quote_acceptance_service.RotSubmission(
            kind=data.rot.type,
            identifier=data.rot.identifier,
            property_designation=data.rot.property_designation,
        )
        if data.rot
        else None
    )

    try:
        result = quote_acceptance_service.accept_quote(
            db, token, submission, client_ip=get_client_ip(request)
        )
    except QuoteUnavailableError:
        raise HTTPException(status_code=404, detail=UNAVAILABLE_DETAIL)
    except ValidationError as e:
        return JSONResponse(
            status_code=422,
            content={"detail": "Invalid ROT details", "errors": e.errors},
        )
    except TransientError:
        return JSONResponse(
            status_code=503,
            content={"detail": "We could not register your acceptance. Please try again."},
            headers={"Retry-After": "5"},
        )
    except FatalInconsistency as e:
        logger.critical(
            "Acceptance needs operator attention quote_id=%s org_id=%s",
            e.quote_id,
            e.organization_id,
        )
        raise HTTPException(status_code=500, detail="Something went wrong. Please contact us.")

    return PublicAcceptResponse(
        order_id=result.order_id,
        quote_id=result.quote_id,
        accepted_at=result.accepted_at,
        rot_amount=result.rot_amount,
        net_payable=result.net_payable,
    )
