"""ROT router - deduction preview, identifier check and reporting."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from quotedesk.core.deps import get_current_session, get_db, require_roles
from quotedesk.db.enums import ROLES_CAN_ADMINISTER
from quotedesk.schemas.auth import UserSession
from quotedesk.schemas.rot import (
    IdentifierValidationRequest,
    IdentifierValidationResponse,
    RotPreviewRequest,
    RotPreviewResponse,
    RotReportRow,
    RotSummary,
)
from quotedesk.services import rot_report_service, rot_service

router = APIRouter(prefix="/rot", tags=["ROT"])


@router.post("/preview", response_model=RotPreviewResponse)
def preview_deduction(
    data: RotPreviewRequest,
    session: UserSession = Depends(get_current_session),
):
    """Same computation the acceptance flow uses. Read-only, no CSRF needed."""
    result = rot_service.preview(data.total, include_rot=data.include_rot)
    return RotPreviewResponse(
        total=result.total,
        include_rot=result.include_rot,
        rot_amount=result.rot_amount,
        net_payable=result.net_payable,
        capped=result.capped,
        currency=result.currency,
        formatted_rot_amount=rot_service.format_amount(result.rot_amount),
        formatted_net_payable=rot_service.format_amount(result.net_payable),
        eligible=(
            rot_service.is_rot_eligible(data.service_type) if data.service_type is not None else None
        ),
    )


@router.post("/validate-identifier", response_model=IdentifierValidationResponse)
def validate_identifier(
    data: IdentifierValidationRequest,
    session: UserSession = Depends(get_current_session),
):
    formatted = rot_service.format_identifier(data.type, data.identifier.strip())
    if not rot_service.validate_identifier(data.type, formatted):
        return IdentifierValidationResponse(valid=False)
    return IdentifierValidationResponse(valid=True, formatted=formatted)


@router.get("/report", response_model=list[RotReportRow])
def get_report(
    tax_year: int | None = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(ROLES_CAN_ADMINISTER)),
):
    return rot_report_service.get_rot_report(db, session.org_id, tax_year)


@router.get("/summary", response_model=RotSummary)
def get_summary(
    tax_year: int | None = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(ROLES_CAN_ADMINISTER)),
):
    return rot_report_service.get_rot_summary(db, session.org_id, tax_year)
