"""ROT reporting - deduction rows and yearly summary for tax filing."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import extract
from sqlalchemy.orm import Session

from quotedesk.db.enums import RotIdentifierKind
from quotedesk.db.models import Customer, Order

ZERO = Decimal("0")


def get_rot_report(db: Session, org_id: UUID, tax_year: int | None = None) -> list[dict]:
    """
    Orders carrying a ROT deduction, newest first.

    Tax year is the calendar year the order was created.
    """
    query = (
        db.query(Order, Customer.name)
        .outerjoin(Customer, Customer.id == Order.customer_id)
        .filter(
            Order.organization_id == org_id,
            Order.include_rot.is_(True),
            Order.rot_amount.isnot(None),
        )
    )
    if tax_year:
        query = query.filter(extract("year", Order.created_at) == tax_year)

    rows = []
    for order, customer_name in query.order_by(Order.created_at.desc()).all():
        if order.rot_personal_id:
            identifier_type, identifier = RotIdentifierKind.PERSON, order.rot_personal_id
        elif order.rot_org_id:
            identifier_type, identifier = RotIdentifierKind.COMPANY, order.rot_org_id
        else:
            identifier_type, identifier = None, None
        rows.append(
            {
                "order_id": order.id,
                "title": order.title,
                "customer_name": customer_name,
                "identifier_type": identifier_type,
                "identifier": identifier,
                "property_designation": order.rot_property_designation,
                "value": order.value,
                "rot_amount": Decimal(str(order.rot_amount)),
                "status": order.status,
                "created_at": order.created_at,
            }
        )
    return rows


def get_rot_summary(db: Session, org_id: UUID, tax_year: int | None = None) -> dict:
    """Total, count, average and split between private persons and companies."""
    rows = get_rot_report(db, org_id, tax_year)
    total = sum((row["rot_amount"] for row in rows), ZERO)
    count = len(rows)

    private = [row for row in rows if row["identifier_type"] == RotIdentifierKind.PERSON]
    company = [row for row in rows if row["identifier_type"] == RotIdentifierKind.COMPANY]

    return {
        "tax_year": tax_year,
        "total_rot": total,
        "order_count": count,
        "average_rot": total / count if count else ZERO,
        "private_count": len(private),
        "private_total": sum((row["rot_amount"] for row in private), ZERO),
        "company_count": len(company),
        "company_total": sum((row["rot_amount"] for row in company), ZERO),
    }
