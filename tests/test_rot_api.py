"""Tests for ROT preview, identifier validation and reporting."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from httpx import AsyncClient

from quotedesk.core.deps import COOKIE_NAME
from quotedesk.core.security import create_session_token
from quotedesk.services import quote_acceptance_service, rot_report_service
from quotedesk.services.quote_acceptance_service import AcceptanceSubmission, RotSubmission


def _accept(db, quote, kind: str, identifier: str):
    return quote_acceptance_service.accept_quote(
        db,
        quote.acceptance_token,
        AcceptanceSubmission(
            rot=RotSubmission(kind=kind, identifier=identifier, property_designation="Täby 3:1")
        ),
    )


@pytest.mark.asyncio
async def test_preview(authed_client: AsyncClient):
    response = await authed_client.post("/rot/preview", json={"total": "200000"})

    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["rot_amount"]) == Decimal("50000")
    assert Decimal(data["net_payable"]) == Decimal("150000")
    assert data["capped"] is True
    assert data["formatted_net_payable"] == "150 000 SEK"


@pytest.mark.asyncio
async def test_preview_reports_service_eligibility(authed_client: AsyncClient):
    response = await authed_client.post(
        "/rot/preview", json={"total": "10000", "service_type": "Fasadtvätt och målning"}
    )
    assert response.json()["eligible"] is True

    response = await authed_client.post(
        "/rot/preview", json={"total": "10000", "service_type": "Snow removal"}
    )
    assert response.json()["eligible"] is False

    response = await authed_client.post("/rot/preview", json={"total": "10000"})
    assert response.json()["eligible"] is None


@pytest.mark.asyncio
async def test_preview_requires_session(client: AsyncClient):
    response = await client.post("/rot/preview", json={"total": "1000"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_validate_identifier(authed_client: AsyncClient):
    response = await authed_client.post(
        "/rot/validate-identifier", json={"type": "person", "identifier": "198001011234"}
    )
    assert response.json() == {"valid": True, "formatted": "19800101-1234"}

    response = await authed_client.post(
        "/rot/validate-identifier", json={"type": "company", "identifier": "123"}
    )
    assert response.json() == {"valid": False, "formatted": None}


@pytest.mark.asyncio
async def test_report_and_summary(authed_client: AsyncClient, db, make_sent_quote, customer):
    _accept(db, make_sent_quote(amount="10000", customer_id=customer.id), "person", "19800101-1234")
    _accept(db, make_sent_quote(amount="200000"), "company", "556677-8899")
    _accept(db, make_sent_quote(amount="5000", include_rot=False), "person", "19800101-1234")

    response = await authed_client.get("/rot/report")
    assert response.status_code == 200
    rows = response.json()
    assert len(rows) == 2
    by_type = {row["identifier_type"]: row for row in rows}
    assert by_type["person"]["customer_name"] == "Karin Svensson"
    assert by_type["company"]["identifier"] == "556677-8899"

    response = await authed_client.get("/rot/summary")
    data = response.json()
    assert data["order_count"] == 2
    assert Decimal(data["total_rot"]) == Decimal("53500")
    assert Decimal(data["average_rot"]) == Decimal("26750")
    assert data["private_count"] == 1
    assert Decimal(data["company_total"]) == Decimal("50000")


@pytest.mark.asyncio
async def test_report_requires_admin(client: AsyncClient, worker, test_org):
    client.cookies.set(
        COOKIE_NAME,
        create_session_token(
            user_id=worker.id, org_id=test_org.id, role="worker", token_version=worker.token_version
        ),
    )

    response = await client.get("/rot/report")
    assert response.status_code == 403


def test_summary_filters_by_tax_year(db, test_org, make_sent_quote):
    _accept(db, make_sent_quote(amount="10000"), "person", "19800101-1234")
    this_year = datetime.now(timezone.utc).year

    assert rot_report_service.get_rot_summary(db, test_org.id, this_year)["order_count"] == 1
    assert rot_report_service.get_rot_summary(db, test_org.id, this_year - 5)["order_count"] == 0


def test_empty_summary(db, test_org):
    summary = rot_report_service.get_rot_summary(db, test_org.id)

    assert summary["order_count"] == 0
    assert summary["average_rot"] == Decimal("0")
