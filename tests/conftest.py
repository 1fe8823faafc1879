"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created per test
- JWT token minting for authenticated tests
- HTTPX AsyncClient with proper headers
- Factories for quotes and orders
"""
import os
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import AsyncGenerator, Generator

# Must be set before the app (and its engine/limiter) are imported
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["TESTING"] = "1"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from quotedesk.core.deps import COOKIE_NAME, get_db
from quotedesk.core.rate_limit import limiter
from quotedesk.core.security import create_session_token
from quotedesk.db.base import Base
from quotedesk.db.enums import Role
from quotedesk.db.models import Customer, Membership, Organization, Team, TeamMember, User
from quotedesk.db.session import SessionLocal, engine
from quotedesk.main import app
from quotedesk.schemas.quote import QuoteCreate, QuoteLineItemIn
from quotedesk.services import quote_service, quote_token_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    App code commits freely; the tables are dropped afterwards.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture(scope="function")
def test_org(db: Session) -> Organization:
    """Create a test organization."""
    org = Organization(
        id=uuid.uuid4(),
        name="Test Bygg AB",
        slug=f"test-org-{uuid.uuid4().hex[:8]}",
        org_number="556677-8899",
    )
    db.add(org)
    db.commit()
    return org


def _make_user(db: Session, org: Organization, role: Role, name: str) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{name.lower().replace(' ', '.')}-{uuid.uuid4().hex[:8]}@test.se",
        display_name=name,
    )
    db.add(user)
    db.flush()
    db.add(
        Membership(
            id=uuid.uuid4(),
            user_id=user.id,
            organization_id=org.id,
            role=role.value,
        )
    )
    db.commit()
    return user


@pytest.fixture(scope="function")
def test_user(db: Session, test_org: Organization) -> User:
    """Create an admin user with membership in test_org."""
    return _make_user(db, test_org, Role.ADMIN, "Test Admin")


@pytest.fixture(scope="function")
def worker(db: Session, test_org: Organization) -> User:
    return _make_user(db, test_org, Role.WORKER, "Field Worker")


@pytest.fixture(scope="function")
def make_user(db: Session, test_org: Organization):
    def _factory(role: Role = Role.WORKER, name: str = "Crew Member") -> User:
        return _make_user(db, test_org, role, name)

    return _factory


@pytest.fixture(scope="function")
def team_with_members(db: Session, test_org: Organization, test_user: User, make_user):
    """Team containing test_user (the actor) and two workers."""
    team = Team(id=uuid.uuid4(), organization_id=test_org.id, name="Crew North")
    db.add(team)
    db.flush()
    members = [make_user(name="Anna"), make_user(name="Bertil")]
    for user in [test_user, *members]:
        db.add(TeamMember(team_id=team.id, user_id=user.id))
    db.commit()
    return team, members


@pytest.fixture(scope="function")
def customer(db: Session, test_org: Organization) -> Customer:
    c = Customer(
        id=uuid.uuid4(),
        organization_id=test_org.id,
        name="Karin Svensson",
        email="karin@example.se",
        city="Uppsala",
    )
    db.add(c)
    db.commit()
    return c


# =============================================================================
# Quote Factories
# =============================================================================

@pytest.fixture(scope="function")
def make_quote(db: Session, test_org: Organization, test_user: User):
    """Create a draft quote; total = sum of (quantity * unit_price)."""
    def _factory(
        amount: Decimal | str = "10000",
        include_rot: bool = True,
        customer_id: uuid.UUID | None = None,
        **fields,
    ):
        data = QuoteCreate(
            title=fields.pop("title", "Bathroom renovation"),
            customer_id=customer_id,
            include_rot=include_rot,
            line_items=[
                QuoteLineItemIn(description="Labor and material", quantity=Decimal("1"), unit_price=Decimal(str(amount))),
            ],
            **fields,
        )
        return quote_service.create_quote(db, test_org.id, test_user.id, data)

    return _factory


@pytest.fixture(scope="function")
def make_sent_quote(db: Session, make_quote):
    """Create a quote and issue its acceptance token (status 'sent')."""
    def _factory(**kwargs):
        quote = make_quote(**kwargs)
        return quote_token_service.issue_token(db, quote.organization_id, quote.id)

    return _factory


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    __test__ = False

    user: User
    org: Organization
    token: str
    cookie_name: str = COOKIE_NAME


@pytest.fixture(scope="function")
def test_auth(test_user: User, test_org: Organization) -> TestAuth:
    """Create JWT token for test user."""
    token = create_session_token(
        user_id=test_user.id,
        org_id=test_org.id,
        role=Role.ADMIN.value,
        token_version=test_user.token_version,
    )
    return TestAuth(
        user=test_user,
        org=test_org,
        token=token,
    )


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    test_auth: TestAuth
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create authenticated AsyncClient with JWT cookie and CSRF header.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={test_auth.cookie_name: test_auth.token},
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c

    app.dependency_overrides.clear()
