"""Shared test fixtures for the Renovation Vision test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, CSRF off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: the demo company, a second company, and a few leads
- make_lead: factory for leads of a given age and status
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from werkzeug.security import generate_password_hash

from renovision import create_app
from renovision.extensions import db as _db
from renovision.models.base import utcnow
from renovision.models.company import Company
from renovision.models.lead import Lead


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def make_lead(db_session):
    """Build and commit a lead. Age is in days before now."""

    def _make_lead(company, age_days=0, status="new", project_value=None,
                   email="jane@example.com", created_at=None, prompt=None, **flags):
        lead_id = str(uuid.uuid4())
        lead = Lead(
            id=lead_id,
            company_id=company.id,
            customer_name="Jane Homeowner",
            email=email,
            phone="07700 900456",
            postcode="SW1A 1AA",
            prompt=prompt,
            reference_code=Lead.reference_code_for(lead_id),
            status=status,
            project_value=Decimal(str(project_value)) if project_value is not None else None,
            created_at=created_at or utcnow() - timedelta(days=age_days),
            follow_up_1_sent=flags.get("follow_up_1_sent", False),
            follow_up_2_sent=flags.get("follow_up_2_sent", False),
            follow_up_3_sent=flags.get("follow_up_3_sent", False),
        )
        if status == "won":
            lead.won_date = utcnow()
        db_session.add(lead)
        db_session.commit()
        return lead

    return _make_lead


@pytest.fixture
def seed_data(app, db_session):
    """Seed the database with the demo company and a second, unrelated company.

    Returns a dict with the created objects and their plain IDs.
    """
    demo = Company(
        id="demo_company",
        api_key="rva_demo_key",
        name="Demo Bathrooms Ltd",
        email="demo@example.com",
        password_hash=generate_password_hash("demo1234"),
        phone="07700 900123",
        website="www.demobathrooms.com",
        trade="bathroom",
        commission_rate=Decimal("0.02"),
        status="trial",
        trial_ends_at=utcnow() + timedelta(days=365),
    )
    other = Company(
        api_key="rva_other_key",
        name="Other Kitchens Ltd",
        email="other@example.com",
        password_hash=generate_password_hash("other1234"),
        trade="kitchen",
        commission_rate=Decimal("0.05"),
        status="active",
    )
    db_session.add_all([demo, other])
    db_session.commit()

    return {
        "demo": demo,
        "demo_id": demo.id,
        "other": other,
        "other_id": other.id,
    }


@pytest.fixture
def demo_auth():
    """Authorization header for the demo company's API key."""
    return {"Authorization": "Bearer rva_demo_key"}


@pytest.fixture
def logged_in_client(client, seed_data):
    """Test client with the demo company logged in via the session."""
    resp = client.post(
        "/api/auth/login",
        json={"email": "demo@example.com", "password": "demo1234"},
    )
    assert resp.status_code == 200
    return client
