"""Tests for the auth blueprint — registration, login, logout.

Covers:
- Registration creates a trial company with an API key
- Registration validation and duplicate email rejection, including a
  duplicate that slips past the lookup
- Non-object JSON bodies are rejected with 400
- Registration writes an audit event
- Login with valid and invalid credentials
- Logout ends the session
- CSRF token endpoint
- Demo company seeding
"""

from unittest.mock import patch

import pytest

from renovision.exceptions import ValidationError
from renovision.models.audit import AuditEvent
from renovision.models.company import Company
from renovision.repositories import CompanyRepository
from renovision.services.company_service import register_company, seed_demo_company


class TestRegistration:
    """Tests for POST /api/auth/register."""

    def test_register_success(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "name": "Acme Roofing",
            "email": "Owner@AcmeRoofing.co.uk",
            "password": "securepass123",
            "phone": "01234 567890",
            "trade": "Roofing",
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True

        company = db_session.get(Company, body["companyId"])
        assert company is not None
        assert company.email == "owner@acmeroofing.co.uk"
        assert company.trade == "roofing"
        assert company.status == "trial"
        assert company.api_key.startswith("rva_")
        assert company.trial_ends_at is not None
        assert body["company"]["apiKey"] == company.api_key
        assert "passwordHash" not in body["company"]

    def test_register_logs_company_in(self, client):
        resp = client.post("/api/auth/register", json={
            "name": "Acme Roofing",
            "email": "owner@acme.co.uk",
            "password": "securepass123",
        })
        company_id = resp.get_json()["companyId"]

        resp = client.get(f"/api/company/{company_id}")
        assert resp.status_code == 200
        assert resp.get_json()["company"]["name"] == "Acme Roofing"

    def test_register_creates_audit_event(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "name": "Acme Roofing",
            "email": "owner@acme.co.uk",
            "password": "securepass123",
        })
        company_id = resp.get_json()["companyId"]

        event = AuditEvent.query.filter_by(
            company_id=company_id, action="company.registered"
        ).first()
        assert event is not None
        assert event.metadata_["email"] == "owner@acme.co.uk"

    def test_register_missing_fields(self, client):
        resp = client.post("/api/auth/register", json={"email": "not-an-email"})
        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert "Company name is required." in error
        assert "A valid email is required." in error
        assert "Password is required." in error

    def test_register_short_password(self, client):
        resp = client.post("/api/auth/register", json={
            "name": "Acme",
            "email": "owner@acme.co.uk",
            "password": "short",
        })
        assert resp.status_code == 400
        assert "at least 8 characters" in resp.get_json()["error"]

    def test_register_duplicate_email(self, client, seed_data):
        resp = client.post("/api/auth/register", json={
            "name": "Copycat Bathrooms",
            "email": "DEMO@example.com",
            "password": "securepass123",
        })
        assert resp.status_code == 400
        assert "already exists" in resp.get_json()["error"]
        assert Company.query.count() == 2

    def test_register_non_object_body(self, client):
        resp = client.post("/api/auth/register", json=["owner@acme.co.uk"])
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid request."

    def test_register_duplicate_email_race(self, app, db_session, seed_data):
        # Another request registered the email after our lookup ran
        repo = CompanyRepository(db_session)
        with patch.object(repo, "get_by_email", return_value=None):
            with pytest.raises(ValidationError, match="already exists"):
                register_company(repo, {
                    "name": "Copycat Bathrooms",
                    "email": "demo@example.com",
                    "password": "securepass123",
                })
        assert Company.query.count() == 2

    def test_register_strips_html(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "name": "<b>Bold</b> Builders<script>alert(1)</script>",
            "email": "bold@builders.co.uk",
            "password": "securepass123",
        })
        company = db_session.get(Company, resp.get_json()["companyId"])
        assert "<" not in company.name
        assert company.name.startswith("Bold Builders")


class TestLogin:
    """Tests for POST /api/auth/login and /logout."""

    def test_login_success(self, client, seed_data):
        resp = client.post("/api/auth/login", json={
            "email": "demo@example.com",
            "password": "demo1234",
        })
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["companyId"] == "demo_company"
        assert body["company"]["name"] == "Demo Bathrooms Ltd"

    def test_login_is_case_insensitive_on_email(self, client, seed_data):
        resp = client.post("/api/auth/login", json={
            "email": "  Demo@Example.COM ",
            "password": "demo1234",
        })
        assert resp.status_code == 200

    def test_login_wrong_password(self, client, seed_data):
        resp = client.post("/api/auth/login", json={
            "email": "demo@example.com",
            "password": "wrongpassword",
        })
        assert resp.status_code == 401
        assert resp.get_json() == {"success": False, "error": "Invalid email or password."}

    def test_login_unknown_email(self, client, seed_data):
        resp = client.post("/api/auth/login", json={
            "email": "nobody@example.com",
            "password": "demo1234",
        })
        assert resp.status_code == 401

    def test_login_missing_fields(self, client):
        resp = client.post("/api/auth/login", json={"email": "demo@example.com"})
        assert resp.status_code == 400

    def test_login_non_object_body(self, client):
        resp = client.post("/api/auth/login", json="demo@example.com")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid request."

    def test_logout(self, logged_in_client):
        resp = logged_in_client.get("/api/company/demo_company")
        assert resp.status_code == 200

        resp = logged_in_client.post("/api/auth/logout")
        assert resp.status_code == 200

        resp = logged_in_client.get("/api/company/demo_company")
        assert resp.status_code == 401

    def test_csrf_token(self, client):
        resp = client.get("/api/auth/csrf-token")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["csrfToken"]
        assert body["authenticated"] is False


class TestSeedDemo:
    """Tests for seed_demo_company (the `flask seed-demo` command)."""

    def test_seed_creates_demo_company(self, app, db_session):
        company, created = seed_demo_company(CompanyRepository(db_session))
        assert created is True
        assert company.id == "demo_company"
        assert company.api_key == "rva_demo_key"

    def test_seed_is_idempotent(self, app, db_session):
        seed_demo_company(CompanyRepository(db_session))
        company, created = seed_demo_company(CompanyRepository(db_session))
        assert created is False
        assert Company.query.count() == 1

    def test_seed_cli(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["seed-demo"])
        assert result.exit_code == 0
        assert "Demo company created!" in result.output
        assert db_session.get(Company, "demo_company") is not None
