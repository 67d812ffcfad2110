"""Auth blueprint — /api/auth/*

Self-service company registration, login, logout. JSON in, JSON out;
the dashboard keeps the returned companyId and relies on the session
cookie for subsequent calls.
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from renovision.exceptions import ValidationError
from renovision.extensions import db, limiter
from renovision.repositories import CompanyRepository
from renovision.services import company_service

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


# ──────────────────────────────────────────────
# POST /api/auth/register
# ──────────────────────────────────────────────

@auth_bp.route("/register", methods=["POST"])
@limiter.limit("10 per hour")
def register():
    """Create a company on a trial and log it in.

    Expects: { name, email, password, phone?, website?, trade? }
    Returns: { success, companyId, company }
    """
    data = request.get_json(silent=True) or {}
    company = company_service.register_company(CompanyRepository(db.session), data)

    login_user(company)

    return jsonify(
        success=True,
        companyId=company.id,
        company=company.to_dict(),
    ), 201


# ──────────────────────────────────────────────
# POST /api/auth/login
# ──────────────────────────────────────────────

@auth_bp.route("/login", methods=["POST"])
@limiter.limit("15 per minute")
def login():
    """Email + password login.

    Expects: { email, password, remember? }
    Returns: { success, companyId, company } or 401
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid request.")
    email = (data.get("email") or "").lower().strip()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify(success=False, error="Email and password are required."), 400

    company = company_service.authenticate(CompanyRepository(db.session), email, password)
    if company is None:
        logger.info(f"Failed login for {email}")
        return jsonify(success=False, error="Invalid email or password."), 401

    login_user(company, remember=bool(data.get("remember")))

    return jsonify(
        success=True,
        companyId=company.id,
        company=company.to_dict(),
    )


# ──────────────────────────────────────────────
# POST /api/auth/logout
# ──────────────────────────────────────────────

@auth_bp.route("/logout", methods=["POST"])
def logout():
    logout_user()
    return jsonify(success=True)


# ──────────────────────────────────────────────
# GET /api/auth/csrf-token
# ──────────────────────────────────────────────

@auth_bp.route("/csrf-token", methods=["GET"])
def csrf_token():
    """Token the dashboard sends back as X-CSRFToken on writes."""
    return jsonify(
        success=True,
        csrfToken=generate_csrf(),
        authenticated=current_user.is_authenticated,
    )
