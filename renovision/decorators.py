"""
Custom route decorators for access control.

- company_auth_required: the caller is a company, either through the
  Flask-Login session (dashboard) or an `Authorization: Bearer <api_key>`
  header (integrations). If the route has a company_id URL parameter it
  must be the caller's own (tenant check). The company lands in g.company.
- add_cors_headers: after_request hook for the public widget endpoints.
"""

from functools import wraps

from flask import abort, current_app, g, jsonify, request
from flask_login import current_user

from renovision.extensions import csrf, db
from renovision.repositories import CompanyRepository

UNSAFE_METHODS = ("POST", "PUT", "PATCH", "DELETE")


def company_auth_required(f):
    """Require a session login or a valid API key, then check the tenant."""

    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
            company = CompanyRepository(db.session).get_by_api_key(token)
            if company is None:
                return jsonify(success=False, error="Invalid API key."), 401
        elif current_user.is_authenticated:
            company = current_user._get_current_object()
            # Cookie-authenticated writes need a CSRF token
            if (
                request.method in UNSAFE_METHODS
                and current_app.config.get("WTF_CSRF_ENABLED", True)
            ):
                csrf.protect()
        else:
            return jsonify(success=False, error="Authentication required."), 401

        company_id = kwargs.get("company_id")
        if company_id is not None and company_id != company.id:
            if CompanyRepository(db.session).get(company_id) is None:
                abort(404)
            abort(403)

        g.company = company
        return f(*args, **kwargs)

    return decorated


def add_cors_headers(response):
    """Add CORS headers so the widget can call us from any site."""
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response
