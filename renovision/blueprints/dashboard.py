"""Dashboard blueprint — company-scoped /api/* endpoints.

Every route requires a logged-in company (session) or its API key, and a
company can only see its own data.

Route Map:
  GET /api/company/<id>            — Company profile
  GET /api/company/<id>/leads      — Leads, newest first (?status=)
  GET /api/company/<id>/stats      — Dashboard metrics (?month=YYYY-MM)
  GET /api/company/<id>/embed      — Embed snippet for the company's site
  GET /api/company/<id>/projects   — Generated images for this company
  PUT /api/lead/<lead_id>          — Update status / project value
"""

from flask import Blueprint, g, jsonify, request

from renovision.decorators import company_auth_required
from renovision.exceptions import ValidationError
from renovision.extensions import db
from renovision.models.project import Project
from renovision.repositories import LeadRepository
from renovision.services import company_service, lead_service, stats_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api")


@dashboard_bp.route("/company/<company_id>", methods=["GET"])
@company_auth_required
def company_detail(company_id):
    return jsonify(success=True, company=g.company.to_dict())


@dashboard_bp.route("/company/<company_id>/leads", methods=["GET"])
@company_auth_required
def company_leads(company_id):
    status = request.args.get("status", "").strip() or None
    leads = lead_service.list_leads(LeadRepository(db.session), company_id, status=status)
    return jsonify(
        success=True,
        leads=[lead.to_dict() for lead in leads],
        total=len(leads),
    )


@dashboard_bp.route("/company/<company_id>/stats", methods=["GET"])
@company_auth_required
def company_stats(company_id):
    month = request.args.get("month", "").strip() or None
    stats = stats_service.compute_stats(LeadRepository(db.session), g.company, month=month)
    return jsonify(success=True, stats=stats)


@dashboard_bp.route("/company/<company_id>/embed", methods=["GET"])
@company_auth_required
def company_embed(company_id):
    return jsonify(success=True, embedCode=company_service.build_embed_code(g.company))


@dashboard_bp.route("/company/<company_id>/projects", methods=["GET"])
@company_auth_required
def company_projects(company_id):
    projects = (
        Project.query
        .filter_by(company_id=company_id)
        .order_by(Project.created_at.desc())
        .all()
    )
    return jsonify(success=True, projects=[p.to_dict() for p in projects])


@dashboard_bp.route("/lead/<lead_id>", methods=["PUT"])
@company_auth_required
def update_lead(lead_id):
    """Partial update: { status?, projectValue? }. Absent keys are left alone."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid request.")

    kwargs = {}
    if "status" in data and data["status"] is not None:
        kwargs["status"] = str(data["status"]).strip()
    if "projectValue" in data:
        kwargs["project_value"] = data["projectValue"]

    lead = lead_service.update_lead(
        LeadRepository(db.session),
        lead_id,
        g.company.id,
        **kwargs,
    )
    return jsonify(success=True, lead=lead.to_dict())
