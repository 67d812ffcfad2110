"""Widget blueprint — public /api/* endpoints the embedded widget calls.

No login: these are hit by homeowners on contractor websites. CORS
enabled, CSRF-exempt, rate limited per IP.

Route Map:
  POST /api/upload           — Store the homeowner's photo
  POST /api/generate         — Photo + prompt -> generated "after" image
  GET  /api/prompts/<trade>  — Style prompts for a trade
  POST /api/lead             — Capture homeowner contact details as a lead
  GET  /api/health           — Liveness + database connectivity
"""

import logging

from flask import Blueprint, current_app, jsonify, make_response, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from renovision.decorators import add_cors_headers
from renovision.exceptions import ValidationError
from renovision.extensions import db, limiter
from renovision.models.project import Project
from renovision.repositories import CompanyRepository, LeadRepository
from renovision.services import image_service, lead_service, prompt_service, storage_service

logger = logging.getLogger(__name__)

widget_bp = Blueprint("widget", __name__, url_prefix="/api")
widget_bp.after_request(add_cors_headers)


@widget_bp.route("/upload", methods=["OPTIONS"])
@widget_bp.route("/generate", methods=["OPTIONS"])
@widget_bp.route("/lead", methods=["OPTIONS"])
def preflight():
    """Handle CORS preflight requests."""
    return make_response("", 204)


# ──────────────────────────────────────────────
# Image pipeline
# ──────────────────────────────────────────────

@widget_bp.route("/upload", methods=["POST"])
@limiter.limit("30 per hour")
def upload():
    """Accept a multipart `image` and store it.

    Returns: { success, filename, url }
    """
    file = request.files.get("image")
    ok, error = storage_service.validate_image(file)
    if not ok:
        raise ValidationError(error)

    stored = storage_service.save_upload(file)
    logger.info(f"Upload stored: {stored['filename']} ({stored['file_size']} bytes)")

    return jsonify(
        success=True,
        filename=stored["filename"],
        url=stored["public_url"],
        message="Image uploaded successfully",
    )


@widget_bp.route("/generate", methods=["POST"])
@limiter.limit("10 per hour")
def generate():
    """Run the configured image provider on an uploaded photo.

    Expects: { filename, prompt, companyId (optional) }
    Returns: { success, generatedImageUrl, projectId }
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid request.")
    filename = (data.get("filename") or "").strip()
    prompt = (data.get("prompt") or "").strip()

    if not filename or not prompt:
        raise ValidationError("Missing filename or prompt")
    if len(prompt) > 1000:
        raise ValidationError("Prompt is too long.")

    image_bytes, mime_type = storage_service.load_upload(filename)

    transformer = image_service.get_image_transformer(current_app.config)
    logger.info(f"Generating with {transformer.name} for {filename}")
    generated_url = transformer.transform(image_bytes, mime_type, prompt)

    company = CompanyRepository(db.session).get(data.get("companyId"))
    project = Project(
        company_id=company.id if company else None,
        original_image=filename,
        generated_image=generated_url,
        prompt=prompt,
        provider=transformer.name,
    )
    db.session.add(project)
    db.session.commit()

    return jsonify(
        success=True,
        generatedImageUrl=generated_url,
        projectId=project.id,
    )


@widget_bp.route("/prompts/<trade>", methods=["GET"])
def prompts(trade):
    return jsonify(success=True, prompts=prompt_service.get_prompts(trade))


# ──────────────────────────────────────────────
# Lead capture
# ──────────────────────────────────────────────

@widget_bp.route("/lead", methods=["POST"])
@limiter.limit("20 per hour")
def capture_lead():
    """Capture the homeowner's details once they want to see the full image.

    Expects: { companyId, customerName, email, phone, postcode?, projectBudget?,
               startDate?, notes?, originalImage?, generatedImage?, prompt? }
    Returns: { success, leadId, referenceCode }
    """
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()

    lead = lead_service.capture_lead(
        CompanyRepository(db.session),
        LeadRepository(db.session),
        data,
    )

    return jsonify(
        success=True,
        leadId=lead.id,
        referenceCode=lead.reference_code,
    ), 201


# ──────────────────────────────────────────────
# Health
# ──────────────────────────────────────────────

@widget_bp.route("/health", methods=["GET"])
def health():
    """Report liveness and whether the database answers."""
    try:
        db.session.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Health check: database unavailable: {e}")
        database = "unavailable"

    status_code = 200 if database == "connected" else 503
    return jsonify(
        status="ok" if status_code == 200 else "degraded",
        database=database,
        imageProvider=current_app.config.get("IMAGE_PROVIDER"),
    ), status_code
