import os
import logging

import click
from flask import Flask, jsonify, send_from_directory
from flask_wtf.csrf import CSRFError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from renovision.config import config_by_name
from renovision.exceptions import NotFoundError, ProviderError, ValidationError
from renovision.extensions import db, migrate, login_manager, csrf, limiter

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from renovision import models  # noqa: F401

    # --- Register blueprints ---
    from renovision.blueprints.auth import auth_bp
    from renovision.blueprints.dashboard import dashboard_bp
    from renovision.blueprints.widget import widget_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(widget_bp)

    # JSON APIs: the widget is public and cross-origin, and
    # company_auth_required checks the token itself for session writes
    csrf.exempt(auth_bp)
    csrf.exempt(dashboard_bp)
    csrf.exempt(widget_bp)

    # --- Local file serving (dev only) ---
    if app.debug:
        @app.route("/uploads/<path:filepath>")
        def serve_upload(filepath):
            """Serve uploaded files from instance/uploads in dev mode."""
            return send_from_directory(os.path.join(app.instance_path, "uploads"), filepath)

        @app.route("/generated/<path:filepath>")
        def serve_generated(filepath):
            return send_from_directory(os.path.join(app.instance_path, "generated"), filepath)

    register_error_handlers(app)

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        # Control referrer information
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Permissions Policy (restrict browser features)
        response.headers["Permissions-Policy"] = (
            "camera=(), microphone=(), geolocation=()"
        )
        # JSON-only API: nothing on our responses should load or frame anything
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; "
            "img-src 'self' data: https://*.supabase.co; "
            "base-uri 'none'; "
            "frame-ancestors 'none';"
        )
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_error_handlers(app):
    """Every error leaves as { success: false, error }."""

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify(success=False, error=str(e)), e.status_code

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        return jsonify(success=False, error=str(e)), e.status_code

    @app.errorhandler(ProviderError)
    def handle_provider_error(e):
        logger.error(f"Image provider error: {e} {e.details or ''}")
        payload = {"success": False, "error": str(e)}
        if e.details:
            payload["details"] = e.details
        return jsonify(payload), e.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        return jsonify(success=False, error="CSRF token missing or invalid."), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        messages = {
            401: "Authentication required.",
            403: "Access denied.",
            404: "Not found.",
            405: "Method not allowed.",
            413: "File too large. Maximum size is 10MB.",
            429: "Too many requests. Please try again later.",
        }
        return jsonify(success=False, error=messages.get(e.code, e.name)), e.code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(e):
        db.session.rollback()
        logger.exception(f"Database error: {e}")
        return jsonify(success=False, error="Internal server error."), 500


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-demo")
    @click.option("--password", default="demo1234", help="Demo company password")
    def seed_demo(password):
        """Create the demo company used by the widget demo page.

        Usage:
            flask seed-demo
            flask seed-demo --password s3cret
        """
        from renovision.repositories import CompanyRepository
        from renovision.services.company_service import seed_demo_company

        company, created = seed_demo_company(CompanyRepository(db.session), password=password)
        if not created:
            click.echo(f"Demo company already exists: {company.email}")
            return

        click.echo("")
        click.echo("=" * 60)
        click.echo("Demo company created!")
        click.echo("=" * 60)
        click.echo(f"  Company:   {company.name} (id: {company.id})")
        click.echo(f"  Login:     {company.email} / {password}")
        click.echo(f"  API key:   {company.api_key}")
        click.echo("=" * 60)

    @app.cli.command("send-follow-ups")
    @click.option("--dry-run", is_flag=True, help="Show what would be sent without actually sending.")
    def send_follow_ups(dry_run):
        """Send day 3/7/14 follow-up emails to leads still marked "new".

        Schedule daily at 10:00 (cron "0 10 * * *").

        Usage:
            flask send-follow-ups
            flask send-follow-ups --dry-run
        """
        from renovision.repositories import LeadRepository
        from renovision.services.follow_up_service import process_follow_ups

        summary = process_follow_ups(
            LeadRepository(db.session),
            dry_run=dry_run,
            lock_ttl_minutes=app.config["FOLLOW_UP_LOCK_TTL_MINUTES"],
        )
        if summary["locked"]:
            click.echo("Another follow-up run is in progress; nothing sent.")
            return

        prefix = "[DRY RUN] " if dry_run else ""
        sent = summary["sent"]
        click.echo(
            f"{prefix}Follow-ups sent: day 3={sent[1]}, day 7={sent[2]}, "
            f"day 14={sent[3]}, failed={summary['failed']}"
        )

    @app.cli.command("follow-up-worker")
    def follow_up_worker():
        """Long-running alternative to cron: run follow-ups daily at FOLLOW_UP_HOUR."""
        from renovision.repositories import LeadRepository
        from renovision.services.follow_up_service import process_follow_ups, run_daily

        def run_once():
            with app.app_context():
                summary = process_follow_ups(
                    LeadRepository(db.session),
                    lock_ttl_minutes=app.config["FOLLOW_UP_LOCK_TTL_MINUTES"],
                )
                logger.info(f"Follow-up run finished: {summary}")

        hour = app.config["FOLLOW_UP_HOUR"]
        click.echo(f"Follow-up worker started; runs daily at {hour:02d}:00")
        run_daily(run_once, hour)
