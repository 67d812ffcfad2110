"""Company service — self-service registration, login checks, embed snippet.

Passwords are stored as salted one-way hashes (werkzeug's scrypt/pbkdf2)
and checked with check_password_hash, which compares in constant time.
"""

import logging
import re
from datetime import timedelta
from html import escape

import bleach
from flask import current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from renovision.exceptions import ValidationError
from renovision.models.audit import AuditEvent
from renovision.models.base import utcnow
from renovision.models.company import Company

logger = logging.getLogger(__name__)

# Simple email regex: not exhaustive, just a sanity check
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

DEMO_COMPANY_ID = "demo_company"

MIN_PASSWORD_LENGTH = 8


def _sanitize(text):
    """Strip all HTML tags from user input."""
    if text is None:
        return None
    return bleach.clean(str(text), tags=[], strip=True).strip()


def register_company(company_repo, data):
    """Create a company on a trial plan.

    Args:
        company_repo: CompanyRepository.
        data: Request JSON: name, email, password required; phone,
            website, trade optional.

    Returns:
        The created Company (committed).

    Raises:
        ValidationError: With every problem found, joined into one message.
    """
    data = data or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid request.")
    name = _sanitize(data.get("name")) or ""
    email = (data.get("email") or "").lower().strip()
    password = data.get("password") or ""

    errors = []
    if not name:
        errors.append("Company name is required.")
    if not email or not EMAIL_RE.match(email):
        errors.append("A valid email is required.")
    if not password:
        errors.append("Password is required.")
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if email and company_repo.get_by_email(email):
        errors.append("An account with this email already exists.")

    if errors:
        raise ValidationError(" ".join(errors))

    trial_days = current_app.config.get("TRIAL_DAYS", 14)
    company = Company(
        api_key=Company.generate_api_key(),
        name=name,
        email=email,
        password_hash=generate_password_hash(password),
        phone=_sanitize(data.get("phone")) or None,
        website=_sanitize(data.get("website")) or None,
        trade=(_sanitize(data.get("trade")) or "general").lower(),
        commission_rate=current_app.config.get("DEFAULT_COMMISSION_RATE", 0.02),
        status="trial",
        trial_ends_at=utcnow() + timedelta(days=trial_days),
    )
    try:
        company_repo.add(company)
        company_repo.session.add(AuditEvent(
            company_id=company.id,
            action="company.registered",
            metadata_={"email": email, "trade": company.trade},
        ))
        company_repo.session.commit()
    except IntegrityError:
        # Lost a race with another registration for the same email
        company_repo.session.rollback()
        raise ValidationError("An account with this email already exists.")

    logger.info(f"Company registered: {company.name} <{email}>")
    return company


def authenticate(company_repo, email, password):
    """Return the Company for valid credentials, else None."""
    if not email or not password:
        return None
    company = company_repo.get_by_email(email)
    if company is None or not check_password_hash(company.password_hash, password):
        return None
    return company


def build_embed_code(company):
    """HTML snippet a company pastes into its website."""
    script_url = current_app.config.get("WIDGET_SCRIPT_URL") or (
        f"{current_app.config['APP_BASE_URL'].rstrip('/')}/widget/embed.js"
    )
    company_id = escape(company.id, quote=True)
    return (
        "<!-- Renovation Vision widget -->\n"
        '<div id="renovation-vision-widget"></div>\n'
        f'<script>window.RENOVATION_VISION_COMPANY_ID = "{company_id}";</script>\n'
        f'<script src="{escape(script_url, quote=True)}" async></script>'
    )


def seed_demo_company(company_repo, password="demo1234"):
    """Create the demo tenant (id 'demo_company') if it doesn't exist.

    Returns:
        tuple: (Company, created: bool)
    """
    existing = company_repo.get(DEMO_COMPANY_ID)
    if existing:
        return existing, False

    company = Company(
        id=DEMO_COMPANY_ID,
        api_key="rva_demo_key",
        name="Demo Bathrooms Ltd",
        email="demo@example.com",
        password_hash=generate_password_hash(password),
        phone="07700 900123",
        website="www.demobathrooms.com",
        trade="bathroom",
        commission_rate=current_app.config.get("DEFAULT_COMMISSION_RATE", 0.02),
        status="trial",
        trial_ends_at=utcnow() + timedelta(days=365),
    )
    company_repo.add(company)
    company_repo.session.commit()
    return company, True
