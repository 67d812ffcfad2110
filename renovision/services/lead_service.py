"""Lead service — capture from the widget, listing and dashboard updates.

Free text coming from the public widget is sanitized with bleach.clean()
to strip HTML tags before it is stored or emailed.

capture_lead commits (it has to, before sending the capture emails);
update_lead commits. Both write an AuditEvent.
"""

import logging
import re
import uuid
from decimal import Decimal, InvalidOperation

import bleach

from renovision.exceptions import NotFoundError, ValidationError
from renovision.models.audit import AuditEvent
from renovision.models.base import utcnow
from renovision.models.lead import Lead
from renovision.services import notification_service

logger = logging.getLogger(__name__)

# Simple email regex: not exhaustive, just a sanity check
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

REQUIRED_FIELDS = {
    "companyId": "Company ID",
    "customerName": "Name",
    "email": "Email",
    "phone": "Phone",
}

# request key -> (Lead attribute, max length)
OPTIONAL_FIELDS = {
    "postcode": ("postcode", 20),
    "projectBudget": ("project_budget", 50),
    "startDate": ("start_date", 50),
    "notes": ("notes", 5000),
    "originalImage": ("original_image", 2000),
    "generatedImage": ("generated_image", 2000),
    "prompt": ("prompt", 2000),
}

_UNSET = object()


def _sanitize(text):
    """Strip all HTML tags from user input."""
    if text is None:
        return None
    return bleach.clean(str(text), tags=[], strip=True).strip()


def _parse_project_value(value):
    """Coerce a projectValue from JSON into a Decimal, None, or raise."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("Project value must be a number.")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("Project value must be a number.")
    if not amount.is_finite() or amount < 0:
        raise ValidationError("Project value must be zero or more.")
    return amount.quantize(Decimal("0.01"))


def capture_lead(company_repo, lead_repo, data):
    """Create a lead from a widget submission and fire the capture emails.

    Args:
        company_repo: CompanyRepository.
        lead_repo: LeadRepository.
        data: Request JSON (camelCase keys). companyId, customerName,
            email and phone are required.

    Returns:
        The created Lead.

    Raises:
        ValidationError: If a required field is missing or malformed.
        NotFoundError: If companyId doesn't match a company.
    """
    data = data or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid request.")

    values = {key: _sanitize(data.get(key)) or "" for key in REQUIRED_FIELDS}
    missing = [label for key, label in REQUIRED_FIELDS.items() if not values[key]]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}.")

    email = values["email"].lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("A valid email is required.")
    if len(values["customerName"]) > 255:
        raise ValidationError("Name is too long.")
    if len(values["phone"]) > 50:
        raise ValidationError("Phone number is too long.")

    company = company_repo.get(values["companyId"])
    if company is None:
        raise NotFoundError("Company not found.")

    lead_id = str(uuid.uuid4())
    lead = Lead(
        id=lead_id,
        company_id=company.id,
        customer_name=values["customerName"],
        email=email,
        phone=values["phone"],
        reference_code=Lead.reference_code_for(lead_id),
        status="new",
        follow_up_1_sent=False,
        follow_up_2_sent=False,
        follow_up_3_sent=False,
    )
    for key, (attr, max_len) in OPTIONAL_FIELDS.items():
        value = _sanitize(data.get(key))
        if value:
            setattr(lead, attr, value[:max_len])

    lead_repo.add(lead)

    audit = AuditEvent(
        company_id=company.id,
        action="lead.captured",
        metadata_={
            "lead_id": lead.id,
            "reference_code": lead.reference_code,
        },
    )
    lead_repo.session.add(audit)
    lead_repo.session.commit()

    logger.info(f"Lead {lead.reference_code} captured for company {company.id}")

    notification_service.notify_lead_captured(lead, company)

    return lead


def list_leads(lead_repo, company_id, status=None):
    """Return the company's leads newest first, optionally filtered by status.

    Raises:
        ValidationError: If status is not a known lead status.
    """
    if status and status not in Lead.STATUSES:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {', '.join(Lead.STATUSES)}"
        )
    return lead_repo.list_for_company(company_id, status=status or None)


def update_lead(lead_repo, lead_id, company_id, status=None, project_value=_UNSET):
    """Apply a partial update from the dashboard.

    Only the fields passed are touched. Becoming "won" stamps won_date.

    Args:
        lead_repo: LeadRepository.
        lead_id: Lead UUID string.
        company_id: The authenticated company; must own the lead.
        status: New status, or None to leave unchanged.
        project_value: New value (number, numeric string or None to
            clear). Omit to leave unchanged.

    Returns:
        The updated Lead.

    Raises:
        NotFoundError: If the lead doesn't exist or belongs to another company.
        ValidationError: If status or project_value is invalid.
    """
    lead = lead_repo.get(lead_id)
    if lead is None or lead.company_id != company_id:
        raise NotFoundError("Lead not found.")

    if status is not None and status not in Lead.STATUSES:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {', '.join(Lead.STATUSES)}"
        )

    now = utcnow()

    if project_value is not _UNSET:
        lead.project_value = _parse_project_value(project_value)

    if status is not None and status != lead.status:
        old_status = lead.status
        lead.status = status
        if status == "won":
            lead.won_date = now

        audit = AuditEvent(
            company_id=company_id,
            action="lead.status_changed",
            metadata_={
                "lead_id": lead.id,
                "old_status": old_status,
                "new_status": status,
            },
        )
        lead_repo.session.add(audit)
    elif status == "won" and lead.won_date is None:
        lead.won_date = now

    lead.updated_at = now
    lead_repo.session.commit()

    return lead
