"""Notification service — the emails a lead triggers.

At capture time (best effort, background delivery):
  - customer confirmation: reference code + link to the generated image
  - company alert: the homeowner's contact details, reply-to the homeowner

From the follow-up scheduler (synchronous, raises on failure):
  - follow-up 1 (day 3):  "still interested?"
  - follow-up 2 (day 7):  "last chance"
  - follow-up 3 (day 14): "closing out"
"""

import logging

from flask import current_app

from renovision.services.email_service import send_email, send_email_sync

logger = logging.getLogger(__name__)

FOLLOW_UP_TEMPLATES = {
    1: "emails/follow_up_1.html",
    2: "emails/follow_up_2.html",
    3: "emails/follow_up_3.html",
}

FOLLOW_UP_SUBJECTS = {
    1: "Still interested in your {project} renovation?",
    2: "Last chance — your visualisation is expiring soon",
    3: "We'll miss you — one final message from {company_name}",
}


def _lead_context(lead, company):
    """Template variables shared by every lead email."""
    return {
        "customer_name": lead.customer_name,
        "customer_email": lead.email,
        "customer_phone": lead.phone,
        "postcode": lead.postcode,
        "project_budget": lead.project_budget,
        "start_date": lead.start_date,
        "notes": lead.notes,
        "prompt": lead.prompt,
        "reference_code": lead.reference_code,
        "generated_image": lead.generated_image,
        "original_image": lead.original_image,
        "company_name": company.name,
        "company_phone": company.phone,
        "company_website": company.website,
        "dashboard_url": f"{current_app.config['APP_BASE_URL']}/dashboard",
    }


def send_customer_confirmation(lead, company):
    """Confirmation to the homeowner, reply-to the company."""
    send_email(
        to=lead.email,
        subject=f"Your renovation visualisation from {company.name} — {lead.reference_code}",
        template="emails/customer_confirmation.html",
        context=_lead_context(lead, company),
        reply_to=company.email,
    )


def send_company_alert(lead, company):
    """New-lead alert to the company, reply-to the homeowner."""
    send_email(
        to=company.email,
        subject=f"New lead: {lead.customer_name} ({lead.reference_code})",
        template="emails/company_alert.html",
        context=_lead_context(lead, company),
        reply_to=lead.email,
    )


def notify_lead_captured(lead, company):
    """Send both capture-time emails. Never raises: capture must succeed regardless."""
    for sender in (send_customer_confirmation, send_company_alert):
        try:
            sender(lead, company)
        except Exception as e:
            logger.error(
                f"{sender.__name__} failed for lead {lead.reference_code}: {e}"
            )


def send_follow_up(lead, company, stage):
    """Send follow-up email `stage` (1, 2 or 3) and block until delivered.

    Raises:
        EmailDeliveryError: If the email could not be sent.
    """
    # First word of the chosen style, e.g. "modern", else the trade
    prompt_words = (lead.prompt or "").split()
    subject = FOLLOW_UP_SUBJECTS[stage].format(
        project=prompt_words[0] if prompt_words else (company.trade or "home"),
        company_name=company.name,
    )
    send_email_sync(
        to=lead.email,
        subject=subject,
        template=FOLLOW_UP_TEMPLATES[stage],
        context=_lead_context(lead, company),
        reply_to=company.email,
    )
