"""
Email service for Renovation Vision.

Sends transactional HTML emails over SMTP. Every email the app sends goes
through here: new-lead alerts, customer confirmations and the scheduled
follow-ups.

Usage:
    from renovision.services.email_service import send_email

    send_email(
        to="jane@example.com",
        subject="Your renovation visualisation",
        template="emails/customer_confirmation.html",
        context={"customer_name": "Jane"},
    )
"""

import logging
import smtplib
import threading
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app, render_template

from renovision.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)


def _deliver(app, msg):
    """Hand a message to the SMTP relay. Raises EmailDeliveryError on failure."""
    host = app.config.get("MAIL_SMTP_HOST", "smtp.gmail.com")
    port = app.config.get("MAIL_SMTP_PORT", 587)
    timeout = app.config.get("MAIL_TIMEOUT", 30)
    username = app.config.get("MAIL_USERNAME")
    password = app.config.get("MAIL_PASSWORD")

    if not username or not password:
        raise EmailDeliveryError("MAIL_USERNAME or MAIL_PASSWORD not configured.")

    try:
        with smtplib.SMTP(host, port, timeout=timeout) as server:
            server.ehlo()
            server.starttls()
            server.ehlo()
            server.login(username, password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        raise EmailDeliveryError(f"SMTP delivery to {msg['To']} failed: {e}") from e

    logger.info(f"Email sent to {msg['To']} — {msg['Subject']}")


def _send_in_background(app, msg):
    """Thread target for send_email: deliver, log failures, never raise."""
    with app.app_context():
        try:
            _deliver(app, msg)
        except EmailDeliveryError as e:
            logger.error(f"Email not sent to {msg['To']}: {e}")


def _build_message(app, to, subject, template, context, reply_to):
    from_name = app.config.get("MAIL_FROM_NAME", "Renovation Vision")
    from_email = app.config.get("MAIL_FROM_ADDRESS") or app.config.get("MAIL_USERNAME", "")

    html_body = render_template(template, **(context or {}))

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{from_name} <{from_email}>"
    msg["To"] = to if isinstance(to, str) else ", ".join(to)

    if reply_to:
        msg["Reply-To"] = reply_to

    msg.attach(MIMEText(html_body, "html"))
    return msg


def send_email(to, subject, template, context=None, reply_to=None):
    """
    Send a templated HTML email without blocking the request.

    Delivery happens on a daemon thread; failures are logged there and
    never reach the caller.

    Args:
        to:        Recipient email address (str or list).
        subject:   Email subject line.
        template:  Path to Jinja2 HTML template (relative to templates/).
        context:   Dict of variables to pass to the template.
        reply_to:  Optional reply-to address.
    """
    app = current_app._get_current_object()
    msg = _build_message(app, to, subject, template, context, reply_to)

    thread = threading.Thread(target=_send_in_background, args=(app, msg))
    thread.daemon = True
    thread.start()


def send_email_sync(to, subject, template, context=None, reply_to=None):
    """
    Same as send_email but blocks until the relay accepts the message.

    Raises:
        EmailDeliveryError: If SMTP is not configured or delivery failed.
    """
    app = current_app._get_current_object()
    msg = _build_message(app, to, subject, template, context, reply_to)
    _deliver(app, msg)
