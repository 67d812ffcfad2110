"""Audit event model.

Logs significant actions per company (registration, lead capture, status
changes, follow-up emails) for the activity feed and debugging.
"""

import uuid

from renovision.extensions import db
from renovision.models.base import utcnow


class AuditEvent(db.Model):
    __tablename__ = "audit_events"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    company_id = db.Column(
        db.String(36),
        db.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=True,
    )
    action = db.Column(db.String(255), nullable=False)  # e.g. "lead.captured"
    metadata_ = db.Column(
        "metadata", db.JSON, default=dict
    )  # extra context, named metadata_ to avoid the declarative attribute clash
    created_at = db.Column(
        db.DateTime(timezone=True), default=utcnow, server_default=db.func.now()
    )

    def __repr__(self):
        return f"<AuditEvent {self.action}>"
