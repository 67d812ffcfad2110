"""Invoice model.

Monthly commission invoice per company. Table only: nothing in the app
issues or collects invoices yet.
"""

import uuid

from renovision.extensions import db


class Invoice(db.Model):
    __tablename__ = "invoices"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    company_id = db.Column(
        db.String(36),
        db.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    invoice_number = db.Column(db.String(50), unique=True, nullable=False)
    month = db.Column(db.String(7), nullable=False)  # YYYY-MM
    total_leads = db.Column(db.Integer, default=0)
    won_leads = db.Column(db.Integer, default=0)
    total_revenue = db.Column(db.Numeric(10, 2), default=0)
    commission_amount = db.Column(db.Numeric(10, 2), default=0)
    status = db.Column(db.String(50), default="draft")  # draft | sent | paid
    due_date = db.Column(db.Date, nullable=True)
    paid_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    def __repr__(self):
        return f"<Invoice {self.invoice_number} ({self.status})>"
