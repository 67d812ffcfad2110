"""Lead model.

One homeowner inquiry captured by the widget, owned by a Company.
Pipeline: new -> contacted -> quoted -> won | lost
"closed" is set by the final follow-up email when nobody ever responded.

The three follow_up_N_sent flags only ever go from False to True; the
follow-up scheduler is the only writer.
"""

import uuid

from renovision.extensions import db
from renovision.models.base import utcnow, isoformat


class Lead(db.Model):
    __tablename__ = "leads"

    # -- Valid statuses (open enum: any of these may be written at any time) --
    STATUSES = ["new", "contacted", "quoted", "won", "lost", "closed"]

    REFERENCE_PREFIX = "RV-"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    company_id = db.Column(
        db.String(36),
        db.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(50), nullable=False)
    postcode = db.Column(db.String(20), nullable=True)
    project_budget = db.Column(db.String(50), nullable=True)  # e.g. "£10k-£20k"
    start_date = db.Column(db.String(50), nullable=True)  # e.g. "within 3 months"
    notes = db.Column(db.Text, nullable=True)
    original_image = db.Column(db.Text, nullable=True)
    generated_image = db.Column(db.Text, nullable=True)
    prompt = db.Column(db.Text, nullable=True)
    reference_code = db.Column(db.String(20), nullable=False)
    status = db.Column(
        db.String(50), default="new", nullable=False, index=True
    )  # new | contacted | quoted | won | lost | closed
    project_value = db.Column(db.Numeric(10, 2), nullable=True)
    won_date = db.Column(db.DateTime(timezone=True), nullable=True)
    follow_up_1_sent = db.Column(db.Boolean, default=False, nullable=False)
    follow_up_2_sent = db.Column(db.Boolean, default=False, nullable=False)
    follow_up_3_sent = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=utcnow,
        server_default=db.func.now(),
        index=True,
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    # --- Relationships ---
    company = db.relationship("Company", back_populates="leads")

    @classmethod
    def reference_code_for(cls, lead_id):
        """Derive the customer-facing code from a lead id: RV- + 8 uppercase chars."""
        return cls.REFERENCE_PREFIX + lead_id.replace("-", "")[:8].upper()

    @staticmethod
    def follow_up_flag(stage):
        """Column name of the sent-flag for follow-up stage 1, 2 or 3."""
        if stage not in (1, 2, 3):
            raise ValueError(f"Unknown follow-up stage {stage}")
        return f"follow_up_{stage}_sent"

    def to_dict(self):
        return {
            "id": self.id,
            "companyId": self.company_id,
            "customerName": self.customer_name,
            "email": self.email,
            "phone": self.phone,
            "postcode": self.postcode,
            "projectBudget": self.project_budget,
            "startDate": self.start_date,
            "notes": self.notes,
            "originalImage": self.original_image,
            "generatedImage": self.generated_image,
            "prompt": self.prompt,
            "referenceCode": self.reference_code,
            "status": self.status,
            "projectValue": (
                float(self.project_value)
                if self.project_value is not None
                else None
            ),
            "wonDate": isoformat(self.won_date),
            "followUp1Sent": self.follow_up_1_sent,
            "followUp2Sent": self.follow_up_2_sent,
            "followUp3Sent": self.follow_up_3_sent,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Lead {self.reference_code} ({self.status})>"
