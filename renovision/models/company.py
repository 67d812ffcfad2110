"""Company model.

A tenant: a contractor business that embeds the widget on its website.
Flask-Login integration via UserMixin (the company is the session principal).
"""

import secrets
import uuid

from flask_login import UserMixin

from renovision.extensions import db
from renovision.models.base import utcnow, isoformat


class Company(UserMixin, db.Model):
    __tablename__ = "companies"

    # -- Valid statuses --
    STATUSES = ["trial", "active", "paused"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    api_key = db.Column(db.String(100), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(50), nullable=True)
    website = db.Column(db.String(255), nullable=True)
    trade = db.Column(
        db.String(100), nullable=True
    )  # bathroom | kitchen | roofing | joinery | general
    commission_rate = db.Column(
        db.Numeric(5, 4), default=0.02, nullable=True
    )  # fraction of won revenue, 0..1
    status = db.Column(
        db.String(50), default="trial", nullable=False
    )  # trial | active | paused
    trial_ends_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), default=utcnow, server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    __table_args__ = (
        db.CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 1",
            name="ck_companies_commission_rate",
        ),
    )

    # --- Relationships ---
    leads = db.relationship(
        "Lead",
        back_populates="company",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )
    projects = db.relationship("Project", back_populates="company", lazy="dynamic")

    @staticmethod
    def generate_api_key():
        """Generate a widget API key: 'rva_' + 32 hex chars."""
        return f"rva_{secrets.token_hex(16)}"

    def to_dict(self):
        """Owner-facing profile. Never includes the password hash."""
        return {
            "id": self.id,
            "apiKey": self.api_key,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "website": self.website,
            "trade": self.trade,
            "commissionRate": (
                float(self.commission_rate)
                if self.commission_rate is not None
                else None
            ),
            "status": self.status,
            "trialEndsAt": isoformat(self.trial_ends_at),
            "createdAt": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Company {self.name} ({self.status})>"
