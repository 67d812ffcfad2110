"""Project model.

One row per successful renovation image generation. company_id is
optional: the public demo on the landing page generates without a tenant.
"""

import uuid

from renovision.extensions import db
from renovision.models.base import utcnow, isoformat


class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    company_id = db.Column(
        db.String(36), db.ForeignKey("companies.id"), nullable=True, index=True
    )
    original_image = db.Column(db.String(255), nullable=True)  # upload filename
    generated_image = db.Column(db.Text, nullable=True)  # provider or storage URL
    prompt = db.Column(db.Text, nullable=True)
    provider = db.Column(db.String(50), nullable=True)  # gemini | runway
    created_at = db.Column(
        db.DateTime(timezone=True), default=utcnow, server_default=db.func.now()
    )

    # --- Relationships ---
    company = db.relationship("Company", back_populates="projects")

    def to_dict(self):
        return {
            "id": self.id,
            "companyId": self.company_id,
            "originalImage": self.original_image,
            "generatedImage": self.generated_image,
            "prompt": self.prompt,
            "provider": self.provider,
            "createdAt": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Project {self.id} ({self.provider})>"
