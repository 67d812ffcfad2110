"""Job lock model.

A row per running batch job, keyed by job name. Inserting the row is the
acquire step: the primary key makes a second concurrent insert fail, so
two overlapping follow-up runs can never both proceed.
"""

from renovision.extensions import db
from renovision.models.base import utcnow


class JobLock(db.Model):
    __tablename__ = "job_locks"

    name = db.Column(db.String(100), primary_key=True)  # e.g. "follow-ups"
    holder = db.Column(db.String(255), nullable=True)  # hostname:pid
    acquired_at = db.Column(
        db.DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self):
        return f"<JobLock {self.name} held by {self.holder}>"
