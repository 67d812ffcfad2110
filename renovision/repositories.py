"""Data access for companies and leads.

Services never reach for a global session: the caller builds a repository
around a SQLAlchemy session (normally ``db.session``) and passes it in.

Repositories add and flush but do NOT commit; the service that owns the
unit of work commits.
"""

from datetime import timedelta

from renovision.models.base import utcnow
from renovision.models.company import Company
from renovision.models.lead import Lead


# Minimum lead age in days per follow-up stage.
FOLLOW_UP_DELAYS = {
    1: 3,
    2: 7,
    3: 14,
}


class CompanyRepository:
    def __init__(self, session):
        self.session = session

    def get(self, company_id):
        if not company_id:
            return None
        return self.session.get(Company, company_id)

    def get_by_email(self, email):
        return (
            self.session.query(Company)
            .filter(Company.email == email.lower().strip())
            .first()
        )

    def get_by_api_key(self, api_key):
        if not api_key:
            return None
        return self.session.query(Company).filter_by(api_key=api_key).first()

    def add(self, company):
        self.session.add(company)
        self.session.flush()
        return company


class LeadRepository:
    def __init__(self, session):
        self.session = session

    def get(self, lead_id):
        if not lead_id:
            return None
        return self.session.get(Lead, lead_id)

    def add(self, lead):
        self.session.add(lead)
        self.session.flush()
        return lead

    def list_for_company(self, company_id, status=None, created_from=None,
                         created_before=None):
        """Return a company's leads, newest first.

        Args:
            company_id: Owning company.
            status: Optional status filter.
            created_from: Optional inclusive lower bound on created_at.
            created_before: Optional exclusive upper bound on created_at.
        """
        query = self.session.query(Lead).filter(Lead.company_id == company_id)
        if status:
            query = query.filter(Lead.status == status)
        if created_from is not None:
            query = query.filter(Lead.created_at >= created_from)
        if created_before is not None:
            query = query.filter(Lead.created_at < created_before)
        return query.order_by(Lead.created_at.desc(), Lead.id).all()

    def due_for_follow_up(self, stage, now=None):
        """Leads eligible for follow-up `stage` as of `now`.

        Eligible means: still "new", old enough for the stage, this stage's
        flag not yet set and (for stages 2 and 3) the previous stage's flag
        set. Youngest first.
        """
        now = now or utcnow()
        cutoff = now - timedelta(days=FOLLOW_UP_DELAYS[stage])
        flag = getattr(Lead, Lead.follow_up_flag(stage))

        query = (
            self.session.query(Lead)
            .filter(Lead.status == "new")
            .filter(Lead.created_at <= cutoff)
            .filter(flag.is_(False))
        )
        if stage > 1:
            previous = getattr(Lead, Lead.follow_up_flag(stage - 1))
            query = query.filter(previous.is_(True))

        return query.order_by(Lead.created_at.desc()).all()

    def mark_follow_up_sent(self, lead, stage, now=None):
        """Set the stage flag, only if it is still unset.

        Stage 3 also closes the lead, but only if nobody moved it out of
        "new" in the meantime.

        Returns:
            bool: True if this call flipped the flag, False if another
            writer got there first.
        """
        now = now or utcnow()
        flag_name = Lead.follow_up_flag(stage)
        flag = getattr(Lead, flag_name)

        updated = (
            self.session.query(Lead)
            .filter(Lead.id == lead.id, flag.is_(False))
            .update({flag_name: True, "updated_at": now}, synchronize_session=False)
        )

        if updated and stage == 3:
            (
                self.session.query(Lead)
                .filter(Lead.id == lead.id, Lead.status == "new")
                .update({"status": "closed", "updated_at": now}, synchronize_session=False)
            )

        self.session.expire(lead)
        return bool(updated)
