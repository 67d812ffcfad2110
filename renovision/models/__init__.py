# Models package: import all models here so Alembic can discover them.

from renovision.models.company import Company  # noqa: F401
from renovision.models.lead import Lead  # noqa: F401
from renovision.models.project import Project  # noqa: F401
from renovision.models.invoice import Invoice  # noqa: F401
from renovision.models.audit import AuditEvent  # noqa: F401
from renovision.models.job_lock import JobLock  # noqa: F401
