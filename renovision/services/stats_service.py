"""Stats service — dashboard metrics derived from a company's leads.

Nothing is stored: every call recomputes from the current lead set.
"""

import re
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from renovision.exceptions import ValidationError
from renovision.models.lead import Lead

MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")

_CENTS = Decimal("0.01")


def month_bounds(month):
    """Return (start, end) UTC datetimes for a 'YYYY-MM' string, end exclusive.

    Raises:
        ValidationError: If month is malformed.
    """
    match = MONTH_RE.match(month or "")
    if not match:
        raise ValidationError("Month must be in YYYY-MM format.")
    year, mon = int(match.group(1)), int(match.group(2))
    if not 1 <= mon <= 12:
        raise ValidationError("Month must be in YYYY-MM format.")

    start = datetime(year, mon, 1, tzinfo=timezone.utc)
    if mon == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, mon + 1, 1, tzinfo=timezone.utc)
    return start, end


def _money(value):
    return float(Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def compute_stats(lead_repo, company, month=None):
    """Compute dashboard stats for a company.

    Args:
        lead_repo: LeadRepository.
        company: Company row (for the commission rate).
        month: Optional 'YYYY-MM'; restricts to leads created that month.

    Returns:
        dict: totalLeads, statusCounts, wonLeads, totalRevenue,
        commissionRate, commissionAmount, conversionRate (percent, one
        decimal), averageProjectValue, month.
    """
    created_from = created_before = None
    if month:
        created_from, created_before = month_bounds(month)

    leads = lead_repo.list_for_company(
        company.id, created_from=created_from, created_before=created_before
    )

    status_counts = {status: 0 for status in Lead.STATUSES}
    for lead in leads:
        status_counts[lead.status] = status_counts.get(lead.status, 0) + 1

    total = len(leads)
    won = [lead for lead in leads if lead.status == "won"]
    won_count = len(won)

    revenue = sum(
        (Decimal(str(lead.project_value)) for lead in won if lead.project_value is not None),
        Decimal("0"),
    )

    if company.commission_rate is not None:
        rate = Decimal(str(company.commission_rate))
    else:
        rate = Decimal(str(current_app.config.get("DEFAULT_COMMISSION_RATE", 0.02)))

    conversion_rate = round(won_count / total * 100, 1) if total > 0 else 0
    average_value = revenue / won_count if won_count > 0 else Decimal("0")

    return {
        "totalLeads": total,
        "statusCounts": status_counts,
        "newLeads": status_counts["new"],
        "wonLeads": won_count,
        "lostLeads": status_counts["lost"],
        "totalRevenue": _money(revenue),
        "commissionRate": float(rate),
        "commissionAmount": _money(revenue * rate),
        "conversionRate": conversion_rate,
        "averageProjectValue": _money(average_value),
        "month": month,
    }
