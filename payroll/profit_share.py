"""Team-lead profit share on team members' job margins"""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional

from .adjustments import in_window
from .models import Adjustment, Job, User, RateCategory, DataQualityWarning, DateLike, parse_date
from .money import to_cents, from_cents, multiply_cents
from .rates import resolve_rate, find_category

logger = logging.getLogger(__name__)


def team_members(lead: User, users: Iterable[User]) -> List[User]:
    return [u for u in users if u.managed_by == lead.id and u.id != lead.id]


def apply_profit_share(lead: User, jobs: Iterable[Job], users: Iterable[User],
                       categories: Iterable[RateCategory],
                       window_start: DateLike, window_end: DateLike,
                       warnings: Optional[List[DataQualityWarning]] = None) -> List[Adjustment]:
    """
    Build the lead's profit-share adjustments for a window.

    For every team job in the window the margin per unit is the lead's
    category rate minus what the member is actually paid, taken in cents.
    The lead earns margin x quantity x profit share %, rounded to the cent,
    as one adjustment per job dated on the job's date. Zero amounts are
    not emitted.
    """
    if not lead.is_team_lead:
        return []

    users = list(users)
    categories = list(categories)
    if lead.rate_category_id is None:
        logger.info("Team lead %s has no rate category; no profit share", lead.id)
        return []
    lead_category = find_category(lead.rate_category_id, categories)
    if lead_category is None:
        message = f"Rate category {lead.rate_category_id} for team lead {lead.name} not found"
        logger.warning(message)
        if warnings is not None:
            warnings.append(DataQualityWarning('missing_rate_category', message, lead.id))
        return []

    start = parse_date(window_start)
    end = parse_date(window_end)
    members = {member.id: member for member in team_members(lead, users)}
    share = lead.profit_share_percent / Decimal(100)

    result = []
    for job in sorted(jobs, key=lambda j: (j.job_date, j.id)):
        member = members.get(job.technician_id)
        if member is None or not in_window(job.job_date, start, end):
            continue

        company_rate = lead_category.rate_for(job.task_code)
        if company_rate is None:
            message = (f"Task code '{job.task_code}' missing from {lead.name}'s category "
                       f"'{lead_category.name}'; no profit share on job {job.id}")
            logger.warning(message)
            if warnings is not None:
                warnings.append(DataQualityWarning('missing_company_rate', message, lead.id))
            continue

        # Member-side warnings are reported when the member's own row is built
        payout_rate = resolve_rate(job, member, users, categories)
        margin_cents = to_cents(company_rate) - to_cents(payout_rate)
        amount_cents = multiply_cents(margin_cents, job.quantity * share)
        if amount_cents == 0:
            continue

        result.append(Adjustment(
            id=f"profit-share:{lead.id}:{job.id}",
            technician_id=lead.id,
            adjustment_date=job.job_date,
            amount=from_cents(amount_cents),
            kind='profit-share',
            description=f"Profit share: {member.name} - {job.task_code} x{job.quantity}",
        ))
    return result
