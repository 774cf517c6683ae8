"""Rate resolution and rate category maintenance"""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional

from .models import Job, User, RateCategory, DataQualityWarning, MutationResult

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def find_user(user_id: Optional[str], users: Iterable[User]) -> Optional[User]:
    if user_id is None:
        return None
    for user in users:
        if user.id == user_id:
            return user
    return None


def find_category(category_id: Optional[str], categories: Iterable[RateCategory]) -> Optional[RateCategory]:
    if category_id is None:
        return None
    for category in categories:
        if category.id == category_id:
            return category
    return None


def effective_category_id(user: User, users: Iterable[User]) -> Optional[str]:
    """The user's own category, else the category of the lead they report to."""
    if user.rate_category_id is not None:
        return user.rate_category_id
    lead = find_user(user.managed_by, users)
    if lead is not None:
        return lead.rate_category_id
    return None


def category_rate(category_id: Optional[str], task_code: str,
                  categories: Iterable[RateCategory]) -> Optional[Decimal]:
    """Rate for a task code in a category, or None when either is missing."""
    category = find_category(category_id, categories)
    if category is None:
        return None
    return category.rate_for(task_code)


def _warn(warnings: Optional[List[DataQualityWarning]], code: str, message: str, subject_id: str):
    logger.warning(message)
    if warnings is not None:
        warnings.append(DataQualityWarning(code=code, message=message, subject_id=subject_id))


def resolve_rate(job: Job, user: User, users: Iterable[User], categories: Iterable[RateCategory],
                 warnings: Optional[List[DataQualityWarning]] = None) -> Decimal:
    """
    Determine the single effective pay rate for one unit of a job.

    Precedence, highest first:
    1. The job's own rate override
    2. The user's persistent payout override for the task code
    3. The task code's rate in the user's rate category
    4. With no category of their own, the rate in their team lead's category
    5. Zero, recorded as a data-quality warning

    Args:
        job: The job being paid
        user: The user who performed it
        users: All users (needed to find the team lead)
        categories: All rate categories
        warnings: Optional list that receives DataQualityWarning entries

    Returns:
        The rate as a Decimal (never negative)
    """
    if job.rate_override is not None:
        return job.rate_override

    override = user.payout_override_for(job.task_code)
    if override is not None:
        return override

    users = list(users)
    category_id = effective_category_id(user, users)
    category = find_category(category_id, categories)
    if category is None:
        if category_id is None:
            message = f"{user.name} ({user.id}) has no rate category; job {job.id} paid at 0"
        else:
            message = f"Rate category {category_id} for {user.name} ({user.id}) not found; job {job.id} paid at 0"
        _warn(warnings, 'missing_rate_category', message, user.id)
        return ZERO

    rate = category.rate_for(job.task_code)
    if rate is None:
        message = (f"Task code '{job.task_code}' has no rate in category '{category.name}'; "
                   f"job {job.id} for {user.name} paid at 0")
        _warn(warnings, 'missing_task_rate', message, user.id)
        return ZERO
    return rate


def delete_rate_category(categories: List[RateCategory], users: Iterable[User],
                         category_id: str) -> MutationResult:
    """Remove a category unless some user still references it."""
    assigned = [u.name for u in users if u.rate_category_id == category_id]
    if assigned:
        return MutationResult(
            ok=False,
            collection=categories,
            message=f"Category is still assigned to: {', '.join(sorted(assigned))}",
            skipped_ids=(category_id,),
        )
    remaining = [c for c in categories if c.id != category_id]
    if len(remaining) == len(categories):
        return MutationResult(ok=False, collection=categories,
                              message=f"Rate category {category_id} not found",
                              skipped_ids=(category_id,))
    return MutationResult(ok=True, collection=remaining, applied_ids=(category_id,))
