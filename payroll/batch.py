"""Duplicate-safe inserts and bulk mutations of the live job set"""
import logging
import uuid
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Callable, Iterable, List, Optional, Tuple

from .models import (
    Job, User, RateCategory, DataQualityWarning, MutationResult,
    DateLike, job_key, parse_date,
)
from .money import to_decimal
from .rates import find_user, find_category, effective_category_id
from config import AERIAL_DROP_TASK_CODE

logger = logging.getLogger(__name__)

DUPLICATE_OF_EXISTING = "duplicate of existing"
DUPLICATE_WITHIN_FILE = "duplicate within file"


class _Marker:
    __slots__ = ('name',)

    def __init__(self, name: str):
        self.name = name

    def __repr__(self):
        return self.name


# UNSET leaves a field alone, CLEAR removes an optional field
UNSET = _Marker('UNSET')
CLEAR = _Marker('CLEAR')


@dataclass(frozen=True)
class JobUpdate:
    """Sparse partial update; clearing must be asked for with CLEAR

    Setting aerial_drop goes through the surcharge rules of
    toggle_surcharge, so it cannot be combined with a rate override.
    """
    job_date: Any = UNSET
    rate_override: Any = UNSET
    aerial_drop: Any = UNSET

    def is_empty(self) -> bool:
        return all(v is UNSET for v in (self.job_date, self.rate_override, self.aerial_drop))

    def problem(self) -> Optional[str]:
        """Why this update cannot be applied to any job, or None."""
        if self.job_date is not UNSET:
            if self.job_date is CLEAR or self.job_date is None:
                return "A job date cannot be cleared"
            try:
                parse_date(self.job_date)
            except (TypeError, ValueError):
                return f"Invalid job date: {self.job_date!r}"
        if self.rate_override is not UNSET and self.rate_override is not CLEAR:
            if self.rate_override is None:
                return "Use CLEAR to remove a rate override"
            try:
                rate = to_decimal(self.rate_override)
            except (TypeError, ValueError):
                return f"Invalid rate override: {self.rate_override!r}"
            if rate < 0:
                return "Rate override cannot be negative"
        if self.aerial_drop is None:
            return "Use CLEAR to remove the aerial drop flag"
        if self.aerial_drop is not UNSET and self.rate_override is not UNSET:
            return "Set either the rate override or the aerial drop flag, not both"
        return None

    def apply(self, job: Job) -> Job:
        """Apply the date and rate override; the flag is handled by bulk_edit_jobs."""
        problem = self.problem()
        if problem is not None:
            raise ValueError(problem)
        changes = {}
        if self.job_date is not UNSET:
            changes['job_date'] = parse_date(self.job_date)
        if self.rate_override is not UNSET:
            changes['rate_override'] = None if self.rate_override is CLEAR else to_decimal(self.rate_override)
        return replace(job, **changes)

    @property
    def surcharge_enabled(self) -> Optional[bool]:
        if self.aerial_drop is UNSET:
            return None
        return self.aerial_drop is not CLEAR and bool(self.aerial_drop)


@dataclass
class UploadRow:
    """One already-parsed upload row"""
    technician_id: str
    task_code: str
    work_order: str
    quantity: Any
    job_date: DateLike
    revenue: Any = None  # total for the row
    revenue_per_unit: Any = None
    technician_name: str = ""
    row_number: Optional[int] = None

    def total_revenue(self) -> Decimal:
        if self.revenue is not None:
            return to_decimal(self.revenue)
        if self.revenue_per_unit is not None:
            return to_decimal(self.revenue_per_unit) * to_decimal(self.quantity)
        raise ValueError("No revenue or revenue per unit")

    @property
    def label(self) -> str:
        return f"row {self.row_number}" if self.row_number is not None else f"work order {self.work_order}"


@dataclass(frozen=True)
class SkippedRow:
    row: UploadRow
    reason: str
    key: Tuple[str, str, str]


@dataclass(frozen=True)
class IngestResult:
    jobs: List[Job]  # existing jobs followed by the new ones
    added: Tuple[Job, ...]
    skipped: Tuple[SkippedRow, ...]
    warnings: Tuple[DataQualityWarning, ...]
    unknown_technician_ids: Tuple[str, ...] = ()

    @property
    def added_count(self) -> int:
        return len(self.added)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


def _new_job_id() -> str:
    return str(uuid.uuid4())


def ingest_jobs(rows: Iterable[UploadRow], existing_jobs: List[Job],
                users: Optional[Iterable[User]] = None,
                id_factory: Callable[[], str] = _new_job_id) -> IngestResult:
    """
    Add parsed rows to the live job set, skipping duplicates.

    A row is a duplicate when its (work order, task code, technician) key,
    compared case- and whitespace-insensitively, matches an existing job or
    an earlier row of the same batch. Duplicates go to the skip log with a
    reason; unusable rows become warnings. Neither aborts the batch.
    """
    existing_keys = {job.key for job in existing_jobs}
    seen = set()
    added: List[Job] = []
    skipped: List[SkippedRow] = []
    warnings: List[DataQualityWarning] = []

    def warn(code: str, message: str, subject_id: Optional[str] = None):
        logger.warning(message)
        warnings.append(DataQualityWarning(code, message, subject_id))

    for row in rows:
        technician_id = str(row.technician_id or '').strip()
        task_code = str(row.task_code or '').strip()
        work_order = str(row.work_order or '').strip()
        if not technician_id or not task_code or not work_order:
            warn('unparseable_row', f"Skipping {row.label}: missing one or more required values")
            continue

        key = job_key(work_order, task_code, technician_id)
        if key in existing_keys:
            skipped.append(SkippedRow(row, DUPLICATE_OF_EXISTING, key))
            warn('duplicate_job', f"Skipping {row.label}: {DUPLICATE_OF_EXISTING} job {'|'.join(key)}",
                 technician_id)
            continue
        if key in seen:
            skipped.append(SkippedRow(row, DUPLICATE_WITHIN_FILE, key))
            warn('duplicate_job', f"Skipping {row.label}: {DUPLICATE_WITHIN_FILE} {'|'.join(key)}",
                 technician_id)
            continue

        try:
            job = Job(
                id=id_factory(),
                work_order=work_order,
                technician_id=technician_id,
                task_code=task_code,
                quantity=row.quantity,
                revenue=row.total_revenue(),
                job_date=row.job_date,
            )
        except (ValueError, TypeError, ArithmeticError) as e:
            warn('unparseable_row', f"Skipping {row.label}: {e}", technician_id)
            continue

        seen.add(key)
        added.append(job)

    unknown = ()
    if users is not None:
        known = {user.id for user in users}
        unknown = tuple(sorted({job.technician_id for job in added} - known))

    return IngestResult(
        jobs=list(existing_jobs) + added,
        added=tuple(added),
        skipped=tuple(skipped),
        warnings=tuple(warnings),
        unknown_technician_ids=unknown,
    )


def bulk_edit_jobs(jobs: List[Job], job_ids: Iterable[str], update: JobUpdate,
                   users: Iterable[User] = (), categories: Iterable[RateCategory] = (),
                   surcharge_task_code: str = AERIAL_DROP_TASK_CODE) -> MutationResult:
    """
    Apply one sparse update to many jobs.

    An update that cannot apply to any job fails up front with nothing
    changed. Unknown ids are reported as skipped. When the update sets the
    aerial drop flag, each job goes through the same checks as
    toggle_surcharge; a job that fails them is skipped and left unchanged.
    """
    if update.is_empty():
        return MutationResult(ok=False, collection=jobs, message="Nothing to update")
    problem = update.problem()
    if problem is not None:
        return MutationResult(ok=False, collection=jobs, message=problem)

    users = list(users)
    categories = list(categories)
    surcharge = update.surcharge_enabled
    wanted = list(dict.fromkeys(job_ids))
    targets = set(wanted)
    updated = []
    applied = []
    failed = []
    failures = []
    for job in jobs:
        if job.id not in targets:
            updated.append(job)
            continue
        if surcharge is not None:
            flagged, message = _set_surcharge(job, surcharge, users, categories, surcharge_task_code)
            if flagged is None:
                updated.append(job)
                failed.append(job.id)
                failures.append(message)
                continue
            job = flagged
        updated.append(update.apply(job))
        applied.append(job.id)

    found = set(applied) | set(failed)
    skipped = tuple(failed) + tuple(job_id for job_id in wanted if job_id not in found)
    return MutationResult(ok=True, collection=updated, message="; ".join(failures),
                          applied_ids=tuple(applied), skipped_ids=skipped)


def transfer_jobs(jobs: List[Job], job_ids: Iterable[str], technician_id: str) -> MutationResult:
    """
    Reassign jobs to another technician.

    Rates are not recomputed here; they are resolved the next time the job
    is aggregated. A job whose key would collide with one the target already
    has is left where it is.
    """
    technician_id = str(technician_id or '').strip()
    if not technician_id:
        return MutationResult(ok=False, collection=jobs, message="A target technician is required")

    wanted = list(dict.fromkeys(job_ids))
    targets = set(wanted)
    taken = {job.key for job in jobs if job.id not in targets}
    updated = []
    applied = []
    skipped = []
    for job in jobs:
        if job.id not in targets:
            updated.append(job)
            continue
        moved = replace(job, technician_id=technician_id)
        if moved.key in taken:
            updated.append(job)
            skipped.append(job.id)
            continue
        taken.add(moved.key)
        updated.append(moved)
        applied.append(job.id)

    found = set(applied) | set(skipped)
    skipped.extend(job_id for job_id in wanted if job_id not in found)
    return MutationResult(ok=True, collection=updated,
                          applied_ids=tuple(applied), skipped_ids=tuple(skipped))


def toggle_surcharge(jobs: List[Job], job_id: str, enabled: bool,
                     users: Iterable[User], categories: Iterable[RateCategory],
                     surcharge_task_code: str = AERIAL_DROP_TASK_CODE) -> MutationResult:
    """
    Turn the aerial drop surcharge on or off for one job.

    On: the job's rate override becomes the standard category rate for its
    task code plus the category rate of the surcharge task code. Missing
    category, standard rate or surcharge rate fails without touching the job.
    Off: both the flag and the override are removed.
    """
    job = next((j for j in jobs if j.id == job_id), None)
    if job is None:
        return MutationResult(ok=False, collection=jobs, message=f"Job {job_id} not found",
                              skipped_ids=(job_id,))

    flagged, message = _set_surcharge(job, enabled, list(users), categories, surcharge_task_code)
    if flagged is None:
        return MutationResult(ok=False, collection=jobs, message=message, skipped_ids=(job_id,))
    return MutationResult(ok=True, collection=_swap(jobs, flagged), applied_ids=(job_id,))


def _set_surcharge(job: Job, enabled: bool, users: List[User], categories: Iterable[RateCategory],
                   surcharge_task_code: str) -> Tuple[Optional[Job], str]:
    if not enabled:
        return replace(job, aerial_drop=None, rate_override=None), ""

    def fail(message: str) -> Tuple[Optional[Job], str]:
        logger.info("Surcharge not applied to job %s: %s", job.id, message)
        return None, message

    user = find_user(job.technician_id, users)
    if user is None:
        return fail(f"Technician {job.technician_id} not found")
    category = find_category(effective_category_id(user, users), categories)
    if category is None:
        return fail(f"{user.name} has no rate category")
    standard = category.rate_for(job.task_code)
    if standard is None:
        return fail(f"Task code '{job.task_code}' has no rate in category '{category.name}'")
    surcharge = category.rate_for(surcharge_task_code)
    if surcharge is None:
        return fail(f"Category '{category.name}' has no '{surcharge_task_code}' rate")

    return replace(job, aerial_drop=True, rate_override=standard + surcharge), ""


def _swap(jobs: List[Job], updated: Job) -> List[Job]:
    return [updated if job.id == updated.id else job for job in jobs]
