"""Payroll calculation logic for Prime Payroll"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from .adjustments import collect_adjustments, schedule_loan_payments, in_window
from .models import (
    Job, User, ProcessedJob, ProcessedTechnician, PayrollSnapshot,
    DataQualityWarning, DateLike, parse_date,
)
from .money import to_cents, from_cents, divide_cents
from .profit_share import apply_profit_share
from .rates import resolve_rate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayrollResult:
    """Technician reports plus the data-quality warnings met along the way"""
    technicians: Tuple[ProcessedTechnician, ...]
    warnings: Tuple[DataQualityWarning, ...] = ()
    window_start: Optional[date] = None
    window_end: Optional[date] = None

    @property
    def is_live_summary(self) -> bool:
        return self.window_start is None


class PayrollCalculator:
    """
    Turns a snapshot of jobs, adjustments, rates and users into earnings reports.

    Business Logic:
    ===============

    Job earnings:
    - Each job is paid rate x quantity, where the rate comes from the
      precedence chain in rates.resolve_rate
    - Missing configuration pays 0 and is reported as a warning

    Adjustments (windowed runs only):
    - One-time adjustments dated inside the window
    - One instance of every active recurring adjustment
    - One weekly payment for every active loan with a balance
    - For team leads, profit share on their team's jobs

    Totals:
    - Every sum is taken in integer cents
    - Total earnings = job earnings + adjustments
    - Company margin = client revenue - total earnings

    Without a window ("live summary") adjustments are left out entirely;
    that mode backs upload previews.
    """

    def __init__(self, snapshot: PayrollSnapshot):
        self.snapshot = snapshot

    def calculate_single(self, job: Job, user: User,
                         warnings: Optional[List[DataQualityWarning]] = None) -> ProcessedJob:
        """
        Pay a single job.

        Args:
            job: The job to pay
            user: The user who performed it
            warnings: Optional list receiving data-quality warnings

        Returns:
            ProcessedJob snapshot with the applied rate and earning
        """
        rate = resolve_rate(job, user, self.snapshot.users, self.snapshot.rate_categories, warnings)
        earning_cents = to_cents(rate * job.quantity)
        return ProcessedJob(
            id=job.id,
            work_order=job.work_order,
            technician_id=job.technician_id,
            task_code=job.task_code,
            quantity=job.quantity,
            revenue=job.revenue,
            job_date=job.job_date,
            rate_applied=rate,
            earning=from_cents(earning_cents),
            rate_override=job.rate_override,
            aerial_drop=job.aerial_drop,
        )

    def calculate(self, jobs: Optional[Iterable[Job]] = None,
                  window_start: Optional[DateLike] = None,
                  window_end: Optional[DateLike] = None) -> PayrollResult:
        """
        Build one report per technician.

        Args:
            jobs: Jobs to pay; defaults to the snapshot's live jobs
            window_start: First day of the window (inclusive)
            window_end: Last day of the window (inclusive)

        Returns:
            PayrollResult with reports sorted by technician name
        """
        if (window_start is None) != (window_end is None):
            raise ValueError("Provide both window_start and window_end, or neither")

        snapshot = self.snapshot
        jobs = list(snapshot.jobs if jobs is None else jobs)
        windowed = window_start is not None
        start = end = None
        if windowed:
            start = parse_date(window_start)
            end = parse_date(window_end)
            if start > end:
                raise ValueError(f"Window starts after it ends: {start} > {end}")
            jobs = [job for job in jobs if in_window(job.job_date, start, end)]

        warnings: List[DataQualityWarning] = []
        users = snapshot.user_map()
        jobs_by_tech: Dict[str, List[Job]] = defaultdict(list)
        for job in jobs:
            jobs_by_tech[job.technician_id].append(job)

        tech_ids = set(jobs_by_tech)
        if windowed:
            tech_ids.update(a.technician_id for a in snapshot.adjustments
                            if in_window(a.adjustment_date, start, end))
            tech_ids.update(r.technician_id for r in snapshot.recurring_adjustments if r.is_active)
            tech_ids.update(l.technician_id for l in snapshot.loans
                            if l.is_active and l.remaining_balance > 0)
            tech_ids.update(u.id for u in snapshot.users if u.is_team_lead)

        reports = []
        for tech_id in sorted(tech_ids):
            user = users.get(tech_id)
            if user is None:
                if tech_id in jobs_by_tech:
                    message = (f"{len(jobs_by_tech[tech_id])} job(s) reference unknown "
                               f"technician {tech_id}; excluded")
                    logger.warning(message)
                    warnings.append(DataQualityWarning('unknown_technician', message, tech_id))
                continue
            report = self._build_report(user, jobs_by_tech.get(tech_id, []), jobs,
                                        start, end, warnings)
            if report is not None:
                reports.append(report)

        reports.sort(key=lambda r: (r.name.lower(), r.technician_id))
        return PayrollResult(tuple(reports), tuple(warnings), start, end)

    def _build_report(self, user: User, tech_jobs: List[Job], window_jobs: List[Job],
                      start: Optional[date], end: Optional[date],
                      warnings: List[DataQualityWarning]) -> Optional[ProcessedTechnician]:
        snapshot = self.snapshot
        processed = [self.calculate_single(job, user, warnings) for job in tech_jobs]
        processed.sort(key=lambda p: p.job_date)

        adjustments = []
        if start is not None:
            adjustments = collect_adjustments(
                user.id, start, end, snapshot.adjustments,
                snapshot.recurring_adjustments, snapshot.loans, warnings,
            )
            adjustments += schedule_loan_payments(user.id, end, snapshot.loans, adjustments)
            if user.is_team_lead:
                adjustments += apply_profit_share(
                    user, window_jobs, snapshot.users, snapshot.rate_categories,
                    start, end, warnings,
                )
            adjustments.sort(key=lambda a: a.adjustment_date)

        # No zero-value rows
        if not processed and not adjustments:
            return None

        base_cents = sum(to_cents(p.earning) for p in processed)
        adjustment_cents = sum(to_cents(a.amount) for a in adjustments)
        revenue_cents = sum(to_cents(p.revenue) for p in processed)
        total_cents = base_cents + adjustment_cents
        average_cents = divide_cents(base_cents, len(processed)) if processed else 0

        return ProcessedTechnician(
            technician_id=user.id,
            name=user.name,
            job_count=len(processed),
            total_revenue=from_cents(revenue_cents),
            base_earnings=from_cents(base_cents),
            total_earnings=from_cents(total_cents),
            company_margin=from_cents(revenue_cents - total_cents),
            average_per_job=from_cents(average_cents),
            adjustments=tuple(adjustments),
            processed_jobs=tuple(processed),
        )

    def calculate_summary(self, reports: Iterable[ProcessedTechnician]) -> dict:
        """
        Company-wide totals for a list of technician reports.

        Returns:
            Dictionary with summary totals
        """
        reports = list(reports)
        revenue_cents = sum(to_cents(r.total_revenue) for r in reports)
        earnings_cents = sum(to_cents(r.total_earnings) for r in reports)
        return {
            'technician_count': len(reports),
            'job_count': sum(r.job_count for r in reports),
            'total_revenue': from_cents(revenue_cents),
            'total_base_earnings': from_cents(sum(to_cents(r.base_earnings) for r in reports)),
            'total_adjustments': from_cents(sum(to_cents(a.amount)
                                                for r in reports for a in r.adjustments)),
            'total_earnings': from_cents(earnings_cents),
            'company_margin': from_cents(revenue_cents - earnings_cents),
        }


def aggregate(snapshot: PayrollSnapshot, jobs: Optional[Iterable[Job]] = None,
              window_start: Optional[DateLike] = None,
              window_end: Optional[DateLike] = None) -> List[ProcessedTechnician]:
    """Technician reports for a window, or a live summary when no window is given."""
    result = PayrollCalculator(snapshot).calculate(jobs, window_start, window_end)
    return list(result.technicians)
