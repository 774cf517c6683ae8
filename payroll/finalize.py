"""Turning a payroll window into a publishable unit of work"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Optional, Tuple

from .calculator import PayrollCalculator
from .errors import PreconditionError
from .models import (
    PayrollSnapshot, ProcessedTechnician, PublishedReport, DataQualityWarning,
    DateLike, parse_date,
)
from .money import to_cents, from_cents
from .ytd import payment_id

logger = logging.getLogger(__name__)


def report_id_for(window_start: date, window_end: date) -> str:
    return f"{window_start.isoformat()}_{window_end.isoformat()}"


@dataclass(frozen=True)
class FinalizeRequest:
    """
    Everything the persistence layer must write as one atomic unit.

    Removal is keyed on ids, never positions, so re-applying the same
    request cannot remove or pay anything twice.
    """
    report_id: str
    window_start: date
    window_end: date
    payment_id: int
    published_on: date
    processed_technicians: Tuple[ProcessedTechnician, ...]
    consumed_job_ids: Tuple[str, ...]
    consumed_adjustment_ids: Tuple[str, ...]
    loan_payments: Dict[str, Decimal] = field(default_factory=dict)  # loan id -> amount repaid
    warnings: Tuple[DataQualityWarning, ...] = ()

    def to_report(self) -> PublishedReport:
        return PublishedReport(
            id=self.report_id,
            window_start=self.window_start,
            window_end=self.window_end,
            payment_id=self.payment_id,
            published_on=self.published_on,
            technicians=self.processed_technicians,
        )


def finalize_window(snapshot: PayrollSnapshot, window_start: DateLike, window_end: DateLike,
                    published_on: Optional[DateLike] = None) -> FinalizeRequest:
    """
    Compute the report for a window and list what it consumes.

    Raises:
        PreconditionError: when the window holds no jobs and no adjustments
    """
    start = parse_date(window_start)
    end = parse_date(window_end)
    result = PayrollCalculator(snapshot).calculate(None, start, end)
    if not result.technicians:
        raise PreconditionError(f"There are no jobs or adjustments to publish for {start} to {end}")

    live_adjustment_ids = {adj.id for adj in snapshot.adjustments}
    job_ids = []
    adjustment_ids = []
    loan_cents: Dict[str, int] = {}
    for entry in result.technicians:
        job_ids.extend(job.id for job in entry.processed_jobs)
        for adj in entry.adjustments:
            # Synthetic adjustments are regenerated from their parent records
            if adj.id in live_adjustment_ids:
                adjustment_ids.append(adj.id)
            if adj.kind == 'loan-payment' and adj.loan_id is not None:
                loan_cents[adj.loan_id] = loan_cents.get(adj.loan_id, 0) - to_cents(adj.amount)

    request = FinalizeRequest(
        report_id=report_id_for(start, end),
        window_start=start,
        window_end=end,
        payment_id=payment_id(end),
        published_on=parse_date(published_on) if published_on is not None else date.today(),
        processed_technicians=result.technicians,
        consumed_job_ids=tuple(job_ids),
        consumed_adjustment_ids=tuple(adjustment_ids),
        loan_payments={loan_id: from_cents(cents) for loan_id, cents in loan_cents.items()},
        warnings=result.warnings,
    )
    logger.info("Finalized %s: %d technician(s), %d job(s), %d adjustment(s) consumed",
                request.report_id, len(request.processed_technicians),
                len(request.consumed_job_ids), len(request.consumed_adjustment_ids))
    return request
