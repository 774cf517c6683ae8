"""Collection of bonuses, deductions and loan payments for a window"""
import logging
from datetime import date
from typing import Iterable, List, Optional

from .models import (
    Adjustment, Loan, RecurringAdjustment, DataQualityWarning, DateLike, parse_date,
)

logger = logging.getLogger(__name__)


def in_window(day: date, window_start: date, window_end: date) -> bool:
    return window_start <= day <= window_end


def materialize_recurring(recurring: RecurringAdjustment, window_end: date) -> Adjustment:
    """One instance per window, dated at the window end; never pro-rated."""
    return Adjustment(
        id=f"recurring:{recurring.id}:{window_end.isoformat()}",
        technician_id=recurring.technician_id,
        adjustment_date=window_end,
        amount=recurring.weekly_amount,
        kind='recurring-deduction',
        description=recurring.description,
    )


def collect_adjustments(technician_id: str, window_start: DateLike, window_end: DateLike,
                        adjustments: Iterable[Adjustment],
                        recurring: Iterable[RecurringAdjustment] = (),
                        loans: Iterable[Loan] = (),
                        warnings: Optional[List[DataQualityWarning]] = None) -> List[Adjustment]:
    """
    Gather every adjustment that applies to a technician within a window.

    One-time adjustments (including loan payments already scheduled in the
    live set) count when their date falls inside the inclusive window. Each
    active recurring adjustment contributes one instance dated at the end of
    the window. Loan payments are not generated here; see
    schedule_loan_payments.
    """
    start = parse_date(window_start)
    end = parse_date(window_end)
    loan_ids = {loan.id for loan in loans}

    collected = []
    for adj in adjustments:
        if adj.technician_id != technician_id:
            continue
        if not in_window(adj.adjustment_date, start, end):
            continue
        if adj.kind == 'loan-payment' and adj.loan_id is not None and adj.loan_id not in loan_ids:
            message = f"Loan payment {adj.id} references unknown loan {adj.loan_id}"
            logger.warning(message)
            if warnings is not None:
                warnings.append(DataQualityWarning('unknown_loan', message, technician_id))
        collected.append(adj)

    for item in recurring:
        if item.technician_id == technician_id and item.is_active:
            collected.append(materialize_recurring(item, end))

    return collected


def schedule_loan_payments(technician_id: str, window_end: DateLike, loans: Iterable[Loan],
                           already_scheduled: Iterable[Adjustment] = ()) -> List[Adjustment]:
    """
    Weekly amortization for a technician's active loans.

    Each active loan with a balance produces a deduction of
    min(remaining balance, weekly deduction), unless a payment for that loan
    is already among `already_scheduled`.
    """
    end = parse_date(window_end)
    covered = {adj.loan_id for adj in already_scheduled
               if adj.kind == 'loan-payment' and adj.loan_id is not None}

    payments = []
    for loan in loans:
        if loan.technician_id != technician_id or not loan.is_active:
            continue
        if loan.remaining_balance <= 0 or loan.id in covered:
            continue
        amount = min(loan.remaining_balance, loan.weekly_deduction)
        if amount <= 0:
            continue
        payments.append(Adjustment(
            id=f"loan:{loan.id}:{end.isoformat()}",
            technician_id=technician_id,
            adjustment_date=end,
            amount=-amount,
            kind='loan-payment',
            description=loan.description or "Loan payment",
            loan_id=loan.id,
        ))
    return payments
