"""Tests for adjustment collection and loan scheduling"""
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from payroll.adjustments import collect_adjustments, schedule_loan_payments
from payroll.models import Adjustment, Loan, RecurringAdjustment


class TestCollectAdjustments:

    def setup_method(self):
        self.adjustments = [
            Adjustment('a1', 'tech-1', '2024-07-21', 50, 'bonus', 'Safety bonus'),
            Adjustment('a2', 'tech-1', '2024-07-27', -20, 'chargeback', 'Repeat visit'),
            Adjustment('a3', 'tech-1', '2024-07-28', 10, 'bonus'),  # after window
            Adjustment('a4', 'tech-1', '2024-07-20', 10, 'bonus'),  # before window
            Adjustment('a5', 'tech-2', '2024-07-22', 99, 'bonus'),  # other tech
        ]
        self.recurring = [
            RecurringAdjustment('r1', 'tech-1', -25, description='Truck rental'),
            RecurringAdjustment('r2', 'tech-1', -5, is_active=False),
        ]

    def test_window_is_inclusive_on_both_ends(self):
        collected = collect_adjustments('tech-1', date(2024, 7, 21), date(2024, 7, 27),
                                        self.adjustments)
        assert [a.id for a in collected] == ['a1', 'a2']

    def test_active_recurring_materializes_once_at_window_end(self):
        collected = collect_adjustments('tech-1', '2024-07-21', '2024-07-27',
                                        [], self.recurring)
        assert len(collected) == 1
        instance = collected[0]
        assert instance.adjustment_date == date(2024, 7, 27)
        assert instance.amount == Decimal('-25')
        assert instance.kind == 'recurring-deduction'
        assert instance.id == 'recurring:r1:2024-07-27'

    def test_recurring_not_prorated_for_longer_windows(self):
        collected = collect_adjustments('tech-1', '2024-07-01', '2024-07-31', [], self.recurring)
        assert [a.amount for a in collected] == [Decimal('-25')]

    def test_prescheduled_loan_payment_with_unknown_loan_warns(self):
        payment = Adjustment('p1', 'tech-1', '2024-07-25', -40, 'loan-payment', loan_id='missing')
        warnings = []
        collected = collect_adjustments('tech-1', '2024-07-21', '2024-07-27', [payment],
                                        loans=[], warnings=warnings)
        assert collected == [payment]
        assert warnings[0].code == 'unknown_loan'


class TestScheduleLoanPayments:

    def test_payment_is_capped_by_remaining_balance(self):
        loans = [
            Loan('l1', 'tech-1', 500, 30, '2024-01-02', weekly_deduction=50, description='Tools'),
            Loan('l2', 'tech-1', 200, 200, '2024-06-01', weekly_deduction=25),
        ]
        payments = schedule_loan_payments('tech-1', '2024-07-27', loans)
        assert [(p.loan_id, p.amount) for p in payments] == [('l1', Decimal('-30')), ('l2', Decimal('-25'))]
        assert all(p.kind == 'loan-payment' for p in payments)
        assert payments[0].description == 'Tools'

    def test_inactive_and_paid_off_loans_skipped(self):
        loans = [
            Loan('l1', 'tech-1', 500, 100, '2024-01-02', weekly_deduction=50, is_active=False),
            Loan('l2', 'tech-1', 500, 0, '2024-01-02', weekly_deduction=50),
        ]
        assert schedule_loan_payments('tech-1', '2024-07-27', loans) == []

    def test_already_scheduled_payment_not_duplicated(self):
        loans = [Loan('l1', 'tech-1', 500, 300, '2024-01-02', weekly_deduction=50)]
        existing = [Adjustment('p1', 'tech-1', '2024-07-25', -60, 'loan-payment', loan_id='l1')]
        assert schedule_loan_payments('tech-1', '2024-07-27', loans, existing) == []
