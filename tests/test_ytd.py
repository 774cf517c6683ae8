"""Tests for payment ids, year-to-date totals and report rollups"""
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from payroll.models import (
    Loan, User, ProcessedTechnician, PublishedReport,
)
from payroll.ytd import (
    payment_id, compute_ytd, compute_company_ytd, available_years, summarize_reports,
)


def entry(tech_id, name, revenue, earnings):
    revenue = Decimal(revenue)
    earnings = Decimal(earnings)
    return ProcessedTechnician(
        technician_id=tech_id, name=name, job_count=1,
        total_revenue=revenue, base_earnings=earnings, total_earnings=earnings,
        company_margin=revenue - earnings, average_per_job=earnings,
    )


def report(start, end, *technicians):
    start = date.fromisoformat(start)
    end = date.fromisoformat(end)
    return PublishedReport(f"{start}_{end}", start, end, payment_id(end), end, tuple(technicians))


class TestPaymentId:

    def test_first_days_of_year(self):
        assert payment_id(date(2024, 1, 1)) == 1
        assert payment_id(date(2024, 1, 7)) == 1
        assert payment_id(date(2024, 1, 8)) == 2

    def test_end_of_leap_year(self):
        # Day 366
        assert payment_id(date(2024, 12, 31)) == 53


class TestComputeYtd:

    def setup_method(self):
        self.reports = [
            report('2023-12-30', '2024-01-05', entry('t1', 'Zane', 300, 100)),
            report('2024-06-14', '2024-06-20', entry('t1', 'Zane', 500, 200), entry('t2', 'Amy', 90, 40)),
            report('2023-06-01', '2023-06-07', entry('t1', 'Zane', 900, 800)),
        ]
        self.loans = [
            Loan('l1', 't1', 50, 50, '2024-03-01', is_taxable=True),
            Loan('l2', 't1', 70, 70, '2024-04-01'),  # not taxable
            Loan('l3', 't1', 80, 80, '2023-04-01', is_taxable=True),
        ]

    def test_reports_and_taxable_loans(self):
        """
        Reports ending 2024-01-05 ($100) and 2024-06-20 ($200)
        plus a $50 taxable loan drawn 2024-03-01
        Expected: $350.00
        """
        assert compute_ytd('t1', 2024, self.reports, self.loans) == Decimal('350.00')

    def test_window_counts_in_year_it_ends(self):
        assert compute_ytd('t1', 2023, self.reports, self.loans) == Decimal('880.00')

    def test_company_ytd_includes_team(self):
        users = [
            User('t1', 'Zane', role='team-lead'),
            User('t2', 'Amy', managed_by='t1'),
            User('t3', 'Otto'),
        ]
        company = compute_company_ytd('t1', 2024, self.reports, self.loans, users)
        assert company.total == Decimal('390.00')
        assert company.included_user_ids == ('t1', 't2')

    def test_available_years(self):
        assert available_years(self.reports) == [2024, 2023]
        assert available_years([], today=date(2025, 3, 1)) == [2025]


class TestSummarizeReports:

    def test_company_and_per_technician_totals(self):
        reports = [
            report('2024-06-07', '2024-06-13', entry('t1', 'Zane', '100.10', '60.05')),
            report('2024-06-14', '2024-06-20', entry('t1', 'Zane', '0.20', '0.10'), entry('t2', 'amy', 50, 20)),
        ]
        summary = summarize_reports(reports)
        assert summary.total_revenue == Decimal('150.30')
        assert summary.total_payout == Decimal('80.15')
        assert summary.company_revenue == Decimal('70.15')
        assert [t.name for t in summary.breakdown] == ['amy', 'Zane']
        assert summary.breakdown[1].total_payout == Decimal('60.15')

    def test_single_technician(self):
        reports = [report('2024-06-14', '2024-06-20', entry('t1', 'Zane', 10, 4), entry('t2', 'Amy', 50, 20))]
        summary = summarize_reports(reports, technician_id='t2')
        assert summary.total_payout == Decimal('20.00')
        assert [t.technician_id for t in summary.breakdown] == ['t2']
