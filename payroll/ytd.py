"""Week numbering, year-to-date totals and company rollups"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Loan, PublishedReport, User, DateLike, parse_date
from .money import to_cents, from_cents


def payment_id(day: DateLike) -> int:
    """
    1-based count of 7-day blocks since January 1 of the date's year.

    This is not an ISO week number. Issued payment ids are frozen into
    published reports, so the numbering must stay as it is.
    """
    day_of_year = parse_date(day).timetuple().tm_yday
    return (day_of_year + 6) // 7


def _reports_in_year(reports: Iterable[PublishedReport], year: int) -> List[PublishedReport]:
    return [r for r in reports if r.window_end.year == year]


def _ytd_cents(technician_id: str, year: int, reports: List[PublishedReport],
               loans: Iterable[Loan]) -> int:
    total = 0
    for report in reports:
        entry = report.technician(technician_id)
        if entry is not None:
            total += to_cents(entry.total_earnings)
    # Taxable loans count when drawn, not when repaid
    for loan in loans:
        if (loan.technician_id == technician_id and loan.is_taxable
                and loan.origination_date.year == year):
            total += to_cents(loan.total_amount)
    return total


def compute_ytd(technician_id: str, year: int, reports: Iterable[PublishedReport],
                loans: Iterable[Loan] = ()) -> Decimal:
    """
    Year-to-date earnings for one technician.

    Sums total earnings from every published report whose window ends in
    `year`, plus taxable loans drawn during that year.
    """
    return from_cents(_ytd_cents(technician_id, year, _reports_in_year(reports, year), loans))


@dataclass(frozen=True)
class CompanyYTD:
    total: Decimal
    included_user_ids: Tuple[str, ...]


def compute_company_ytd(lead_id: str, year: int, reports: Iterable[PublishedReport],
                        loans: Iterable[Loan], users: Iterable[User]) -> CompanyYTD:
    """YTD of a team lead plus everyone currently assigned to them."""
    members = [u.id for u in users if u.managed_by == lead_id and u.id != lead_id]
    included = [lead_id] + members
    year_reports = _reports_in_year(reports, year)
    loans = list(loans)
    total = sum(_ytd_cents(user_id, year, year_reports, loans) for user_id in included)
    return CompanyYTD(total=from_cents(total), included_user_ids=tuple(included))


def available_years(reports: Iterable[PublishedReport], today: Optional[date] = None) -> List[int]:
    """Years that have published reports, newest first."""
    years = sorted({r.window_end.year for r in reports}, reverse=True)
    if not years:
        return [(today or date.today()).year]
    return years


@dataclass(frozen=True)
class TechnicianTotals:
    technician_id: str
    name: str
    total_revenue: Decimal
    total_payout: Decimal
    company_revenue: Decimal


@dataclass(frozen=True)
class ReportSummary:
    total_revenue: Decimal
    total_payout: Decimal
    company_revenue: Decimal
    breakdown: Tuple[TechnicianTotals, ...]


def summarize_reports(reports: Iterable[PublishedReport],
                      technician_id: Optional[str] = None) -> ReportSummary:
    """
    Roll published reports up per technician and for the whole company.

    Args:
        reports: Published reports to include
        technician_id: Restrict the rollup to one technician

    Returns:
        ReportSummary with a per-technician breakdown sorted by name
    """
    revenue: Dict[str, int] = {}
    payout: Dict[str, int] = {}
    names: Dict[str, str] = {}
    for report in reports:
        for entry in report.technicians:
            if technician_id is not None and entry.technician_id != technician_id:
                continue
            key = entry.technician_id
            names[key] = entry.name
            revenue[key] = revenue.get(key, 0) + to_cents(entry.total_revenue)
            payout[key] = payout.get(key, 0) + to_cents(entry.total_earnings)

    breakdown = sorted(
        (TechnicianTotals(
            technician_id=key,
            name=names[key],
            total_revenue=from_cents(revenue[key]),
            total_payout=from_cents(payout[key]),
            company_revenue=from_cents(revenue[key] - payout[key]),
        ) for key in names),
        key=lambda t: (t.name.lower(), t.technician_id),
    )
    total_revenue = sum(revenue.values())
    total_payout = sum(payout.values())
    return ReportSummary(
        total_revenue=from_cents(total_revenue),
        total_payout=from_cents(total_payout),
        company_revenue=from_cents(total_revenue - total_payout),
        breakdown=tuple(breakdown),
    )
