"""Main entry point for Prime Payroll"""
import argparse
import logging
import sys
from datetime import datetime, date

from payroll.batch import ingest_jobs
from payroll.calculator import PayrollCalculator
from payroll.data_loader import DataLoader
from payroll.errors import PreconditionError
from payroll.finalize import finalize_window
from payroll.payroll_store import PayrollStore
from payroll.report_generator import ReportGenerator
from payroll.ytd import compute_ytd, compute_company_ytd
from config import DATA_DIR


def _date(value: str) -> date:
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected YYYY-MM-DD, got {value!r}")


def _print_warnings(warnings) -> None:
    if warnings:
        print(f"\n{len(warnings)} warning(s):")
        for w in warnings:
            print(f"  - {w.message}")


def _print_technicians(technicians) -> None:
    for t in technicians:
        print(f"{t.name:<30} {t.job_count:>5} jobs  revenue ${t.total_revenue:>12,.2f}  "
              f"pay ${t.total_earnings:>12,.2f}  margin ${t.company_margin:>12,.2f}")


def cmd_upload(store: PayrollStore, args) -> int:
    rows, warnings = DataLoader.load_upload(args.input_file, args.date)
    snapshot = store.load_snapshot()
    result = ingest_jobs(rows, snapshot.jobs, snapshot.users)
    if result.added:
        store.add_jobs(list(result.added))

    print(f"Added {result.added_count} new jobs.")
    if result.skipped_count:
        print(f"Skipped {result.skipped_count} duplicate jobs.")
        for skipped in result.skipped:
            print(f"  - {skipped.row.label}: {skipped.reason}")
    if result.unknown_technician_ids:
        print(f"Found {len(result.unknown_technician_ids)} technician(s) without a user profile: "
              f"{', '.join(result.unknown_technician_ids)}")
    _print_warnings(warnings + [w for w in result.warnings if w.code != 'duplicate_job'])
    return 0


def cmd_preview(store: PayrollStore, args) -> int:
    calculator = PayrollCalculator(store.load_snapshot())
    result = calculator.calculate(None, args.start, args.end)
    _print_technicians(result.technicians)

    summary = calculator.calculate_summary(result.technicians)
    print(f"\n=== Summary ===")
    print(f"Jobs: {summary['job_count']}")
    print(f"Total Revenue: ${summary['total_revenue']:,.2f}")
    print(f"Total Pay: ${summary['total_earnings']:,.2f}")
    print(f"Company Margin: ${summary['company_margin']:,.2f}")
    _print_warnings(result.warnings)
    return 0


def cmd_finalize(store: PayrollStore, args) -> int:
    try:
        request = finalize_window(store.load_snapshot(), args.start, args.end)
    except PreconditionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not store.apply_finalize(request):
        print(f"Report {request.report_id} was already published.")
        return 0
    _print_technicians(request.processed_technicians)
    print(f"\nPublished report {request.report_id} (payment #{request.payment_id})")
    _print_warnings(request.warnings)
    return 0


def cmd_ytd(store: PayrollStore, args) -> int:
    snapshot = store.load_snapshot()
    reports = store.get_reports()
    if args.company:
        company = compute_company_ytd(args.user, args.year, reports, snapshot.loans, snapshot.users)
        print(f"{args.year} company YTD for {args.user}: ${company.total:,.2f} "
              f"({len(company.included_user_ids)} users)")
    else:
        total = compute_ytd(args.user, args.year, reports, snapshot.loans)
        print(f"{args.year} YTD for {args.user}: ${total:,.2f}")
    return 0


def cmd_export(store: PayrollStore, args) -> int:
    report = store.get_report(args.report_id)
    if report is None:
        print(f"Error: report {args.report_id} not found", file=sys.stderr)
        return 1
    output_path = args.output or f"output/reports/payroll_{report.id}.xlsx"
    ReportGenerator.from_published(report).export_excel(output_path)
    print(f"Report saved to: {output_path}")
    return 0


def cmd_report(store: PayrollStore, args) -> int:
    actions = {
        'finalize': store.finalize_report,
        'unfinalize': store.unfinalize_report,
        'delete': store.delete_report,
    }
    try:
        found = actions[args.action](args.report_id)
    except PreconditionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if not found:
        print(f"Error: report {args.report_id} not found", file=sys.stderr)
        return 1
    print(f"Report {args.report_id}: {args.action} done.")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Run technician payroll')
    parser.add_argument('--data-dir', default=DATA_DIR, help=f'Payroll store directory. Default: {DATA_DIR}')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    upload = sub.add_parser('upload', help='Add jobs from an Excel/CSV upload')
    upload.add_argument('input_file', help='Path to input Excel/CSV file with job data')
    upload.add_argument('--date', '-d', type=_date, default=None,
                        help='Job date for rows without a Date column (YYYY-MM-DD)')

    preview = sub.add_parser('preview', help='Show earnings without publishing')
    preview.add_argument('--start', type=_date, default=None)
    preview.add_argument('--end', type=_date, default=None)

    finalize = sub.add_parser('finalize', help='Publish the payroll for a window')
    finalize.add_argument('--start', type=_date, required=True)
    finalize.add_argument('--end', type=_date, required=True)

    ytd = sub.add_parser('ytd', help='Year-to-date earnings')
    ytd.add_argument('--user', '-u', required=True, help='User id')
    ytd.add_argument('--year', '-y', type=int, default=date.today().year)
    ytd.add_argument('--company', action='store_true', help="Include the lead's team")

    export = sub.add_parser('export', help='Export a published report to Excel')
    export.add_argument('report_id')
    export.add_argument('--output', '-o', default=None, help='Output file path')

    report = sub.add_parser('report', help='Finalize, un-finalize or delete a published report')
    report.add_argument('action', choices=['finalize', 'unfinalize', 'delete'])
    report.add_argument('report_id')

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )

    if args.command == 'preview' and (args.start is None) != (args.end is None):
        parser.error('preview needs both --start and --end, or neither')

    store = PayrollStore(args.data_dir)
    commands = {
        'upload': cmd_upload,
        'preview': cmd_preview,
        'finalize': cmd_finalize,
        'ytd': cmd_ytd,
        'export': cmd_export,
        'report': cmd_report,
    }
    return commands[args.command](store, args)


if __name__ == '__main__':
    sys.exit(main())
