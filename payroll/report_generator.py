"""Report generation for Prime Payroll"""
import pandas as pd
from datetime import date
from typing import List, Optional, Sequence
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side

from .models import ProcessedTechnician, PublishedReport
from .money import to_cents, from_cents
from config import COMPANY_NAME, EXCEL_STYLES


class ReportGenerator:
    """
    Generates Excel payroll reports from processed technicians.
    """

    def __init__(self, technicians: Sequence[ProcessedTechnician],
                 window_start: Optional[date] = None, window_end: Optional[date] = None,
                 payment_id: Optional[int] = None):
        self.technicians: List[ProcessedTechnician] = list(technicians)
        self.window_start = window_start
        self.window_end = window_end
        self.payment_id = payment_id

    @classmethod
    def from_published(cls, report: PublishedReport) -> 'ReportGenerator':
        return cls(report.technicians, report.window_start, report.window_end, report.payment_id)

    def to_dataframe(self) -> pd.DataFrame:
        """
        One row per technician.
        """
        data = []
        for t in self.technicians:
            data.append({
                'Name': t.name,
                'Tech ID': t.technician_id,
                'Jobs': t.job_count,
                'Revenue': float(t.total_revenue),
                'Base Pay': float(t.base_earnings),
                'Adjustments': float(t.total_earnings - t.base_earnings),
                'Total Pay': float(t.total_earnings),
                'Company Margin': float(t.company_margin),
                'Avg / Job': float(t.average_per_job),
            })
        return pd.DataFrame(data, columns=[
            'Name', 'Tech ID', 'Jobs', 'Revenue', 'Base Pay', 'Adjustments',
            'Total Pay', 'Company Margin', 'Avg / Job',
        ])

    def jobs_dataframe(self, technician: ProcessedTechnician) -> pd.DataFrame:
        """Paystub lines for one technician: jobs first, then adjustments."""
        data = []
        for j in technician.processed_jobs:
            data.append({
                'Date': j.job_date.strftime('%m/%d/%Y'),
                'Work Order': j.work_order,
                'Item': j.task_code + (' (aerial drop)' if j.aerial_drop else ''),
                'Qty': float(j.quantity),
                'Rate': float(j.rate_applied),
                'Amount': float(j.earning),
            })
        for a in technician.adjustments:
            data.append({
                'Date': a.adjustment_date.strftime('%m/%d/%Y'),
                'Work Order': '',
                'Item': f"{a.kind}: {a.description}" if a.description else a.kind,
                'Qty': None,
                'Rate': None,
                'Amount': float(a.amount),
            })
        return pd.DataFrame(data, columns=['Date', 'Work Order', 'Item', 'Qty', 'Rate', 'Amount'])

    def get_summary_row(self) -> dict:
        """Totals row, summed in cents."""
        def total(attr):
            return float(from_cents(sum(to_cents(getattr(t, attr)) for t in self.technicians)))

        base = total('base_earnings')
        earnings = total('total_earnings')
        return {
            'Name': f"{len(self.technicians)} Technicians",
            'Tech ID': '',
            'Jobs': sum(t.job_count for t in self.technicians),
            'Revenue': total('total_revenue'),
            'Base Pay': base,
            'Adjustments': float(from_cents(to_cents(earnings) - to_cents(base))),
            'Total Pay': earnings,
            'Company Margin': total('company_margin'),
            'Avg / Job': '',
        }

    def export_excel(self, filepath: str) -> None:
        """
        Export report to Excel file.

        Args:
            filepath: Path to save the Excel file
        """
        wb = Workbook()
        ws = wb.active
        ws.title = "Payroll Summary"

        # Styles
        header_fill = PatternFill(start_color=EXCEL_STYLES['header_bg_color'],
                                  end_color=EXCEL_STYLES['header_bg_color'],
                                  fill_type='solid')
        summary_fill = PatternFill(start_color=EXCEL_STYLES['summary_bg_color'],
                                   end_color=EXCEL_STYLES['summary_bg_color'],
                                   fill_type='solid')
        header_font = Font(name=EXCEL_STYLES['font_name'],
                           size=EXCEL_STYLES['font_size'],
                           bold=True)
        title_font = Font(name=EXCEL_STYLES['font_name'],
                          size=14,
                          bold=True)
        border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

        ws['A1'] = COMPANY_NAME
        ws['A1'].font = title_font
        if self.window_start and self.window_end:
            ws['A2'] = (f"Period: {self.window_start.strftime('%m/%d/%Y')} - "
                        f"{self.window_end.strftime('%m/%d/%Y')}")
        if self.payment_id is not None:
            ws['A3'] = f"Payment #{self.payment_id}"

        self._write_table(ws, self.to_dataframe(), 5, header_fill, header_font, border,
                          money_from=4, summary=self.get_summary_row(), summary_fill=summary_fill)

        for technician in self.technicians:
            sheet = wb.create_sheet(title=self._sheet_title(technician, wb.sheetnames))
            sheet['A1'] = technician.name
            sheet['A1'].font = title_font
            sheet['A2'] = f"Total Pay: ${technician.total_earnings:,.2f}"
            self._write_table(sheet, self.jobs_dataframe(technician), 4, header_fill,
                              header_font, border, money_from=5)

        # Save
        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        wb.save(filepath)

    @staticmethod
    def _sheet_title(technician: ProcessedTechnician, taken: List[str]) -> str:
        # Excel caps sheet titles at 31 chars and forbids a few characters
        title = ''.join(c for c in technician.name if c not in '[]:*?/\\')[:31] or technician.technician_id
        candidate = title
        suffix = 2
        while candidate in taken:
            candidate = f"{title[:28]} {suffix}"
            suffix += 1
        return candidate

    @staticmethod
    def _write_table(ws, df: pd.DataFrame, start_row: int, header_fill, header_font, border,
                     money_from: int, summary: Optional[dict] = None, summary_fill=None) -> None:
        # Headers
        for col_idx, col_name in enumerate(df.columns, 1):
            cell = ws.cell(row=start_row, column=col_idx, value=col_name)
            cell.fill = header_fill
            cell.font = header_font
            cell.border = border
            cell.alignment = Alignment(horizontal='center')

        # Data rows
        for row_idx, row in enumerate(df.itertuples(index=False), 1):
            for col_idx, value in enumerate(row, 1):
                if pd.isna(value):
                    value = None
                cell = ws.cell(row=start_row + row_idx, column=col_idx, value=value)
                cell.border = border
                if col_idx >= money_from and isinstance(value, float):
                    cell.alignment = Alignment(horizontal='right')
                    cell.number_format = '$#,##0.00'

        # Summary row
        if summary is not None:
            summary_row = start_row + len(df) + 1
            for col_idx, col_name in enumerate(df.columns, 1):
                value = summary[col_name]
                cell = ws.cell(row=summary_row, column=col_idx, value=value)
                cell.fill = summary_fill
                cell.font = Font(bold=True)
                cell.border = border
                if col_idx >= money_from and isinstance(value, float):
                    cell.alignment = Alignment(horizontal='right')
                    cell.number_format = '$#,##0.00'

        for idx in range(1, len(df.columns) + 1):
            ws.column_dimensions[chr(64 + idx)].width = 14
