"""Tests for Excel report export"""
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

from openpyxl import load_workbook

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from payroll.calculator import aggregate
from payroll.models import Job, User, Rate, RateCategory, Adjustment, PayrollSnapshot, PublishedReport
from payroll.report_generator import ReportGenerator


class TestReportGenerator:

    def setup_method(self):
        snapshot = PayrollSnapshot(
            users=[
                User('t1', 'Zane Tech', rate_category_id='cat-std'),
                User('t2', 'Zane Tech', rate_category_id='cat-std'),
            ],
            rate_categories=[RateCategory('cat-std', 'Standard', [Rate('INSTALL', 45)])],
            jobs=[
                Job('j1', 'WO-1', 't1', 'INSTALL', 2, 240, '2024-07-22'),
                Job('j2', 'WO-2', 't2', 'INSTALL', 1, 120, '2024-07-23'),
            ],
            adjustments=[Adjustment('a1', 't1', '2024-07-24', 25, 'bonus', 'Weekend')],
        )
        technicians = aggregate(snapshot, None, '2024-07-21', '2024-07-27')
        self.generator = ReportGenerator(technicians, date(2024, 7, 21), date(2024, 7, 27), 30)

    def test_to_dataframe(self):
        df = self.generator.to_dataframe()
        assert len(df) == 2
        first = df.iloc[0]
        assert first['Tech ID'] == 't1'
        assert first['Base Pay'] == 90.0
        assert first['Adjustments'] == 25.0
        assert first['Total Pay'] == 115.0

    def test_summary_row(self):
        summary = self.generator.get_summary_row()
        assert summary['Name'] == '2 Technicians'
        assert summary['Jobs'] == 2
        assert summary['Total Pay'] == 160.0
        assert summary['Company Margin'] == 200.0

    def test_jobs_dataframe_lists_jobs_then_adjustments(self):
        df = self.generator.jobs_dataframe(self.generator.technicians[0])
        assert list(df['Item']) == ['INSTALL', 'bonus: Weekend']
        assert list(df['Amount']) == [90.0, 25.0]

    def test_export_excel(self, tmp_path):
        output = tmp_path / 'reports' / 'payroll.xlsx'
        self.generator.export_excel(str(output))

        wb = load_workbook(output)
        assert wb.sheetnames == ['Payroll Summary', 'Zane Tech', 'Zane Tech 2']
        ws = wb['Payroll Summary']
        assert ws['A1'].value == 'Prime Communications'
        assert ws['A3'].value == 'Payment #30'
        assert ws['A5'].value == 'Name'
        assert ws['G6'].value == 115.0
        assert ws['A8'].value == '2 Technicians'

    def test_from_published(self):
        report = PublishedReport('2024-07-21_2024-07-27', date(2024, 7, 21), date(2024, 7, 27),
                                 30, date(2024, 7, 29), tuple(self.generator.technicians))
        generator = ReportGenerator.from_published(report)
        assert generator.payment_id == 30
        assert generator.get_summary_row()['Revenue'] == float(Decimal('360.00'))
