"""Tests for upload file parsing"""
import pytest
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pandas as pd

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from payroll.data_loader import DataLoader


class TestDataLoader:

    def test_load_csv_with_separate_columns(self, tmp_path):
        path = tmp_path / 'upload.csv'
        path.write_text(
            "Tech ID,Work Order,Task Code,Qty,Revenue,Date\n"
            "T1,WO-1,INSTALL,2,\"$1,240.50\",2024-07-22\n"
            "T2,WO-2,REPAIR,1,80,07/23/2024\n"
        )
        rows, warnings = DataLoader.load_upload(str(path))
        assert warnings == []
        assert len(rows) == 2
        assert rows[0].revenue == Decimal('1240.50')
        assert rows[0].quantity == Decimal('2')
        assert rows[0].row_number == 2
        assert rows[1].job_date == date(2024, 7, 23)

    def test_combined_column_and_default_date(self):
        df = pd.DataFrame({
            'TechID': ['T1'],
            'WO Task': ['WO-1 AERIAL DROP'],
            'Qty': ['1'],
            'Revenue Per': ['35'],
        })
        rows, warnings = DataLoader.rows_from_dataframe(df, date(2024, 7, 22))
        assert warnings == []
        assert rows[0].work_order == 'WO-1'
        assert rows[0].task_code == 'AERIAL DROP'
        assert rows[0].job_date == date(2024, 7, 22)
        assert rows[0].total_revenue() == Decimal('35')

    def test_missing_required_column(self):
        df = pd.DataFrame({'Tech ID': ['T1'], 'Qty': ['1']})
        with pytest.raises(ValueError, match='Missing required column'):
            DataLoader.rows_from_dataframe(df, date(2024, 7, 22))

    def test_bad_rows_become_warnings(self):
        df = pd.DataFrame({
            'Tech ID': ['T1', None, 'T3', 'T4'],
            'WO Task': ['WO-1 INSTALL', 'WO-2 INSTALL', 'WO3', 'WO-4 INSTALL'],
            'Qty': ['1', '1', '1', 'lots'],
            'Revenue': ['10', '10', '10', '10'],
        })
        rows, warnings = DataLoader.rows_from_dataframe(df, date(2024, 7, 22))
        assert [r.technician_id for r in rows] == ['T1']
        assert len(warnings) == 3
        assert all(w.code == 'unparseable_row' for w in warnings)

    def test_row_without_date_skipped(self):
        df = pd.DataFrame({
            'Tech ID': ['T1'], 'Work Order': ['WO-1'], 'Task': ['INSTALL'],
            'Qty': ['1'], 'Revenue': ['10'],
        })
        rows, warnings = DataLoader.rows_from_dataframe(df)
        assert rows == []
        assert 'no valid date' in warnings[0].message

    def test_load_snapshot(self, tmp_path):
        path = tmp_path / 'snapshot.json'
        path.write_text('{"users": [{"id": "t1", "name": "Zane", "role": "team-lead"}],'
                        ' "jobs": [{"id": "j1", "work_order": "WO-1", "technician_id": "t1",'
                        ' "task_code": "INSTALL", "quantity": 1, "revenue": 10.1,'
                        ' "job_date": "2024-07-22"}]}')
        snapshot = DataLoader.load_snapshot(str(path))
        assert snapshot.users[0].is_team_lead
        assert snapshot.jobs[0].revenue == Decimal('10.1')

    def test_infinite_quantity_is_a_bad_row(self):
        df = pd.DataFrame({
            'Tech ID': ['T1', 'T2'],
            'WO Task': ['WO-1 INSTALL', 'WO-2 INSTALL'],
            'Qty': ['inf', '1'],
            'Revenue': ['10', 'Infinity'],
        })
        rows, warnings = DataLoader.rows_from_dataframe(df, date(2024, 7, 22))
        assert rows == []
        assert [w.code for w in warnings] == ['unparseable_row', 'unparseable_row']
