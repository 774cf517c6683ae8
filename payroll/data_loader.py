"""Data loading utilities for Prime Payroll"""
import json
import logging
from datetime import datetime, date
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from .batch import UploadRow
from .models import PayrollSnapshot, DataQualityWarning
from .money import to_decimal
from config import UPLOAD_COLUMNS, DATE_FORMATS

logger = logging.getLogger(__name__)


def _parse_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    # Excel dates read as text come back as "2024-07-21 00:00:00"
    text = text.split(' ')[0]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _cell(row, column: str):
    if column not in row.index:
        return None
    value = row[column]
    if pd.isna(value):
        return None
    value = str(value).strip()
    return value or None


class DataLoader:
    """
    Load upload rows and snapshots from files.
    """

    @staticmethod
    def read_table(filepath: str) -> pd.DataFrame:
        """Read an Excel or CSV file with every cell kept as text."""
        path = Path(filepath)
        if path.suffix.lower() == '.csv':
            return pd.read_csv(path, dtype=str)
        return pd.read_excel(path, dtype=str)

    @staticmethod
    def load_upload(filepath: str, job_date: Optional[date] = None
                    ) -> Tuple[List[UploadRow], List[DataQualityWarning]]:
        """
        Load job rows from an upload file.

        Expected columns (header aliases in config.UPLOAD_COLUMNS):
        - Tech ID
        - Work Order and Task Code, or one combined "WO Task" column
        - Qty
        - Revenue (row total) or Revenue Per (per unit)
        - Date (optional, falls back to job_date)

        Args:
            filepath: Path to Excel/CSV file
            job_date: Date used for rows without their own date

        Returns:
            (rows, warnings) - unusable rows are reported, not raised
        """
        return DataLoader.rows_from_dataframe(DataLoader.read_table(filepath), job_date)

    @staticmethod
    def rows_from_dataframe(df: pd.DataFrame, job_date: Optional[date] = None
                            ) -> Tuple[List[UploadRow], List[DataQualityWarning]]:
        df = df.copy()
        # Normalize column names
        df.columns = df.columns.str.strip().str.lower()
        df = df.rename(columns={c: UPLOAD_COLUMNS[c] for c in df.columns if c in UPLOAD_COLUMNS})

        columns = set(df.columns)
        missing = []
        if 'technician_id' not in columns:
            missing.append('Tech ID')
        if 'quantity' not in columns:
            missing.append('Qty')
        if 'combo' not in columns and not {'work_order', 'task_code'} <= columns:
            missing.append('Work Order / Task Code')
        if 'revenue' not in columns and 'revenue_per_unit' not in columns:
            missing.append('Revenue or Revenue Per')
        if missing:
            raise ValueError(f"Missing required column(s): {', '.join(missing)}.")

        rows = []
        warnings = []

        def skip(row_num: int, reason: str):
            message = f"Skipping row {row_num}: {reason}"
            logger.warning(message)
            warnings.append(DataQualityWarning('unparseable_row', message))

        for index, row in df.reset_index(drop=True).iterrows():
            row_num = index + 2  # header is row 1

            if 'combo' in columns:
                combo = _cell(row, 'combo')
                parts = combo.split(' ', 1) if combo else []
                if len(parts) != 2 or not parts[1].strip():
                    skip(row_num, f'could not split work order and task code from "{combo}"')
                    continue
                work_order, task_code = parts[0], parts[1].strip()
            else:
                work_order = _cell(row, 'work_order')
                task_code = _cell(row, 'task_code')

            technician_id = _cell(row, 'technician_id')
            quantity = _cell(row, 'quantity')
            if not technician_id or not work_order or not task_code or quantity is None:
                skip(row_num, "missing one or more required values")
                continue

            row_date = job_date
            raw_date = _cell(row, 'date')
            if raw_date is not None:
                row_date = _parse_date(raw_date)
            if row_date is None:
                skip(row_num, "no valid date")
                continue

            try:
                quantity = to_decimal(quantity)
                revenue = _cell(row, 'revenue')
                per_unit = _cell(row, 'revenue_per_unit')
                upload_row = UploadRow(
                    technician_id=technician_id,
                    task_code=task_code,
                    work_order=work_order,
                    quantity=quantity,
                    job_date=row_date,
                    revenue=to_decimal(revenue) if revenue is not None else None,
                    revenue_per_unit=to_decimal(per_unit) if per_unit is not None else None,
                    technician_name=_cell(row, 'technician_name') or '',
                    row_number=row_num,
                )
                upload_row.total_revenue()
            except (ValueError, ArithmeticError) as e:
                skip(row_num, f"invalid revenue or quantity ({e})")
                continue
            rows.append(upload_row)

        return rows, warnings

    @staticmethod
    def load_snapshot(filepath: str) -> PayrollSnapshot:
        """
        Load a snapshot from a JSON file.

        Expected format:
        {
            "users": [{"id": "u1", "name": "Jane", "role": "worker", ...}],
            "rate_categories": [{"id": "c1", "name": "Standard", "rates": [...]}],
            "jobs": [...], "adjustments": [...], "loans": [...],
            "recurring_adjustments": [...]
        }
        """
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return PayrollSnapshot.from_dict(data)
