"""Local JSON payroll store - applies finalize requests as one atomic write"""
import json
import logging
import os
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import PreconditionError
from .finalize import FinalizeRequest
from .models import Job, PayrollSnapshot, PublishedReport
from .money import to_cents, from_cents
from config import DATA_DIR

logger = logging.getLogger(__name__)


class PayrollStore:
    """Keeps the live snapshot and the published reports in one state file

    Everything lives in a single file so a finalize (write report, drop
    consumed jobs and adjustments, pay down loans) lands in one os.replace.
    """

    def __init__(self, data_dir: str = DATA_DIR):
        self.data_dir = Path(data_dir)
        self.state_file = self.data_dir / "payroll_state.json"

        self.data_dir.mkdir(parents=True, exist_ok=True)
        if not self.state_file.exists():
            self._write_state(self._empty_state())

    @staticmethod
    def _empty_state() -> Dict[str, Any]:
        state = PayrollSnapshot().to_dict()
        state['reports'] = []
        return state

    # ============ SNAPSHOT ============

    def load_snapshot(self) -> PayrollSnapshot:
        """Get the live collections"""
        return PayrollSnapshot.from_dict(self._read_state())

    def save_snapshot(self, snapshot: PayrollSnapshot) -> None:
        """Replace the live collections, keeping published reports"""
        state = snapshot.to_dict()
        state['reports'] = self._read_state().get('reports', [])
        self._write_state(state)

    def add_jobs(self, new_jobs: List[Job]) -> List[Job]:
        """Append jobs to the live set"""
        snapshot = self.load_snapshot()
        snapshot.jobs.extend(new_jobs)
        self.save_snapshot(snapshot)
        return new_jobs

    def replace_jobs(self, jobs: List[Job]) -> None:
        """Swap in the job list returned by a batch mutation"""
        snapshot = self.load_snapshot()
        snapshot.jobs = list(jobs)
        self.save_snapshot(snapshot)

    # ============ REPORTS ============

    def get_reports(self) -> List[PublishedReport]:
        """Published reports, newest window first"""
        reports = [PublishedReport.from_dict(r) for r in self._read_state().get('reports', [])]
        return sorted(reports, key=lambda r: r.window_start, reverse=True)

    def get_report(self, report_id: str) -> Optional[PublishedReport]:
        for report in self.get_reports():
            if report.id == report_id:
                return report
        return None

    def apply_finalize(self, request: FinalizeRequest) -> bool:
        """
        Write a finalized window.

        Returns False without changing anything when the report was
        already published, so re-sending a request is harmless.
        """
        state = self._read_state()
        if any(r.get('id') == request.report_id for r in state.get('reports', [])):
            logger.info("Report %s already published; nothing to apply", request.report_id)
            return False

        snapshot = PayrollSnapshot.from_dict(state)
        consumed_jobs = set(request.consumed_job_ids)
        consumed_adjustments = set(request.consumed_adjustment_ids)
        snapshot.jobs = [j for j in snapshot.jobs if j.id not in consumed_jobs]
        snapshot.adjustments = [a for a in snapshot.adjustments if a.id not in consumed_adjustments]

        loans = []
        for loan in snapshot.loans:
            paid = request.loan_payments.get(loan.id)
            if paid:
                remaining = max(0, to_cents(loan.remaining_balance) - to_cents(paid))
                loan = replace(loan, remaining_balance=from_cents(remaining), is_active=remaining > 0)
            loans.append(loan)
        snapshot.loans = loans

        new_state = snapshot.to_dict()
        new_state['reports'] = state.get('reports', []) + [request.to_report().to_dict()]
        self._write_state(new_state)
        logger.info("Published report %s", request.report_id)
        return True

    def finalize_report(self, report_id: str) -> bool:
        """Lock a published report; False when no such report exists"""
        return self._set_status(report_id, 'finalized')

    def unfinalize_report(self, report_id: str) -> bool:
        """Move a finalized report back to draft"""
        return self._set_status(report_id, 'draft')

    def delete_report(self, report_id: str) -> bool:
        """
        Delete a draft report.

        Jobs and adjustments consumed by the report are not restored.

        Raises:
            PreconditionError: when the report is finalized
        """
        state = self._read_state()
        reports = state.get('reports', [])
        report = next((r for r in reports if r.get('id') == report_id), None)
        if report is None:
            return False
        if report.get('status', 'draft') == 'finalized':
            raise PreconditionError(f"Cannot delete finalized report {report_id}; un-finalize it first")
        state['reports'] = [r for r in reports if r.get('id') != report_id]
        self._write_state(state)
        logger.info("Deleted report %s", report_id)
        return True

    def _set_status(self, report_id: str, status: str) -> bool:
        state = self._read_state()
        found = False
        for report in state.get('reports', []):
            if report.get('id') == report_id:
                report['status'] = status
                found = True
        if found:
            self._write_state(state)
            logger.info("Report %s is now %s", report_id, status)
        return found

    # ============ FILE ============

    def _read_state(self) -> Dict[str, Any]:
        try:
            with open(self.state_file, 'r', encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError:
            return self._empty_state()

    def _write_state(self, state: Dict[str, Any]):
        """Write to a temp file in the same directory, then swap it in"""
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix='.payroll_state', suffix='.json')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(state, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.state_file)
        except BaseException:
            os.unlink(tmp_path)
            raise
