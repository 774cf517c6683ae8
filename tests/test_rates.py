"""Tests for rate resolution"""
import pytest
import sys
from decimal import Decimal
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from payroll.models import Job, User, RateCategory, Rate
from payroll.rates import resolve_rate, delete_rate_category


def make_job(task_code='INSTALL', **kwargs):
    defaults = dict(id='j1', work_order='WO1', technician_id='tech-1', task_code=task_code,
                    quantity=1, revenue=150, job_date='2024-07-22')
    defaults.update(kwargs)
    return Job(**defaults)


class TestResolveRate:
    """Precedence: job override > payout override > category > lead category > 0"""

    def setup_method(self):
        self.categories = [
            RateCategory('cat-std', 'Standard', [Rate('INSTALL', 80), Rate('Repair', '45.50')]),
            RateCategory('cat-lead', 'Lead', [Rate('INSTALL', 100)]),
        ]
        self.lead = User('lead-1', 'Lena Lead', role='team-lead', rate_category_id='cat-lead')
        self.worker = User('tech-1', 'Tom Tech', rate_category_id='cat-std')
        self.users = [self.lead, self.worker]

    def test_category_rate_when_no_overrides(self):
        rate = resolve_rate(make_job(), self.worker, self.users, self.categories)
        assert rate == Decimal('80')

    def test_task_code_match_ignores_case_and_whitespace(self):
        rate = resolve_rate(make_job(task_code='  repair '), self.worker, self.users, self.categories)
        assert rate == Decimal('45.50')

    def test_job_override_beats_everything(self):
        worker = User('tech-1', 'Tom Tech', rate_category_id='cat-std',
                      payout_overrides={'INSTALL': 90})
        rate = resolve_rate(make_job(rate_override=12), worker, self.users, self.categories)
        assert rate == Decimal('12')

    def test_zero_job_override_pins_rate_to_zero(self):
        rate = resolve_rate(make_job(rate_override=0), self.worker, self.users, self.categories)
        assert rate == Decimal('0')

    def test_payout_override_beats_category(self):
        worker = User('tech-1', 'Tom Tech', rate_category_id='cat-std',
                      payout_overrides={'install': 90})
        rate = resolve_rate(make_job(), worker, self.users, self.categories)
        assert rate == Decimal('90')

    def test_falls_back_to_team_lead_category(self):
        member = User('tech-2', 'Mia Member', managed_by='lead-1')
        rate = resolve_rate(make_job(technician_id='tech-2'), member,
                            self.users + [member], self.categories)
        assert rate == Decimal('100')

    def test_no_category_gives_zero_and_warning(self):
        loner = User('tech-3', 'Lou Loner')
        warnings = []
        rate = resolve_rate(make_job(technician_id='tech-3'), loner, [loner], self.categories, warnings)
        assert rate == Decimal('0')
        assert [w.code for w in warnings] == ['missing_rate_category']

    def test_unknown_category_reference_gives_zero(self):
        user = User('tech-4', 'Ghost', rate_category_id='cat-gone')
        warnings = []
        rate = resolve_rate(make_job(technician_id='tech-4'), user, [user], self.categories, warnings)
        assert rate == Decimal('0')
        assert warnings[0].code == 'missing_rate_category'

    def test_missing_task_code_gives_zero_and_warning(self):
        warnings = []
        rate = resolve_rate(make_job(task_code='SPLICE'), self.worker, self.users,
                            self.categories, warnings)
        assert rate == Decimal('0')
        assert warnings[0].code == 'missing_task_rate'
        assert warnings[0].subject_id == 'tech-1'


class TestRateCategory:
    def test_duplicate_task_codes_rejected(self):
        with pytest.raises(ValueError):
            RateCategory('c', 'Dup', [Rate('INSTALL', 1), Rate('install ', 2)])

    def test_rates_accept_dicts(self):
        category = RateCategory('c', 'Dicts', [{'task_code': 'A', 'rate': '1.25'}])
        assert category.rate_for('a') == Decimal('1.25')


class TestOverrideValidation:
    def test_negative_job_override_rejected(self):
        with pytest.raises(ValueError):
            Job('j1', 'WO-1', 't1', 'INSTALL', 1, 100, '2024-07-22', rate_override=-5)

    def test_negative_payout_override_rejected(self):
        with pytest.raises(ValueError):
            User('t1', 'Zane Tech', payout_overrides={'INSTALL': '-0.01'})

    def test_zero_overrides_allowed(self):
        job = Job('j1', 'WO-1', 't1', 'INSTALL', 1, 100, '2024-07-22', rate_override=0)
        user = User('t1', 'Zane Tech', payout_overrides={'INSTALL': 0})
        assert resolve_rate(job, user, [user], []) == Decimal('0')


class TestDeleteRateCategory:
    def test_refuses_while_assigned(self):
        categories = [RateCategory('c1', 'One'), RateCategory('c2', 'Two')]
        users = [User('u1', 'Ann', rate_category_id='c1')]

        result = delete_rate_category(categories, users, 'c1')

        assert result.ok is False
        assert 'Ann' in result.message
        assert result.collection is categories
        assert len(categories) == 2

    def test_deletes_unassigned(self):
        categories = [RateCategory('c1', 'One'), RateCategory('c2', 'Two')]
        result = delete_rate_category(categories, [], 'c2')
        assert result.ok is True
        assert [c.id for c in result.collection] == ['c1']
        assert result.applied_ids == ('c2',)
