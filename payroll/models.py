"""Data models for Prime Payroll"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Literal, List, Dict, Any, Tuple, Union

from .money import to_decimal
from config import DEFAULT_PROFIT_SHARE

Role = Literal['worker', 'team-lead', 'supervisor', 'administrator']
ROLES = ('worker', 'team-lead', 'supervisor', 'administrator')

AdjustmentKind = Literal[
    'bonus', 'chargeback', 'loan-draw', 'loan-payment',
    'recurring-deduction', 'profit-share', 'equipment-rental', 'fee',
]
ADJUSTMENT_KINDS = (
    'bonus', 'chargeback', 'loan-draw', 'loan-payment',
    'recurring-deduction', 'profit-share', 'equipment-rental', 'fee',
)

DateLike = Union[date, datetime, str]

ReportStatus = Literal['draft', 'finalized']
REPORT_STATUSES = ('draft', 'finalized')


def parse_date(value: DateLike) -> date:
    """Accept a date, a datetime or an ISO string (YYYY-MM-DD)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def normalize_task_code(task_code: str) -> str:
    return str(task_code).strip().lower()


def job_key(work_order: str, task_code: str, technician_id: str) -> Tuple[str, str, str]:
    """Uniqueness key used for duplicate detection (case/whitespace-insensitive)."""
    return (
        str(work_order).strip().lower(),
        str(task_code).strip().lower(),
        str(technician_id).strip().lower(),
    )


def _optional_decimal(value) -> Optional[Decimal]:
    return None if value is None else to_decimal(value)


@dataclass
class Job:
    """One billable unit of field work, live until its window is finalized"""
    id: str
    work_order: str
    technician_id: str
    task_code: str
    quantity: Decimal
    revenue: Decimal  # billed to the client for the whole job
    job_date: date
    # None means "no override"; Decimal('0') pins the rate to zero
    rate_override: Optional[Decimal] = None
    aerial_drop: Optional[bool] = None

    def __post_init__(self):
        self.quantity = to_decimal(self.quantity)
        if self.quantity < 0:
            raise ValueError("Quantity cannot be negative")
        self.revenue = to_decimal(self.revenue)
        self.job_date = parse_date(self.job_date)
        self.rate_override = _optional_decimal(self.rate_override)
        if self.rate_override is not None and self.rate_override < 0:
            raise ValueError(f"Rate override for job {self.id} cannot be negative")

    @property
    def key(self) -> Tuple[str, str, str]:
        return job_key(self.work_order, self.task_code, self.technician_id)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'work_order': self.work_order,
            'technician_id': self.technician_id,
            'task_code': self.task_code,
            'quantity': str(self.quantity),
            'revenue': str(self.revenue),
            'job_date': self.job_date.isoformat(),
        }
        # Absent optional fields are omitted, never written as null
        if self.rate_override is not None:
            data['rate_override'] = str(self.rate_override)
        if self.aerial_drop is not None:
            data['aerial_drop'] = self.aerial_drop
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Job':
        return cls(
            id=str(data['id']),
            work_order=str(data.get('work_order', '')),
            technician_id=str(data['technician_id']),
            task_code=str(data['task_code']),
            quantity=data.get('quantity', 0),
            revenue=data.get('revenue', 0),
            job_date=data['job_date'],
            rate_override=data.get('rate_override'),
            aerial_drop=data.get('aerial_drop'),
        )


@dataclass
class Rate:
    task_code: str
    rate: Decimal

    def __post_init__(self):
        self.task_code = str(self.task_code).strip()
        self.rate = to_decimal(self.rate)
        if self.rate < 0:
            raise ValueError(f"Rate for {self.task_code} cannot be negative")


@dataclass
class RateCategory:
    """A named price list mapping task codes to pay rates"""
    id: str
    name: str
    rates: List[Rate] = field(default_factory=list)

    def __post_init__(self):
        rates = []
        seen = set()
        for entry in self.rates:
            if isinstance(entry, dict):
                entry = Rate(entry['task_code'], entry['rate'])
            elif not isinstance(entry, Rate):
                entry = Rate(*entry)
            code = normalize_task_code(entry.task_code)
            if code in seen:
                raise ValueError(f"Duplicate task code '{entry.task_code}' in category '{self.name}'")
            seen.add(code)
            rates.append(entry)
        self.rates = rates

    def rate_for(self, task_code: str) -> Optional[Decimal]:
        code = normalize_task_code(task_code)
        for entry in self.rates:
            if normalize_task_code(entry.task_code) == code:
                return entry.rate
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'rates': [{'task_code': r.task_code, 'rate': str(r.rate)} for r in self.rates],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RateCategory':
        return cls(id=str(data['id']), name=data.get('name', ''), rates=list(data.get('rates', [])))


@dataclass
class User:
    """A payroll participant; team leads carry a profit share"""
    id: str
    name: str
    role: Role = 'worker'
    rate_category_id: Optional[str] = None
    managed_by: Optional[str] = None  # id of the team lead this user reports to
    payout_overrides: Dict[str, Decimal] = field(default_factory=dict)
    profit_share: Optional[Decimal] = None

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Unknown role: {self.role}")
        self.payout_overrides = {
            normalize_task_code(code): to_decimal(rate)
            for code, rate in (self.payout_overrides or {}).items()
        }
        for code, rate in self.payout_overrides.items():
            if rate < 0:
                raise ValueError(f"Payout override for {code} cannot be negative")
        self.profit_share = _optional_decimal(self.profit_share)
        if self.profit_share is not None and not 0 <= self.profit_share <= 100:
            raise ValueError("Profit share must be between 0 and 100")

    @property
    def is_team_lead(self) -> bool:
        return self.role == 'team-lead'

    @property
    def profit_share_percent(self) -> Decimal:
        if self.profit_share is None:
            return Decimal(DEFAULT_PROFIT_SHARE)
        return self.profit_share

    def payout_override_for(self, task_code: str) -> Optional[Decimal]:
        return self.payout_overrides.get(normalize_task_code(task_code))

    def to_dict(self) -> Dict[str, Any]:
        data = {'id': self.id, 'name': self.name, 'role': self.role}
        if self.rate_category_id is not None:
            data['rate_category_id'] = self.rate_category_id
        if self.managed_by is not None:
            data['managed_by'] = self.managed_by
        if self.payout_overrides:
            data['payout_overrides'] = {k: str(v) for k, v in self.payout_overrides.items()}
        if self.profit_share is not None:
            data['profit_share'] = str(self.profit_share)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            id=str(data['id']),
            name=data.get('name', ''),
            role=data.get('role', 'worker'),
            rate_category_id=data.get('rate_category_id'),
            managed_by=data.get('managed_by'),
            payout_overrides=data.get('payout_overrides') or {},
            profit_share=data.get('profit_share'),
        )


@dataclass
class Adjustment:
    """Signed dollar amount on top of job earnings (positive = earning)"""
    id: str
    technician_id: str
    adjustment_date: date
    amount: Decimal
    kind: AdjustmentKind
    description: str = ""
    loan_id: Optional[str] = None

    def __post_init__(self):
        if self.kind not in ADJUSTMENT_KINDS:
            raise ValueError(f"Unknown adjustment kind: {self.kind}")
        self.adjustment_date = parse_date(self.adjustment_date)
        self.amount = to_decimal(self.amount)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'technician_id': self.technician_id,
            'adjustment_date': self.adjustment_date.isoformat(),
            'amount': str(self.amount),
            'kind': self.kind,
            'description': self.description,
        }
        if self.loan_id is not None:
            data['loan_id'] = self.loan_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Adjustment':
        return cls(
            id=str(data['id']),
            technician_id=str(data['technician_id']),
            adjustment_date=data['adjustment_date'],
            amount=data['amount'],
            kind=data['kind'],
            description=data.get('description', ''),
            loan_id=data.get('loan_id'),
        )


@dataclass
class Loan:
    id: str
    technician_id: str
    total_amount: Decimal
    remaining_balance: Decimal
    origination_date: date
    weekly_deduction: Decimal = Decimal('0')
    is_active: bool = True
    is_taxable: bool = False
    description: str = ""

    def __post_init__(self):
        self.total_amount = to_decimal(self.total_amount)
        self.remaining_balance = to_decimal(self.remaining_balance)
        self.weekly_deduction = to_decimal(self.weekly_deduction)
        self.origination_date = parse_date(self.origination_date)
        if self.weekly_deduction > self.total_amount:
            raise ValueError("Weekly deduction cannot exceed the loan amount")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'technician_id': self.technician_id,
            'total_amount': str(self.total_amount),
            'remaining_balance': str(self.remaining_balance),
            'origination_date': self.origination_date.isoformat(),
            'weekly_deduction': str(self.weekly_deduction),
            'is_active': self.is_active,
            'is_taxable': self.is_taxable,
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Loan':
        data = dict(data)
        data.setdefault('weekly_deduction', '0')
        data.setdefault('is_active', True)
        data.setdefault('is_taxable', False)
        data.setdefault('description', '')
        return cls(**data)


@dataclass
class RecurringAdjustment:
    """Fixed weekly amount that materializes once per reporting window"""
    id: str
    technician_id: str
    weekly_amount: Decimal  # signed; deductions are negative
    is_active: bool = True
    description: str = ""

    def __post_init__(self):
        self.weekly_amount = to_decimal(self.weekly_amount)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'technician_id': self.technician_id,
            'weekly_amount': str(self.weekly_amount),
            'is_active': self.is_active,
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecurringAdjustment':
        data = dict(data)
        data.setdefault('is_active', True)
        data.setdefault('description', '')
        return cls(**data)


@dataclass(frozen=True)
class ProcessedJob:
    """Immutable snapshot of a job as it was paid"""
    id: str
    work_order: str
    technician_id: str
    task_code: str
    quantity: Decimal
    revenue: Decimal
    job_date: date
    rate_applied: Decimal
    earning: Decimal
    rate_override: Optional[Decimal] = None
    aerial_drop: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'work_order': self.work_order,
            'technician_id': self.technician_id,
            'task_code': self.task_code,
            'quantity': str(self.quantity),
            'revenue': str(self.revenue),
            'job_date': self.job_date.isoformat(),
            'rate_applied': str(self.rate_applied),
            'earning': str(self.earning),
        }
        if self.rate_override is not None:
            data['rate_override'] = str(self.rate_override)
        if self.aerial_drop is not None:
            data['aerial_drop'] = self.aerial_drop
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProcessedJob':
        return cls(
            id=str(data['id']),
            work_order=data.get('work_order', ''),
            technician_id=str(data['technician_id']),
            task_code=data['task_code'],
            quantity=Decimal(data['quantity']),
            revenue=Decimal(data['revenue']),
            job_date=parse_date(data['job_date']),
            rate_applied=Decimal(data['rate_applied']),
            earning=Decimal(data['earning']),
            rate_override=_optional_decimal(data.get('rate_override')),
            aerial_drop=data.get('aerial_drop'),
        )


@dataclass(frozen=True)
class ProcessedTechnician:
    """Earnings report for one user over one window"""
    technician_id: str
    name: str
    job_count: int
    total_revenue: Decimal
    base_earnings: Decimal
    total_earnings: Decimal  # base earnings + adjustments
    company_margin: Decimal  # total revenue - total earnings
    average_per_job: Decimal
    adjustments: Tuple[Adjustment, ...] = ()
    processed_jobs: Tuple[ProcessedJob, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'technician_id': self.technician_id,
            'name': self.name,
            'job_count': self.job_count,
            'total_revenue': str(self.total_revenue),
            'base_earnings': str(self.base_earnings),
            'total_earnings': str(self.total_earnings),
            'company_margin': str(self.company_margin),
            'average_per_job': str(self.average_per_job),
            'adjustments': [a.to_dict() for a in self.adjustments],
            'processed_jobs': [j.to_dict() for j in self.processed_jobs],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProcessedTechnician':
        return cls(
            technician_id=str(data['technician_id']),
            name=data.get('name', ''),
            job_count=int(data.get('job_count', 0)),
            total_revenue=Decimal(data['total_revenue']),
            base_earnings=Decimal(data.get('base_earnings', '0')),
            total_earnings=Decimal(data['total_earnings']),
            company_margin=Decimal(data['company_margin']),
            average_per_job=Decimal(data.get('average_per_job', '0')),
            adjustments=tuple(Adjustment.from_dict(a) for a in data.get('adjustments', [])),
            processed_jobs=tuple(ProcessedJob.from_dict(j) for j in data.get('processed_jobs', [])),
        )


@dataclass(frozen=True)
class PublishedReport:
    """A published payroll window; payment_id is frozen at publication

    Reports start as drafts. Only a draft can be deleted.
    """
    id: str
    window_start: date
    window_end: date
    payment_id: int
    published_on: date
    technicians: Tuple[ProcessedTechnician, ...] = ()
    status: ReportStatus = 'draft'

    def __post_init__(self):
        if self.status not in REPORT_STATUSES:
            raise ValueError(f"Unknown report status: {self.status}")

    def technician(self, technician_id: str) -> Optional[ProcessedTechnician]:
        for entry in self.technicians:
            if entry.technician_id == technician_id:
                return entry
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'window_start': self.window_start.isoformat(),
            'window_end': self.window_end.isoformat(),
            'payment_id': self.payment_id,
            'published_on': self.published_on.isoformat(),
            'technicians': [t.to_dict() for t in self.technicians],
            'status': self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PublishedReport':
        return cls(
            id=data['id'],
            window_start=parse_date(data['window_start']),
            window_end=parse_date(data['window_end']),
            payment_id=int(data['payment_id']),
            published_on=parse_date(data['published_on']),
            technicians=tuple(ProcessedTechnician.from_dict(t) for t in data.get('technicians', [])),
            status=data.get('status', 'draft'),
        )


@dataclass
class PayrollSnapshot:
    """Consistent in-memory view of the live collections"""
    users: List[User] = field(default_factory=list)
    rate_categories: List[RateCategory] = field(default_factory=list)
    jobs: List[Job] = field(default_factory=list)
    adjustments: List[Adjustment] = field(default_factory=list)
    loans: List[Loan] = field(default_factory=list)
    recurring_adjustments: List[RecurringAdjustment] = field(default_factory=list)

    def user_map(self) -> Dict[str, User]:
        return {user.id: user for user in self.users}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'users': [u.to_dict() for u in self.users],
            'rate_categories': [c.to_dict() for c in self.rate_categories],
            'jobs': [j.to_dict() for j in self.jobs],
            'adjustments': [a.to_dict() for a in self.adjustments],
            'loans': [l.to_dict() for l in self.loans],
            'recurring_adjustments': [r.to_dict() for r in self.recurring_adjustments],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PayrollSnapshot':
        return cls(
            users=[User.from_dict(u) for u in data.get('users', [])],
            rate_categories=[RateCategory.from_dict(c) for c in data.get('rate_categories', [])],
            jobs=[Job.from_dict(j) for j in data.get('jobs', [])],
            adjustments=[Adjustment.from_dict(a) for a in data.get('adjustments', [])],
            loans=[Loan.from_dict(l) for l in data.get('loans', [])],
            recurring_adjustments=[RecurringAdjustment.from_dict(r)
                                   for r in data.get('recurring_adjustments', [])],
        )


@dataclass(frozen=True)
class DataQualityWarning:
    """Non-fatal problem found while processing; the run continues"""
    code: str
    message: str
    subject_id: Optional[str] = None


@dataclass(frozen=True)
class MutationResult:
    """Outcome of a mutation; on failure `collection` is the untouched input"""
    ok: bool
    collection: list
    message: str = ""
    applied_ids: Tuple[str, ...] = ()
    skipped_ids: Tuple[str, ...] = ()

    @property
    def applied(self) -> int:
        return len(self.applied_ids)

    @property
    def skipped(self) -> int:
        return len(self.skipped_ids)
