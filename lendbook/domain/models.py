"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from lendbook.utils.date_utils import ensure_utc, utc_now

T = TypeVar("T")


class InstallmentStatus(str, Enum):
    """Stored installment status. OVERDUE is a manual marker, not derived from elapsed time"""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentMethod(str, Enum):
    PIX = "pix"
    CASH = "cash"
    TRANSFER = "transfer"
    OTHER = "other"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class InterestPolicy(str, Enum):
    """How a monthly rate turns into installment amounts"""

    FLAT = "flat"  # principal share + round(P * r) on every installment
    PRICE = "price"  # constant PMT (French amortization)


@dataclass(frozen=True)
class InstallmentSpec:
    """Single scheduled obligation produced at agreement creation"""

    number: int
    due_date: date
    amount_cents: int


@dataclass
class PaymentRecord:
    """Payment as seen by the scoring engine"""

    date: date
    amount_cents: int
    sequence: int = 0


@dataclass
class InstallmentRecord:
    """Installment history as seen by the scoring engine"""

    number: int
    due_date: date
    amount_cents: int
    paid_amount_cents: int
    status: str
    payments: List[PaymentRecord] = field(default_factory=list)

    @property
    def remaining_cents(self) -> int:
        return max(self.amount_cents - self.paid_amount_cents, 0)


@dataclass
class AgreementRecord:
    """Agreement history (open or closed) as seen by the scoring engine"""

    principal_cents: int
    start_date: date
    interest_rate_monthly: Optional[float]
    installments: List[InstallmentRecord] = field(default_factory=list)


@dataclass
class CreditMetrics:
    """Behavioral metrics extracted from a debtor's full ledger history"""

    total_agreements: int = 0
    total_installments: int = 0
    paid_on_time_count: int = 0
    paid_late_count: int = 0
    overdue_count: int = 0
    average_days_late: float = 0.0
    on_time_payment_rate: float = 0.0
    total_lent_cents: int = 0
    total_paid_cents: int = 0
    total_interest_earned_cents: int = 0
    current_outstanding_cents: int = 0
    first_agreement_date: Optional[date] = None
    last_payment_date: Optional[date] = None
    consecutive_on_time_payments: int = 0
    longest_delay_days: int = 0


@dataclass
class CreditAssessment:
    """Output of a credit score calculation"""

    score: int
    risk_level: RiskLevel
    metrics: CreditMetrics


@dataclass(frozen=True)
class ReminderTarget:
    """Installment a reminder should be scheduled for"""

    installment_number: int
    due_date: date
    remaining_cents: int


@dataclass
class DebtorSummary:
    """Ledger totals over a debtor's active (not closed) agreements"""

    total_agreements: int = 0
    active_agreements: int = 0
    total_installments: int = 0
    paid_installments: int = 0
    open_installments: int = 0
    overdue_installments: int = 0
    total_amount_cents: int = 0
    paid_amount_cents: int = 0

    @property
    def remaining_amount_cents(self) -> int:
        return max(self.total_amount_cents - self.paid_amount_cents, 0)


@dataclass(frozen=True)
class TimedValue(Generic[T]):
    """A cached value stamped with the moment it was computed"""

    value: T
    computed_at: datetime

    def age(self, now: datetime | None = None) -> timedelta:
        now = ensure_utc(now or utc_now())
        return now - ensure_utc(self.computed_at)

    def is_stale(self, ttl: timedelta, now: datetime | None = None) -> bool:
        return self.age(now) >= ttl
