"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import List, Optional

from lendbook.domain.installments import MAX_CENTS, MAX_INSTALLMENTS
from lendbook.domain.models import InstallmentStatus, InterestPolicy, PaymentMethod, RiskLevel


class DebtorCreate(BaseModel):
    """Request body for POST /v1/debtors"""

    name: str = Field(..., min_length=1, description="Display name")
    phone: Optional[str] = None
    note: Optional[str] = None


class ArchiveRequest(BaseModel):
    """Request body for POST /v1/debtors/{id}/archive (omit `archived` to toggle)"""

    archived: Optional[bool] = None


class DebtorSummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_agreements: int
    active_agreements: int
    total_installments: int
    paid_installments: int
    open_installments: int
    overdue_installments: int
    total_amount_cents: int
    paid_amount_cents: int
    remaining_amount_cents: int


class DebtorResponse(BaseModel):
    """Debtor with ledger totals"""

    id: str
    name: str
    phone: Optional[str] = None
    note: Optional[str] = None
    archived: bool
    summary: Optional[DebtorSummarySchema] = None


class AgreementCreate(BaseModel):
    """Request body for POST /v1/debtors/{id}/agreements"""

    principal_cents: int = Field(..., gt=0, le=MAX_CENTS, description="Amount lent in cents")
    installment_count: int = Field(..., ge=1, le=MAX_INSTALLMENTS)
    start_date: date = Field(..., description="Due date of the first installment")
    monthly_interest_rate: Optional[float] = Field(
        None,
        ge=0,
        le=100,
        allow_inf_nan=False,
        description="Monthly rate as a fraction (0.02) or percentage (2)",
    )
    interest_policy: Optional[InterestPolicy] = None
    currency_code: Optional[str] = Field(None, min_length=3, max_length=3)
    title: Optional[str] = None


class PaymentSchema(BaseModel):
    id: str
    paid_on: date
    amount_cents: int
    method: str
    note: Optional[str] = None


class InstallmentSchema(BaseModel):
    """Single installment with its payments"""

    id: str
    number: int
    due_date: date
    amount_cents: int
    paid_amount_cents: int
    remaining_cents: int
    status: str
    is_overdue: bool
    payments: List[PaymentSchema] = []


class AgreementResponse(BaseModel):
    """Agreement with its installment schedule"""

    id: str
    debtor_id: str
    title: Optional[str] = None
    principal_cents: int
    start_date: date
    installment_count: int
    monthly_interest_rate: Optional[float] = None
    currency_code: str
    closed: bool
    installments: List[InstallmentSchema]


class PaymentCreate(BaseModel):
    """Request body for POST /v1/installments/{id}/payments"""

    amount_cents: int = Field(..., description="Amount paid in cents")
    paid_on: Optional[date] = Field(None, description="Payment date (default: today)")
    method: PaymentMethod = PaymentMethod.OTHER
    note: Optional[str] = None


class MarkPaidRequest(BaseModel):
    method: PaymentMethod = PaymentMethod.OTHER


class StatusOverride(BaseModel):
    """Manual status correction; bypasses amount consistency checks"""

    status: InstallmentStatus


class CreditProfileResponse(BaseModel):
    """Response for GET /v1/debtors/{id}/credit-profile"""

    debtor_id: str
    score: int
    risk_level: RiskLevel
    last_calculated: datetime
    total_agreements: int
    total_installments: int
    paid_on_time_count: int
    paid_late_count: int
    overdue_count: int
    average_days_late: float
    on_time_payment_rate: float
    total_lent_cents: int
    total_paid_cents: int
    total_interest_earned_cents: int
    current_outstanding_cents: int
    first_agreement_date: Optional[date] = None
    last_payment_date: Optional[date] = None
    consecutive_on_time_payments: int
    longest_delay_days: int
    return_on_investment: float
    profit_margin: float
    collection_rate: float


class InstallmentChangeResponse(BaseModel):
    """Installment state after a ledger operation, with its agreement's closure"""

    installment: InstallmentSchema
    agreement_id: str
    agreement_closed: bool


def build_installment_schema(installment, today: date) -> InstallmentSchema:
    return InstallmentSchema(
        id=str(installment.id),
        number=installment.number,
        due_date=installment.due_date,
        amount_cents=installment.amount_cents,
        paid_amount_cents=installment.paid_amount_cents,
        remaining_cents=installment.remaining_cents,
        status=installment.status,
        is_overdue=installment.is_overdue(today),
        payments=[
            PaymentSchema(
                id=str(p.id),
                paid_on=p.date,
                amount_cents=p.amount_cents,
                method=p.method,
                note=p.note,
            )
            for p in sorted(installment.payments, key=lambda p: (p.date, p.sequence), reverse=True)
        ],
    )


def build_agreement_response(agreement, today: date) -> AgreementResponse:
    return AgreementResponse(
        id=str(agreement.id),
        debtor_id=str(agreement.debtor_id),
        title=agreement.title,
        principal_cents=agreement.principal_cents,
        start_date=agreement.start_date,
        installment_count=agreement.installment_count,
        monthly_interest_rate=agreement.interest_rate_monthly,
        currency_code=agreement.currency_code,
        closed=agreement.closed,
        installments=[
            build_installment_schema(inst, today)
            for inst in sorted(agreement.installments, key=lambda inst: inst.number)
        ],
    )
