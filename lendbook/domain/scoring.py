"""Credit scoring engine - turns a debtor's ledger history into a score and risk tier"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from lendbook.domain.ledger import earliest_payment
from lendbook.domain.models import (
    AgreementRecord,
    CreditAssessment,
    CreditMetrics,
    InstallmentStatus,
    RiskLevel,
)
from lendbook.utils.date_utils import days_between, months_between

NEUTRAL_SCORE = 50

# Component weights (points out of 100)
ON_TIME_WEIGHT = 40
AVERAGE_DELAY_WEIGHT = 25
CURRENT_OVERDUE_WEIGHT = 20
RELATIONSHIP_WEIGHT = 10
RECENT_STREAK_WEIGHT = 5

# Saturation points for each normalized component
DELAY_CEILING_DAYS = 30
OVERDUE_CEILING = 5
RELATIONSHIP_FULL_MONTHS = 12
STREAK_FULL_COUNT = 3


def extract_credit_metrics(agreements: List[AgreementRecord], today: date) -> CreditMetrics:
    """
    Walk every installment of every agreement (closed ones included) in due-date
    order and extract the behavioral metrics the score is built from.

    Requirements:
    - Paid installments are on time when their earliest payment is on or before the due date
    - Unpaid installments past due with something left to pay count as current overdue exposure
    - Average lateness pools late-paid and currently overdue installments
    - The streak counts on-time paid installments and resets on any late or overdue one;
      installments not yet due are not history and leave it untouched
    """
    metrics = CreditMetrics(total_agreements=len(agreements))

    for agreement in agreements:
        metrics.total_lent_cents += agreement.principal_cents
        if agreement.interest_rate_monthly and agreement.interest_rate_monthly > 0:
            scheduled = sum(inst.amount_cents for inst in agreement.installments)
            metrics.total_interest_earned_cents += scheduled - agreement.principal_cents
        if metrics.first_agreement_date is None or agreement.start_date < metrics.first_agreement_date:
            metrics.first_agreement_date = agreement.start_date

    installments = sorted(
        (inst for agreement in agreements for inst in agreement.installments),
        key=lambda inst: (inst.due_date, inst.number),
    )
    metrics.total_installments = len(installments)

    total_days_late = 0
    late_count = 0
    streak = 0

    for installment in installments:
        metrics.total_paid_cents += installment.paid_amount_cents

        for payment in installment.payments:
            if metrics.last_payment_date is None or payment.date > metrics.last_payment_date:
                metrics.last_payment_date = payment.date

        if installment.status == InstallmentStatus.PAID:
            first = earliest_payment(installment.payments)
            if first is None:
                # Forced to paid without any payment record: no timing to judge
                continue

            days_late = days_between(installment.due_date, first.date)
            if days_late <= 0:
                metrics.paid_on_time_count += 1
                streak += 1
            else:
                metrics.paid_late_count += 1
                total_days_late += days_late
                late_count += 1
                streak = 0
                metrics.longest_delay_days = max(metrics.longest_delay_days, days_late)

        elif installment.due_date < today and installment.remaining_cents > 0:
            days_late = days_between(installment.due_date, today)
            metrics.overdue_count += 1
            total_days_late += days_late
            late_count += 1
            streak = 0
            metrics.longest_delay_days = max(metrics.longest_delay_days, days_late)
            metrics.current_outstanding_cents += installment.remaining_cents

        else:
            metrics.current_outstanding_cents += installment.remaining_cents

    paid_count = metrics.paid_on_time_count + metrics.paid_late_count
    metrics.on_time_payment_rate = metrics.paid_on_time_count / paid_count if paid_count else 0.0
    metrics.average_days_late = total_days_late / late_count if late_count else 0.0
    metrics.consecutive_on_time_payments = streak

    return metrics


def on_time_component(rate: float) -> float:
    return min(max(rate, 0.0), 1.0) * ON_TIME_WEIGHT


def average_delay_component(average_days_late: float) -> float:
    normalized = min(max(average_days_late, 0.0) / DELAY_CEILING_DAYS, 1.0)
    return (1.0 - normalized) * AVERAGE_DELAY_WEIGHT


def current_overdue_component(overdue_count: int) -> float:
    normalized = min(max(overdue_count, 0) / OVERDUE_CEILING, 1.0)
    return (1.0 - normalized) * CURRENT_OVERDUE_WEIGHT


def relationship_component(first_agreement_date: date | None, today: date) -> float:
    if first_agreement_date is None:
        return 0.0
    months = months_between(first_agreement_date, today)
    return min(months / RELATIONSHIP_FULL_MONTHS, 1.0) * RELATIONSHIP_WEIGHT


def recent_streak_component(consecutive_on_time: int) -> float:
    return min(max(consecutive_on_time, 0) / STREAK_FULL_COUNT, 1.0) * RECENT_STREAK_WEIGHT


def calculate_credit_score(metrics: CreditMetrics, today: date) -> int:
    """
    Calculate the composite score from 0 (highest risk) to 100 (lowest risk).

    Scoring weights (each component bounded to its share before summing):
    - 40: On-time payment rate
    - 25: Average days late (30+ days average scores 0)
    - 20: Installments currently overdue (5+ scores 0)
    - 10: Relationship length (12+ months scores full)
    - 5:  Current on-time streak (3+ scores full)
    """
    total = (
        on_time_component(metrics.on_time_payment_rate)
        + average_delay_component(metrics.average_days_late)
        + current_overdue_component(metrics.overdue_count)
        + relationship_component(metrics.first_agreement_date, today)
        + recent_streak_component(metrics.consecutive_on_time_payments)
    )
    rounded = int(Decimal(str(total)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(0, min(100, rounded))


def classify_risk(score: int) -> RiskLevel:
    """
    Map score to risk tier.

    - 75-100: low
    - 40-74:  medium
    - 0-39:   high
    """
    if score >= 75:
        return RiskLevel.LOW
    elif score >= 40:
        return RiskLevel.MEDIUM
    else:
        return RiskLevel.HIGH


def assess_credit(agreements: List[AgreementRecord], today: date) -> CreditAssessment:
    """
    Main entry point: metrics, score and risk tier for one debtor.

    A debtor without agreements gets the neutral score and medium risk.
    """
    if not agreements:
        return CreditAssessment(
            score=NEUTRAL_SCORE,
            risk_level=RiskLevel.MEDIUM,
            metrics=CreditMetrics(),
        )

    metrics = extract_credit_metrics(agreements, today)
    score = calculate_credit_score(metrics, today)

    return CreditAssessment(
        score=score,
        risk_level=classify_risk(score),
        metrics=metrics,
    )
