"""Installment schedule generation for debt agreements"""

from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional

from lendbook.domain.exceptions import ValidationError
from lendbook.domain.models import InstallmentSpec, InterestPolicy
from lendbook.utils.date_utils import add_months

RATE_PLACES = Decimal("0.000001")

# Storage limits: amounts live in signed 64-bit integer columns
MAX_CENTS = 2**63 - 1
MAX_INSTALLMENTS = 600  # 50 years of monthly installments
MAX_MONTHLY_RATE = Decimal(1)


def round_cents(value: Decimal) -> int:
    """Round a cent amount to a whole cent, half away from zero"""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def normalize_monthly_rate(rate: Decimal | float | str | None) -> Optional[Decimal]:
    """
    Normalize a monthly interest rate to a fraction.

    Values above 1 are read as percentages (2 -> 0.02), so callers can pass
    either form. None stays None; negative, non-finite and above-100% rates
    are rejected.
    """
    if rate is None:
        return None
    try:
        value = Decimal(str(rate))
    except InvalidOperation as e:
        raise ValidationError(f"Invalid interest rate: {rate}") from e
    if not value.is_finite():
        raise ValidationError(f"Invalid interest rate: {rate}")
    if value < 0:
        raise ValidationError("Interest rate cannot be negative")
    if value > 1:
        value = (value / 100).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)
    if value > MAX_MONTHLY_RATE:
        raise ValidationError("Interest rate cannot exceed 100% a month")
    return value


def generate_installment_schedule(
    principal_cents: int,
    installment_count: int,
    first_due_date: date,
    monthly_interest_rate: Decimal | float | None = None,
    policy: InterestPolicy = InterestPolicy.FLAT,
) -> List[InstallmentSpec]:
    """
    Generate monthly installments for a new agreement.

    Requirements:
    - Installments numbered 1..n, due on first_due_date advanced by calendar months
    - Without interest, each amount is round(P / n) and the last installment absorbs
      the rounding remainder so the amounts sum to the principal exactly
    - With interest under the flat policy every installment carries the same markup
      round(P * r); under the price policy every installment is the rounded PMT

    Example:
        120000 cents, 3 installments, no interest
        -> [40000, 40000, 40000] due 2024-01-01, 2024-02-01, 2024-03-01
    """
    if principal_cents <= 0:
        raise ValidationError("Principal must be positive")
    if principal_cents > MAX_CENTS:
        raise ValidationError(f"Principal cannot exceed {MAX_CENTS} cents")
    if installment_count < 1:
        raise ValidationError("Installment count must be at least 1")
    if installment_count > MAX_INSTALLMENTS:
        raise ValidationError(f"Installment count cannot exceed {MAX_INSTALLMENTS}")

    rate = normalize_monthly_rate(monthly_interest_rate) or Decimal(0)
    principal = Decimal(principal_cents)

    if rate > 0 and InterestPolicy(policy) is InterestPolicy.PRICE:
        payment = round_cents(_price_payment(principal, rate, installment_count))
        amounts = [payment] * installment_count
    else:
        markup = round_cents(principal * rate) if rate > 0 else 0
        base = round_cents(principal / installment_count)
        # Last installment absorbs the remainder to keep the principal exact
        last = principal_cents - base * (installment_count - 1)
        amounts = [base + markup] * (installment_count - 1) + [last + markup]

    if any(amount <= 0 for amount in amounts):
        raise ValidationError("Principal too small for the number of installments")
    if any(amount > MAX_CENTS for amount in amounts):
        raise ValidationError(f"Installment amount cannot exceed {MAX_CENTS} cents")

    try:
        due_dates = [add_months(first_due_date, index) for index in range(installment_count)]
    except (ValueError, OverflowError) as e:
        raise ValidationError("Installment due dates fall beyond supported date range") from e

    return [
        InstallmentSpec(number=index + 1, due_date=due_date, amount_cents=amount)
        for index, (due_date, amount) in enumerate(zip(due_dates, amounts))
    ]


def _price_payment(principal: Decimal, rate: Decimal, count: int) -> Decimal:
    """PMT = P * i * (1+i)^n / ((1+i)^n - 1)"""
    growth = (1 + rate) ** count
    denominator = growth - 1
    if denominator == 0:
        return principal / count
    return principal * rate * growth / denominator
