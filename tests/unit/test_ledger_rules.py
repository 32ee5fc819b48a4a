"""Unit tests for the installment state machine and closure rules"""

import pytest
from datetime import date
from types import SimpleNamespace
from lendbook.domain.exceptions import ValidationError
from lendbook.domain.ledger import (
    earliest_payment,
    is_agreement_closed,
    is_overdue,
    latest_payment,
    remaining_cents,
    select_reminder_target,
    status_after_payment,
    status_after_undo,
    summarize_agreements,
    validate_payment_amount,
)
from lendbook.domain.models import InstallmentStatus

TODAY = date(2024, 6, 15)


def installment(number, due_date, amount=50000, paid=0, status="pending"):
    return SimpleNamespace(
        number=number, due_date=due_date, amount_cents=amount, paid_amount_cents=paid, status=status
    )


def payment(paid_on, sequence, amount=100):
    return SimpleNamespace(date=paid_on, sequence=sequence, amount_cents=amount)


def test_remaining_cents_clamps_at_zero():
    assert remaining_cents(50000, 20000) == 30000
    assert remaining_cents(50000, 60000) == 0


def test_is_overdue_is_derived_from_due_date():
    assert is_overdue("pending", date(2024, 6, 14), TODAY) is True
    assert is_overdue("partial", date(2024, 6, 14), TODAY) is True
    assert is_overdue("paid", date(2024, 6, 14), TODAY) is False
    assert is_overdue("pending", TODAY, TODAY) is False


@pytest.mark.parametrize("amount", [0, -100, 30001])
def test_validate_payment_amount_rejects(amount):
    with pytest.raises(ValidationError):
        validate_payment_amount(amount, remaining=30000)


def test_validate_payment_amount_accepts_exact_remaining():
    validate_payment_amount(30000, remaining=30000)


def test_status_after_payment():
    """Test partial then full payment transitions"""
    assert status_after_payment("pending", 50000, 20000) == InstallmentStatus.PARTIAL
    assert status_after_payment("partial", 50000, 50000) == InstallmentStatus.PAID
    assert status_after_payment("overdue", 50000, 10000) == InstallmentStatus.PARTIAL
    assert status_after_payment("pending", 50000, 0) == "pending"


def test_status_after_undo():
    """Test fallback statuses when a payment is reversed"""
    future = date(2024, 7, 1)
    past = date(2024, 6, 1)

    assert status_after_undo("paid", 50000, 0, future, TODAY) == InstallmentStatus.PENDING
    assert status_after_undo("paid", 50000, 0, past, TODAY) == InstallmentStatus.OVERDUE
    assert status_after_undo("paid", 50000, 20000, past, TODAY) == InstallmentStatus.PARTIAL
    # Still fully covered (e.g. after a manual override): untouched
    assert status_after_undo("paid", 50000, 50000, past, TODAY) == "paid"


def test_agreement_closure_rule():
    assert is_agreement_closed(["paid", "paid"]) is True
    assert is_agreement_closed(["paid", "partial"]) is False
    assert is_agreement_closed([]) is False


def test_agreement_closure_is_idempotent():
    statuses = ["paid", "paid", "paid"]
    assert is_agreement_closed(statuses) == is_agreement_closed(statuses)


def test_latest_payment_prefers_date_then_insertion_order():
    first = payment(date(2024, 6, 10), sequence=1)
    second_same_day = payment(date(2024, 6, 10), sequence=2)
    older_but_entered_last = payment(date(2024, 6, 1), sequence=3)

    payments = [first, older_but_entered_last, second_same_day]

    assert latest_payment(payments) is second_same_day
    assert earliest_payment(payments) is older_but_entered_last
    assert latest_payment([]) is None


def test_reminder_target_prefers_earliest_overdue():
    installments = [
        installment(3, date(2024, 7, 1)),
        installment(2, date(2024, 6, 1), paid=10000, status="partial"),
        installment(1, date(2024, 5, 1), paid=50000, status="paid"),
    ]

    target = select_reminder_target(installments, TODAY)

    assert target.installment_number == 2
    assert target.remaining_cents == 40000


def test_reminder_target_falls_back_to_upcoming():
    installments = [
        installment(2, date(2024, 8, 1)),
        installment(1, date(2024, 7, 1)),
    ]

    target = select_reminder_target(installments, TODAY)

    assert target.installment_number == 1
    assert target.due_date == date(2024, 7, 1)


def test_reminder_target_none_when_everything_paid():
    installments = [installment(1, date(2024, 5, 1), paid=50000, status="paid")]
    assert select_reminder_target(installments, TODAY) is None


def test_summarize_agreements_ignores_closed_agreements():
    closed = SimpleNamespace(installments=[installment(1, date(2024, 1, 1), paid=50000, status="paid")])
    active = SimpleNamespace(
        installments=[
            installment(1, date(2024, 5, 1), paid=50000, status="paid"),
            installment(2, date(2024, 6, 1), paid=10000, status="partial"),
            installment(3, date(2024, 7, 1)),
        ]
    )

    summary = summarize_agreements([closed, active], TODAY)

    assert summary.total_agreements == 2
    assert summary.active_agreements == 1
    assert summary.total_installments == 3
    assert summary.paid_installments == 1
    assert summary.open_installments == 2
    assert summary.overdue_installments == 1
    assert summary.total_amount_cents == 150000
    assert summary.paid_amount_cents == 60000
    assert summary.remaining_amount_cents == 90000
