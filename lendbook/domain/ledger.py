"""
Installment status state machine and agreement closure rules.

These functions hold no session and do no I/O; the ledger service applies
them to ORM entities inside a transaction. Any object exposing the expected
attributes (amount_cents, paid_amount_cents, status, due_date, number,
payments with date/sequence) works, which keeps them easy to test.
"""

from datetime import date
from typing import Iterable, Optional, Sequence

from lendbook.domain.exceptions import ValidationError
from lendbook.domain.models import DebtorSummary, InstallmentStatus, ReminderTarget


def remaining_cents(amount_cents: int, paid_amount_cents: int) -> int:
    """Face value minus what was paid, clamped at zero"""
    return max(amount_cents - paid_amount_cents, 0)


def is_overdue(status: str, due_date: date, reference: date) -> bool:
    """Derived overdue condition: not paid and past its due date"""
    return status != InstallmentStatus.PAID and due_date < reference


def validate_payment_amount(amount_cents: int, remaining: int) -> None:
    """Reject amounts that are not positive or would overpay the installment"""
    if amount_cents <= 0:
        raise ValidationError("Payment amount must be positive")
    if amount_cents > remaining:
        raise ValidationError(
            f"Payment amount {amount_cents} exceeds remaining amount {remaining}"
        )


def status_after_payment(current: str, amount_cents: int, paid_amount_cents: int) -> str:
    """Status once a payment has been added to paid_amount_cents"""
    if paid_amount_cents >= amount_cents:
        return InstallmentStatus.PAID.value
    if paid_amount_cents > 0:
        return InstallmentStatus.PARTIAL.value
    return current


def status_after_undo(
    current: str,
    amount_cents: int,
    paid_amount_cents: int,
    due_date: date,
    today: date,
) -> str:
    """
    Status once the latest payment has been reversed.

    Nothing left paid falls back to overdue or pending depending on the due
    date; a partially covered installment becomes partial. If the remaining
    payments still cover the face value the status is left alone.
    """
    if paid_amount_cents == 0:
        if due_date < today:
            return InstallmentStatus.OVERDUE.value
        return InstallmentStatus.PENDING.value
    if paid_amount_cents < amount_cents:
        return InstallmentStatus.PARTIAL.value
    return current


def is_agreement_closed(statuses: Iterable[str]) -> bool:
    """Closed iff there is at least one installment and all of them are paid"""
    statuses = list(statuses)
    return bool(statuses) and all(s == InstallmentStatus.PAID for s in statuses)


def latest_payment(payments: Sequence):
    """
    Most recent payment by date.

    Payments sharing a date are ordered by their per-installment sequence,
    so the one entered last wins.
    """
    if not payments:
        return None
    return max(payments, key=lambda p: (p.date, p.sequence))


def earliest_payment(payments: Sequence):
    """First payment by date, insertion order breaking ties"""
    if not payments:
        return None
    return min(payments, key=lambda p: (p.date, p.sequence))


def select_reminder_target(installments: Sequence, today: date) -> Optional[ReminderTarget]:
    """
    Pick the installment a reminder should point at.

    The earliest overdue open installment wins, otherwise the earliest upcoming
    one. Ties on due date are broken by installment number.
    """
    open_installments = [
        inst
        for inst in installments
        if remaining_cents(inst.amount_cents, inst.paid_amount_cents) > 0
    ]
    overdue = [inst for inst in open_installments if inst.due_date < today]
    candidates = overdue or [inst for inst in open_installments if inst.due_date >= today]
    if not candidates:
        return None

    target = min(candidates, key=lambda inst: (inst.due_date, inst.number))
    return ReminderTarget(
        installment_number=target.number,
        due_date=target.due_date,
        remaining_cents=remaining_cents(target.amount_cents, target.paid_amount_cents),
    )


def summarize_agreements(agreements: Sequence, today: date) -> DebtorSummary:
    """Totals over the agreements that are still open; closed ones only count toward total_agreements"""
    summary = DebtorSummary(total_agreements=len(agreements))

    for agreement in agreements:
        installments = agreement.installments
        if is_agreement_closed(inst.status for inst in installments):
            continue

        summary.active_agreements += 1
        for inst in installments:
            summary.total_installments += 1
            summary.total_amount_cents += inst.amount_cents
            summary.paid_amount_cents += min(inst.paid_amount_cents, inst.amount_cents)
            if inst.status == InstallmentStatus.PAID:
                summary.paid_installments += 1
            if is_overdue(inst.status, inst.due_date, today) or inst.status == InstallmentStatus.OVERDUE:
                summary.overdue_installments += 1

    summary.open_installments = max(summary.total_installments - summary.paid_installments, 0)
    return summary
