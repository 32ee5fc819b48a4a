"""Ledger operations: debtors, agreements, payments and installment status"""

import logging
import uuid
from datetime import date
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from lendbook.config import settings
from lendbook.domain.events import EventBus, LedgerEvent, LedgerEventKind
from lendbook.domain.exceptions import NotFoundError, ValidationError
from lendbook.domain.installments import generate_installment_schedule, normalize_monthly_rate
from lendbook.domain.ledger import (
    is_agreement_closed,
    latest_payment,
    select_reminder_target,
    status_after_payment,
    status_after_undo,
    summarize_agreements,
    validate_payment_amount,
)
from lendbook.domain.models import DebtorSummary, InstallmentStatus, InterestPolicy, PaymentMethod
from lendbook.infrastructure.database.models import Agreement, Debtor, Installment, Payment
from lendbook.infrastructure.database.repositories import (
    AgreementRepository,
    DebtorRepository,
    InstallmentRepository,
)
from lendbook.infrastructure.database.session import commit_or_rollback
from lendbook.infrastructure.observability.logging import log_ledger_operation
from lendbook.infrastructure.observability.metrics import record_closure_transition, record_ledger_operation

logger = logging.getLogger(__name__)


def _normalized(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class LedgerService:
    """
    Transactional ledger operations.

    Each public mutation validates its input before touching any entity,
    applies the installment state machine, recomputes the owning agreement's
    closure, and commits everything as one unit. Events are published only
    after the commit succeeds.
    """

    def __init__(
        self,
        db: Session,
        event_bus: Optional[EventBus] = None,
        today: Callable[[], date] = date.today,
    ):
        self.db = db
        self.event_bus = event_bus or EventBus()
        self.today = today
        self.debtors = DebtorRepository(db)
        self.agreements = AgreementRepository(db)
        self.installments = InstallmentRepository(db)

    # Lookups

    def get_debtor(self, debtor_id: uuid.UUID) -> Debtor:
        debtor = self.debtors.get(debtor_id)
        if debtor is None:
            raise NotFoundError(f"Debtor {debtor_id} not found")
        return debtor

    def get_agreement(self, agreement_id: uuid.UUID) -> Agreement:
        agreement = self.agreements.get(agreement_id)
        if agreement is None:
            raise NotFoundError(f"Agreement {agreement_id} not found")
        return agreement

    def get_installment(self, installment_id: uuid.UUID) -> Installment:
        installment = self.installments.get(installment_id)
        if installment is None:
            raise NotFoundError(f"Installment {installment_id} not found")
        return installment

    def list_installments(self, agreement_id: uuid.UUID) -> List[Installment]:
        self.get_agreement(agreement_id)
        return self.installments.list_for_agreement(agreement_id)

    def summarize_debtor(self, debtor_id: uuid.UUID) -> DebtorSummary:
        self.get_debtor(debtor_id)
        return summarize_agreements(self.agreements.get_by_debtor(debtor_id), self.today())

    # Debtors

    def create_debtor(self, name: str, phone: Optional[str] = None, note: Optional[str] = None) -> Debtor:
        normalized_name = _normalized(name)
        if not normalized_name:
            raise ValidationError("Debtor name cannot be empty")

        debtor = self.debtors.add(normalized_name, _normalized(phone), _normalized(note))
        self._commit("create_debtor")
        self._publish(LedgerEvent(kind=LedgerEventKind.DEBTOR_CHANGED, debtor_id=debtor.id))
        return debtor

    def set_archived(self, debtor_id: uuid.UUID, archived: Optional[bool] = None) -> Debtor:
        """Archive or unarchive a debtor; without an explicit value the flag is toggled"""
        debtor = self.get_debtor(debtor_id)
        debtor.archived = (not debtor.archived) if archived is None else archived
        self._commit("archive_debtor")
        self._publish(LedgerEvent(kind=LedgerEventKind.DEBTOR_CHANGED, debtor_id=debtor.id))
        return debtor

    def delete_debtor(self, debtor_id: uuid.UUID) -> None:
        debtor = self.get_debtor(debtor_id)
        agreement_ids = [agreement.id for agreement in debtor.agreements]
        self.debtors.delete(debtor)
        self._commit("delete_debtor")

        for agreement_id in agreement_ids:
            self._publish(
                LedgerEvent(
                    kind=LedgerEventKind.AGREEMENT_DELETED,
                    debtor_id=debtor_id,
                    agreement_id=agreement_id,
                    agreement_closed=True,
                )
            )
        self._publish(LedgerEvent(kind=LedgerEventKind.DEBTOR_CHANGED, debtor_id=debtor_id))

    # Agreements

    def create_agreement(
        self,
        debtor_id: uuid.UUID,
        principal_cents: int,
        installment_count: int,
        start_date: date,
        monthly_interest_rate: Optional[float] = None,
        currency_code: Optional[str] = None,
        title: Optional[str] = None,
        interest_policy: Optional[InterestPolicy] = None,
    ) -> Agreement:
        """Create an agreement and its whole installment schedule in one commit"""
        debtor = self.get_debtor(debtor_id)

        rate = normalize_monthly_rate(monthly_interest_rate)
        try:
            policy = InterestPolicy(interest_policy or settings.interest_policy)
        except ValueError as e:
            raise ValidationError(f"Unknown interest policy: {interest_policy}") from e

        schedule = generate_installment_schedule(
            principal_cents=principal_cents,
            installment_count=installment_count,
            first_due_date=start_date,
            monthly_interest_rate=rate,
            policy=policy,
        )

        agreement = self.agreements.create_agreement(
            debtor=debtor,
            principal_cents=principal_cents,
            start_date=start_date,
            installment_count=installment_count,
            currency_code=(currency_code or settings.default_currency).upper(),
            interest_rate_monthly=float(rate) if rate is not None else None,
            title=_normalized(title),
            schedule=schedule,
        )
        agreement.closed = is_agreement_closed(inst.status for inst in agreement.installments)
        self._commit("create_agreement")

        log_ledger_operation("create_agreement", agreement.id, amount_cents=principal_cents)
        self._publish(self._agreement_event(LedgerEventKind.AGREEMENT_CREATED, agreement))
        return agreement

    def delete_agreement(self, agreement_id: uuid.UUID) -> None:
        agreement = self.get_agreement(agreement_id)
        debtor_id = agreement.debtor_id
        self.agreements.delete(agreement)
        self._commit("delete_agreement")

        self._publish(
            LedgerEvent(
                kind=LedgerEventKind.AGREEMENT_DELETED,
                debtor_id=debtor_id,
                agreement_id=agreement_id,
                agreement_closed=True,
            )
        )

    def refresh_closure(self, agreement: Agreement) -> bool:
        """Recompute agreement.closed from its installments; returns whether it changed"""
        closed = is_agreement_closed(inst.status for inst in agreement.installments)
        changed = bool(agreement.closed) != closed
        agreement.closed = closed
        return changed

    # Payments

    def register_payment(
        self,
        installment_id: uuid.UUID,
        amount_cents: int,
        paid_on: date,
        method: PaymentMethod | str = PaymentMethod.OTHER,
        note: Optional[str] = None,
    ) -> Payment:
        """
        Record a payment against an installment.

        Rejected without side effects when the amount is not positive or exceeds
        what is left to pay. The installment becomes paid once fully covered,
        partial otherwise, and the agreement closes when nothing is left open.
        """
        installment = self.get_installment(installment_id)
        payment_method = self._payment_method(method)
        try:
            validate_payment_amount(amount_cents, installment.remaining_cents)
        except ValidationError:
            record_ledger_operation("register_payment", "rejected")
            raise

        return self._apply_payment("register_payment", installment, amount_cents, paid_on, payment_method, note)

    def mark_as_paid(self, installment_id: uuid.UUID, method: PaymentMethod | str = PaymentMethod.OTHER) -> Payment:
        """Pay whatever is left on the installment, dated today"""
        installment = self.get_installment(installment_id)
        payment_method = self._payment_method(method)
        remaining = installment.remaining_cents
        if remaining <= 0:
            record_ledger_operation("mark_as_paid", "rejected")
            raise ValidationError("Installment has nothing left to pay")

        return self._apply_payment(
            "mark_as_paid", installment, remaining, self.today(), payment_method, settings.quick_payment_note
        )

    def undo_last_payment(self, installment_id: uuid.UUID) -> Installment:
        """
        Reverse the most recent payment of an installment.

        The latest payment by date is removed (same-day payments: the one
        entered last). Status falls back to partial, pending or overdue, and a
        closed agreement reopens if this installment is no longer paid.
        """
        installment = self.get_installment(installment_id)
        payment = latest_payment(installment.payments)
        if payment is None:
            record_ledger_operation("undo_last_payment", "rejected")
            raise ValidationError("Installment has no payment to undo")

        agreement = installment.agreement
        was_closed = bool(agreement.closed)
        amount = payment.amount_cents

        self.installments.remove_payment(installment, payment)
        installment.paid_amount_cents = max(installment.paid_amount_cents - amount, 0)
        installment.status = status_after_undo(
            installment.status,
            installment.amount_cents,
            installment.paid_amount_cents,
            installment.due_date,
            self.today(),
        )
        closure_changed = self.refresh_closure(agreement)
        self._commit("undo_last_payment")

        self._after_installment_change(
            "undo_last_payment", LedgerEventKind.PAYMENT_UNDONE, installment, was_closed, closure_changed, amount
        )
        return installment

    def override_status_unsafe(self, installment_id: uuid.UUID, status: InstallmentStatus | str) -> Installment:
        """
        Force an installment status for manual correction.

        Deliberately bypasses the amount/status consistency rules: paid_amount
        is left untouched, so a paid installment may still show a remaining
        amount and vice versa. Only agreement closure is recomputed.
        """
        try:
            new_status = InstallmentStatus(status)
        except ValueError as e:
            raise ValidationError(f"Unknown installment status: {status}") from e

        installment = self.get_installment(installment_id)
        agreement = installment.agreement
        was_closed = bool(agreement.closed)
        status_changed = installment.status != new_status

        installment.status = new_status.value
        closure_changed = self.refresh_closure(agreement)
        self._commit("override_status")

        if status_changed or closure_changed:
            self._after_installment_change(
                "override_status", LedgerEventKind.STATUS_OVERRIDDEN, installment, was_closed, closure_changed
            )
        return installment

    # Internals

    def _apply_payment(
        self,
        operation: str,
        installment: Installment,
        amount_cents: int,
        paid_on: date,
        method: PaymentMethod,
        note: Optional[str],
    ) -> Payment:
        agreement = installment.agreement
        was_closed = bool(agreement.closed)
        sequence = max((p.sequence for p in installment.payments), default=0) + 1

        payment = self.installments.add_payment(
            installment,
            sequence=sequence,
            date=paid_on,
            amount_cents=amount_cents,
            method=method.value,
            note=_normalized(note),
        )
        installment.paid_amount_cents = min(installment.paid_amount_cents + amount_cents, installment.amount_cents)
        installment.status = status_after_payment(
            installment.status, installment.amount_cents, installment.paid_amount_cents
        )
        closure_changed = self.refresh_closure(agreement)
        self._commit(operation)

        self._after_installment_change(
            operation, LedgerEventKind.PAYMENT_REGISTERED, installment, was_closed, closure_changed, amount_cents
        )
        return payment

    def _after_installment_change(
        self,
        operation: str,
        kind: LedgerEventKind,
        installment: Installment,
        was_closed: bool,
        closure_changed: bool,
        amount_cents: Optional[int] = None,
    ) -> None:
        agreement = installment.agreement
        record_ledger_operation(operation, "committed")
        record_closure_transition(was_closed, bool(agreement.closed))
        log_ledger_operation(
            operation,
            agreement.id,
            installment_id=installment.id,
            status=installment.status,
            agreement_closed=agreement.closed,
            amount_cents=amount_cents,
        )
        self._publish(
            self._agreement_event(kind, agreement, installment=installment, closure_changed=closure_changed)
        )

    def _agreement_event(
        self,
        kind: LedgerEventKind,
        agreement: Agreement,
        installment: Optional[Installment] = None,
        closure_changed: bool = False,
    ) -> LedgerEvent:
        closed = bool(agreement.closed)
        reminder = None if closed else select_reminder_target(agreement.installments, self.today())
        return LedgerEvent(
            kind=kind,
            debtor_id=agreement.debtor_id,
            agreement_id=agreement.id,
            installment_id=installment.id if installment else None,
            installment_number=installment.number if installment else None,
            due_date=installment.due_date if installment else None,
            agreement_closed=closed,
            closure_changed=closure_changed,
            reminder=reminder,
        )

    def _payment_method(self, method: PaymentMethod | str) -> PaymentMethod:
        try:
            return PaymentMethod(method)
        except ValueError as e:
            raise ValidationError(f"Unknown payment method: {method}") from e

    def _commit(self, operation: str) -> None:
        try:
            commit_or_rollback(self.db, operation)
        except Exception:
            record_ledger_operation(operation, "failed")
            raise

    def _publish(self, event: LedgerEvent) -> None:
        self.event_bus.publish(event)
