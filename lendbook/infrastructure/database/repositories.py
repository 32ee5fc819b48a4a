"""Data access layer for ledger entities"""

import uuid
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session, selectinload
from lendbook.infrastructure.database.models import Debtor, Agreement, Installment, Payment, CreditProfile
from lendbook.domain.models import AgreementRecord, InstallmentRecord, InstallmentSpec, PaymentRecord, InstallmentStatus


class DebtorRepository:
    """Repository for debtors"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, name: str, phone: Optional[str], note: Optional[str]) -> Debtor:
        debtor = Debtor(name=name, phone=phone, note=note, archived=False)
        self.db.add(debtor)
        return debtor

    def get(self, debtor_id: uuid.UUID) -> Optional[Debtor]:
        return self.db.get(Debtor, debtor_id)

    def list_ids(self, include_archived: bool = False) -> List[uuid.UUID]:
        query = self.db.query(Debtor.id)
        if not include_archived:
            query = query.filter(Debtor.archived.is_(False))
        return [row.id for row in query.order_by(Debtor.name).all()]

    def delete(self, debtor: Debtor) -> None:
        self.db.delete(debtor)


class AgreementRepository:
    """Repository for agreements and their installment schedules"""

    def __init__(self, db: Session):
        self.db = db

    def create_agreement(
        self,
        debtor: Debtor,
        principal_cents: int,
        start_date: date,
        installment_count: int,
        currency_code: str,
        interest_rate_monthly: Optional[float],
        title: Optional[str],
        schedule: List[InstallmentSpec],
    ) -> Agreement:
        """Create agreement with its installments in one unit of work"""
        agreement = Agreement(
            debtor=debtor,
            title=title,
            principal_cents=principal_cents,
            start_date=start_date,
            installment_count=installment_count,
            currency_code=currency_code,
            interest_rate_monthly=interest_rate_monthly,
            closed=False,
        )
        self.db.add(agreement)

        for spec in schedule:
            agreement.installments.append(
                Installment(
                    number=spec.number,
                    due_date=spec.due_date,
                    amount_cents=spec.amount_cents,
                    paid_amount_cents=0,
                    status=InstallmentStatus.PENDING.value,
                )
            )

        return agreement

    def get(self, agreement_id: uuid.UUID) -> Optional[Agreement]:
        return self.db.get(Agreement, agreement_id)

    def get_by_debtor(self, debtor_id: uuid.UUID) -> List[Agreement]:
        """All agreements of a debtor, closed ones included, with installments and payments loaded"""
        return (
            self.db.query(Agreement)
            .options(selectinload(Agreement.installments).selectinload(Installment.payments))
            .filter(Agreement.debtor_id == debtor_id)
            .order_by(Agreement.start_date)
            .all()
        )

    def delete(self, agreement: Agreement) -> None:
        self.db.delete(agreement)


class InstallmentRepository:
    """Repository for installments"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, installment_id: uuid.UUID) -> Optional[Installment]:
        return self.db.get(Installment, installment_id)

    def list_for_agreement(self, agreement_id: uuid.UUID) -> List[Installment]:
        """Installments of one agreement sorted by number"""
        return (
            self.db.query(Installment)
            .filter(Installment.agreement_id == agreement_id)
            .order_by(Installment.number)
            .all()
        )

    def add_payment(self, installment: Installment, **fields) -> Payment:
        payment = Payment(**fields)
        installment.payments.append(payment)
        return payment

    def remove_payment(self, installment: Installment, payment: Payment) -> None:
        # delete-orphan cascade removes the row on flush
        installment.payments.remove(payment)


class CreditProfileRepository:
    """Repository for cached credit profiles"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_debtor(self, debtor_id: uuid.UUID) -> Optional[CreditProfile]:
        return (
            self.db.query(CreditProfile)
            .filter(CreditProfile.debtor_id == debtor_id)
            .first()
        )


def to_agreement_record(agreement: Agreement) -> AgreementRecord:
    """Detach an ORM agreement graph into plain scoring records"""
    return AgreementRecord(
        principal_cents=agreement.principal_cents,
        start_date=agreement.start_date,
        interest_rate_monthly=agreement.interest_rate_monthly,
        installments=[
            InstallmentRecord(
                number=inst.number,
                due_date=inst.due_date,
                amount_cents=inst.amount_cents,
                paid_amount_cents=inst.paid_amount_cents,
                status=inst.status,
                payments=[
                    PaymentRecord(date=p.date, amount_cents=p.amount_cents, sequence=p.sequence)
                    for p in inst.payments
                ],
            )
            for inst in agreement.installments
        ],
    )
