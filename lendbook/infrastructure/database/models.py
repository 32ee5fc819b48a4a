"""SQLAlchemy ORM models for the lending ledger"""

import uuid
from datetime import date
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Boolean,
    Float,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from lendbook.domain.ledger import is_overdue, remaining_cents
from lendbook.domain.models import InstallmentStatus, RiskLevel

Base = declarative_base()


class Debtor(Base):
    """Person who owes the lender money"""

    __tablename__ = "debtor"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    phone = Column(String(40), nullable=True)
    note = Column(Text, nullable=True)
    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    agreements = relationship(
        "Agreement",
        back_populates="debtor",
        cascade="all, delete-orphan",
        order_by="Agreement.start_date",
    )
    credit_profile = relationship(
        "CreditProfile",
        back_populates="debtor",
        cascade="all, delete-orphan",
        uselist=False,
    )


class Agreement(Base):
    """Multi-installment debt owed by one debtor"""

    __tablename__ = "debt_agreement"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    debtor_id = Column(UUID(as_uuid=True), ForeignKey("debtor.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=True)
    principal_cents = Column(BigInteger, nullable=False)
    start_date = Column(Date, nullable=False)
    installment_count = Column(Integer, nullable=False)
    interest_rate_monthly = Column(Float, nullable=True)  # fraction, 0.02 = 2%
    currency_code = Column(String(3), nullable=False, default="BRL")
    closed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    debtor = relationship("Debtor", back_populates="agreements")
    installments = relationship(
        "Installment",
        back_populates="agreement",
        cascade="all, delete-orphan",
        order_by="Installment.number",
    )


class Installment(Base):
    """Single scheduled obligation within an agreement"""

    __tablename__ = "installment"
    __table_args__ = (UniqueConstraint("agreement_id", "number", name="uq_installment_agreement_number"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agreement_id = Column(
        UUID(as_uuid=True), ForeignKey("debt_agreement.id", ondelete="CASCADE"), nullable=False, index=True
    )
    number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    paid_amount_cents = Column(BigInteger, nullable=False, default=0)
    status = Column(Text, nullable=False, default=InstallmentStatus.PENDING.value)

    agreement = relationship("Agreement", back_populates="installments")
    payments = relationship(
        "Payment",
        back_populates="installment",
        cascade="all, delete-orphan",
        order_by=lambda: [Payment.date.desc(), Payment.sequence.desc()],
    )

    @property
    def remaining_cents(self) -> int:
        return remaining_cents(self.amount_cents, self.paid_amount_cents)

    def is_overdue(self, reference: date | None = None) -> bool:
        return is_overdue(self.status, self.due_date, reference or date.today())


class Payment(Base):
    """Partial or full settlement recorded against one installment"""

    __tablename__ = "payment"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    installment_id = Column(
        UUID(as_uuid=True), ForeignKey("installment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence = Column(Integer, nullable=False)  # insertion order within the installment
    date = Column(Date, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    method = Column(Text, nullable=False, default="other")
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    installment = relationship("Installment", back_populates="payments")


class CreditProfile(Base):
    """Cached credit score and supporting metrics, one row per debtor"""

    __tablename__ = "debtor_credit_profile"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    debtor_id = Column(
        UUID(as_uuid=True), ForeignKey("debtor.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    score = Column(Integer, nullable=False, default=50)
    risk_level = Column(Text, nullable=False, default=RiskLevel.MEDIUM.value)
    last_calculated = Column(DateTime(timezone=True), nullable=False)

    total_agreements = Column(Integer, nullable=False, default=0)
    total_installments = Column(Integer, nullable=False, default=0)
    paid_on_time_count = Column(Integer, nullable=False, default=0)
    paid_late_count = Column(Integer, nullable=False, default=0)
    overdue_count = Column(Integer, nullable=False, default=0)
    average_days_late = Column(Float, nullable=False, default=0.0)
    on_time_payment_rate = Column(Float, nullable=False, default=0.0)

    total_lent_cents = Column(BigInteger, nullable=False, default=0)
    total_paid_cents = Column(BigInteger, nullable=False, default=0)
    total_interest_earned_cents = Column(BigInteger, nullable=False, default=0)
    current_outstanding_cents = Column(BigInteger, nullable=False, default=0)

    first_agreement_date = Column(Date, nullable=True)
    last_payment_date = Column(Date, nullable=True)
    consecutive_on_time_payments = Column(Integer, nullable=False, default=0)
    longest_delay_days = Column(Integer, nullable=False, default=0)

    debtor = relationship("Debtor", back_populates="credit_profile")

    @property
    def return_on_investment(self) -> float:
        """Interest earned as a percentage of what was lent"""
        if not self.total_lent_cents:
            return 0.0
        return self.total_interest_earned_cents / self.total_lent_cents * 100

    @property
    def profit_margin(self) -> float:
        """Interest earned as a percentage of what was collected"""
        if not self.total_paid_cents:
            return 0.0
        return self.total_interest_earned_cents / self.total_paid_cents * 100

    @property
    def collection_rate(self) -> float:
        if not self.total_lent_cents:
            return 0.0
        return self.total_paid_cents / self.total_lent_cents
