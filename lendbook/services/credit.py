"""Credit profile calculation and caching"""

import time
import uuid
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from lendbook.config import settings
from lendbook.domain.exceptions import NotFoundError
from lendbook.domain.models import CreditAssessment, TimedValue
from lendbook.domain.scoring import assess_credit
from lendbook.infrastructure.database.models import CreditProfile
from lendbook.infrastructure.database.repositories import (
    AgreementRepository,
    CreditProfileRepository,
    DebtorRepository,
    to_agreement_record,
)
from lendbook.infrastructure.database.session import commit_or_rollback
from lendbook.infrastructure.observability.logging import log_profile_calculated
from lendbook.infrastructure.observability.metrics import record_credit_profile
from lendbook.utils.date_utils import utc_now


class CreditProfileService:
    """Recomputes and serves the per-debtor credit profile"""

    def __init__(
        self,
        db: Session,
        ttl: Optional[timedelta] = None,
        today: Callable[[], date] = date.today,
        now: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.ttl = ttl if ttl is not None else timedelta(seconds=settings.credit_profile_ttl_seconds)
        self.today = today
        self.now = now
        self.debtors = DebtorRepository(db)
        self.agreements = AgreementRepository(db)
        self.profiles = CreditProfileRepository(db)

    def cached(self, debtor_id: uuid.UUID) -> Optional[TimedValue[CreditProfile]]:
        """Stored profile stamped with its calculation time, if one exists"""
        profile = self.profiles.get_by_debtor(debtor_id)
        if profile is None:
            return None
        return TimedValue(value=profile, computed_at=profile.last_calculated)

    def get_profile(self, debtor_id: uuid.UUID, max_age: Optional[timedelta] = None) -> CreditProfile:
        """Return the stored profile while it is fresh, recalculating once it goes stale"""
        cached = self.cached(debtor_id)
        ttl = max_age if max_age is not None else self.ttl
        if cached is not None and not cached.is_stale(ttl, self.now()):
            return cached.value
        return self.recalculate(debtor_id)

    def recalculate(self, debtor_id: uuid.UUID) -> CreditProfile:
        """
        Recompute the debtor's profile from the full ledger history.

        Closed agreements are included. The stored profile is replaced in
        full (never updated incrementally) and committed as one unit.
        """
        start_time = time.time()
        debtor = self.debtors.get(debtor_id)
        if debtor is None:
            raise NotFoundError(f"Debtor {debtor_id} not found")

        records = [to_agreement_record(a) for a in self.agreements.get_by_debtor(debtor_id)]
        assessment = assess_credit(records, self.today())

        profile = self.profiles.get_by_debtor(debtor_id)
        if profile is None:
            profile = CreditProfile(debtor_id=debtor_id)
            self.db.add(profile)
        self._apply(assessment, profile)
        commit_or_rollback(self.db, "recalculate_credit_profile")

        duration_ms = (time.time() - start_time) * 1000
        record_credit_profile(assessment.score, assessment.risk_level.value)
        log_profile_calculated(
            debtor_id,
            assessment.score,
            assessment.risk_level.value,
            assessment.metrics.on_time_payment_rate,
            assessment.metrics.overdue_count,
            duration_ms,
        )
        return profile

    def recalculate_all(self, include_archived: bool = False) -> Dict[uuid.UUID, CreditProfile]:
        """Recompute every debtor; each debtor's data is independent"""
        return {
            debtor_id: self.recalculate(debtor_id)
            for debtor_id in self.debtors.list_ids(include_archived=include_archived)
        }

    def _apply(self, assessment: CreditAssessment, profile: CreditProfile) -> None:
        metrics = assessment.metrics
        profile.score = assessment.score
        profile.risk_level = assessment.risk_level.value
        profile.last_calculated = self.now()
        profile.total_agreements = metrics.total_agreements
        profile.total_installments = metrics.total_installments
        profile.paid_on_time_count = metrics.paid_on_time_count
        profile.paid_late_count = metrics.paid_late_count
        profile.overdue_count = metrics.overdue_count
        profile.average_days_late = metrics.average_days_late
        profile.on_time_payment_rate = metrics.on_time_payment_rate
        profile.total_lent_cents = metrics.total_lent_cents
        profile.total_paid_cents = metrics.total_paid_cents
        profile.total_interest_earned_cents = metrics.total_interest_earned_cents
        profile.current_outstanding_cents = metrics.current_outstanding_cents
        profile.first_agreement_date = metrics.first_agreement_date
        profile.last_payment_date = metrics.last_payment_date
        profile.consecutive_on_time_payments = metrics.consecutive_on_time_payments
        profile.longest_delay_days = metrics.longest_delay_days
