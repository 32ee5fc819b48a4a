"""GET /v1/debtors/{debtor_id}/credit-profile - behavioral credit score"""

import uuid
from fastapi import APIRouter, Depends, Query

from lendbook.api.dependencies import get_credit_service
from lendbook.api.v1.schemas import CreditProfileResponse
from lendbook.services.credit import CreditProfileService
from lendbook.utils.date_utils import ensure_utc

router = APIRouter()


@router.get("/debtors/{debtor_id}/credit-profile", response_model=CreditProfileResponse)
def get_credit_profile(
    debtor_id: uuid.UUID,
    refresh: bool = Query(False, description="Recalculate even if the cached profile is fresh"),
    credit: CreditProfileService = Depends(get_credit_service),
):
    """
    Retrieve a debtor's credit profile.

    Returns the stored profile while it is younger than the cache TTL;
    otherwise (or with refresh=true) recalculates from the full ledger history.
    """
    profile = credit.recalculate(debtor_id) if refresh else credit.get_profile(debtor_id)

    return CreditProfileResponse(
        debtor_id=str(profile.debtor_id),
        score=profile.score,
        risk_level=profile.risk_level,
        last_calculated=ensure_utc(profile.last_calculated),
        total_agreements=profile.total_agreements,
        total_installments=profile.total_installments,
        paid_on_time_count=profile.paid_on_time_count,
        paid_late_count=profile.paid_late_count,
        overdue_count=profile.overdue_count,
        average_days_late=profile.average_days_late,
        on_time_payment_rate=profile.on_time_payment_rate,
        total_lent_cents=profile.total_lent_cents,
        total_paid_cents=profile.total_paid_cents,
        total_interest_earned_cents=profile.total_interest_earned_cents,
        current_outstanding_cents=profile.current_outstanding_cents,
        first_agreement_date=profile.first_agreement_date,
        last_payment_date=profile.last_payment_date,
        consecutive_on_time_payments=profile.consecutive_on_time_payments,
        longest_delay_days=profile.longest_delay_days,
        return_on_investment=profile.return_on_investment,
        profit_margin=profile.profit_margin,
        collection_rate=profile.collection_rate,
    )
