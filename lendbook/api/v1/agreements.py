"""/v1/agreements - agreement creation and schedule retrieval"""

import uuid
from fastapi import APIRouter, Depends, Response, status

from lendbook.api.dependencies import get_ledger_service
from lendbook.api.v1.schemas import AgreementCreate, AgreementResponse, build_agreement_response
from lendbook.services.ledger import LedgerService

router = APIRouter()


@router.post(
    "/debtors/{debtor_id}/agreements",
    response_model=AgreementResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_agreement(
    debtor_id: uuid.UUID,
    request_body: AgreementCreate,
    ledger: LedgerService = Depends(get_ledger_service),
):
    """
    Create a debt agreement and generate its installment schedule.

    Flow:
    1. Validate principal, installment count and interest rate
    2. Generate monthly installments (last one absorbs rounding)
    3. Persist agreement + installments in one commit
    4. Emit agreement_created so reminders can be scheduled
    """
    agreement = ledger.create_agreement(
        debtor_id=debtor_id,
        principal_cents=request_body.principal_cents,
        installment_count=request_body.installment_count,
        start_date=request_body.start_date,
        monthly_interest_rate=request_body.monthly_interest_rate,
        currency_code=request_body.currency_code,
        title=request_body.title,
        interest_policy=request_body.interest_policy,
    )
    return build_agreement_response(agreement, ledger.today())


@router.get("/agreements/{agreement_id}", response_model=AgreementResponse)
def get_agreement(agreement_id: uuid.UUID, ledger: LedgerService = Depends(get_ledger_service)):
    """Retrieve an agreement with installments sorted by number"""
    return build_agreement_response(ledger.get_agreement(agreement_id), ledger.today())


@router.delete("/agreements/{agreement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_agreement(agreement_id: uuid.UUID, ledger: LedgerService = Depends(get_ledger_service)):
    """Delete an agreement with its installments and payments"""
    ledger.delete_agreement(agreement_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
