"""/v1/installments - payments, undo and manual status correction"""

import uuid
from fastapi import APIRouter, Depends, status

from lendbook.api.dependencies import get_ledger_service
from lendbook.api.v1.schemas import (
    InstallmentChangeResponse,
    MarkPaidRequest,
    PaymentCreate,
    StatusOverride,
    build_installment_schema,
)
from lendbook.services.ledger import LedgerService

router = APIRouter()


def _change_response(ledger: LedgerService, installment) -> InstallmentChangeResponse:
    return InstallmentChangeResponse(
        installment=build_installment_schema(installment, ledger.today()),
        agreement_id=str(installment.agreement_id),
        agreement_closed=installment.agreement.closed,
    )


@router.post(
    "/installments/{installment_id}/payments",
    response_model=InstallmentChangeResponse,
    status_code=status.HTTP_201_CREATED,
)
def register_payment(
    installment_id: uuid.UUID,
    request_body: PaymentCreate,
    ledger: LedgerService = Depends(get_ledger_service),
):
    """
    Register a partial or full payment.

    Returns 422 when the amount is not positive or exceeds the remaining amount.
    """
    payment = ledger.register_payment(
        installment_id,
        amount_cents=request_body.amount_cents,
        paid_on=request_body.paid_on or ledger.today(),
        method=request_body.method,
        note=request_body.note,
    )
    return _change_response(ledger, payment.installment)


@router.post("/installments/{installment_id}/mark-paid", response_model=InstallmentChangeResponse)
def mark_as_paid(
    installment_id: uuid.UUID,
    request_body: MarkPaidRequest | None = None,
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Pay the remaining amount in one go, dated today"""
    method = request_body.method if request_body else MarkPaidRequest().method
    payment = ledger.mark_as_paid(installment_id, method)
    return _change_response(ledger, payment.installment)


@router.post("/installments/{installment_id}/undo-last-payment", response_model=InstallmentChangeResponse)
def undo_last_payment(installment_id: uuid.UUID, ledger: LedgerService = Depends(get_ledger_service)):
    """Remove the most recent payment; may reopen a closed agreement"""
    installment = ledger.undo_last_payment(installment_id)
    return _change_response(ledger, installment)


@router.put("/installments/{installment_id}/status", response_model=InstallmentChangeResponse)
def override_status(
    installment_id: uuid.UUID,
    request_body: StatusOverride,
    ledger: LedgerService = Depends(get_ledger_service),
):
    """
    Force an installment status (manual correction).

    Unsafe by intent: paid amounts are not checked against the new status.
    """
    installment = ledger.override_status_unsafe(installment_id, request_body.status)
    return _change_response(ledger, installment)
