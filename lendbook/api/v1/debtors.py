"""/v1/debtors - debtor management endpoints"""

import uuid
from fastapi import APIRouter, Depends, Response, status

from lendbook.api.dependencies import get_ledger_service
from lendbook.api.v1.schemas import ArchiveRequest, DebtorCreate, DebtorResponse, DebtorSummarySchema
from lendbook.services.ledger import LedgerService

router = APIRouter()


def _debtor_response(ledger: LedgerService, debtor) -> DebtorResponse:
    summary = ledger.summarize_debtor(debtor.id)
    return DebtorResponse(
        id=str(debtor.id),
        name=debtor.name,
        phone=debtor.phone,
        note=debtor.note,
        archived=debtor.archived,
        summary=DebtorSummarySchema.model_validate(summary),
    )


@router.post("/debtors", response_model=DebtorResponse, status_code=status.HTTP_201_CREATED)
def create_debtor(request_body: DebtorCreate, ledger: LedgerService = Depends(get_ledger_service)):
    """Register a new debtor"""
    debtor = ledger.create_debtor(request_body.name, request_body.phone, request_body.note)
    return _debtor_response(ledger, debtor)


@router.get("/debtors/{debtor_id}", response_model=DebtorResponse)
def get_debtor(debtor_id: uuid.UUID, ledger: LedgerService = Depends(get_ledger_service)):
    """
    Retrieve a debtor with totals over their open agreements.

    Returns:
        Debtor fields plus agreement/installment counts and amounts
    """
    return _debtor_response(ledger, ledger.get_debtor(debtor_id))


@router.post("/debtors/{debtor_id}/archive", response_model=DebtorResponse)
def archive_debtor(
    debtor_id: uuid.UUID,
    request_body: ArchiveRequest | None = None,
    ledger: LedgerService = Depends(get_ledger_service),
):
    """Archive, unarchive, or (with an empty body) toggle a debtor"""
    archived = request_body.archived if request_body else None
    debtor = ledger.set_archived(debtor_id, archived)
    return _debtor_response(ledger, debtor)


@router.delete("/debtors/{debtor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_debtor(debtor_id: uuid.UUID, ledger: LedgerService = Depends(get_ledger_service)):
    """Delete a debtor with all agreements, installments, payments and credit profile"""
    ledger.delete_debtor(debtor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
