from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_admin, get_current_party
from app.core.deps import get_db, get_store, incoming_file
from app.models.funding_request import FundingStatus
from app.models.party import Party
from app.models.thread_type import ThreadType
from app.schemas.funding_request import (
    AssignInvestorBody,
    FundBody,
    FundingRequestCreate,
    FundingRequestListResponse,
    FundingRequestOut,
    FundingRequestResponse,
    FundingStatsResponse,
    PendingAgreementListResponse,
    PendingAgreementOut,
    RejectBody,
)
from app.schemas.thread import (
    DocumentListResponse,
    DocumentResponse,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
)
from app.services.document_gate import FINAL_AGREEMENT
from app.services.funding import FundingWorkflow
from app.services.object_store import ObjectStore
from app.services.thread_log import ThreadLog

router = APIRouter()

THREAD = ThreadType.funding_request


def get_workflow(
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_store),
) -> FundingWorkflow:
    return FundingWorkflow(db, store)


@router.post("", response_model=FundingRequestResponse)
def create_funding_request(
    data: FundingRequestCreate,
    response: Response,
    party: Party = Depends(get_current_party),
    workflow: FundingWorkflow = Depends(get_workflow),
):
    """
    Create a funding request. Sellers name the investor, investors name the seller and
    admins name both. An existing request for the same pair is returned as-is.
    """
    outcome = workflow.create(
        party,
        data.requested_amount,
        seller_id=data.seller_id,
        investor_id=data.investor_id,
    )
    response.status_code = status.HTTP_201_CREATED if outcome.created else status.HTTP_200_OK
    return FundingRequestResponse(request=outcome.thread, created=outcome.created)


@router.get("", response_model=FundingRequestListResponse)
def list_funding_requests(
    status_filter: Optional[FundingStatus] = Query(None, alias="status"),
    party: Party = Depends(get_current_party),
    workflow: FundingWorkflow = Depends(get_workflow),
):
    return FundingRequestListResponse(requests=workflow.list(party, status_filter))


@router.get("/stats", response_model=FundingStatsResponse)
def funding_stats(
    party: Party = Depends(get_current_party),
    workflow: FundingWorkflow = Depends(get_workflow),
):
    return FundingStatsResponse(stats=workflow.stats(party))


@router.get("/pending-agreements", response_model=PendingAgreementListResponse)
def pending_agreements(
    admin: Party = Depends(get_current_admin),
    workflow: FundingWorkflow = Depends(get_workflow),
):
    """Approved requests with uploaded documents awaiting admin review."""
    requests = [
        PendingAgreementOut(
            **FundingRequestOut.model_validate(request).model_dump(),
            doc_count=doc_count,
        )
        for request, doc_count in workflow.pending_agreements()
    ]
    return PendingAgreementListResponse(requests=requests)


@router.get("/{request_id}", response_model=FundingRequestResponse)
def get_funding_request(
    request_id: str,
    party: Party = Depends(get_current_party),
    workflow: FundingWorkflow = Depends(get_workflow),
):
    return FundingRequestResponse(request=workflow.get(request_id, party))


# --- Admin transitions ---


@router.post("/{request_id}/assign", response_model=FundingRequestResponse)
def assign_investor(
    request_id: str,
    data: AssignInvestorBody,
    admin: Party = Depends(get_current_admin),
    workflow: FundingWorkflow = Depends(get_workflow),
):
    """Attach an investor to a pending request that was opened without one."""
    return FundingRequestResponse(request=workflow.assign_investor(request_id, admin, data.investor_id))


@router.post("/{request_id}/approve", response_model=FundingRequestResponse)
def approve_funding_request(
    request_id: str,
    admin: Party = Depends(get_current_admin),
    workflow: FundingWorkflow = Depends(get_workflow),
):
    return FundingRequestResponse(request=workflow.approve(request_id, admin))


@router.post("/{request_id}/fund", response_model=FundingRequestResponse)
def fund_funding_request(
    request_id: str,
    data: Optional[FundBody] = None,
    admin: Party = Depends(get_current_admin),
    workflow: FundingWorkflow = Depends(get_workflow),
):
    funded_amount = data.funded_amount if data else None
    return FundingRequestResponse(request=workflow.fund(request_id, admin, funded_amount))


@router.post("/{request_id}/reject", response_model=FundingRequestResponse)
def reject_funding_request(
    request_id: str,
    data: Optional[RejectBody] = None,
    admin: Party = Depends(get_current_admin),
    workflow: FundingWorkflow = Depends(get_workflow),
):
    reason = data.reason if data else None
    return FundingRequestResponse(request=workflow.reject(request_id, admin, reason))


# --- Thread: documents and chat ---


@router.get("/{request_id}/documents", response_model=DocumentListResponse)
def list_documents(
    request_id: str,
    party: Party = Depends(get_current_party),
    workflow: FundingWorkflow = Depends(get_workflow),
):
    request = workflow.get(request_id, party)
    return DocumentListResponse(documents=workflow.documents.list(request.id, THREAD))


@router.post("/{request_id}/documents", response_model=DocumentResponse, status_code=201)
def upload_document(
    request_id: str,
    doc_type: str = Form(FINAL_AGREEMENT),
    document: UploadFile = File(None),
    party: Party = Depends(get_current_party),
    workflow: FundingWorkflow = Depends(get_workflow),
):
    """Investor uploads the final agreement, then the payment slip once approved."""
    uploaded = workflow.upload_document(request_id, party, doc_type, incoming_file(document))
    return DocumentResponse(document=uploaded)


@router.get("/{request_id}/messages", response_model=MessageListResponse)
def list_messages(
    request_id: str,
    order: str = Query("asc"),
    limit: Optional[int] = Query(None, ge=1),
    party: Party = Depends(get_current_party),
    workflow: FundingWorkflow = Depends(get_workflow),
):
    request = workflow.get(request_id, party)
    return MessageListResponse(messages=ThreadLog(workflow.db).list(request.id, THREAD, order, limit))


@router.post("/{request_id}/messages", response_model=MessageResponse, status_code=201)
def post_message(
    request_id: str,
    data: MessageCreate,
    party: Party = Depends(get_current_party),
    workflow: FundingWorkflow = Depends(get_workflow),
):
    request = workflow.get(request_id, party)
    message = ThreadLog(workflow.db).append(request.id, THREAD, party.id, data.message)
    workflow.db.commit()
    return MessageResponse(message=message)
