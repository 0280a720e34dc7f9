from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_affiliate, get_current_party, get_current_seller
from app.core.deps import get_db, get_store, incoming_file
from app.models.affiliate_profile import AffiliateProfile
from app.models.handshake_status import HandshakeStatus
from app.models.party import Party, PartyRole
from app.models.thread_type import ThreadType
from app.schemas.handshake import (
    AgreementResponse,
    PartneredAffiliateListResponse,
    PartneredAffiliateOut,
    PartnerRequestCreate,
    PartnerRequestListResponse,
    PartnerRequestResponse,
    ProductLinkResponse,
)
from app.schemas.thread import (
    DocumentListResponse,
    DocumentResponse,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
)
from app.services.agreement_pdf import render_partnership_agreement
from app.services.document_gate import AGREEMENT, FLYER, DocumentGate
from app.services.handshake import PartnershipManager
from app.services.object_store import ObjectStore
from app.services.thread_log import ThreadLog

router = APIRouter()

THREAD = ThreadType.partner_request

# Each side uploads exactly one kind of document on a partner thread
DEFAULT_UPLOAD_TYPE = {
    PartyRole.seller: FLYER,
    PartyRole.affiliate: AGREEMENT,
}


def get_manager(db: Session = Depends(get_db)) -> PartnershipManager:
    return PartnershipManager(db)


@router.post("", response_model=PartnerRequestResponse)
def create_partner_request(
    data: PartnerRequestCreate,
    response: Response,
    seller: Party = Depends(get_current_seller),
    manager: PartnershipManager = Depends(get_manager),
):
    """Seller invites an affiliate. Requires an accepted investor connection."""
    outcome = manager.request(seller, data.affiliate_user_id, data.message)
    response.status_code = status.HTTP_201_CREATED if outcome.created else status.HTTP_200_OK
    return PartnerRequestResponse(request=outcome.thread, created=outcome.created)


@router.get("", response_model=PartnerRequestListResponse)
def list_partner_requests(
    status_filter: Optional[HandshakeStatus] = Query(None, alias="status"),
    party: Party = Depends(get_current_party),
    manager: PartnershipManager = Depends(get_manager),
):
    return PartnerRequestListResponse(requests=manager.list_for(party, status_filter))


@router.get("/partnered", response_model=PartneredAffiliateListResponse)
def list_partnered_affiliates(
    seller: Party = Depends(get_current_seller),
    manager: PartnershipManager = Depends(get_manager),
):
    affiliates = []
    for request in manager.partnered_affiliates(seller):
        affiliate = manager.db.get(Party, request.affiliate_user_id)
        profile = manager.db.get(AffiliateProfile, request.affiliate_user_id)
        affiliates.append(
            PartneredAffiliateOut(
                request_id=request.id,
                affiliate_id=affiliate.id,
                name=affiliate.display_name,
                affiliate_code=profile.affiliate_code if profile else None,
                partnered_at=request.responded_at,
            )
        )
    return PartneredAffiliateListResponse(affiliates=affiliates)


@router.post("/{request_id}/accept", response_model=PartnerRequestResponse)
def accept_partner_request(
    request_id: str,
    affiliate: Party = Depends(get_current_affiliate),
    manager: PartnershipManager = Depends(get_manager),
):
    return PartnerRequestResponse(request=manager.respond(request_id, affiliate, "accept"))


@router.post("/{request_id}/reject", response_model=PartnerRequestResponse)
def reject_partner_request(
    request_id: str,
    affiliate: Party = Depends(get_current_affiliate),
    manager: PartnershipManager = Depends(get_manager),
):
    return PartnerRequestResponse(request=manager.respond(request_id, affiliate, "reject"))


# --- Thread: chat and documents ---


@router.get("/{request_id}/messages", response_model=MessageListResponse)
def list_messages(
    request_id: str,
    order: str = Query("asc"),
    limit: Optional[int] = Query(None, ge=1),
    party: Party = Depends(get_current_party),
    manager: PartnershipManager = Depends(get_manager),
):
    thread = manager.get_for_participant(request_id, party)
    return MessageListResponse(messages=ThreadLog(manager.db).list(thread.id, THREAD, order, limit))


@router.post("/{request_id}/messages", response_model=MessageResponse, status_code=201)
def post_message(
    request_id: str,
    data: MessageCreate,
    party: Party = Depends(get_current_party),
    manager: PartnershipManager = Depends(get_manager),
):
    thread = manager.get_for_participant(request_id, party)
    message = ThreadLog(manager.db).append(
        thread.id, THREAD, party.id, data.message, sender_type=manager.sender_type(thread, party.id)
    )
    manager.db.commit()
    return MessageResponse(message=message)


@router.get("/{request_id}/documents", response_model=DocumentListResponse)
def list_documents(
    request_id: str,
    party: Party = Depends(get_current_party),
    manager: PartnershipManager = Depends(get_manager),
    store: ObjectStore = Depends(get_store),
):
    """Sellers see the affiliate's agreements, affiliates see the seller's flyers."""
    thread = manager.get_for_participant(request_id, party)
    documents = DocumentGate(manager.db, store).list(thread.id, THREAD, viewer_role=party.role)
    return DocumentListResponse(documents=documents)


@router.post("/{request_id}/documents", response_model=DocumentResponse, status_code=201)
def upload_document(
    request_id: str,
    doc_type: Optional[str] = Form(None),
    document: UploadFile = File(None),
    party: Party = Depends(get_current_party),
    manager: PartnershipManager = Depends(get_manager),
    store: ObjectStore = Depends(get_store),
):
    thread = manager.get_for_participant(request_id, party)
    gate = DocumentGate(manager.db, store)
    uploaded = gate.upload(
        thread.id,
        THREAD,
        party.id,
        party.role,
        doc_type or DEFAULT_UPLOAD_TYPE[party.role],
        incoming_file(document),
    )
    with gate.discard_on_failure(uploaded):
        manager.db.commit()
    return DocumentResponse(document=uploaded)


# --- Attribution hooks ---


@router.get("/{request_id}/product-link", response_model=ProductLinkResponse)
def get_product_link(
    request_id: str,
    product_id: str = Query(...),
    party: Party = Depends(get_current_party),
    manager: PartnershipManager = Depends(get_manager),
):
    """Tracking link for the partnership's affiliate. Accepted partnerships only."""
    link = manager.tracking_link(request_id, party, product_id)
    return ProductLinkResponse(product_id=product_id, link=link)


@router.get("/{request_id}/agreement", response_model=AgreementResponse)
def get_agreement(
    request_id: str,
    party: Party = Depends(get_current_party),
    manager: PartnershipManager = Depends(get_manager),
):
    return AgreementResponse(agreement=manager.agreement(request_id, party))


@router.get("/{request_id}/agreement.pdf")
def download_agreement(
    request_id: str,
    party: Party = Depends(get_current_party),
    manager: PartnershipManager = Depends(get_manager),
):
    pdf = render_partnership_agreement(manager.agreement(request_id, party))
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="partnership-agreement-{request_id}.pdf"'},
    )
