"""
Funding request state machine.

    pending  -> approved | rejected
    approved -> funded   | rejected
    funded, rejected: terminal

Forward transitions are gated on documents in the request thread: approval needs a
final_agreement, funding needs a payment_slip. A request opened without an investor gets
one assigned by an admin while it is still pending. Every operation validates first, then
mutates and appends its system messages, then commits once.
"""
import logging
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.database import insert_or_ignore
from app.core.errors import Conflict, NotAuthorized, NotFound, NotParticipant, PreconditionFailed, ValidationError
from app.models.document import Document
from app.models.funding_request import FundingRequest, FundingStatus
from app.models.party import Party, PartyRole
from app.models.thread_type import ThreadType
from app.services.document_gate import FINAL_AGREEMENT, PAYMENT_SLIP, DocumentGate
from app.services.handshake import RequestOutcome
from app.services.object_store import IncomingFile, ObjectStore
from app.services.thread_log import ThreadLog

logger = logging.getLogger(__name__)

THREAD = ThreadType.funding_request

TRANSITIONS = {
    FundingStatus.pending: {FundingStatus.approved, FundingStatus.rejected},
    FundingStatus.approved: {FundingStatus.funded, FundingStatus.rejected},
    FundingStatus.funded: set(),
    FundingStatus.rejected: set(),
}

TERMINAL = {status for status, targets in TRANSITIONS.items() if not targets}

MSG_FINAL_AGREEMENT_UPLOADED = "Final agreement uploaded; awaiting admin approval."
MSG_PAYMENT_SLIP_UPLOADED = "Payment slip uploaded; awaiting admin confirmation of funding."
MSG_APPROVED = (
    "Your funding request has been approved by admin. "
    "Please upload your payment slip for verification."
)
MSG_FUNDED = "Funding has been marked as completed by admin. Thank you."
MSG_REJECTED = "Your funding request was rejected by admin."


def _money(value, field: str) -> Decimal:
    try:
        amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    return amount


class FundingWorkflow:
    def __init__(self, db: Session, store: ObjectStore):
        self.db = db
        self.documents = DocumentGate(db, store)
        self.log = ThreadLog(db)

    # -- helpers ------------------------------------------------------------

    def _party(self, party_id: Optional[int], role: PartyRole) -> Party:
        party = self.db.get(Party, party_id) if party_id is not None else None
        if party is None or party.role != role:
            raise NotFound(f"{role.value.capitalize()} not found")
        return party

    def _load(self, request_id: str) -> FundingRequest:
        request = self.db.get(FundingRequest, request_id)
        if request is None:
            raise NotFound("Funding request not found")
        return request

    @staticmethod
    def _require_admin(actor: Party) -> None:
        if actor.role != PartyRole.admin:
            raise NotAuthorized("Only admin accounts can perform this action")

    @staticmethod
    def is_participant(request: FundingRequest, party_id: int) -> bool:
        return party_id in (request.seller_id, request.investor_id)

    def _pair_request(self, seller_id: int, investor_id: int) -> Optional[FundingRequest]:
        return self.db.query(FundingRequest).filter_by(seller_id=seller_id, investor_id=investor_id).first()

    def _pair_conflict(self, seller_id: int, investor_id: int) -> Conflict:
        existing = self._pair_request(seller_id, investor_id)
        return Conflict(
            "A funding request already exists for this seller and investor",
            payload={"existing_request_id": existing.id if existing else None},
        )

    def _transition(self, request: FundingRequest, target: FundingStatus) -> None:
        if target not in TRANSITIONS[request.status]:
            logger.info(
                "Funding request %s: refused %s -> %s", request.id, request.status.value, target.value
            )
            raise PreconditionFailed(
                f"Cannot move a {request.status.value} funding request to {target.value}"
            )
        request.status = target
        request.updated_at = datetime.now(timezone.utc)

    # -- lifecycle ----------------------------------------------------------

    def create(
        self,
        actor: Party,
        requested_amount,
        seller_id: Optional[int] = None,
        investor_id: Optional[int] = None,
    ) -> RequestOutcome:
        """
        Sellers name the investor (optional), investors name the seller, admins name both.
        An existing request for the same assigned pair is returned whatever its status.
        """
        if actor.role == PartyRole.seller:
            seller_id = actor.id
        elif actor.role == PartyRole.investor:
            investor_id = actor.id
        elif actor.role != PartyRole.admin:
            raise NotAuthorized("Only sellers, investors or admins can create funding requests")
        amount = _money(requested_amount, "requested_amount")
        if seller_id is None:
            raise ValidationError("seller_id is required")
        seller = self._party(seller_id, PartyRole.seller)
        investor = self._party(investor_id, PartyRole.investor) if investor_id is not None else None

        values = {
            "id": str(uuid.uuid4()),
            "seller_id": seller.id,
            "investor_id": investor.id if investor else None,
            "requested_amount": amount,
            "status": FundingStatus.pending,
            "admin_approved": False,
        }
        if investor is None:
            request = FundingRequest(**values)
            self.db.add(request)
            created = True
        else:
            created = insert_or_ignore(self.db, FundingRequest, values, ["seller_id", "investor_id"])
            request = (
                self.db.query(FundingRequest)
                .filter_by(seller_id=seller.id, investor_id=investor.id)
                .one()
            )
        self.db.commit()
        if created:
            logger.info(
                "Funding request %s created by %s: seller=%s investor=%s amount=%s",
                request.id, actor.id, seller.id, investor.id if investor else None, amount,
            )
        return RequestOutcome(request, created)

    def upload_document(
        self, request_id: str, uploader: Party, doc_type: str, file: IncomingFile
    ) -> Document:
        request = self._load(request_id)
        if not self.is_participant(request, uploader.id):
            raise NotParticipant()
        if request.status in TERMINAL:
            raise PreconditionFailed(f"Funding request is already {request.status.value}")
        doc_type = self.documents.check_upload(THREAD, uploader.role, doc_type)
        if doc_type == PAYMENT_SLIP:
            if request.status != FundingStatus.approved:
                raise PreconditionFailed("Payment slip can only be uploaded after admin approval")
            if not self.documents.exists(request.id, THREAD, FINAL_AGREEMENT):
                raise PreconditionFailed("A final agreement must be uploaded before the payment slip")

        document = self.documents.upload(request.id, THREAD, uploader.id, uploader.role, doc_type, file)
        with self.documents.discard_on_failure(document):
            if doc_type == FINAL_AGREEMENT:
                self.log.append_system(request.id, THREAD, uploader.id, MSG_FINAL_AGREEMENT_UPLOADED)
            else:
                self.log.append_system(request.id, THREAD, uploader.id, MSG_PAYMENT_SLIP_UPLOADED)
            request.updated_at = datetime.now(timezone.utc)
            self.db.commit()
        return document

    def assign_investor(self, request_id: str, admin: Party, investor_id: int) -> FundingRequest:
        """Attach an investor to a pending request opened without one."""
        self._require_admin(admin)
        request = self._load(request_id)
        if request.status != FundingStatus.pending:
            raise PreconditionFailed(
                f"Investors can only be assigned to pending requests (status: {request.status.value})"
            )
        if request.investor_id is not None:
            raise PreconditionFailed("An investor is already assigned to this funding request")
        investor = self._party(investor_id, PartyRole.investor)
        seller_id = request.seller_id
        if self._pair_request(seller_id, investor.id) is not None:
            raise self._pair_conflict(seller_id, investor.id)

        request.investor_id = investor.id
        request.updated_at = datetime.now(timezone.utc)
        try:
            self.db.flush()
        except IntegrityError:
            # A concurrent create or assignment took the pair first
            self.db.rollback()
            raise self._pair_conflict(seller_id, investor_id)
        name = investor.display_name or f"investor {investor.id}"
        self.log.append_system(request.id, THREAD, admin.id, f"{name} has been assigned to this funding request by admin.")
        self.db.commit()
        logger.info("Funding request %s: investor %s assigned by %s", request.id, investor.id, admin.id)
        return request

    def approve(self, request_id: str, admin: Party) -> FundingRequest:
        self._require_admin(admin)
        request = self._load(request_id)
        if request.status != FundingStatus.pending:
            raise PreconditionFailed(f"Only pending requests can be approved (status: {request.status.value})")
        if not self.documents.exists(request.id, THREAD, FINAL_AGREEMENT):
            logger.info("Funding request %s: approval refused, no final agreement", request.id)
            raise PreconditionFailed("A final agreement must be uploaded before approval")

        self._transition(request, FundingStatus.approved)
        request.admin_approved = True
        self.log.append_system(request.id, THREAD, admin.id, MSG_APPROVED)
        self.db.commit()
        logger.info("Funding request %s approved by %s", request.id, admin.id)
        return request

    def fund(self, request_id: str, admin: Party, funded_amount=None) -> FundingRequest:
        self._require_admin(admin)
        request = self._load(request_id)
        amount = _money(funded_amount, "funded_amount") if funded_amount is not None else None
        if request.status != FundingStatus.approved:
            raise PreconditionFailed(f"Only approved requests can be funded (status: {request.status.value})")
        if not self.documents.exists(request.id, THREAD, PAYMENT_SLIP):
            logger.info("Funding request %s: funding refused, no payment slip", request.id)
            raise PreconditionFailed("A payment slip must be uploaded before funding")

        self._transition(request, FundingStatus.funded)
        request.admin_approved = True
        if amount is not None:
            request.funded_amount = amount
        confirmed = request.funded_amount if request.funded_amount is not None else "unspecified"
        self.log.append_system(request.id, THREAD, admin.id, f"Funding confirmed by admin. Amount: {confirmed}.")
        self.log.append_system(request.id, THREAD, admin.id, MSG_FUNDED)
        self.db.commit()
        logger.info("Funding request %s funded by %s: amount=%s", request.id, admin.id, request.funded_amount)
        return request

    def reject(self, request_id: str, admin: Party, reason: Optional[str] = None) -> FundingRequest:
        self._require_admin(admin)
        request = self._load(request_id)
        self._transition(request, FundingStatus.rejected)
        reason = (reason or "").strip()
        body = f"{MSG_REJECTED} Reason: {reason}" if reason else MSG_REJECTED
        self.log.append_system(request.id, THREAD, admin.id, body)
        self.db.commit()
        logger.info("Funding request %s rejected by %s", request.id, admin.id)
        return request

    # -- reads --------------------------------------------------------------

    def get(self, request_id: str, party: Party) -> FundingRequest:
        request = self._load(request_id)
        if party.role != PartyRole.admin and not self.is_participant(request, party.id):
            raise NotParticipant()
        return request

    def stats(self, party: Party) -> dict:
        def count(*criteria) -> int:
            return self.db.query(func.count(FundingRequest.id)).filter(*criteria).scalar() or 0

        def total(*criteria) -> float:
            value = (
                self.db.query(func.coalesce(func.sum(FundingRequest.funded_amount), 0))
                .filter(FundingRequest.status == FundingStatus.funded, *criteria)
                .scalar()
            )
            return float(value or 0)

        if party.role == PartyRole.investor:
            mine = FundingRequest.investor_id == party.id
            return {
                "total_invested": total(mine),
                "active_deals": count(mine, FundingRequest.status == FundingStatus.funded),
                "awaiting_funding": count(mine, FundingRequest.status == FundingStatus.approved),
            }
        if party.role == PartyRole.seller:
            mine = FundingRequest.seller_id == party.id
            return {
                "total_raised": total(mine),
                "active_deals": count(mine, FundingRequest.status == FundingStatus.funded),
                "pending_approvals": count(mine, FundingRequest.status == FundingStatus.pending),
            }
        if party.role == PartyRole.admin:
            requested = self.db.query(func.coalesce(func.sum(FundingRequest.requested_amount), 0)).scalar()
            snapshot = {
                "total_funded": total(),
                "total_requested": float(requested or 0),
                "total_requests": count(),
            }
            for status in FundingStatus:
                snapshot[status.value] = count(FundingRequest.status == status)
            return snapshot
        raise NotAuthorized("Funding statistics are not available for this account")

    def pending_agreements(self) -> List[Tuple[FundingRequest, int]]:
        """Approved requests with documents awaiting review, most recently updated first."""
        doc_counts = (
            self.db.query(Document.thread_id, func.count(Document.id).label("doc_count"))
            .filter(Document.thread_type == THREAD)
            .group_by(Document.thread_id)
            .subquery()
        )
        rows = (
            self.db.query(FundingRequest, doc_counts.c.doc_count)
            .join(doc_counts, doc_counts.c.thread_id == FundingRequest.id)
            .filter(FundingRequest.status == FundingStatus.approved, doc_counts.c.doc_count > 0)
            .order_by(FundingRequest.updated_at.desc())
            .all()
        )
        return [(request, int(doc_count)) for request, doc_count in rows]

    def list(self, party: Party, status: Optional[FundingStatus] = None) -> List[FundingRequest]:
        query = self.db.query(FundingRequest)
        if party.role != PartyRole.admin:
            query = query.filter(
                or_(FundingRequest.seller_id == party.id, FundingRequest.investor_id == party.id)
            )
        if status is not None:
            query = query.filter(FundingRequest.status == status)
        return query.order_by(FundingRequest.created_at.desc()).all()
