"""
Two-party request/respond protocol shared by seller -> investor connections and
seller -> affiliate partnerships.

request() is idempotent per pair: the row is written with INSERT ... ON CONFLICT DO NOTHING
and then read back, so a concurrent duplicate resolves to the winner's row.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, NamedTuple, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import insert_or_ignore
from app.core.errors import NotAuthorized, NotFound, NotParticipant, PreconditionFailed, ValidationError
from app.models.affiliate_profile import AffiliateProfile, AffiliateStatus
from app.models.connection import Connection
from app.models.handshake_status import HandshakeStatus
from app.models.partner_request import PartnerRequest
from app.models.party import Party, PartyRole
from app.models.thread_type import ThreadType
from app.services.attribution import build_tracking_link
from app.services.thread_log import ThreadLog

logger = logging.getLogger(__name__)

DECISIONS = {
    "accept": HandshakeStatus.accepted,
    "reject": HandshakeStatus.rejected,
}


class RequestOutcome(NamedTuple):
    thread: object
    created: bool


class HandshakeManager:
    model = None
    thread_type: ThreadType = None
    label = "request"
    initiator_role: PartyRole = None
    responder_role: PartyRole = None
    initiator_field = "seller_id"
    responder_field: str = None
    note_field: str = None
    created_field: str = None

    def __init__(self, db: Session):
        self.db = db
        self.log = ThreadLog(db)

    # -- hooks --------------------------------------------------------------

    def check_preconditions(self, initiator: Party) -> None:
        """Extra gate evaluated before the insert. Override per thread type."""

    def after_create(self, thread, initiator: Party, note: Optional[str]) -> None:
        """Runs inside the creating transaction, only when a new row was written."""

    def response_message(self, status: HandshakeStatus) -> str:
        return f"{self.label.capitalize()} {status.value}."

    # -- protocol -----------------------------------------------------------

    def request(self, initiator: Party, target_id: int, note: Optional[str] = None) -> RequestOutcome:
        if initiator.role != self.initiator_role:
            raise NotAuthorized(f"Only {self.initiator_role.value}s can send a {self.label}")
        target = self.db.get(Party, target_id)
        if target is None or target.role != self.responder_role:
            raise NotFound(f"{self.responder_role.value.capitalize()} not found")
        self.check_preconditions(initiator)

        note = (note or "").strip() or None
        pair = {self.initiator_field: initiator.id, self.responder_field: target.id}
        created = insert_or_ignore(
            self.db,
            self.model,
            {"id": str(uuid.uuid4()), "status": HandshakeStatus.pending, self.note_field: note, **pair},
            list(pair),
        )
        thread = self.db.query(self.model).filter_by(**pair).one()
        if created:
            self.after_create(thread, initiator, note)
            logger.info(
                "%s %s created: %s -> %s", self.label.capitalize(), thread.id, initiator.id, target.id
            )
        self.db.commit()
        return RequestOutcome(thread, created)

    def respond(self, thread_id: str, responder: Party, decision: str):
        status = DECISIONS.get((decision or "").strip().lower())
        if status is None:
            raise ValidationError("decision must be 'accept' or 'reject'")
        thread = (
            self.db.query(self.model)
            .filter(
                self.model.id == thread_id,
                getattr(self.model, self.responder_field) == responder.id,
            )
            .first()
        )
        if thread is None:
            raise NotFound(f"{self.label.capitalize()} not found")
        if thread.status != HandshakeStatus.pending:
            raise PreconditionFailed(f"{self.label.capitalize()} already {thread.status.value}")

        thread.status = status
        thread.responded_at = datetime.now(timezone.utc)
        self.log.append_system(thread.id, self.thread_type, responder.id, self.response_message(status))
        self.db.commit()
        logger.info("%s %s %s by %s", self.label.capitalize(), thread.id, status.value, responder.id)
        return thread

    def list_for(self, party: Party, status: Optional[HandshakeStatus] = None) -> list:
        query = self.db.query(self.model)
        if party.role != PartyRole.admin:
            query = query.filter(
                or_(
                    getattr(self.model, self.initiator_field) == party.id,
                    getattr(self.model, self.responder_field) == party.id,
                )
            )
        if status is not None:
            query = query.filter(self.model.status == status)
        return query.order_by(getattr(self.model, self.created_field).desc()).all()

    def is_participant(self, thread, party_id: int) -> bool:
        return party_id in (
            getattr(thread, self.initiator_field),
            getattr(thread, self.responder_field),
        )

    def get_for_participant(self, thread_id: str, party: Party):
        thread = self.db.get(self.model, thread_id)
        if thread is None:
            raise NotFound(f"{self.label.capitalize()} not found")
        if not self.is_participant(thread, party.id):
            raise NotParticipant()
        return thread

    def role_in(self, thread, party_id: int) -> PartyRole:
        if getattr(thread, self.initiator_field) == party_id:
            return self.initiator_role
        return self.responder_role


class ConnectionManager(HandshakeManager):
    model = Connection
    thread_type = ThreadType.connection
    label = "connection"
    initiator_role = PartyRole.seller
    responder_role = PartyRole.investor
    responder_field = "investor_id"
    note_field = "notes"
    created_field = "requested_at"

    def response_message(self, status: HandshakeStatus) -> str:
        if status == HandshakeStatus.accepted:
            return "Connection accepted by investor."
        return "Connection declined by investor."

    def has_accepted(self, seller_id: int) -> bool:
        return (
            self.db.query(Connection.id)
            .filter(Connection.seller_id == seller_id, Connection.status == HandshakeStatus.accepted)
            .first()
            is not None
        )


AGREEMENT_TITLE = "Affiliate Partnership Agreement"
AGREEMENT_TERMS = [
    "Parties agree to collaborate on promoting seller products.",
    "Affiliate will use the provided tracking link for attribution.",
    "Commission structure and payout schedule are governed by platform policies.",
]


class PartnershipManager(HandshakeManager):
    model = PartnerRequest
    thread_type = ThreadType.partner_request
    label = "partner request"
    initiator_role = PartyRole.seller
    responder_role = PartyRole.affiliate
    responder_field = "affiliate_user_id"
    note_field = "message"
    created_field = "created_at"

    # Chat sender tags on partner threads
    SENDER_TYPES = {
        PartyRole.seller: "vendor",
        PartyRole.affiliate: "affiliate",
    }

    def check_preconditions(self, initiator: Party) -> None:
        if not ConnectionManager(self.db).has_accepted(initiator.id):
            logger.info("Partner request refused for seller %s: no accepted connection", initiator.id)
            raise PreconditionFailed(
                "You must have an accepted investor connection before partnering with affiliates.",
                status_code=403,
            )

    def after_create(self, thread, initiator: Party, note: Optional[str]) -> None:
        if note:
            self.log.append(thread.id, self.thread_type, initiator.id, note, sender_type="vendor")

    def response_message(self, status: HandshakeStatus) -> str:
        if status == HandshakeStatus.accepted:
            return "Partnership accepted by affiliate."
        return "Partnership declined by affiliate."

    def sender_type(self, thread, party_id: int) -> str:
        return self.SENDER_TYPES[self.role_in(thread, party_id)]

    def partnered_affiliates(self, seller: Party) -> List[PartnerRequest]:
        if not ConnectionManager(self.db).has_accepted(seller.id):
            return []
        return (
            self.db.query(PartnerRequest)
            .filter(
                PartnerRequest.seller_id == seller.id,
                PartnerRequest.status == HandshakeStatus.accepted,
            )
            .order_by(PartnerRequest.responded_at.desc())
            .all()
        )

    def tracking_link(self, request_id: str, party: Party, product_id: str) -> str:
        product_id = (product_id or "").strip()
        if not product_id:
            raise ValidationError("product_id is required")
        thread = self.get_for_participant(request_id, party)
        if thread.status != HandshakeStatus.accepted:
            raise PreconditionFailed("Tracking links are only available for accepted partnerships")
        profile = self.db.get(AffiliateProfile, thread.affiliate_user_id)
        if profile is None:
            raise NotFound("Affiliate code not found")
        if profile.status != AffiliateStatus.approved:
            raise PreconditionFailed(
                f"Tracking links are only issued once the affiliate is approved (status: {profile.status.value})"
            )
        return build_tracking_link(settings.PUBLIC_APP_BASE, product_id, profile.affiliate_code)

    def agreement(self, request_id: str, party: Party) -> dict:
        """Structured agreement terms for a partner request."""
        thread = self.get_for_participant(request_id, party)
        seller = self.db.get(Party, thread.seller_id)
        affiliate = self.db.get(Party, thread.affiliate_user_id)
        profile = self.db.get(AffiliateProfile, thread.affiliate_user_id)
        return {
            "request_id": thread.id,
            "title": AGREEMENT_TITLE,
            "status": thread.status.value,
            "effective_date": thread.responded_at or thread.created_at,
            "seller": {"id": seller.id, "name": seller.display_name},
            "affiliate": {
                "id": affiliate.id,
                "name": affiliate.display_name,
                "affiliate_code": profile.affiliate_code if profile else None,
            },
            "terms": list(AGREEMENT_TERMS),
        }
