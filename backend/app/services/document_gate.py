"""
Document gate: who may upload which document type to which thread, first-write-wins for
gating documents, and role-scoped listing on partnership threads.
"""
import logging
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import Conflict, NotAuthorized, ValidationError
from app.models.document import Document
from app.models.party import PartyRole
from app.models.thread_type import ThreadType
from app.services.object_store import IncomingFile, ObjectStore

logger = logging.getLogger(__name__)

FINAL_AGREEMENT = "final_agreement"
PAYMENT_SLIP = "payment_slip"
FLYER = "flyer"
AGREEMENT = "agreement"

_EITHER_CONNECTION_PARTY = {PartyRole.seller, PartyRole.investor}

# thread type -> doc type -> roles allowed to upload it
UPLOAD_RULES: dict[ThreadType, dict[str, set[PartyRole]]] = {
    ThreadType.funding_request: {
        FINAL_AGREEMENT: {PartyRole.investor},
        PAYMENT_SLIP: {PartyRole.investor},
    },
    ThreadType.partner_request: {
        FLYER: {PartyRole.seller},
        AGREEMENT: {PartyRole.affiliate},
    },
    ThreadType.connection: {
        "intro": _EITHER_CONNECTION_PARTY,
        "pitch": _EITHER_CONNECTION_PARTY,
        "other": _EITHER_CONNECTION_PARTY,
    },
}

SINGLE_INSTANCE_TYPES = {FINAL_AGREEMENT, PAYMENT_SLIP}

# Partnership threads: each side only sees what the other side uploaded for them
PARTNER_VISIBILITY = {
    PartyRole.affiliate: FLYER,
    PartyRole.seller: AGREEMENT,
}


def normalise_doc_type(doc_type: Optional[str]) -> str:
    return (doc_type or "").strip().lower()


class DocumentGate:
    def __init__(self, db: Session, store: ObjectStore):
        self.db = db
        self.store = store

    def check_upload(self, thread_type: ThreadType, uploader_role: PartyRole, doc_type: str) -> str:
        """Validate doc type against the allow-list; returns the normalised type."""
        doc_type = normalise_doc_type(doc_type)
        rules = UPLOAD_RULES[thread_type]
        if doc_type not in rules:
            raise ValidationError(
                f"doc_type must be one of: {', '.join(sorted(rules))}"
            )
        if uploader_role not in rules[doc_type]:
            raise NotAuthorized(f"{uploader_role.value.capitalize()}s cannot upload '{doc_type}' documents")
        return doc_type

    def upload(
        self,
        thread_id: str,
        thread_type: ThreadType,
        uploader_id: int,
        uploader_role: PartyRole,
        doc_type: str,
        file: IncomingFile,
    ) -> Document:
        doc_type = self.check_upload(thread_type, uploader_role, doc_type)
        if doc_type in SINGLE_INSTANCE_TYPES:
            existing = self.find(thread_id, thread_type, doc_type)
            if existing:
                raise self._conflict(existing)

        stored = self.store.save(file, folder=f"{thread_type.value}/{thread_id}")
        document = Document(
            id=str(uuid.uuid4()),
            thread_id=thread_id,
            thread_type=thread_type,
            uploader_id=uploader_id,
            doc_type=doc_type,
            file_path=stored.path,
            mime_type=stored.mime_type,
        )
        self.db.add(document)
        try:
            self.db.flush()
        except IntegrityError:
            # Lost a concurrent race on the gated-type unique index; the unit of work is void
            self.db.rollback()
            self.store.delete(stored.path)
            existing = self.find(thread_id, thread_type, doc_type)
            if existing is None:
                raise
            raise self._conflict(existing)
        logger.info(
            "Document %s uploaded: %s %s type=%s by %s",
            document.id, thread_type.value, thread_id, doc_type, uploader_id,
        )
        return document

    @contextmanager
    def discard_on_failure(self, document: Document) -> Iterator[Document]:
        """
        Wrap the rest of an upload's unit of work. If any later step fails, the transaction is
        rolled back and the stored object removed so no file outlives its row.
        """
        document_id, path = document.id, document.file_path
        try:
            yield document
        except Exception:
            self.db.rollback()
            self.store.delete(path)
            logger.warning("Upload of document %s abandoned; removed %s", document_id, path)
            raise

    def find(self, thread_id: str, thread_type: ThreadType, doc_type: str) -> Optional[Document]:
        return (
            self.db.query(Document)
            .filter(
                Document.thread_type == thread_type,
                Document.thread_id == thread_id,
                Document.doc_type == normalise_doc_type(doc_type),
            )
            .order_by(Document.created_at.asc())
            .first()
        )

    def exists(self, thread_id: str, thread_type: ThreadType, doc_type: str) -> bool:
        return self.find(thread_id, thread_type, doc_type) is not None

    def list(
        self,
        thread_id: str,
        thread_type: ThreadType,
        viewer_role: Optional[PartyRole] = None,
    ) -> list[Document]:
        query = self.db.query(Document).filter(
            Document.thread_type == thread_type,
            Document.thread_id == thread_id,
        )
        if thread_type == ThreadType.partner_request and viewer_role is not None:
            visible = PARTNER_VISIBILITY.get(viewer_role)
            if visible is None:
                return []
            query = query.filter(Document.doc_type == visible)
        return query.order_by(Document.created_at.desc()).all()

    @staticmethod
    def _conflict(existing: Document) -> Conflict:
        return Conflict(
            f"A {existing.doc_type} document has already been uploaded for this request",
            payload={
                "existing_document": {
                    "id": existing.id,
                    "doc_type": existing.doc_type,
                    "file_path": existing.file_path,
                    "uploader_id": existing.uploader_id,
                }
            },
        )
