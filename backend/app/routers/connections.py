from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_investor, get_current_party, get_current_seller
from app.core.deps import get_db, get_store, incoming_file
from app.models.handshake_status import HandshakeStatus
from app.models.party import Party
from app.models.thread_type import ThreadType
from app.schemas.handshake import (
    ConnectionListResponse,
    ConnectionRequestCreate,
    ConnectionRespond,
    ConnectionResponse,
)
from app.schemas.thread import (
    DocumentListResponse,
    DocumentResponse,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
)
from app.services.document_gate import DocumentGate
from app.services.handshake import ConnectionManager
from app.services.object_store import ObjectStore
from app.services.thread_log import ThreadLog

router = APIRouter()


def get_manager(db: Session = Depends(get_db)) -> ConnectionManager:
    return ConnectionManager(db)


@router.post("/request", response_model=ConnectionResponse)
def request_connection(
    data: ConnectionRequestCreate,
    response: Response,
    seller: Party = Depends(get_current_seller),
    manager: ConnectionManager = Depends(get_manager),
):
    """Seller asks an investor to connect. Repeating the request returns the existing connection."""
    outcome = manager.request(seller, data.investor_id, data.notes)
    response.status_code = status.HTTP_201_CREATED if outcome.created else status.HTTP_200_OK
    return ConnectionResponse(connection=outcome.thread, created=outcome.created)


@router.post("/respond", response_model=ConnectionResponse)
def respond_to_connection(
    data: ConnectionRespond,
    investor: Party = Depends(get_current_investor),
    manager: ConnectionManager = Depends(get_manager),
):
    connection = manager.respond(data.connection_id, investor, data.decision)
    return ConnectionResponse(connection=connection)


@router.get("", response_model=ConnectionListResponse)
def list_connections(
    status_filter: Optional[HandshakeStatus] = Query(None, alias="status"),
    party: Party = Depends(get_current_party),
    manager: ConnectionManager = Depends(get_manager),
):
    return ConnectionListResponse(connections=manager.list_for(party, status_filter))


# --- Pre-accept thread: chat and documents ---


@router.get("/{connection_id}/messages", response_model=MessageListResponse)
def list_messages(
    connection_id: str,
    order: str = Query("asc"),
    limit: Optional[int] = Query(None, ge=1),
    party: Party = Depends(get_current_party),
    manager: ConnectionManager = Depends(get_manager),
):
    connection = manager.get_for_participant(connection_id, party)
    messages = ThreadLog(manager.db).list(connection.id, ThreadType.connection, order, limit)
    return MessageListResponse(messages=messages)


@router.post("/{connection_id}/messages", response_model=MessageResponse, status_code=201)
def post_message(
    connection_id: str,
    data: MessageCreate,
    party: Party = Depends(get_current_party),
    manager: ConnectionManager = Depends(get_manager),
):
    connection = manager.get_for_participant(connection_id, party)
    message = ThreadLog(manager.db).append(connection.id, ThreadType.connection, party.id, data.message)
    manager.db.commit()
    return MessageResponse(message=message)


@router.get("/{connection_id}/documents", response_model=DocumentListResponse)
def list_documents(
    connection_id: str,
    party: Party = Depends(get_current_party),
    manager: ConnectionManager = Depends(get_manager),
    store: ObjectStore = Depends(get_store),
):
    connection = manager.get_for_participant(connection_id, party)
    documents = DocumentGate(manager.db, store).list(connection.id, ThreadType.connection)
    return DocumentListResponse(documents=documents)


@router.post("/{connection_id}/documents", response_model=DocumentResponse, status_code=201)
def upload_document(
    connection_id: str,
    doc_type: str = Form("other"),
    document: UploadFile = File(None),
    party: Party = Depends(get_current_party),
    manager: ConnectionManager = Depends(get_manager),
    store: ObjectStore = Depends(get_store),
):
    """Intro, pitch or other supporting documents from either side of the connection."""
    connection = manager.get_for_participant(connection_id, party)
    gate = DocumentGate(manager.db, store)
    uploaded = gate.upload(
        connection.id,
        ThreadType.connection,
        party.id,
        party.role,
        doc_type,
        incoming_file(document),
    )
    with gate.discard_on_failure(uploaded):
        manager.db.commit()
    return DocumentResponse(document=uploaded)
