from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.models.thread_type import ThreadType
from app.schemas.common import Envelope


class MessageCreate(BaseModel):
    message: str


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    thread_id: str
    thread_type: ThreadType
    sender_id: int
    sender_type: Optional[str] = None
    body: str
    is_system: bool
    created_at: Optional[datetime] = None


class MessageResponse(Envelope):
    message: MessageOut


class MessageListResponse(Envelope):
    messages: list[MessageOut]


class DocumentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    thread_id: str
    thread_type: ThreadType
    uploader_id: int
    doc_type: str
    file_path: str
    mime_type: str
    created_at: Optional[datetime] = None


class DocumentResponse(Envelope):
    document: DocumentOut


class DocumentListResponse(Envelope):
    documents: list[DocumentOut]
