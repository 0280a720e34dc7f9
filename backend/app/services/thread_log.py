"""Append-only message log shared by every thread type. Callers own participancy checks and commits."""
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ValidationError
from app.models.message import Message
from app.models.thread_type import ThreadType


class ThreadLog:
    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        thread_id: str,
        thread_type: ThreadType,
        sender_id: int,
        body: str,
        sender_type: Optional[str] = None,
    ) -> Message:
        body = (body or "").strip()
        if not body:
            raise ValidationError("Message is required")
        return self._add(thread_id, thread_type, sender_id, body, sender_type, is_system=False)

    def append_system(self, thread_id: str, thread_type: ThreadType, acting_id: int, body: str) -> Message:
        """Record a state transition as a chat entry visible to both parties."""
        return self._add(thread_id, thread_type, acting_id, body, None, is_system=True)

    def list(
        self,
        thread_id: str,
        thread_type: ThreadType,
        order: str = "asc",
        limit: Optional[int] = None,
    ) -> list[Message]:
        if order not in ("asc", "desc"):
            raise ValidationError("order must be 'asc' or 'desc'")
        cap = settings.MESSAGE_PAGE_LIMIT
        limit = cap if limit is None else max(1, min(limit, cap))
        query = self.db.query(Message).filter(
            Message.thread_type == thread_type,
            Message.thread_id == thread_id,
        )
        if order == "desc":
            query = query.order_by(Message.created_at.desc(), Message.id.desc())
        else:
            query = query.order_by(Message.created_at.asc(), Message.id.asc())
        return query.limit(limit).all()

    def _add(self, thread_id, thread_type, sender_id, body, sender_type, is_system) -> Message:
        message = Message(
            id=str(uuid.uuid4()),
            thread_id=thread_id,
            thread_type=thread_type,
            sender_id=sender_id,
            sender_type=sender_type,
            body=body,
            is_system=is_system,
        )
        self.db.add(message)
        self.db.flush()
        return message
