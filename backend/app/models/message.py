from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, String, Integer, DateTime, ForeignKey, Enum, Index, Text
from sqlalchemy.sql import func

from app.core.database import Base
from app.models.thread_type import ThreadType


def _utcnow() -> datetime:
    # Per-row timestamp; now() is frozen for the whole transaction on PostgreSQL
    return datetime.now(timezone.utc)


class Message(Base):
    """Thread log entry. Append-only; is_system marks platform-authored transition notices."""

    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_thread", "thread_type", "thread_id", "created_at"),)

    id = Column(String(36), primary_key=True, index=True)
    thread_id = Column(String(36), nullable=False)
    thread_type = Column(Enum(ThreadType), nullable=False)
    sender_id = Column(Integer, ForeignKey("parties.id"), nullable=False, index=True)
    sender_type = Column(String(20), nullable=True)  # vendor, affiliate (partner threads)
    body = Column(Text, nullable=False)
    is_system = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
