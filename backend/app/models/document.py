from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum, Index, text
from sqlalchemy.sql import func

from app.core.database import Base
from app.models.thread_type import ThreadType

_GATED_TYPES = text("doc_type IN ('final_agreement', 'payment_slip')")


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_thread", "thread_type", "thread_id"),
        # First upload of a gating document wins
        Index(
            "uq_documents_gated_type",
            "thread_type",
            "thread_id",
            "doc_type",
            unique=True,
            postgresql_where=_GATED_TYPES,
            sqlite_where=_GATED_TYPES,
        ),
    )

    id = Column(String(36), primary_key=True, index=True)
    thread_id = Column(String(36), nullable=False)
    thread_type = Column(Enum(ThreadType), nullable=False)
    uploader_id = Column(Integer, ForeignKey("parties.id"), nullable=False, index=True)
    doc_type = Column(String(50), nullable=False)
    file_path = Column(String(512), nullable=False)
    mime_type = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
