from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum, Text, UniqueConstraint
from sqlalchemy.sql import func

from app.core.database import Base
from app.models.handshake_status import HandshakeStatus


class Connection(Base):
    """Seller -> investor handshake. Never deleted; doubles as the audit record."""

    __tablename__ = "connections"
    __table_args__ = (
        UniqueConstraint("seller_id", "investor_id", name="uq_connections_seller_investor"),
    )

    id = Column(String(36), primary_key=True, index=True)
    seller_id = Column(Integer, ForeignKey("parties.id"), nullable=False, index=True)
    investor_id = Column(Integer, ForeignKey("parties.id"), nullable=False, index=True)
    status = Column(
        Enum(HandshakeStatus, name="handshakestatus"),
        default=HandshakeStatus.pending,
        nullable=False,
        index=True,
    )
    notes = Column(Text, nullable=True)
    requested_at = Column(DateTime(timezone=True), server_default=func.now())
    responded_at = Column(DateTime(timezone=True), nullable=True)
