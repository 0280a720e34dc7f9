from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum, Text, UniqueConstraint
from sqlalchemy.sql import func

from app.core.database import Base
from app.models.handshake_status import HandshakeStatus


class PartnerRequest(Base):
    """Seller -> affiliate handshake."""

    __tablename__ = "partner_requests"
    __table_args__ = (
        UniqueConstraint("seller_id", "affiliate_user_id", name="uq_partner_requests_seller_affiliate"),
    )

    id = Column(String(36), primary_key=True, index=True)
    seller_id = Column(Integer, ForeignKey("parties.id"), nullable=False, index=True)
    affiliate_user_id = Column(Integer, ForeignKey("parties.id"), nullable=False, index=True)
    status = Column(
        Enum(HandshakeStatus, name="handshakestatus"),
        default=HandshakeStatus.pending,
        nullable=False,
        index=True,
    )
    message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    responded_at = Column(DateTime(timezone=True), nullable=True)
