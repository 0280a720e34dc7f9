from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func
import enum

from app.core.database import Base


class FundingStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    funded = "funded"
    rejected = "rejected"


class FundingRequest(Base):
    __tablename__ = "funding_requests"
    # NULL investor_id never conflicts, so unassigned requests are not deduplicated
    __table_args__ = (
        UniqueConstraint("seller_id", "investor_id", name="uq_funding_requests_seller_investor"),
    )

    id = Column(String(36), primary_key=True, index=True)
    seller_id = Column(Integer, ForeignKey("parties.id"), nullable=False, index=True)
    investor_id = Column(Integer, ForeignKey("parties.id"), nullable=True, index=True)
    requested_amount = Column(Numeric(15, 2), nullable=False, default=0)
    funded_amount = Column(Numeric(15, 2), nullable=True)
    status = Column(
        Enum(FundingStatus),
        default=FundingStatus.pending,
        nullable=False,
        index=True,
    )
    admin_approved = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
