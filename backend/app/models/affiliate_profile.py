from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, JSON, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from app.core.database import Base


class AffiliateStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class AffiliateProfile(Base):
    __tablename__ = "affiliate_profiles"

    party_id = Column(Integer, ForeignKey("parties.id"), primary_key=True)
    affiliate_code = Column(String(16), unique=True, index=True, nullable=False)
    status = Column(
        Enum(AffiliateStatus),
        default=AffiliateStatus.pending,
        nullable=False,
        index=True,
    )
    description = Column(Text, nullable=True)
    social_links = Column(JSON, nullable=False, default=dict)  # {platform: url}
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    party = relationship("Party")
