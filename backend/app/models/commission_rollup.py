from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Numeric
from sqlalchemy.sql import func

from app.core.database import Base


class CommissionRollup(Base):
    __tablename__ = "commission_rollups"

    id = Column(String(36), primary_key=True, index=True)
    affiliate_id = Column(Integer, ForeignKey("parties.id"), unique=True, nullable=False, index=True)
    total_earned = Column(Numeric(14, 2), nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
