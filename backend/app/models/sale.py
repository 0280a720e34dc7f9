from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Numeric
from sqlalchemy.sql import func

from app.core.database import Base


class Sale(Base):
    __tablename__ = "sales"

    id = Column(String(36), primary_key=True, index=True)
    product_id = Column(String(64), nullable=False, index=True)
    affiliate_id = Column(Integer, ForeignKey("parties.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    commission = Column(Numeric(12, 2), nullable=False)  # fixed at insert, never recomputed
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
