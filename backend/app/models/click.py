from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.sql import func

from app.core.database import Base


class Click(Base):
    __tablename__ = "clicks"

    id = Column(String(36), primary_key=True, index=True)
    product_id = Column(String(64), nullable=False, index=True)
    affiliate_id = Column(Integer, ForeignKey("parties.id"), nullable=False, index=True)
    source_ip = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
