from sqlalchemy import Column, Integer, DateTime, Enum, ForeignKey, JSON, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from app.core.database import Base


class RiskLevel(str, enum.Enum):
    conservative = "conservative"
    moderate = "moderate"
    aggressive = "aggressive"


class InvestmentPreference(Base):
    """What an investor is looking for; sellers browse these before requesting a connection."""

    __tablename__ = "investment_preferences"

    investor_id = Column(Integer, ForeignKey("parties.id"), primary_key=True)
    min_investment = Column(Numeric(15, 2), nullable=True)
    max_investment = Column(Numeric(15, 2), nullable=True)
    categories = Column(JSON, nullable=False, default=list)
    regions = Column(JSON, nullable=False, default=list)
    risk_level = Column(Enum(RiskLevel), nullable=False, default=RiskLevel.moderate)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    investor = relationship("Party")
