from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
import enum

from app.core.database import Base


class PartyRole(str, enum.Enum):
    seller = "seller"
    investor = "investor"
    affiliate = "affiliate"
    admin = "admin"


class Party(Base):
    """Local mirror of an identity-provider user; id is the provider's numeric user id."""

    __tablename__ = "parties"

    id = Column(Integer, primary_key=True, autoincrement=False)
    role = Column(Enum(PartyRole), nullable=False, index=True)
    display_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
