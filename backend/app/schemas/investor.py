from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.models.investment_preference import RiskLevel
from app.schemas.common import Envelope


class InvestmentPreferenceUpdate(BaseModel):
    min_investment: Optional[Decimal] = None
    max_investment: Optional[Decimal] = None
    categories: list[str] = []
    regions: list[str] = []
    risk_level: RiskLevel = RiskLevel.moderate


class InvestmentPreferenceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    investor_id: int
    min_investment: Optional[float] = None
    max_investment: Optional[float] = None
    categories: list[str] = []
    regions: list[str] = []
    risk_level: RiskLevel
    updated_at: Optional[datetime] = None


class InvestmentPreferenceResponse(Envelope):
    preferences: Optional[InvestmentPreferenceOut] = None


class InvestorOut(BaseModel):
    investor_id: int
    name: Optional[str] = None
    preferences: Optional[InvestmentPreferenceOut] = None


class InvestorListResponse(Envelope):
    investors: list[InvestorOut]
