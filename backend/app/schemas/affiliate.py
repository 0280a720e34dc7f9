from datetime import datetime
from typing import Optional

from pydantic import BaseModel, HttpUrl

from app.models.affiliate_profile import AffiliateStatus
from app.schemas.common import Envelope


class AffiliateProfileUpdate(BaseModel):
    description: Optional[str] = None
    social_links: Optional[dict[str, HttpUrl]] = None  # {platform: url}


class AffiliateStatusUpdate(BaseModel):
    status: AffiliateStatus


class AffiliateOut(BaseModel):
    affiliate_id: int
    name: Optional[str] = None
    affiliate_code: str
    status: AffiliateStatus
    description: Optional[str] = None
    social_links: dict[str, str] = {}
    created_at: Optional[datetime] = None


class AffiliateCodeResponse(Envelope):
    affiliate_code: str
    status: AffiliateStatus


class AffiliateResponse(Envelope):
    affiliate: AffiliateOut


class AffiliateListResponse(Envelope):
    affiliates: list[AffiliateOut]


class MonthlyCommission(BaseModel):
    month: str
    commission: float


class DashboardStats(BaseModel):
    total_clicks: int
    total_sales: int
    total_commission: float
    monthly: list[MonthlyCommission]


class DashboardResponse(Envelope):
    stats: DashboardStats
