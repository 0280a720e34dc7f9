from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from app.models.funding_request import FundingStatus
from app.schemas.common import Envelope


class FundingRequestCreate(BaseModel):
    # Sellers may omit seller_id, investors may omit investor_id
    seller_id: Optional[int] = None
    investor_id: Optional[int] = None
    requested_amount: Decimal


class AssignInvestorBody(BaseModel):
    investor_id: int


class FundBody(BaseModel):
    funded_amount: Optional[Decimal] = None


class RejectBody(BaseModel):
    reason: Optional[str] = None


class FundingRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    seller_id: int
    investor_id: Optional[int] = None
    requested_amount: float
    funded_amount: Optional[float] = None
    status: FundingStatus
    admin_approved: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PendingAgreementOut(FundingRequestOut):
    doc_count: int


class FundingRequestResponse(Envelope):
    request: FundingRequestOut
    created: bool = False


class FundingRequestListResponse(Envelope):
    requests: list[FundingRequestOut]


class PendingAgreementListResponse(Envelope):
    requests: list[PendingAgreementOut]


class FundingStatsResponse(Envelope):
    stats: dict[str, Union[int, float]]
