from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from app.models.handshake_status import HandshakeStatus
from app.schemas.common import Envelope


# --- Connections (seller -> investor) ---


class ConnectionRequestCreate(BaseModel):
    investor_id: int
    notes: Optional[str] = None


class ConnectionRespond(BaseModel):
    connection_id: str
    decision: Literal["accept", "reject"]


class ConnectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    seller_id: int
    investor_id: int
    status: HandshakeStatus
    notes: Optional[str] = None
    requested_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None


class ConnectionResponse(Envelope):
    connection: ConnectionOut
    created: bool = False


class ConnectionListResponse(Envelope):
    connections: list[ConnectionOut]


# --- Partner requests (seller -> affiliate) ---


class PartnerRequestCreate(BaseModel):
    affiliate_user_id: int
    message: Optional[str] = None


class PartnerRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    seller_id: int
    affiliate_user_id: int
    status: HandshakeStatus
    message: Optional[str] = None
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None


class PartnerRequestResponse(Envelope):
    request: PartnerRequestOut
    created: bool = False


class PartnerRequestListResponse(Envelope):
    requests: list[PartnerRequestOut]


class ProductLinkResponse(Envelope):
    product_id: str
    link: str


class AgreementParty(BaseModel):
    id: int
    name: Optional[str] = None
    affiliate_code: Optional[str] = None


class AgreementOut(BaseModel):
    request_id: str
    title: str
    status: HandshakeStatus
    effective_date: Optional[datetime] = None
    seller: AgreementParty
    affiliate: AgreementParty
    terms: list[str]


class AgreementResponse(Envelope):
    agreement: AgreementOut


class PartneredAffiliateOut(BaseModel):
    request_id: str
    affiliate_id: int
    name: Optional[str] = None
    affiliate_code: Optional[str] = None
    partnered_at: Optional[datetime] = None


class PartneredAffiliateListResponse(Envelope):
    affiliates: list[PartneredAffiliateOut]
