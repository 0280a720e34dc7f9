from app.core.database import Base
from app.models.party import Party, PartyRole
from app.models.affiliate_profile import AffiliateProfile, AffiliateStatus
from app.models.investment_preference import InvestmentPreference, RiskLevel
from app.models.handshake_status import HandshakeStatus
from app.models.thread_type import ThreadType
from app.models.connection import Connection
from app.models.partner_request import PartnerRequest
from app.models.funding_request import FundingRequest, FundingStatus
from app.models.document import Document
from app.models.message import Message
from app.models.click import Click
from app.models.sale import Sale
from app.models.commission_rollup import CommissionRollup

__all__ = [
    "Base",
    "Party",
    "PartyRole",
    "AffiliateProfile",
    "AffiliateStatus",
    "InvestmentPreference",
    "RiskLevel",
    "HandshakeStatus",
    "ThreadType",
    "Connection",
    "PartnerRequest",
    "FundingRequest",
    "FundingStatus",
    "Document",
    "Message",
    "Click",
    "Sale",
    "CommissionRollup",
]
