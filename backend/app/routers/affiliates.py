from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth import get_current_affiliate, get_current_party
from app.core.deps import get_db
from app.core.errors import NotAuthorized
from app.models.affiliate_profile import AffiliateProfile
from app.models.party import Party, PartyRole
from app.schemas.affiliate import (
    AffiliateCodeResponse,
    AffiliateListResponse,
    AffiliateOut,
    AffiliateProfileUpdate,
    AffiliateResponse,
    DashboardResponse,
)
from app.services.attribution import AttributionLedger

router = APIRouter()


def get_ledger(db: Session = Depends(get_db)) -> AttributionLedger:
    return AttributionLedger(db)


def affiliate_out(profile: AffiliateProfile) -> AffiliateOut:
    return AffiliateOut(
        affiliate_id=profile.party_id,
        name=profile.party.display_name if profile.party else None,
        affiliate_code=profile.affiliate_code,
        status=profile.status,
        description=profile.description,
        social_links=profile.social_links or {},
        created_at=profile.created_at,
    )


@router.get("/me/code", response_model=AffiliateCodeResponse)
def get_my_code(
    affiliate: Party = Depends(get_current_affiliate),
    ledger: AttributionLedger = Depends(get_ledger),
):
    """Current affiliate's tracking code. First call registers a pending profile."""
    profile = ledger.affiliate_code(affiliate)
    return AffiliateCodeResponse(affiliate_code=profile.affiliate_code, status=profile.status)


@router.put("/me/profile", response_model=AffiliateResponse)
def update_my_profile(
    data: AffiliateProfileUpdate,
    affiliate: Party = Depends(get_current_affiliate),
    ledger: AttributionLedger = Depends(get_ledger),
):
    social_links = None
    if data.social_links is not None:
        social_links = {platform: str(url) for platform, url in data.social_links.items()}
    profile = ledger.update_profile(affiliate, data.description, social_links)
    return AffiliateResponse(affiliate=affiliate_out(profile))


@router.get("/approved", response_model=AffiliateListResponse)
def list_approved_affiliates(
    party: Party = Depends(get_current_party),
    ledger: AttributionLedger = Depends(get_ledger),
):
    """Approved affiliates a seller can invite."""
    return AffiliateListResponse(affiliates=[affiliate_out(p) for p in ledger.approved_affiliates()])


@router.get("/{affiliate_id}/dashboard", response_model=DashboardResponse)
def get_dashboard(
    affiliate_id: int,
    party: Party = Depends(get_current_party),
    ledger: AttributionLedger = Depends(get_ledger),
):
    if party.role != PartyRole.admin and party.id != affiliate_id:
        raise NotAuthorized("You can only view your own dashboard")
    return DashboardResponse(stats=ledger.dashboard(affiliate_id))
