from fastapi import APIRouter, Depends

from app.core.auth import get_current_admin
from app.models.party import Party
from app.routers.affiliates import affiliate_out, get_ledger
from app.schemas.affiliate import AffiliateResponse, AffiliateStatusUpdate
from app.services.attribution import AttributionLedger

router = APIRouter()


@router.patch("/affiliates/{affiliate_id}/status", response_model=AffiliateResponse)
def set_affiliate_status(
    affiliate_id: int,
    data: AffiliateStatusUpdate,
    admin: Party = Depends(get_current_admin),
    ledger: AttributionLedger = Depends(get_ledger),
):
    """Approve or reject an affiliate. Only approved codes attribute clicks and sales."""
    profile = ledger.set_affiliate_status(affiliate_id, data.status)
    return AffiliateResponse(affiliate=affiliate_out(profile))
