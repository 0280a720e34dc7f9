import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Header, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_db
from app.core.errors import NotAuthorized, NotFound, ValidationError
from app.schemas.common import Envelope
from app.schemas.tracking import SaleCreate, SaleResponse
from app.services.attribution import AttributionLedger

logger = logging.getLogger(__name__)

router = APIRouter()
# Mounted at the root: shareable product links
public_router = APIRouter()


def get_ledger(db: Session = Depends(get_db)) -> AttributionLedger:
    return AttributionLedger(db)


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.get("/click/{product_id}", response_model=Envelope)
def track_click(
    product_id: str,
    request: Request,
    ref: Optional[str] = Query(None, description="Affiliate code"),
    ledger: AttributionLedger = Depends(get_ledger),
):
    if not ref:
        raise ValidationError("ref (affiliate_code) required")
    ledger.track_click(product_id, ref, _client_ip(request))
    return Envelope()


@router.post("/sale", response_model=SaleResponse, status_code=201)
def record_sale(
    data: SaleCreate,
    x_tracking_secret: Optional[str] = Header(None),
    ledger: AttributionLedger = Depends(get_ledger),
):
    """Sale webhook from checkout. Commission is fixed at the configured rate."""
    if settings.TRACKING_WEBHOOK_SECRET and x_tracking_secret != settings.TRACKING_WEBHOOK_SECRET:
        raise NotAuthorized("Invalid tracking secret")
    sale = ledger.record_sale(data.product_id, data.affiliate_code, data.amount)
    return SaleResponse(sale_id=sale.id, commission=float(sale.commission))


@public_router.get("/p/{product_id}")
def product_redirect(
    product_id: str,
    request: Request,
    aff: Optional[str] = Query(None),
    ledger: AttributionLedger = Depends(get_ledger),
):
    """Record the click when the code is valid, then send the visitor to the product page."""
    if aff:
        try:
            ledger.track_click(product_id, aff, _client_ip(request))
        except NotFound:
            logger.warning("Redirect for product %s with unknown affiliate code %s", product_id, aff)
    params = {"productId": product_id}
    params.update({k: v for k, v in request.query_params.items() if k != "productId"})
    target = f"{settings.PUBLIC_APP_BASE.rstrip('/')}/customer/ProductDetail?{urlencode(params)}"
    return RedirectResponse(target, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
