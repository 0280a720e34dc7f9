from decimal import Decimal

from pydantic import BaseModel

from app.schemas.common import Envelope


class SaleCreate(BaseModel):
    product_id: str
    affiliate_code: str
    amount: Decimal


class SaleResponse(Envelope):
    sale_id: str
    commission: float
