"""
Affiliate attribution ledger: click and sale events keyed by affiliate code, the per-affiliate
commission rollup, and affiliate profile housekeeping.
"""
import logging
import secrets
import uuid
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List, Optional
from urllib.parse import quote

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import insert_or_ignore, upsert_increment
from app.core.errors import NotFound, ValidationError
from app.models.affiliate_profile import AffiliateProfile, AffiliateStatus
from app.models.click import Click
from app.models.commission_rollup import CommissionRollup
from app.models.party import Party
from app.models.sale import Sale

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
CODE_ATTEMPTS = 10
DASHBOARD_MONTHS = 12


def compute_commission(amount: Decimal, rate: Optional[Decimal] = None) -> Decimal:
    """Commission fixed at sale time, rounded half-up to cents."""
    rate = settings.COMMISSION_RATE if rate is None else rate
    return (Decimal(amount) * Decimal(rate)).quantize(CENTS, rounding=ROUND_HALF_UP)


def build_tracking_link(base: str, product_id: str, affiliate_code: str) -> str:
    return f"{base.rstrip('/')}/product/{quote(str(product_id), safe='')}?aff={quote(affiliate_code, safe='')}"


def _to_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError("amount must be a number")
    if amount <= 0:
        raise ValidationError("amount must be greater than 0")
    return amount


class AttributionLedger:
    def __init__(self, db: Session):
        self.db = db

    def resolve_affiliate(self, affiliate_code: Optional[str]) -> AffiliateProfile:
        code = (affiliate_code or "").strip()
        if not code:
            raise ValidationError("affiliate code is required")
        profile = (
            self.db.query(AffiliateProfile)
            .filter(
                AffiliateProfile.affiliate_code == code,
                AffiliateProfile.status == AffiliateStatus.approved,
            )
            .first()
        )
        if profile is None:
            raise NotFound("Affiliate not found or not approved")
        return profile

    def track_click(self, product_id: str, affiliate_code: str, source_ip: Optional[str] = None) -> Click:
        profile = self.resolve_affiliate(affiliate_code)
        click = Click(
            id=str(uuid.uuid4()),
            product_id=str(product_id),
            affiliate_id=profile.party_id,
            source_ip=source_ip,
        )
        self.db.add(click)
        self.db.commit()
        return click

    def record_sale(self, product_id: str, affiliate_code: str, amount) -> Sale:
        """Insert the sale and bump the rollup in a single transaction."""
        if not product_id:
            raise ValidationError("product_id is required")
        amount = _to_amount(amount)
        profile = self.resolve_affiliate(affiliate_code)
        commission = compute_commission(amount)

        sale = Sale(
            id=str(uuid.uuid4()),
            product_id=str(product_id),
            affiliate_id=profile.party_id,
            amount=amount,
            commission=commission,
        )
        self.db.add(sale)
        self.db.flush()
        upsert_increment(
            self.db,
            CommissionRollup,
            {"id": str(uuid.uuid4()), "affiliate_id": profile.party_id, "total_earned": commission},
            ["affiliate_id"],
            "total_earned",
            extra_updates={"updated_at": func.now()},
        )
        self.db.commit()
        logger.info(
            "Sale %s recorded for affiliate %s: amount=%s commission=%s",
            sale.id, profile.party_id, amount, commission,
        )
        return sale

    def total_earned(self, affiliate_id: int) -> Decimal:
        rollup = (
            self.db.query(CommissionRollup)
            .filter(CommissionRollup.affiliate_id == affiliate_id)
            .first()
        )
        return Decimal(rollup.total_earned) if rollup else Decimal("0")

    def _month_bucket(self):
        if self.db.get_bind().dialect.name == "postgresql":
            return func.to_char(Sale.created_at, "YYYY-MM")
        return func.strftime("%Y-%m", Sale.created_at)

    def dashboard(self, affiliate_id: int) -> dict:
        total_clicks = (
            self.db.query(func.count(Click.id)).filter(Click.affiliate_id == affiliate_id).scalar()
        )
        total_sales = (
            self.db.query(func.count(Sale.id)).filter(Sale.affiliate_id == affiliate_id).scalar()
        )
        month = self._month_bucket().label("month")
        monthly = (
            self.db.query(month, func.coalesce(func.sum(Sale.commission), 0))
            .filter(Sale.affiliate_id == affiliate_id)
            .group_by(month)
            .order_by(month.desc())
            .limit(DASHBOARD_MONTHS)
            .all()
        )
        return {
            "total_clicks": total_clicks or 0,
            "total_sales": total_sales or 0,
            "total_commission": self.total_earned(affiliate_id),
            "monthly": [
                {"month": m, "commission": Decimal(str(c or 0))} for m, c in monthly
            ],
        }

    # -- affiliate profiles ---------------------------------------------------

    def _generate_code(self) -> str:
        for _ in range(CODE_ATTEMPTS):
            code = f"AFF{100 + secrets.randbelow(900)}"
            taken = (
                self.db.query(AffiliateProfile.party_id)
                .filter(AffiliateProfile.affiliate_code == code)
                .first()
            )
            if taken is None:
                return code
        # Three-digit space is crowded; fall back to a longer code
        return f"AFF{secrets.token_hex(4).upper()}"

    def affiliate_code(self, party: Party) -> AffiliateProfile:
        """Caller's profile, registering a pending one on first use."""
        profile = self.db.get(AffiliateProfile, party.id)
        if profile is not None:
            return profile
        created = insert_or_ignore(
            self.db,
            AffiliateProfile,
            {
                "party_id": party.id,
                "affiliate_code": self._generate_code(),
                "status": AffiliateStatus.pending,
                "social_links": {},
            },
            ["party_id"],
        )
        self.db.commit()
        profile = self.db.get(AffiliateProfile, party.id)
        if created:
            logger.info("Affiliate profile created for %s with code %s", party.id, profile.affiliate_code)
        return profile

    def update_profile(
        self, party: Party, description: Optional[str] = None, social_links: Optional[dict] = None
    ) -> AffiliateProfile:
        profile = self.affiliate_code(party)
        if description is not None:
            profile.description = description.strip()
        if social_links is not None:
            profile.social_links = {str(k): str(v) for k, v in social_links.items()}
        self.db.commit()
        self.db.refresh(profile)
        return profile

    def approved_affiliates(self) -> List[AffiliateProfile]:
        return (
            self.db.query(AffiliateProfile)
            .filter(AffiliateProfile.status == AffiliateStatus.approved)
            .order_by(AffiliateProfile.created_at.desc())
            .all()
        )

    def set_affiliate_status(self, affiliate_id: int, status: AffiliateStatus) -> AffiliateProfile:
        profile = self.db.get(AffiliateProfile, affiliate_id)
        if profile is None:
            raise NotFound("Affiliate not found")
        profile.status = status
        self.db.commit()
        self.db.refresh(profile)
        logger.info("Affiliate %s status set to %s", affiliate_id, status.value)
        return profile
