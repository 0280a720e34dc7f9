"""
Investor preferences and the investor directory sellers browse before sending a
connection request.
"""
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.database import insert_or_ignore
from app.core.errors import NotAuthorized, ValidationError
from app.models.investment_preference import InvestmentPreference, RiskLevel
from app.models.party import Party, PartyRole

logger = logging.getLogger(__name__)


def _amount(value, field: str) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount


def _clean_labels(values: Optional[Iterable[str]]) -> List[str]:
    """Strip, drop blanks and duplicates, keep first-seen order."""
    seen = []
    for value in values or []:
        label = str(value).strip()
        if label and label not in seen:
            seen.append(label)
    return seen


class InvestorDirectory:
    def __init__(self, db: Session):
        self.db = db

    def preferences(self, investor_id: int) -> Optional[InvestmentPreference]:
        return self.db.get(InvestmentPreference, investor_id)

    def save_preferences(
        self,
        investor: Party,
        min_investment=None,
        max_investment=None,
        categories: Optional[Iterable[str]] = None,
        regions: Optional[Iterable[str]] = None,
        risk_level: Optional[RiskLevel] = None,
    ) -> InvestmentPreference:
        """Replace the investor's preferences, creating the row on first save."""
        if investor.role != PartyRole.investor:
            raise NotAuthorized("Only investors have investment preferences")
        low = _amount(min_investment, "min_investment")
        high = _amount(max_investment, "max_investment")
        if low is not None and high is not None and low > high:
            raise ValidationError("min_investment cannot exceed max_investment")

        values = {
            "min_investment": low,
            "max_investment": high,
            "categories": _clean_labels(categories),
            "regions": _clean_labels(regions),
            "risk_level": risk_level or RiskLevel.moderate,
        }
        created = insert_or_ignore(
            self.db, InvestmentPreference, {"investor_id": investor.id, **values}, ["investor_id"]
        )
        preference = self.db.get(InvestmentPreference, investor.id)
        if not created:
            for field, value in values.items():
                setattr(preference, field, value)
        self.db.commit()
        self.db.refresh(preference)
        logger.info("Investment preferences %s for investor %s", "created" if created else "updated", investor.id)
        return preference

    def investors(self) -> List[Tuple[Party, Optional[InvestmentPreference]]]:
        """Every known investor with their preferences, if any, newest first."""
        return (
            self.db.query(Party, InvestmentPreference)
            .outerjoin(InvestmentPreference, InvestmentPreference.investor_id == Party.id)
            .filter(Party.role == PartyRole.investor)
            .order_by(Party.created_at.desc(), Party.id.desc())
            .all()
        )
