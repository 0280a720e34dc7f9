from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth import get_current_investor, require_role
from app.core.deps import get_db
from app.models.party import Party, PartyRole
from app.schemas.investor import (
    InvestmentPreferenceResponse,
    InvestmentPreferenceUpdate,
    InvestorListResponse,
    InvestorOut,
)
from app.services.investor_directory import InvestorDirectory

router = APIRouter()

get_directory_viewer = require_role(PartyRole.seller, PartyRole.admin)


def get_directory(db: Session = Depends(get_db)) -> InvestorDirectory:
    return InvestorDirectory(db)


@router.get("", response_model=InvestorListResponse)
def list_investors(
    viewer: Party = Depends(get_directory_viewer),
    directory: InvestorDirectory = Depends(get_directory),
):
    """Investors and what they invest in, for sellers choosing whom to approach."""
    investors = [
        InvestorOut(investor_id=party.id, name=party.display_name, preferences=preference)
        for party, preference in directory.investors()
    ]
    return InvestorListResponse(investors=investors)


@router.get("/me/preferences", response_model=InvestmentPreferenceResponse)
def get_my_preferences(
    investor: Party = Depends(get_current_investor),
    directory: InvestorDirectory = Depends(get_directory),
):
    return InvestmentPreferenceResponse(preferences=directory.preferences(investor.id))


@router.put("/me/preferences", response_model=InvestmentPreferenceResponse)
def save_my_preferences(
    data: InvestmentPreferenceUpdate,
    investor: Party = Depends(get_current_investor),
    directory: InvestorDirectory = Depends(get_directory),
):
    preference = directory.save_preferences(
        investor,
        min_investment=data.min_investment,
        max_investment=data.max_investment,
        categories=data.categories,
        regions=data.regions,
        risk_level=data.risk_level,
    )
    return InvestmentPreferenceResponse(preferences=preference)
