from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import insert_or_ignore
from app.core.deps import get_db
from app.core.errors import NotAuthorized
from app.core.security import decode_access_token
from app.models.party import Party, PartyRole

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_party(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Party:
    """
    Resolve the bearer credential to {userId, role} and return the local Party mirror,
    registering it on first sight. The identity provider is authoritative for the role.
    """
    if not credentials or not credentials.credentials:
        raise _unauthorized("Not authenticated")
    payload = decode_access_token(credentials.credentials)
    if not payload or "sub" not in payload:
        raise _unauthorized("Invalid or expired token")
    try:
        party_id = int(payload["sub"])
        role = PartyRole(str(payload.get("role", "")).lower())
    except ValueError:
        raise _unauthorized("Invalid token claims")

    display_name = payload.get("name")
    insert_or_ignore(
        db,
        Party,
        {"id": party_id, "role": role, "display_name": display_name},
        ["id"],
    )
    party = db.get(Party, party_id)
    if party.role != role or (display_name and party.display_name != display_name):
        party.role = role
        party.display_name = display_name or party.display_name
    db.commit()
    return party


def require_role(*roles: PartyRole):
    """Dependency factory: current party must hold one of the given roles."""
    allowed = set(roles)

    def dependency(party: Party = Depends(get_current_party)) -> Party:
        if party.role not in allowed:
            names = ", ".join(sorted(r.value for r in allowed))
            raise NotAuthorized(f"Only {names} accounts can perform this action")
        return party

    return dependency


get_current_admin = require_role(PartyRole.admin)
get_current_seller = require_role(PartyRole.seller)
get_current_investor = require_role(PartyRole.investor)
get_current_affiliate = require_role(PartyRole.affiliate)
