import os
import tempfile
from typing import NamedTuple

# Settings are read at import time; point them at an in-memory database first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="marketplace-uploads-")
os.environ["SECRET_KEY"] = "test-secret"
os.environ["TRACKING_WEBHOOK_SECRET"] = ""

import pytest
from fastapi.testclient import TestClient

from app.core.database import Base, SessionLocal, engine
from app.core.security import create_access_token
from app.main import app
from app.models import AffiliateProfile, AffiliateStatus, Connection, HandshakeStatus, Party, PartyRole

PDF_BYTES = b"%PDF-1.4\n% test document\n"


class Actor(NamedTuple):
    id: int
    role: PartyRole
    headers: dict


def auth_headers(party_id: int, role: PartyRole, name: str = None) -> dict:
    claims = {"name": name} if name else None
    token = create_access_token(str(party_id), role.value, extra_claims=claims)
    return {"Authorization": f"Bearer {token}"}


def pdf_upload(name: str = "document.pdf", content: bytes = PDF_BYTES) -> dict:
    return {"document": (name, content, "application/pdf")}


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_actor(db):
    def _make(party_id: int, role: PartyRole, name: str = None) -> Actor:
        name = name or f"{role.value.capitalize()} {party_id}"
        db.add(Party(id=party_id, role=role, display_name=name))
        db.commit()
        return Actor(party_id, role, auth_headers(party_id, role, name))

    return _make


@pytest.fixture
def seller(make_actor):
    return make_actor(1, PartyRole.seller, "Sam Seller")


@pytest.fixture
def investor(make_actor):
    return make_actor(2, PartyRole.investor, "Ivy Investor")


@pytest.fixture
def affiliate(make_actor):
    return make_actor(3, PartyRole.affiliate, "Alex Affiliate")


@pytest.fixture
def admin(make_actor):
    return make_actor(9, PartyRole.admin, "Ada Admin")


@pytest.fixture
def approved_affiliate(db, affiliate):
    db.add(
        AffiliateProfile(
            party_id=affiliate.id,
            affiliate_code="AFF123",
            status=AffiliateStatus.approved,
            social_links={},
        )
    )
    db.commit()
    return affiliate


@pytest.fixture
def accepted_connection(db, seller, investor):
    connection = Connection(
        id="conn-accepted",
        seller_id=seller.id,
        investor_id=investor.id,
        status=HandshakeStatus.accepted,
    )
    db.add(connection)
    db.commit()
    return connection
