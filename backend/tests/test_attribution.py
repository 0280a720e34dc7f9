import uuid
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.models import Click, CommissionRollup, Sale
from app.services.attribution import AttributionLedger, build_tracking_link, compute_commission


def sale(client, amount, code="AFF123", product_id="P-1", headers=None):
    return client.post(
        "/track/sale",
        json={"product_id": product_id, "affiliate_code": code, "amount": amount},
        headers=headers or {},
    )


def rollup_total(db, affiliate_id):
    db.expire_all()
    return db.query(CommissionRollup).filter(CommissionRollup.affiliate_id == affiliate_id).one().total_earned


@pytest.mark.parametrize(
    "amount, expected",
    [
        ("1000.00", "150.00"),
        ("0.10", "0.02"),  # 0.015 rounds half up
        ("19.99", "3.00"),
    ],
)
def test_compute_commission(amount, expected):
    assert compute_commission(Decimal(amount)) == Decimal(expected)


def test_build_tracking_link_encodes_parts():
    link = build_tracking_link("https://shop.example.com/", "sku 1/2", "AFF123")

    assert link == "https://shop.example.com/product/sku%201%2F2?aff=AFF123"


def test_sale_records_commission_and_rollup(client, db, approved_affiliate):
    response = sale(client, "1000.00")

    assert response.status_code == 201
    assert response.json()["success"] is True
    assert response.json()["commission"] == 150.0
    assert rollup_total(db, approved_affiliate.id) == Decimal("150.00")

    sale(client, "1000.00")

    assert rollup_total(db, approved_affiliate.id) == Decimal("300.00")
    assert db.query(Sale).count() == 2
    assert db.query(CommissionRollup).count() == 1


def test_sale_for_unapproved_affiliate_is_404(client, db, affiliate):
    response = sale(client, "100.00", code="AFF999")

    assert response.status_code == 404
    assert response.json()["error"] == "Affiliate not found or not approved"
    assert db.query(Sale).count() == 0


@pytest.mark.parametrize("amount", ["0", "-5"])
def test_sale_amount_must_be_positive(client, approved_affiliate, amount):
    assert sale(client, amount).status_code == 400


def test_sale_webhook_secret(client, approved_affiliate, monkeypatch):
    monkeypatch.setattr(settings, "TRACKING_WEBHOOK_SECRET", "s3cret")

    assert sale(client, "10.00").status_code == 403
    assert sale(client, "10.00", headers={"X-Tracking-Secret": "wrong"}).status_code == 403
    assert sale(client, "10.00", headers={"X-Tracking-Secret": "s3cret"}).status_code == 201


def test_clicks_are_recorded_without_deduplication(client, db, approved_affiliate):
    for _ in range(2):
        response = client.get("/track/click/P-1?ref=AFF123", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
        assert response.status_code == 200
        assert response.json() == {"success": True}

    clicks = db.query(Click).all()
    assert len(clicks) == 2
    assert {c.source_ip for c in clicks} == {"203.0.113.7"}
    assert {c.affiliate_id for c in clicks} == {approved_affiliate.id}


def test_click_needs_known_code(client, approved_affiliate):
    assert client.get("/track/click/P-1").status_code == 400
    assert client.get("/track/click/P-1?ref=NOPE").status_code == 404


def test_redirect_records_click_and_forwards_query(client, db, approved_affiliate):
    response = client.get("/p/P-9?aff=AFF123&utm_source=ig", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == (
        f"{settings.PUBLIC_APP_BASE}/customer/ProductDetail?productId=P-9&aff=AFF123&utm_source=ig"
    )
    assert db.query(Click).filter(Click.product_id == "P-9").count() == 1


def test_redirect_ignores_unknown_code(client, db, approved_affiliate):
    response = client.get("/p/P-9?aff=BOGUS", follow_redirects=False)

    assert response.status_code == 307
    assert db.query(Click).count() == 0


def test_dashboard_groups_recent_months(client, db, approved_affiliate, admin, make_actor):
    for month, commission in [(1, "10.00"), (1, "5.50"), (3, "7.25"), (2, "1.00")]:
        db.add(
            Sale(
                id=str(uuid.uuid4()),
                product_id="P-1",
                affiliate_id=approved_affiliate.id,
                amount=Decimal(commission) * 10,
                commission=Decimal(commission),
                created_at=datetime(2026, month, 15, 12, 0, 0),
            )
        )
    db.add(
        CommissionRollup(id=str(uuid.uuid4()), affiliate_id=approved_affiliate.id, total_earned=Decimal("23.75"))
    )
    db.commit()
    client.get("/track/click/P-1?ref=AFF123")

    own = client.get(f"/affiliates/{approved_affiliate.id}/dashboard", headers=approved_affiliate.headers)
    as_admin = client.get(f"/affiliates/{approved_affiliate.id}/dashboard", headers=admin.headers)
    other = make_actor(50, approved_affiliate.role)
    forbidden = client.get(f"/affiliates/{approved_affiliate.id}/dashboard", headers=other.headers)

    stats = own.json()["stats"]
    assert stats["total_clicks"] == 1
    assert stats["total_sales"] == 4
    assert stats["total_commission"] == pytest.approx(23.75)
    assert [(m["month"], m["commission"]) for m in stats["monthly"]] == [
        ("2026-03", pytest.approx(7.25)),
        ("2026-02", pytest.approx(1.0)),
        ("2026-01", pytest.approx(15.5)),
    ]
    assert as_admin.status_code == 200
    assert forbidden.status_code == 403


def test_dashboard_keeps_twelve_months(db, approved_affiliate):
    for i in range(14):
        year, month = divmod(i, 12)
        db.add(
            Sale(
                id=str(uuid.uuid4()),
                product_id="P-1",
                affiliate_id=approved_affiliate.id,
                amount=Decimal("10.00"),
                commission=Decimal("1.50"),
                created_at=datetime(2025 + year, month + 1, 1, 9, 0, 0),
            )
        )
    db.commit()

    monthly = AttributionLedger(db).dashboard(approved_affiliate.id)["monthly"]

    assert len(monthly) == 12
    assert monthly[0]["month"] == "2026-02"
    assert monthly[-1]["month"] == "2025-03"


def test_dashboard_total_comes_from_rollup(client, approved_affiliate):
    sale(client, "1000.00")
    sale(client, "200.00")

    stats = client.get(
        f"/affiliates/{approved_affiliate.id}/dashboard", headers=approved_affiliate.headers
    ).json()["stats"]

    assert stats["total_sales"] == 2
    assert stats["total_commission"] == pytest.approx(180.0)


def test_failed_rollup_update_leaves_no_sale(client, db, approved_affiliate, monkeypatch):
    def failing_upsert(*args, **kwargs):
        raise OperationalError("INSERT INTO commission_rollups", {}, Exception("database is locked"))

    monkeypatch.setattr("app.services.attribution.upsert_increment", failing_upsert)

    response = sale(client, "1000.00")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}
    db.expire_all()
    assert db.query(Sale).count() == 0
    assert db.query(CommissionRollup).count() == 0
