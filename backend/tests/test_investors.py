from app.models import InvestmentPreference, PartyRole


def save(client, investor, **body):
    return client.put("/investors/me/preferences", json=body, headers=investor.headers)


def test_preferences_start_empty(client, investor):
    response = client.get("/investors/me/preferences", headers=investor.headers)

    assert response.status_code == 200
    assert response.json() == {"success": True, "preferences": None}


def test_save_then_replace_preferences(client, db, investor):
    first = save(
        client,
        investor,
        min_investment="5000",
        max_investment="50000",
        categories=["Fintech", " fintech ", "Fintech", "", "Retail"],
        regions=["UK"],
        risk_level="aggressive",
    )
    second = save(client, investor, categories=["Agritech"])
    fetched = client.get("/investors/me/preferences", headers=investor.headers).json()["preferences"]

    assert first.status_code == 200
    assert first.json()["preferences"]["categories"] == ["Fintech", "fintech", "Retail"]
    assert first.json()["preferences"]["min_investment"] == 5000.0
    assert first.json()["preferences"]["risk_level"] == "aggressive"
    assert fetched["categories"] == ["Agritech"]
    assert fetched["regions"] == []
    assert fetched["min_investment"] is None
    assert fetched["risk_level"] == "moderate"
    assert db.query(InvestmentPreference).count() == 1


def test_preference_validation(client, investor):
    inverted = save(client, investor, min_investment="100", max_investment="10")
    negative = save(client, investor, min_investment="-1")
    bad_risk = save(client, investor, risk_level="yolo")

    assert inverted.status_code == 400
    assert negative.status_code == 400
    assert bad_risk.status_code == 400


def test_only_investors_keep_preferences(client, seller):
    assert save(client, seller, categories=["Retail"]).status_code == 403
    assert client.get("/investors/me/preferences", headers=seller.headers).status_code == 403


def test_directory_lists_investors_with_optional_preferences(client, seller, investor, affiliate, make_actor):
    quiet = make_actor(21, PartyRole.investor, "Quinn Quiet")
    save(client, investor, categories=["Fintech"], regions=["UK", "EU"], max_investment="25000")

    response = client.get("/investors", headers=seller.headers)

    assert response.status_code == 200
    investors = {i["investor_id"]: i for i in response.json()["investors"]}
    assert set(investors) == {investor.id, quiet.id}
    assert investors[investor.id]["name"] == "Ivy Investor"
    assert investors[investor.id]["preferences"]["regions"] == ["UK", "EU"]
    assert investors[investor.id]["preferences"]["max_investment"] == 25000.0
    assert investors[quiet.id]["preferences"] is None


def test_directory_is_for_sellers_and_admins(client, investor, affiliate, admin):
    assert client.get("/investors", headers=admin.headers).status_code == 200
    assert client.get("/investors", headers=investor.headers).status_code == 403
    assert client.get("/investors", headers=affiliate.headers).status_code == 403
