from pathlib import Path

import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.models import Document, FundingRequest, FundingStatus, Message, PartyRole, ThreadType

from conftest import pdf_upload


@pytest.fixture
def funding_request(client, seller, investor):
    response = client.post(
        "/funding-requests",
        json={"investor_id": investor.id, "requested_amount": "7500.00"},
        headers=seller.headers,
    )
    assert response.status_code == 201
    return response.json()["request"]["id"]


def upload(client, actor, request_id, doc_type, name="doc.pdf"):
    return client.post(
        f"/funding-requests/{request_id}/documents",
        data={"doc_type": doc_type},
        files=pdf_upload(name),
        headers=actor.headers,
    )


def transition(client, actor, request_id, action, body=None):
    return client.post(f"/funding-requests/{request_id}/{action}", json=body, headers=actor.headers)


def status_of(db, request_id):
    db.expire_all()
    return db.get(FundingRequest, request_id).status


def system_messages(db, request_id):
    return [
        m.body
        for m in db.query(Message)
        .filter(Message.thread_id == request_id, Message.thread_type == ThreadType.funding_request)
        .filter(Message.is_system.is_(True))
        .all()
    ]


def approved(client, investor, admin, request_id):
    upload(client, investor, request_id, "final_agreement")
    assert transition(client, admin, request_id, "approve").status_code == 200


def test_full_funding_flow(client, db, investor, admin, funding_request):
    agreement = upload(client, investor, funding_request, "final_agreement")
    approve = transition(client, admin, funding_request, "approve")
    slip = upload(client, investor, funding_request, "payment_slip", "slip.pdf")
    fund = transition(client, admin, funding_request, "fund", {"funded_amount": 5000})

    assert agreement.status_code == 201
    assert approve.json()["request"]["status"] == "approved"
    assert approve.json()["request"]["admin_approved"] is True
    assert slip.status_code == 201
    assert fund.status_code == 200
    assert fund.json()["request"]["status"] == "funded"
    assert fund.json()["request"]["funded_amount"] == 5000.0

    messages = system_messages(db, funding_request)
    assert "Final agreement uploaded; awaiting admin approval." in messages
    assert (
        "Your funding request has been approved by admin. Please upload your payment slip for verification."
        in messages
    )
    assert "Funding has been marked as completed by admin. Thank you." in messages
    assert "Funding confirmed by admin. Amount: 5000.00." in messages


def test_approve_without_final_agreement_fails(client, db, admin, funding_request):
    response = transition(client, admin, funding_request, "approve")

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert status_of(db, funding_request) == FundingStatus.pending


def test_second_final_agreement_conflicts(client, db, investor, funding_request):
    first = upload(client, investor, funding_request, "final_agreement", "first.pdf")
    second = upload(client, investor, funding_request, "final_agreement", "second.pdf")

    assert second.status_code == 400
    body = second.json()
    assert body["success"] is False
    assert body["existing_document"]["id"] == first.json()["document"]["id"]
    documents = db.query(Document).filter(Document.thread_id == funding_request).all()
    assert [d.file_path for d in documents] == [first.json()["document"]["file_path"]]


def test_payment_slip_needs_approval(client, db, investor, funding_request):
    upload(client, investor, funding_request, "final_agreement")

    response = upload(client, investor, funding_request, "payment_slip")

    assert response.status_code == 400
    assert db.query(Document).filter(Document.doc_type == "payment_slip").count() == 0


def test_fund_requires_approval_and_payment_slip(client, db, investor, admin, funding_request):
    from_pending = transition(client, admin, funding_request, "fund", {"funded_amount": 100})
    approved(client, investor, admin, funding_request)
    without_slip = transition(client, admin, funding_request, "fund", {"funded_amount": 100})

    assert from_pending.status_code == 400
    assert without_slip.status_code == 400
    assert status_of(db, funding_request) == FundingStatus.approved


def test_fund_keeps_prior_amount_when_omitted(client, db, investor, admin, funding_request):
    approved(client, investor, admin, funding_request)
    upload(client, investor, funding_request, "payment_slip")

    response = transition(client, admin, funding_request, "fund")

    assert response.status_code == 200
    assert response.json()["request"]["funded_amount"] is None


def test_reject_records_reason(client, db, admin, funding_request):
    response = transition(client, admin, funding_request, "reject", {"reason": "Incomplete paperwork"})

    assert response.json()["request"]["status"] == "rejected"
    assert "Your funding request was rejected by admin. Reason: Incomplete paperwork" in system_messages(
        db, funding_request
    )


@pytest.mark.parametrize("action", ["approve", "fund", "reject"])
def test_rejected_is_terminal(client, db, admin, funding_request, action):
    transition(client, admin, funding_request, "reject")

    response = transition(client, admin, funding_request, action)

    assert response.status_code == 400
    assert status_of(db, funding_request) == FundingStatus.rejected


def test_funded_is_terminal(client, db, investor, admin, funding_request):
    approved(client, investor, admin, funding_request)
    upload(client, investor, funding_request, "payment_slip")
    transition(client, admin, funding_request, "fund", {"funded_amount": 100})

    assert transition(client, admin, funding_request, "reject").status_code == 400
    assert transition(client, admin, funding_request, "approve").status_code == 400
    assert upload(client, investor, funding_request, "final_agreement").status_code == 400
    assert status_of(db, funding_request) == FundingStatus.funded


def test_only_admin_transitions(client, seller, investor, funding_request):
    upload(client, investor, funding_request, "final_agreement")

    assert transition(client, investor, funding_request, "approve").status_code == 403
    assert transition(client, seller, funding_request, "reject").status_code == 403


def test_only_investor_uploads_gating_documents(client, seller, funding_request):
    assert upload(client, seller, funding_request, "final_agreement").status_code == 403


def test_non_participant_cannot_touch_request(client, investor, funding_request, make_actor):
    outsider = make_actor(40, PartyRole.investor)

    assert client.get(f"/funding-requests/{funding_request}", headers=outsider.headers).status_code == 403
    assert upload(client, outsider, funding_request, "final_agreement").status_code == 403
    assert client.get(f"/funding-requests/{funding_request}/messages", headers=outsider.headers).status_code == 403


def test_admin_reads_any_request(client, admin, funding_request):
    response = client.get(f"/funding-requests/{funding_request}", headers=admin.headers)

    assert response.status_code == 200
    assert response.json()["request"]["requested_amount"] == 7500.0


def test_create_returns_existing_pair_request_even_when_rejected(client, db, seller, investor, admin, funding_request):
    transition(client, admin, funding_request, "reject")

    response = client.post(
        "/funding-requests",
        json={"seller_id": seller.id, "requested_amount": 100},
        headers=investor.headers,
    )

    assert response.status_code == 200
    assert response.json()["created"] is False
    assert response.json()["request"]["id"] == funding_request
    assert response.json()["request"]["status"] == "rejected"
    assert db.query(FundingRequest).count() == 1


def test_unassigned_requests_are_not_deduplicated(client, db, seller):
    for _ in range(2):
        response = client.post("/funding-requests", json={"requested_amount": 100}, headers=seller.headers)
        assert response.status_code == 201

    assert db.query(FundingRequest).count() == 2


def test_create_validates_parties_and_amount(client, seller, investor, affiliate, admin):
    unknown = client.post(
        "/funding-requests", json={"investor_id": 4040, "requested_amount": 10}, headers=seller.headers
    )
    zero = client.post(
        "/funding-requests", json={"investor_id": investor.id, "requested_amount": 0}, headers=seller.headers
    )
    admin_without_seller = client.post(
        "/funding-requests", json={"investor_id": investor.id, "requested_amount": 10}, headers=admin.headers
    )
    by_affiliate = client.post(
        "/funding-requests", json={"seller_id": seller.id, "requested_amount": 10}, headers=affiliate.headers
    )

    assert unknown.status_code == 404
    assert zero.status_code == 400
    assert admin_without_seller.status_code == 400
    assert by_affiliate.status_code == 403


def test_thread_chat(client, seller, investor, funding_request):
    posted = client.post(
        f"/funding-requests/{funding_request}/messages", json={"message": "Docs coming"}, headers=investor.headers
    )
    messages = client.get(f"/funding-requests/{funding_request}/messages", headers=seller.headers).json()["messages"]

    assert posted.status_code == 201
    assert [m["body"] for m in messages] == ["Docs coming"]


def test_stats_are_role_scoped(client, seller, investor, admin, make_actor, funding_request):
    other_seller = make_actor(41, PartyRole.seller)
    client.post(
        "/funding-requests",
        json={"seller_id": other_seller.id, "requested_amount": 2500},
        headers=investor.headers,
    )
    approved(client, investor, admin, funding_request)
    upload(client, investor, funding_request, "payment_slip")
    transition(client, admin, funding_request, "fund", {"funded_amount": 5000})

    investor_stats = client.get("/funding-requests/stats", headers=investor.headers).json()["stats"]
    seller_stats = client.get("/funding-requests/stats", headers=seller.headers).json()["stats"]
    admin_stats = client.get("/funding-requests/stats", headers=admin.headers).json()["stats"]

    assert investor_stats == {"total_invested": 5000.0, "active_deals": 1, "awaiting_funding": 0}
    assert seller_stats == {"total_raised": 5000.0, "active_deals": 1, "pending_approvals": 0}
    assert admin_stats["total_funded"] == 5000.0
    assert admin_stats["total_requested"] == 10000.0
    assert admin_stats["total_requests"] == 2
    assert admin_stats["pending"] == 1
    assert admin_stats["funded"] == 1


def test_pending_agreements_feed(client, investor, admin, funding_request, seller):
    approved(client, investor, admin, funding_request)
    client.post("/funding-requests", json={"requested_amount": 50}, headers=seller.headers)

    response = client.get("/funding-requests/pending-agreements", headers=admin.headers)
    forbidden = client.get("/funding-requests/pending-agreements", headers=seller.headers)

    assert [(r["id"], r["doc_count"]) for r in response.json()["requests"]] == [(funding_request, 1)]
    assert forbidden.status_code == 403


def test_list_is_role_scoped(client, seller, investor, admin, make_actor, funding_request):
    other_seller = make_actor(42, PartyRole.seller)
    client.post("/funding-requests", json={"requested_amount": 10}, headers=other_seller.headers)

    mine = client.get("/funding-requests", headers=seller.headers).json()["requests"]
    everything = client.get("/funding-requests", headers=admin.headers).json()["requests"]
    pending = client.get("/funding-requests?status=pending", headers=investor.headers).json()["requests"]

    assert [r["id"] for r in mine] == [funding_request]
    assert len(everything) == 2
    assert [r["id"] for r in pending] == [funding_request]


def failing_append_system(*args, **kwargs):
    raise OperationalError("INSERT INTO messages", {}, Exception("disk I/O error"))


def stored_files(request_id):
    folder = Path(settings.UPLOAD_DIR) / "funding_request" / request_id
    return list(folder.iterdir()) if folder.exists() else []


def test_failed_approval_rolls_back_and_hides_details(client, db, investor, admin, funding_request, monkeypatch):
    upload(client, investor, funding_request, "final_agreement")
    monkeypatch.setattr("app.services.thread_log.ThreadLog.append_system", failing_append_system)

    response = transition(client, admin, funding_request, "approve")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}
    assert status_of(db, funding_request) == FundingStatus.pending
    assert db.get(FundingRequest, funding_request).admin_approved is False


def test_failed_upload_removes_stored_file(client, db, investor, funding_request, monkeypatch):
    monkeypatch.setattr("app.services.thread_log.ThreadLog.append_system", failing_append_system)

    response = upload(client, investor, funding_request, "final_agreement")

    assert response.status_code == 500
    db.expire_all()
    assert db.query(Document).filter(Document.thread_id == funding_request).count() == 0
    assert stored_files(funding_request) == []


@pytest.fixture
def unassigned_request(client, seller):
    response = client.post("/funding-requests", json={"requested_amount": "1000"}, headers=seller.headers)
    assert response.json()["request"]["investor_id"] is None
    return response.json()["request"]["id"]


def test_assigned_investor_can_drive_request_to_funded(client, db, investor, admin, unassigned_request):
    assign = transition(client, admin, unassigned_request, "assign", {"investor_id": investor.id})
    approved(client, investor, admin, unassigned_request)
    upload(client, investor, unassigned_request, "payment_slip")
    fund = transition(client, admin, unassigned_request, "fund", {"funded_amount": 1000})

    assert assign.status_code == 200
    assert assign.json()["request"]["investor_id"] == investor.id
    assert fund.json()["request"]["status"] == "funded"
    assert "Ivy Investor has been assigned to this funding request by admin." in system_messages(
        db, unassigned_request
    )


def test_assign_rules(client, seller, investor, admin, make_actor, unassigned_request, funding_request):
    other_investor = make_actor(42, PartyRole.investor)

    by_seller = transition(client, seller, unassigned_request, "assign", {"investor_id": investor.id})
    unknown = transition(client, admin, unassigned_request, "assign", {"investor_id": 4040})
    taken_pair = transition(client, admin, unassigned_request, "assign", {"investor_id": investor.id})
    already_assigned = transition(client, admin, funding_request, "assign", {"investor_id": other_investor.id})

    assert by_seller.status_code == 403
    assert unknown.status_code == 404
    assert taken_pair.status_code == 400
    assert taken_pair.json()["existing_request_id"] == funding_request
    assert already_assigned.status_code == 400


def test_assign_only_while_pending(client, db, admin, investor, unassigned_request):
    transition(client, admin, unassigned_request, "reject")

    response = transition(client, admin, unassigned_request, "assign", {"investor_id": investor.id})

    assert response.status_code == 400
    db.expire_all()
    assert db.get(FundingRequest, unassigned_request).investor_id is None
