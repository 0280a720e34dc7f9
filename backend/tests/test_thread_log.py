import pytest

from app.core.errors import ValidationError
from app.models import ThreadType
from app.services.thread_log import ThreadLog


@pytest.fixture
def log(db):
    return ThreadLog(db)


@pytest.mark.parametrize("body", ["", "   ", None])
def test_blank_messages_are_rejected(log, seller, body):
    with pytest.raises(ValidationError):
        log.append("t-1", ThreadType.connection, seller.id, body)


def test_append_strips_and_lists_in_order(db, log, seller, investor):
    first = log.append("t-1", ThreadType.connection, seller.id, "  hello  ")
    second = log.append("t-1", ThreadType.connection, investor.id, "hi there")
    db.commit()

    asc = log.list("t-1", ThreadType.connection)
    desc = log.list("t-1", ThreadType.connection, order="desc")

    assert first.body == "hello"
    assert [m.id for m in asc] == [first.id, second.id]
    assert [m.id for m in desc] == [second.id, first.id]


def test_system_entries_are_flagged(db, log, admin):
    message = log.append_system("t-1", ThreadType.funding_request, admin.id, "Approved.")
    db.commit()

    assert message.is_system is True
    assert message.sender_id == admin.id


def test_threads_are_isolated_by_id_and_type(db, log, seller):
    log.append("t-1", ThreadType.connection, seller.id, "connection chat")
    log.append("t-1", ThreadType.partner_request, seller.id, "partner chat", sender_type="vendor")
    log.append("t-2", ThreadType.connection, seller.id, "other thread")
    db.commit()

    messages = log.list("t-1", ThreadType.connection)

    assert [m.body for m in messages] == ["connection chat"]


def test_page_size_is_capped(db, log, seller):
    for i in range(55):
        log.append("t-1", ThreadType.connection, seller.id, f"message {i}")
    db.commit()

    assert len(log.list("t-1", ThreadType.connection, limit=500)) == 50
    assert len(log.list("t-1", ThreadType.connection, limit=5)) == 5


def test_unknown_order_is_rejected(log):
    with pytest.raises(ValidationError):
        log.list("t-1", ThreadType.connection, order="sideways")
