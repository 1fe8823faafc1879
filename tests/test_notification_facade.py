from uuid import uuid4

from quotedesk.db.enums import NotificationType
from quotedesk.db.models import Notification
from quotedesk.services import notification_facade


def test_notification_facade_send_delegates(monkeypatch):
    called = {}

    def fake_create_notification(**kwargs):
        called["kwargs"] = kwargs
        return "sentinel"

    monkeypatch.setattr(
        notification_facade.notification_service,
        "create_notification",
        fake_create_notification,
    )

    db = object()
    org_id = uuid4()
    recipient_id = uuid4()
    entity_id = uuid4()

    result = notification_facade.send(
        db,
        org_id,
        recipient_id,
        NotificationType.ORDER_ASSIGNED,
        {"entity_id": entity_id, "entity_type": "order", "body": "Please check"},
    )

    assert result == "sentinel"
    kwargs = called["kwargs"]
    assert kwargs["db"] is db
    assert kwargs["org_id"] == org_id
    assert kwargs["user_id"] == recipient_id
    assert kwargs["type"] == NotificationType.ORDER_ASSIGNED
    assert kwargs["title"] == "New order assigned"
    assert kwargs["dedupe_key"] == f"order_assignment:{entity_id}:{recipient_id}"
    assert kwargs["payload"]["entity_id"] == str(entity_id)


def test_notification_facade_send_without_entity_has_no_dedupe(monkeypatch):
    called = {}

    def fake_create_notification(**kwargs):
        called["kwargs"] = kwargs

    monkeypatch.setattr(
        notification_facade.notification_service,
        "create_notification",
        fake_create_notification,
    )

    notification_facade.send(object(), uuid4(), uuid4(), NotificationType.SYSTEM, {"title": "Hi"})

    assert called["kwargs"]["title"] == "Hi"
    assert called["kwargs"]["dedupe_key"] is None


def test_notification_facade_notify_team_assigned_delegates(monkeypatch):
    called = {}

    def fake_notify_team_assigned(*args, **kwargs):
        called["args"] = args
        called["kwargs"] = kwargs
        return 2

    monkeypatch.setattr(
        notification_facade.notification_service,
        "notify_team_assigned",
        fake_notify_team_assigned,
    )

    db = object()
    order = object()
    team_id = uuid4()
    actor_id = uuid4()

    result = notification_facade.notify_team_assigned(db, order, team_id, exclude_user_id=actor_id)

    assert result == 2
    assert called["args"] == (db, order, team_id)
    assert called["kwargs"] == {"exclude_user_id": actor_id}


def test_notification_facade_notify_status_changed_delegates(monkeypatch):
    called = {}

    def fake_notify(*args):
        called["args"] = args

    monkeypatch.setattr(
        notification_facade.notification_service,
        "notify_order_status_changed",
        fake_notify,
    )

    db = object()
    order = object()
    recipient_id = uuid4()

    notification_facade.notify_order_status_changed(db, order, recipient_id, "open", "confirmed")

    assert called["args"] == (db, order, recipient_id, "open", "confirmed")


def test_send_dedupes_within_window(db, test_org, test_user):
    entity_id = uuid4()
    payload = {"entity_id": entity_id, "entity_type": "order"}

    first = notification_facade.send(db, test_org.id, test_user.id, NotificationType.SYSTEM, payload)
    second = notification_facade.send(db, test_org.id, test_user.id, NotificationType.SYSTEM, payload)

    assert first is not None
    assert second is None
    assert db.query(Notification).count() == 1


def test_mark_read(db, test_org, test_user):
    notification = notification_facade.send(
        db, test_org.id, test_user.id, NotificationType.SYSTEM, {"title": "Welcome"}
    )

    updated = notification_facade.mark_read(db, notification.id, test_user.id, test_org.id)

    assert updated.read_at is not None
    assert notification_facade.get_notifications(db, test_user.id, test_org.id, unread_only=True) == []
