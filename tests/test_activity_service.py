from decimal import Decimal
from uuid import uuid4

from quotedesk.db.enums import OrderActivityType
from quotedesk.schemas.order import OrderCreate
from quotedesk.services import activity_service, order_service


def test_status_description_uses_labels(db, test_org, test_user):
    order = order_service.create_order(db, test_org.id, test_user.id, OrderCreate(title="Deck", value=Decimal("1")))

    entry = activity_service.log_status_changed(
        db,
        order_id=order.id,
        organization_id=test_org.id,
        actor_user_id=test_user.id,
        old_status="confirmed",
        new_status="cancelled_by_customer",
    )

    assert entry.activity_type == OrderActivityType.STATUS_CHANGED.value
    assert entry.description == "Status changed from Booked and confirmed to Cancelled by customer"
    assert entry.old_value == "confirmed"
    assert entry.new_value == "cancelled_by_customer"


def test_log_activity_does_not_commit(db, test_org, test_user):
    order = order_service.create_order(db, test_org.id, test_user.id, OrderCreate(title="Deck"))

    activity_service.log_note_added(db, order_id=order.id, organization_id=test_org.id, actor_user_id=None)
    db.rollback()

    activities = activity_service.list_activities(db, order_id=order.id, organization_id=test_org.id)
    assert [a.activity_type for a in activities] == [OrderActivityType.CREATED.value]


def test_list_activities_is_org_scoped(db, test_org, test_user):
    order = order_service.create_order(db, test_org.id, test_user.id, OrderCreate(title="Deck"))

    assert activity_service.list_activities(db, order_id=order.id, organization_id=uuid4()) == []
