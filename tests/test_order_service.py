"""Tests for order status, assignment and the activity ledger."""

import uuid
from decimal import Decimal

import pytest

from quotedesk.db.enums import NotificationType, OrderActivityType, OrderStatus
from quotedesk.db.models import Membership, Notification, Order, OrderActivity, Organization, User
from quotedesk.schemas.order import OrderCreate
from quotedesk.services import notification_facade, order_service
from quotedesk.services.order_service import IndividualAssignment, TeamAssignment


@pytest.fixture
def order(db, test_org, test_user) -> Order:
    return order_service.create_order(
        db,
        test_org.id,
        test_user.id,
        OrderCreate(title="Replace windows", value=Decimal("42000")),
    )


def _activities(db, order, activity_type: OrderActivityType) -> list[OrderActivity]:
    return (
        db.query(OrderActivity)
        .filter(
            OrderActivity.order_id == order.id,
            OrderActivity.activity_type == activity_type.value,
        )
        .all()
    )


def _notifications(db, user_id) -> list[Notification]:
    return db.query(Notification).filter(Notification.user_id == user_id).all()


# =============================================================================
# Creation
# =============================================================================

def test_manual_order_starts_open_with_created_entry(db, order, test_user):
    assert order.status == OrderStatus.OPEN.value
    assert order.source == "manual"
    assert order.source_quote_id is None

    created = _activities(db, order, OrderActivityType.CREATED)
    assert len(created) == 1
    assert created[0].actor_user_id == test_user.id
    assert created[0].description == "Order created"


def test_order_from_quote_is_a_snapshot(db, make_sent_quote, customer):
    quote = make_sent_quote(amount="10000", customer_id=customer.id, rot_personal_id="19800101-1234")

    order = order_service.create_order_from_quote(db, quote)
    quote.title = "Renamed later"
    db.commit()
    db.refresh(order)

    assert order.title == "Bathroom renovation"
    assert order.value == Decimal("10000")
    assert order.rot_amount == Decimal("3500")
    assert order.rot_personal_id == "19800101-1234"
    assert order_service.get_order_by_source_quote(db, quote.id).id == order.id


# =============================================================================
# Status
# =============================================================================

def test_status_change_logs_one_entry(db, test_org, test_user, order):
    order_service.update_status(db, test_org.id, order.id, OrderStatus.CONFIRMED, test_user.id)

    entries = _activities(db, order, OrderActivityType.STATUS_CHANGED)
    assert len(entries) == 1
    assert entries[0].old_value == "open"
    assert entries[0].new_value == "confirmed"
    assert entries[0].actor_user_id == test_user.id
    assert entries[0].description == "Status changed from Open order to Booked and confirmed"


def test_any_status_may_follow_any_other(db, test_org, test_user, order):
    for status in (
        OrderStatus.READY_TO_INVOICE,
        OrderStatus.OPEN,
        OrderStatus.CANCELLED_BY_CUSTOMER,
        OrderStatus.INCOMPLETE,
    ):
        order_service.update_status(db, test_org.id, order.id, status, test_user.id)

    assert order.status == OrderStatus.INCOMPLETE.value
    assert len(_activities(db, order, OrderActivityType.STATUS_CHANGED)) == 4


def test_same_status_is_a_noop(db, test_org, test_user, order):
    order_service.update_status(db, test_org.id, order.id, OrderStatus.OPEN, test_user.id)

    assert _activities(db, order, OrderActivityType.STATUS_CHANGED) == []


def test_status_change_notifies_assignee(db, test_org, test_user, worker, order):
    order_service.update_assignment(db, test_org.id, order.id, IndividualAssignment(worker.id), test_user.id)

    order_service.update_status(db, test_org.id, order.id, OrderStatus.CONFIRMED, test_user.id)

    status_notes = [
        n for n in _notifications(db, worker.id)
        if n.type == NotificationType.ORDER_STATUS_CHANGED.value
    ]
    assert len(status_notes) == 1
    assert status_notes[0].body == '"Replace windows" changed from "Open order" to "Booked and confirmed"'
    assert status_notes[0].action_url == f"/orders?highlight={order.id}"


def test_unassigned_status_change_sends_nothing(db, test_org, test_user, order):
    order_service.update_status(db, test_org.id, order.id, OrderStatus.CONFIRMED, test_user.id)

    assert db.query(Notification).count() == 0


def test_notification_failure_keeps_status_write(db, test_org, test_user, worker, order, monkeypatch):
    order_service.update_assignment(db, test_org.id, order.id, IndividualAssignment(worker.id), test_user.id)

    def boom(*_args, **_kwargs):
        raise RuntimeError("notification backend down")

    monkeypatch.setattr(notification_facade, "notify_order_status_changed", boom)

    updated = order_service.update_status(
        db, test_org.id, order.id, OrderStatus.CONFIRMED, test_user.id
    )

    db.expire_all()
    assert updated.status == OrderStatus.CONFIRMED.value
    assert db.get(Order, order.id).status == OrderStatus.CONFIRMED.value
    assert len(_activities(db, order, OrderActivityType.STATUS_CHANGED)) == 1


def test_update_status_unknown_order(db, test_org, test_user):
    with pytest.raises(ValueError, match="Order not found"):
        order_service.update_status(db, test_org.id, uuid.uuid4(), OrderStatus.CONFIRMED, test_user.id)


def test_mark_ready_to_invoice(db, test_org, worker, order):
    order_service.mark_ready_to_invoice(db, test_org.id, order.id, worker.id)

    assert order.status == OrderStatus.READY_TO_INVOICE.value
    assert len(_activities(db, order, OrderActivityType.STATUS_CHANGED)) == 1
    finished = _activities(db, order, OrderActivityType.MARKED_AS_FINISHED)
    assert len(finished) == 1
    assert finished[0].actor_user_id == worker.id


# =============================================================================
# Assignment
# =============================================================================

def test_assign_individual(db, test_org, test_user, worker, order):
    order_service.update_assignment(db, test_org.id, order.id, IndividualAssignment(worker.id), test_user.id)

    assert order.assigned_to_user_id == worker.id
    assert order.assignment_type == "individual"
    entries = _activities(db, order, OrderActivityType.ASSIGNED)
    assert len(entries) == 1
    assert entries[0].new_value == str(worker.id)

    notes = _notifications(db, worker.id)
    assert [n.type for n in notes] == [NotificationType.ORDER_ASSIGNED.value]


def test_assign_user_from_other_org_is_rejected(db, order, test_user):
    other_org = Organization(id=uuid.uuid4(), name="Other AB", slug="other-ab")
    outsider = User(id=uuid.uuid4(), email="outsider@other.se", display_name="Outsider")
    db.add_all([other_org, outsider])
    db.flush()
    db.add(Membership(user_id=outsider.id, organization_id=other_org.id, role="worker"))
    db.commit()

    with pytest.raises(ValueError):
        order_service.update_assignment(
            db, order.organization_id, order.id, IndividualAssignment(outsider.id), test_user.id
        )
    assert order.assigned_to_user_id is None


def test_team_assignment_clears_individual_and_notifies_members(
    db, test_org, test_user, worker, order, team_with_members
):
    team, members = team_with_members
    order_service.update_assignment(db, test_org.id, order.id, IndividualAssignment(worker.id), test_user.id)

    order_service.update_assignment(db, test_org.id, order.id, TeamAssignment(team.id), test_user.id)

    assert order.assigned_to_team_id == team.id
    assert order.assigned_to_user_id is None
    assert order.assignment_type == "team"
    entries = _activities(db, order, OrderActivityType.TEAM_ASSIGNED)
    assert len(entries) == 1
    assert entries[0].description == "Order assigned to team: Crew North"

    for member in members:
        notes = _notifications(db, member.id)
        assert [n.type for n in notes] == [NotificationType.TEAM_ASSIGNED.value]
    # The acting user is on the team but is not notified
    assert _notifications(db, test_user.id) == []


def test_team_from_other_org_is_rejected(db, order, test_user):
    with pytest.raises(ValueError, match="Team not found"):
        order_service.update_assignment(
            db, order.organization_id, order.id, TeamAssignment(uuid.uuid4()), test_user.id
        )


def test_unassign(db, test_org, test_user, worker, order):
    order_service.update_assignment(db, test_org.id, order.id, IndividualAssignment(worker.id), test_user.id)

    order_service.update_assignment(db, test_org.id, order.id, None, test_user.id)

    assert order.assignment_type is None
    entries = _activities(db, order, OrderActivityType.ASSIGNED)
    assert len(entries) == 2
    assert any(e.new_value is None and e.old_value == str(worker.id) for e in entries)


def test_unassign_when_unassigned_is_a_noop(db, test_org, test_user, order):
    order_service.update_assignment(db, test_org.id, order.id, None, test_user.id)

    assert _activities(db, order, OrderActivityType.ASSIGNED) == []
    assert _activities(db, order, OrderActivityType.TEAM_ASSIGNED) == []


# =============================================================================
# Notes, listing, stats
# =============================================================================

def test_add_note_logs_activity(db, test_org, test_user, order):
    note = order_service.add_note(db, test_org.id, order.id, test_user.id, "  Key under the mat ", True)

    assert note.content == "Key under the mat"
    assert note.include_in_invoice is True
    assert len(order_service.list_notes(db, test_org.id, order.id)) == 1
    assert len(_activities(db, order, OrderActivityType.NOTE_ADDED)) == 1


def test_list_orders_filters(db, test_org, test_user, worker, order):
    other = order_service.create_order(db, test_org.id, test_user.id, OrderCreate(title="Paint fence"))
    order_service.update_assignment(db, test_org.id, other.id, IndividualAssignment(worker.id), test_user.id)

    items, total = order_service.list_orders(db, test_org.id, assigned_to=worker.id)
    assert total == 1
    assert items[0].id == other.id

    _, total = order_service.list_orders(db, test_org.id, status=OrderStatus.OPEN)
    assert total == 2


def test_order_stats(db, test_org, test_user, order, make_sent_quote):
    order_service.create_order_from_quote(db, make_sent_quote(amount="10000"))

    stats = order_service.get_order_stats(db, test_org.id)

    assert stats["total"] == 2
    assert stats["by_status"]["open"] == 2
    assert stats["total_value"] == Decimal("52000")
    assert stats["from_quotes"] == 1
    assert stats["unassigned"] == 2


def test_apply_effects_counts_failures(db):
    ran = []

    def fail():
        raise RuntimeError("nope")

    effects = [
        order_service.PendingEffect(name="ok", run=lambda: ran.append("ok")),
        order_service.PendingEffect(name="broken", run=fail),
        order_service.PendingEffect(name="after", run=lambda: ran.append("after")),
    ]

    assert order_service.apply_effects(effects, db) == 1
    assert ran == ["ok", "after"]
