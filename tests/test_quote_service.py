"""Tests for quote CRUD and the lifecycle primitives."""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.attributes import set_committed_value

from quotedesk.db.enums import QuoteStatus
from quotedesk.db.models import Order, Quote
from quotedesk.schemas.quote import QuoteCreate, QuoteLineItemIn, QuoteUpdate
from quotedesk.services import order_service, quote_service


def _item(description: str, quantity: str, unit_price: str) -> QuoteLineItemIn:
    return QuoteLineItemIn(
        description=description, quantity=Decimal(quantity), unit_price=Decimal(unit_price)
    )


# =============================================================================
# CRUD
# =============================================================================

def test_create_quote_computes_totals_and_rot(db, test_org, test_user):
    data = QuoteCreate(
        title="  Kitchen ",
        include_rot=True,
        line_items=[_item("Labor", "10", "500"), _item("Cabinets", "2", "2500")],
    )

    quote = quote_service.create_quote(db, test_org.id, test_user.id, data)

    assert quote.status == QuoteStatus.DRAFT.value
    assert quote.title == "Kitchen"
    assert quote.quote_number == "Q-1"
    assert quote.total_amount == Decimal("10000")
    assert quote.rot_amount == Decimal("3500")
    assert [item.sort_order for item in quote.line_items] == [0, 1]
    assert quote.line_items[0].total == Decimal("5000")


def test_quote_numbers_increase_per_org(make_quote):
    first = make_quote()
    second = make_quote()

    assert first.quote_number == "Q-1"
    assert second.quote_number == "Q-2"


def test_create_quote_without_rot_has_no_rot_amount(make_quote):
    quote = make_quote(include_rot=False)
    assert quote.rot_amount is None


def test_create_quote_formats_identifier(make_quote):
    quote = make_quote(rot_personal_id="198001011234")
    assert quote.rot_personal_id == "19800101-1234"
    assert quote.rot_org_id is None


def test_create_quote_rejects_both_identifiers(db, test_org, test_user):
    data = QuoteCreate(
        title="Roof",
        include_rot=True,
        rot_personal_id="19800101-1234",
        rot_org_id="556677-8899",
        line_items=[_item("Labor", "1", "1000")],
    )
    with pytest.raises(ValueError, match="not both"):
        quote_service.create_quote(db, test_org.id, test_user.id, data)


def test_quote_total_matches_stored_line_totals(db, test_org, test_user):
    data = QuoteCreate(
        title="Window putty",
        include_rot=False,
        line_items=[_item("Putty, front", "1.5", "0.33"), _item("Putty, back", "1.5", "0.33")],
    )

    quote = quote_service.create_quote(db, test_org.id, test_user.id, data)
    db.expire_all()
    stored = db.get(Quote, quote.id)

    assert [item.total for item in stored.line_items] == [Decimal("0.50"), Decimal("0.50")]
    assert stored.total_amount == sum(item.total for item in stored.line_items)
    assert stored.total_amount == Decimal("1.00")


def test_create_quote_retries_a_taken_number(db, test_org, test_user, make_quote, monkeypatch):
    make_quote()
    next_number = quote_service._next_quote_number
    stale = iter(["Q-1"])
    monkeypatch.setattr(
        quote_service,
        "_next_quote_number",
        lambda session, org_id: next(stale, None) or next_number(session, org_id),
    )

    quote = quote_service.create_quote(
        db, test_org.id, test_user.id, QuoteCreate(title="Deck", line_items=[_item("Labor", "1", "100")])
    )

    assert quote.quote_number == "Q-2"


def test_create_quote_gives_up_after_repeated_number_conflicts(db, test_org, test_user, make_quote, monkeypatch):
    make_quote()
    monkeypatch.setattr(quote_service, "_next_quote_number", lambda session, org_id: "Q-1")

    with pytest.raises(IntegrityError):
        quote_service.create_quote(
            db, test_org.id, test_user.id, QuoteCreate(title="Deck", line_items=[_item("Labor", "1", "100")])
        )


def test_update_replaces_line_items_and_recomputes(db, make_quote):
    quote = make_quote(amount="10000")

    updated = quote_service.update_quote(
        db,
        quote,
        QuoteUpdate(line_items=[_item("Labor", "4", "50000")]),
    )

    assert len(updated.line_items) == 1
    assert updated.total_amount == Decimal("200000")
    assert updated.rot_amount == Decimal("50000")


def test_update_without_line_items_keeps_them(db, make_quote):
    quote = make_quote(amount="10000")

    updated = quote_service.update_quote(db, quote, QuoteUpdate(title="New title"))

    assert updated.title == "New title"
    assert len(updated.line_items) == 1
    assert updated.total_amount == Decimal("10000")


def test_turning_rot_off_clears_amount(db, make_quote):
    quote = make_quote(include_rot=True)

    updated = quote_service.update_quote(db, quote, QuoteUpdate(include_rot=False))

    assert updated.include_rot is False
    assert updated.rot_amount is None


def test_update_refuses_declined_quote(db, make_sent_quote):
    quote = make_sent_quote()
    quote_service.decline_quote(db, quote)

    with pytest.raises(ValueError, match="Cannot edit"):
        quote_service.update_quote(db, quote, QuoteUpdate(title="Too late"))


def test_update_refuses_quote_accepted_after_it_was_loaded(db, make_sent_quote):
    quote = make_sent_quote(amount="10000")
    quote_service.compare_and_set_status(
        db, quote.organization_id, quote.id, QuoteStatus.SENT, QuoteStatus.ACCEPTED
    )
    # The caller still holds the row as it was before the claim
    assert quote.total_amount == Decimal("10000")
    set_committed_value(quote, "status", QuoteStatus.SENT.value)

    with pytest.raises(ValueError, match="accepted"):
        quote_service.update_quote(db, quote, QuoteUpdate(line_items=[_item("Labor", "1", "99999")]))

    db.expire_all()
    stored = db.get(Quote, quote.id)
    assert stored.status == QuoteStatus.ACCEPTED.value
    assert stored.total_amount == Decimal("10000")
    assert stored.rot_amount == Decimal("3500")


def test_delete_refuses_accepted_quote(db, make_sent_quote):
    quote = make_sent_quote()
    quote_service.compare_and_set_status(
        db, quote.organization_id, quote.id, QuoteStatus.SENT, QuoteStatus.ACCEPTED
    )
    db.refresh(quote)

    with pytest.raises(ValueError):
        quote_service.delete_quote(db, quote)


def test_delete_draft_quote(db, test_org, make_quote):
    quote = make_quote()
    quote_id = quote.id

    quote_service.delete_quote(db, quote)

    assert quote_service.get_quote(db, test_org.id, quote_id) is None


def test_get_quote_is_org_scoped(db, make_quote):
    quote = make_quote()
    assert quote_service.get_quote(db, uuid.uuid4(), quote.id) is None


def test_list_quotes_filters_by_status(db, test_org, make_quote, make_sent_quote):
    make_quote()
    make_sent_quote()

    items, total = quote_service.list_quotes(db, test_org.id, status=QuoteStatus.SENT)

    assert total == 1
    assert items[0].status == QuoteStatus.SENT.value


# =============================================================================
# Lifecycle primitives
# =============================================================================

def test_compare_and_set_only_one_writer_wins(db, make_sent_quote):
    quote = make_sent_quote()

    first = quote_service.compare_and_set_status(
        db, quote.organization_id, quote.id, QuoteStatus.SENT, QuoteStatus.ACCEPTED
    )
    second = quote_service.compare_and_set_status(
        db, quote.organization_id, quote.id, QuoteStatus.SENT, QuoteStatus.ACCEPTED
    )

    assert first is True
    assert second is False
    assert db.get(Quote, quote.id).status == QuoteStatus.ACCEPTED.value


def test_compare_and_set_respects_org(db, make_sent_quote):
    quote = make_sent_quote()

    assert not quote_service.compare_and_set_status(
        db, uuid.uuid4(), quote.id, QuoteStatus.SENT, QuoteStatus.ACCEPTED
    )


def test_link_order_is_set_once(db, make_sent_quote):
    quote = make_sent_quote()
    order = order_service.create_order_from_quote(db, quote)
    other_id = uuid.uuid4()

    assert quote_service.link_order(db, quote.organization_id, quote.id, order.id) is True
    assert quote_service.link_order(db, quote.organization_id, quote.id, order.id) is True
    assert quote_service.link_order(db, quote.organization_id, quote.id, other_id) is False
    assert db.get(Quote, quote.id).order_id == order.id


def test_get_linked_order_validates_back_reference(db, make_sent_quote):
    quote = make_sent_quote()
    order = order_service.create_order_from_quote(db, quote)
    quote_service.link_order(db, quote.organization_id, quote.id, order.id)
    db.refresh(quote)

    assert quote_service.get_linked_order(db, quote).id == order.id

    order.source_quote_id = None
    db.commit()

    assert quote_service.get_linked_order(db, quote) is None


def test_decline_only_from_sent(db, make_quote, make_sent_quote):
    sent = make_sent_quote()
    declined = quote_service.decline_quote(db, sent)
    assert declined.status == QuoteStatus.DECLINED.value

    draft = make_quote()
    with pytest.raises(ValueError):
        quote_service.decline_quote(db, draft)


def test_quote_stats(db, test_org, make_quote, make_sent_quote):
    make_quote(amount="10000", include_rot=True)
    make_sent_quote(amount="200000", include_rot=True)
    make_quote(amount="5000", include_rot=False)

    stats = quote_service.get_quote_stats(db, test_org.id)

    assert stats["total"] == 3
    assert stats["by_status"]["draft"] == 2
    assert stats["by_status"]["sent"] == 1
    assert stats["total_value"] == Decimal("215000")
    assert stats["rot_quotes"] == 2
    assert stats["rot_total"] == Decimal("53500")


# =============================================================================
# Reconciliation
# =============================================================================

def test_find_unlinked_accepted_quotes(db, test_org, make_sent_quote):
    orphan = make_sent_quote()
    drifted = make_sent_quote()
    linked = make_sent_quote()
    for quote in (orphan, drifted, linked):
        quote_service.compare_and_set_status(
            db, test_org.id, quote.id, QuoteStatus.SENT, QuoteStatus.ACCEPTED
        )
    drifted_order = order_service.create_order_from_quote(db, drifted)
    linked_order = order_service.create_order_from_quote(db, linked)
    quote_service.link_order(db, test_org.id, linked.id, linked_order.id)

    found = {quote.id: order for quote, order in quote_service.find_unlinked_accepted_quotes(db, test_org.id)}

    assert set(found) == {orphan.id, drifted.id}
    assert found[orphan.id] is None
    assert found[drifted.id].id == drifted_order.id


def test_relink_order_requires_matching_source(db, make_sent_quote):
    quote = make_sent_quote()
    other = make_sent_quote()
    order = order_service.create_order_from_quote(db, quote)

    with pytest.raises(ValueError):
        quote_service.relink_order(db, other, order)

    relinked = quote_service.relink_order(db, quote, order)
    assert relinked.order_id == order.id
    assert db.query(Order).count() == 1
