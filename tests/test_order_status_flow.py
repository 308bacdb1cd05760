from datetime import timedelta

import pytest

from restaurant_app.core.errors import InvalidTransition, ItemNotFound, ValidationInputError
from restaurant_app.services import orders as order_service
from restaurant_app.services.event_bus import event_bus
from restaurant_app.services.order_validation import OrderLine
from tests.fixtures_data import HAPPY_PATH_CUSTOMER


@pytest.fixture()
def pending_order(db_session, pizza_kitchen):
    kitchen = pizza_kitchen()
    return order_service.create_order(
        db_session,
        order_service.CustomerInfo(**HAPPY_PATH_CUSTOMER),
        [OrderLine(kitchen.pizza.id, 1)],
    )


def test_approve_then_decline_is_rejected(db_session, pending_order):
    approved = order_service.approve_order(db_session, pending_order.id, 15)
    assert approved.status == "approved"
    assert approved.preparation_time == 15

    with pytest.raises(InvalidTransition) as exc_info:
        order_service.decline_order(db_session, pending_order.id)

    assert exc_info.value.current == "approved"
    assert order_service.get_order(db_session, pending_order.id).status == "approved"


def test_approve_defaults_to_thirty_minutes(db_session, pending_order):
    order = order_service.approve_order(db_session, pending_order.id)

    assert order.preparation_time == 30


@pytest.mark.parametrize("minutes", [0, -5, 241])
def test_approve_rejects_bad_preparation_time(db_session, pending_order, minutes):
    with pytest.raises(ValidationInputError) as exc_info:
        order_service.approve_order(db_session, pending_order.id, minutes)

    assert exc_info.value.field == "preparation_time"
    assert order_service.get_order(db_session, pending_order.id).status == "pending"


def test_ready_at_counts_from_approval(db_session, pending_order):
    assert order_service.ready_at(pending_order) is None

    order = order_service.approve_order(db_session, pending_order.id, 20)
    ready = order_service.ready_at(order)

    assert ready is not None
    assert ready.tzinfo is not None
    assert ready - order.updated_at.replace(tzinfo=ready.tzinfo) == timedelta(minutes=20)


def test_pending_order_can_complete_directly(db_session, pending_order):
    order = order_service.complete_order(db_session, pending_order.id)

    assert order.status == "completed"
    assert order_service.ready_at(order) is None


@pytest.mark.parametrize("terminal", ["completed", "declined"])
def test_terminal_states_reject_every_transition(db_session, pending_order, terminal):
    order_service.set_order_status(db_session, pending_order.id, terminal)

    for target in ("approved", "completed", "declined"):
        with pytest.raises(InvalidTransition):
            order_service.set_order_status(db_session, pending_order.id, target)


def test_declined_order_never_touches_inventory(db_session, pending_order):
    order_service.decline_order(db_session, pending_order.id)

    with pytest.raises(InvalidTransition):
        order_service.complete_order(db_session, pending_order.id)

    assert order_service.get_order(db_session, pending_order.id).status == "declined"


def test_moving_back_to_pending_is_not_allowed(db_session, pending_order):
    with pytest.raises(InvalidTransition):
        order_service.set_order_status(db_session, pending_order.id, "pending")


def test_unknown_status_is_a_validation_error(db_session, pending_order):
    with pytest.raises(ValidationInputError):
        order_service.set_order_status(db_session, pending_order.id, "shipped")


def test_missing_order_raises_not_found(db_session):
    with pytest.raises(ItemNotFound):
        order_service.approve_order(db_session, 404)


def test_status_change_emits_events(db_session, pending_order):
    seen = []

    def _capture(payload):
        seen.append((payload["previous_status"], payload["status"]))

    event_bus.subscribe("order.status.changed", _capture)
    try:
        order_service.approve_order(db_session, pending_order.id, 10)
        order_service.complete_order(db_session, pending_order.id)
    finally:
        event_bus.unsubscribe("order.status.changed", _capture)

    assert seen == [("pending", "approved"), ("approved", "completed")]


def test_order_history_queries(db_session, pending_order):
    order_service.approve_order(db_session, pending_order.id)

    by_phone = order_service.list_orders_for_phone(db_session, HAPPY_PATH_CUSTOMER["phone_number"])
    approved = order_service.list_orders(db_session, status="approved")
    pending = order_service.list_orders(db_session, status="pending")

    assert [order.id for order in by_phone] == [pending_order.id]
    assert [order.id for order in approved] == [pending_order.id]
    assert pending == []
