from decimal import Decimal

import pytest
from sqlalchemy import text

from restaurant_app.core.errors import (
    InsufficientInventory,
    ItemNotFound,
    ItemUnavailable,
    StorageError,
    ValidationInputError,
)
from restaurant_app.core.metrics import metrics
from restaurant_app.models.menu_item import MenuItem
from restaurant_app.models.order import Order
from restaurant_app.services import orders as order_service
from restaurant_app.services.order_validation import OrderLine, validate_order_lines
from tests.fixtures_data import HAPPY_PATH_CUSTOMER


def _customer(**overrides):
    return order_service.CustomerInfo(**{**HAPPY_PATH_CUSTOMER, **overrides})


def test_exact_stock_is_enough_for_one_unit(db_session, pizza_kitchen):
    kitchen = pizza_kitchen(tomatoes="0.5", tomatoes_per_pizza="0.5")

    order = order_service.create_order(db_session, _customer(), [OrderLine(kitchen.pizza.id, 1)])

    assert order.status == "pending"
    assert order.total == Decimal("16.99")


def test_two_units_exceed_stock(db_session, pizza_kitchen):
    kitchen = pizza_kitchen(tomatoes="0.5", tomatoes_per_pizza="0.5")

    with pytest.raises(InsufficientInventory) as exc_info:
        order_service.create_order(db_session, _customer(), [OrderLine(kitchen.pizza.id, 2)])

    error = exc_info.value
    assert error.item_name == "Tomatoes"
    assert error.required == Decimal("1.0")
    assert error.available == Decimal("0.5")
    assert error.to_dict()["menu_item"] == "Margherita Pizza"
    assert db_session.query(Order).count() == 0
    assert metrics.counter("validation_rejections") == 1


def test_unknown_menu_item_is_rejected(db_session, pizza_kitchen):
    pizza_kitchen()

    with pytest.raises(ItemNotFound):
        validate_order_lines(db_session, [OrderLine(menu_item_id=999, quantity=1)])


def test_unavailable_menu_item_is_rejected(db_session, pizza_kitchen):
    kitchen = pizza_kitchen()
    db_session.get(MenuItem, kitchen.pizza.id).is_available = False
    db_session.commit()

    with pytest.raises(ItemUnavailable) as exc_info:
        validate_order_lines(db_session, [OrderLine(kitchen.pizza.id, 1)])

    assert exc_info.value.to_dict() == {
        "error": "item_unavailable",
        "message": "Margherita Pizza is currently unavailable",
        "menu_item_id": kitchen.pizza.id,
        "name": "Margherita Pizza",
    }


def test_item_hidden_from_menu_cannot_be_ordered(db_session, pizza_kitchen):
    kitchen = pizza_kitchen()
    db_session.get(MenuItem, kitchen.salad.id).is_on_menu = False
    db_session.commit()

    with pytest.raises(ItemUnavailable):
        validate_order_lines(db_session, [OrderLine(kitchen.salad.id, 1)])


@pytest.mark.parametrize("lines", [[], None])
def test_empty_cart_is_rejected(db_session, lines):
    with pytest.raises(ValidationInputError) as exc_info:
        validate_order_lines(db_session, lines)

    assert exc_info.value.field == "items"


@pytest.mark.parametrize("quantity", [0, -1, True])
def test_non_positive_quantity_is_rejected(db_session, pizza_kitchen, quantity):
    kitchen = pizza_kitchen()

    with pytest.raises(ValidationInputError):
        validate_order_lines(db_session, [OrderLine(kitchen.pizza.id, quantity)])


def test_phone_number_is_required(db_session, pizza_kitchen):
    kitchen = pizza_kitchen()

    with pytest.raises(ValidationInputError) as exc_info:
        order_service.create_order(db_session, _customer(phone_number="   "), [OrderLine(kitchen.pizza.id, 1)])

    assert exc_info.value.field == "phone_number"


def test_total_uses_menu_prices_and_defaults_guest_name(db_session, pizza_kitchen):
    kitchen = pizza_kitchen()

    order = order_service.create_order(
        db_session,
        _customer(customer_name=""),
        [OrderLine(kitchen.pizza.id, 2), OrderLine(kitchen.salad.id, 1)],
    )

    assert order.customer_name == "Guest"
    assert order.total == Decimal("38.48")
    assert sorted((item.menu_item_id, item.quantity) for item in order.order_items) == [
        (kitchen.pizza.id, 2),
        (kitchen.salad.id, 1),
    ]
    assert metrics.counter("orders_created") == 1


def test_validation_does_not_reserve_stock(db_session, pizza_kitchen):
    kitchen = pizza_kitchen(tomatoes="0.3")

    first = order_service.create_order(db_session, _customer(), [OrderLine(kitchen.pizza.id, 1)])
    second = order_service.create_order(db_session, _customer(), [OrderLine(kitchen.pizza.id, 1)])

    assert first.id != second.id


def test_store_failure_during_validation_is_a_storage_error(db_session, pizza_kitchen):
    kitchen = pizza_kitchen()
    db_session.execute(text("DROP TABLE recipe_requirements"))
    db_session.commit()

    with pytest.raises(StorageError):
        order_service.create_order(db_session, _customer(), [OrderLine(kitchen.pizza.id, 1)])

    assert not db_session.in_transaction()
    assert db_session.query(Order).count() == 0
    assert metrics.counter("validation_rejections") == 0


def test_store_failure_on_order_reads_is_a_storage_error(db_session):
    db_session.execute(text("DROP TABLE order_items"))
    db_session.execute(text("DROP TABLE orders"))
    db_session.commit()

    with pytest.raises(StorageError):
        order_service.get_order(db_session, 1)
    assert not db_session.in_transaction()

    with pytest.raises(StorageError):
        order_service.list_orders(db_session, status="pending")
