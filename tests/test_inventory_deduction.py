from decimal import Decimal

import pytest

from restaurant_app.core.errors import InvalidTransition
from restaurant_app.core.metrics import metrics
from restaurant_app.models.inventory import InventoryItem, InventoryMovement
from restaurant_app.models.menu_item import MenuItem
from restaurant_app.services import inventory as inventory_service
from restaurant_app.services import orders as order_service
from restaurant_app.services.event_bus import event_bus
from restaurant_app.services.inventory import deduct_inventory_for_order
from restaurant_app.services.order_validation import OrderLine
from tests.fixtures_data import HAPPY_PATH_CUSTOMER


def _customer():
    return order_service.CustomerInfo(**HAPPY_PATH_CUSTOMER)


def _place(db, menu_item_id, quantity=1):
    return order_service.create_order(db, _customer(), [OrderLine(menu_item_id=menu_item_id, quantity=quantity)])


def test_completion_deducts_recipe_quantities(db_session, pizza_kitchen):
    kitchen = pizza_kitchen()
    order = _place(db_session, kitchen.pizza.id, quantity=2)

    order_service.complete_order(db_session, order.id)

    assert db_session.get(InventoryItem, kitchen.tomatoes.id).quantity == Decimal("24.4")
    assert db_session.get(InventoryItem, kitchen.mozzarella.id).quantity == Decimal("49")
    assert db_session.get(InventoryItem, kitchen.dough.id).quantity == Decimal("28")
    assert db_session.get(MenuItem, kitchen.pizza.id).is_available is True


def test_overshoot_is_clamped_at_zero_and_recorded_as_shortfall(db_session, pizza_kitchen):
    kitchen = pizza_kitchen(tomatoes="1.0")
    order = _place(db_session, kitchen.pizza.id, quantity=2)
    inventory_service.upsert_inventory_item(db_session, item_id=kitchen.tomatoes.id, quantity="0.5")
    assert db_session.get(MenuItem, kitchen.pizza.id).is_available is True

    order_service.complete_order(db_session, order.id)

    tomatoes = db_session.get(InventoryItem, kitchen.tomatoes.id)
    assert tomatoes.quantity == Decimal("0")
    assert db_session.get(MenuItem, kitchen.pizza.id).is_available is False

    movement = (
        db_session.query(InventoryMovement)
        .filter(InventoryMovement.order_id == order.id, InventoryMovement.inventory_item_id == tomatoes.id)
        .one()
    )
    assert movement.type == "OUT"
    assert movement.requested_quantity == Decimal("0.6")
    assert movement.applied_quantity == Decimal("0.5")
    assert movement.shortfall == Decimal("0.1")
    assert metrics.counter("shortages_recorded") == 1


def test_deduction_runs_once_per_order(db_session, pizza_kitchen):
    kitchen = pizza_kitchen()
    order = _place(db_session, kitchen.pizza.id)
    order_service.complete_order(db_session, order.id)

    result = deduct_inventory_for_order(db_session, order)
    db_session.commit()

    assert result.applied is False
    assert db_session.get(InventoryItem, kitchen.tomatoes.id).quantity == Decimal("24.7")
    with pytest.raises(InvalidTransition):
        order_service.complete_order(db_session, order.id)
    assert db_session.get(InventoryItem, kitchen.tomatoes.id).quantity == Decimal("24.7")
    assert metrics.counter("deductions_applied") == 1


def test_order_without_recipes_touches_no_stock(db_session, pizza_kitchen):
    kitchen = pizza_kitchen()
    order = _place(db_session, kitchen.salad.id, quantity=3)

    order_service.complete_order(db_session, order.id)

    assert db_session.query(InventoryMovement).filter(InventoryMovement.order_id == order.id).count() == 0
    assert metrics.counter("deductions_applied") == 0
    assert metrics.counter("orders_completed") == 1


def test_shared_ingredient_is_aggregated_across_lines(db_session, pizza_kitchen):
    kitchen = pizza_kitchen(tomatoes="2.0")
    inventory_service.upsert_recipe_requirement(
        db_session,
        menu_item_id=kitchen.salad.id,
        inventory_item_id=kitchen.tomatoes.id,
        quantity_required="0.2",
    )
    order = order_service.create_order(
        db_session,
        _customer(),
        [OrderLine(menu_item_id=kitchen.pizza.id, quantity=1), OrderLine(menu_item_id=kitchen.salad.id, quantity=2)],
    )

    order_service.complete_order(db_session, order.id)

    movements = (
        db_session.query(InventoryMovement)
        .filter(InventoryMovement.order_id == order.id, InventoryMovement.inventory_item_id == kitchen.tomatoes.id)
        .all()
    )
    assert len(movements) == 1
    assert movements[0].requested_quantity == Decimal("0.7")
    assert db_session.get(InventoryItem, kitchen.tomatoes.id).quantity == Decimal("1.3")


def test_low_stock_event_fires_after_completion(db_session, pizza_kitchen):
    kitchen = pizza_kitchen(tomatoes="5.2")
    received = []
    handler = received.append
    event_bus.subscribe("inventory.low_stock", handler)
    try:
        order = _place(db_session, kitchen.pizza.id)
        order_service.complete_order(db_session, order.id)
    finally:
        event_bus.unsubscribe("inventory.low_stock", handler)

    assert len(received) == 1
    assert received[0]["order_id"] == order.id
    assert [item["name"] for item in received[0]["items"]] == ["Tomatoes"]
    low_stock_names = [item.name for item in inventory_service.list_low_stock(db_session)]
    assert low_stock_names == ["Tomatoes"]


def test_quantities_never_go_negative_under_repeated_orders(db_session, pizza_kitchen):
    kitchen = pizza_kitchen(tomatoes="1.0")
    orders = [_place(db_session, kitchen.pizza.id) for _ in range(3)]
    inventory_service.upsert_inventory_item(db_session, item_id=kitchen.tomatoes.id, quantity="0.4")

    for order in orders:
        order_service.complete_order(db_session, order.id)

    for item in inventory_service.list_inventory_items(db_session):
        assert item.quantity >= 0
    assert db_session.get(InventoryItem, kitchen.tomatoes.id).quantity == Decimal("0")
    assert metrics.counter("shortages_recorded") == 2
