from __future__ import annotations

from typing import TYPE_CHECKING

from restaurant_app.models.order import Order
from restaurant_app.services.event_bus import (
    INVENTORY_LOW_STOCK,
    ORDER_COMPLETED,
    ORDER_CREATED,
    ORDER_STATUS_CHANGED,
    event_bus,
)

if TYPE_CHECKING:
    from restaurant_app.services.inventory import DeductionResult


def build_order_payload(order: Order, previous_status: str | None = None) -> dict:
    return {
        "order_id": order.id,
        "status": order.status,
        "previous_status": previous_status,
        "customer_name": order.customer_name,
        "phone_number": order.phone_number,
        "total": float(order.total or 0),
        "preparation_time": order.preparation_time,
    }


def emit_order_created(order: Order) -> None:
    event_bus.emit(ORDER_CREATED, build_order_payload(order))


def emit_order_status_changed(
    order: Order,
    previous_status: str | None,
    deduction: DeductionResult | None = None,
) -> None:
    if previous_status == order.status:
        return
    payload = build_order_payload(order, previous_status=previous_status)
    event_bus.emit(ORDER_STATUS_CHANGED, payload)
    if order.status != "completed":
        return

    completed_payload = dict(payload)
    completed_payload["shortages"] = [
        {
            "inventory_item_id": shortage.inventory_item_id,
            "name": shortage.name,
            "shortfall": float(shortage.shortfall),
            "unit": shortage.unit,
        }
        for shortage in (deduction.shortages if deduction else [])
    ]
    event_bus.emit(ORDER_COMPLETED, completed_payload)
    if deduction and deduction.low_stock:
        event_bus.emit(INVENTORY_LOW_STOCK, {"order_id": order.id, "items": deduction.low_stock})
