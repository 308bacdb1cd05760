from __future__ import annotations

import logging

from restaurant_app.core.metrics import metrics
from restaurant_app.services.event_bus import (
    INVENTORY_LOW_STOCK,
    ORDER_COMPLETED,
    ORDER_CREATED,
    ORDER_STATUS_CHANGED,
    event_bus,
)

logger = logging.getLogger(__name__)


def handle_order_created(payload: dict) -> None:
    metrics.increment("orders_created")
    logger.info(
        "Order received from %s total=%.2f",
        payload.get("customer_name") or "Guest",
        payload.get("total", 0),
        extra={"order_id": payload["order_id"]},
    )


def handle_order_status_changed(payload: dict) -> None:
    logger.info(
        "Order status %s -> %s",
        payload.get("previous_status"),
        payload.get("status"),
        extra={"order_id": payload["order_id"]},
    )


def handle_order_completed(payload: dict) -> None:
    metrics.increment("orders_completed")
    for shortage in payload.get("shortages") or []:
        logger.warning(
            "Completed with shortage: %s short by %s %s",
            shortage["name"],
            shortage["shortfall"],
            shortage["unit"],
            extra={"order_id": payload["order_id"], "inventory_item_id": shortage["inventory_item_id"]},
        )


def handle_low_stock(payload: dict) -> None:
    for item in payload.get("items") or []:
        logger.warning(
            "Low stock: %s at %s %s (min %s)",
            item["name"],
            item["quantity"],
            item["unit"],
            item["min_stock"],
            extra={"inventory_item_id": item["inventory_item_id"]},
        )


def register_handlers() -> None:
    event_bus.subscribe(ORDER_CREATED, handle_order_created)
    event_bus.subscribe(ORDER_STATUS_CHANGED, handle_order_status_changed)
    event_bus.subscribe(ORDER_COMPLETED, handle_order_completed)
    event_bus.subscribe(INVENTORY_LOW_STOCK, handle_low_stock)


register_handlers()
