import json
import logging

from restaurant_app.core.logging_setup import JsonFormatter
from restaurant_app.core.metrics import InMemoryMetrics
from restaurant_app.core.request_context import (
    clear_request_context,
    get_order_id,
    order_context,
    set_request_context,
)
from restaurant_app.services.event_bus import EventBus


def _record(message, **extra):
    record = logging.LogRecord("restaurant_app.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context_and_masks_secrets():
    set_request_context(request_id="req-1")
    try:
        with order_context(42):
            line = JsonFormatter("%(message)s").format(_record("login password=hunter2", inventory_item_id=7))
    finally:
        clear_request_context()

    payload = json.loads(line)
    assert payload["request_id"] == "req-1"
    assert payload["order_id"] == "42"
    assert payload["inventory_item_id"] == 7
    assert payload["message"] == "login password=***"
    assert get_order_id() is None


def test_metrics_counters_and_endpoint_snapshot():
    collector = InMemoryMetrics()
    collector.increment("orders_created")
    collector.increment("shortages_recorded", 3)
    collector.observe("/api/orders", "POST", 409, 12.5)
    collector.observe("/api/orders", "POST", 200, 7.5)

    assert collector.snapshot_engine()["orders_created"] == 1
    assert collector.counter("shortages_recorded") == 3
    assert collector.snapshot()["POST /api/orders"] == {
        "total_requests": 2,
        "total_duration_ms": 20.0,
        "avg_duration_ms": 10.0,
        "error_count": 1,
    }

    collector.reset()
    assert collector.counter("orders_created") == 0
    assert collector.snapshot() == {}


def test_event_bus_isolates_failing_handlers():
    bus = EventBus()
    received = []

    def _broken(_payload):
        raise RuntimeError("boom")

    bus.subscribe("order.created", _broken)
    bus.subscribe("order.created", received.append)
    bus.subscribe("order.created", received.append)
    bus.emit("order.created", {"order_id": 1})

    assert received == [{"order_id": 1}]

    bus.unsubscribe("order.created", received.append)
    bus.emit("order.created", {"order_id": 2})
    assert received == [{"order_id": 1}]
