"""Synchronous in-process notifications.

Emit only after the surrounding transaction has committed; handlers must never
see state that may still roll back. A failing handler is logged and skipped.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

ORDER_CREATED = "order.created"
ORDER_STATUS_CHANGED = "order.status.changed"
ORDER_COMPLETED = "order.completed"
INVENTORY_LOW_STOCK = "inventory.low_stock"

Handler = Callable[[dict[str, Any]], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)
        self._logger = logging.getLogger(__name__)

    def emit(self, event_name: str, payload: dict[str, Any]) -> int:
        """Deliver ``payload`` to every subscriber; returns how many succeeded."""
        delivered = 0
        for handler in list(self._handlers.get(event_name, [])):
            try:
                handler(payload)
            except Exception:
                self._logger.exception("Handler %r failed for %s", handler, event_name)
            else:
                delivered += 1
        if not delivered:
            self._logger.debug("No handler consumed %s", event_name)
        return delivered

    def subscribe(self, event_name: str, handler: Handler) -> Handler:
        if handler not in self._handlers[event_name]:
            self._handlers[event_name].append(handler)
        return handler

    def unsubscribe(self, event_name: str, handler: Handler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def subscribers(self, event_name: str) -> list[Handler]:
        return list(self._handlers.get(event_name, []))


event_bus = EventBus()
