"""Domain errors raised by the inventory-consistency engine.

Every error carries a stable ``code`` and an HTTP-ish ``status_code`` so the
routers can turn it into a structured rejection without knowing the details.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class EngineError(Exception):
    code = "engine_error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def details(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        payload = {"error": self.code, "message": self.message}
        payload.update(self.details())
        return payload


class ItemNotFound(EngineError):
    code = "item_not_found"
    status_code = 404

    def __init__(self, kind: str, item_id: Any) -> None:
        super().__init__(f"{kind} {item_id} not found")
        self.kind = kind
        self.item_id = item_id

    def details(self) -> dict[str, Any]:
        return {"kind": self.kind, "id": self.item_id}


class ItemUnavailable(EngineError):
    code = "item_unavailable"
    status_code = 409

    def __init__(self, menu_item_id: int, name: str) -> None:
        super().__init__(f"{name} is currently unavailable")
        self.menu_item_id = menu_item_id
        self.name = name

    def details(self) -> dict[str, Any]:
        return {"menu_item_id": self.menu_item_id, "name": self.name}


class InsufficientInventory(EngineError):
    code = "insufficient_inventory"
    status_code = 409

    def __init__(
        self,
        item_name: str,
        required: Decimal,
        available: Decimal,
        unit: str,
        menu_item_name: str | None = None,
    ) -> None:
        prefix = f"Not enough {item_name}"
        if menu_item_name:
            prefix = f"{prefix} for {menu_item_name}"
        super().__init__(f"{prefix}: need {required} {unit}, have {available} {unit}")
        self.item_name = item_name
        self.required = required
        self.available = available
        self.unit = unit
        self.menu_item_name = menu_item_name

    def details(self) -> dict[str, Any]:
        return {
            "inventory_item": self.item_name,
            "required": float(self.required),
            "available": float(self.available),
            "unit": self.unit,
            "menu_item": self.menu_item_name,
        }


class InvalidTransition(EngineError):
    code = "invalid_transition"
    status_code = 409

    def __init__(self, order_id: int, current: str, requested: str) -> None:
        super().__init__(f"Order {order_id} cannot move from {current} to {requested}")
        self.order_id = order_id
        self.current = current
        self.requested = requested

    def details(self) -> dict[str, Any]:
        return {"order_id": self.order_id, "current_status": self.current, "requested_status": self.requested}


class ValidationInputError(EngineError):
    code = "validation_error"
    status_code = 422

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def details(self) -> dict[str, Any]:
        return {"field": self.field} if self.field else {}


class StorageError(EngineError):
    code = "storage_error"
    status_code = 503

    def __init__(self, message: str = "Storage operation failed") -> None:
        super().__init__(message)
