from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from restaurant_app.core.errors import (
    InsufficientInventory,
    ItemNotFound,
    ItemUnavailable,
    ValidationInputError,
)
from restaurant_app.models.inventory import InventoryItem, RecipeRequirement
from restaurant_app.models.menu_item import MenuItem


@dataclass(frozen=True)
class OrderLine:
    menu_item_id: int
    quantity: int


@dataclass(frozen=True)
class ValidatedLine:
    menu_item: MenuItem
    quantity: int

    @property
    def price(self) -> Decimal:
        return Decimal(self.menu_item.price)

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


def _normalize_lines(lines: Iterable[OrderLine]) -> list[OrderLine]:
    normalized = list(lines or [])
    if not normalized:
        raise ValidationInputError("Cart is empty", field="items")
    for line in normalized:
        if line.menu_item_id is None:
            raise ValidationInputError("menu_item_id is required", field="items")
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity <= 0:
            raise ValidationInputError("Quantity must be a positive integer", field="items")
    return normalized


def validate_order_lines(db: Session, lines: Iterable[OrderLine]) -> list[ValidatedLine]:
    """Check that every line of a prospective order can be fulfilled right now.

    Read-only and lock-free: stock is debited only when the order completes, so
    two orders may both pass against the same limited stock.
    """
    validated: list[ValidatedLine] = []
    for line in _normalize_lines(lines):
        menu_item = db.query(MenuItem).filter(MenuItem.id == line.menu_item_id).first()
        if not menu_item:
            raise ItemNotFound("Menu item", line.menu_item_id)
        if not menu_item.is_available or not menu_item.is_on_menu:
            raise ItemUnavailable(menu_item.id, menu_item.name)

        requirements = (
            db.query(
                RecipeRequirement.inventory_item_id,
                RecipeRequirement.quantity_required,
                InventoryItem.name,
                InventoryItem.unit,
                InventoryItem.quantity,
            )
            .outerjoin(InventoryItem, InventoryItem.id == RecipeRequirement.inventory_item_id)
            .filter(RecipeRequirement.menu_item_id == menu_item.id)
            .order_by(RecipeRequirement.id.asc())
            .all()
        )
        for requirement in requirements:
            required = Decimal(requirement.quantity_required) * line.quantity
            available = Decimal(requirement.quantity if requirement.quantity is not None else 0)
            if available < required:
                raise InsufficientInventory(
                    item_name=requirement.name or f"inventory item {requirement.inventory_item_id}",
                    required=required,
                    available=available,
                    unit=requirement.unit or "",
                    menu_item_name=menu_item.name,
                )
        validated.append(ValidatedLine(menu_item=menu_item, quantity=line.quantity))
    return validated
