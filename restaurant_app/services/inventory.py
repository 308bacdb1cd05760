from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from restaurant_app.core.database import reading, transaction
from restaurant_app.core.errors import ItemNotFound, ValidationInputError
from restaurant_app.core.metrics import metrics
from restaurant_app.models.inventory import InventoryItem, InventoryMovement, RecipeRequirement
from restaurant_app.models.menu_item import MenuItem
from restaurant_app.models.order import Order
from restaurant_app.models.order_item import OrderItem
from restaurant_app.services.availability import (
    dependent_menu_item_ids,
    recompute_for_inventory,
    recompute_for_menu_items,
)

logger = logging.getLogger(__name__)

SALE_REASON = "sale"
ZERO = Decimal("0")


def _decimal(value, field_name: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationInputError(f"{field_name} is required", field=field_name)
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (ArithmeticError, ValueError) as exc:
        raise ValidationInputError(f"{field_name} must be a number", field=field_name) from exc


def _required_text(value: Optional[str], field_name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationInputError(f"{field_name} is required", field=field_name)
    return text


@dataclass
class StockShortage:
    inventory_item_id: int
    name: str
    unit: str
    requested: Decimal
    applied: Decimal
    shortfall: Decimal


@dataclass
class DeductionResult:
    order_id: int
    applied: bool = False
    touched_inventory_ids: list[int] = field(default_factory=list)
    shortages: list[StockShortage] = field(default_factory=list)
    low_stock: list[dict] = field(default_factory=list)
    flipped_menu_item_ids: list[int] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Inventory store
# ---------------------------------------------------------------------------


def list_inventory_items(db: Session) -> list[InventoryItem]:
    with reading(db):
        return db.query(InventoryItem).order_by(InventoryItem.name.asc()).all()


def get_inventory_item(db: Session, item_id: int) -> InventoryItem:
    with reading(db):
        item = db.query(InventoryItem).filter(InventoryItem.id == item_id).first()
    if not item:
        raise ItemNotFound("Inventory item", item_id)
    return item


def list_low_stock(db: Session) -> list[InventoryItem]:
    with reading(db):
        return (
            db.query(InventoryItem)
            .filter(InventoryItem.quantity < InventoryItem.min_stock)
            .order_by(InventoryItem.name.asc())
            .all()
        )


def list_movements(
    db: Session,
    inventory_item_id: Optional[int] = None,
    order_id: Optional[int] = None,
) -> list[InventoryMovement]:
    query = db.query(InventoryMovement)
    if inventory_item_id is not None:
        query = query.filter(InventoryMovement.inventory_item_id == inventory_item_id)
    if order_id is not None:
        query = query.filter(InventoryMovement.order_id == order_id)
    with reading(db):
        return query.order_by(InventoryMovement.id.desc()).all()


def upsert_inventory_item(
    db: Session,
    *,
    name: Optional[str] = None,
    unit: Optional[str] = None,
    quantity=None,
    min_stock=None,
    image_url: Optional[str] = None,
    item_id: Optional[int] = None,
) -> InventoryItem:
    """Create or update a stock item.

    With ``item_id`` the row is updated in place (partial update); otherwise
    ``name`` is the human key: an existing item with that name is updated, a
    new one is inserted. Dependent menu availability is recomputed in the same
    transaction.
    """
    with transaction(db):
        if item_id is not None:
            item = get_inventory_item(db, item_id)
        else:
            name = _required_text(name, "name")
            item = db.query(InventoryItem).filter(InventoryItem.name == name).first()

        if item is None:
            item = InventoryItem(
                name=name,
                unit=_required_text(unit, "unit"),
                quantity=_non_negative(quantity if quantity is not None else 0, "quantity"),
                min_stock=_non_negative(min_stock if min_stock is not None else 0, "min_stock"),
                image_url=image_url,
            )
            db.add(item)
            db.flush()
            logger.info("Inventory item created: %s", item.name, extra={"inventory_item_id": item.id})
        else:
            _apply_inventory_changes(db, item, name, unit, quantity, min_stock, image_url)

        recompute_for_inventory(db, [item.id])
    db.refresh(item)
    return item


def _non_negative(value, field_name: str) -> Decimal:
    number = _decimal(value, field_name)
    if number < 0:
        raise ValidationInputError(f"{field_name} cannot be negative", field=field_name)
    return number


def _apply_inventory_changes(
    db: Session,
    item: InventoryItem,
    name: Optional[str],
    unit: Optional[str],
    quantity,
    min_stock,
    image_url: Optional[str],
) -> None:
    if name is not None:
        new_name = _required_text(name, "name")
        if new_name != item.name:
            clash = (
                db.query(InventoryItem)
                .filter(InventoryItem.name == new_name, InventoryItem.id != item.id)
                .first()
            )
            if clash:
                raise ValidationInputError(f"Inventory item {new_name} already exists", field="name")
            item.name = new_name
    if unit is not None:
        item.unit = _required_text(unit, "unit")
    if min_stock is not None:
        item.min_stock = _non_negative(min_stock, "min_stock")
    if image_url is not None:
        item.image_url = image_url or None
    if quantity is not None:
        new_quantity = _non_negative(quantity, "quantity")
        previous = Decimal(item.quantity or 0)
        if new_quantity != previous:
            item.quantity = new_quantity
            db.add(
                InventoryMovement(
                    inventory_item_id=item.id,
                    type="ADJUST",
                    reason="manual",
                    requested_quantity=new_quantity,
                    applied_quantity=new_quantity - previous,
                    shortfall=ZERO,
                )
            )
            logger.info(
                "Inventory quantity adjusted: %s %s -> %s %s",
                item.name,
                previous,
                new_quantity,
                item.unit,
                extra={"inventory_item_id": item.id},
            )


def delete_inventory_item(db: Session, item_id: int) -> None:
    with transaction(db):
        item = get_inventory_item(db, item_id)
        affected = dependent_menu_item_ids(db, [item.id])
        db.delete(item)
        db.flush()
        recompute_for_menu_items(db, affected)
        logger.info("Inventory item deleted: %s", item.name, extra={"inventory_item_id": item_id})


# ---------------------------------------------------------------------------
# Recipe map
# ---------------------------------------------------------------------------


def list_recipe_requirements(db: Session, menu_item_id: Optional[int] = None) -> list[RecipeRequirement]:
    query = db.query(RecipeRequirement)
    if menu_item_id is not None:
        query = query.filter(RecipeRequirement.menu_item_id == menu_item_id)
    with reading(db):
        return query.order_by(RecipeRequirement.menu_item_id.asc(), RecipeRequirement.id.asc()).all()


def get_recipe_requirement(db: Session, requirement_id: int) -> RecipeRequirement:
    with reading(db):
        requirement = db.query(RecipeRequirement).filter(RecipeRequirement.id == requirement_id).first()
    if not requirement:
        raise ItemNotFound("Recipe requirement", requirement_id)
    return requirement


def _positive_quantity(value) -> Decimal:
    number = _decimal(value, "quantity_required")
    if number <= 0:
        raise ValidationInputError("quantity_required must be greater than zero", field="quantity_required")
    return number


def upsert_recipe_requirement(
    db: Session,
    *,
    menu_item_id: Optional[int] = None,
    inventory_item_id: Optional[int] = None,
    quantity_required=None,
    requirement_id: Optional[int] = None,
) -> RecipeRequirement:
    """Create or update a recipe requirement.

    Without ``requirement_id`` the (menu item, inventory item) pair is the key.
    Availability of every menu item whose recipe changed is recomputed.
    """
    with transaction(db):
        affected: set[int] = set()
        if requirement_id is not None:
            requirement = get_recipe_requirement(db, requirement_id)
            affected.add(requirement.menu_item_id)
            if menu_item_id is not None and menu_item_id != requirement.menu_item_id:
                _ensure_menu_item(db, menu_item_id)
                requirement.menu_item_id = menu_item_id
            if inventory_item_id is not None and inventory_item_id != requirement.inventory_item_id:
                get_inventory_item(db, inventory_item_id)
                requirement.inventory_item_id = inventory_item_id
            if quantity_required is not None:
                requirement.quantity_required = _positive_quantity(quantity_required)
        else:
            if menu_item_id is None:
                raise ValidationInputError("menu_item_id is required", field="menu_item_id")
            if inventory_item_id is None:
                raise ValidationInputError("inventory_item_id is required", field="inventory_item_id")
            quantity = _positive_quantity(quantity_required)
            _ensure_menu_item(db, menu_item_id)
            get_inventory_item(db, inventory_item_id)
            requirement = (
                db.query(RecipeRequirement)
                .filter(
                    RecipeRequirement.menu_item_id == menu_item_id,
                    RecipeRequirement.inventory_item_id == inventory_item_id,
                )
                .first()
            )
            if requirement is None:
                requirement = RecipeRequirement(
                    menu_item_id=menu_item_id,
                    inventory_item_id=inventory_item_id,
                    quantity_required=quantity,
                )
                db.add(requirement)
            else:
                requirement.quantity_required = quantity

        db.flush()
        affected.add(requirement.menu_item_id)
        recompute_for_menu_items(db, affected)
    db.refresh(requirement)
    return requirement


def delete_recipe_requirement(db: Session, requirement_id: int) -> None:
    with transaction(db):
        requirement = get_recipe_requirement(db, requirement_id)
        menu_item_id = requirement.menu_item_id
        db.delete(requirement)
        db.flush()
        recompute_for_menu_items(db, [menu_item_id])


def _ensure_menu_item(db: Session, menu_item_id: int) -> MenuItem:
    menu_item = db.query(MenuItem).filter(MenuItem.id == menu_item_id).first()
    if not menu_item:
        raise ItemNotFound("Menu item", menu_item_id)
    return menu_item


# ---------------------------------------------------------------------------
# Deduction engine
# ---------------------------------------------------------------------------


def _already_deducted(db: Session, order_id: int) -> bool:
    existing = (
        db.query(InventoryMovement.id)
        .filter(
            InventoryMovement.order_id == order_id,
            InventoryMovement.type == "OUT",
            InventoryMovement.reason == SALE_REASON,
        )
        .first()
    )
    return existing is not None


def _consumption_for_order(db: Session, order: Order) -> dict[int, Decimal]:
    rows = (
        db.query(OrderItem.quantity, RecipeRequirement.inventory_item_id, RecipeRequirement.quantity_required)
        .join(RecipeRequirement, RecipeRequirement.menu_item_id == OrderItem.menu_item_id)
        .filter(OrderItem.order_id == order.id)
        .all()
    )
    consumption: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for row in rows:
        quantity = int(row.quantity or 0)
        if quantity <= 0:
            continue
        consumption[row.inventory_item_id] += Decimal(row.quantity_required) * quantity
    return dict(consumption)


def deduct_inventory_for_order(db: Session, order: Order) -> DeductionResult:
    """Consume the recipe quantities of a completed order from stock.

    Must run inside the transaction that writes the ``completed`` status; it
    never commits. Touched rows are locked in ascending id order, decremented,
    clamped at zero (overshoot is recorded as a shortfall on the movement) and
    then the dependent menu items are re-evaluated.
    """
    result = DeductionResult(order_id=order.id)
    if _already_deducted(db, order.id):
        logger.info("Inventory already deducted for order; skipping", extra={"order_id": order.id})
        return result

    consumption = _consumption_for_order(db, order)
    if not consumption:
        return result

    items = (
        db.query(InventoryItem)
        .filter(InventoryItem.id.in_(sorted(consumption)))
        .order_by(InventoryItem.id.asc())
        .with_for_update()
        .populate_existing()
        .all()
    )
    for item in items:
        requested = consumption[item.id]
        current = Decimal(item.quantity or 0)
        remaining = current - requested
        shortfall = ZERO
        if remaining < 0:
            shortfall = -remaining
            remaining = ZERO
        applied = current - remaining
        item.quantity = remaining
        db.add(
            InventoryMovement(
                inventory_item_id=item.id,
                type="OUT",
                reason=SALE_REASON,
                order_id=order.id,
                requested_quantity=requested,
                applied_quantity=applied,
                shortfall=shortfall,
            )
        )
        result.touched_inventory_ids.append(item.id)
        if shortfall > 0:
            result.shortages.append(
                StockShortage(
                    inventory_item_id=item.id,
                    name=item.name,
                    unit=item.unit,
                    requested=requested,
                    applied=applied,
                    shortfall=shortfall,
                )
            )
            logger.warning(
                "Stock shortage absorbed: %s requested %s %s, only %s available",
                item.name,
                requested,
                item.unit,
                current,
                extra={"inventory_item_id": item.id, "order_id": order.id},
            )
        if remaining < Decimal(item.min_stock or 0):
            result.low_stock.append(
                {
                    "inventory_item_id": item.id,
                    "name": item.name,
                    "quantity": float(remaining),
                    "min_stock": float(item.min_stock or 0),
                    "unit": item.unit,
                }
            )

    result.applied = True
    result.flipped_menu_item_ids = recompute_for_inventory(db, result.touched_inventory_ids)
    metrics.increment("deductions_applied")
    if result.shortages:
        metrics.increment("shortages_recorded", len(result.shortages))
    logger.info(
        "Inventory deducted for order: %s items touched, %s shortages",
        len(result.touched_inventory_ids),
        len(result.shortages),
        extra={"order_id": order.id},
    )
    return result
