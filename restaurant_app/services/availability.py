"""Menu availability derived from stock levels.

A menu item is available when every inventory item in its recipe holds at least
the quantity needed for one more unit of the dish. Items without recipe
requirements are unconstrained and therefore always available. A requirement
whose inventory row is missing counts as zero stock.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, NamedTuple, Optional

from sqlalchemy.orm import Session

from restaurant_app.core import config
from restaurant_app.core.metrics import metrics
from restaurant_app.models.inventory import InventoryItem, RecipeRequirement
from restaurant_app.models.menu_item import MenuItem

logger = logging.getLogger(__name__)


class Shortfall(NamedTuple):
    menu_item_id: int
    inventory_item_id: int
    inventory_item_name: str
    unit: str
    required: Decimal
    available: Decimal


def _to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _requirement_rows(db: Session, menu_item_ids: Iterable[int]):
    ids = list(menu_item_ids)
    if not ids:
        return []
    return (
        db.query(
            RecipeRequirement.menu_item_id,
            RecipeRequirement.inventory_item_id,
            RecipeRequirement.quantity_required,
            InventoryItem.name,
            InventoryItem.unit,
            InventoryItem.quantity,
        )
        .outerjoin(InventoryItem, InventoryItem.id == RecipeRequirement.inventory_item_id)
        .filter(RecipeRequirement.menu_item_id.in_(ids))
        .order_by(RecipeRequirement.menu_item_id.asc(), RecipeRequirement.id.asc())
        .all()
    )


def find_shortfalls(db: Session, menu_item_ids: Iterable[int]) -> dict[int, list[Shortfall]]:
    """Return the unmet requirements per menu item, for one unit of each dish."""
    shortfalls: dict[int, list[Shortfall]] = {}
    for row in _requirement_rows(db, menu_item_ids):
        required = _to_decimal(row.quantity_required)
        available = _to_decimal(row.quantity)
        if available < required:
            shortfalls.setdefault(row.menu_item_id, []).append(
                Shortfall(
                    menu_item_id=row.menu_item_id,
                    inventory_item_id=row.inventory_item_id,
                    inventory_item_name=row.name or f"inventory item {row.inventory_item_id}",
                    unit=row.unit or "",
                    required=required,
                    available=available,
                )
            )
    return shortfalls


def first_shortfall(db: Session, menu_item_id: int) -> Optional[Shortfall]:
    db.flush()
    missing = find_shortfalls(db, [menu_item_id]).get(menu_item_id)
    return missing[0] if missing else None


def evaluate_availability(db: Session, menu_item_ids: Iterable[int]) -> dict[int, bool]:
    ids = list(dict.fromkeys(menu_item_ids))
    shortfalls = find_shortfalls(db, ids)
    return {menu_item_id: menu_item_id not in shortfalls for menu_item_id in ids}


def is_menu_item_available(db: Session, menu_item_id: int) -> bool:
    db.flush()
    return evaluate_availability(db, [menu_item_id])[menu_item_id]


def dependent_menu_item_ids(db: Session, inventory_item_ids: Iterable[int]) -> set[int]:
    ids = list(inventory_item_ids)
    if not ids:
        return set()
    rows = (
        db.query(RecipeRequirement.menu_item_id)
        .filter(RecipeRequirement.inventory_item_id.in_(ids))
        .distinct()
        .all()
    )
    return {row.menu_item_id for row in rows}


def _tracked_menu_item_ids(db: Session) -> set[int]:
    rows = db.query(RecipeRequirement.menu_item_id).distinct().all()
    return {row.menu_item_id for row in rows}


def recompute_availability(db: Session, menu_item_ids: Iterable[int]) -> list[int]:
    """Write the evaluator's verdict into ``MenuItem.is_available``.

    Runs inside the caller's transaction; pending changes are flushed first so
    the evaluation sees them. Returns the ids whose flag changed.
    """
    ids = sorted(set(menu_item_ids))
    if not ids:
        return []
    db.flush()

    verdicts = evaluate_availability(db, ids)
    items = db.query(MenuItem).filter(MenuItem.id.in_(ids)).all()
    flipped: list[int] = []
    for item in items:
        verdict = verdicts.get(item.id, True)
        if bool(item.is_available) == verdict:
            continue
        item.is_available = verdict
        flipped.append(item.id)
        logger.info(
            "Menu item availability changed: %s -> %s",
            item.name,
            "available" if verdict else "unavailable",
            extra={"menu_item_id": item.id},
        )
    if flipped:
        metrics.increment("availability_flips", len(flipped))
        db.flush()
    return flipped


def refresh_all_availability(db: Session) -> list[int]:
    """Global sweep over every menu item that has recipe requirements."""
    return recompute_availability(db, _tracked_menu_item_ids(db))


def recompute_for_inventory(db: Session, inventory_item_ids: Iterable[int]) -> list[int]:
    db.flush()
    if config.AVAILABILITY_RECOMPUTE_SCOPE == "all":
        return refresh_all_availability(db)
    return recompute_availability(db, dependent_menu_item_ids(db, inventory_item_ids))


def recompute_for_menu_items(db: Session, menu_item_ids: Iterable[int]) -> list[int]:
    """Recompute after a recipe change; the changed items are always included,
    even when their last requirement was just removed."""
    ids = set(menu_item_ids)
    if config.AVAILABILITY_RECOMPUTE_SCOPE == "all":
        db.flush()
        ids |= _tracked_menu_item_ids(db)
    return recompute_availability(db, ids)
