from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from restaurant_app.core.database import reading, transaction
from restaurant_app.core.errors import InsufficientInventory, ItemNotFound, ValidationInputError
from restaurant_app.models.menu_item import MenuItem
from restaurant_app.models.order_item import OrderItem
from restaurant_app.services.availability import first_shortfall, refresh_all_availability

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "description", "price", "category", "image_url", "is_available", "is_on_menu")


def list_menu(db: Session, include_hidden: bool = False, category: Optional[str] = None) -> list[MenuItem]:
    query = db.query(MenuItem)
    if not include_hidden:
        query = query.filter(MenuItem.is_on_menu.is_(True))
    if category:
        query = query.filter(MenuItem.category == category)
    with reading(db):
        return query.order_by(MenuItem.category.asc(), MenuItem.name.asc()).all()


def get_menu_item(db: Session, menu_item_id: int) -> MenuItem:
    with reading(db):
        item = db.query(MenuItem).filter(MenuItem.id == menu_item_id).first()
    if not item:
        raise ItemNotFound("Menu item", menu_item_id)
    return item


def _clean_fields(fields: dict[str, Any]) -> dict[str, Any]:
    cleaned = {key: value for key, value in fields.items() if key in EDITABLE_FIELDS}
    for key in ("name", "category"):
        if key in cleaned:
            text = (cleaned[key] or "").strip()
            if not text:
                raise ValidationInputError(f"{key} is required", field=key)
            cleaned[key] = text
    if "price" in cleaned:
        try:
            price = Decimal(str(cleaned["price"]))
        except (ArithmeticError, ValueError) as exc:
            raise ValidationInputError("price must be a number", field="price") from exc
        if price <= 0:
            raise ValidationInputError("price must be greater than zero", field="price")
        cleaned["price"] = price
    for key in ("is_available", "is_on_menu"):
        if key in cleaned and cleaned[key] is None:
            cleaned.pop(key)
    return cleaned


def create_menu_item(db: Session, **fields: Any) -> MenuItem:
    cleaned = _clean_fields(fields)
    for required in ("name", "price", "category"):
        if required not in cleaned:
            raise ValidationInputError(f"{required} is required", field=required)
    with transaction(db):
        item = MenuItem(**cleaned)
        db.add(item)
    db.refresh(item)
    logger.info("Menu item created: %s", item.name, extra={"menu_item_id": item.id})
    return item


def update_menu_item(db: Session, menu_item_id: int, fields: dict[str, Any]) -> MenuItem:
    """Partial update. Turning ``is_available`` on is refused while the
    recipe's ingredients cannot cover one more unit of the dish."""
    cleaned = _clean_fields(fields)
    with transaction(db):
        item = get_menu_item(db, menu_item_id)
        if cleaned.get("is_available") is True:
            missing = first_shortfall(db, item.id)
            if missing:
                raise InsufficientInventory(
                    item_name=missing.inventory_item_name,
                    required=missing.required,
                    available=missing.available,
                    unit=missing.unit,
                    menu_item_name=item.name,
                )
        for key, value in cleaned.items():
            setattr(item, key, value)
    db.refresh(item)
    return item


def delete_menu_item(db: Session, menu_item_id: int) -> None:
    with transaction(db):
        item = get_menu_item(db, menu_item_id)
        has_orders = db.query(OrderItem.id).filter(OrderItem.menu_item_id == item.id).first()
        if has_orders:
            raise ValidationInputError(
                f"{item.name} appears in past orders; hide it from the menu instead",
                field="menu_item_id",
            )
        db.delete(item)
    logger.info("Menu item deleted", extra={"menu_item_id": menu_item_id})


def refresh_menu_availability(db: Session) -> list[int]:
    with transaction(db):
        flipped = refresh_all_availability(db)
    return flipped
