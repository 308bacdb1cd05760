from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from restaurant_app.core.database import get_db
from restaurant_app.core.errors import EngineError
from restaurant_app.deps import http_error
from restaurant_app.models.inventory import InventoryItem, InventoryMovement, RecipeRequirement
from restaurant_app.services import inventory as inventory_service

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


class InventoryItemUpsert(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    unit: str = Field(..., min_length=1, max_length=50)
    # Omitted on an existing name: keep the stored value. Omitted on insert: 0.
    quantity: Optional[float] = Field(None, ge=0)
    min_stock: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    quantity: Optional[float] = Field(None, ge=0)
    min_stock: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None


class InventoryItemRead(BaseModel):
    id: int
    name: str
    unit: str
    quantity: float
    min_stock: float
    image_url: Optional[str] = None
    is_low_stock: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class InventoryMovementRead(BaseModel):
    id: int
    inventory_item_id: int
    item_name: str
    type: str
    reason: Optional[str]
    order_id: Optional[int]
    requested_quantity: float
    applied_quantity: float
    shortfall: float
    created_at: Optional[str]


class RecipeRequirementCreate(BaseModel):
    menu_item_id: int
    inventory_item_id: int
    quantity_required: float = Field(..., gt=0)


class RecipeRequirementUpdate(BaseModel):
    menu_item_id: Optional[int] = None
    inventory_item_id: Optional[int] = None
    quantity_required: Optional[float] = Field(None, gt=0)


class RecipeRequirementRead(BaseModel):
    id: int
    menu_item_id: int
    inventory_item_id: int
    inventory_item_name: str
    unit: str
    quantity_required: float
    created_at: Optional[str]


def _item_to_dict(item: InventoryItem) -> dict:
    quantity = float(item.quantity or 0)
    min_stock = float(item.min_stock or 0)
    return {
        "id": item.id,
        "name": item.name,
        "unit": item.unit,
        "quantity": quantity,
        "min_stock": min_stock,
        "image_url": item.image_url,
        "is_low_stock": quantity < min_stock,
        "created_at": item.created_at.isoformat() if item.created_at else None,
        "updated_at": item.updated_at.isoformat() if item.updated_at else None,
    }


def _movement_to_dict(movement: InventoryMovement) -> dict:
    item = movement.inventory_item
    return {
        "id": movement.id,
        "inventory_item_id": movement.inventory_item_id,
        "item_name": item.name if item else "",
        "type": movement.type,
        "reason": movement.reason,
        "order_id": movement.order_id,
        "requested_quantity": float(movement.requested_quantity or 0),
        "applied_quantity": float(movement.applied_quantity or 0),
        "shortfall": float(movement.shortfall or 0),
        "created_at": movement.created_at.isoformat() if movement.created_at else None,
    }


def _requirement_to_dict(requirement: RecipeRequirement) -> dict:
    item = requirement.inventory_item
    return {
        "id": requirement.id,
        "menu_item_id": requirement.menu_item_id,
        "inventory_item_id": requirement.inventory_item_id,
        "inventory_item_name": item.name if item else "",
        "unit": item.unit if item else "",
        "quantity_required": float(requirement.quantity_required),
        "created_at": requirement.created_at.isoformat() if requirement.created_at else None,
    }


@router.get("/items", response_model=List[InventoryItemRead])
def list_inventory_items(db: Session = Depends(get_db)):
    try:
        items = inventory_service.list_inventory_items(db)
    except EngineError as exc:
        raise http_error(exc) from exc
    return [_item_to_dict(item) for item in items]


@router.get("/low-stock", response_model=List[InventoryItemRead])
def list_low_stock_items(db: Session = Depends(get_db)):
    try:
        items = inventory_service.list_low_stock(db)
    except EngineError as exc:
        raise http_error(exc) from exc
    return [_item_to_dict(item) for item in items]


@router.post("/items", response_model=InventoryItemRead)
def upsert_inventory_item(payload: InventoryItemUpsert, db: Session = Depends(get_db)):
    try:
        item = inventory_service.upsert_inventory_item(
            db,
            name=payload.name,
            unit=payload.unit,
            quantity=payload.quantity,
            min_stock=payload.min_stock,
            image_url=payload.image_url,
        )
    except EngineError as exc:
        raise http_error(exc) from exc
    return _item_to_dict(item)


@router.patch("/items/{item_id}", response_model=InventoryItemRead)
def update_inventory_item(item_id: int, payload: InventoryItemUpdate, db: Session = Depends(get_db)):
    try:
        item = inventory_service.upsert_inventory_item(
            db,
            item_id=item_id,
            name=payload.name,
            unit=payload.unit,
            quantity=payload.quantity,
            min_stock=payload.min_stock,
            image_url=payload.image_url,
        )
    except EngineError as exc:
        raise http_error(exc) from exc
    return _item_to_dict(item)


@router.delete("/items/{item_id}")
def delete_inventory_item(item_id: int, db: Session = Depends(get_db)):
    try:
        inventory_service.delete_inventory_item(db, item_id)
    except EngineError as exc:
        raise http_error(exc) from exc
    return {"ok": True}


@router.get("/movements", response_model=List[InventoryMovementRead])
def list_inventory_movements(
    item_id: Optional[int] = Query(None),
    order_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        movements = inventory_service.list_movements(db, inventory_item_id=item_id, order_id=order_id)
    except EngineError as exc:
        raise http_error(exc) from exc
    return [_movement_to_dict(movement) for movement in movements]


@router.get("/recipes", response_model=List[RecipeRequirementRead])
def list_recipe_requirements(
    menu_item_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        requirements = inventory_service.list_recipe_requirements(db, menu_item_id=menu_item_id)
    except EngineError as exc:
        raise http_error(exc) from exc
    return [_requirement_to_dict(requirement) for requirement in requirements]


@router.post("/recipes", response_model=RecipeRequirementRead)
def upsert_recipe_requirement(payload: RecipeRequirementCreate, db: Session = Depends(get_db)):
    try:
        requirement = inventory_service.upsert_recipe_requirement(
            db,
            menu_item_id=payload.menu_item_id,
            inventory_item_id=payload.inventory_item_id,
            quantity_required=payload.quantity_required,
        )
    except EngineError as exc:
        raise http_error(exc) from exc
    return _requirement_to_dict(requirement)


@router.patch("/recipes/{requirement_id}", response_model=RecipeRequirementRead)
def update_recipe_requirement(
    requirement_id: int,
    payload: RecipeRequirementUpdate,
    db: Session = Depends(get_db),
):
    try:
        requirement = inventory_service.upsert_recipe_requirement(
            db,
            requirement_id=requirement_id,
            menu_item_id=payload.menu_item_id,
            inventory_item_id=payload.inventory_item_id,
            quantity_required=payload.quantity_required,
        )
    except EngineError as exc:
        raise http_error(exc) from exc
    return _requirement_to_dict(requirement)


@router.delete("/recipes/{requirement_id}")
def delete_recipe_requirement(requirement_id: int, db: Session = Depends(get_db)):
    try:
        inventory_service.delete_recipe_requirement(db, requirement_id)
    except EngineError as exc:
        raise http_error(exc) from exc
    return {"ok": True}
