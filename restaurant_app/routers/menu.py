from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from restaurant_app.core.database import get_db
from restaurant_app.core.errors import EngineError
from restaurant_app.deps import http_error
from restaurant_app.models.menu_item import MenuItem
from restaurant_app.services import menu as menu_service

router = APIRouter(prefix="/api", tags=["menu"])


class MenuItemOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    category: str
    image_url: Optional[str] = None
    is_available: bool
    is_on_menu: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: float = Field(..., gt=0)
    category: str = Field(..., min_length=1, max_length=100)
    image_url: Optional[str] = None
    is_available: bool = True
    is_on_menu: bool = True


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    image_url: Optional[str] = None
    is_available: Optional[bool] = None
    is_on_menu: Optional[bool] = None


def _menu_item_to_dict(item: MenuItem) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "price": float(item.price),
        "category": item.category,
        "image_url": item.image_url,
        "is_available": bool(item.is_available),
        "is_on_menu": bool(item.is_on_menu),
        "created_at": item.created_at.isoformat() if item.created_at else None,
        "updated_at": item.updated_at.isoformat() if item.updated_at else None,
    }


@router.get("/menu", response_model=List[MenuItemOut])
def get_menu(
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        items = menu_service.list_menu(db, include_hidden=False, category=category)
    except EngineError as exc:
        raise http_error(exc) from exc
    return [_menu_item_to_dict(item) for item in items]


@router.get("/admin/menu/items", response_model=List[MenuItemOut])
def list_menu_items(
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        items = menu_service.list_menu(db, include_hidden=True, category=category)
    except EngineError as exc:
        raise http_error(exc) from exc
    return [_menu_item_to_dict(item) for item in items]


@router.post("/admin/menu/items", response_model=MenuItemOut)
def create_menu_item(payload: MenuItemCreate, db: Session = Depends(get_db)):
    try:
        item = menu_service.create_menu_item(db, **payload.model_dump())
    except EngineError as exc:
        raise http_error(exc) from exc
    return _menu_item_to_dict(item)


@router.patch("/admin/menu/items/{menu_item_id}", response_model=MenuItemOut)
def update_menu_item(menu_item_id: int, payload: MenuItemUpdate, db: Session = Depends(get_db)):
    try:
        item = menu_service.update_menu_item(db, menu_item_id, payload.model_dump(exclude_unset=True))
    except EngineError as exc:
        raise http_error(exc) from exc
    return _menu_item_to_dict(item)


@router.delete("/admin/menu/items/{menu_item_id}")
def delete_menu_item(menu_item_id: int, db: Session = Depends(get_db)):
    try:
        menu_service.delete_menu_item(db, menu_item_id)
    except EngineError as exc:
        raise http_error(exc) from exc
    return {"ok": True}


@router.post("/admin/menu/availability/refresh")
def refresh_availability(db: Session = Depends(get_db)):
    try:
        flipped = menu_service.refresh_menu_availability(db)
    except EngineError as exc:
        raise http_error(exc) from exc
    return {"ok": True, "changed_menu_item_ids": flipped}
