from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from restaurant_app.core.database import get_db
from restaurant_app.core.errors import EngineError
from restaurant_app.deps import http_error
from restaurant_app.models.order import Order
from restaurant_app.models.order_item import OrderItem
from restaurant_app.services import orders as order_service
from restaurant_app.services.order_validation import OrderLine

router = APIRouter(prefix="/api", tags=["orders"])


class OrderLineIn(BaseModel):
    menu_item_id: int
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    phone_number: str = Field(..., min_length=1, max_length=20)
    customer_name: Optional[str] = Field(None, max_length=255)
    customer_email: Optional[EmailStr] = None
    items: List[OrderLineIn] = Field(..., min_length=1)


class StatusUpdate(BaseModel):
    status: str
    preparation_time: Optional[int] = Field(None, ge=1)


def _order_item_to_dict(item: OrderItem) -> Dict[str, Any]:
    menu_item = item.menu_item
    return {
        "id": item.id,
        "menu_item_id": item.menu_item_id,
        "name": menu_item.name if menu_item else "",
        "quantity": item.quantity,
        "price": float(item.price),
        "subtotal": float(item.price) * item.quantity,
    }


def _order_to_dict(order: Order, include_items: bool = True) -> Dict[str, Any]:
    ready = order_service.ready_at(order)
    payload = {
        "id": order.id,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "phone_number": order.phone_number,
        "status": order.status,
        "total": float(order.total or 0),
        "preparation_time": order.preparation_time,
        "ready_at": ready.isoformat() if ready else None,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "updated_at": order.updated_at.isoformat() if order.updated_at else None,
    }
    if include_items:
        payload["items"] = [_order_item_to_dict(item) for item in order.order_items]
    return payload


@router.post("/orders")
def create_order(payload: OrderCreate, db: Session = Depends(get_db)):
    customer = order_service.CustomerInfo(
        phone_number=payload.phone_number,
        customer_name=payload.customer_name,
        customer_email=str(payload.customer_email) if payload.customer_email else None,
    )
    lines = [OrderLine(menu_item_id=line.menu_item_id, quantity=line.quantity) for line in payload.items]
    try:
        order = order_service.create_order(db, customer, lines)
    except EngineError as exc:
        raise http_error(exc) from exc
    return {"orderId": order.id, "order": _order_to_dict(order)}


@router.get("/orders")
def list_customer_orders(
    phone_number: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    try:
        orders = order_service.list_orders_for_phone(db, phone_number)
    except EngineError as exc:
        raise http_error(exc) from exc
    return [_order_to_dict(order) for order in orders]


@router.get("/orders/{order_id}")
def get_order(order_id: int, db: Session = Depends(get_db)):
    try:
        order = order_service.get_order(db, order_id)
    except EngineError as exc:
        raise http_error(exc) from exc
    return _order_to_dict(order)


@router.get("/admin/orders")
def list_orders(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        orders = order_service.list_orders(db, status=status)
    except EngineError as exc:
        raise http_error(exc) from exc
    return [_order_to_dict(order) for order in orders]


@router.patch("/admin/orders/{order_id}/status")
def update_status(order_id: int, body: StatusUpdate, db: Session = Depends(get_db)):
    try:
        order = order_service.set_order_status(
            db,
            order_id,
            body.status,
            preparation_time=body.preparation_time,
        )
    except EngineError as exc:
        raise http_error(exc) from exc
    return {"ok": True, "status": order.status, "order": _order_to_dict(order)}
