"""Order aggregate: creation through the validation gate and the status machine.

    pending -> approved -> completed
    pending -> completed
    pending -> declined

``completed`` and ``declined`` are terminal. Entering ``completed`` deducts
inventory inside the same transaction as the status write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from restaurant_app.core import config
from restaurant_app.core.database import reading, transaction
from restaurant_app.core.errors import EngineError, InvalidTransition, ItemNotFound, ValidationInputError
from restaurant_app.core.metrics import metrics
from restaurant_app.core.request_context import order_context
from restaurant_app.models.order import ORDER_STATUSES, Order
from restaurant_app.models.order_item import OrderItem
from restaurant_app.services.inventory import DeductionResult, deduct_inventory_for_order
from restaurant_app.services.order_events import emit_order_created, emit_order_status_changed
from restaurant_app.services.order_validation import OrderLine, validate_order_lines

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {"completed", "declined"}
ALLOWED_TRANSITIONS = {
    "pending": {"approved", "declined", "completed"},
    "approved": {"completed"},
}


@dataclass
class CustomerInfo:
    phone_number: str
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None


def _normalize_customer(customer: CustomerInfo) -> CustomerInfo:
    phone = (customer.phone_number or "").strip()
    if not phone:
        raise ValidationInputError("Phone number is required", field="phone_number")
    if len(phone) > 20:
        raise ValidationInputError("Phone number is too long", field="phone_number")
    name = (customer.customer_name or "").strip() or "Guest"
    email = (customer.customer_email or "").strip() or None
    return CustomerInfo(phone_number=phone, customer_name=name, customer_email=email)


def create_order(db: Session, customer: CustomerInfo, lines: Iterable[OrderLine]) -> Order:
    customer = _normalize_customer(customer)
    with transaction(db):
        # Validation reads stock without locking it; nothing is written on rejection
        try:
            validated = validate_order_lines(db, lines)
        except EngineError as exc:
            metrics.increment("validation_rejections")
            logger.info("Order rejected by validation: %s", exc.message)
            raise

        order = Order(
            customer_name=customer.customer_name,
            customer_email=customer.customer_email,
            phone_number=customer.phone_number,
            status="pending",
            total=sum((line.subtotal for line in validated), Decimal("0")),
        )
        db.add(order)
        db.flush()
        for line in validated:
            db.add(
                OrderItem(
                    order_id=order.id,
                    menu_item_id=line.menu_item.id,
                    quantity=line.quantity,
                    price=line.price,
                )
            )
    db.refresh(order)
    with order_context(order.id):
        emit_order_created(order)
    return order


def get_order(db: Session, order_id: int) -> Order:
    with reading(db):
        order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise ItemNotFound("Order", order_id)
    return order


def list_orders_for_phone(db: Session, phone_number: str) -> list[Order]:
    phone = (phone_number or "").strip()
    if not phone:
        raise ValidationInputError("Phone number is required", field="phone_number")
    with reading(db):
        return (
            db.query(Order)
            .filter(Order.phone_number == phone)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )


def list_orders(db: Session, status: Optional[str] = None) -> list[Order]:
    query = db.query(Order)
    if status:
        normalized = _normalize_status(status)
        query = query.filter(Order.status == normalized)
    with reading(db):
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def ready_at(order: Order) -> Optional[datetime]:
    """Moment the kitchen countdown elapses; clients complete the order then."""
    if order.status != "approved" or not order.preparation_time or not order.updated_at:
        return None
    updated_at = order.updated_at
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    return updated_at + timedelta(minutes=int(order.preparation_time))


def _normalize_status(status: str) -> str:
    normalized = (status or "").strip().lower()
    if normalized not in ORDER_STATUSES:
        raise ValidationInputError(f"Unknown order status: {status}", field="status")
    return normalized


def _preparation_minutes(value: Optional[int]) -> int:
    if value is None:
        return config.DEFAULT_PREPARATION_TIME_MINUTES
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationInputError("Preparation time must be a positive number of minutes", field="preparation_time")
    if value > config.MAX_PREPARATION_TIME_MINUTES:
        raise ValidationInputError(
            f"Preparation time cannot exceed {config.MAX_PREPARATION_TIME_MINUTES} minutes",
            field="preparation_time",
        )
    return value


def _lock_order(db: Session, order_id: int) -> Order:
    order = (
        db.query(Order)
        .filter(Order.id == order_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not order:
        raise ItemNotFound("Order", order_id)
    return order


def _transition(
    db: Session,
    order_id: int,
    target: str,
    preparation_time: Optional[int] = None,
) -> Order:
    with order_context(order_id):
        return _apply_transition(db, order_id, target, preparation_time)


def _apply_transition(
    db: Session,
    order_id: int,
    target: str,
    preparation_time: Optional[int],
) -> Order:
    deduction: Optional[DeductionResult] = None
    with transaction(db):
        order = _lock_order(db, order_id)
        previous_status = order.status
        if target not in ALLOWED_TRANSITIONS.get(previous_status, set()):
            raise InvalidTransition(order.id, previous_status, target)

        order.status = target
        order.updated_at = datetime.now(timezone.utc)
        if target == "approved":
            order.preparation_time = preparation_time
        db.flush()

        if target == "completed":
            deduction = deduct_inventory_for_order(db, order)

    db.refresh(order)
    logger.info("Order moved from %s to %s", previous_status, target, extra={"order_id": order.id})
    emit_order_status_changed(order, previous_status, deduction)
    return order


def approve_order(db: Session, order_id: int, preparation_time: Optional[int] = None) -> Order:
    return _transition(db, order_id, "approved", _preparation_minutes(preparation_time))


def decline_order(db: Session, order_id: int) -> Order:
    return _transition(db, order_id, "declined")


def complete_order(db: Session, order_id: int) -> Order:
    return _transition(db, order_id, "completed")


def set_order_status(
    db: Session,
    order_id: int,
    new_status: str,
    preparation_time: Optional[int] = None,
) -> Order:
    status = _normalize_status(new_status)
    if status == "approved":
        return approve_order(db, order_id, preparation_time)
    if status == "declined":
        return decline_order(db, order_id)
    if status == "completed":
        return complete_order(db, order_id)
    current = get_order(db, order_id)
    raise InvalidTransition(current.id, current.status, status)
