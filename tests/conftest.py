from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import restaurant_app.models  # noqa: F401
import restaurant_app.services.event_handlers  # noqa: F401
from restaurant_app.core.database import Base
from restaurant_app.core.metrics import metrics
from restaurant_app.models.inventory import InventoryItem, RecipeRequirement
from restaurant_app.models.menu_item import MenuItem
from tests.fixtures_data import MARGHERITA, PIZZA_INGREDIENTS, SIDE_SALAD


@pytest.fixture()
def db_session() -> Session:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture()
def pizza_kitchen(db_session: Session):
    """A Margherita Pizza whose recipe needs tomatoes, mozzarella and dough,
    plus a side salad with no recipe at all."""

    def _build(tomatoes: str = "25.0", tomatoes_per_pizza: str = "0.3") -> SimpleNamespace:
        pizza = MenuItem(**{**MARGHERITA, "price": Decimal(MARGHERITA["price"])})
        salad = MenuItem(**{**SIDE_SALAD, "price": Decimal(SIDE_SALAD["price"])})
        db_session.add_all([pizza, salad])

        stock = {}
        for name, quantity, unit, min_stock in PIZZA_INGREDIENTS:
            if name == "Tomatoes":
                quantity = tomatoes
            item = InventoryItem(
                name=name,
                quantity=Decimal(quantity),
                unit=unit,
                min_stock=Decimal(min_stock),
            )
            db_session.add(item)
            stock[name] = item
        db_session.flush()

        per_pizza = {"Tomatoes": tomatoes_per_pizza, "Mozzarella Cheese": "0.5", "Pizza Dough": "1.0"}
        for name, quantity_required in per_pizza.items():
            db_session.add(
                RecipeRequirement(
                    menu_item_id=pizza.id,
                    inventory_item_id=stock[name].id,
                    quantity_required=Decimal(quantity_required),
                )
            )
        db_session.commit()
        return SimpleNamespace(
            pizza=pizza,
            salad=salad,
            tomatoes=stock["Tomatoes"],
            mozzarella=stock["Mozzarella Cheese"],
            dough=stock["Pizza Dough"],
        )

    return _build
