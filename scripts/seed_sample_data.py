#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from restaurant_app.core.config import IS_PROD  # noqa: E402
from restaurant_app.core.database import Base, SessionLocal, engine  # noqa: E402
from restaurant_app.core.errors import EngineError  # noqa: E402
from restaurant_app.models.menu_item import MenuItem  # noqa: E402
import restaurant_app.models  # noqa: E402,F401
from restaurant_app.services import inventory as inventory_service  # noqa: E402
from restaurant_app.services import menu as menu_service  # noqa: E402

MENU_ITEMS = [
    ("Bruschetta Trio", "Three types of bruschetta: classic tomato basil, goat cheese honey, and pesto mozzarella", "12.99", "Appetizers"),
    ("Crispy Calamari", "Golden fried calamari rings served with marinara sauce and lemon aioli", "14.99", "Appetizers"),
    ("Spinach Artichoke Dip", "Creamy blend of spinach and artichoke hearts, baked with parmesan", "11.99", "Appetizers"),
    ("Grilled Salmon", "Atlantic salmon grilled to perfection with roasted vegetables and lemon butter sauce", "24.99", "Main Course"),
    ("Ribeye Steak", "12oz prime ribeye steak with garlic mashed potatoes and seasonal vegetables", "32.99", "Main Course"),
    ("Chicken Parmesan", "Breaded chicken breast topped with marinara sauce and mozzarella, served over linguine", "19.99", "Main Course"),
    ("Margherita Pizza", "Classic pizza with fresh mozzarella, tomato sauce, and basil on house-made dough", "16.99", "Main Course"),
    ("Pasta Carbonara", "Creamy pasta with pancetta, parmesan cheese, egg yolk, and black pepper", "18.99", "Main Course"),
    ("Caesar Salad", "Crisp romaine lettuce with caesar dressing, parmesan cheese, and croutons", "10.99", "Salads"),
    ("Greek Salad", "Mixed greens with feta cheese, kalamata olives, cucumbers, tomatoes, and red onion", "11.99", "Salads"),
    ("Chocolate Lava Cake", "Warm chocolate cake with a molten center, served with vanilla ice cream", "8.99", "Desserts"),
    ("Tiramisu", "Coffee-soaked ladyfingers layered with mascarpone cream", "7.99", "Desserts"),
    ("New York Cheesecake", "Creamy cheesecake with a graham cracker crust and fresh berries", "8.99", "Desserts"),
    ("Fresh Lemonade", "House-made lemonade with fresh lemons, mint, and a hint of honey", "4.99", "Beverages"),
    ("Iced Coffee", "Cold brew coffee served over ice", "4.49", "Beverages"),
    ("Fresh Orange Juice", "Freshly squeezed orange juice served chilled", "3.99", "Beverages"),
]

# name, quantity, unit, min_stock
INVENTORY_ITEMS = [
    ("Mozzarella Cheese", "50.0", "lbs", "10.0"),
    ("Pizza Dough", "30.0", "lbs", "5.0"),
    ("Tomatoes", "25.0", "lbs", "5.0"),
    ("Fresh Basil", "5.0", "lbs", "1.0"),
    ("Salmon Fillet", "20.0", "lbs", "5.0"),
    ("Ribeye Steak", "30.0", "lbs", "10.0"),
    ("Chicken Breast", "25.0", "lbs", "8.0"),
    ("Pasta", "40.0", "lbs", "10.0"),
    ("Pancetta", "15.0", "lbs", "3.0"),
    ("Parmesan Cheese", "20.0", "lbs", "5.0"),
    ("Romaine Lettuce", "15.0", "lbs", "3.0"),
    ("Feta Cheese", "12.0", "lbs", "2.0"),
    ("Calamari", "10.0", "lbs", "2.0"),
    ("Spinach", "8.0", "lbs", "2.0"),
    ("Artichoke Hearts", "6.0", "lbs", "1.0"),
    ("Chocolate", "20.0", "lbs", "5.0"),
    ("Coffee Beans", "30.0", "lbs", "10.0"),
    ("Lemons", "25.0", "lbs", "5.0"),
    ("Oranges", "30.0", "lbs", "5.0"),
]

RECIPES = {
    "Margherita Pizza": [("Mozzarella Cheese", "0.5"), ("Pizza Dough", "1.0"), ("Tomatoes", "0.3"), ("Fresh Basil", "0.1")],
    "Grilled Salmon": [("Salmon Fillet", "0.5"), ("Tomatoes", "0.2")],
    "Ribeye Steak": [("Ribeye Steak", "0.75")],
    "Chicken Parmesan": [("Chicken Breast", "0.5"), ("Pasta", "0.3"), ("Mozzarella Cheese", "0.3"), ("Tomatoes", "0.2")],
    "Pasta Carbonara": [("Pasta", "0.4"), ("Pancetta", "0.2"), ("Parmesan Cheese", "0.1")],
    "Caesar Salad": [("Romaine Lettuce", "0.3"), ("Parmesan Cheese", "0.1")],
    "Greek Salad": [("Feta Cheese", "0.2"), ("Tomatoes", "0.2")],
    "Crispy Calamari": [("Calamari", "0.3")],
    "Spinach Artichoke Dip": [("Spinach", "0.2"), ("Artichoke Hearts", "0.15")],
    "Iced Coffee": [("Coffee Beans", "0.1")],
    "Fresh Lemonade": [("Lemons", "0.2")],
    "Fresh Orange Juice": [("Oranges", "0.3")],
    "Bruschetta Trio": [("Tomatoes", "0.4"), ("Mozzarella Cheese", "0.2"), ("Fresh Basil", "0.15")],
    "Chocolate Lava Cake": [("Chocolate", "0.2")],
    "Tiramisu": [("Coffee Beans", "0.15"), ("Chocolate", "0.1")],
    "New York Cheesecake": [("Mozzarella Cheese", "0.3"), ("Chocolate", "0.1")],
}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Load the sample menu, inventory and recipes.")
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables before seeding (local SQLite only)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Allow seeding when ENV=prod",
    )
    return parser.parse_args()


def seed(db) -> dict[str, int]:
    menu_ids: dict[str, int] = {}
    for name, description, price, category in MENU_ITEMS:
        existing = db.query(MenuItem).filter(MenuItem.name == name).first()
        if existing is None:
            existing = menu_service.create_menu_item(
                db,
                name=name,
                description=description,
                price=price,
                category=category,
            )
        menu_ids[name] = existing.id

    inventory_ids: dict[str, int] = {}
    for name, quantity, unit, min_stock in INVENTORY_ITEMS:
        item = inventory_service.upsert_inventory_item(
            db,
            name=name,
            unit=unit,
            quantity=quantity,
            min_stock=min_stock,
        )
        inventory_ids[name] = item.id

    requirements = 0
    for menu_name, ingredients in RECIPES.items():
        for inventory_name, quantity_required in ingredients:
            inventory_service.upsert_recipe_requirement(
                db,
                menu_item_id=menu_ids[menu_name],
                inventory_item_id=inventory_ids[inventory_name],
                quantity_required=quantity_required,
            )
            requirements += 1

    menu_service.refresh_menu_availability(db)
    return {"menu_items": len(menu_ids), "inventory_items": len(inventory_ids), "requirements": requirements}


def main() -> int:
    args = parse_args()

    if IS_PROD and not args.force:
        print("Refusing to seed sample data with ENV=prod. Use --force to override.")
        return 1

    if args.create_schema:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        summary = seed(db)
    except EngineError as exc:
        print(f"Seeding failed: {exc.message}")
        return 1
    finally:
        db.close()

    print(
        "Seeded {menu_items} menu items, {inventory_items} inventory items, "
        "{requirements} recipe requirements".format(**summary)
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
