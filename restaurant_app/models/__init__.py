from restaurant_app.models.menu_item import MenuItem
from restaurant_app.models.inventory import (
    InventoryItem,
    InventoryMovement,
    RecipeRequirement,
)
from restaurant_app.models.order import Order
from restaurant_app.models.order_item import OrderItem
