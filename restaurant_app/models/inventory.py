from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from restaurant_app.core.database import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"
    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),)

    id = Column(Integer, primary_key=True)
    name = Column(String(255), unique=True, index=True, nullable=False)
    image_url = Column(String, nullable=True)
    quantity = Column(Numeric(10, 2), nullable=False, default=0)
    unit = Column(String(50), nullable=False)
    min_stock = Column(Numeric(10, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    requirements = relationship(
        "RecipeRequirement",
        back_populates="inventory_item",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class RecipeRequirement(Base):
    __tablename__ = "recipe_requirements"
    __table_args__ = (
        UniqueConstraint("menu_item_id", "inventory_item_id", name="uq_recipe_requirements_pair"),
        CheckConstraint("quantity_required > 0", name="ck_recipe_requirements_quantity_positive"),
    )

    id = Column(Integer, primary_key=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id", ondelete="CASCADE"), index=True, nullable=False)
    inventory_item_id = Column(
        Integer, ForeignKey("inventory_items.id", ondelete="CASCADE"), index=True, nullable=False
    )
    # per one unit of the menu item ordered
    quantity_required = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    menu_item = relationship("MenuItem", back_populates="requirements")
    inventory_item = relationship("InventoryItem", back_populates="requirements")


class InventoryMovement(Base):
    __tablename__ = "inventory_movements"

    id = Column(Integer, primary_key=True)
    inventory_item_id = Column(
        Integer, ForeignKey("inventory_items.id", ondelete="CASCADE"), index=True, nullable=False
    )
    type = Column(String(10), nullable=False)  # OUT / ADJUST
    reason = Column(String(50), nullable=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), index=True, nullable=True)
    requested_quantity = Column(Numeric(10, 2), nullable=False)
    applied_quantity = Column(Numeric(10, 2), nullable=False)
    shortfall = Column(Numeric(10, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    inventory_item = relationship("InventoryItem")
