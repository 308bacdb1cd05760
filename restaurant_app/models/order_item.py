from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, func
from sqlalchemy.orm import relationship

from restaurant_app.core.database import Base


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),)

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), index=True, nullable=False)

    quantity = Column(Integer, nullable=False, default=1)
    # snapshot of MenuItem.price when the order was placed
    price = Column(Numeric(10, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="order_items")
    menu_item = relationship("MenuItem")
