from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from restaurant_app.core.database import Base


class MenuItem(Base):
    __tablename__ = "menu_items"
    __table_args__ = (CheckConstraint("price > 0", name="ck_menu_items_price_positive"),)

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(100), index=True, nullable=False)
    image_url = Column(String, nullable=True)
    # cached result of the availability evaluator
    is_available = Column(Boolean, default=True, nullable=False)
    is_on_menu = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    requirements = relationship(
        "RecipeRequirement",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
