from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import relationship

from restaurant_app.core.database import Base

ORDER_STATUSES = ("pending", "approved", "completed", "declined")


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'completed', 'declined')",
            name="ck_orders_status",
        ),
    )

    id = Column(Integer, primary_key=True)

    customer_name = Column(String(255), default="Guest", nullable=False)
    customer_email = Column(String(255), nullable=True)
    # no customer accounts: the phone number is the only lookup key
    phone_number = Column(String(20), index=True, nullable=False)

    status = Column(String(20), default="pending", index=True, nullable=False)
    total = Column(Numeric(10, 2), nullable=False, default=0)
    preparation_time = Column(Integer, nullable=True)  # minutes, set on approval

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    # last status change; clients count down from updated_at + preparation_time
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    order_items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItem.id",
    )
