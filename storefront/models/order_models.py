from sqlalchemy import (
    Column, Integer, String, Float, ForeignKey, DateTime, Text,
    CheckConstraint, Index, func
)
from sqlalchemy.orm import relationship
from storefront.core.db import Base
import enum


class OrderStatus(str, enum.Enum):
    pending = "Pending"
    confirmed = "Confirmed"
    shipped = "Shipped"
    delivered = "Delivered"
    cancelled = "Cancelled"


ORDER_STATUSES = [s.value for s in OrderStatus]


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    # human readable number handed out by the "orderId" counter
    order_id = Column(Integer, unique=True, nullable=False, index=True)

    subtotal = Column(Float, nullable=False)
    promo_code = Column(String(50), nullable=True)
    promo_discount_type = Column(String(20), nullable=True)
    promo_discount_value = Column(Float, nullable=True)
    shipping_fee = Column(Float, nullable=False, default=5)
    total_amount = Column(Float, nullable=False)

    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=True, index=True)
    phone_number = Column(String, nullable=False)
    address = Column(Text, nullable=False)
    special_instructions = Column(Text, nullable=False, default="")

    status = Column(String(20), nullable=False, default=OrderStatus.pending.value, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(subtotal >= 0, name="check_order_subtotal_non_negative"),
        CheckConstraint(shipping_fee >= 0, name="check_order_shipping_fee_non_negative"),
        CheckConstraint(total_amount >= 0, name="check_order_total_non_negative"),
    )

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="OrderItem.id",
    )

    @property
    def promo_discount(self):
        if self.promo_discount_type is None or self.promo_discount_value is None:
            return None
        return {"type": self.promo_discount_type, "value": self.promo_discount_value}


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    quantity = Column(Integer, nullable=False)
    # captured at order time, never re-read from the product
    price = Column(Float, nullable=False)
    selected_color = Column(String, nullable=False, default="")
    selected_size = Column(String, nullable=False, default="")

    __table_args__ = (
        CheckConstraint(quantity >= 1, name="check_order_item_quantity_positive"),
        CheckConstraint(price >= 0, name="check_order_item_price_non_negative"),
    )

    order = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items", lazy="selectin")


class Counter(Base):
    __tablename__ = "counters"

    name = Column(String(50), primary_key=True)
    seq = Column(Integer, nullable=False, default=0)


Index("ix_order_status_created", Order.status, Order.created_at)
