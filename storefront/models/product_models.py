from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Text, Boolean, JSON,
    CheckConstraint, Index, event, func
)
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import relationship
from storefront.core.db import Base
from storefront.services.discount_engine import apply_expiry_policy


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Float, nullable=False)
    original_price = Column(Float, nullable=True)

    # for "fixed" discounts this holds the absolute amount
    discount_percentage = Column(Float, default=0, nullable=False)
    discount_type = Column(String(20), default="percentage", nullable=False)
    discount_end_date = Column(DateTime(timezone=True), nullable=True)
    is_black_friday_deal = Column(Boolean, default=False, nullable=False)

    category = Column(String, nullable=False, default="")
    categories = Column(MutableList.as_mutable(JSON), default=list)
    colors = Column(MutableList.as_mutable(JSON), default=list)
    sizes = Column(MutableList.as_mutable(JSON), default=list)
    images = Column(MutableList.as_mutable(JSON), default=list)

    sales_count = Column(Integer, default=0, nullable=False)
    stock = Column(Integer, default=0, nullable=False)
    sold_out = Column(Boolean, default=False, nullable=False)
    hidden = Column(Boolean, default=False, nullable=False)
    rating = Column(Float, default=4, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(price >= 0, name="check_product_price_non_negative"),
        CheckConstraint(stock >= 0, name="check_product_stock_non_negative"),
        CheckConstraint(sales_count >= 0, name="check_product_sales_count_non_negative"),
    )

    order_items = relationship("OrderItem", back_populates="product")


def normalize_categories(product):
    """Primary category always appears in categories; first category fills a blank primary."""
    categories = list(product.categories or [])
    if product.category and product.category not in categories:
        categories.append(product.category)
    if categories and not product.category:
        product.category = categories[0]
    if categories != list(product.categories or []):
        product.categories = categories


@event.listens_for(Product, "before_insert")
@event.listens_for(Product, "before_update")
def product_before_save(mapper, connection, target):
    apply_expiry_policy(target)
    normalize_categories(target)


Index("ix_product_category_hidden", Product.category, Product.hidden)
