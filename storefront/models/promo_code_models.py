from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, CheckConstraint, func
from storefront.core.db import Base


class PromoCode(Base):
    __tablename__ = "promo_codes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)  # stored uppercase
    description = Column(String(255), nullable=False)
    discount_type = Column(String(20), nullable=False)  # 'percentage', 'fixed' or 'shipping'
    discount_value = Column(Float, nullable=False)
    minimum_purchase = Column(Float, nullable=False, default=0)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(discount_value >= 0, name="check_promo_discount_value_non_negative"),
        CheckConstraint(minimum_purchase >= 0, name="check_promo_minimum_purchase_non_negative"),
        CheckConstraint(used_count >= 0, name="check_promo_used_count_non_negative"),
    )
