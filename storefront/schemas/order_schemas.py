from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Dict, List, Literal, Optional
from datetime import datetime

from storefront.schemas.product_schemas import ProductOut


class PromoDiscount(BaseModel):
    type: Literal["percentage", "fixed"]
    value: float = Field(..., ge=0)


# --------------------------
# Order Create
# --------------------------
class OrderItemCreate(BaseModel):
    product: int                      # product id
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)   # price shown to the shopper, stored as-is
    selected_color: str = ""
    selected_size: str = ""


class OrderCreate(BaseModel):
    products: Optional[List[OrderItemCreate]] = None
    subtotal: float = Field(..., ge=0)
    shipping_fee: Optional[float] = Field(default=None, ge=0)
    promo_code: Optional[str] = None
    promo_discount: Optional[PromoDiscount] = None
    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    special_instructions: Optional[str] = ""

    @field_validator('customer_name', 'phone_number', 'address', 'special_instructions', 'promo_code')
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


# --------------------------
# Order Update (admin)
# --------------------------
class OrderUpdate(BaseModel):
    status: Optional[str] = None
    shipping_fee: Optional[float] = Field(default=None, ge=0)
    promo_code: Optional[str] = None
    promo_discount: Optional[PromoDiscount] = None
    special_instructions: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    subtotal: Optional[float] = Field(default=None, ge=0)


# --------------------------
# Order Out
# --------------------------
class OrderItemOut(BaseModel):
    id: int
    product_id: Optional[int] = None
    quantity: int
    price: float
    selected_color: str = ""
    selected_size: str = ""
    product: Optional[ProductOut] = None

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    id: int
    order_id: int
    items: List[OrderItemOut]
    subtotal: float
    promo_code: Optional[str] = None
    promo_discount: Optional[PromoDiscount] = None
    shipping_fee: float
    total_amount: float
    customer_name: str
    customer_email: Optional[str] = None
    phone_number: str
    address: str
    special_instructions: str = ""
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    message: str
    data: OrderOut

class OrderListResponse(BaseModel):
    message: str
    data: List[OrderOut]

class OrderStatsResponse(BaseModel):
    total_orders: int
    total_revenue: float
    orders_by_status: Dict[str, int]