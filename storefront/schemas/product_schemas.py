from pydantic import BaseModel, Field, computed_field, field_validator
from typing import List, Literal, Optional
from datetime import datetime

from storefront.services import discount_engine
from storefront.utils.datetime_utils import as_utc


# --------------------------
# Product Schemas
# --------------------------
class ProductCreate(BaseModel):
    name: str
    description: str
    price: float
    category: str
    categories: List[str] = []
    colors: List[str] = []
    sizes: List[str] = []
    images: List[str] = []
    stock: int = 0
    hidden: bool = False
    sold_out: bool = False
    rating: float = Field(default=4, ge=1, le=5)

    @field_validator('price', 'stock')
    def non_negative_values(cls, value):
        if value < 0:
            raise ValueError('Must be non-negative')
        return value

    @field_validator('name', 'category')
    def not_blank(cls, value):
        if not value or not value.strip():
            raise ValueError('Must not be blank')
        return value.strip()


class ProductUpdate(BaseModel):
    """All fields optional for partial updates."""
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    categories: Optional[List[str]] = None
    colors: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    images: Optional[List[str]] = None
    stock: Optional[int] = Field(default=None, ge=0)
    hidden: Optional[bool] = None
    rating: Optional[float] = Field(default=None, ge=1, le=5)


class ProductOut(BaseModel):
    id: int
    name: str
    description: str
    price: float
    original_price: Optional[float] = None
    discount_percentage: float
    discount_type: str
    discount_end_date: Optional[datetime] = None
    is_black_friday_deal: bool
    category: str
    categories: List[str] = []
    colors: List[str] = []
    sizes: List[str] = []
    images: List[str] = []
    sales_count: int
    stock: int
    sold_out: bool
    hidden: bool
    rating: float
    review_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @computed_field
    @property
    def has_active_discount(self) -> bool:
        return discount_engine.has_active_discount(self)

    @computed_field
    @property
    def current_price(self) -> float:
        return discount_engine.current_price(self)

    @computed_field
    @property
    def discount_amount(self) -> float:
        return discount_engine.discount_amount(self)


class ProductResponse(BaseModel):
    message: str
    data: Optional[ProductOut] = None

class ProductListResponse(BaseModel):
    message: str
    data: List[ProductOut]


class SoldOutToggle(BaseModel):
    sold_out: bool


# --------------------------
# Discount Schemas
# --------------------------
class DiscountApply(BaseModel):
    type: Literal["specific", "category", "all"] = "all"
    discount_type: Literal["percentage", "fixed"] = "percentage"
    value: float
    target_id: Optional[int] = None
    category: Optional[str] = None
    discount_end_date: Optional[datetime] = None

    @field_validator('discount_end_date')
    def to_utc(cls, value):
        return as_utc(value)


class DiscountReset(BaseModel):
    product_id: Optional[int] = None


class BlackFridayApply(BaseModel):
    discount_percentage: float = Field(..., gt=0, le=100)
    end_date: datetime

    @field_validator('end_date')
    def to_utc(cls, value):
        return as_utc(value)


class BlackFridayStatus(BaseModel):
    is_active: bool
    discount_percentage: Optional[float] = None
    end_date: Optional[datetime] = None


class BlackFridayResponse(BaseModel):
    message: str
    end_date: datetime
    affected_products: int
