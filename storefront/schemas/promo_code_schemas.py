from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional
from datetime import datetime

from storefront.utils.datetime_utils import as_utc

PromoType = Literal["percentage", "fixed", "shipping"]


class PromoCodeBase(BaseModel):
    code: str
    description: str
    discount_type: PromoType
    discount_value: float = Field(..., ge=0)
    minimum_purchase: float = Field(default=0, ge=0)
    start_date: Optional[datetime] = None
    end_date: datetime
    usage_limit: Optional[int] = Field(default=None, ge=0)
    is_active: bool = True

    @field_validator('code')
    def upper_code(cls, value):
        value = value.strip().upper()
        if not value:
            raise ValueError('Promo code is required')
        return value

    @field_validator('start_date', 'end_date')
    def to_utc(cls, value):
        return as_utc(value)


class PromoCodeCreate(PromoCodeBase):
    pass


class PromoCodeUpdate(BaseModel):
    code: Optional[str] = None
    description: Optional[str] = None
    discount_type: Optional[PromoType] = None
    discount_value: Optional[float] = Field(default=None, ge=0)
    minimum_purchase: Optional[float] = Field(default=None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    usage_limit: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None

    @field_validator('code')
    def upper_code(cls, value):
        if value is None:
            return value
        value = value.strip().upper()
        if not value:
            raise ValueError('Promo code is required')
        return value

    @field_validator('start_date', 'end_date')
    def to_utc(cls, value):
        return as_utc(value)


class PromoCodeOut(BaseModel):
    id: int
    code: str
    description: str
    discount_type: str
    discount_value: float
    minimum_purchase: float
    start_date: datetime
    end_date: datetime
    usage_limit: Optional[int] = None
    used_count: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PromoCodeListResponse(BaseModel):
    message: str
    data: List[PromoCodeOut]


class PromoValidateRequest(BaseModel):
    code: Optional[str] = None
    cart_total: Optional[float] = Field(default=None, ge=0)


class PromoValidation(BaseModel):
    valid: bool
    discount: float
    type: str
    minimum_purchase: float
    message: str
