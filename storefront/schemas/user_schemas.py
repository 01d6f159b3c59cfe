# storefront/schemas/user_schemas.py
from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime

class UserLogin(BaseModel):
    username: str
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"

class UserBase(BaseModel):
    username: str
    role: str = "user"
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    phone_number: Optional[str] = None

class UserCreate(UserBase):
    password: str

class UserOut(UserBase):
    id: int
    is_active: bool
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserResponse(BaseModel):
    message: str
    data: Optional[UserOut] = None

class FcmTokenUpdate(BaseModel):
    fcm_token: str
