# storefront/routers/auth_router.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.db import get_db
from storefront.schemas.user_schemas import UserLogin, TokenResponse
from storefront.services.auth_service import login

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=TokenResponse, status_code=status.HTTP_200_OK)
async def login_route(data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate user and issue an access token."""
    access_token = await login(db, data.username, data.password)
    return TokenResponse(access_token=access_token, token_type="bearer")
