# storefront/routers/users_router.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.db import get_db
from storefront.schemas.user_schemas import UserCreate, UserResponse, FcmTokenUpdate
from storefront.schemas.response_schemas import MessageResponse
from storefront.services.user_service import create_user, set_fcm_token, clear_fcm_token
from storefront.utils.get_user import get_current_user
from storefront.utils.check_roles import require_role

router = APIRouter(prefix="/users", tags=["Users"])


# ---------------------------
# CREATE USER
# ---------------------------
@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@require_role(["admin"])
async def create_user_route(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    new_user = await create_user(db, user_data, _user)
    return {"message": f"User '{new_user.username}' created successfully.", "data": new_user}


# ---------------------------
# DEVICE TOKEN
# ---------------------------
@router.put("/fcm-token", response_model=MessageResponse)
async def register_fcm_token_route(
    data: FcmTokenUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    await set_fcm_token(db, current_user, data.fcm_token)
    return {"message": "FCM token updated successfully"}


@router.delete("/fcm-token", response_model=MessageResponse)
async def remove_fcm_token_route(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    await clear_fcm_token(db, current_user)
    return {"message": "FCM token removed successfully"}
