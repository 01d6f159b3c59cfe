# storefront/services/user_service.py
import logging
from typing import List

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.core.exceptions import ValidationError
from storefront.core.security import hash_password
from storefront.models.user_models import User
from storefront.schemas.user_schemas import UserCreate
from storefront.utils.activity_helpers import log_user_activity

logger = logging.getLogger(__name__)

ALLOWED_ROLES = {"admin", "user"}


# ---------------------------
# CREATE USER
# ---------------------------
async def create_user(db: AsyncSession, user_data: UserCreate, current_user=None) -> User:
    """
    Create a new user and log the activity in a single transaction.
    """
    try:
        existing = await db.execute(select(User).where(User.username == user_data.username))
        if existing.scalars().first():
            raise ValidationError("Username already exists")

        if user_data.email:
            existing = await db.execute(select(User).where(User.email == user_data.email))
            if existing.scalars().first():
                raise ValidationError("Email already registered")

        if user_data.role not in ALLOWED_ROLES:
            raise ValidationError(f"Role must be one of {sorted(ALLOWED_ROLES)}")

        if len(user_data.password) < 6:
            raise ValidationError("Password must be at least 6 characters")

        new_user = User(
            username=user_data.username,
            email=user_data.email,
            name=user_data.name,
            phone_number=user_data.phone_number,
            password_hash=hash_password(user_data.password),
            role=user_data.role,
        )
        db.add(new_user)
        await db.flush()

        await log_user_activity(
            db,
            current_user,
            f"Created {new_user.role} with username {new_user.username} and user id {new_user.id}",
        )

        await db.commit()
        await db.refresh(new_user)
        return new_user

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.exception("Error creating user %s", user_data.username)
        raise HTTPException(status_code=500, detail=f"Error creating user: {e}")


# ---------------------------
# DEVICE TOKENS
# ---------------------------
async def set_fcm_token(db: AsyncSession, user: User, fcm_token: str) -> User:
    token = (fcm_token or "").strip()
    if not token:
        raise ValidationError("FCM token is required")

    user.fcm_token = token
    await db.commit()
    await db.refresh(user)
    logger.info("Registered device token for user %s", user.username)
    return user


async def clear_fcm_token(db: AsyncSession, user: User) -> User:
    user.fcm_token = None
    await db.commit()
    await db.refresh(user)
    return user


async def get_admin_device_tokens(db: AsyncSession) -> List[str]:
    """Device tokens of every admin that registered one, read fresh each call."""
    result = await db.execute(
        select(User.fcm_token).where(
            User.role == "admin",
            User.is_active == True,
            User.fcm_token.is_not(None),
            User.fcm_token != "",
        )
    )
    return [token for token in result.scalars().all()]
