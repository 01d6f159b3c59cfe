# storefront/services/promo_code_service.py
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import (
    BusinessRuleViolation, NotFoundError, ValidationError
)
from storefront.models.promo_code_models import PromoCode
from storefront.schemas.promo_code_schemas import (
    PromoCodeCreate, PromoCodeUpdate, PromoCodeOut, PromoValidation
)
from storefront.utils.activity_helpers import log_user_activity
from storefront.utils.datetime_utils import as_utc, utcnow

logger = logging.getLogger(__name__)

MAX_FIXED_DISCOUNT = 1_000_000


def _check_discount_value(discount_type: str, value: float):
    if discount_type == "percentage" and value > 100:
        raise BusinessRuleViolation("Percentage discount cannot exceed 100%")
    if value > MAX_FIXED_DISCOUNT:
        raise BusinessRuleViolation("Discount value exceeds maximum allowed amount")


def _check_window(start_date: datetime, end_date: datetime):
    if as_utc(end_date) <= as_utc(start_date):
        raise ValidationError("End date must be after start date")


def _format_money(value: float) -> str:
    return f"${value:g}"


# -----------------------
# VALIDATE (read-only)
# -----------------------
def check_promo_code(promo: PromoCode, cart_subtotal: Optional[float] = None,
                     now: Optional[datetime] = None) -> PromoValidation:
    """
    Decide whether a loaded promo code can be used right now.

    Raises BusinessRuleViolation for inactive, out-of-window, exhausted or
    minimum-purchase failures. Fixed codes report their flat amount; shipping
    codes report 100 and leave waiving the fee to the caller.
    """
    now = now or utcnow()

    if not promo.is_active:
        raise BusinessRuleViolation("Invalid or expired promo code")
    if not (as_utc(promo.start_date) <= now < as_utc(promo.end_date)):
        raise BusinessRuleViolation("Invalid or expired promo code")
    if promo.usage_limit is not None and promo.used_count >= promo.usage_limit:
        raise BusinessRuleViolation("Promo code has reached its usage limit")

    if cart_subtotal is not None and cart_subtotal < promo.minimum_purchase:
        raise BusinessRuleViolation(
            f"Minimum purchase of {_format_money(promo.minimum_purchase)} required"
        )

    if promo.discount_type == "percentage":
        discount = promo.discount_value
        message = f"{promo.discount_value:g}% discount applied"
    elif promo.discount_type == "fixed":
        discount = promo.discount_value
        message = f"{_format_money(promo.discount_value)} discount applied"
    else:
        discount = 100
        message = "Free shipping applied"

    return PromoValidation(
        valid=True,
        discount=discount,
        type=promo.discount_type,
        minimum_purchase=promo.minimum_purchase,
        message=message,
    )


async def get_promo_by_code(db: AsyncSession, code: str) -> Optional[PromoCode]:
    result = await db.execute(select(PromoCode).where(PromoCode.code == code.strip().upper()))
    return result.scalars().first()


async def validate_promo_code(db: AsyncSession, code: Optional[str],
                              cart_subtotal: Optional[float] = None) -> PromoValidation:
    if not code or not code.strip():
        raise ValidationError("Promo code is required")

    promo = await get_promo_by_code(db, code)
    if not promo:
        raise NotFoundError("Invalid or expired promo code")

    return check_promo_code(promo, cart_subtotal)


# -----------------------
# REDEEM
# -----------------------
async def redeem_promo_code(db: AsyncSession, code: str) -> None:
    """
    Count one use of a promo code, only while it is still under its limit.

    Single conditional UPDATE: two orders racing for the last use cannot both
    pass. Runs inside the caller's transaction.
    """
    now = utcnow()
    result = await db.execute(
        update(PromoCode)
        .where(
            PromoCode.code == code.strip().upper(),
            PromoCode.is_active == True,
            PromoCode.start_date <= now,
            PromoCode.end_date > now,
            or_(PromoCode.usage_limit.is_(None), PromoCode.used_count < PromoCode.usage_limit),
        )
        .values(used_count=PromoCode.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise BusinessRuleViolation("Promo code is no longer available")


# -----------------------
# ADMIN CRUD
# -----------------------
async def list_promo_codes(db: AsyncSession):
    result = await db.execute(select(PromoCode).order_by(PromoCode.created_at.desc(), PromoCode.id.desc()))
    return {
        "message": "Promo codes fetched successfully",
        "data": [PromoCodeOut.model_validate(p) for p in result.scalars().all()],
    }


async def create_promo_code(db: AsyncSession, payload: PromoCodeCreate, _user=None) -> PromoCodeOut:
    start_date = payload.start_date or utcnow()
    _check_window(start_date, payload.end_date)
    _check_discount_value(payload.discount_type, payload.discount_value)

    if await get_promo_by_code(db, payload.code):
        raise ValidationError("Promo code already exists")

    promo = PromoCode(**payload.model_dump(exclude={"start_date"}), start_date=start_date, used_count=0)
    db.add(promo)
    try:
        await db.flush()
        await log_user_activity(db, _user, f"Created promo code '{promo.code}'")
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValidationError("Promo code already exists")

    await db.refresh(promo)
    logger.info("Promo code %s created", promo.code)
    return PromoCodeOut.model_validate(promo)


async def update_promo_code(db: AsyncSession, promo_id: int, payload: PromoCodeUpdate, _user=None) -> PromoCodeOut:
    promo = await db.get(PromoCode, promo_id)
    if not promo:
        raise NotFoundError("Promo code not found")

    update_data = payload.model_dump(exclude_unset=True)
    # only usage_limit may be cleared explicitly
    update_data = {k: v for k, v in update_data.items() if v is not None or k == "usage_limit"}

    start_date = update_data.get("start_date", promo.start_date)
    end_date = update_data.get("end_date", promo.end_date)
    _check_window(start_date, end_date)

    dtype = update_data.get("discount_type", promo.discount_type)
    dval = update_data.get("discount_value", promo.discount_value)
    _check_discount_value(dtype, dval)

    if "code" in update_data and update_data["code"] != promo.code:
        existing = await get_promo_by_code(db, update_data["code"])
        if existing:
            raise ValidationError("Promo code already exists")

    for key, value in update_data.items():
        setattr(promo, key, value)

    await log_user_activity(db, _user, f"Updated promo code '{promo.code}' (ID: {promo.id})")
    await db.commit()
    await db.refresh(promo)
    return PromoCodeOut.model_validate(promo)


async def delete_promo_code(db: AsyncSession, promo_id: int, _user=None):
    promo = await db.get(PromoCode, promo_id)
    if not promo:
        raise NotFoundError("Promo code not found")

    await db.delete(promo)
    await log_user_activity(db, _user, f"Deleted promo code '{promo.code}' (ID: {promo.id})")
    await db.commit()
    return {"message": "Promo code deleted successfully"}
