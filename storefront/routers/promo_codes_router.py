# storefront/routers/promo_codes_router.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.db import get_db
from storefront.schemas.promo_code_schemas import (
    PromoCodeCreate,
    PromoCodeUpdate,
    PromoCodeOut,
    PromoCodeListResponse,
    PromoValidateRequest,
    PromoValidation,
)
from storefront.schemas.response_schemas import MessageResponse
from storefront.services.promo_code_service import (
    list_promo_codes,
    create_promo_code,
    update_promo_code,
    delete_promo_code,
    validate_promo_code,
)
from storefront.utils.get_user import get_current_user
from storefront.utils.check_roles import require_role

router = APIRouter(prefix="/promo-codes", tags=["Promo Codes"])


@router.get("", response_model=PromoCodeListResponse)
@require_role(["admin"])
async def list_promo_codes_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await list_promo_codes(db)


@router.post("", response_model=PromoCodeOut, status_code=status.HTTP_201_CREATED)
@require_role(["admin"])
async def create_promo_code_route(
    data: PromoCodeCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return await create_promo_code(db, data, _user)


@router.post("/validate", response_model=PromoValidation)
async def validate_promo_code_route(data: PromoValidateRequest, db: AsyncSession = Depends(get_db)):
    """
    Check a code against its window, usage limit and, when cart_total is sent, its minimum purchase.
    """
    return await validate_promo_code(db, data.code, data.cart_total)


@router.put("/{promo_id}", response_model=PromoCodeOut)
@require_role(["admin"])
async def update_promo_code_route(
    promo_id: int,
    data: PromoCodeUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return await update_promo_code(db, promo_id, data, _user)


@router.delete("/{promo_id}", response_model=MessageResponse)
@require_role(["admin"])
async def delete_promo_code_route(
    promo_id: int,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return await delete_promo_code(db, promo_id, _user)
