# storefront/routers/products_router.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from storefront.core.db import get_db
from storefront.services.product_service import (
    create_product,
    get_all_products,
    get_best_selling,
    search_products,
    get_product,
    update_product,
    delete_product,
    toggle_sold_out,
    apply_discount,
    reset_discount,
    get_black_friday_status,
    apply_black_friday,
)
from storefront.schemas.product_schemas import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
    SoldOutToggle,
    DiscountApply,
    DiscountReset,
    BlackFridayApply,
    BlackFridayStatus,
    BlackFridayResponse,
)
from storefront.schemas.response_schemas import MessageResponse
from storefront.utils.get_user import get_current_user
from storefront.utils.check_roles import require_role

router = APIRouter(prefix="/products", tags=["Products"])


# -----------------------------------------------------------
# PUBLIC CATALOG
# -----------------------------------------------------------
@router.get("", response_model=ProductListResponse)
async def list_products(db: AsyncSession = Depends(get_db)):
    """
    List visible products, newest first. Expired discounts are reset on the way out.
    """
    return await get_all_products(db)


@router.get("/best-selling", response_model=ProductListResponse)
async def best_selling_route(db: AsyncSession = Depends(get_db)):
    return await get_best_selling(db)


@router.get("/search", response_model=ProductListResponse)
async def search_route(q: Optional[str] = Query(None), db: AsyncSession = Depends(get_db)):
    return await search_products(db, q)


# -----------------------------------------------------------
# BLACK FRIDAY
# -----------------------------------------------------------
@router.get("/black-friday", response_model=BlackFridayStatus)
async def black_friday_status_route(db: AsyncSession = Depends(get_db)):
    return await get_black_friday_status(db)


@router.post("/black-friday", response_model=BlackFridayResponse)
@require_role(["admin"])
async def black_friday_route(
    data: BlackFridayApply,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return await apply_black_friday(db, data, _user)


# -----------------------------------------------------------
# DISCOUNTS
# -----------------------------------------------------------
@router.post("/discount", response_model=ProductListResponse)
@require_role(["admin"])
async def apply_discount_route(
    data: DiscountApply,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    """
    Apply a discount to one product, a category, or every product.
    """
    return await apply_discount(db, data, _user)


@router.post("/reset-discount", response_model=ProductListResponse)
@require_role(["admin"])
async def reset_discount_route(
    data: DiscountReset,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return await reset_discount(db, data.product_id, _user)


# -----------------------------------------------------------
# CREATE PRODUCT
# -----------------------------------------------------------
@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
@require_role(["admin"])
async def create_product_route(
    data: ProductCreate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return await create_product(db, data, _user)


# -----------------------------------------------------------
# SINGLE PRODUCT
# -----------------------------------------------------------
@router.get("/{product_id}", response_model=ProductResponse)
async def get_product_by_id(product_id: int, db: AsyncSession = Depends(get_db)):
    return await get_product(db, product_id)


@router.put("/{product_id}", response_model=ProductResponse)
@require_role(["admin"])
async def update_product_route(
    product_id: int,
    data: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return await update_product(db, product_id, data, _user)


@router.delete("/{product_id}", response_model=MessageResponse)
@require_role(["admin"])
async def delete_product_route(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return await delete_product(db, product_id, _user)


@router.put("/{product_id}/toggle-sold-out", response_model=ProductResponse)
@require_role(["admin"])
async def toggle_sold_out_route(
    product_id: int,
    data: SoldOutToggle,
    db: AsyncSession = Depends(get_db),
    _user=Depends(get_current_user),
):
    return await toggle_sold_out(db, product_id, data.sold_out, _user)
