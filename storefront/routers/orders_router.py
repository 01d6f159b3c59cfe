# storefront/routers/orders_router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.db import get_db
from storefront.schemas.order_schemas import (
    OrderCreate,
    OrderUpdate,
    OrderResponse,
    OrderListResponse,
    OrderStatsResponse,
)
from storefront.schemas.promo_code_schemas import PromoValidateRequest, PromoValidation
from storefront.schemas.response_schemas import MessageResponse
from storefront.services.notification_service import NotificationDispatcher, get_dispatcher
from storefront.services.order_service import (
    create_order,
    list_orders,
    get_order,
    get_guest_order,
    get_orders_by_email,
    get_order_stats,
    update_order,
    delete_order,
)
from storefront.services.promo_code_service import validate_promo_code
from storefront.utils.get_user import get_current_user
from storefront.utils.check_roles import require_role

router = APIRouter(prefix="/orders", tags=["Orders"])


# ---------------------------
# PLACE ORDER
# ---------------------------
@router.post("/guest", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_guest_order_route(
    data: OrderCreate,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await create_order(db, data, dispatcher)


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order_route(
    data: OrderCreate,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    current_user=Depends(get_current_user),
):
    """
    Signed-in checkout; missing name, email or phone are filled from the account.
    """
    return await create_order(db, data, dispatcher, customer=current_user)


@router.post("/validate-promo", response_model=PromoValidation)
async def validate_promo_route(data: PromoValidateRequest, db: AsyncSession = Depends(get_db)):
    return await validate_promo_code(db, data.code, data.cart_total)


# ---------------------------
# LOOKUPS
# ---------------------------
@router.get("", response_model=OrderListResponse)
@require_role(["admin"])
async def list_orders_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await list_orders(db)


@router.get("/my-orders", response_model=OrderListResponse)
async def my_orders_route(db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)):
    return await get_orders_by_email(db, current_user.email)


@router.get("/guest/{order_number}", response_model=OrderResponse)
async def guest_order_route(
    order_number: int,
    email: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await get_guest_order(db, order_number, email)


@router.get("/customer/{email}", response_model=OrderListResponse)
@require_role(["admin"])
async def customer_orders_route(email: str, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await get_orders_by_email(db, email)


@router.get("/stats/summary", response_model=OrderStatsResponse)
@require_role(["admin"])
async def order_stats_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    """
    Order counts per status and total revenue.

    total_revenue sums total_amount over every order except Cancelled ones;
    cancelled orders still appear in total_orders and orders_by_status.
    """
    return await get_order_stats(db)


@router.get("/{order_id}", response_model=OrderResponse)
@require_role(["admin"])
async def get_order_route(order_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await get_order(db, order_id)


# ---------------------------
# ADMIN CHANGES
# ---------------------------
@router.put("/{order_id}", response_model=OrderResponse)
@require_role(["admin"])
async def update_order_route(
    order_id: int,
    data: OrderUpdate,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    _user=Depends(get_current_user),
):
    return await update_order(db, order_id, data, dispatcher, _user)


@router.delete("/{order_id}", response_model=MessageResponse)
@require_role(["admin"])
async def delete_order_route(order_id: int, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return await delete_order(db, order_id, _user)
