# storefront/services/order_service.py
import logging
from typing import Optional, Tuple

from fastapi import HTTPException
from sqlalchemy import select, update, func, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.core.config import DEFAULT_SHIPPING_FEE, ORDER_COUNTER_NAME
from storefront.core.exceptions import (
    NotFoundError, PersistenceFailure, ValidationError
)
from storefront.models.order_models import Order, OrderItem, OrderStatus, ORDER_STATUSES
from storefront.models.product_models import Product
from storefront.models.user_models import User
from storefront.schemas.order_schemas import OrderCreate, OrderUpdate, OrderOut, PromoDiscount
from storefront.services.counter_service import next_sequence
from storefront.services.notification_service import NotificationDispatcher, NEW_ORDER, STATUS_UPDATE
from storefront.services.promo_code_service import validate_promo_code, redeem_promo_code
from storefront.utils.activity_helpers import log_user_activity

logger = logging.getLogger(__name__)


# ---------------------------------------------------
# TOTALS
# ---------------------------------------------------
def _promo_parts(promo) -> Tuple[Optional[str], float]:
    if promo is None:
        return None, 0.0
    if isinstance(promo, dict):
        return promo.get("type"), float(promo.get("value") or 0)
    return promo.type, float(promo.value or 0)


def promo_discount_amount(subtotal: float, promo) -> float:
    """
    Money taken off the subtotal: a percentage of it, or a flat amount capped at it.
    """
    promo_type, value = _promo_parts(promo)
    if promo_type == "percentage":
        return subtotal * min(value, 100) / 100
    if promo_type == "fixed":
        return min(value, subtotal)
    return 0.0


def compute_total(subtotal: float, promo, shipping_fee: float) -> float:
    total = subtotal - promo_discount_amount(subtotal, promo) + shipping_fee
    return max(0.0, round(total, 2))


# ---------------------------------------------------
# HELPERS
# ---------------------------------------------------
def _order_query():
    return select(Order).options(
        selectinload(Order.items).selectinload(OrderItem.product)
    )


async def _load_order(db: AsyncSession, order_id: int) -> Order:
    result = await db.execute(
        _order_query().where(Order.id == order_id).execution_options(populate_existing=True)
    )
    order = result.scalars().first()
    if not order:
        raise NotFoundError("Order not found")
    return order


async def _adjust_sales_counts(db: AsyncSession, items, sign: int):
    """
    Move sales_count by each line's quantity, one product at a time.

    Each step commits on its own; a failure is logged and the loop moves on.
    Decrements never take a count below zero.
    """
    for product_id, quantity in items:
        if product_id is None:
            continue
        if sign > 0:
            new_value = Product.sales_count + quantity
        else:
            new_value = case(
                (Product.sales_count >= quantity, Product.sales_count - quantity),
                else_=0,
            )
        try:
            await db.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(sales_count=new_value)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Failed to update sales count of product %s by %+d", product_id, sign * quantity)


async def _notify(db: AsyncSession, dispatcher: Optional[NotificationDispatcher], event_type: str, order: Order):
    if dispatcher is None:
        return
    try:
        await dispatcher.notify(db, event_type, order)
    except Exception:
        logger.exception("Notification %s for order #%s failed", event_type, order.order_id)


def _out(order: Order) -> OrderOut:
    return OrderOut.model_validate(order)


# ---------------------------------------------------
# CREATE
# ---------------------------------------------------
async def create_order(db: AsyncSession, payload: OrderCreate,
                       dispatcher: Optional[NotificationDispatcher] = None,
                       customer: Optional[User] = None) -> dict:
    """
    Build, number and persist an order, then bump sales counts and notify admins.

    Line prices and the subtotal are taken from the request as submitted.
    The counter increment, promo redemption and order rows share one
    transaction, so a failure in any of them writes nothing.
    """
    if not payload.products:
        raise ValidationError("No products in order")

    customer_name = payload.customer_name
    customer_email = payload.customer_email
    phone_number = payload.phone_number
    if customer is not None:
        customer_name = customer_name or customer.name or customer.username
        customer_email = customer_email or customer.email
        phone_number = phone_number or customer.phone_number

    if not customer_name or not phone_number or not payload.address:
        raise ValidationError("Missing customer information")
    customer_email = customer_email.lower() if customer_email else None

    product_ids = {item.product for item in payload.products}
    result = await db.execute(select(Product.id).where(Product.id.in_(list(product_ids))))
    found = set(result.scalars().all())
    for item in payload.products:
        if item.product not in found:
            raise ValidationError(f"Product {item.product} not found")

    shipping_fee = payload.shipping_fee if payload.shipping_fee is not None else DEFAULT_SHIPPING_FEE
    promo_code = payload.promo_code.upper() if payload.promo_code else None
    promo_discount = payload.promo_discount

    if promo_code:
        validation = await validate_promo_code(db, promo_code, payload.subtotal)
        if validation.type == "shipping":
            shipping_fee = 0
            promo_discount = None
        elif promo_discount is None:
            promo_discount = PromoDiscount(type=validation.type, value=validation.discount)

    promo_type, promo_value = _promo_parts(promo_discount)

    try:
        if promo_code:
            await redeem_promo_code(db, promo_code)

        order = Order(
            order_id=await next_sequence(db, ORDER_COUNTER_NAME),
            subtotal=payload.subtotal,
            promo_code=promo_code,
            promo_discount_type=promo_type,
            promo_discount_value=promo_value if promo_type else None,
            shipping_fee=shipping_fee,
            total_amount=compute_total(payload.subtotal, promo_discount, shipping_fee),
            customer_name=customer_name,
            customer_email=customer_email,
            phone_number=phone_number,
            address=payload.address,
            special_instructions=payload.special_instructions or "",
            status=OrderStatus.pending.value,
            items=[
                OrderItem(
                    product_id=item.product,
                    quantity=item.quantity,
                    price=item.price,
                    selected_color=item.selected_color or "",
                    selected_size=item.selected_size or "",
                )
                for item in payload.products
            ],
        )
        db.add(order)
        await db.commit()
    except HTTPException:
        await db.rollback()
        raise
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to persist order for %s", customer_name)
        raise PersistenceFailure("Failed to create order")

    logger.info("Order #%s created (total %.2f)", order.order_id, order.total_amount)

    await _adjust_sales_counts(db, [(i.product, i.quantity) for i in payload.products], sign=1)

    order = await _load_order(db, order.id)
    await _notify(db, dispatcher, NEW_ORDER, order)

    return {"message": "Order placed successfully!", "data": _out(order)}


# ---------------------------------------------------
# READ
# ---------------------------------------------------
async def list_orders(db: AsyncSession) -> dict:
    result = await db.execute(_order_query().order_by(Order.created_at.desc(), Order.id.desc()))
    orders = result.scalars().all()
    return {"message": f"{len(orders)} orders fetched successfully", "data": [_out(o) for o in orders]}


async def get_order(db: AsyncSession, order_id: int) -> dict:
    order = await _load_order(db, order_id)
    return {"message": "Order fetched successfully", "data": _out(order)}


async def get_guest_order(db: AsyncSession, order_number: int, email: Optional[str]) -> dict:
    """Guests look an order up by its display number and the email it was placed with."""
    if not email:
        raise ValidationError("Email is required")
    result = await db.execute(
        _order_query().where(
            Order.order_id == order_number,
            func.lower(Order.customer_email) == email.strip().lower(),
        )
    )
    order = result.scalars().first()
    if not order:
        raise NotFoundError("Order not found")
    return {"message": "Order fetched successfully", "data": _out(order)}


async def get_orders_by_email(db: AsyncSession, email: Optional[str]) -> dict:
    if not email:
        return {"message": "0 orders fetched successfully", "data": []}
    result = await db.execute(
        _order_query()
        .where(func.lower(Order.customer_email) == email.strip().lower())
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    orders = result.scalars().all()
    return {"message": f"{len(orders)} orders fetched successfully", "data": [_out(o) for o in orders]}


async def get_order_stats(db: AsyncSession) -> dict:
    """Counts per status; revenue leaves out Cancelled orders."""
    result = await db.execute(
        select(Order.status, func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0))
        .group_by(Order.status)
    )
    orders_by_status = {status: 0 for status in ORDER_STATUSES}
    total_orders = 0
    total_revenue = 0.0
    for status, count, revenue in result.all():
        orders_by_status[status] = count
        total_orders += count
        if status != OrderStatus.cancelled.value:
            total_revenue += float(revenue)

    return {
        "total_orders": total_orders,
        "total_revenue": round(total_revenue, 2),
        "orders_by_status": orders_by_status,
    }


# ---------------------------------------------------
# UPDATE / DELETE
# ---------------------------------------------------
async def update_order(db: AsyncSession, order_id: int, patch: OrderUpdate,
                       dispatcher: Optional[NotificationDispatcher] = None, _user=None) -> dict:
    order = await _load_order(db, order_id)

    if patch.status is not None and patch.status not in ORDER_STATUSES:
        raise ValidationError("Invalid status")

    previous_status = order.status
    fields = patch.model_fields_set

    if patch.status is not None:
        order.status = patch.status
    if "shipping_fee" in fields and patch.shipping_fee is not None:
        order.shipping_fee = patch.shipping_fee
    if "subtotal" in fields and patch.subtotal is not None:
        order.subtotal = patch.subtotal
    if "promo_code" in fields:
        order.promo_code = patch.promo_code.upper() if patch.promo_code else None
    if "promo_discount" in fields:
        promo_type, promo_value = _promo_parts(patch.promo_discount)
        order.promo_discount_type = promo_type
        order.promo_discount_value = promo_value if promo_type else None
    for key in ("special_instructions", "address", "phone_number"):
        if key in fields and getattr(patch, key) is not None:
            setattr(order, key, getattr(patch, key))

    if fields & {"shipping_fee", "subtotal", "promo_discount"}:
        order.total_amount = compute_total(order.subtotal, order.promo_discount, order.shipping_fee)

    await log_user_activity(db, _user, f"Updated order #{order.order_id} (status: {order.status})")
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to update order %s", order_id)
        raise PersistenceFailure("Failed to update order")

    order = await _load_order(db, order_id)
    if previous_status != order.status:
        logger.info("Order #%s status %s -> %s", order.order_id, previous_status, order.status)
        await _notify(db, dispatcher, STATUS_UPDATE, order)

    return {"message": "Order updated successfully!", "data": _out(order)}


async def delete_order(db: AsyncSession, order_id: int, _user=None) -> dict:
    order = await _load_order(db, order_id)
    number = order.order_id
    lines = [(item.product_id, item.quantity) for item in order.items]

    await _adjust_sales_counts(db, lines, sign=-1)

    order = await _load_order(db, order_id)
    await db.delete(order)
    await log_user_activity(db, _user, f"Deleted order #{number}")
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to delete order %s", order_id)
        raise PersistenceFailure("Failed to delete order")

    return {"message": "Order deleted successfully!"}
