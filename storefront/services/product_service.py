# storefront/services/product_service.py
import logging
from typing import List, Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import (
    BusinessRuleViolation, NotFoundError, ValidationError
)
from storefront.models.product_models import Product
from storefront.schemas.product_schemas import (
    ProductCreate, ProductUpdate, ProductOut, DiscountApply, BlackFridayApply
)
from storefront.services import discount_engine
from storefront.utils.activity_helpers import log_user_activity
from storefront.utils.datetime_utils import as_utc, utcnow

logger = logging.getLogger(__name__)

BEST_SELLING_LIMIT = 8


async def refresh_discount_state(db: AsyncSession, products: List[Product]) -> List[Product]:
    """
    Run the expiry policy on freshly loaded products and persist any resets.
    """
    now = utcnow()
    expired = [p for p in products if discount_engine.apply_expiry_policy(p, now)]
    if expired:
        logger.info("Reset expired discounts on %d product(s): %s", len(expired), [p.id for p in expired])
        await db.commit()
        for product in expired:
            await db.refresh(product)
    return products


async def _load_visible(db: AsyncSession, product_id: int) -> Product:
    result = await db.execute(
        select(Product).where(Product.id == product_id, Product.hidden == False)
    )
    product = result.scalars().first()
    if not product:
        raise NotFoundError("Product not found")
    return product


# ---------------------------------------------------
# READ
# ---------------------------------------------------
async def get_all_products(db: AsyncSession) -> dict:
    result = await db.execute(
        select(Product).where(Product.hidden == False).order_by(Product.created_at.desc(), Product.id.desc())
    )
    products = await refresh_discount_state(db, list(result.scalars().all()))
    return {
        "message": "Products fetched successfully",
        "data": [ProductOut.model_validate(p) for p in products],
    }


async def get_best_selling(db: AsyncSession) -> dict:
    result = await db.execute(
        select(Product)
        .where(Product.hidden == False)
        .order_by(Product.sales_count.desc(), Product.id)
        .limit(BEST_SELLING_LIMIT)
    )
    products = await refresh_discount_state(db, list(result.scalars().all()))
    return {
        "message": "Best selling products fetched successfully",
        "data": [ProductOut.model_validate(p) for p in products],
    }


async def search_products(db: AsyncSession, q: Optional[str]) -> dict:
    if not q or not q.strip():
        raise ValidationError("Search query is required")
    pattern = f"%{q.strip()}%"
    result = await db.execute(
        select(Product).where(
            Product.hidden == False,
            or_(
                Product.name.ilike(pattern),
                Product.description.ilike(pattern),
                Product.category.ilike(pattern),
            ),
        )
    )
    products = await refresh_discount_state(db, list(result.scalars().all()))
    return {
        "message": f"{len(products)} products found",
        "data": [ProductOut.model_validate(p) for p in products],
    }


async def get_product(db: AsyncSession, product_id: int) -> dict:
    product = await _load_visible(db, product_id)
    await refresh_discount_state(db, [product])
    return {"message": "Product fetched successfully", "data": ProductOut.model_validate(product)}


# ---------------------------------------------------
# WRITE
# ---------------------------------------------------
async def create_product(db: AsyncSession, data: ProductCreate, _user=None) -> dict:
    product = Product(**data.model_dump())
    db.add(product)
    await db.flush()

    await log_user_activity(db, _user, f"Created product '{product.name}' (ID: {product.id})")
    await db.commit()
    await db.refresh(product)
    return {"message": "Product created successfully", "data": ProductOut.model_validate(product)}


async def update_product(db: AsyncSession, product_id: int, data: ProductUpdate, _user=None) -> dict:
    product = await db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")

    changes = []
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        old_val = getattr(product, key)
        if old_val != value:
            changes.append(f"{key}: {old_val} → {value}")
            setattr(product, key, value)

    # a price edit on a discounted product moves the pre-discount price
    if "price" in data.model_fields_set and product.original_price is not None and data.price is not None:
        product.original_price = data.price
        product.price = discount_engine.discounted_price(
            data.price, product.discount_percentage, product.discount_type
        )

    if changes:
        await log_user_activity(
            db, _user, f"Updated product '{product.name}' (ID: {product.id}): {', '.join(changes)}"
        )
    await db.commit()
    await db.refresh(product)
    return {"message": "Product updated successfully", "data": ProductOut.model_validate(product)}


async def delete_product(db: AsyncSession, product_id: int, _user=None) -> dict:
    product = await db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")

    await db.delete(product)
    await log_user_activity(db, _user, f"Deleted product '{product.name}' (ID: {product.id})")
    await db.commit()
    return {"message": "Product deleted successfully"}


async def toggle_sold_out(db: AsyncSession, product_id: int, sold_out: bool, _user=None) -> dict:
    product = await db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")

    product.sold_out = sold_out
    await db.commit()
    await db.refresh(product)
    return {"message": "Product updated successfully", "data": ProductOut.model_validate(product)}


# ---------------------------------------------------
# DISCOUNTS
# ---------------------------------------------------
async def _select_targets(db: AsyncSession, payload: DiscountApply) -> List[Product]:
    if payload.type == "specific":
        if payload.target_id is None:
            raise ValidationError("target_id is required for a specific product discount")
        product = await db.get(Product, payload.target_id)
        return [product] if product else []

    result = await db.execute(select(Product).order_by(Product.id))
    products = list(result.scalars().all())
    if payload.type == "category":
        if not payload.category:
            raise ValidationError("category is required for a category discount")
        products = [
            p for p in products
            if p.category == payload.category or payload.category in (p.categories or [])
        ]
    return products


async def apply_discount(db: AsyncSession, payload: DiscountApply, _user=None) -> dict:
    """
    Apply a percentage or fixed discount to one product, a category, or the whole catalog.

    The pre-discount price is kept in original_price (seeded from price the
    first time), so stacking a new discount always starts from the real price.
    """
    if payload.value is None or payload.value <= 0:
        raise ValidationError("Invalid discount value")
    if payload.discount_type == "percentage" and payload.value > 100:
        raise BusinessRuleViolation("Percentage discount cannot exceed 100%")
    if payload.discount_end_date is not None and as_utc(payload.discount_end_date) <= utcnow():
        raise ValidationError("Discount end date must be in the future")

    products = await _select_targets(db, payload)
    if not products:
        raise NotFoundError("No products found to update")

    for product in products:
        original_price = product.original_price or product.price
        product.original_price = original_price
        product.price = discount_engine.discounted_price(original_price, payload.value, payload.discount_type)
        product.discount_percentage = payload.value
        product.discount_type = payload.discount_type
        product.discount_end_date = payload.discount_end_date

    await log_user_activity(
        db, _user,
        f"Applied {payload.value:g} {payload.discount_type} discount to {len(products)} product(s) ({payload.type})"
    )
    await db.commit()
    for product in products:
        await db.refresh(product)

    logger.info("Discount %s/%s applied to %d products", payload.discount_type, payload.value, len(products))
    return {
        "message": "Discount applied successfully",
        "data": [ProductOut.model_validate(p) for p in products],
    }


async def reset_discount(db: AsyncSession, product_id: Optional[int] = None, _user=None) -> dict:
    if product_id is not None:
        product = await db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found")
        products = [product]
    else:
        result = await db.execute(select(Product).order_by(Product.id))
        products = list(result.scalars().all())

    for product in products:
        for key, value in discount_engine.reset_changes(product).items():
            setattr(product, key, value)

    await log_user_activity(db, _user, f"Reset discounts on {len(products)} product(s)")
    await db.commit()
    for product in products:
        await db.refresh(product)

    return {
        "message": "Discount reset successfully",
        "data": [ProductOut.model_validate(p) for p in products],
    }


async def get_black_friday_status(db: AsyncSession) -> dict:
    result = await db.execute(
        select(Product).where(
            Product.is_black_friday_deal == True,
            Product.discount_end_date > utcnow(),
            Product.hidden == False,
        )
    )
    product = result.scalars().first()
    if not product:
        return {"is_active": False}
    return {
        "is_active": True,
        "discount_percentage": product.discount_percentage,
        "end_date": as_utc(product.discount_end_date),
    }


async def apply_black_friday(db: AsyncSession, payload: BlackFridayApply, _user=None) -> dict:
    if as_utc(payload.end_date) <= utcnow():
        raise ValidationError("End date must be in the future")

    result = await db.execute(select(Product))
    products = list(result.scalars().all())
    for product in products:
        original_price = product.original_price or product.price
        product.original_price = original_price
        product.price = discount_engine.discounted_price(original_price, payload.discount_percentage, "percentage")
        product.discount_percentage = payload.discount_percentage
        product.discount_type = "percentage"
        product.discount_end_date = payload.end_date
        product.is_black_friday_deal = True

    await log_user_activity(
        db, _user, f"Applied Black Friday discount of {payload.discount_percentage:g}% to {len(products)} product(s)"
    )
    await db.commit()
    return {
        "message": "Black Friday discount applied successfully",
        "end_date": payload.end_date,
        "affected_products": len(products),
    }
