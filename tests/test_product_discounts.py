from datetime import timedelta

import pytest
from sqlalchemy import insert, select

from storefront.core.exceptions import BusinessRuleViolation, NotFoundError, ValidationError
from storefront.models.product_models import Product
from storefront.schemas.product_schemas import BlackFridayApply, DiscountApply, ProductCreate, ProductUpdate
from storefront.services.product_service import (
    apply_black_friday,
    apply_discount,
    create_product,
    get_all_products,
    get_best_selling,
    get_black_friday_status,
    get_product,
    reset_discount,
    search_products,
    update_product,
)
from storefront.utils.datetime_utils import utcnow


async def insert_raw_product(db, **values):
    # bypasses the save hook so an already-expired discount can be stored
    row = dict(
        name="Wool Coat", description="Warm", price=80.0, category="coats",
        categories=["coats"], colors=[], sizes=[], images=[],
        discount_percentage=0, discount_type="percentage", is_black_friday_deal=False,
        sales_count=0, stock=3, sold_out=False, hidden=False, rating=4, review_count=0,
    )
    row.update(values)
    result = await db.execute(insert(Product).values(**row).returning(Product.id))
    product_id = result.scalar_one()
    await db.commit()
    return product_id


class TestExpiryOnLoad:
    async def test_expired_discount_reset_when_listed(self, db):
        product_id = await insert_raw_product(
            db, price=80.0, original_price=100.0, discount_percentage=20,
            discount_end_date=utcnow() - timedelta(hours=1), is_black_friday_deal=True,
        )

        response = await get_all_products(db)

        listed = response["data"][0]
        assert listed.price == 100.0
        assert listed.original_price is None
        assert listed.discount_percentage == 0
        assert listed.has_active_discount is False
        assert listed.is_black_friday_deal is False

        stored = (await db.execute(select(Product.price, Product.original_price).where(Product.id == product_id))).one()
        assert tuple(stored) == (100.0, None)

    async def test_running_discount_kept(self, db):
        await insert_raw_product(
            db, price=80.0, original_price=100.0, discount_percentage=20,
            discount_end_date=utcnow() + timedelta(days=1),
        )

        listed = (await get_all_products(db))["data"][0]

        assert listed.has_active_discount is True
        assert listed.current_price == 80.0
        assert listed.discount_amount == pytest.approx(20.0)

    async def test_expired_discount_reset_on_single_fetch(self, db):
        product_id = await insert_raw_product(
            db, price=45.0, original_price=50.0, discount_percentage=10,
            discount_end_date=utcnow() - timedelta(days=2),
        )

        fetched = (await get_product(db, product_id))["data"]

        assert fetched.price == 50.0


class TestExpiryOnSave:
    async def test_expired_discount_reset_on_insert(self, db, make_product):
        product = await make_product(
            price=80.0, original_price=100.0, discount_percentage=20,
            discount_end_date=utcnow() - timedelta(hours=1), is_black_friday_deal=True,
        )

        stored = (await db.execute(
            select(Product.price, Product.original_price, Product.discount_percentage, Product.is_black_friday_deal)
            .where(Product.id == product.id)
        )).one()
        assert tuple(stored) == (100.0, None, 0, False)

    async def test_expired_discount_reset_on_update(self, db, make_product):
        product = await make_product(
            price=80.0, original_price=100.0, discount_percentage=20,
            discount_end_date=utcnow() + timedelta(days=1),
        )
        assert product.original_price == 100.0

        product.discount_end_date = utcnow() - timedelta(minutes=1)
        await db.commit()

        stored = (await db.execute(
            select(Product.price, Product.original_price, Product.discount_end_date).where(Product.id == product.id)
        )).one()
        assert tuple(stored) == (100.0, None, None)


class TestApplyDiscount:
    async def test_category_discount_matches_primary_and_tags(self, db, make_product):
        shirt = await make_product(name="Shirt", price=100.0, category="shirts")
        tagged = await make_product(name="Tee", price=50.0, category="tees", categories=["summer", "shirts"])
        other = await make_product(name="Coat", price=200.0, category="coats")

        response = await apply_discount(db, DiscountApply(
            type="category", category="shirts", discount_type="percentage", value=20,
            discount_end_date=utcnow() + timedelta(days=3),
        ))

        assert sorted(p.id for p in response["data"]) == sorted([shirt.id, tagged.id])
        await db.refresh(shirt)
        await db.refresh(other)
        assert shirt.price == 80.0
        assert shirt.original_price == 100.0
        assert other.price == 200.0

    async def test_new_discount_starts_from_original_price(self, db, make_product):
        product = await make_product(price=100.0)
        end = utcnow() + timedelta(days=3)

        await apply_discount(db, DiscountApply(type="specific", target_id=product.id, value=20, discount_end_date=end))
        response = await apply_discount(db, DiscountApply(
            type="specific", target_id=product.id, discount_type="fixed", value=30, discount_end_date=end,
        ))

        updated = response["data"][0]
        assert updated.price == 70.0
        assert updated.original_price == 100.0
        assert updated.current_price == 70.0

    async def test_invalid_values_rejected(self, db, make_product):
        product = await make_product()

        with pytest.raises(ValidationError):
            await apply_discount(db, DiscountApply(type="specific", target_id=product.id, value=0))
        with pytest.raises(BusinessRuleViolation):
            await apply_discount(db, DiscountApply(type="specific", target_id=product.id, value=150))
        with pytest.raises(ValidationError):
            await apply_discount(db, DiscountApply(
                type="specific", target_id=product.id, value=10, discount_end_date=utcnow() - timedelta(days=1),
            ))

    async def test_no_matching_products(self, db):
        with pytest.raises(NotFoundError):
            await apply_discount(db, DiscountApply(type="category", category="hats", value=10))

    async def test_reset_restores_price(self, db, make_product):
        product = await make_product(price=100.0)
        await apply_discount(db, DiscountApply(
            type="all", value=25, discount_end_date=utcnow() + timedelta(days=1),
        ))

        response = await reset_discount(db, product.id)

        restored = response["data"][0]
        assert restored.price == 100.0
        assert restored.original_price is None
        assert restored.discount_percentage == 0


class TestBlackFriday:
    async def test_apply_and_status(self, db, make_product):
        await make_product(name="A", price=100.0)
        await make_product(name="B", price=40.0)
        end = utcnow() + timedelta(days=2)

        response = await apply_black_friday(db, BlackFridayApply(discount_percentage=50, end_date=end))
        status = await get_black_friday_status(db)

        assert response["affected_products"] == 2
        assert status["is_active"] is True
        assert status["discount_percentage"] == 50
        prices = sorted(p.price for p in (await get_all_products(db))["data"])
        assert prices == [20.0, 50.0]

    async def test_status_inactive_without_deals(self, db, make_product):
        await make_product()

        assert await get_black_friday_status(db) == {"is_active": False}

    async def test_end_date_must_be_future(self, db, make_product):
        await make_product()

        with pytest.raises(ValidationError):
            await apply_black_friday(db, BlackFridayApply(discount_percentage=30, end_date=utcnow() - timedelta(minutes=1)))


class TestCatalog:
    async def test_hidden_products_not_listed(self, db, make_product):
        await make_product(name="Visible")
        hidden = await make_product(name="Secret", hidden=True)

        names = [p.name for p in (await get_all_products(db))["data"]]

        assert names == ["Visible"]
        with pytest.raises(NotFoundError):
            await get_product(db, hidden.id)

    async def test_best_selling_ordered_by_sales(self, db, make_product):
        await make_product(name="Slow", sales_count=1)
        await make_product(name="Fast", sales_count=9)

        names = [p.name for p in (await get_best_selling(db))["data"]]

        assert names == ["Fast", "Slow"]

    async def test_search_matches_name_description_and_category(self, db, make_product):
        await make_product(name="Linen Shirt", description="Breathable", category="shirts")
        await make_product(name="Boots", description="Leather boots", category="shoes")

        assert [p.name for p in (await search_products(db, "linen"))["data"]] == ["Linen Shirt"]
        assert [p.name for p in (await search_products(db, "LEATHER"))["data"]] == ["Boots"]
        with pytest.raises(ValidationError):
            await search_products(db, " ")

    async def test_create_adds_primary_category_to_tags(self, db):
        response = await create_product(db, ProductCreate(
            name="Scarf", description="Silk", price=30, category="accessories", categories=["gifts"],
        ))

        assert response["data"].categories == ["gifts", "accessories"]

    async def test_price_edit_on_discounted_product_moves_original(self, db, make_product):
        product = await make_product(price=100.0)
        await apply_discount(db, DiscountApply(
            type="specific", target_id=product.id, value=10, discount_end_date=utcnow() + timedelta(days=1),
        ))

        response = await update_product(db, product.id, ProductUpdate(price=200))

        assert response["data"].original_price == 200
        assert response["data"].price == 180
