from datetime import timedelta

from storefront.utils.datetime_utils import utcnow


def order_body(product_id, **overrides):
    body = {
        "products": [{"product": product_id, "quantity": 1, "price": 15}],
        "subtotal": 15,
        "customer_name": "Ada Lovelace",
        "customer_email": "ada@example.com",
        "phone_number": "555-0100",
        "address": "12 Analytical Row",
    }
    body.update(overrides)
    return body


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestOrdersApi:
    async def test_guest_checkout_and_lookup(self, client, make_product, make_user, push):
        await make_user("admin", role="admin", fcm_token="tok-admin")
        product = await make_product()

        created = await client.post("/orders/guest", json=order_body(product.id))

        assert created.status_code == 201
        data = created.json()["data"]
        assert data["order_id"] == 1
        assert data["total_amount"] == 20
        assert data["items"][0]["product"]["name"] == "Linen Shirt"
        assert len(push.sent) == 1

        found = await client.get("/orders/guest/1", params={"email": "ADA@example.com"})
        assert found.status_code == 200
        assert found.json()["data"]["customer_name"] == "Ada Lovelace"

        wrong = await client.get("/orders/guest/1", params={"email": "eve@example.com"})
        assert wrong.status_code == 404

    async def test_validation_errors_are_400(self, client):
        response = await client.post("/orders/guest", json=order_body(1, products=[]))

        assert response.status_code == 400
        assert response.json()["detail"] == "No products in order"

    async def test_admin_endpoints_require_admin(self, client, make_user, headers_for):
        shopper = await make_user("shopper")
        admin = await make_user("boss", role="admin")

        assert (await client.get("/orders")).status_code == 401
        assert (await client.get("/orders", headers=headers_for(shopper))).status_code == 403
        listed = await client.get("/orders", headers=headers_for(admin))
        assert listed.status_code == 200
        assert listed.json()["data"] == []

    async def test_admin_updates_status(self, client, make_product, make_user, headers_for, push):
        admin = await make_user("boss", role="admin", fcm_token="tok-admin")
        product = await make_product()
        created = (await client.post("/orders/guest", json=order_body(product.id))).json()["data"]
        push.sent.clear()

        response = await client.put(
            f"/orders/{created['id']}", json={"status": "Confirmed"}, headers=headers_for(admin)
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "Confirmed"
        assert push.sent[0][1].title == "Order Status Updated"

        bad = await client.put(f"/orders/{created['id']}", json={"status": "Lost"}, headers=headers_for(admin))
        assert bad.status_code == 400

    async def test_signed_in_checkout_and_my_orders(self, client, make_product, make_user, headers_for):
        customer = await make_user("grace", email="grace@example.com", name="Grace Hopper", phone_number="555-0199")
        product = await make_product()

        created = await client.post(
            "/orders",
            json=order_body(product.id, customer_name=None, customer_email=None, phone_number=None),
            headers=headers_for(customer),
        )
        assert created.status_code == 201

        mine = await client.get("/orders/my-orders", headers=headers_for(customer))
        assert [o["customer_name"] for o in mine.json()["data"]] == ["Grace Hopper"]

    async def test_stats_and_delete(self, client, make_product, make_user, headers_for):
        admin = await make_user("boss", role="admin")
        product = await make_product()
        created = (await client.post("/orders/guest", json=order_body(product.id))).json()["data"]

        stats = await client.get("/orders/stats/summary", headers=headers_for(admin))
        assert stats.json()["total_orders"] == 1
        assert stats.json()["orders_by_status"]["Pending"] == 1

        deleted = await client.delete(f"/orders/{created['id']}", headers=headers_for(admin))
        assert deleted.status_code == 200
        assert (await client.get(f"/orders/{created['id']}", headers=headers_for(admin))).status_code == 404


class TestPromoApi:
    async def test_validate_promo(self, client, make_promo):
        await make_promo(code="SAVE10", minimum_purchase=50)

        ok = await client.post("/orders/validate-promo", json={"code": "save10", "cart_total": 60})
        assert ok.status_code == 200
        assert ok.json()["discount"] == 10

        low = await client.post("/promo-codes/validate", json={"code": "SAVE10", "cart_total": 10})
        assert low.status_code == 400
        assert low.json()["detail"] == "Minimum purchase of $50 required"

        missing = await client.post("/promo-codes/validate", json={"code": "NOPE"})
        assert missing.status_code == 404

    async def test_admin_creates_promo(self, client, make_user, headers_for):
        admin = await make_user("boss", role="admin")
        body = {
            "code": "winter",
            "description": "Winter sale",
            "discount_type": "fixed",
            "discount_value": 5,
            "end_date": (utcnow() + timedelta(days=7)).isoformat(),
        }

        created = await client.post("/promo-codes", json=body, headers=headers_for(admin))
        assert created.status_code == 201
        assert created.json()["code"] == "WINTER"

        listed = await client.get("/promo-codes", headers=headers_for(admin))
        assert [p["code"] for p in listed.json()["data"]] == ["WINTER"]


class TestProductsApi:
    async def test_public_catalog_and_admin_discount(self, client, make_product, make_user, headers_for):
        admin = await make_user("boss", role="admin")
        product = await make_product(price=100.0)

        listed = await client.get("/products")
        assert listed.status_code == 200
        assert listed.json()["data"][0]["current_price"] == 100.0

        body = {
            "type": "specific",
            "target_id": product.id,
            "discount_type": "percentage",
            "value": 30,
            "discount_end_date": (utcnow() + timedelta(days=1)).isoformat(),
        }
        assert (await client.post("/products/discount", json=body)).status_code == 401
        applied = await client.post("/products/discount", json=body, headers=headers_for(admin))
        assert applied.status_code == 200
        assert applied.json()["data"][0]["current_price"] == 70.0

        reset = await client.post("/products/reset-discount", json={"product_id": product.id}, headers=headers_for(admin))
        assert reset.json()["data"][0]["price"] == 100.0

    async def test_black_friday_status_public(self, client):
        response = await client.get("/products/black-friday")
        assert response.json()["is_active"] is False

    async def test_toggle_sold_out(self, client, make_product, make_user, headers_for):
        admin = await make_user("boss", role="admin")
        product = await make_product()

        response = await client.put(
            f"/products/{product.id}/toggle-sold-out", json={"sold_out": True}, headers=headers_for(admin)
        )

        assert response.json()["data"]["sold_out"] is True


class TestUsersApi:
    async def test_register_and_clear_device_token(self, client, make_user, headers_for, db):
        admin = await make_user("boss", role="admin")

        response = await client.put("/users/fcm-token", json={"fcm_token": "tok-new"}, headers=headers_for(admin))
        assert response.status_code == 200
        await db.refresh(admin)
        assert admin.fcm_token == "tok-new"

        response = await client.delete("/users/fcm-token", headers=headers_for(admin))
        assert response.status_code == 200
        await db.refresh(admin)
        assert admin.fcm_token is None

    async def test_blank_device_token_rejected(self, client, make_user, headers_for):
        admin = await make_user("boss", role="admin")

        response = await client.put("/users/fcm-token", json={"fcm_token": " "}, headers=headers_for(admin))

        assert response.status_code == 400

    async def test_invalid_token_rejected(self, client):
        response = await client.get("/orders/my-orders", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401
