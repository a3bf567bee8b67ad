import unittest
from datetime import datetime, timedelta, timezone

from storefront.dependencies import get_image_helper
from storefront.notifications import send_stock_notifications
from storefront.tests.base import ApiTestCase


class RecordingMailer:
    def __init__(self):
        self.sent = []

    def send_stock_notification(self, to, **details):
        self.sent.append((to, details))


class AdminProductTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.auth_headers(roles=("Editor",))

    def create(self, **overrides):
        payload = {
            "slug": "linen-runner",
            "title": "Linen Runner",
            "description": "Block printed table runner",
            "published": True,
            "variants": [{"sku": "LR-1", "price_cents": 89900, "stock_quantity": 3}],
        }
        payload.update(overrides)
        return self.client.post("/api/admin/products", json=payload, headers=self.headers)

    def test_requires_staff_role(self):
        self.assertEqual(self.client.get("/api/admin/products").status_code, 401)
        customer = self.auth_headers(roles=("customer",), email="shopper@example.com")
        response = self.client.get("/api/admin/products", headers=customer)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json(), {"error": "forbidden"})

    def test_create_get_update_delete(self):
        response = self.create()
        self.assertEqual(response.status_code, 201)
        product_id = response.json()["uuid_id"]

        found = self.client.get(f"/api/admin/products/{product_id}", headers=self.headers)
        self.assertEqual(found.status_code, 200)
        body = found.json()
        self.assertEqual(body["product"]["slug"], "linen-runner")
        self.assertEqual(body["variants"][0]["sku"], "LR-1")

        listed = self.client.get("/api/admin/products", headers=self.headers).json()
        self.assertEqual(listed["items"][0]["price_cents"], 89900)
        self.assertEqual(listed["items"][0]["stock_quantity"], 3)

        response = self.client.put(
            f"/api/admin/products/{product_id}",
            json={
                "title": "Linen Table Runner",
                "variants": [{"sku": "LR-2", "price_cents": 99900, "stock_quantity": 1}],
            },
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        body = self.client.get(
            f"/api/admin/products/{product_id}", headers=self.headers
        ).json()
        self.assertEqual(body["product"]["title"], "Linen Table Runner")
        self.assertEqual([v["sku"] for v in body["variants"]], ["LR-2"])

        response = self.client.delete(
            f"/api/admin/products/{product_id}", headers=self.headers
        )
        self.assertEqual(response.status_code, 204)
        response = self.client.get(
            f"/api/admin/products/{product_id}", headers=self.headers
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "product not found"})

    def test_duplicate_slug_conflicts(self):
        self.assertEqual(self.create().status_code, 201)
        response = self.create(variants=[])
        self.assertEqual(response.status_code, 409)
        self.assertIn("error", response.json())

    def test_invalid_payload(self):
        response = self.client.post(
            "/api/admin/products", json={"title": "No slug"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid payload")

    def test_update_rejects_null_required_fields(self):
        product_id = self.create().json()["uuid_id"]
        for field in ("title", "slug", "published"):
            response = self.client.put(
                f"/api/admin/products/{product_id}", json={field: None}, headers=self.headers
            )
            self.assertEqual(response.status_code, 400, field)
            self.assertEqual(response.json()["error"], "invalid payload")

        response = self.client.put(
            f"/api/admin/products/{product_id}",
            json={"subtitle": None, "brand": None},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.db.get_product(product_id)["product"]["title"], "Linen Runner")

    def test_invalid_product_id(self):
        response = self.client.get("/api/admin/products/not-a-uuid", headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "invalid product id"})

    def test_out_of_stock_listing(self):
        self.make_product(slug="empty-basket", title="Empty Basket", stock=0)
        self.make_product(slug="full-basket", title="Full Basket", stock=4)
        response = self.client.get("/api/admin/products/out-of-stock", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        products = response.json()["products"]
        self.assertEqual([p["slug"] for p in products], ["empty-basket"])
        self.assertEqual(products[0]["total_stock"], 0)

    def test_restock_notifies_waiting_customers(self):
        product_id = self.make_product(slug="brass-lamp", title="Brass Lamp", stock=0)
        variant_id = self.db.get_product(product_id)["variants"][0]["id"]
        self.db.create_stock_notification(
            product_id=product_id,
            product_slug="brass-lamp",
            notification_type="email",
            email="waiting@example.com",
        )

        response = self.client.patch(
            f"/api/admin/products/{product_id}/variants/{variant_id}/stock",
            json={"stock_quantity": 7},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["stock_quantity"], 7)
        self.assertEqual(self.db.pending_stock_notifications(product_id), [])

    def test_stock_update_errors(self):
        product_id = self.make_product()
        base = f"/api/admin/products/{product_id}/variants"
        response = self.client.patch(
            f"{base}/abc/stock", json={"stock_quantity": 1}, headers=self.headers
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "invalid variant ID"})

        response = self.client.patch(
            f"{base}/9999/stock", json={"stock_quantity": 1}, headers=self.headers
        )
        self.assertEqual(response.status_code, 404)

        response = self.client.patch(
            f"{base}/1/stock", json={"stock_quantity": -1}, headers=self.headers
        )
        self.assertEqual(response.status_code, 400)


class StockNotificationSenderTests(ApiTestCase):
    def test_only_email_requests_are_mailed(self):
        product_id = self.make_product(slug="clay-pot", title="Clay Pot", price_cents=45000)
        self.db.create_stock_notification(
            product_id=product_id,
            product_slug="clay-pot",
            notification_type="email",
            email="a@example.com",
        )
        self.db.create_stock_notification(
            product_id=product_id,
            product_slug="clay-pot",
            notification_type="mobile",
            mobile_number="9999999999",
        )
        mailer = RecordingMailer()

        sent = send_stock_notifications(self.db, mailer, get_image_helper(), product_id)

        self.assertEqual(sent, 1)
        to, details = mailer.sent[0]
        self.assertEqual(to, "a@example.com")
        self.assertEqual(details["slug"], "clay-pot")
        self.assertEqual(details["price_cents"], 45000)
        self.assertEqual(self.db.pending_stock_notifications(product_id), [])

    def test_nothing_pending(self):
        product_id = self.make_product()
        mailer = RecordingMailer()
        self.assertEqual(
            send_stock_notifications(self.db, mailer, get_image_helper(), product_id), 0
        )
        self.assertEqual(mailer.sent, [])


class PublicProductTests(ApiTestCase):
    def test_list_filters_and_pagination(self):
        category_id = self.db.create_category({"slug": "lamps", "name": "Lamps"})
        self.make_product(slug="cheap-lamp", title="Cheap Lamp", price_cents=50000, category_id=category_id)
        self.make_product(slug="dear-lamp", title="Dear Lamp", price_cents=250000, stock=0, category_id=category_id)
        self.make_product(slug="rug", title="Rug", price_cents=150000)
        self.make_product(slug="hidden", title="Hidden", published=False)

        payload = self.client.get("/api/products").json()
        self.assertEqual(payload["total"], 3)
        self.assertEqual(payload["page"], 1)
        self.assertEqual(payload["limit"], 12)

        payload = self.client.get("/api/products", params={"category": "lamps"}).json()
        self.assertEqual({i["slug"] for i in payload["items"]}, {"cheap-lamp", "dear-lamp"})

        payload = self.client.get(
            "/api/products", params={"min_price": "1000", "sort": "price_asc"}
        ).json()
        self.assertEqual([i["slug"] for i in payload["items"]], ["rug", "dear-lamp"])

        payload = self.client.get("/api/products", params={"in_stock": "true"}).json()
        self.assertNotIn("dear-lamp", [i["slug"] for i in payload["items"]])

        payload = self.client.get(
            "/api/products", params={"limit": "1", "page": "2", "sort": "name_asc"}
        ).json()
        self.assertEqual([i["slug"] for i in payload["items"]], ["dear-lamp"])

    def test_non_finite_price_filters_are_ignored(self):
        self.make_product()
        for raw in ("inf", "-inf", "1e400", "nan"):
            response = self.client.get("/api/products", params={"min_price": raw, "max_price": raw})
            self.assertEqual(response.status_code, 200, raw)
            self.assertEqual(response.json()["total"], 1, raw)

    def test_list_uses_placeholder_image(self):
        self.make_product()
        item = self.client.get("/api/products").json()["items"][0]
        self.assertIsNone(item["image_key"])
        self.assertTrue(item["image_url"].endswith("product-placeholder.webp"))

    def test_invalid_category_id(self):
        response = self.client.get("/api/products", params={"category_id": "lamps"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "invalid category_id"})

    def test_detail_and_fields_projection(self):
        self.make_product(slug="silk-tote", stock=0)
        body = self.client.get("/api/products/silk-tote").json()
        self.assertEqual(body["availability"], "OutOfStock")
        self.assertEqual(body["hero_image"], {"url": None})

        body = self.client.get(
            "/api/products/silk-tote", params={"fields": "title, price_cents"}
        ).json()
        self.assertEqual(body, {"title": "Silk Tote", "price_cents": 129900})

        response = self.client.get("/api/products/missing")
        self.assertEqual(response.status_code, 404)

    def test_related_products(self):
        category_id = self.db.create_category({"slug": "bags", "name": "Bags"})
        self.make_product(slug="tote", title="Tote", category_id=category_id)
        self.make_product(slug="sling", title="Sling", category_id=category_id)
        self.make_product(slug="rug", title="Rug")

        items = self.client.get("/api/products/tote/related").json()["items"]
        self.assertEqual([i["slug"] for i in items], ["sling"])

        items = self.client.get("/api/products/rug/related").json()["items"]
        self.assertEqual({i["slug"] for i in items}, {"tote", "sling"})

        self.assertEqual(self.client.get("/api/products/nope/related").status_code, 404)

    def test_related_skips_scheduled_products(self):
        later = datetime.now(timezone.utc) + timedelta(days=2)
        self.make_product(slug="tote", title="Tote")
        self.make_product(slug="preview", title="Preview", publish_at=later)
        items = self.client.get("/api/products/tote/related").json()["items"]
        self.assertEqual(items, [])

    def test_simple_search(self):
        self.make_product(slug="silk-tote", title="Silk Tote")
        self.make_product(slug="rug", title="Rug")
        response = self.client.post("/api/products/search", json={"query": "SILK"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([i["slug"] for i in response.json()["items"]], ["silk-tote"])


if __name__ == "__main__":
    unittest.main()
