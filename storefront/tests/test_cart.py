import unittest

from storefront.tests.base import ApiTestCase


class CartTests(ApiTestCase):
    def test_empty_cart_without_session(self):
        response = self.client.get("/api/cart")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"items": [], "total": 0, "count": 0})

    def test_add_sets_session_cookie_and_accumulates(self):
        product_id = self.make_product(price_cents=129900)
        response = self.client.post(
            "/api/cart/add", json={"product_id": product_id, "quantity": 2}
        )
        self.assertEqual(response.status_code, 200)
        session_id = response.json()["session_id"]
        self.assertTrue(session_id.startswith("session_"))
        cookie = response.headers["set-cookie"]
        self.assertIn("session_id=", cookie)
        self.assertIn("HttpOnly", cookie)

        self.client.post("/api/cart/add", json={"product_id": product_id})
        cart = self.client.get("/api/cart").json()
        self.assertEqual(cart["count"], 3)
        self.assertEqual(len(cart["items"]), 1)
        self.assertEqual(cart["items"][0]["price"], 1299.0)
        self.assertEqual(cart["total"], 3897.0)

    def test_add_unknown_product(self):
        response = self.client.post("/api/cart/add", json={"product_id": "missing"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "product not found"})

    def test_remove_and_clear(self):
        first = self.make_product(slug="first", title="First")
        second = self.make_product(slug="second", title="Second")
        self.client.post("/api/cart/add", json={"product_id": first})
        self.client.post("/api/cart/add", json={"product_id": second})
        items = self.client.get("/api/cart").json()["items"]

        response = self.client.delete(f"/api/cart/{items[0]['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/api/cart").json()["count"], 1)

        response = self.client.delete(f"/api/cart/{items[0]['id']}")
        self.assertEqual(response.status_code, 404)

        self.assertEqual(self.client.post("/api/cart/clear").status_code, 200)
        self.assertEqual(self.client.get("/api/cart").json()["items"], [])

    def test_mutations_require_session(self):
        response = self.client.post("/api/cart/clear")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "No session found"})
        self.assertEqual(self.client.delete("/api/cart/abc").status_code, 401)


class WishlistTests(ApiTestCase):
    def test_toggle_adds_then_removes(self):
        product_id = self.make_product()
        response = self.client.post("/api/wishlist/toggle", json={"product_id": product_id})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["in_wishlist"])

        wishlist = self.client.get("/api/wishlist").json()
        self.assertEqual(wishlist["count"], 1)
        self.assertEqual(wishlist["items"][0]["title"], "Silk Tote")
        self.assertEqual(wishlist["items"][0]["price"], 1299.0)

        response = self.client.post("/api/wishlist/toggle", json={"product_id": product_id})
        self.assertFalse(response.json()["in_wishlist"])
        self.assertEqual(self.client.get("/api/wishlist").json()["count"], 0)

    def test_delete_item(self):
        product_id = self.make_product()
        self.client.post("/api/wishlist/toggle", json={"product_id": product_id})
        response = self.client.delete(f"/api/wishlist/{product_id}")
        self.assertEqual(response.status_code, 200)
        response = self.client.delete(f"/api/wishlist/{product_id}")
        self.assertEqual(response.status_code, 404)

    def test_toggle_unknown_product(self):
        response = self.client.post("/api/wishlist/toggle", json={"product_id": "missing"})
        self.assertEqual(response.status_code, 404)

    def test_empty_without_session(self):
        self.assertEqual(self.client.get("/api/wishlist").json(), {"items": [], "count": 0})


class StockNotificationRequestTests(ApiTestCase):
    def request(self, **body):
        payload = {"productSlug": "silk-tote", "notificationType": "email"}
        payload.update(body)
        return self.client.post("/api/stock-notifications", json=payload)

    def test_create_and_reject_duplicate(self):
        product_id = self.make_product(stock=0)
        response = self.request(email="Shopper@Example.com")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(
            response.json()["message"], "Notification request created successfully"
        )
        pending = self.db.pending_stock_notifications(product_id)
        self.assertEqual(pending[0]["email"], "shopper@example.com")

        response = self.request(email="shopper@example.com")
        self.assertEqual(response.status_code, 409)

    def test_contact_is_required(self):
        self.make_product()
        response = self.request()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(), {"error": "email is required for email notifications"}
        )
        response = self.request(notificationType="mobile", mobileNumber="  ")
        self.assertEqual(response.status_code, 400)

    def test_mobile_request(self):
        product_id = self.make_product()
        response = self.request(notificationType="mobile", mobileNumber=" 9876543210 ")
        self.assertEqual(response.status_code, 201)
        pending = self.db.pending_stock_notifications(product_id)
        self.assertEqual(pending[0]["mobile_number"], "9876543210")

    def test_unknown_product(self):
        response = self.request(email="shopper@example.com")
        self.assertEqual(response.status_code, 404)

    def test_manual_send(self):
        product_id = self.make_product()
        self.request(email="shopper@example.com")
        headers = self.auth_headers(roles=("Support",))
        response = self.client.post(
            f"/api/admin/stock-notifications/{product_id}/send", headers=headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["sent"], 1)
        self.assertEqual(self.db.pending_stock_notifications(product_id), [])


if __name__ == "__main__":
    unittest.main()
