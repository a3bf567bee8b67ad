import unittest

from fastapi.testclient import TestClient

from storefront.app import create_app
from storefront.auth import hash_password, issue_access_token
from storefront.dependencies import get_db_client, reset_backends


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        reset_backends()
        self.client = TestClient(create_app())
        self.db = get_db_client()

    def make_user(self, email="admin@example.com", roles=("Admin",), password="password123"):
        return self.db.create_user(
            email=email,
            password_hash=hash_password(password),
            first_name="Test",
            last_name="User",
            roles=list(roles),
        )

    def auth_headers(self, roles=("Admin",), email="admin@example.com"):
        user = self.make_user(email=email, roles=roles)
        token = issue_access_token(user["id"], user["roles"])
        return {"Authorization": f"Bearer {token}"}

    def make_product(self, slug="silk-tote", title="Silk Tote", price_cents=129900, stock=5, **extra):
        data = {
            "slug": slug,
            "title": title,
            "description": f"{title} handmade in Jaipur",
            "published": True,
            "variants": [
                {
                    "sku": f"{slug}-default",
                    "price_cents": price_cents,
                    "stock_quantity": stock,
                }
            ],
        }
        data.update(extra)
        return self.db.create_product(data)
