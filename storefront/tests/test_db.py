import unittest
from datetime import datetime, timedelta, timezone

from storefront.auth import verify_password
from storefront.db import ConflictError, DbClient, build_search_text, iso, parse_cursor_time
from storefront.dependencies import get_db_client, reset_backends
from storefront.seed import DEFAULT_CATEGORIES, seed_admin, seed_categories


class DbClientTests(unittest.TestCase):
    def setUp(self):
        self.db = DbClient("sqlite+pysqlite:///:memory:")

    def test_requires_url(self):
        with self.assertRaises(ValueError):
            DbClient("")

    def test_default_roles_are_seeded_once(self):
        self.db._seed_roles()
        names = [role["name"] for role in self.db.list_roles()]
        self.assertEqual(sorted(names), ["Admin", "Editor", "SuperAdmin", "Support", "customer"])

    def test_search_text_is_rebuilt(self):
        product_id = self.db.create_product(
            {"slug": "lamp", "title": "Brass Lamp", "published": True}
        )
        _, total = self.db.list_public_products(search="kaarigar")
        self.assertEqual(total, 0)

        self.db.update_product(product_id, {"brand": "Kaarigar"})
        items, total = self.db.list_public_products(search="Kaarigar")
        self.assertEqual(total, 1)
        self.assertEqual(items[0]["slug"], "lamp")
        self.assertEqual(self.db.reindex_products(), 1)

    def test_scheduled_products_stay_hidden(self):
        later = datetime.now(timezone.utc) + timedelta(days=1)
        self.db.create_product(
            {"slug": "soon", "title": "Soon", "published": True, "publish_at": later}
        )
        items, total = self.db.list_public_products()
        self.assertEqual((items, total), ([], 0))
        self.assertIsNone(self.db.get_public_product("soon"))

    def test_duplicate_variant_sku_conflicts(self):
        variant = {"sku": "SKU-1", "price_cents": 100}
        self.db.create_product({"slug": "a", "title": "A", "variants": [variant]})
        with self.assertRaises(ConflictError):
            self.db.create_product({"slug": "b", "title": "B", "variants": [variant]})
        self.assertEqual(len(self.db.list_products_admin()), 1)

    def test_variant_stock_totals(self):
        product_id = self.db.create_product(
            {
                "slug": "set",
                "title": "Set",
                "variants": [
                    {"sku": "S", "stock_quantity": 0},
                    {"sku": "M", "stock_quantity": 2},
                ],
            }
        )
        small = self.db.get_product(product_id)["variants"][0]["id"]
        self.assertEqual(self.db.update_variant_stock(product_id, small, 5), (2, 7))
        self.assertIsNone(self.db.update_variant_stock("other", small, 1))

    def test_helpers(self):
        self.assertEqual(build_search_text(" Silk ", None, "", "TOTE"), "silk tote")
        self.assertEqual(iso(datetime(2024, 1, 2, 3, 4, 5)), "2024-01-02T03:04:05Z")
        self.assertEqual(
            parse_cursor_time("2024-01-02T03:04:05Z"), datetime(2024, 1, 2, 3, 4, 5)
        )
        self.assertIsNone(parse_cursor_time("soon"))


class ResetBackendsTests(unittest.TestCase):
    def test_reset_clears_in_memory_rows(self):
        db = get_db_client()
        self.assertTrue(db.in_memory)
        db.create_category({"slug": "leftover", "name": "Leftover"})
        reset_backends()
        self.assertIs(get_db_client(), db)
        self.assertEqual(db.list_categories(), [])
        self.assertEqual(len(db.list_roles()), 5)

class SeedTests(unittest.TestCase):
    def setUp(self):
        self.db = DbClient("sqlite+pysqlite:///:memory:")

    def test_seed_admin_creates_then_resets(self):
        user = seed_admin(self.db, "owner@example.com", "first-password")
        self.assertEqual(user["roles"], ["SuperAdmin"])
        self.assertEqual(user["full_name"], "Initial Admin")

        self.db.update_user(user["id"], {"is_active": False}, roles=["Editor"])
        user = seed_admin(self.db, "owner@example.com", "second-password")
        self.assertTrue(user["is_active"])
        self.assertEqual(user["roles"], ["Editor", "SuperAdmin"])
        credentials = self.db.get_user_credentials("owner@example.com")
        self.assertTrue(verify_password("second-password", credentials["password_hash"]))

    def test_seed_categories_is_idempotent(self):
        self.db.create_category({"slug": "tote-bags", "name": "Totes"})
        self.assertEqual(seed_categories(self.db), len(DEFAULT_CATEGORIES) - 1)
        self.assertEqual(seed_categories(self.db), 0)
        names = {c["slug"]: c["name"] for c in self.db.list_categories()}
        self.assertEqual(names["tote-bags"], "Totes")


if __name__ == "__main__":
    unittest.main()
