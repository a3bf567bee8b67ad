import unittest
from datetime import datetime, timedelta, timezone

from storefront.dependencies import get_rate_limiter
from storefront.search import (
    RateLimiter,
    TokenBucket,
    decode_cursor,
    encode_cursor,
    is_valid_query,
    parse_limit,
)
from storefront.tests.base import ApiTestCase


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TokenBucketTests(unittest.TestCase):
    def test_bucket_refills_fractionally(self):
        clock = FakeClock()
        bucket = TokenBucket(capacity=2, refill_rate=1.0, clock=clock)
        self.assertTrue(bucket.allow())
        self.assertTrue(bucket.allow())
        self.assertFalse(bucket.allow())

        clock.now += 0.5
        self.assertFalse(bucket.allow())
        clock.now += 0.5
        self.assertTrue(bucket.allow())

    def test_bucket_never_exceeds_capacity(self):
        clock = FakeClock()
        bucket = TokenBucket(capacity=3, refill_rate=1.0, clock=clock)
        clock.now += 3600
        results = [bucket.allow() for _ in range(4)]
        self.assertEqual(results, [True, True, True, False])

    def test_rate_limiter_tracks_keys_separately(self):
        limiter = RateLimiter(capacity=1, refill_rate=0.0, clock=FakeClock())
        self.assertTrue(limiter.allow("10.0.0.1"))
        self.assertFalse(limiter.allow("10.0.0.1"))
        self.assertTrue(limiter.allow("10.0.0.2"))
        limiter.reset()
        self.assertTrue(limiter.allow("10.0.0.1"))

    def test_rate_limiter_drops_refilled_buckets(self):
        clock = FakeClock()
        limiter = RateLimiter(capacity=100, refill_rate=1.0, clock=clock)
        for index in range(50):
            limiter.allow(f"10.0.1.{index}")
        for _ in range(100):
            limiter.allow("10.0.0.1")
        self.assertEqual(len(limiter.buckets), 51)

        clock.now += 61
        self.assertTrue(limiter.allow("10.0.0.2"))
        self.assertEqual(set(limiter.buckets), {"10.0.0.1", "10.0.0.2"})


class SearchHelperTests(unittest.TestCase):
    def test_parse_limit(self):
        self.assertEqual(parse_limit(None, 12), 12)
        self.assertEqual(parse_limit("50", 12), 50)
        self.assertEqual(parse_limit("0", 12), 12)
        self.assertEqual(parse_limit("101", 12), 12)
        self.assertEqual(parse_limit("ten", 12), 12)

    def test_query_validation(self):
        self.assertTrue(is_valid_query("bag"))
        self.assertFalse(is_valid_query("ba"))
        self.assertFalse(is_valid_query("1234"))

    def test_cursor(self):
        cursor = encode_cursor("abc", 0.75)
        self.assertEqual(decode_cursor(cursor), ("abc", 0.75))
        with self.assertRaises(ValueError):
            decode_cursor("not-a-cursor")


class SearchApiTests(ApiTestCase):
    def test_products_match_first(self):
        self.make_product(slug="silk-tote", title="Silk Tote", price_cents=129900)
        response = self.client.get("/api/search", params={"q": "silk"})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["source"], "products")
        self.assertEqual(payload["q"], "silk")
        result = payload["results"][0]
        self.assertEqual(result["type"], "product")
        self.assertEqual(result["slug"], "silk-tote")
        self.assertEqual(result["link"], "/product/silk-tote")
        self.assertEqual(result["price"], 129900)
        self.assertNotIn("note", result)
        self.assertEqual(
            response.headers["cache-control"],
            "public, max-age=30, stale-while-revalidate=60",
        )

    def test_unpublished_products_are_not_searchable(self):
        self.make_product(slug="draft-bag", title="Draft Bag", published=False)
        payload = self.client.get("/api/search", params={"q": "draft"}).json()
        self.assertEqual(payload["source"], "fallback")
        self.assertEqual(payload["results"], [])

    def test_falls_back_to_categories(self):
        self.db.create_category({"slug": "crochet-throws", "name": "Crochet Throws"})
        payload = self.client.get("/api/search", params={"q": "crochet"}).json()
        self.assertEqual(payload["source"], "categories")
        self.assertEqual(payload["results"][0]["link"], "/category/crochet-throws")

    def test_falls_back_to_offers_then_banners(self):
        self.db.create_offer(
            {"title": "Diwali Sale", "discount_type": "percentage", "discount_value": 10}
        )
        payload = self.client.get("/api/search", params={"q": "diwali"}).json()
        self.assertEqual(payload["source"], "offers")
        offer_id = payload["results"][0]["id"]
        self.assertEqual(payload["results"][0]["link"], f"/offer/{offer_id}")

        self.db.create_banner(
            {
                "title": "Festive Collection",
                "desktop_image_url": "banner/festive.webp",
                "link_url": "/shop/festive",
            }
        )
        payload = self.client.get("/api/search", params={"q": "festive"}).json()
        self.assertEqual(payload["source"], "banners")
        self.assertEqual(payload["results"][0]["link"], "/shop/festive")

    def test_expired_offers_are_skipped(self):
        past = datetime.now(timezone.utc) - timedelta(days=1)
        self.db.create_offer(
            {
                "title": "Summer Sale",
                "discount_type": "fixed",
                "discount_value": 100,
                "ends_at": past,
            }
        )
        payload = self.client.get("/api/search", params={"q": "summer"}).json()
        self.assertEqual(payload["source"], "fallback")

    def test_fallback_suggests_three_products(self):
        for index in range(5):
            self.make_product(slug=f"bag-{index}", title=f"Bag {index}")
        payload = self.client.get("/api/search", params={"q": "nothing matches"}).json()
        self.assertEqual(payload["source"], "fallback")
        self.assertEqual(len(payload["results"]), 3)
        self.assertTrue(all(r["note"] == "suggested" for r in payload["results"]))

    def test_short_query_is_rejected(self):
        response = self.client.get("/api/search", params={"q": " ab "})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "query too short"})
        response = self.client.get("/api/search", params={"q": "12345"})
        self.assertEqual(response.status_code, 400)

    def test_rate_limit(self):
        limiter = get_rate_limiter()
        capacity, rate = limiter.capacity, limiter.refill_rate
        limiter.capacity, limiter.refill_rate = 2, 0.0
        try:
            for _ in range(2):
                self.assertEqual(
                    self.client.get("/api/search", params={"q": "tote"}).status_code,
                    200,
                )
            response = self.client.get("/api/search", params={"q": "tote"})
            self.assertEqual(response.status_code, 429)
            self.assertEqual(response.json(), {"error": "rate limit exceeded"})
        finally:
            limiter.capacity, limiter.refill_rate = capacity, rate
            limiter.reset()

    def test_suggest_omits_source(self):
        self.make_product(slug="jute-bag", title="Jute Bag")
        response = self.client.get("/api/search/suggest", params={"q": "jute"})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertNotIn("source", payload)
        self.assertEqual(payload["results"][0]["slug"], "jute-bag")
        self.assertEqual(response.headers["cache-control"], "public, max-age=30")

    def test_facets(self):
        category_id = self.db.create_category({"slug": "totes", "name": "Totes"})
        self.make_product(slug="a-tote", title="A Tote", price_cents=5000, category_id=category_id)
        self.make_product(slug="b-tote", title="B Tote", price_cents=9000, category_id=category_id)
        response = self.client.get("/api/search/facets", params={"q": "tote"})
        self.assertEqual(response.status_code, 200)
        facets = response.json()["facets"]
        self.assertEqual(facets["categories"][0]["slug"], "totes")
        self.assertEqual(facets["categories"][0]["count"], 2)
        self.assertEqual(facets["price_range"], {"min": 5000, "max": 9000})

    def test_facets_default_price_range(self):
        facets = self.client.get("/api/search/facets", params={"q": "none"}).json()["facets"]
        self.assertEqual(facets["price_range"], {"min": 0, "max": 100000})
        self.assertEqual(facets["categories"], [])

    def test_health(self):
        response = self.client.get("/api/search/health")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["status"], "healthy")
        self.assertFalse(payload["pg_trgm"])
        self.assertTrue(payload["timestamp"].endswith("Z"))

    def test_reindex_requires_staff(self):
        response = self.client.post("/api/admin/search/reindex")
        self.assertEqual(response.status_code, 401)

        self.make_product()
        response = self.client.post(
            "/api/admin/search/reindex", headers=self.auth_headers()
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["updatedCount"], 1)
        self.assertEqual(payload["message"], "search index rebuilt successfully")


if __name__ == "__main__":
    unittest.main()
