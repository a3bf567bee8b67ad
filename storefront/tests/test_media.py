import io
import unittest

from PIL import Image

from storefront.dependencies import get_storage_client
from storefront.images import ImageURLHelper, generate_key
from storefront.tests.base import ApiTestCase

BASE = "https://example.test/media"


def png_bytes(width=4, height=3):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


class ImageURLHelperTests(unittest.TestCase):
    def setUp(self):
        self.images = ImageURLHelper(BASE)

    def test_format_image_url(self):
        self.assertIsNone(self.images.format_image_url(None))
        self.assertEqual(
            self.images.format_image_url("product/a b.webp"), f"{BASE}/product/a%20b.webp"
        )
        self.assertEqual(self.images.format_image_url("/uploads/old.jpg"), "/uploads/old.jpg")
        self.assertEqual(
            self.images.format_image_url("https://cdn.test/x.png"), "https://cdn.test/x.png"
        )

    def test_key_and_url(self):
        self.assertEqual(
            self.images.get_image_key_and_url("banner/x.webp"),
            ("banner/x.webp", f"{BASE}/banner/x.webp"),
        )
        self.assertEqual(
            self.images.get_image_key_and_url("/uploads/old.jpg"), ("/uploads/old.jpg", None)
        )
        self.assertEqual(
            self.images.get_image_key_and_url("https://cdn.test/x.png"),
            (None, "https://cdn.test/x.png"),
        )

    def test_fallbacks(self):
        self.assertEqual(
            self.images.format_with_fallback(None, "banner"),
            f"{BASE}/banner-placeholder.webp",
        )
        self.assertEqual(
            self.images.get_fallback_image_url("unknown"), f"{BASE}/placeholder.webp"
        )

    def test_storage_key(self):
        self.assertEqual(self.images.storage_key(f"{BASE}/product/x.webp"), "product/x.webp")
        self.assertEqual(self.images.storage_key("category/y.png"), "category/y.png")
        self.assertIsNone(self.images.storage_key("/uploads/old.jpg"))
        self.assertIsNone(self.images.storage_key("https://cdn.test/product/x.webp"))
        self.assertTrue(self.images.is_r2_key("legacy-key.webp"))
        self.assertFalse(self.images.is_r2_key("/uploads/old.jpg"))

    def test_generate_key(self):
        key = generate_key("banner", "Hero.PNG")
        self.assertTrue(key.startswith("banner/"))
        self.assertTrue(key.endswith(".png"))
        self.assertTrue(generate_key("product").endswith(".webp"))


class MediaApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.auth_headers(roles=("Editor",))
        self.storage = get_storage_client()

    def upload(self, data, content_type="image/png", kind="product"):
        return self.client.post(
            "/api/admin/media/upload",
            files={"file": ("photo.png", data, content_type)},
            data={"kind": kind, "alt": "A red swatch"},
            headers=self.headers,
        )

    def test_upload_records_dimensions(self):
        response = self.upload(png_bytes(4, 3))
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["key"].startswith("product/"))
        self.assertEqual((body["width"], body["height"]), (4, 3))
        self.assertEqual(body["mime"], "image/png")
        self.assertEqual(body["url"], f"{BASE}/{body['key']}")
        self.assertIn(body["key"], self.storage.stored_objects)

        items = self.client.get("/api/admin/media", headers=self.headers).json()["items"]
        self.assertEqual(items[0]["alt"], "A red swatch")
        self.assertEqual(items[0]["url"], body["url"])

    def test_upload_validation(self):
        response = self.upload(b"plain text", content_type="text/plain")
        self.assertEqual(response.status_code, 400)
        self.assertIn("invalid file type", response.json()["error"])

        response = self.upload(png_bytes(), kind="avatar")
        self.assertEqual(response.status_code, 400)

        response = self.upload(b"\0" * (5 * 1024 * 1024 + 1))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "file size exceeds 5MB limit"})
        self.assertEqual(self.storage.stored_objects, {})

    def test_public_proxy(self):
        key = self.upload(png_bytes()).json()["key"]
        response = self.client.get(f"/api/public/media/{key.replace('/', '_')}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["content-type"], "image/png")
        self.assertEqual(response.headers["cache-control"], "public, max-age=31536000")
        self.assertEqual(response.content, self.storage.stored_objects[key][0])

        response = self.client.get("/api/public/media/product_missing.webp")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Image not found"})

    def test_presign(self):
        response = self.client.post(
            "/api/admin/media/presign",
            json={"filename": "hero.jpg", "content_type": "image/jpeg", "kind": "banner"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["key"].startswith("banner/"))
        self.assertIn(body["key"], body["upload_url"])
        self.assertEqual(body["public_url"], f"{BASE}/{body['key']}")

    def test_delete_detaches_product_images(self):
        media = self.upload(png_bytes()).json()
        product_id = self.make_product(images=[{"media_id": media["id"]}])
        detail = self.client.get("/api/products/silk-tote").json()
        self.assertEqual(detail["hero_image"]["url"], media["url"])

        response = self.client.delete(f"/api/admin/media/{media['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 204)
        self.assertNotIn(media["key"], self.storage.stored_objects)
        self.assertEqual(self.db.get_product(product_id)["images"], [])

        response = self.client.delete(f"/api/admin/media/{media['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 404)


if __name__ == "__main__":
    unittest.main()
