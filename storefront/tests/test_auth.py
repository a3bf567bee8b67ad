import unittest
from datetime import timedelta

import jwt

from storefront.auth import (
    Principal,
    decode_token,
    hash_password,
    issue_token,
    verify_password,
)
from storefront.dependencies import get_kv_store
from storefront.tests.base import ApiTestCase


class TokenTests(unittest.TestCase):
    def test_password_hashing(self):
        hashed = hash_password("correct horse")
        self.assertTrue(verify_password("correct horse", hashed))
        self.assertFalse(verify_password("wrong horse", hashed))
        self.assertFalse(verify_password("anything", "not-a-bcrypt-hash"))

    def test_decode_checks_type_and_expiry(self):
        token = issue_token("secret", 7, ["Admin"], timedelta(minutes=5))
        self.assertEqual(
            decode_token("secret", token), Principal(user_id=7, roles=["Admin"])
        )
        with self.assertRaises(jwt.InvalidTokenError):
            decode_token("secret", token, token_type="refresh")
        with self.assertRaises(jwt.InvalidTokenError):
            decode_token("other-secret", token)

        expired = issue_token("secret", 7, [], timedelta(seconds=-1))
        with self.assertRaises(jwt.ExpiredSignatureError):
            decode_token("secret", expired)


class AuthApiTests(ApiTestCase):
    def test_signup_then_me(self):
        response = self.client.post(
            "/api/auth/signup",
            json={"email": "new@example.com", "password": "password123", "name": "Asha"},
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["user"]["roles"], ["customer"])
        self.assertEqual(body["user"]["name"], "Asha")

        headers = {"Authorization": f"Bearer {body['accessToken']}"}
        me = self.client.get("/api/public/me", headers=headers)
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["email"], "new@example.com")

        response = self.client.post(
            "/api/auth/signup",
            json={"email": "new@example.com", "password": "password123"},
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json(), {"error": "user already exists"})

    def test_signup_validates_password_length(self):
        response = self.client.post(
            "/api/auth/signup", json={"email": "short@example.com", "password": "short"}
        )
        self.assertEqual(response.status_code, 400)

    def test_login_refresh_logout(self):
        self.make_user(email="staff@example.com", roles=("Admin",))
        response = self.client.post(
            "/api/admin/auth/login",
            json={"email": "Staff@example.com", "password": "password123"},
        )
        self.assertEqual(response.status_code, 200)
        tokens = response.json()
        self.assertEqual(tokens["user"]["roles"], ["Admin"])

        headers = {"Authorization": f"Bearer {tokens['accessToken']}"}
        self.assertEqual(self.client.get("/api/admin/me", headers=headers).status_code, 200)

        response = self.client.post(
            "/api/admin/auth/refresh", json={"refreshToken": tokens["refreshToken"]}
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn("accessToken", response.json())

        response = self.client.post(
            "/api/admin/auth/logout", json={"refreshToken": tokens["refreshToken"]}
        )
        self.assertEqual(response.json(), {"success": True})

        response = self.client.post(
            "/api/admin/auth/refresh", json={"refreshToken": tokens["refreshToken"]}
        )
        self.assertEqual(response.status_code, 401)

    def test_access_token_is_not_a_refresh_token(self):
        headers = self.auth_headers()
        token = headers["Authorization"].split(" ", 1)[1]
        response = self.client.post("/api/auth/refresh", json={"refreshToken": token})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "invalid refresh token"})

    def test_login_rejects_bad_credentials(self):
        self.make_user(email="staff@example.com")
        response = self.client.post(
            "/api/auth/login",
            json={"email": "staff@example.com", "password": "wrong-password"},
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "invalid credentials"})

    def test_login_is_throttled_per_ip(self):
        for _ in range(5):
            response = self.client.post(
                "/api/auth/login",
                json={"email": "nobody@example.com", "password": "x"},
            )
            self.assertEqual(response.status_code, 401)
        response = self.client.post(
            "/api/auth/login", json={"email": "nobody@example.com", "password": "x"}
        )
        self.assertEqual(response.status_code, 429)

        response = self.client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": "x"},
            headers={"X-Forwarded-For": "203.0.113.9"},
        )
        self.assertEqual(response.status_code, 401)

    def test_me_requires_bearer_token(self):
        self.assertEqual(self.client.get("/api/auth/me").status_code, 401)
        response = self.client.get(
            "/api/auth/me", headers={"Authorization": "Bearer garbage"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "invalid token"})

    def test_me_for_deleted_user(self):
        headers = self.auth_headers()
        self.db.delete_user(self.db.get_user_credentials("admin@example.com")["id"])
        response = self.client.get("/api/auth/me", headers=headers)
        self.assertEqual(response.status_code, 404)


class PasswordResetTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.make_user(email="forgetful@example.com", roles=("customer",))
        self.kv = get_kv_store()

    def test_full_reset_flow(self):
        response = self.client.post(
            "/api/auth/forgot-password", json={"email": "forgetful@example.com"}
        )
        self.assertEqual(response.json(), {"message": "OTP sent to your email"})
        otp = self.kv.get("otp:forgetful@example.com")
        self.assertEqual(len(otp), 6)

        response = self.client.post(
            "/api/auth/reset-password",
            json={"email": "forgetful@example.com", "newPassword": "brand-new-pass"},
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            "/api/auth/verify-otp", json={"email": "forgetful@example.com", "otp": otp}
        )
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.kv.get("otp:forgetful@example.com"))
        self.assertEqual(self.kv.get("verified:forgetful@example.com"), "true")

        response = self.client.post(
            "/api/auth/reset-password",
            json={"email": "forgetful@example.com", "newPassword": "brand-new-pass"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.kv.get("verified:forgetful@example.com"))

        response = self.client.post(
            "/api/auth/login",
            json={"email": "forgetful@example.com", "password": "brand-new-pass"},
        )
        self.assertEqual(response.status_code, 200)

    def test_unknown_email_gets_generic_message(self):
        response = self.client.post(
            "/api/auth/forgot-password", json={"email": "stranger@example.com"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "If email exists, OTP will be sent"})
        self.assertIsNone(self.kv.get("otp:stranger@example.com"))

    def test_wrong_otp(self):
        self.kv.set("otp:forgetful@example.com", "123456", 600)
        response = self.client.post(
            "/api/auth/verify-otp",
            json={"email": "forgetful@example.com", "otp": "654321"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "invalid OTP"})

        response = self.client.post(
            "/api/auth/verify-otp",
            json={"email": "someone@example.com", "otp": "123456"},
        )
        self.assertEqual(response.json(), {"error": "OTP not found or expired"})

    def test_non_ascii_otp_is_rejected(self):
        self.kv.set("otp:forgetful@example.com", "123456", 600)
        response = self.client.post(
            "/api/auth/verify-otp",
            json={"email": "forgetful@example.com", "otp": "12345\u00e9"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "invalid OTP"})

    def test_otp_is_burned_after_repeated_misses(self):
        self.kv.set("otp:forgetful@example.com", "123456", 600)
        statuses = [
            self.client.post(
                "/api/auth/verify-otp",
                json={"email": "forgetful@example.com", "otp": "000000"},
            ).status_code
            for _ in range(5)
        ]
        self.assertEqual(statuses, [400, 400, 400, 400, 429])
        self.assertIsNone(self.kv.get("otp:forgetful@example.com"))

        response = self.client.post(
            "/api/auth/verify-otp",
            json={"email": "forgetful@example.com", "otp": "123456"},
        )
        self.assertEqual(response.json(), {"error": "OTP not found or expired"})

        self.client.post("/api/auth/forgot-password", json={"email": "forgetful@example.com"})
        self.assertIsNone(self.kv.get("otp_attempts:forgetful@example.com"))


if __name__ == "__main__":
    unittest.main()
