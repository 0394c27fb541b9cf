from __future__ import annotations

import unittest

from app_harness import PropertyHubTestCase


class AuthRoutesTestCase(PropertyHubTestCase):
    def _register(self, **overrides):
        payload = {
            "firstName": "Ngozi",
            "lastName": "Seller",
            "email": f"ngozi-{self._unique()}@propertyhub.test",
            "phone": "08012345678",
            "password": "pw1",
            "isSeller": True,
        }
        payload.update(overrides)
        return payload, self.client.post("/api/users/register", json=payload)

    def test_register_login_and_me(self):
        payload, res = self._register()
        self.assertEqual(res.status_code, 201)
        user = (res.get_json(force=True) or {}).get("user") or {}
        self.assertEqual(user.get("email"), payload["email"])
        self.assertTrue(user.get("isSeller"))
        self.assertNotIn("password_hash", user)

        login = self.client.post(
            "/api/users/login",
            json={"email": payload["email"].upper(), "password": payload["password"]},
        )
        self.assertEqual(login.status_code, 200)
        body = login.get_json(force=True) or {}
        token = body.get("token")
        self.assertTrue(isinstance(token, str) and token)
        self.assertEqual(body.get("expires_in"), 3600)

        me = self.client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(me.status_code, 200)
        self.assertEqual(((me.get_json(force=True) or {}).get("user") or {}).get("id"), user.get("id"))

    def test_duplicate_email_conflicts(self):
        payload, first = self._register()
        self.assertEqual(first.status_code, 201)
        _payload, second = self._register(email=payload["email"])
        self.assertEqual(second.status_code, 409)
        self.assertEqual((second.get_json(force=True) or {}).get("error"), "Conflict")

    def test_registration_validation(self):
        for overrides in (
            {"email": "not-an-email"},
            {"password": "ab"},
            {"firstName": ""},
            {"lastName": "  "},
        ):
            _payload, res = self._register(**overrides)
            self.assertEqual(res.status_code, 400, overrides)
            self.assertEqual((res.get_json(force=True) or {}).get("error"), "ValidationError")

    def test_wrong_password_is_unauthorized(self):
        payload, _res = self._register()
        res = self.client.post("/api/users/login", json={"email": payload["email"], "password": "nope"})
        self.assertEqual(res.status_code, 401)
        res = self.client.post("/api/users/login", json={"email": payload["email"]})
        self.assertEqual(res.status_code, 400)

    def test_me_requires_valid_token(self):
        self.assertEqual(self.client.get("/api/users/me").status_code, 401)
        res = self.client.get("/api/users/me", headers={"Authorization": "Bearer garbage"})
        self.assertEqual(res.status_code, 401)


if __name__ == "__main__":
    unittest.main()
