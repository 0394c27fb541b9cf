from __future__ import annotations

import unittest
from unittest.mock import patch

from app_harness import PropertyHubTestCase

from propertyhub.utils.errors import Conflict, NotFoundOrUnauthorized, ValidationError


class ApiErrorContractTestCase(PropertyHubTestCase):
    def _assert_shape(self, res, status: int, error: str | None = None):
        self.assertEqual(res.status_code, status)
        self.assertTrue(res.is_json)
        body = res.get_json(force=True) or {}
        self.assertFalse(bool(body.get("ok", True)))
        self.assertTrue(str(body.get("error") or "").strip())
        self.assertTrue(str(body.get("message") or "").strip())
        self.assertEqual(int(body.get("status") or 0), status)
        self.assertTrue(str(body.get("trace_id") or "").strip())
        if error is not None:
            self.assertEqual(body.get("error"), error)
        return body

    def test_unknown_api_route_returns_json_error_shape(self):
        self._assert_shape(self.client.get("/api/does-not-exist"), 404)

    def test_missing_token_returns_json_error_shape(self):
        self._assert_shape(self.client.post("/api/properties", json={"title": "x", "price": 1}), 401)

    def test_engine_error_carries_kind_and_details(self):
        body = self._assert_shape(self.client.get("/api/properties?page=0"), 400, "ValidationError")
        self.assertEqual((body.get("details") or {}).get("field"), "page")

    def test_page_beyond_sql_integer_range_is_rejected(self):
        body = self._assert_shape(
            self.client.get("/api/properties", query_string={"page": "99999999999999999999999"}),
            400,
            "ValidationError",
        )
        self.assertEqual((body.get("details") or {}).get("field"), "page")

        body = self._assert_shape(
            self.client.get("/api/properties", query_string={"limit": str(2**64)}),
            400,
            "ValidationError",
        )
        self.assertEqual((body.get("details") or {}).get("field"), "limit")

    def test_unexpected_exception_renders_internal_error(self):
        with patch("propertyhub.segments.segment_properties.search_listings", side_effect=RuntimeError("boom")):
            body = self._assert_shape(self.client.get("/api/properties"), 500, "InternalError")
        self.assertEqual(body.get("message"), "Internal server error")

    def test_unlike_disabled_by_default(self):
        res = self.client.delete("/api/properties/1/like")
        self._assert_shape(res, 405)

    def test_error_classes_map_to_statuses(self):
        self.assertEqual(ValidationError("x").to_dict()["status"], 400)
        self.assertEqual(NotFoundOrUnauthorized().to_dict()["error"], "NotFoundOrUnauthorized")
        self.assertEqual(NotFoundOrUnauthorized().status, 404)
        self.assertEqual(Conflict("dup").to_dict(), {"ok": False, "error": "Conflict", "message": "dup", "status": 409})


if __name__ == "__main__":
    unittest.main()
