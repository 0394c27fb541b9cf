from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from app_harness import PropertyHubTestCase

from propertyhub.utils import policy


class PolicyDefaultsTestCase(unittest.TestCase):
    def test_defaults_preserve_legacy_behaviour(self):
        cleared = {
            "LISTINGS_DEFAULT_BEDROOMS_MIN": "",
            "LISTINGS_MAX_PAGE_LIMIT": "",
            "INTERESTED_BUYERS_OWNER_ONLY": "",
            "LIKES_ALLOW_UNLIKE": "",
        }
        with patch.dict(os.environ, cleared):
            self.assertEqual(
                policy.snapshot(),
                {
                    "listings_default_bedrooms_min": 1,
                    "listings_max_page_limit": 0,
                    "interested_buyers_owner_only": False,
                    "likes_allow_unlike": False,
                },
            )

    def test_bad_values_fall_back_to_defaults(self):
        with patch.dict(os.environ, {"LISTINGS_DEFAULT_BEDROOMS_MIN": "lots", "LIKES_ALLOW_UNLIKE": "maybe"}):
            self.assertEqual(policy.default_bedrooms_min(), 1)
            self.assertFalse(policy.likes_allow_unlike())


class UnlikeEnabledTestCase(PropertyHubTestCase):
    extra_env = {"LIKES_ALLOW_UNLIKE": "1"}

    def setUp(self):
        self.owner_id = self._user("Owner", "Unlike")
        self.fan_id = self._user("Fan", "Unlike")
        self.listing_id = self._listing(self.owner_id, title="Reversible bungalow")

    def test_unlike_decrements_once(self):
        url = f"/api/properties/{self.listing_id}/like"
        self.client.post(url, headers=self._auth(self.fan_id))

        first = self.client.delete(url, headers=self._auth(self.fan_id))
        self.assertEqual(first.status_code, 200)
        self.assertEqual((first.get_json(force=True) or {}).get("likes"), 0)

        second = self.client.delete(url, headers=self._auth(self.fan_id))
        self.assertEqual(second.status_code, 200)
        body = second.get_json(force=True) or {}
        self.assertEqual((body.get("likes"), body.get("likedBy")), (0, 0))

        again = self.client.post(url, headers=self._auth(self.fan_id))
        self.assertEqual((again.get_json(force=True) or {}).get("likes"), 1)

    def test_unlike_requires_auth(self):
        res = self.client.delete(f"/api/properties/{self.listing_id}/like")
        self.assertEqual(res.status_code, 401)


class OwnerOnlyBuyersTestCase(PropertyHubTestCase):
    extra_env = {"INTERESTED_BUYERS_OWNER_ONLY": "1"}

    def setUp(self):
        self.owner_id = self._user("Owner", "Private")
        self.buyer_id = self._user("Buyer", "Private")
        self.listing_id = self._listing(self.owner_id, title="Private terrace")
        self.client.post(f"/api/properties/{self.listing_id}/interest", headers=self._auth(self.buyer_id))

    def test_owner_sees_buyers(self):
        res = self.client.get(f"/api/properties/{self.listing_id}/interest", headers=self._auth(self.owner_id))
        self.assertEqual(res.status_code, 200)
        self.assertEqual(len((res.get_json(force=True) or {}).get("buyers") or []), 1)

    def test_non_owner_is_refused_like_a_missing_listing(self):
        res = self.client.get(f"/api/properties/{self.listing_id}/interest", headers=self._auth(self.buyer_id))
        missing = self.client.get("/api/properties/999999/interest", headers=self._auth(self.buyer_id))
        self.assertEqual(res.status_code, 404)
        self.assertEqual(missing.status_code, 404)
        self.assertEqual((res.get_json(force=True) or {}).get("error"), "NotFoundOrUnauthorized")
        self.assertEqual((missing.get_json(force=True) or {}).get("error"), "NotFoundOrUnauthorized")


if __name__ == "__main__":
    unittest.main()
