from __future__ import annotations

import unittest

from app_harness import PropertyHubTestCase

from propertyhub.extensions import db
from propertyhub.models import Listing, ListingInterest, ListingLike
from propertyhub.services.interaction_ledger_service import register_interest, register_like
from propertyhub.services.reconciliation_service import recompute_like_counters
from propertyhub.utils.auth_context import AuthContext
from propertyhub.utils.errors import Conflict, NotFound


class InteractionLedgerTestCase(PropertyHubTestCase):
    def setUp(self):
        self.owner_id = self._user("Owner", "Ledger", is_seller=True)
        self.buyer_id = self._user("Bola", "Buyer")
        self.listing_id = self._listing(self.owner_id, title="Harbour loft", location="3 Wharf Lane")

    def _like(self, user_id: int):
        return self.client.post(f"/api/properties/{self.listing_id}/like", headers=self._auth(user_id))

    def _counter_and_members(self) -> tuple[int, int]:
        with self.app.app_context():
            listing = db.session.get(Listing, self.listing_id)
            members = ListingLike.query.filter_by(listing_id=self.listing_id).count()
            return int(listing.likes), int(members)

    def test_like_is_idempotent_per_user(self):
        first = self._like(self.buyer_id)
        second = self._like(self.buyer_id)
        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        body = second.get_json(force=True) or {}
        self.assertEqual(body.get("likes"), 1)
        self.assertEqual(body.get("likedBy"), 1)
        self.assertEqual(self._counter_and_members(), (1, 1))

    def test_distinct_users_each_count_once(self):
        other = self._user("Chidi", "Second")
        self._like(self.buyer_id)
        self._like(other)
        self._like(other)
        self.assertEqual(self._counter_and_members(), (2, 2))

    def test_like_unknown_listing_is_not_found(self):
        res = self.client.post("/api/properties/999999/like", headers=self._auth(self.buyer_id))
        self.assertEqual(res.status_code, 404)
        self.assertEqual((res.get_json(force=True) or {}).get("error"), "NotFound")

    def test_like_requires_auth(self):
        res = self.client.post(f"/api/properties/{self.listing_id}/like")
        self.assertEqual(res.status_code, 401)

    def test_like_race_loser_leaves_counter_alone(self):
        # The winning writer already landed its membership row and increment.
        with self.app.app_context():
            db.session.add(ListingLike(listing_id=self.listing_id, user_id=self.buyer_id))
            db.session.get(Listing, self.listing_id).likes = 1
            db.session.commit()

            counts = register_like(self.listing_id, AuthContext(user_id=self.buyer_id))
        self.assertEqual(counts, {"likes": 1, "likedBy": 1})
        self.assertEqual(self._counter_and_members(), (1, 1))

    def test_counter_matches_membership_after_mixed_operations(self):
        other = self._user("Dayo", "Third")
        self._like(self.buyer_id)
        self.client.post(f"/api/properties/{self.listing_id}/interest", headers=self._auth(self.buyer_id))
        self.client.patch(
            f"/api/properties/{self.listing_id}",
            json={"price": 999},
            headers=self._auth(self.owner_id),
        )
        self._like(other)
        self._like(self.buyer_id)
        self.client.patch(
            f"/api/properties/{self.listing_id}",
            json={"price": 1},
            headers=self._auth(other),
        )
        likes, members = self._counter_and_members()
        self.assertEqual(likes, members)
        self.assertEqual(likes, 2)

        with self.app.app_context():
            self.assertEqual(recompute_like_counters()["drift_count"], 0)

    def test_interest_returns_owner_contact(self):
        res = self.client.post(f"/api/properties/{self.listing_id}/interest", headers=self._auth(self.buyer_id))
        self.assertEqual(res.status_code, 200)
        owner = (res.get_json(force=True) or {}).get("owner") or {}
        self.assertEqual(owner.get("firstName"), "Owner")
        self.assertEqual(owner.get("lastName"), "Ledger")
        self.assertIn("@propertyhub.test", owner.get("email") or "")
        self.assertIn("phone", owner)

    def test_second_interest_conflicts_without_changing_state(self):
        first = self.client.post(f"/api/properties/{self.listing_id}/interest", headers=self._auth(self.buyer_id))
        second = self.client.post(f"/api/properties/{self.listing_id}/interest", headers=self._auth(self.buyer_id))
        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 409)
        body = second.get_json(force=True) or {}
        self.assertEqual(body.get("error"), "Conflict")
        self.assertEqual(body.get("message"), "You have already expressed interest in this property")
        with self.app.app_context():
            self.assertEqual(ListingInterest.query.filter_by(listing_id=self.listing_id).count(), 1)

    def test_interest_race_loser_gets_conflict(self):
        with self.app.app_context():
            db.session.add(ListingInterest(listing_id=self.listing_id, user_id=self.buyer_id))
            db.session.commit()
            with self.assertRaises(Conflict):
                register_interest(self.listing_id, AuthContext(user_id=self.buyer_id))
            self.assertEqual(ListingInterest.query.filter_by(listing_id=self.listing_id).count(), 1)

    def test_interest_in_unknown_listing_or_by_unknown_user(self):
        res = self.client.post("/api/properties/999999/interest", headers=self._auth(self.buyer_id))
        self.assertEqual(res.status_code, 404)
        with self.app.app_context():
            with self.assertRaises(NotFound):
                register_interest(self.listing_id, AuthContext(user_id=987654))

    def test_interested_buyers_listing(self):
        self.client.post(f"/api/properties/{self.listing_id}/interest", headers=self._auth(self.buyer_id))
        res = self.client.get(f"/api/properties/{self.listing_id}/interest", headers=self._auth(self.owner_id))
        self.assertEqual(res.status_code, 200)
        buyers = (res.get_json(force=True) or {}).get("buyers") or []
        self.assertEqual([b.get("id") for b in buyers], [self.buyer_id])
        self.assertEqual(buyers[0].get("firstName"), "Bola")

        serialized = self.client.get("/api/properties", query_string={"search": "Harbour loft", "limit": 100})
        listings = (serialized.get_json(force=True) or {}).get("listings") or []
        mine = [x for x in listings if x["id"] == self.listing_id][0]
        self.assertEqual(mine["interestedBuyers"], [self.buyer_id])


if __name__ == "__main__":
    unittest.main()
