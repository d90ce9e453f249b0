"""Tests for the join-request workflow."""

from __future__ import annotations

import unittest

from tradehub.group.models import Identity
from tests.mock_utils import GroupServiceTestMixin

CAROL = Identity(id="carol", display_name="Carol", avatar="c.png")


class JoinRequestTestCase(GroupServiceTestMixin, unittest.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.seed_group("g1", "alice", ["alice", "bob"])

    def request(self, request_id: str) -> dict:
        return self.db.collection("group_join_requests").document(request_id).get().to_dict()

    def test_send_join_request_records_identity_and_creator(self) -> None:
        result = self.service.send_join_request("g1", CAROL)

        self.assertTrue(result["success"])
        data = self.request(result["requestId"])
        self.assertEqual(data["status"], "pending")
        self.assertEqual(data["creatorId"], "alice")
        self.assertEqual(data["requesterDisplayName"], "Carol")
        self.assertEqual(data["requesterAvatar"], "c.png")

    def test_send_join_request_to_full_group(self) -> None:
        self.seed_group("full", "alice", ["alice", "bob"], max_members=2)

        result = self.service.send_join_request("full", CAROL)

        self.assertFalse(result["success"])
        self.assertTrue(result["error"].startswith("Group is full"))
        self.assertEqual(result["errorKind"], "GroupFull")
        self.assertEqual(list(self.db.collection("group_join_requests").stream()), [])

    def test_send_join_request_guards(self) -> None:
        self.assertEqual(
            self.service.send_join_request("g1", Identity(id="bob"))["errorKind"],
            "AlreadyMember",
        )
        self.service.send_join_request("g1", CAROL)
        self.assertEqual(
            self.service.send_join_request("g1", CAROL)["errorKind"], "DuplicateRequest"
        )
        self.assertEqual(
            self.service.send_join_request("missing", CAROL)["errorKind"], "NotFound"
        )

    def test_approve_adds_requester(self) -> None:
        request_id = self.service.send_join_request("g1", CAROL)["requestId"]

        result = self.service.approve_join_request(request_id, "alice")

        self.assertTrue(result["success"])
        data = self.group_data("g1")
        self.assertEqual(data["memberIds"], ["alice", "bob", "carol"])
        self.assertEqual(data["members"]["carol"]["avatar"], "c.png")
        self.assert_consistent("g1")
        self.assertEqual(self.request(request_id)["status"], "approved")
        self.assertEqual(self.meta("carol", "g1")["groupId"], "g1")

    def test_approve_requires_stored_creator(self) -> None:
        request_id = self.service.send_join_request("g1", CAROL)["requestId"]

        result = self.service.approve_join_request(request_id, "bob")

        self.assertEqual(result["errorKind"], "Unauthorized")
        self.assertNotIn("carol", self.group_data("g1")["memberIds"])
        self.assertEqual(self.request(request_id)["status"], "pending")

    def test_approve_for_existing_member_is_not_an_error(self) -> None:
        request_id = self.service.send_join_request("g1", CAROL)["requestId"]
        self.seed_group("g1", "alice", ["alice", "bob", "carol"])

        result = self.service.approve_join_request(request_id, "alice")

        self.assertTrue(result["success"])
        self.assertTrue(result["alreadyMember"])
        self.assertEqual(self.request(request_id)["status"], "approved")
        self.assertEqual(self.group_data("g1")["memberCount"], 3)

    def test_approve_when_group_filled_up(self) -> None:
        request_id = self.service.send_join_request("g1", CAROL)["requestId"]
        self.db.collection("groups").document("g1").update({"maxMembers": 2})

        result = self.service.approve_join_request(request_id, "alice")

        self.assertEqual(result["errorKind"], "GroupFull")
        self.assertEqual(result["error"], "Group is now full")
        closed = self.request(request_id)
        self.assertEqual(closed["status"], "rejected")
        self.assertEqual(closed["rejectionReason"], "Group is now full")
        self.assertNotIn("carol", self.group_data("g1")["memberIds"])
        self.assertEqual(
            self.service.approve_join_request(request_id, "alice")["errorKind"],
            "AlreadyProcessed",
        )

    def test_reject_join_request(self) -> None:
        request_id = self.service.send_join_request("g1", CAROL)["requestId"]

        self.assertEqual(
            self.service.reject_join_request(request_id, "bob")["errorKind"],
            "Unauthorized",
        )
        self.assertTrue(self.service.reject_join_request(request_id, "alice")["success"])
        self.assertEqual(self.request(request_id)["status"], "rejected")
        self.assertEqual(
            self.service.approve_join_request(request_id, "alice")["errorKind"],
            "AlreadyProcessed",
        )
        self.assertNotIn("carol", self.group_data("g1")["memberIds"])

    def test_pending_join_requests_are_creator_only(self) -> None:
        request_id = self.service.send_join_request("g1", CAROL)["requestId"]
        dave_id = self.service.send_join_request("g1", Identity(id="dave"))["requestId"]
        self.service.reject_join_request(dave_id, "alice")

        listed = self.service.get_pending_join_requests("g1", "alice")
        self.assertEqual([r["id"] for r in listed["requests"]], [request_id])
        self.assertEqual(
            self.service.get_pending_join_requests("g1", "bob")["errorKind"],
            "Unauthorized",
        )


if __name__ == "__main__":
    unittest.main()
