"""Tests for leaving, removing and creator transfer."""

from __future__ import annotations

import unittest

from tests.mock_utils import GroupServiceTestMixin


class LeaveGroupTestCase(GroupServiceTestMixin, unittest.TestCase):
    def test_creator_leaving_hands_over_to_remaining_member(self) -> None:
        self.seed_group("g1", "alice", ["alice", "bob"])

        result = self.service.leave_group("g1", "alice")

        self.assertTrue(result["success"])
        self.assertEqual(result["newCreatorId"], "bob")
        data = self.group_data("g1")
        self.assertEqual(data["createdBy"], "bob")
        self.assertEqual(data["memberIds"], ["bob"])
        self.assert_consistent("g1")
        self.assertIsNone(self.meta("alice", "g1"))
        self.assertEqual(self.meta("bob", "g1")["createdBy"], "bob")

    def test_successor_is_chosen_among_remaining_members(self) -> None:
        self.seed_group("g1", "alice", ["alice", "bob", "carol"])
        seen = []

        def pick(ids):
            seen.append(list(ids))
            return ids[-1]

        self.ctx.pick_successor = pick
        result = self.service.leave_group("g1", "alice")

        self.assertEqual(seen, [["bob", "carol"]])
        self.assertEqual(result["newCreatorId"], "carol")
        self.assertEqual(self.group_data("g1")["createdBy"], "carol")

    def test_plain_member_leaves(self) -> None:
        self.seed_group("g1", "alice", ["alice", "bob", "carol"])

        result = self.service.leave_group("g1", "bob")

        self.assertTrue(result["success"])
        self.assertNotIn("newCreatorId", result)
        data = self.group_data("g1")
        self.assertEqual(data["createdBy"], "alice")
        self.assertEqual(data["memberIds"], ["alice", "carol"])
        self.assertNotIn("bob", data["members"])
        self.assert_consistent("g1")
        self.assertIsNone(self.meta("bob", "g1"))
        self.assertIsNotNone(self.meta("carol", "g1"))

    def test_last_member_leaving_deletes_group(self) -> None:
        self.seed_group("g1", "alice", ["alice"])
        self.rtdb.write("groups/g1", {"memberIds": {"alice": True}})
        self.rtdb.write("group_messages/g1/messages/1", {"text": "hi"})
        self.db.collection("group_invitations").document("i1").set(
            {"groupId": "g1", "invitedUserId": "bob", "status": "pending"}
        )

        result = self.service.leave_group("g1", "alice")

        self.assertTrue(result["success"])
        self.assertTrue(result["groupDeleted"])
        self.assertIsNone(self.group_data("g1"))
        self.assertIsNone(self.meta("alice", "g1"))
        self.assertIsNone(self.rtdb.read("groups/g1"))
        self.assertIsNone(self.rtdb.read("group_messages/g1"))
        self.assertFalse(
            self.db.collection("group_invitations").document("i1").get().exists
        )

    def test_leaving_a_deleted_group_is_idempotent(self) -> None:
        self.seed_group("g1", "alice", ["alice"])
        self.assertTrue(self.service.leave_group("g1", "alice")["success"])

        again = self.service.leave_group("g1", "alice")

        self.assertTrue(again["success"])
        self.assertIsNone(self.meta("alice", "g1"))

    def test_missing_group_still_clears_stale_projection(self) -> None:
        self.rtdb.write("group_meta_data/alice/ghost", {"groupId": "ghost"})

        result = self.service.leave_group("ghost", "alice")

        self.assertTrue(result["success"])
        self.assertIsNone(self.meta("alice", "ghost"))

    def test_projection_removed_even_when_transaction_fails(self) -> None:
        self.seed_group("g1", "alice", ["alice", "bob"])
        self.documents.fail_transactions_with = RuntimeError("contention")

        result = self.service.leave_group("g1", "bob")

        self.assertFalse(result["success"])
        self.assertEqual(result["errorKind"], "StoreFailure")
        self.assertEqual(result["error"], "contention")
        self.assertIsNone(self.meta("bob", "g1"))
        self.assertIn("bob", self.group_data("g1")["memberIds"])

    def test_non_member_cannot_leave(self) -> None:
        self.seed_group("g1", "alice", ["alice", "bob"])

        result = self.service.leave_group("g1", "carol")

        self.assertEqual(result["errorKind"], "NotMember")
        self.assertEqual(self.group_data("g1")["memberIds"], ["alice", "bob"])

    def test_projection_failure_does_not_fail_leave(self) -> None:
        self.seed_group("g1", "alice", ["alice", "bob"])
        self.rtdb.fail_writes = True

        result = self.service.leave_group("g1", "bob")

        self.assertTrue(result["success"])
        self.assertEqual(self.group_data("g1")["memberIds"], ["alice"])


class RemoveMemberTestCase(GroupServiceTestMixin, unittest.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.seed_group("g1", "alice", ["alice", "bob", "carol"])

    def test_creator_removes_member(self) -> None:
        result = self.service.remove_member("g1", "bob", "alice")

        self.assertTrue(result["success"])
        data = self.group_data("g1")
        self.assertEqual(data["memberIds"], ["alice", "carol"])
        self.assert_consistent("g1")
        self.assertIsNone(self.meta("bob", "g1"))

    def test_non_creator_is_unauthorized(self) -> None:
        result = self.service.remove_member("g1", "carol", "bob")

        self.assertFalse(result["success"])
        self.assertEqual(result["errorKind"], "Unauthorized")
        self.assertEqual(self.group_data("g1")["memberIds"], ["alice", "bob", "carol"])
        self.assertIsNotNone(self.meta("carol", "g1"))

    def test_invalid_targets(self) -> None:
        self.assertEqual(
            self.service.remove_member("g1", "dave", "alice")["errorKind"], "NotMember"
        )
        self.assertEqual(
            self.service.remove_member("g1", "alice", "alice")["errorKind"],
            "InvalidInput",
        )
        self.assertEqual(
            self.service.remove_member("nope", "bob", "alice")["errorKind"], "NotFound"
        )
        self.assertEqual(
            self.service.remove_member("g1", "", "alice")["errorKind"],
            "MissingParameters",
        )


class MakeMemberCreatorTestCase(GroupServiceTestMixin, unittest.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.seed_group("g1", "alice", ["alice", "bob"])

    def test_transfer(self) -> None:
        result = self.service.make_member_creator("g1", "bob", "alice")

        self.assertTrue(result["success"])
        data = self.group_data("g1")
        self.assertEqual(data["createdBy"], "bob")
        self.assertEqual(data["memberCount"], 2)
        self.assertEqual(self.meta("alice", "g1")["createdBy"], "bob")

        # The old creator has no way back.
        back = self.service.make_member_creator("g1", "alice", "alice")
        self.assertEqual(back["errorKind"], "Unauthorized")

    def test_guards(self) -> None:
        self.assertEqual(
            self.service.make_member_creator("g1", "alice", "bob")["errorKind"],
            "Unauthorized",
        )
        self.assertEqual(
            self.service.make_member_creator("g1", "carol", "alice")["errorKind"],
            "NotMember",
        )
        self.assertEqual(
            self.service.make_member_creator("g1", "alice", "alice")["errorKind"],
            "InvalidInput",
        )
        self.assertEqual(self.group_data("g1")["createdBy"], "alice")

    def test_new_creator_can_manage_members(self) -> None:
        self.service.make_member_creator("g1", "bob", "alice")

        result = self.service.remove_member("g1", "alice", "bob")

        self.assertTrue(result["success"])
        self.assertEqual(self.group_data("g1")["memberIds"], ["bob"])


if __name__ == "__main__":
    unittest.main()
