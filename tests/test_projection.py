"""Tests for the per-user group projection and message fan-out."""

from __future__ import annotations

import unittest

from tradehub.group.models import Identity
from tests.mock_utils import GroupServiceTestMixin


class ListUserGroupsTestCase(GroupServiceTestMixin, unittest.TestCase):
    def test_lists_entries_newest_message_first(self) -> None:
        self.seed_group("g1", "alice", ["alice", "bob"])
        self.seed_group("g2", "bob", ["alice", "bob"])
        self.rtdb.write("group_meta_data/alice/g2/lastMessageTimestamp", 99)

        result = self.service.list_user_groups("alice")

        self.assertTrue(result["success"])
        self.assertEqual([g["groupId"] for g in result["groups"]], ["g2", "g1"])
        self.assertEqual(result["removedCount"], 0)
        self.assertEqual(result["repairedCount"], 0)

    def test_zombie_entries_are_removed(self) -> None:
        self.seed_group("g1", "alice", ["alice", "bob"])
        self.seed_group("g2", "bob", ["bob"])
        self.rtdb.write("group_meta_data/alice/deleted", {"groupId": "deleted"})
        self.rtdb.write("group_meta_data/alice/g2", {"groupId": "g2"})

        result = self.service.list_user_groups("alice")

        self.assertEqual([g["groupId"] for g in result["groups"]], ["g1"])
        self.assertEqual(result["removedCount"], 2)
        self.assertIsNone(self.meta("alice", "deleted"))
        self.assertIsNone(self.meta("alice", "g2"))
        self.assertIsNotNone(self.meta("bob", "g2"))

    def test_missing_entries_are_repaired(self) -> None:
        self.seed_group("g1", "alice", ["alice", "bob"], with_meta=False)

        result = self.service.list_user_groups("bob")

        self.assertEqual(result["repairedCount"], 1)
        self.assertEqual([g["groupId"] for g in result["groups"]], ["g1"])
        self.assertEqual(self.meta("bob", "g1")["createdBy"], "alice")

    def test_store_failure_is_a_result(self) -> None:
        self.rtdb.deny_reads.add("group_meta_data/alice")

        result = self.service.list_user_groups("alice")

        self.assertFalse(result["success"])
        self.assertEqual(result["errorKind"], "StoreFailure")


class SyncGroupProjectionsTestCase(GroupServiceTestMixin, unittest.TestCase):
    def test_recreates_missing_entries_only(self) -> None:
        self.seed_group("g1", "alice", ["alice", "bob", "carol"])
        self.rtdb.write("group_meta_data/bob/g1", None)
        self.rtdb.write("group_meta_data/alice/g1/unreadCount", 4)

        result = self.service.sync_group_projections("g1")

        self.assertEqual(result["repairedCount"], 1)
        self.assertEqual(self.meta("bob", "g1")["groupName"], "Group g1")
        self.assertEqual(self.meta("alice", "g1")["unreadCount"], 4)

    def test_unknown_group(self) -> None:
        self.assertEqual(
            self.service.sync_group_projections("nope")["errorKind"], "NotFound"
        )


class PostMessageTestCase(GroupServiceTestMixin, unittest.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.seed_group("g1", "alice", ["alice", "bob"])
        self.rtdb.write("group_meta_data/bob/g1/unreadCount", 2)

    def test_message_fans_out_to_every_member(self) -> None:
        result = self.service.post_message(
            "g1", Identity(id="alice", display_name="Alice"), "  hello  "
        )

        self.assertTrue(result["success"])
        stored = self.rtdb.read(f"group_messages/g1/messages/{result['messageId']}")
        self.assertEqual(stored["text"], "hello")
        self.assertEqual(stored["timestamp"], self.now)
        alice, bob = self.meta("alice", "g1"), self.meta("bob", "g1")
        self.assertEqual(alice["unreadCount"], 0)
        self.assertEqual(bob["unreadCount"], 3)
        self.assertEqual(bob["lastMessage"], "hello")
        self.assertEqual(bob["lastMessageSenderName"], "Alice")
        self.assertEqual(bob["lastMessageTimestamp"], self.now)

    def test_muted_and_outside_senders_are_rejected(self) -> None:
        self.db.collection("groups").document("g1").update(
            {"members": {"alice": {"id": "alice"}, "bob": {"id": "bob", "muted": True}}}
        )
        muted = self.service.post_message("g1", Identity(id="bob"), "hi")
        outsider = self.service.post_message("g1", Identity(id="carol"), "hi")
        empty = self.service.post_message("g1", Identity(id="alice"), "   ")

        self.assertEqual(muted["errorKind"], "Unauthorized")
        self.assertEqual(outsider["errorKind"], "Unauthorized")
        self.assertEqual(empty["errorKind"], "InvalidInput")
        self.assertIsNone(self.rtdb.read("group_messages/g1"))


if __name__ == "__main__":
    unittest.main()
