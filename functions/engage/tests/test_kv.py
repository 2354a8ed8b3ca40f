import unittest

from engage.errors import InvalidInputError
from engage.feed import InMemoryChangeFeed
from engage.kv import InMemoryKeyValueStore


class InMemoryKeyValueStoreTests(unittest.TestCase):
    def setUp(self):
        self.kv = InMemoryKeyValueStore(feed=InMemoryChangeFeed())

    def test_nested_set_and_get(self):
        self.kv.set("games/ABC123", {"status": "lobby", "players": {}})
        self.kv.set("games/ABC123/players/p1", {"name": "Ada", "score": 0})
        self.assertEqual(self.kv.get("games/ABC123/players/p1/name"), "Ada")
        self.assertTrue(self.kv.exists("games/ABC123"))
        self.assertIsNone(self.kv.get("games/ABC123/players/p2"))

    def test_setting_none_or_empty_deletes(self):
        self.kv.set("games/ABC123", {"status": "lobby", "players": {"p1": {"name": "Ada"}}})
        self.kv.set("games/ABC123/players/p1", None)
        self.assertIsNone(self.kv.get("games/ABC123/players"))
        self.kv.set("games/ABC123", {})
        self.assertFalse(self.kv.exists("games/ABC123"))
        self.assertEqual(self.kv.roots, {})

    def test_update_merges_children(self):
        self.kv.set("games/ABC123", {"status": "lobby", "current_question_index": -1})
        self.kv.update(
            "games/ABC123", {"status": "active", "players/p1/score": 5, "current_question_index": 0}
        )
        state = self.kv.get("games/ABC123")
        self.assertEqual(state["status"], "active")
        self.assertEqual(state["current_question_index"], 0)
        self.assertEqual(state["players"], {"p1": {"score": 5}})

    def test_transact_returns_written_value(self):
        self.kv.set("counters/room", {"value": 1})
        written = self.kv.transact("counters/room/value", lambda current: (current or 0) + 1)
        self.assertEqual(written, 2)
        self.assertEqual(self.kv.get("counters/room/value"), 2)

    def test_paths_need_two_segments(self):
        with self.assertRaises(InvalidInputError):
            self.kv.get("games")

    def test_watch_sends_current_value_and_changes(self):
        seen = []
        stop = self.kv.watch("games/ABC123/status", seen.append)
        self.kv.set("games/ABC123", {"status": "lobby"})
        self.kv.update("games/ABC123", {"status": "active"})
        stop()
        self.kv.update("games/ABC123", {"status": "finished"})
        self.assertEqual(seen, [None, "lobby", "active"])

    def test_reset(self):
        self.kv.set("games/ABC123", {"status": "lobby"})
        self.kv.reset()
        self.assertIsNone(self.kv.get("games/ABC123"))


if __name__ == "__main__":
    unittest.main()
