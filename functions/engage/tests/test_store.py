import unittest

from engage.errors import ConflictError, InvalidInputError
from engage.feed import InMemoryChangeFeed
from engage.store import (
    DELETE_FIELD,
    ArrayRemove,
    ArrayUnion,
    DocumentNotFoundError,
    Increment,
    InMemoryDocumentStore,
    SqlDocumentStore,
    TransactionConflictError,
    split_path,
)


class DocumentStoreContract:
    """Behaviour shared by every document store implementation."""

    store = None

    def test_set_get_and_delete(self):
        self.store.set("classes/c1", {"name": "Math", "member_ids": []})
        self.assertEqual(self.store.get("classes/c1"), {"name": "Math", "member_ids": []})
        self.store.delete("classes/c1")
        self.assertIsNone(self.store.get("classes/c1"))

    def test_update_with_dotted_paths_and_transforms(self):
        self.store.set("games/g1", {"players": {"u1": {"score": 10}}, "tags": ["a"]})
        self.store.update(
            "games/g1",
            {
                "players.u1.score": Increment(5),
                "players.u2": {"score": 0},
                "tags": ArrayUnion("a", "b"),
            },
        )
        data = self.store.get("games/g1")
        self.assertEqual(data["players"]["u1"]["score"], 15)
        self.assertEqual(data["players"]["u2"], {"score": 0})
        self.assertEqual(data["tags"], ["a", "b"])

        self.store.update("games/g1", {"tags": ArrayRemove("a"), "players.u2": DELETE_FIELD})
        data = self.store.get("games/g1")
        self.assertEqual(data["tags"], ["b"])
        self.assertNotIn("u2", data["players"])

    def test_update_missing_document_raises(self):
        with self.assertRaises(DocumentNotFoundError):
            self.store.update("classes/missing", {"name": "x"})

    def test_merge_set_keeps_other_fields(self):
        self.store.set("users/u1", {"email": "a@b.c", "lifetime_points": 3})
        self.store.set("users/u1", {"lifetime_points": Increment(2)}, merge=True)
        self.assertEqual(self.store.get("users/u1"), {"email": "a@b.c", "lifetime_points": 5})

    def test_increment_on_missing_field_starts_at_zero(self):
        self.store.set("users/u2", {"lifetime_points": Increment(7)}, merge=True)
        self.assertEqual(self.store.get("users/u2")["lifetime_points"], 7)

    def test_query_filters_order_and_limit(self):
        for uid, points in (("a", 5), ("b", 20), ("c", 0), ("d", 12)):
            self.store.set(f"users/{uid}", {"lifetime_points": points})
        self.store.set("users/e", {"email": "no-points"})

        docs = self.store.query(
            "users", where=[("lifetime_points", ">", 0)], order_by="lifetime_points", descending=True
        )
        self.assertEqual([doc.id for doc in docs], ["b", "d", "a"])

        limited = self.store.query("users", order_by="lifetime_points", limit=2)
        self.assertEqual([doc.id for doc in limited], ["c", "a"])

        everything = self.store.query("users")
        self.assertEqual([doc.id for doc in everything], ["a", "b", "c", "d", "e"])

    def test_query_array_contains_and_in(self):
        self.store.set("classes/c1", {"member_ids": ["u1", "u2"], "code": "ABC"})
        self.store.set("classes/c2", {"member_ids": ["u3"], "code": "XYZ"})
        docs = self.store.query("classes", where=[("member_ids", "array_contains", "u2")])
        self.assertEqual([doc.id for doc in docs], ["c1"])
        docs = self.store.query("classes", where=[("code", "in", ["XYZ", "QQQ"])])
        self.assertEqual([doc.id for doc in docs], ["c2"])

    def test_unknown_operator_is_rejected(self):
        self.store.set("classes/c1", {"code": "ABC"})
        with self.assertRaises(InvalidInputError):
            self.store.query("classes", where=[("code", "~=", "ABC")])

    def test_subcollections_are_separate(self):
        self.store.set("classes/c1", {"name": "Math"})
        self.store.set("classes/c1/members/u1", {"score": 1})
        self.assertEqual([doc.id for doc in self.store.query("classes")], ["c1"])
        self.assertEqual([doc.id for doc in self.store.query("classes/c1/members")], ["u1"])

    def test_transaction_commits_all_writes_together(self):
        with self.store.transaction() as txn:
            txn.set("classes/c1/members/u1", {"score": 10})
            txn.set("users/u1", {"lifetime_points": 10})
            self.assertEqual(txn.get("users/u1"), {"lifetime_points": 10})
            self.assertIsNone(self.store.get("users/u1"))
        self.assertEqual(self.store.get("classes/c1/members/u1"), {"score": 10})
        self.assertEqual(self.store.get("users/u1"), {"lifetime_points": 10})

    def test_transaction_rolls_back_on_error(self):
        self.store.set("users/u1", {"lifetime_points": 1})
        with self.assertRaises(RuntimeError):
            with self.store.transaction() as txn:
                txn.update("users/u1", {"lifetime_points": Increment(5)})
                txn.set("users/u2", {"lifetime_points": 5})
                raise RuntimeError("boom")
        self.assertEqual(self.store.get("users/u1"), {"lifetime_points": 1})
        self.assertIsNone(self.store.get("users/u2"))

    def test_transaction_query_sees_pending_writes(self):
        self.store.set("polls/p1/votes/u1", {"option_id": "a"})
        with self.store.transaction() as txn:
            txn.set("polls/p1/votes/u2", {"option_id": "b"})
            txn.delete("polls/p1/votes/u1")
            docs = txn.query("polls/p1/votes")
            self.assertEqual([doc.id for doc in docs], ["u2"])

    def test_create_refuses_existing_document(self):
        self.store.set("access_codes/ABCD", {"active": True})
        with self.assertRaises(ConflictError):
            with self.store.transaction() as txn:
                txn.create("access_codes/ABCD", {"active": False})
        self.assertTrue(self.store.get("access_codes/ABCD")["active"])

    def test_add_generates_id(self):
        doc_id = self.store.add("analytics_events", {"type": "x"})
        self.assertEqual(self.store.get(f"analytics_events/{doc_id}"), {"type": "x"})

    def test_watch_reports_document_and_collection_changes(self):
        doc_events, collection_events = [], []
        stop_doc = self.store.watch("timers/t1", doc_events.append)
        stop_collection = self.store.watch("timers", collection_events.append)
        self.assertEqual(doc_events, ["timers/t1"])
        self.assertEqual(collection_events, ["timers"])

        self.store.set("timers/t1", {"status": "running"})
        self.store.set("timers/t2", {"status": "stopped"})
        self.assertEqual(doc_events, ["timers/t1", "timers/t1"])
        self.assertEqual(collection_events, ["timers", "timers/t1", "timers/t2"])

        stop_doc()
        stop_collection()
        self.store.set("timers/t1", {"status": "paused"})
        self.assertEqual(len(doc_events), 2)

    def test_failed_transaction_publishes_nothing(self):
        events = []
        self.store.watch("users/u1", events.append)
        with self.assertRaises(RuntimeError):
            with self.store.transaction() as txn:
                txn.set("users/u1", {"lifetime_points": 1})
                raise RuntimeError("boom")
        self.assertEqual(events, ["users/u1"])


class InMemoryDocumentStoreTests(DocumentStoreContract, unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore(feed=InMemoryChangeFeed())

    def test_reset_clears_everything(self):
        self.store.set("classes/c1", {"name": "Math"})
        self.store.reset()
        self.assertEqual(self.store.collections, {})

    def test_run_transaction_gives_up_after_max_attempts(self):
        store = InMemoryDocumentStore(max_attempts=3)
        calls = []

        def always_conflicts(txn):
            calls.append(1)
            raise TransactionConflictError("lost the race")

        with self.assertRaises(TransactionConflictError):
            store.run_transaction(always_conflicts)
        self.assertEqual(len(calls), 3)


class SqlDocumentStoreTests(DocumentStoreContract, unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL store.
    """

    def setUp(self):
        self.store = SqlDocumentStore("sqlite+pysqlite:///:memory:", feed=InMemoryChangeFeed())

    def tearDown(self):
        self.store.engine.dispose()

    def test_concurrent_write_forces_retry(self):
        self.store.set("buzzers/c1", {"buzzes": []})
        attempts = []

        def buzz(txn):
            attempts.append(1)
            data = txn.get("buzzers/c1")
            if len(attempts) == 1:
                # Another writer lands between our read and our commit.
                self.store.set("buzzers/c1", {"buzzes": ["u0"]})
            txn.update("buzzers/c1", {"buzzes": data["buzzes"] + ["u1"]})

        self.store.run_transaction(buzz)
        self.assertEqual(len(attempts), 2)
        self.assertEqual(self.store.get("buzzers/c1"), {"buzzes": ["u0", "u1"]})


class SplitPathTests(unittest.TestCase):
    def test_split_path(self):
        self.assertEqual(split_path("classes/c1/members/u1"), ("classes/c1/members", "u1"))
        with self.assertRaises(InvalidInputError):
            split_path("classes")
        with self.assertRaises(InvalidInputError):
            split_path("classes/c1/members")


if __name__ == "__main__":
    unittest.main()
