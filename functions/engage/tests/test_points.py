import unittest
from unittest.mock import patch

from engage import classes, leadergrid, scoring, users
from engage.errors import InvalidInputError, NotFoundError
from engage.store import InMemoryDocumentStore
from shared.types import ActivityType, CurrentActivity, Role


class UserProfileTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()

    def test_ensure_profile_creates_once(self):
        profile = users.ensure_user_profile(self.store, "u1", "ada@example.com")
        self.assertEqual(profile.display_name, "ada")
        self.assertEqual(profile.role, Role.PLAYER)
        self.assertEqual(profile.lifetime_points, 0)

        again = users.ensure_user_profile(self.store, "u1", "ada@example.com", display_name="Other")
        self.assertEqual(again.display_name, "ada")

    def test_protected_fields_cannot_be_edited(self):
        users.create_user_profile(self.store, "u1", "ada@example.com", "Ada")
        with self.assertRaises(InvalidInputError):
            users.update_user_profile(self.store, "u1", {"lifetime_points": 1000})
        users.update_user_profile(self.store, "u1", {"display_name": "Ada L.", "role": "host"})
        profile = users.get_user_profile(self.store, "u1")
        self.assertEqual(profile.display_name, "Ada L.")
        self.assertEqual(profile.role, Role.HOST)

    def test_nested_keys_cannot_reach_counters(self):
        users.create_user_profile(self.store, "u1", "ada@example.com", "Ada")
        scoring.award_points(self.store, "c1", "u1", 40)
        with self.assertRaises(InvalidInputError):
            users.update_user_profile(self.store, "u1", {"lifetime_points.x": 1})
        with self.assertRaises(InvalidInputError):
            users.update_user_profile(self.store, "u1", {"display_name.first": "A"})

        scoring.award_points(self.store, "c1", "u1", 5)
        history = scoring.get_student_history(self.store, "c1", "u1")
        self.assertEqual(users.get_user_profile(self.store, "u1").lifetime_points, 45)
        self.assertEqual(sum(entry.points for entry in history), 45)

    def test_unknown_role_is_invalid_input(self):
        users.create_user_profile(self.store, "u1", "ada@example.com", "Ada")
        with self.assertRaises(InvalidInputError):
            users.update_user_profile(self.store, "u1", {"role": "admin"})
        with self.assertRaises(InvalidInputError):
            users.update_user_role(self.store, "u1", "admin")
        self.assertEqual(users.get_user_profile(self.store, "u1").role, Role.PLAYER)

    def test_lifetime_leaderboard_skips_zero_totals(self):
        for uid, points in (("a", 0), ("b", 30), ("c", 10)):
            users.create_user_profile(self.store, uid, f"{uid}@example.com", uid)
            if points:
                scoring.award_points(self.store, "c1", uid, points)
        board = users.get_lifetime_leaderboard(self.store)
        self.assertEqual([profile.uid for profile in board], ["b", "c"])


class ClassTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        users.create_user_profile(self.store, "host", "host@example.com", "Host", Role.HOST)
        users.create_user_profile(self.store, "u1", "ada@example.com", "Ada")
        self.room = classes.create_class(self.store, "host", "Algebra")

    def test_create_class_assigns_code_and_id(self):
        self.assertEqual(len(self.room.code), 6)
        self.assertTrue(self.room.id.startswith("class_"))
        self.assertTrue(self.room.id.endswith(self.room.code))
        self.assertEqual(self.room.current_activity.type, ActivityType.NONE)

    def test_join_with_lowercase_code(self):
        class_id = classes.join_class(self.store, "u1", f"  {self.room.code.lower()} ")
        self.assertEqual(class_id, self.room.id)

        room = classes.get_class(self.store, self.room.id)
        self.assertEqual(room.member_ids, ["u1"])
        member = scoring.get_class_member(self.store, self.room.id, "u1")
        self.assertEqual(member.nickname, "Ada")
        self.assertEqual(member.score, 0)
        self.assertEqual(users.get_user_profile(self.store, "u1").joined_class_id, self.room.id)

    def test_rejoining_keeps_score(self):
        classes.join_class(self.store, "u1", self.room.code, nickname="Ace")
        scoring.award_points(self.store, self.room.id, "u1", 40)
        classes.join_class(self.store, "u1", self.room.code, nickname="Someone else")
        member = scoring.get_class_member(self.store, self.room.id, "u1")
        self.assertEqual(member.nickname, "Ace")
        self.assertEqual(member.score, 40)
        self.assertEqual(classes.get_class(self.store, self.room.id).member_ids, ["u1"])

    def test_invalid_code(self):
        with self.assertRaises(NotFoundError):
            classes.join_class(self.store, "u1", "ZZZZZZ")

    def test_student_counts(self):
        users.create_user_profile(self.store, "u2", "bob@example.com", "Bob")
        classes.join_class(self.store, "u1", self.room.code)
        classes.join_class(self.store, "u2", self.room.code)
        classes.leave_class(self.store, "u2")
        counts = classes.get_class_student_counts(self.store, self.room.id)
        self.assertEqual(counts.total, 2)
        self.assertEqual(counts.active, 1)

    def test_activity_launch_logged_once(self):
        activity = CurrentActivity(type=ActivityType.POLL, id="p1")
        classes.update_class_activity(self.store, self.room.id, activity)
        classes.update_class_activity(self.store, self.room.id, activity)
        classes.update_class_activity(self.store, self.room.id, CurrentActivity())

        events = self.store.query("analytics_events", where=[("type", "==", "activity_start")])
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].data["activity_type"], "poll")
        room = classes.get_class(self.store, self.room.id)
        self.assertEqual(room.current_activity.type, ActivityType.NONE)

    def test_activity_on_missing_class(self):
        with self.assertRaises(NotFoundError):
            classes.update_class_activity(self.store, "nope", CurrentActivity(type=ActivityType.TICKR))

    def test_class_listener_receives_updates(self):
        seen = []
        stop = classes.on_class_change(self.store, self.room.id, seen.append)
        classes.join_class(self.store, "u1", self.room.code)
        stop()
        self.assertEqual(seen[0].member_ids, [])
        self.assertEqual(seen[-1].member_ids, ["u1"])


class PointsLedgerTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        users.create_user_profile(self.store, "u1", "ada@example.com", "Ada")
        users.create_user_profile(self.store, "u2", "bob@example.com", "Bob")
        self.room = classes.create_class(self.store, "host", "Algebra")
        classes.join_class(self.store, "u1", self.room.code)
        classes.join_class(self.store, "u2", self.room.code)

    def lifetime(self, uid):
        return users.get_user_profile(self.store, uid).lifetime_points

    def test_award_moves_class_and_lifetime_together(self):
        self.assertTrue(scoring.award_points(self.store, self.room.id, "u1", 25, "Poll"))
        self.assertEqual(scoring.get_class_member(self.store, self.room.id, "u1").score, 25)
        self.assertEqual(self.lifetime("u1"), 25)

        history = scoring.get_student_history(self.store, self.room.id, "u1")
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].points, 25)
        self.assertEqual(history[0].reason, "Poll")
        self.assertIsNotNone(history[0].id)

    def test_award_ignores_non_positive(self):
        self.assertFalse(scoring.award_points(self.store, self.room.id, "u1", 0))
        self.assertFalse(scoring.award_points(self.store, self.room.id, "u1", -5))
        self.assertEqual(self.lifetime("u1"), 0)

    def test_award_creates_missing_member(self):
        scoring.award_points(self.store, self.room.id, "stranger", 10)
        member = scoring.get_class_member(self.store, self.room.id, "stranger")
        self.assertEqual(member.nickname, "Student")
        self.assertEqual(member.score, 10)

    def test_adjust_can_go_negative_and_records_admin(self):
        scoring.adjust_student_points(self.store, self.room.id, "u1", -15, admin_id="host")
        self.assertEqual(scoring.get_class_member(self.store, self.room.id, "u1").score, -15)
        self.assertEqual(self.lifetime("u1"), -15)
        history = scoring.get_student_history(self.store, self.room.id, "u1")
        self.assertEqual(history[0].admin_id, "host")
        self.assertEqual(history[0].reason, "Manual Adjustment")

    def test_adjust_missing_member_changes_nothing(self):
        with self.assertRaises(NotFoundError):
            scoring.adjust_student_points(self.store, self.room.id, "ghost", 5)
        self.assertIsNone(self.store.get("users/ghost"))
        self.assertFalse(scoring.adjust_student_points(self.store, self.room.id, "u1", 0))

    def test_bulk_adjust(self):
        updated = scoring.bulk_adjust_class_points(self.store, self.room.id, 5, admin_id="host")
        self.assertEqual(updated, 2)
        board = scoring.get_class_leaderboard(self.store, self.room.id)
        self.assertEqual([member.score for member in board], [5, 5])
        self.assertEqual(self.lifetime("u2"), 5)
        self.assertEqual(scoring.bulk_adjust_class_points(self.store, self.room.id, 0), 0)

    def test_leaderboard_orders_by_score(self):
        scoring.award_points(self.store, self.room.id, "u1", 5)
        scoring.award_points(self.store, self.room.id, "u2", 50)
        board = scoring.get_class_leaderboard(self.store, self.room.id, limit=1)
        self.assertEqual([member.user_id for member in board], ["u2"])

    def test_history_newest_first(self):
        with patch("engage.scoring.now_ms", side_effect=[1000, 2000]):
            scoring.award_points(self.store, self.room.id, "u1", 1, "first")
            scoring.award_points(self.store, self.room.id, "u1", 2, "second")
        history = scoring.get_student_history(self.store, self.room.id, "u1")
        self.assertEqual([entry.reason for entry in history], ["second", "first"])

    def test_remove_student_resets_score(self):
        scoring.award_points(self.store, self.room.id, "u1", 30)
        scoring.remove_student_from_class(self.store, self.room.id, "u1", admin_id="host")

        self.assertIsNone(scoring.get_class_member(self.store, self.room.id, "u1"))
        self.assertEqual(self.lifetime("u1"), 0)
        self.assertEqual(classes.get_class(self.store, self.room.id).member_ids, ["u2"])
        self.assertIsNone(users.get_user_profile(self.store, "u1").joined_class_id)

        history = scoring.get_student_history(self.store, self.room.id, "u1")
        self.assertEqual(sorted(entry.points for entry in history), [-30, 30])

    def test_award_is_logged_for_analytics(self):
        scoring.award_points(self.store, self.room.id, "u1", 7, "Buzzer")
        events = self.store.query("analytics_events", where=[("type", "==", "point_awarded")])
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0].data["points"], 7)
        self.assertEqual(events[0].data["source"], "Buzzer")


class LeaderGridTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        users.create_user_profile(self.store, "u1", "ada@example.com", "Ada")
        users.create_user_profile(self.store, "u2", "bob@example.com", "Bob")
        self.room = classes.create_class(self.store, "host", "Algebra")
        classes.join_class(self.store, "u1", self.room.code)

    def test_redeem_awards_points_once(self):
        voucher = leadergrid.create_leadergrid_code(
            self.store, "host", self.room.id, "Warm-up", "", 15
        )
        result = leadergrid.redeem_leadergrid_code(self.store, "u1", voucher.code.lower())
        self.assertTrue(result.success)
        self.assertEqual(result.points, 15)
        self.assertEqual(result.message, "Successfully redeemed 15 points!")
        self.assertEqual(scoring.get_class_member(self.store, self.room.id, "u1").score, 15)
        self.assertEqual(users.get_user_profile(self.store, "u1").lifetime_points, 15)
        history = scoring.get_student_history(self.store, self.room.id, "u1")
        self.assertEqual(history[0].reason, "QR Code: Warm-up")

        again = leadergrid.redeem_leadergrid_code(self.store, "u1", voucher.code)
        self.assertFalse(again.success)
        self.assertEqual(again.message, leadergrid.ALREADY_SCANNED)
        self.assertEqual(users.get_user_profile(self.store, "u1").lifetime_points, 15)

        records = leadergrid.get_user_redemption_history(self.store, "u1")
        self.assertEqual([record.code_name for record in records], ["Warm-up"])

    def test_redeem_after_cooldown(self):
        voucher = leadergrid.create_leadergrid_code(self.store, "host", self.room.id, "Daily", "", 5)
        leadergrid.redeem_leadergrid_code(self.store, "u1", voucher.code, cooldown_seconds=0)
        result = leadergrid.redeem_leadergrid_code(self.store, "u1", voucher.code, cooldown_seconds=0)
        self.assertTrue(result.success)
        self.assertEqual(users.get_user_profile(self.store, "u1").lifetime_points, 10)

    def test_unknown_and_expired_codes(self):
        result = leadergrid.redeem_leadergrid_code(self.store, "u1", "NOPE99")
        self.assertEqual(result.message, leadergrid.INVALID_CODE)

        voucher = leadergrid.create_leadergrid_code(
            self.store, "host", self.room.id, "Old", "", 5, expires_at=1
        )
        result = leadergrid.redeem_leadergrid_code(self.store, "u1", voucher.code)
        self.assertFalse(result.success)
        self.assertEqual(result.message, leadergrid.EXPIRED_CODE)

    def test_max_scans(self):
        voucher = leadergrid.create_leadergrid_code(
            self.store, "host", self.room.id, "Limited", "", 5, max_scans=1
        )
        self.assertTrue(leadergrid.redeem_leadergrid_code(self.store, "u1", voucher.code).success)
        result = leadergrid.redeem_leadergrid_code(self.store, "u2", voucher.code)
        self.assertEqual(result.message, leadergrid.MAX_SCANS_REACHED)
        self.assertEqual(users.get_user_profile(self.store, "u2").lifetime_points, 0)

    def test_universal_code_uses_current_class(self):
        voucher = leadergrid.create_leadergrid_code(self.store, "host", None, "Anywhere", "", 8)
        leadergrid.redeem_leadergrid_code(self.store, "u1", voucher.code, current_class_id=self.room.id)
        self.assertEqual(scoring.get_class_member(self.store, self.room.id, "u1").score, 8)

        leadergrid.redeem_leadergrid_code(self.store, "u2", voucher.code)
        self.assertEqual(users.get_user_profile(self.store, "u2").lifetime_points, 8)
        self.assertIsNone(scoring.get_class_member(self.store, self.room.id, "u2"))

    def test_host_codes_list_class_then_universal(self):
        with patch("engage.leadergrid.now_ms", side_effect=[1000, 2000, 3000]):
            leadergrid.create_leadergrid_code(self.store, "host", None, "Universal", "", 1)
            leadergrid.create_leadergrid_code(self.store, "host", self.room.id, "Older", "", 1)
            leadergrid.create_leadergrid_code(self.store, "host", self.room.id, "Newer", "", 1)
        codes = leadergrid.get_leadergrid_codes(self.store, "host", self.room.id)
        self.assertEqual([code.name for code in codes], ["Newer", "Older", "Universal"])


if __name__ == "__main__":
    unittest.main()
