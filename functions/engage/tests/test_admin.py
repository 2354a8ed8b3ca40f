import re
import unittest
from unittest.mock import patch

from engage import access_codes, analytics, templates
from engage.analytics import AnalyticsFilter
from engage.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from engage.store import InMemoryDocumentStore
from shared import validation
from shared.types import AccessTier

DAY_MS = 24 * 60 * 60 * 1000
NOW = 1_700_000_000_000  # 2023-11-14T22:13:20Z


class AccessCodeTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()

    def test_generated_code_format(self):
        code = access_codes.create_access_code(self.store, "admin")
        self.assertRegex(code, r"^[A-Z0-9]{4}-[A-Z0-9]{4}$")
        self.assertIsNotNone(access_codes.validate_access_code(self.store, code.lower()))

    def test_single_use_code(self):
        code = access_codes.create_access_code(self.store, "admin", custom_code=" abcd-1234 ")
        self.assertEqual(code, "ABCD-1234")
        self.assertTrue(access_codes.redeem_access_code(self.store, "abcd-1234", "u1"))
        self.assertFalse(access_codes.redeem_access_code(self.store, code, "u2"))

        stored = access_codes.get_all_access_codes(self.store)[0]
        self.assertFalse(stored.active)
        self.assertEqual(stored.used_by, "u1")
        self.assertEqual(stored.current_uses, 1)
        self.assertIsNone(access_codes.validate_access_code(self.store, code))
        self.assertEqual(access_codes.get_active_access_codes(self.store), [])

    def test_unlimited_code(self):
        code = access_codes.create_access_code(self.store, "admin", AccessTier.UNLIMITED, max_uses=0)
        for uid in ("u1", "u2", "u3"):
            self.assertTrue(access_codes.redeem_access_code(self.store, code, uid))
        stored = access_codes.validate_access_code(self.store, code)
        self.assertEqual(stored.current_uses, 3)
        self.assertEqual(stored.used_by, "u3")

    def test_trial_code_expires(self):
        with patch("engage.access_codes.now_ms", return_value=NOW):
            code = access_codes.create_trial_code(self.store)
        stored = access_codes.get_all_access_codes(self.store)[0]
        self.assertEqual(stored.code, code)
        self.assertEqual(stored.tier, AccessTier.TRIAL)
        self.assertEqual(stored.created_by, "system")
        self.assertEqual(stored.expires_at, NOW + 14 * DAY_MS)
        self.assertTrue(access_codes.is_redeemable(stored, now=NOW + DAY_MS))
        self.assertFalse(access_codes.is_redeemable(stored, now=NOW + 15 * DAY_MS))

    def test_unknown_deactivated_and_deleted(self):
        self.assertFalse(access_codes.redeem_access_code(self.store, "NOPE-NOPE", "u1"))
        code = access_codes.create_access_code(self.store, "admin", max_uses=5)
        access_codes.deactivate_access_code(self.store, code)
        self.assertFalse(access_codes.redeem_access_code(self.store, code, "u1"))
        access_codes.delete_access_code(self.store, code)
        self.assertEqual(access_codes.get_all_access_codes(self.store), [])


class CloudTemplateTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        questions = [{"question": "2+2?", "options": ["3", "4"], "correct_answer": 1}]
        with patch("engage.templates.now_ms", side_effect=[1000, 2000, 3000]):
            self.private_id = templates.save_cloud_template(self.store, "u1", "Ada", "Private set", questions)
            self.public_id = templates.save_cloud_template(
                self.store, "u1", "Ada", "Fractions", questions, is_public=True, tags=["math"]
            )
            self.other_id = templates.save_cloud_template(
                self.store, "u2", "Bob", "Capitals", questions, is_public=True, description="Geography"
            )

    def test_user_templates_newest_first(self):
        found = templates.get_user_templates(self.store, "u1")
        self.assertEqual([template.id for template in found], [self.public_id, self.private_id])

    def test_public_templates_by_popularity(self):
        templates.mark_cloud_template_as_used(self.store, self.other_id)
        templates.mark_cloud_template_as_used(self.store, self.other_id)
        templates.mark_cloud_template_as_used(self.store, self.public_id)
        public = templates.get_public_templates(self.store)
        self.assertEqual([template.id for template in public], [self.other_id, self.public_id])
        self.assertEqual(public[0].times_used, 2)
        self.assertIsNotNone(public[0].last_used)

    def test_search(self):
        self.assertEqual([t.id for t in templates.search_public_templates(self.store, "MATH")], [self.public_id])
        self.assertEqual([t.id for t in templates.search_public_templates(self.store, "geo")], [self.other_id])
        self.assertEqual(templates.search_public_templates(self.store, "private"), [])

    def test_only_owner_can_change(self):
        with self.assertRaises(PermissionDeniedError):
            templates.update_cloud_template(self.store, self.public_id, "u2", {"title": "Mine now"})
        with self.assertRaises(PermissionDeniedError):
            templates.delete_cloud_template(self.store, self.public_id, "u2")
        with self.assertRaises(NotFoundError):
            templates.delete_cloud_template(self.store, "missing", "u1")

        templates.update_cloud_template(
            self.store, self.public_id, "u1", {"title": "Fractions II", "created_by": "u2"}
        )
        updated = templates.get_cloud_template(self.store, self.public_id)
        self.assertEqual(updated.title, "Fractions II")
        self.assertEqual(updated.created_by, "u1")

        templates.delete_cloud_template(self.store, self.public_id, "u1")
        self.assertIsNone(templates.get_cloud_template(self.store, self.public_id))

    def test_title_required(self):
        with self.assertRaises(InvalidInputError):
            templates.save_cloud_template(self.store, "u1", "Ada", "  ", [])


class AnalyticsTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.store.set("analytics_events/e1", {"type": "activity_start", "activity_type": "poll", "timestamp": NOW - DAY_MS})
        self.store.set("analytics_events/e2", {"type": "point_awarded", "points": 10, "timestamp": NOW - 2 * DAY_MS})
        self.store.set("analytics_events/e3", {"type": "point_awarded", "points": 5, "timestamp": NOW - 40 * DAY_MS})
        self.store.set("users/u1", {"display_name": "Ada", "lifetime_points": 50, "created_at": NOW - DAY_MS})
        self.store.set("users/u2", {"email": "bob@example.com", "lifetime_points": 0, "created_at": NOW - 100 * DAY_MS})
        self.store.set("classes/c1", {"name": "Old", "expires_at": NOW - 1})
        self.store.set("classes/c2", {"name": "Current"})

    def test_thirty_day_summary(self):
        summary = analytics.get_analytics_summary(self.store, AnalyticsFilter(range="30d"), now=NOW)
        self.assertEqual(summary["total_users"], 2)
        self.assertEqual(summary["new_users"], 1)
        self.assertEqual(summary["classes"], {"active": 1, "expired": 1, "total": 2})
        self.assertEqual(
            summary["activity_stats"],
            {"total": 1, "by_type": {"poll": 1}, "by_date": {"2023-11-13": {"poll": 1}}},
        )
        self.assertEqual(summary["point_stats"], {"total": 10, "by_date": {"2023-11-12": 10}})
        self.assertEqual(summary["top_scanners"], [{"id": "u1", "name": "Ada", "points": 50}])

    def test_all_time_and_custom_ranges(self):
        summary = analytics.get_analytics_summary(self.store, AnalyticsFilter(range="all"), now=NOW)
        self.assertEqual(summary["point_stats"]["total"], 15)
        self.assertEqual(summary["new_users"], 2)

        custom = AnalyticsFilter(range="custom", start_date=NOW - 3 * DAY_MS, end_date=NOW - 2 * DAY_MS)
        summary = analytics.get_analytics_summary(self.store, custom, now=NOW)
        self.assertEqual(summary["point_stats"]["total"], 10)
        self.assertEqual(summary["activity_stats"]["total"], 0)

        with self.assertRaises(InvalidInputError):
            analytics.get_analytics_summary(self.store, AnalyticsFilter(range="custom"), now=NOW)

    def test_log_event_drops_empty_fields(self):
        with patch("engage.analytics.now_ms", return_value=NOW):
            analytics.log_point_transaction(self.store, "u1", 3, "qr_code")
        events = self.store.query("analytics_events", where=[("source", "==", "qr_code")])
        self.assertEqual(len(events), 1)
        self.assertNotIn("class_id", events[0].data)
        self.assertEqual(events[0].data["timestamp"], NOW)


class ValidationTests(unittest.TestCase):
    def test_email(self):
        self.assertTrue(validation.is_valid_email("ada@example.com"))
        self.assertFalse(validation.is_valid_email("ada@example"))

    def test_passwords(self):
        self.assertFalse(validation.is_valid_password("abc").valid)
        self.assertEqual(validation.is_strong_password("abcdefgh").strength, "weak")
        self.assertEqual(validation.is_strong_password("Abcdefg1").strength, "medium")
        self.assertEqual(validation.is_strong_password("Abcdefg1!x").strength, "strong")

    def test_names_and_codes(self):
        self.assertTrue(validation.is_valid_display_name("Ada").valid)
        self.assertFalse(validation.is_valid_display_name("<b>").valid)
        self.assertTrue(validation.is_valid_room_code(" ab12 ").valid)
        self.assertFalse(validation.is_valid_room_code("AB-12").valid)
        self.assertFalse(validation.is_valid_class_name("AB").valid)

    def test_points(self):
        self.assertEqual(validation.is_valid_points("12.5").value, 13)
        self.assertFalse(validation.is_valid_points(-1).valid)
        self.assertFalse(validation.is_valid_points(10001).valid)
        self.assertFalse(validation.is_valid_points("lots").valid)
        self.assertFalse(validation.is_valid_points(float("nan")).valid)

    def test_sanitize_round_trip(self):
        raw = "<script>alert('x')</script>"
        escaped = validation.sanitize_text(raw)
        self.assertFalse(re.search(r"[<>]", escaped))
        self.assertEqual(validation.unsanitize_text(escaped), raw)

    def test_validate_form(self):
        result = validation.validate_form(
            {"email": validation.FieldResult(True), "name": validation.FieldResult(False, "Name is required")}
        )
        self.assertFalse(result.valid)
        self.assertEqual(result.errors, {"name": "Name is required"})


if __name__ == "__main__":
    unittest.main()
