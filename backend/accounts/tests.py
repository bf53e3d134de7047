from contextlib import nullcontext
from datetime import date
from unittest.mock import patch

from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from common.store import DjangoDocumentStore, DocumentStore, Increment
from services.activity import (
    BADGES,
    ActivityType,
    calculate_streak_update,
    earned_badges,
    enqueue_activity,
    get_achievement_progress,
    track_activity,
    track_multiple_activities,
)
from .models import User
from .tasks import track_activity_task
from .views import AchievementsView, TrackActivityView


class InMemoryProfileStore(DocumentStore):
    """Minimal store holding raw profile documents, as another writer might leave them."""

    def __init__(self, docs):
        self.docs = docs
        self.updates = []

    def get(self, collection, doc_id, for_update=False):
        return self.docs.get(doc_id)

    def update(self, collection, doc_id, fields):
        self.updates.append((doc_id, fields))

    def atomic(self):
        return nullcontext()


class FailingAfterWriteStore(DjangoDocumentStore):
    """Writes, then loses the connection before the transaction commits."""

    def update(self, collection, doc_id, fields):
        super().update(collection, doc_id, fields)
        raise DatabaseError("connection lost")


class StreakCalculationTests(SimpleTestCase):
    def test_first_activity(self):
        updates = calculate_streak_update(date(2024, 1, 1), None, 0, 0)
        self.assertEqual(updates["current_streak"], 1)
        self.assertEqual(updates["longest_streak"], 1)
        self.assertEqual(updates["total_active_days"], Increment(1))

    def test_first_activity_keeps_higher_longest_streak(self):
        updates = calculate_streak_update(date(2024, 1, 1), None, 0, 9)
        self.assertEqual(updates["longest_streak"], 9)

    def test_same_day_changes_nothing(self):
        self.assertEqual(calculate_streak_update(date(2024, 1, 1), date(2024, 1, 1), 3, 5), {})

    def test_consecutive_day_extends_streak(self):
        updates = calculate_streak_update(date(2024, 1, 2), date(2024, 1, 1), 5, 5)
        self.assertEqual(updates["current_streak"], 6)
        self.assertEqual(updates["longest_streak"], 6)

    def test_consecutive_day_below_record_keeps_record(self):
        updates = calculate_streak_update(date(2024, 1, 2), date(2024, 1, 1), 2, 10)
        self.assertEqual(updates["current_streak"], 3)
        self.assertEqual(updates["longest_streak"], 10)

    def test_consecutive_across_month_boundary(self):
        updates = calculate_streak_update(date(2024, 3, 1), date(2024, 2, 29), 1, 1)
        self.assertEqual(updates["current_streak"], 2)

    def test_gap_resets_streak(self):
        updates = calculate_streak_update(date(2024, 1, 4), date(2024, 1, 2), 6, 6)
        self.assertEqual(updates["current_streak"], 1)
        self.assertNotIn("longest_streak", updates)
        self.assertEqual(updates["total_active_days"], Increment(1))

    def test_last_date_in_future_resets_streak(self):
        updates = calculate_streak_update(date(2024, 1, 1), date(2024, 1, 3), 4, 4)
        self.assertEqual(updates["current_streak"], 1)


class TrackActivityTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="asha", password="pass1234")

    def test_first_activity_starts_streak(self):
        result = track_activity(self.user.id, ActivityType.RIDE_SHARED, today=date(2024, 1, 1))

        self.assertTrue(result.success)
        self.user.refresh_from_db()
        self.assertEqual(self.user.rides_shared, 1)
        self.assertEqual(self.user.rides_taken, 0)
        self.assertEqual(self.user.errands_completed, 0)
        self.assertEqual(self.user.current_streak, 1)
        self.assertEqual(self.user.longest_streak, 1)
        self.assertEqual(self.user.total_active_days, 1)
        self.assertEqual(self.user.last_active_date, date(2024, 1, 1))

    def test_each_activity_maps_to_one_counter(self):
        expected = {
            "ride_shared": "rides_shared",
            "ride_taken": "rides_taken",
            "errand_posted": "errands_requested",
            "errand_helped": "errands_completed",
            "emergency_response": "emergency_responses",
        }
        counters = list(expected.values())
        for activity, counter in expected.items():
            with self.subTest(activity=activity):
                user = User.objects.create_user(username=f"user-{activity}", password="pass1234")
                track_activity(user.id, activity, today=date(2024, 1, 1))
                user.refresh_from_db()
                for name in counters:
                    self.assertEqual(getattr(user, name), 1 if name == counter else 0)

    def test_same_day_counts_activity_but_not_day(self):
        track_activity(self.user.id, "errand_helped", today=date(2024, 1, 1))
        track_activity(self.user.id, "errand_helped", today=date(2024, 1, 1))

        self.user.refresh_from_db()
        self.assertEqual(self.user.errands_completed, 2)
        self.assertEqual(self.user.current_streak, 1)
        self.assertEqual(self.user.longest_streak, 1)
        self.assertEqual(self.user.total_active_days, 1)

    def test_streak_extends_then_resets_after_gap(self):
        self.user.last_active_date = date(2024, 1, 1)
        self.user.current_streak = 5
        self.user.longest_streak = 5
        self.user.total_active_days = 5
        self.user.save()

        track_activity(self.user.id, "ride_taken", today=date(2024, 1, 2))
        self.user.refresh_from_db()
        self.assertEqual(self.user.last_active_date, date(2024, 1, 2))
        self.assertEqual(self.user.current_streak, 6)
        self.assertEqual(self.user.longest_streak, 6)

        track_activity(self.user.id, "ride_taken", today=date(2024, 1, 4))
        self.user.refresh_from_db()
        self.assertEqual(self.user.last_active_date, date(2024, 1, 4))
        self.assertEqual(self.user.current_streak, 1)
        self.assertEqual(self.user.longest_streak, 6)
        self.assertEqual(self.user.total_active_days, 7)
        self.assertEqual(self.user.rides_taken, 2)

    def test_consecutive_days_track_new_maximum(self):
        for day in range(1, 4):
            track_activity(self.user.id, "ride_shared", today=date(2024, 1, day))

        self.user.refresh_from_db()
        self.assertEqual(self.user.current_streak, 3)
        self.assertEqual(self.user.longest_streak, 3)
        self.assertEqual(self.user.total_active_days, 3)

    def test_missing_profile_is_skipped(self):
        with self.assertLogs("services.activity.tracker", level="ERROR"):
            result = track_activity(987654, "ride_shared", today=date(2024, 1, 1))

        self.assertFalse(result.success)
        self.assertEqual(result.skip_reason, "profile_not_found")

    def test_unknown_activity_is_skipped(self):
        result = track_activity(self.user.id, "moonwalk", today=date(2024, 1, 1))

        self.assertFalse(result.success)
        self.assertEqual(result.skip_reason, "unknown_activity")
        self.user.refresh_from_db()
        self.assertIsNone(self.user.last_active_date)

    def test_failed_write_leaves_profile_untouched(self):
        self.user.last_active_date = date(2024, 1, 1)
        self.user.current_streak = 2
        self.user.longest_streak = 4
        self.user.save()

        with self.assertLogs("services.activity.tracker", level="ERROR"):
            result = track_activity(self.user.id, "ride_shared", today=date(2024, 1, 2),
                                    store=FailingAfterWriteStore())

        self.assertFalse(result.success)
        self.assertEqual(result.skip_reason, "store_error")
        self.user.refresh_from_db()
        self.assertEqual(self.user.rides_shared, 0)
        self.assertEqual(self.user.current_streak, 2)
        self.assertEqual(self.user.last_active_date, date(2024, 1, 1))

    def test_string_last_active_date_from_store(self):
        store = InMemoryProfileStore({
            "u1": {"id": "u1", "last_active_date": "2024-01-01", "current_streak": 5, "longest_streak": 5},
        })

        result = track_activity("u1", "emergency_response", today=date(2024, 1, 2), store=store)

        self.assertTrue(result.success)
        doc_id, fields = store.updates[0]
        self.assertEqual(doc_id, "u1")
        self.assertEqual(fields["current_streak"], 6)
        self.assertEqual(fields["longest_streak"], 6)
        self.assertEqual(fields["emergency_responses"], Increment(1))
        self.assertEqual(fields["last_active_date"], date(2024, 1, 2))

    def test_absent_counters_read_as_zero(self):
        store = InMemoryProfileStore({"u2": {"id": "u2"}})

        track_activity("u2", "ride_shared", today=date(2024, 1, 1), store=store)

        _, fields = store.updates[0]
        self.assertEqual(fields["current_streak"], 1)
        self.assertEqual(fields["longest_streak"], 1)

    def test_track_multiple_activities(self):
        results = track_multiple_activities(
            self.user.id, ["ride_shared", "errand_helped", "bogus"], today=date(2024, 1, 1)
        )

        self.assertEqual([r.success for r in results], [True, True, False])
        self.user.refresh_from_db()
        self.assertEqual(self.user.rides_shared, 1)
        self.assertEqual(self.user.errands_completed, 1)
        self.assertEqual(self.user.total_active_days, 1)


class EnqueueActivityTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="ravi", password="pass1234")

    @patch("accounts.tasks.track_activity_task.delay")
    def test_enqueue_hands_off_to_task(self, mock_delay):
        self.assertTrue(enqueue_activity(self.user.id, ActivityType.RIDE_TAKEN))
        mock_delay.assert_called_once_with(self.user.id, "ride_taken")

    @patch("accounts.tasks.track_activity_task.delay", side_effect=ConnectionError("broker down"))
    def test_enqueue_failure_is_swallowed(self, mock_delay):
        with self.assertLogs("services.activity.tracker", level="ERROR"):
            self.assertFalse(enqueue_activity(self.user.id, "ride_shared"))

    def test_task_tracks_activity(self):
        self.assertTrue(track_activity_task(self.user.id, "errand_posted"))
        self.user.refresh_from_db()
        self.assertEqual(self.user.errands_requested, 1)
        self.assertEqual(self.user.current_streak, 1)

    def test_task_reports_skip(self):
        self.assertFalse(track_activity_task(987654, "errand_posted"))


class AchievementProgressTests(SimpleTestCase):
    def test_fresh_profile(self):
        progress = get_achievement_progress({})

        self.assertEqual(progress.total_badges, 14)
        self.assertEqual(progress.earned_badges, 0)
        self.assertEqual(progress.next_badge, "Road Starter (1 ride)")
        self.assertEqual(progress.next_badge_progress, 0)

    def test_next_badge_priority(self):
        progress = get_achievement_progress({"rides_shared": 1})
        self.assertEqual(progress.next_badge, "Helping Hand (1 errand)")
        self.assertEqual(progress.next_badge_progress, 0)

        progress = get_achievement_progress({"rides_shared": 3, "errands_completed": 1})
        self.assertEqual(progress.next_badge, "Ride Explorer (5 rides)")
        self.assertEqual(progress.next_badge_progress, 60)

    def test_no_hint_past_fixed_priority_list(self):
        progress = get_achievement_progress({"rides_shared": 5, "errands_completed": 1})
        self.assertIsNone(progress.next_badge)
        self.assertEqual(progress.next_badge_progress, 0)

    def test_all_rounder(self):
        profile = {"rides_shared": 3, "errands_completed": 3, "emergency_responses": 1}

        ids = [badge.id for badge in earned_badges(profile)]

        self.assertEqual(ids, ["first_ride", "helping_hand", "first_responder", "all_rounder"])
        self.assertEqual(get_achievement_progress(profile).earned_badges, 4)

    def test_every_badge(self):
        profile = {
            "rides_shared": 20,
            "errands_completed": 15,
            "emergency_responses": 10,
            "longest_streak": 30,
            "followers_count": 50,
        }
        self.assertEqual(get_achievement_progress(profile).earned_badges, len(BADGES))

    def test_streak_badges_use_longest_streak(self):
        ids = [badge.id for badge in earned_badges({"current_streak": 30, "longest_streak": 7})]
        self.assertEqual(ids, ["week_streak"])

    def test_model_instance(self):
        user = User(username="meera", rides_shared=2, followers_count=12)
        progress = get_achievement_progress(user)
        self.assertEqual(progress.earned_badges, 2)
        self.assertEqual(progress.next_badge, "Helping Hand (1 errand)")


class ActivityViewTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        self.user = User.objects.create_user(username="kiran", password="pass1234",
                                             rides_shared=3, errands_completed=1)

    def test_track_activity_for_caller(self):
        request = self.factory.post("/api/activity/track/", {"activity_type": "errand_helped"}, format="json")
        force_authenticate(request, user=self.user)
        response = TrackActivityView.as_view()(request)

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["tracked"])
        self.assertIsNone(response.data["skip_reason"])
        self.user.refresh_from_db()
        self.assertEqual(self.user.errands_completed, 2)
        self.assertEqual(self.user.current_streak, 1)

    def test_track_rejects_unknown_type(self):
        request = self.factory.post("/api/activity/track/", {"activity_type": "moonwalk"}, format="json")
        force_authenticate(request, user=self.user)
        response = TrackActivityView.as_view()(request)

        self.assertEqual(response.status_code, 400)

    def test_achievements(self):
        viewer = User.objects.create_user(username="viewer", password="pass1234")
        request = self.factory.get(f"/api/activity/{self.user.id}/achievements/")
        force_authenticate(request, user=viewer)
        response = AchievementsView.as_view()(request, user_id=self.user.id)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["stats"]["total_activities"], 4)
        self.assertEqual(response.data["progress"], {
            "total_badges": 14,
            "earned_badges": 2,
            "next_badge": "Ride Explorer (5 rides)",
            "next_badge_progress": 60,
        })
        self.assertEqual([b["id"] for b in response.data["earned"]], ["first_ride", "helping_hand"])
        self.assertEqual(len(response.data["locked"]), 12)

    def test_achievements_unknown_user(self):
        request = self.factory.get("/api/activity/987654/achievements/")
        force_authenticate(request, user=self.user)
        response = AchievementsView.as_view()(request, user_id=987654)

        self.assertEqual(response.status_code, 404)
