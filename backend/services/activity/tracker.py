"""
Activity tracking: lifetime counters and day-based streaks.

Tracking is best-effort. It runs alongside a primary user action (posting a
ride, helping with an errand, answering an SOS) and must never break it, so
every failure is logged and reported through ActivityResult instead of
raised.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from django.db import models

from common.store import DocumentStore, Increment, default_store
from common.utils import to_calendar_date, utc_today

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


class ActivityType(models.TextChoices):
    RIDE_SHARED = 'ride_shared', 'Posted a ride offer'
    RIDE_TAKEN = 'ride_taken', "Joined someone's ride"
    ERRAND_POSTED = 'errand_posted', 'Posted an errand request'
    ERRAND_HELPED = 'errand_helped', "Helped with someone's errand"
    EMERGENCY_RESPONSE = 'emergency_response', 'Responded to an SOS'


# Each activity bumps exactly one profile counter
ACTIVITY_FIELD_MAP: Dict[str, str] = {
    ActivityType.RIDE_SHARED.value: 'rides_shared',
    ActivityType.RIDE_TAKEN.value: 'rides_taken',
    ActivityType.ERRAND_POSTED.value: 'errands_requested',
    ActivityType.ERRAND_HELPED.value: 'errands_completed',
    ActivityType.EMERGENCY_RESPONSE.value: 'emergency_responses',
}

SKIP_UNKNOWN_ACTIVITY = "unknown_activity"
SKIP_PROFILE_NOT_FOUND = "profile_not_found"
SKIP_STORE_ERROR = "store_error"


@dataclass
class ActivityResult:
    """Result object for a tracking attempt."""
    success: bool
    activity_type: str = ""
    skip_reason: Optional[str] = None
    updates: Dict[str, Any] = field(default_factory=dict)


def calculate_streak_update(
    today: date,
    last_active_date: Optional[date],
    current_streak: int,
    longest_streak: int,
) -> Dict[str, Any]:
    """
    Work out the streak fields to write for an activity on ``today``.

    The day difference is taken between calendar dates, so two activities
    23 hours apart on different dates still count as consecutive days.

    Returns:
        Partial update; empty when the user was already active today
    """
    if last_active_date is None:
        return {
            "current_streak": 1,
            "longest_streak": max(longest_streak, 1),
            "total_active_days": Increment(1),
        }

    diff_days = (today - last_active_date).days

    if diff_days == 0:
        return {}

    if diff_days == 1:
        new_streak = current_streak + 1
        return {
            "current_streak": new_streak,
            "longest_streak": max(longest_streak, new_streak),
            "total_active_days": Increment(1),
        }

    # Gap, or a last date ahead of today (clock skew): start over
    return {
        "current_streak": 1,
        "total_active_days": Increment(1),
    }


def track_activity(
    user_id: Any,
    activity_type: str,
    today: Optional[date] = None,
    store: Optional[DocumentStore] = None,
) -> ActivityResult:
    """
    Record one activity for a user and advance their streak.

    The profile row is read under a lock and the counter delta, streak fields
    and last_active_date go out in a single update, so a failed write leaves
    the profile exactly as it was.

    Args:
        user_id: Primary key of the user
        activity_type: One of ActivityType
        today: Calendar date of the activity (defaults to today in UTC)
        store: Document store (defaults to the ORM-backed store)

    Returns:
        ActivityResult; success is False with a skip_reason when nothing was written
    """
    activity_type = str(activity_type)
    counter = ACTIVITY_FIELD_MAP.get(activity_type)
    if counter is None:
        logger.error("Unknown activity type %r for user %s", activity_type, user_id)
        return ActivityResult(success=False, activity_type=activity_type,
                              skip_reason=SKIP_UNKNOWN_ACTIVITY)

    store = store or default_store
    today = today or utc_today()

    try:
        with store.atomic():
            profile = store.get(USERS_COLLECTION, user_id, for_update=True)
            if profile is None:
                logger.error("User not found for tracking: %s", user_id)
                return ActivityResult(success=False, activity_type=activity_type,
                                      skip_reason=SKIP_PROFILE_NOT_FOUND)

            updates = calculate_streak_update(
                today,
                to_calendar_date(profile.get("last_active_date")),
                profile.get("current_streak") or 0,
                profile.get("longest_streak") or 0,
            )
            updates[counter] = Increment(1)
            updates["last_active_date"] = today

            store.update(USERS_COLLECTION, user_id, updates)
    except Exception:
        logger.exception("Error tracking %s for user %s", activity_type, user_id)
        return ActivityResult(success=False, activity_type=activity_type,
                              skip_reason=SKIP_STORE_ERROR)

    logger.info("Tracked %s for user %s", activity_type, user_id)
    return ActivityResult(success=True, activity_type=activity_type, updates=updates)


def track_multiple_activities(
    user_id: Any,
    activities: Iterable[str],
    today: Optional[date] = None,
    store: Optional[DocumentStore] = None,
) -> List[ActivityResult]:
    """Track several activities in order; one skipped activity does not stop the rest."""
    return [track_activity(user_id, activity, today=today, store=store) for activity in activities]


def enqueue_activity(user_id: Any, activity_type: str) -> bool:
    """
    Hand tracking off to the Celery worker.

    Returns False (and logs) when the task could not be queued; the caller's
    own action has already succeeded and is not affected.
    """
    from accounts.tasks import track_activity_task

    try:
        track_activity_task.delay(user_id, str(activity_type))
    except Exception:
        logger.exception("Failed to queue %s tracking for user %s", activity_type, user_id)
        return False
    return True
