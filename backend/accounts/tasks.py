"""Celery tasks for activity tracking."""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task
def track_activity_task(user_id: int, activity_type: str):
    """
    Track an activity outside the request that triggered it.

    The tracker never raises; the task returns whether anything was written
    so the outcome shows up in the result backend.
    """
    from services.activity import track_activity

    result = track_activity(user_id, activity_type)
    if not result.success:
        logger.warning(f"Activity {activity_type} for user {user_id} skipped: {result.skip_reason}")
    return result.success
