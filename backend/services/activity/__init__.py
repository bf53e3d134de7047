"""
Activity tracking service.

This module handles:
    - Mapping activities to profile counters
    - Calendar-day streak transitions
    - Badge evaluation and achievement progress
"""

from .badges import (
    BADGES,
    AchievementProgress,
    Badge,
    earned_badges,
    get_achievement_progress,
    locked_badges,
)
from .tracker import (
    ACTIVITY_FIELD_MAP,
    ActivityResult,
    ActivityType,
    calculate_streak_update,
    enqueue_activity,
    track_activity,
    track_multiple_activities,
)

__all__ = [
    # Tracking
    "ACTIVITY_FIELD_MAP",
    "ActivityResult",
    "ActivityType",
    "calculate_streak_update",
    "enqueue_activity",
    "track_activity",
    "track_multiple_activities",
    # Badges
    "BADGES",
    "AchievementProgress",
    "Badge",
    "earned_badges",
    "get_achievement_progress",
    "locked_badges",
]
