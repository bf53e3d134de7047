"""
Badge definitions and achievement progress.

Badges are never stored. They are recomputed from the profile every time,
so there is no earned-badge record that could drift from the counters.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, List, Optional


def stat(profile: Any, name: str) -> int:
    """Read a counter from a profile document or model instance; missing means 0."""
    if isinstance(profile, Mapping):
        value = profile.get(name)
    else:
        value = getattr(profile, name, None)
    return int(value or 0)


@dataclass(frozen=True)
class Badge:
    id: str
    name: str
    description: str
    requirement: Callable[[Any], bool]

    def is_earned(self, profile: Any) -> bool:
        return self.requirement(profile)


def _at_least(name: str, threshold: int) -> Callable[[Any], bool]:
    return lambda profile: stat(profile, name) >= threshold


def _all_rounder(profile: Any) -> bool:
    return (
        stat(profile, "rides_shared") >= 3
        and stat(profile, "errands_completed") >= 3
        and stat(profile, "emergency_responses") >= 1
    )


BADGES: List[Badge] = [
    # Rides
    Badge("first_ride", "Road Starter", "Shared your first ride", _at_least("rides_shared", 1)),
    Badge("ride_explorer", "Ride Explorer", "Shared 5 rides", _at_least("rides_shared", 5)),
    Badge("road_master", "Road Master", "Shared 20 rides", _at_least("rides_shared", 20)),
    # Errands
    Badge("helping_hand", "Helping Hand", "Completed your first errand", _at_least("errands_completed", 1)),
    Badge("errand_runner", "Errand Runner", "Completed 5 errands", _at_least("errands_completed", 5)),
    Badge("errand_hero", "Errand Hero", "Completed 15 errands", _at_least("errands_completed", 15)),
    # Emergency response
    Badge("first_responder", "First Responder", "Responded to an emergency", _at_least("emergency_responses", 1)),
    Badge("guardian", "Campus Guardian", "Responded to 5 emergencies", _at_least("emergency_responses", 5)),
    Badge("life_saver", "Life Saver", "Responded to 10 emergencies", _at_least("emergency_responses", 10)),
    # Streaks
    Badge("week_streak", "Week Warrior", "7-day activity streak", _at_least("longest_streak", 7)),
    Badge("month_streak", "Monthly Master", "30-day activity streak", _at_least("longest_streak", 30)),
    # Community
    Badge("popular", "Popular", "Gained 10 followers", _at_least("followers_count", 10)),
    Badge("influencer", "Campus Influencer", "Gained 50 followers", _at_least("followers_count", 50)),
    Badge("all_rounder", "All-Rounder", "Active in rides, errands, and emergencies", _all_rounder),
]


@dataclass
class AchievementProgress:
    total_badges: int
    earned_badges: int
    next_badge: Optional[str]
    next_badge_progress: int


def earned_badges(profile: Any) -> List[Badge]:
    return [badge for badge in BADGES if badge.is_earned(profile)]


def locked_badges(profile: Any) -> List[Badge]:
    return [badge for badge in BADGES if not badge.is_earned(profile)]


def get_achievement_progress(profile: Any) -> AchievementProgress:
    """
    Summarise badge progress for a profile.

    The next-badge hint follows a fixed priority list (first ride, first
    errand, five rides) and is None once all three are reached, even if
    other badges are still locked.
    """
    rides_shared = stat(profile, "rides_shared")
    errands_completed = stat(profile, "errands_completed")

    next_badge = None
    progress = 0.0

    if rides_shared < 1:
        next_badge = "Road Starter (1 ride)"
    elif errands_completed < 1:
        next_badge = "Helping Hand (1 errand)"
    elif rides_shared < 5:
        next_badge = "Ride Explorer (5 rides)"
        progress = rides_shared / 5 * 100

    return AchievementProgress(
        total_badges=len(BADGES),
        earned_badges=len(earned_badges(profile)),
        next_badge=next_badge,
        next_badge_progress=int(math.floor(progress + 0.5)),
    )
