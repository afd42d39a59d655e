"""
Points and badges for completed activities.
"""

from .badges import (
    BADGES,
    FIRST_ACTIVITY,
    PERFECT_SCORE,
    THREE_COMPLETED,
    check_new_badges,
    get_badge,
    resolve_badges,
)
from .rewards import PERFECT_BONUS, POINTS_PER_CORRECT, RewardResult, award_rewards, compute_points

__all__ = [
    "BADGES",
    "FIRST_ACTIVITY",
    "PERFECT_BONUS",
    "PERFECT_SCORE",
    "POINTS_PER_CORRECT",
    "RewardResult",
    "THREE_COMPLETED",
    "award_rewards",
    "check_new_badges",
    "compute_points",
    "get_badge",
    "resolve_badges",
]
