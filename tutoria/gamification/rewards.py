"""
Reward Engine.

Turns a finished activity's score into points and badges. Points are paid
at most once per activity (tracked in ``rewarded_activities``); badges are
re-evaluated on every call, including replays of an already rewarded
activity.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from loguru import logger

from tutoria.core.grading import Score
from tutoria.core.models import Activity, Badge, Student, StudentAnswer

from .badges import check_new_badges, resolve_badges

POINTS_PER_CORRECT = 10
PERFECT_BONUS = 50


@dataclass
class RewardResult:
    new_badges: list[Badge] = field(default_factory=list)
    awarded_points: int = 0


def compute_points(score: Score) -> int:
    """Points for a score: 10 per correct answer plus 50 for a perfect run."""
    return score.correct * POINTS_PER_CORRECT + (PERFECT_BONUS if score.is_perfect else 0)


def award_rewards(
    student: Student,
    activity_id: str,
    score: Score,
    activities: Sequence[Activity],
    answers: Sequence[StudentAnswer],
) -> RewardResult:
    """
    Award points and badges for a completed activity, mutating ``student``.

    Args:
        student: Student to reward (mutated in place)
        activity_id: Activity just completed
        score: Its score
        activities: All of the student's activities
        answers: Their answer records

    Returns:
        RewardResult with the newly unlocked badges and the points paid now
    """
    gamification = student.gamification
    already_rewarded = activity_id in gamification.rewarded_activities

    points = 0 if already_rewarded else compute_points(score)
    new_badge_ids = check_new_badges(student, activities, answers, score)

    if points > 0 or new_badge_ids:
        gamification.points += points
        gamification.badges = list(dict.fromkeys([*gamification.badges, *new_badge_ids]))
        if points > 0:
            gamification.rewarded_activities.append(activity_id)
        logger.info(
            f"Rewarded {student.id} for {activity_id}: +{points} points, badges={new_badge_ids}"
        )
    elif already_rewarded:
        logger.debug(f"Activity {activity_id} already rewarded for {student.id}")

    return RewardResult(new_badges=resolve_badges(new_badge_ids), awarded_points=points)
