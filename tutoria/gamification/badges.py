"""
Static badge catalog and unlock rules.

Badges are evaluated against the student's whole history: the completed
count is recomputed from every activity/answer pair on each call.
"""

from __future__ import annotations

from collections.abc import Sequence

from tutoria.core.grading import Score, count_completed
from tutoria.core.models import Activity, Badge, Student, StudentAnswer

FIRST_ACTIVITY = "first_activity"
PERFECT_SCORE = "perfect_score"
THREE_COMPLETED = "three_completed"

BADGES: tuple[Badge, ...] = (
    Badge(
        id=FIRST_ACTIVITY,
        name="Primeiros Passos",
        description="Concluiu sua primeira atividade.",
        icon="zap",
    ),
    Badge(
        id=PERFECT_SCORE,
        name="Mestre do Saber",
        description="Conseguiu uma pontuação perfeita em uma atividade.",
        icon="star",
    ),
    Badge(
        id=THREE_COMPLETED,
        name="Trio de Sucesso",
        description="Concluiu 3 atividades.",
        icon="trending-up",
    ),
)

_BY_ID = {badge.id: badge for badge in BADGES}


def get_badge(badge_id: str) -> Badge | None:
    return _BY_ID.get(badge_id)


def resolve_badges(badge_ids: Sequence[str]) -> list[Badge]:
    """Catalog entries for the given ids, in catalog order."""
    wanted = set(badge_ids)
    return [badge for badge in BADGES if badge.id in wanted]


def check_new_badges(
    student: Student,
    activities: Sequence[Activity],
    answers: Sequence[StudentAnswer],
    score: Score,
) -> list[str]:
    """
    Badge ids unlocked by the current state that the student lacks.

    Args:
        student: Student being rewarded
        activities: All of the student's activities
        answers: The answer records for those activities
        score: Score of the activity just finished

    Returns:
        Newly unlocked badge ids
    """
    owned = set(student.gamification.badges)
    completed = count_completed(activities, answers)

    new_badges: list[str] = []
    if FIRST_ACTIVITY not in owned and completed >= 1:
        new_badges.append(FIRST_ACTIVITY)
    if PERFECT_SCORE not in owned and score.is_perfect:
        new_badges.append(PERFECT_SCORE)
    if THREE_COMPLETED not in owned and completed >= 3:
        new_badges.append(THREE_COMPLETED)
    return new_badges
