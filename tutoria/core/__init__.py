"""
Core Module - Shared domain models, grading and errors.

Components:
- models: Student, Activity, Question, StudentAnswer and friends
- grading: Scoring, completion status and answer review
- exceptions: Domain error hierarchy
"""

from tutoria.core.exceptions import (
    ContentProviderError,
    NotFoundError,
    PlacementAlreadyCompletedError,
    StudentNotFoundError,
    TutoriaError,
)
from tutoria.core.grading import (
    ActivityReview,
    ActivityStatus,
    QuestionReview,
    Score,
    activity_status,
    count_completed,
    is_completed,
    is_uncompleted,
    percent,
    review,
    score,
    tally_by_subject,
)
from tutoria.core.models import (
    CUSTOM_SUBJECT,
    GRADE_OPTIONS,
    SUBJECTS,
    Activity,
    ActivityType,
    Badge,
    Gamification,
    HubInfo,
    ProficiencyLevel,
    Question,
    QuestionType,
    Student,
    StudentAnswer,
    StudyGoal,
    TutorInsights,
    new_id,
)

__all__ = [
    # Models
    "Activity",
    "ActivityType",
    "Badge",
    "CUSTOM_SUBJECT",
    "GRADE_OPTIONS",
    "Gamification",
    "HubInfo",
    "ProficiencyLevel",
    "Question",
    "QuestionType",
    "SUBJECTS",
    "Student",
    "StudentAnswer",
    "StudyGoal",
    "TutorInsights",
    "new_id",
    # Grading
    "ActivityReview",
    "ActivityStatus",
    "QuestionReview",
    "Score",
    "activity_status",
    "count_completed",
    "is_completed",
    "is_uncompleted",
    "percent",
    "review",
    "score",
    "tally_by_subject",
    # Errors
    "ContentProviderError",
    "NotFoundError",
    "PlacementAlreadyCompletedError",
    "StudentNotFoundError",
    "TutoriaError",
]
