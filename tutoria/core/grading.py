"""
Grading Engine.

Scores an activity against a student's submitted answers. Only
multiple-choice questions are auto-graded; open-ended questions are left
out of both the numerator and the denominator.

Also hosts the completion helpers shared by the reward and adaptive
engines: an activity is completed when its answer map holds one entry per
question.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from .models import Activity, Question, StudentAnswer


def percent(correct: int, total: int) -> int:
    """Whole percentage rounded half-up; 0 when there is nothing to grade."""
    if total <= 0:
        return 0
    return (correct * 200 + total) // (2 * total)


@dataclass(frozen=True)
class Score:
    correct: int
    total: int

    @property
    def percentage(self) -> int:
        return percent(self.correct, self.total)

    @property
    def is_perfect(self) -> bool:
        return self.total > 0 and self.correct == self.total

    def to_dict(self) -> dict[str, int]:
        return {"correct": self.correct, "total": self.total}


def score(activity: Activity, student_answer: StudentAnswer | None) -> Score:
    """
    Count correct multiple-choice answers.

    A question without a submitted answer counts as incorrect.
    """
    submitted = student_answer.answers if student_answer else {}
    correct = 0
    total = 0
    for index, question in enumerate(activity.content):
        if not question.is_auto_graded:
            continue
        total += 1
        if _is_correct(question, submitted.get(index)):
            correct += 1
    return Score(correct=correct, total=total)


def _is_correct(question: Question, submitted: str | None) -> bool:
    return (
        submitted is not None
        and question.correct_answer is not None
        and submitted == question.correct_answer
    )


def tally_by_subject(questions: Iterable[Question], answers: Mapping[int, str]) -> dict[str, Score]:
    """
    Per-subject correct/total counts for a sequential quiz.

    Every question counts towards its subject's total, as in the placement
    test where all questions are multiple-choice.
    """
    counts: dict[str, list[int]] = {}
    for index, question in enumerate(questions):
        bucket = counts.setdefault(question.subject, [0, 0])
        bucket[1] += 1
        if _is_correct(question, answers.get(index)):
            bucket[0] += 1
    return {subject: Score(correct=c, total=t) for subject, (c, t) in counts.items()}


# =============================================================================
# Completion
# =============================================================================


class ActivityStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def is_completed(activity: Activity, student_answer: StudentAnswer | None) -> bool:
    return student_answer is not None and len(student_answer.answers) == len(activity.content)


def is_uncompleted(activity: Activity, student_answer: StudentAnswer | None) -> bool:
    return student_answer is None or len(student_answer.answers) < len(activity.content)


def activity_status(activity: Activity, student_answer: StudentAnswer | None) -> ActivityStatus:
    if is_completed(activity, student_answer):
        return ActivityStatus.COMPLETED
    if student_answer is not None and student_answer.answers:
        return ActivityStatus.IN_PROGRESS
    return ActivityStatus.NOT_STARTED


def count_completed(activities: Iterable[Activity], answers: Iterable[StudentAnswer]) -> int:
    """Number of answer records whose activity is fully answered."""
    by_id = {a.id: a for a in activities}
    return sum(
        1
        for ans in answers
        if ans.activity_id in by_id and is_completed(by_id[ans.activity_id], ans)
    )


# =============================================================================
# Review
# =============================================================================


@dataclass
class QuestionReview:
    index: int
    question: Question
    submitted: str | None
    graded: bool
    is_correct: bool

    @property
    def correct_answer(self) -> str | None:
        return self.question.correct_answer


@dataclass
class ActivityReview:
    activity: Activity
    score: Score
    items: list[QuestionReview] = field(default_factory=list)


def review(activity: Activity, student_answer: StudentAnswer | None) -> ActivityReview:
    """Question-by-question breakdown of a submission."""
    submitted = student_answer.answers if student_answer else {}
    items = []
    for index, question in enumerate(activity.content):
        answer = submitted.get(index)
        items.append(
            QuestionReview(
                index=index,
                question=question,
                submitted=answer,
                graded=question.is_auto_graded,
                is_correct=question.is_auto_graded and _is_correct(question, answer),
            )
        )
    return ActivityReview(activity=activity, score=score(activity, student_answer), items=items)
