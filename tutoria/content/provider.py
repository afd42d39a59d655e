"""
Content Provider interface.

The provider generates quiz questions and progress insights. Every call
may fail; implementations raise ContentProviderError carrying a message
fit for the user, and never return partial content.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from pydantic import BaseModel, Field, ValidationError, field_validator

from tutoria.core.exceptions import ContentProviderError
from tutoria.core.models import (
    Activity,
    HubInfo,
    Question,
    QuestionType,
    Student,
    StudentAnswer,
    TutorInsights,
    new_id,
)

PLACEMENT_TEST_SIZE = 12
ACTIVITY_SIZE = 3
MAX_CUSTOM_QUESTIONS = 5


class ContentProvider(Protocol):
    """Protocol for question and insight generators."""

    async def generate_placement_test(self, grade: str) -> list[Question]:
        """Twelve multiple-choice questions, two per placement subject."""
        ...

    async def generate_activity(self, topic: str, subject: str, grade: str) -> list[Question]:
        """Three multiple-choice questions on ``topic``."""
        ...

    async def generate_insights(
        self,
        student: Student,
        activities: Sequence[Activity],
        answers: Sequence[StudentAnswer],
    ) -> TutorInsights:
        """Lesson suggestions plus a per-subject proficiency report."""
        ...

    async def generate_from_instructions(
        self,
        title: str,
        instructions: str,
        grade: str,
        source_text: str | None = None,
    ) -> list[Question]:
        """Up to five questions following the tutor's instructions."""
        ...


# =============================================================================
# Payload validation
# =============================================================================


class GeneratedQuestion(BaseModel):
    """A question as returned by the generator."""

    question: str = Field(min_length=1)
    options: list[str] = Field(min_length=2)
    correctAnswer: str
    subject: str = ""

    @field_validator("options")
    @classmethod
    def _distinct_options(cls, options: list[str]) -> list[str]:
        distinct = list(dict.fromkeys(o.strip() for o in options if o.strip()))
        if len(distinct) < 2:
            raise ValueError(f"Expected at least two distinct options, got {distinct}")
        return distinct

    def to_question(self, subject: str | None = None) -> Question:
        correct = self.correctAnswer.strip()
        return Question(
            id=new_id("q"),
            question=self.question.strip(),
            subject=subject or self.subject.strip(),
            type=QuestionType.MULTIPLE_CHOICE,
            options=list(self.options),
            correct_answer=correct if correct in self.options else None,
        )


class GeneratedHubInfo(BaseModel):
    subject: str
    level: str
    summary: str = ""
    suggestions: str = ""


class GeneratedInsights(BaseModel):
    lessonSuggestions: list[str] = Field(default_factory=list)
    hubData: list[GeneratedHubInfo] = Field(default_factory=list)

    def to_insights(self) -> TutorInsights:
        return TutorInsights(
            lesson_suggestions=list(self.lessonSuggestions),
            hub_data=[HubInfo(**h.model_dump()) for h in self.hubData],
        )


def parse_questions(data: Any, user_message: str, subject: str | None = None) -> list[Question]:
    """Validate a generated question list; raise ContentProviderError on bad shape."""
    if not isinstance(data, list):
        raise ContentProviderError(user_message, ValueError("Expected a JSON array of questions"))
    try:
        generated = [GeneratedQuestion.model_validate(item) for item in data]
    except ValidationError as e:
        raise ContentProviderError(user_message, e) from e
    return [g.to_question(subject) for g in generated]


def parse_insights(data: Any, user_message: str) -> TutorInsights:
    try:
        return GeneratedInsights.model_validate(data).to_insights()
    except ValidationError as e:
        raise ContentProviderError(user_message, e) from e


# =============================================================================
# Prompt data
# =============================================================================


def performance_summary(
    activities: Sequence[Activity],
    answers: Sequence[StudentAnswer],
) -> list[dict[str, Any]]:
    """
    Per-activity results fed to the insights analysis.

    Unanswered activities are reported as "Não iniciada"; otherwise each
    question is marked correct or not and the score is ``correct/total``
    over all questions.
    """
    by_activity = {ans.activity_id: ans for ans in answers}
    summary: list[dict[str, Any]] = []
    for activity in activities:
        answer = by_activity.get(activity.id)
        if answer is None:
            summary.append({"title": activity.title, "subject": activity.subject, "results": "Não iniciada"})
            continue
        details = []
        correct = 0
        for index, question in enumerate(activity.content):
            is_correct = (
                question.correct_answer is not None
                and answer.answers.get(index) == question.correct_answer
            )
            correct += is_correct
            details.append({"question": question.question, "isCorrect": is_correct})
        summary.append(
            {
                "title": activity.title,
                "subject": activity.subject,
                "score": f"{correct}/{len(activity.content)}",
                "details": details,
            }
        )
    return summary
