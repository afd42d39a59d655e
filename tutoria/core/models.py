"""
Core domain records.

Students, activities, questions and answers are plain dataclasses. They
serialize to the camelCase JSON layout used by the persisted collections
(``students``, ``activities``, ``answers``, ``goals``, ``tutorInsights``).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# School-year labels accepted for a student's grade.
GRADE_OPTIONS: tuple[str, ...] = (
    "Educação Infantil",
    "1º Ano",
    "2º Ano",
    "3º Ano",
    "4º Ano",
    "5º Ano",
    "6º Ano",
    "7º Ano",
    "8º Ano",
    "9º Ano",
)

# Subjects covered by the placement test.
SUBJECTS: tuple[str, ...] = (
    "Português",
    "Matemática",
    "Ciências",
    "História",
    "Geografia",
    "Lógica",
)

CUSTOM_SUBJECT = "Personalizada"


def new_id(prefix: str) -> str:
    """Return a fresh identifier such as ``student-3f9a0c1d2e4b``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    OPEN_ENDED = "open-ended"


class ActivityType(str, Enum):
    MANUAL = "manual"
    PDF = "pdf"
    GENERATED = "generated"


class ProficiencyLevel(str, Enum):
    """
    Per-subject proficiency reported by the insights analysis.

    Ordered from weakest to strongest.
    """

    INICIANTE = "Iniciante"
    EM_DESENVOLVIMENTO = "Em Desenvolvimento"
    ADEQUADO = "Adequado"
    AVANCADO = "Avançado"

    @classmethod
    def parse(cls, label: str) -> ProficiencyLevel | None:
        """Map a free-text label to a level, or None when unknown."""
        try:
            return cls(label.strip())
        except ValueError:
            return None

    @property
    def chart_value(self) -> int:
        """Bar length (percent) for the knowledge chart."""
        return {
            ProficiencyLevel.INICIANTE: 25,
            ProficiencyLevel.EM_DESENVOLVIMENTO: 50,
            ProficiencyLevel.ADEQUADO: 75,
            ProficiencyLevel.AVANCADO: 100,
        }[self]

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            ProficiencyLevel.INICIANTE: "red",
            ProficiencyLevel.EM_DESENVOLVIMENTO: "yellow",
            ProficiencyLevel.ADEQUADO: "cyan",
            ProficiencyLevel.AVANCADO: "green",
        }[self]


# =============================================================================
# Students
# =============================================================================


@dataclass
class Gamification:
    """Points, unlocked badge ids and the activities already paid out."""

    points: int = 0
    badges: list[str] = field(default_factory=list)
    rewarded_activities: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "points": self.points,
            "badges": list(self.badges),
            "rewardedActivities": list(self.rewarded_activities),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Gamification:
        data = data or {}
        return cls(
            points=int(data.get("points", 0)),
            badges=list(dict.fromkeys(data.get("badges") or [])),
            rewarded_activities=list(dict.fromkeys(data.get("rewardedActivities") or [])),
        )


@dataclass
class Student:
    id: str
    name: str
    age: int
    grade: str
    nivelamento_completed: bool = False
    nivelamento_results: dict[str, int] | None = None
    gamification: Gamification = field(default_factory=Gamification)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "age": self.age,
            "grade": self.grade,
            "nivelamentoCompleted": self.nivelamento_completed,
            "nivelamentoResults": (
                dict(self.nivelamento_results) if self.nivelamento_results is not None else None
            ),
            "gamification": self.gamification.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Student:
        results = data.get("nivelamentoResults")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            age=int(data.get("age", 0)),
            grade=data.get("grade", ""),
            nivelamento_completed=bool(data.get("nivelamentoCompleted", False)),
            nivelamento_results={k: int(v) for k, v in results.items()} if results is not None else None,
            gamification=Gamification.from_dict(data.get("gamification")),
        )


# =============================================================================
# Activities
# =============================================================================


@dataclass
class Question:
    id: str
    question: str
    subject: str
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    options: list[str] | None = None
    correct_answer: str | None = None

    @property
    def is_auto_graded(self) -> bool:
        return self.type == QuestionType.MULTIPLE_CHOICE

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "question": self.question,
            "subject": self.subject,
            "type": self.type.value,
        }
        if self.options is not None:
            data["options"] = list(self.options)
        if self.correct_answer is not None:
            data["correctAnswer"] = self.correct_answer
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Question:
        options = data.get("options")
        return cls(
            id=data.get("id") or new_id("q"),
            question=data.get("question", ""),
            subject=data.get("subject", ""),
            type=QuestionType(data.get("type", QuestionType.MULTIPLE_CHOICE.value)),
            options=list(options) if options is not None else None,
            correct_answer=data.get("correctAnswer"),
        )


@dataclass
class Activity:
    id: str
    title: str
    subject: str
    type: ActivityType
    content: list[Question]
    student_id: str

    @property
    def auto_graded_count(self) -> int:
        return sum(1 for q in self.content if q.is_auto_graded)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "subject": self.subject,
            "type": self.type.value,
            "content": [q.to_dict() for q in self.content],
            "studentId": self.student_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Activity:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            subject=data.get("subject", ""),
            type=ActivityType(data.get("type", ActivityType.MANUAL.value)),
            content=[Question.from_dict(q) for q in data.get("content") or []],
            student_id=data.get("studentId", ""),
        )


@dataclass
class StudentAnswer:
    """
    Submitted answers for one activity, keyed by question index.

    The mapping is sparse until every question has been answered.
    """

    activity_id: str
    answers: dict[int, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "activityId": self.activity_id,
            "answers": {str(index): text for index, text in sorted(self.answers.items())},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StudentAnswer:
        return cls(
            activity_id=data["activityId"],
            answers={int(index): text for index, text in (data.get("answers") or {}).items()},
        )


@dataclass
class StudyGoal:
    id: str
    student_id: str
    description: str
    completed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "studentId": self.student_id,
            "description": self.description,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StudyGoal:
        return cls(
            id=data["id"],
            student_id=data.get("studentId", ""),
            description=data.get("description", ""),
            completed=bool(data.get("completed", False)),
        )


# =============================================================================
# Badges and insights
# =============================================================================


@dataclass(frozen=True)
class Badge:
    """A catalog badge. ``icon`` is a presentation key, not an asset."""

    id: str
    name: str
    description: str
    icon: str = "medal"


@dataclass
class HubInfo:
    subject: str
    level: str
    summary: str
    suggestions: str

    @property
    def proficiency(self) -> ProficiencyLevel | None:
        return ProficiencyLevel.parse(self.level)

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "level": self.level,
            "summary": self.summary,
            "suggestions": self.suggestions,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HubInfo:
        return cls(
            subject=data.get("subject", ""),
            level=data.get("level", ""),
            summary=data.get("summary", ""),
            suggestions=data.get("suggestions", ""),
        )


@dataclass
class TutorInsights:
    lesson_suggestions: list[str] = field(default_factory=list)
    hub_data: list[HubInfo] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lessonSuggestions": list(self.lesson_suggestions),
            "hubData": [h.to_dict() for h in self.hub_data],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TutorInsights:
        return cls(
            lesson_suggestions=list(data.get("lessonSuggestions") or []),
            hub_data=[HubInfo.from_dict(h) for h in data.get("hubData") or []],
        )
