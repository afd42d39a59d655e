"""
Domain Store.

In-memory materialization of the persisted collections:
- students, activities, answers, goals
- the per-student insights cache (``tutorInsights``)
- the shared tutor password (``tutorPassword``)

Every mutation runs under one re-entrant lock and is written through to
the repository. Writes from another session are picked up by ``sync()``;
a collection is reloaded only when its stored value differs from the
last one this store saw.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from loguru import logger

from tutoria.adaptive.placement import RawResult, normalize_results
from tutoria.content.provider import ContentProvider
from tutoria.core.exceptions import (
    ContentProviderError,
    PlacementAlreadyCompletedError,
    StudentNotFoundError,
)
from tutoria.core.grading import (
    ActivityReview,
    ActivityStatus,
    Score,
    activity_status,
    is_completed,
    review,
    score,
)
from tutoria.core.models import (
    Activity,
    ActivityType,
    Badge,
    Question,
    QuestionType,
    Student,
    StudentAnswer,
    StudyGoal,
    TutorInsights,
    new_id,
)
from tutoria.gamification import RewardResult, award_rewards, resolve_badges

from .repository import Repository

if TYPE_CHECKING:
    from tutoria.authoring import ActivityDraft

STUDENTS_KEY = "students"
ACTIVITIES_KEY = "activities"
ANSWERS_KEY = "answers"
GOALS_KEY = "goals"
INSIGHTS_KEY = "tutorInsights"
PASSWORD_KEY = "tutorPassword"

STORE_KEYS: tuple[str, ...] = (
    STUDENTS_KEY,
    ACTIVITIES_KEY,
    ANSWERS_KEY,
    GOALS_KEY,
    INSIGHTS_KEY,
    PASSWORD_KEY,
)

NO_PROVIDER_MESSAGE = "Nenhum provedor de conteúdo configurado."

StoreListener = Callable[[str], None]


class DomainStore:
    """
    Owns all domain mutations and their persistence.

    Listeners registered with ``on_change`` receive the key of every
    collection whose in-memory state changed, whether by a local write or
    by a reload after an external one.
    """

    def __init__(self, repository: Repository, provider: ContentProvider | None = None):
        """
        Initialize the store and load every collection.

        Args:
            repository: Key-value persistence backend
            provider: Content Provider for generated activities and insights
        """
        self.repository = repository
        self.provider = provider

        self._lock = threading.RLock()
        self._listeners: list[StoreListener] = []
        self._snapshots: dict[str, Any] = {}
        self._reloaded: list[str] = []

        self._students: list[Student] = []
        self._activities: list[Activity] = []
        self._answers: list[StudentAnswer] = []
        self._goals: list[StudyGoal] = []
        self._insights: dict[str, TutorInsights] = {}
        self._tutor_password = ""

        with self._lock:
            for key in STORE_KEYS:
                self._load(key, repository.get(key))
        self._unsubscribe = repository.subscribe(self._on_external_change)

    # =========================================================================
    # Loading / persistence
    # =========================================================================

    def _load(self, key: str, value: Any) -> None:
        """Replace one collection from its stored JSON value."""
        try:
            self._apply(key, value)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Malformed '{key}' collection, starting empty: {e}")
            self._apply(key, None)
        self._snapshots[key] = self._serialize(key)

    def _apply(self, key: str, value: Any) -> None:
        if key == STUDENTS_KEY:
            self._students = [Student.from_dict(s) for s in value or []]
        elif key == ACTIVITIES_KEY:
            self._activities = [Activity.from_dict(a) for a in value or []]
        elif key == ANSWERS_KEY:
            self._answers = [StudentAnswer.from_dict(a) for a in value or []]
        elif key == GOALS_KEY:
            self._goals = [StudyGoal.from_dict(g) for g in value or []]
        elif key == INSIGHTS_KEY:
            self._insights = {sid: TutorInsights.from_dict(i) for sid, i in (value or {}).items()}
        elif key == PASSWORD_KEY:
            if value is not None and not isinstance(value, str):
                raise TypeError("tutor password must be a string")
            self._tutor_password = value or ""

    def _serialize(self, key: str) -> Any:
        if key == STUDENTS_KEY:
            return [s.to_dict() for s in self._students]
        if key == ACTIVITIES_KEY:
            return [a.to_dict() for a in self._activities]
        if key == ANSWERS_KEY:
            return [a.to_dict() for a in self._answers]
        if key == GOALS_KEY:
            return [g.to_dict() for g in self._goals]
        if key == INSIGHTS_KEY:
            return {sid: i.to_dict() for sid, i in self._insights.items()}
        return self._tutor_password

    def _persist(self, key: str) -> None:
        """Write one collection; on failure roll memory back to the last stored value."""
        value = self._serialize(key)
        try:
            self.repository.set(key, value)
        except Exception as e:
            logger.error(f"Failed to store '{key}', discarding the change: {e}")
            self._apply(key, copy.deepcopy(self._snapshots.get(key)))
            raise
        self._snapshots[key] = value
        self._notify(key)

    def _on_external_change(self, key: str) -> None:
        if key not in STORE_KEYS:
            return
        value = self.repository.get(key)
        with self._lock:
            previous = self._snapshots.get(key)
            if value == previous:
                return
            self._load(key, value)
            if self._snapshots[key] == previous:
                return
            self._reloaded.append(key)
        logger.info(f"Reloaded '{key}' after an external change")
        self._notify(key)

    def _notify(self, key: str) -> None:
        for listener in list(self._listeners):
            listener(key)

    def on_change(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def sync(self) -> list[str]:
        """Pick up external writes. Returns the keys that were reloaded."""
        with self._lock:
            self._reloaded = []
        self.repository.poll_changes()
        with self._lock:
            reloaded, self._reloaded = self._reloaded, []
        return reloaded

    def close(self) -> None:
        self._unsubscribe()

    def _require_provider(self) -> ContentProvider:
        if self.provider is None:
            raise ContentProviderError(NO_PROVIDER_MESSAGE)
        return self.provider

    # =========================================================================
    # Students
    # =========================================================================

    def add_student(self, name: str, age: int, grade: str) -> Student:
        student = Student(id=new_id("student"), name=name, age=age, grade=grade)
        with self._lock:
            self._students.append(student)
            self._persist(STUDENTS_KEY)
        logger.info(f"Added student {student.id} ({name}, {grade})")
        return student

    def get_student(self, student_id: str) -> Student | None:
        with self._lock:
            return next((s for s in self._students if s.id == student_id), None)

    def list_students(self) -> list[Student]:
        with self._lock:
            return list(self._students)

    def _require_student(self, student_id: str) -> Student:
        student = self.get_student(student_id)
        if student is None:
            raise StudentNotFoundError(student_id)
        return student

    def complete_nivelamento(
        self,
        student_id: str,
        raw_results: Mapping[str, RawResult],
    ) -> Student:
        """
        Record placement results, once.

        Raises:
            StudentNotFoundError: Unknown student
            PlacementAlreadyCompletedError: Placement was already recorded
        """
        with self._lock:
            student = self._require_student(student_id)
            if student.nivelamento_completed:
                raise PlacementAlreadyCompletedError(student_id)
            student.nivelamento_results = normalize_results(raw_results)
            student.nivelamento_completed = True
            self._persist(STUDENTS_KEY)
        logger.info(f"Placement completed for {student_id}: {student.nivelamento_results}")
        return student

    # =========================================================================
    # Activities
    # =========================================================================

    def add_activity(
        self,
        student_id: str,
        title: str,
        subject: str,
        type: ActivityType,
        content: list[Question],
    ) -> Activity:
        activity = Activity(
            id=new_id("activity"),
            title=title,
            subject=subject,
            type=type,
            content=list(content),
            student_id=student_id,
        )
        with self._lock:
            self._require_student(student_id)
            self._activities.append(activity)
            self._persist(ACTIVITIES_KEY)
        logger.info(f"Added {type.value} activity {activity.id} '{title}' for {student_id}")
        return activity

    async def add_generated_activity(self, student_id: str, subject: str, topic: str) -> Activity:
        """
        Generate a three-question activity on ``topic`` and append it.

        Nothing is stored when generation fails.

        Raises:
            StudentNotFoundError: Unknown student
            ContentProviderError: Generation failed
        """
        student = self._require_student(student_id)
        questions = await self._require_provider().generate_activity(topic, subject, student.grade)
        content = [
            replace(q, id=new_id("q"), type=QuestionType.MULTIPLE_CHOICE) for q in questions
        ]
        return self.add_activity(student_id, topic, subject, ActivityType.GENERATED, content)

    def save_draft(self, draft: ActivityDraft) -> Activity:
        """Turn a reviewed authoring draft into a stored activity."""
        if not draft.questions:
            raise ValueError("A atividade deve ter pelo menos uma questão.")
        draft.validate()
        return self.add_activity(
            draft.student_id,
            draft.title,
            draft.subject,
            draft.activity_type,
            draft.questions,
        )

    def get_activity(self, activity_id: str) -> Activity | None:
        with self._lock:
            return next((a for a in self._activities if a.id == activity_id), None)

    def student_activities(self, student_id: str) -> list[Activity]:
        with self._lock:
            return [a for a in self._activities if a.student_id == student_id]

    # =========================================================================
    # Answers
    # =========================================================================

    def get_answer(self, activity_id: str) -> StudentAnswer | None:
        with self._lock:
            return next((a for a in self._answers if a.activity_id == activity_id), None)

    def student_answers(self, student_id: str) -> list[StudentAnswer]:
        with self._lock:
            owned = {a.id for a in self._activities if a.student_id == student_id}
            return [ans for ans in self._answers if ans.activity_id in owned]

    def save_student_answer(
        self,
        student_id: str,
        activity_id: str,
        question_index: int,
        answer: str,
    ) -> StudentAnswer | None:
        """
        Upsert one answer; the last write for an index wins.

        Returns None (and stores nothing) when the activity is unknown or
        belongs to another student.

        Raises:
            ValueError: ``question_index`` is outside the activity
        """
        with self._lock:
            activity = self.get_activity(activity_id)
            if activity is None or activity.student_id != student_id:
                logger.warning(f"Ignoring answer for {activity_id}: not an activity of {student_id}")
                return None
            if not 0 <= question_index < len(activity.content):
                raise ValueError(
                    f"Question index {question_index} out of range for {activity_id} "
                    f"({len(activity.content)} questions)"
                )
            record = self.get_answer(activity_id)
            if record is None:
                record = StudentAnswer(activity_id=activity_id)
                self._answers.append(record)
            record.answers[question_index] = answer
            self._persist(ANSWERS_KEY)
            return record

    # =========================================================================
    # Grading and rewards
    # =========================================================================

    def score_activity(self, activity_id: str) -> Score:
        """Score of the stored submission; zero for an unknown activity."""
        with self._lock:
            activity = self.get_activity(activity_id)
            if activity is None:
                return Score(correct=0, total=0)
            return score(activity, self.get_answer(activity_id))

    def award_rewards(self, student_id: str, activity_id: str, activity_score: Score) -> RewardResult:
        """Pay points and badges for a completed activity. Unknown students get nothing."""
        with self._lock:
            student = self.get_student(student_id)
            if student is None:
                logger.warning(f"Cannot reward unknown student {student_id}")
                return RewardResult()
            result = award_rewards(
                student,
                activity_id,
                activity_score,
                self.student_activities(student_id),
                self.student_answers(student_id),
            )
            if result.awarded_points or result.new_badges:
                self._persist(STUDENTS_KEY)
            return result

    def student_badges(self, student_id: str) -> list[Badge]:
        student = self.get_student(student_id)
        if student is None:
            return []
        return resolve_badges(student.gamification.badges)

    def review_activity(self, activity_id: str) -> ActivityReview | None:
        with self._lock:
            activity = self.get_activity(activity_id)
            if activity is None:
                return None
            return review(activity, self.get_answer(activity_id))

    def completed_activities(self, student_id: str) -> list[Activity]:
        with self._lock:
            return [
                a for a in self.student_activities(student_id) if is_completed(a, self.get_answer(a.id))
            ]

    def activity_statuses(self, student_id: str) -> list[tuple[Activity, ActivityStatus]]:
        with self._lock:
            return [
                (a, activity_status(a, self.get_answer(a.id)))
                for a in self.student_activities(student_id)
            ]

    # =========================================================================
    # Insights
    # =========================================================================

    def cached_insights(self, student_id: str) -> TutorInsights | None:
        with self._lock:
            return self._insights.get(student_id)

    async def get_student_insights(self, student_id: str) -> TutorInsights:
        """
        Cached insights for a student, computed on first request.

        Raises:
            StudentNotFoundError: Unknown student
            ContentProviderError: Analysis failed
        """
        self._require_student(student_id)
        cached = self.cached_insights(student_id)
        if cached is not None:
            return cached
        return await self.refresh_student_insights(student_id)

    async def refresh_student_insights(self, student_id: str) -> TutorInsights:
        """Recompute and cache a student's insights."""
        student = self._require_student(student_id)
        insights = await self._require_provider().generate_insights(
            student,
            self.student_activities(student_id),
            self.student_answers(student_id),
        )
        with self._lock:
            self._insights[student_id] = insights
            self._persist(INSIGHTS_KEY)
        logger.info(f"Insights updated for {student_id}")
        return insights

    # =========================================================================
    # Goals
    # =========================================================================

    def add_goal(self, student_id: str, description: str) -> StudyGoal:
        goal = StudyGoal(id=new_id("goal"), student_id=student_id, description=description)
        with self._lock:
            self._require_student(student_id)
            self._goals.append(goal)
            self._persist(GOALS_KEY)
        return goal

    def set_goal_completed(self, goal_id: str, completed: bool = True) -> StudyGoal | None:
        with self._lock:
            goal = next((g for g in self._goals if g.id == goal_id), None)
            if goal is None:
                return None
            goal.completed = completed
            self._persist(GOALS_KEY)
            return goal

    def student_goals(self, student_id: str) -> list[StudyGoal]:
        with self._lock:
            return [g for g in self._goals if g.student_id == student_id]

    # =========================================================================
    # Tutor password
    # =========================================================================

    @property
    def tutor_password(self) -> str:
        with self._lock:
            return self._tutor_password

    def set_tutor_password(self, secret: str) -> None:
        with self._lock:
            self._tutor_password = secret
            self._persist(PASSWORD_KEY)
