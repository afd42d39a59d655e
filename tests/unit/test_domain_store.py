"""
Unit tests for the DomainStore.
"""

import pytest

from conftest import make_question
from tutoria.authoring import ActivityDraft
from tutoria.core.exceptions import (
    ContentProviderError,
    PlacementAlreadyCompletedError,
    StudentNotFoundError,
)
from tutoria.core.grading import ActivityStatus, Score
from tutoria.core.models import ActivityType, QuestionType
from tutoria.gamification import FIRST_ACTIVITY, PERFECT_SCORE
from tutoria.store import DomainStore, MemoryRepository


def add_manual_activity(store, student_id, n_questions=3):
    return store.add_activity(
        student_id,
        "Frações",
        "Matemática",
        ActivityType.MANUAL,
        [make_question(qid=f"q-{i}") for i in range(n_questions)],
    )


def answer_all(store, student_id, activity, option="A"):
    for index in range(len(activity.content)):
        store.save_student_answer(student_id, activity.id, index, option)


class TestStudents:
    """Tests for student operations."""

    def test_add_student_persists(self, store, repository):
        student = store.add_student("Bia", 8, "3º Ano")

        assert student.id.startswith("student-")
        assert not student.nivelamento_completed
        assert student.gamification.points == 0
        assert repository.get("students")[0]["name"] == "Bia"

    def test_ids_are_unique(self, store):
        ids = {store.add_student("Bia", 8, "3º Ano").id for _ in range(20)}
        assert len(ids) == 20

    def test_get_missing_student(self, store):
        assert store.get_student("student-missing") is None

    def test_list_students(self, store, student):
        assert [s.id for s in store.list_students()] == [student.id]


class TestPlacement:
    """Tests for complete_nivelamento()."""

    def test_records_normalized_results(self, store, student, repository):
        updated = store.complete_nivelamento(student.id, {"Matemática": {"correct": 3, "total": 4}})

        assert updated.nivelamento_completed
        assert updated.nivelamento_results == {"Matemática": 75}
        stored = repository.get("students")[0]
        assert stored["nivelamentoCompleted"] is True
        assert stored["nivelamentoResults"] == {"Matemática": 75}

    def test_unknown_student(self, store):
        with pytest.raises(StudentNotFoundError):
            store.complete_nivelamento("student-missing", {})

    def test_is_write_once(self, store, student):
        store.complete_nivelamento(student.id, {"Matemática": {"correct": 3, "total": 4}})

        with pytest.raises(PlacementAlreadyCompletedError):
            store.complete_nivelamento(student.id, {"Matemática": {"correct": 0, "total": 4}})
        assert store.get_student(student.id).nivelamento_results == {"Matemática": 75}


class TestActivities:
    """Tests for activity operations."""

    def test_add_activity(self, store, student):
        activity = add_manual_activity(store, student.id)

        assert store.get_activity(activity.id) == activity
        assert store.student_activities(student.id) == [activity]

    def test_add_activity_requires_student(self, store):
        with pytest.raises(StudentNotFoundError):
            add_manual_activity(store, "student-missing")

    def test_activities_are_per_student(self, store, student):
        other = store.add_student("Caio", 9, "4º Ano")
        add_manual_activity(store, student.id)
        add_manual_activity(store, other.id)

        assert len(store.student_activities(student.id)) == 1
        assert len(store.student_activities(other.id)) == 1

    @pytest.mark.asyncio
    async def test_add_generated_activity(self, store, student, fake_provider):
        activity = await store.add_generated_activity(student.id, "Ciências", "O sistema solar")

        assert activity.title == "O sistema solar"
        assert activity.subject == "Ciências"
        assert activity.type == ActivityType.GENERATED
        assert len(activity.content) == 3
        assert all(q.type == QuestionType.MULTIPLE_CHOICE for q in activity.content)
        assert len({q.id for q in activity.content}) == 3
        assert all(q.id != "tmp" for q in activity.content)
        assert fake_provider.activity_calls == [("activity", "O sistema solar", "Ciências")]

    @pytest.mark.asyncio
    async def test_generation_failure_stores_nothing(self, store, student, fake_provider):
        fake_provider.activity_failures_after = 0

        with pytest.raises(ContentProviderError):
            await store.add_generated_activity(student.id, "Ciências", "O sistema solar")
        assert store.student_activities(student.id) == []

    @pytest.mark.asyncio
    async def test_generation_without_provider(self, repository, student):
        bare = DomainStore(repository)
        with pytest.raises(ContentProviderError):
            await bare.add_generated_activity(student.id, "Ciências", "O sistema solar")


class TestAnswers:
    """Tests for save_student_answer()."""

    def test_creates_record(self, store, student):
        activity = add_manual_activity(store, student.id)

        record = store.save_student_answer(student.id, activity.id, 1, "B")

        assert record.answers == {1: "B"}
        assert store.get_answer(activity.id).answers == {1: "B"}

    def test_overwrites_only_target_index(self, store, student):
        activity = add_manual_activity(store, student.id)
        store.save_student_answer(student.id, activity.id, 0, "A")
        store.save_student_answer(student.id, activity.id, 1, "B")

        store.save_student_answer(student.id, activity.id, 1, "C")

        assert store.get_answer(activity.id).answers == {0: "A", 1: "C"}
        assert len(store.student_answers(student.id)) == 1

    def test_answers_persist_with_string_keys(self, store, student, repository):
        activity = add_manual_activity(store, student.id)
        store.save_student_answer(student.id, activity.id, 2, "D")

        assert repository.get("answers") == [{"activityId": activity.id, "answers": {"2": "D"}}]

    def test_unknown_activity_is_ignored(self, store, student):
        assert store.save_student_answer(student.id, "activity-missing", 0, "A") is None
        assert store.student_answers(student.id) == []

    def test_foreign_activity_is_ignored(self, store, student):
        other = store.add_student("Caio", 9, "4º Ano")
        activity = add_manual_activity(store, other.id)

        assert store.save_student_answer(student.id, activity.id, 0, "A") is None
        assert store.get_answer(activity.id) is None

    def test_index_out_of_range(self, store, student):
        activity = add_manual_activity(store, student.id, n_questions=2)

        with pytest.raises(ValueError):
            store.save_student_answer(student.id, activity.id, 2, "A")
        with pytest.raises(ValueError):
            store.save_student_answer(student.id, activity.id, -1, "A")


class TestScoringAndRewards:
    """Tests for scoring, rewards and derived views."""

    def test_score_and_reward(self, store, student, repository):
        activity = add_manual_activity(store, student.id)
        answer_all(store, student.id, activity)

        score = store.score_activity(activity.id)
        result = store.award_rewards(student.id, activity.id, score)

        assert score == Score(correct=3, total=3)
        assert result.awarded_points == 80
        assert [b.id for b in result.new_badges] == [FIRST_ACTIVITY, PERFECT_SCORE]
        assert repository.get("students")[0]["gamification"]["points"] == 80
        assert [b.id for b in store.student_badges(student.id)] == [FIRST_ACTIVITY, PERFECT_SCORE]

    def test_reward_is_idempotent(self, store, student):
        activity = add_manual_activity(store, student.id)
        answer_all(store, student.id, activity)
        score = store.score_activity(activity.id)
        store.award_rewards(student.id, activity.id, score)

        again = store.award_rewards(student.id, activity.id, score)

        assert again.awarded_points == 0
        assert store.get_student(student.id).gamification.points == 80

    def test_reward_unknown_student_is_noop(self, store):
        result = store.award_rewards("student-missing", "activity-1", Score(correct=3, total=3))

        assert result.awarded_points == 0
        assert result.new_badges == []

    def test_score_unknown_activity(self, store):
        assert store.score_activity("activity-missing") == Score(correct=0, total=0)

    def test_review_activity(self, store, student):
        activity = add_manual_activity(store, student.id, n_questions=2)
        store.save_student_answer(student.id, activity.id, 0, "B")

        result = store.review_activity(activity.id)

        assert result.score == Score(correct=0, total=2)
        assert result.items[0].submitted == "B"
        assert result.items[1].submitted is None
        assert store.review_activity("activity-missing") is None

    def test_statuses_and_completed(self, store, student):
        done = add_manual_activity(store, student.id, n_questions=1)
        started = add_manual_activity(store, student.id, n_questions=2)
        fresh = add_manual_activity(store, student.id, n_questions=1)
        answer_all(store, student.id, done)
        store.save_student_answer(student.id, started.id, 0, "A")

        statuses = dict((a.id, s) for a, s in store.activity_statuses(student.id))

        assert statuses == {
            done.id: ActivityStatus.COMPLETED,
            started.id: ActivityStatus.IN_PROGRESS,
            fresh.id: ActivityStatus.NOT_STARTED,
        }
        assert store.completed_activities(student.id) == [done]

    def test_badges_of_unknown_student(self, store):
        assert store.student_badges("student-missing") == []


class TestInsights:
    """Tests for the insights cache."""

    @pytest.mark.asyncio
    async def test_computed_once_then_cached(self, store, student, fake_provider, repository):
        first = await store.get_student_insights(student.id)
        second = await store.get_student_insights(student.id)

        assert first == second == fake_provider.insights
        assert [c for c in fake_provider.calls if c[0] == "insights"] == [("insights", student.id)]
        assert student.id in repository.get("tutorInsights")

    @pytest.mark.asyncio
    async def test_refresh_recomputes(self, store, student, fake_provider):
        await store.get_student_insights(student.id)
        await store.refresh_student_insights(student.id)

        assert len([c for c in fake_provider.calls if c[0] == "insights"]) == 2

    @pytest.mark.asyncio
    async def test_unknown_student(self, store):
        with pytest.raises(StudentNotFoundError):
            await store.get_student_insights("student-missing")

    @pytest.mark.asyncio
    async def test_failure_caches_nothing(self, store, student, fake_provider):
        fake_provider.fail_insights = True

        with pytest.raises(ContentProviderError):
            await store.get_student_insights(student.id)
        assert store.cached_insights(student.id) is None


class TestDrafts:
    """Tests for save_draft()."""

    def test_empty_draft_rejected(self, store, student):
        with pytest.raises(ValueError):
            store.save_draft(ActivityDraft(title="Vazia", student_id=student.id))

    def test_pdf_draft(self, store, student, tmp_path):
        draft = ActivityDraft(
            title="Capítulo 2",
            student_id=student.id,
            questions=[make_question("História")],
            source_file=tmp_path / "capitulo.pdf",
        )
        activity = store.save_draft(draft)

        assert activity.type == ActivityType.PDF
        assert activity.subject == "História"
        assert activity.title == "Capítulo 2"


class TestGoals:
    """Tests for study goals."""

    def test_goal_lifecycle(self, store, student, repository):
        goal = store.add_goal(student.id, "Ler um livro por mês")

        assert store.student_goals(student.id) == [goal]
        assert not goal.completed

        updated = store.set_goal_completed(goal.id)

        assert updated.completed
        assert repository.get("goals")[0]["completed"] is True

    def test_unknown_goal(self, store):
        assert store.set_goal_completed("goal-missing") is None

    def test_goal_requires_student(self, store):
        with pytest.raises(StudentNotFoundError):
            store.add_goal("student-missing", "Meta")


class TestPersistenceAndSync:
    """Tests for loading, malformed state and external changes."""

    def test_reload_from_repository(self, store, student, repository):
        activity = add_manual_activity(store, student.id)
        store.save_student_answer(student.id, activity.id, 0, "A")

        reopened = DomainStore(repository)

        assert reopened.get_student(student.id) == student
        assert reopened.get_activity(activity.id) == activity
        assert reopened.get_answer(activity.id).answers == {0: "A"}

    def test_malformed_state_falls_back_to_empty(self):
        repository = MemoryRepository()
        repository.set_raw("students", "{broken")
        repository.set("activities", [{"title": "sem id"}])
        repository.set("tutorPassword", 1234)

        store = DomainStore(repository)

        assert store.list_students() == []
        assert store.student_activities("student-1") == []
        assert store.tutor_password == ""

    def test_external_change_reloads_and_notifies(self, store, student, repository):
        events = []
        store.on_change(events.append)
        changed = repository.get("students")
        changed[0]["name"] = "Ana Clara"
        repository.external_set("students", changed)

        assert store.sync() == ["students"]
        assert store.get_student(student.id).name == "Ana Clara"
        assert events == ["students"]

    def test_identical_external_value_is_ignored(self, store, student, repository):
        events = []
        store.on_change(events.append)
        repository.external_set("students", repository.get("students"))

        assert store.sync() == []
        assert events == []

    def test_local_writes_notify_listeners(self, store):
        events = []
        unsubscribe = store.on_change(events.append)
        store.add_student("Bia", 8, "3º Ano")
        unsubscribe()
        store.add_student("Caio", 9, "4º Ano")

        assert events == ["students"]

    def test_tutor_password_roundtrip(self, store, repository):
        store.set_tutor_password("segredo")

        assert repository.get("tutorPassword") == "segredo"
        assert DomainStore(repository).tutor_password == "segredo"


class FlakyRepository(MemoryRepository):
    """Memory repository whose writes fail while ``failing`` is set."""

    def __init__(self):
        super().__init__()
        self.failing = False

    def set(self, key, value):
        if self.failing:
            raise OSError("disk full")
        super().set(key, value)


class TestFailedWrites:
    """A write that fails leaves memory as it was in storage."""

    @pytest.fixture
    def flaky(self):
        return FlakyRepository()

    def test_failed_placement_can_be_retried(self, flaky):
        store = DomainStore(flaky)
        student = store.add_student("Ana", 10, "5º Ano")
        flaky.failing = True

        with pytest.raises(OSError):
            store.complete_nivelamento(student.id, {"Matemática": {"correct": 1, "total": 4}})

        assert not store.get_student(student.id).nivelamento_completed
        assert store.get_student(student.id).nivelamento_results is None

        flaky.failing = False
        store.complete_nivelamento(student.id, {"Matemática": {"correct": 1, "total": 4}})

        assert flaky.get("students")[0]["nivelamentoResults"] == {"Matemática": 25}

    def test_failed_reward_is_paid_on_retry(self, flaky):
        store = DomainStore(flaky)
        student = store.add_student("Ana", 10, "5º Ano")
        activity = add_manual_activity(store, student.id)
        answer_all(store, student.id, activity)
        flaky.failing = True

        with pytest.raises(OSError):
            store.award_rewards(student.id, activity.id, Score(correct=3, total=3))

        gamification = store.get_student(student.id).gamification
        assert gamification.points == 0
        assert gamification.rewarded_activities == []

        flaky.failing = False
        result = store.award_rewards(student.id, activity.id, Score(correct=3, total=3))

        assert result.awarded_points == 80
        assert flaky.get("students")[0]["gamification"]["points"] == 80

    def test_failed_insert_is_not_visible(self, flaky):
        store = DomainStore(flaky)
        events = []
        store.on_change(events.append)
        flaky.failing = True

        with pytest.raises(OSError):
            store.add_student("Ana", 10, "5º Ano")

        assert store.list_students() == []
        assert events == []
