"""
Integration test for the placement → practice → reward cycle.

Runs the real store, engines and replenisher over a file repository with
a deterministic content provider.
"""

import random

import pytest

from tutoria.adaptive import ActivityReplenisher, PlacementTest
from tutoria.core.grading import Score
from tutoria.gamification import FIRST_ACTIVITY, PERFECT_SCORE, THREE_COMPLETED
from tutoria.store import DomainStore, JsonFileRepository


@pytest.fixture
def file_store(tmp_path, fake_provider):
    store = DomainStore(JsonFileRepository(tmp_path / "data"), fake_provider)
    yield store
    store.close()


class TestFullCycle:
    """End-to-end domain flow."""

    @pytest.mark.asyncio
    async def test_placement_then_perfect_activity(self, file_store):
        student = file_store.add_student("Ana", 10, "5º Ano")

        placed = file_store.complete_nivelamento(student.id, {"Matemática": {"correct": 3, "total": 4}})
        assert placed.nivelamento_results == {"Matemática": 75}
        assert placed.nivelamento_completed

        activity = await file_store.add_generated_activity(student.id, "Matemática", "Operações com frações")
        for index, question in enumerate(activity.content):
            file_store.save_student_answer(student.id, activity.id, index, question.correct_answer)

        score = file_store.score_activity(activity.id)
        result = file_store.award_rewards(student.id, activity.id, score)

        assert score == Score(correct=3, total=3)
        assert result.awarded_points == 80
        assert [b.id for b in result.new_badges] == [FIRST_ACTIVITY, PERFECT_SCORE]

    @pytest.mark.asyncio
    async def test_placement_quiz_to_three_completions(self, file_store, fake_provider, tmp_path):
        student = file_store.add_student("Bia", 9, "4º Ano")

        questions = await fake_provider.generate_placement_test(student.grade)
        quiz = PlacementTest(questions)
        while not quiz.finished:
            subject = quiz.current_question.subject
            quiz.answer("A" if subject == "Português" else "B")
        file_store.complete_nivelamento(student.id, quiz.results())
        assert file_store.get_student(student.id).nivelamento_results == {"Matemática": 0, "Português": 100}

        replenisher = ActivityReplenisher(file_store, rng=random.Random(3))
        created = await replenisher.replenish(student.id)
        assert len(created) == 3
        assert await replenisher.replenish(student.id) == []

        total_points = 0
        unlocked = []
        for activity in created:
            for index in range(len(activity.content)):
                file_store.save_student_answer(student.id, activity.id, index, "Z")
            result = file_store.award_rewards(student.id, activity.id, file_store.score_activity(activity.id))
            total_points += result.awarded_points
            unlocked.extend(b.id for b in result.new_badges)

        assert total_points == 0
        assert unlocked == [FIRST_ACTIVITY, THREE_COMPLETED]

        refilled = await replenisher.replenish(student.id)
        assert len(refilled) == 3

        reopened = DomainStore(JsonFileRepository(tmp_path / "data"))
        assert len(reopened.student_activities(student.id)) == 6
        assert [b.id for b in reopened.student_badges(student.id)] == [FIRST_ACTIVITY, THREE_COMPLETED]
        assert reopened.cached_insights(student.id) is not None

    def test_two_sessions_stay_in_sync(self, tmp_path):
        first = DomainStore(JsonFileRepository(tmp_path / "data"))
        second = DomainStore(JsonFileRepository(tmp_path / "data"))
        events = []
        second.on_change(events.append)

        student = first.add_student("Caio", 8, "3º Ano")

        assert "students" in second.sync()
        assert second.get_student(student.id).name == "Caio"
        assert events == ["students"]
        assert second.sync() == []
