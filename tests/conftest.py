"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tutoria.core.exceptions import ContentProviderError  # noqa: E402
from tutoria.core.models import (  # noqa: E402
    Activity,
    ActivityType,
    HubInfo,
    Question,
    QuestionType,
    TutorInsights,
)
from tutoria.store import DomainStore, MemoryRepository  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (full domain flows)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


# =============================================================================
# Builders
# =============================================================================


def make_question(
    subject: str = "Matemática",
    correct: str = "A",
    options: list[str] | None = None,
    type: QuestionType = QuestionType.MULTIPLE_CHOICE,
    qid: str = "q-1",
) -> Question:
    if type == QuestionType.OPEN_ENDED:
        return Question(id=qid, question="Explique.", subject=subject, type=type)
    return Question(
        id=qid,
        question=f"Pergunta de {subject}",
        subject=subject,
        type=type,
        options=options or ["A", "B", "C", "D"],
        correct_answer=correct,
    )


def make_activity(
    activity_id: str = "activity-1",
    student_id: str = "student-1",
    n_questions: int = 3,
    title: str = "Operações com frações",
    subject: str = "Matemática",
) -> Activity:
    return Activity(
        id=activity_id,
        title=title,
        subject=subject,
        type=ActivityType.GENERATED,
        content=[make_question(subject=subject, qid=f"q-{i}") for i in range(n_questions)],
        student_id=student_id,
    )


# =============================================================================
# Fake Content Provider
# =============================================================================


class FakeContentProvider:
    """Deterministic ContentProvider that records its calls."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.insights = TutorInsights(
            lesson_suggestions=["Revisar frações.", "Ler fábulas.", "Explorar biomas."],
            hub_data=[
                HubInfo("Matemática", "Iniciante", "Dificuldade com frações.", "Exercícios de frações."),
                HubInfo("Português", "Avançado", "Boa leitura.", "Textos mais longos."),
            ],
        )
        self.placement_questions = [
            make_question(subject=subject, correct="A", qid=f"p-{i}")
            for i, subject in enumerate(["Matemática"] * 4 + ["Português"] * 2)
        ]
        self.custom_questions: list[Question] = [
            make_question(subject="História", correct="B", qid="tmp-1"),
            make_question(subject="História", correct="C", qid="tmp-2"),
        ]
        # Number of generate_activity calls that succeed before failing.
        self.activity_failures_after: int | None = None
        self.fail_insights = False

    @property
    def activity_calls(self) -> list[tuple]:
        return [c for c in self.calls if c[0] == "activity"]

    async def generate_placement_test(self, grade):
        self.calls.append(("placement", grade))
        return list(self.placement_questions)

    async def generate_activity(self, topic, subject, grade):
        if self.activity_failures_after is not None and len(self.activity_calls) >= self.activity_failures_after:
            self.calls.append(("activity-failed", topic, subject))
            raise ContentProviderError("Falha ao gerar a atividade. Por favor, tente novamente.")
        self.calls.append(("activity", topic, subject))
        return [
            Question(
                id="tmp",
                question=f"{topic} #{i}",
                subject=subject,
                options=["A", "B", "C", "D"],
                correct_answer="A",
            )
            for i in range(3)
        ]

    async def generate_insights(self, student, activities, answers):
        self.calls.append(("insights", student.id))
        if self.fail_insights:
            raise ContentProviderError("Falha ao analisar o progresso do aluno.")
        return self.insights

    async def generate_from_instructions(self, title, instructions, grade, source_text=None):
        self.calls.append(("instructions", title, source_text))
        return list(self.custom_questions)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def fake_provider():
    return FakeContentProvider()


@pytest.fixture
def repository():
    return MemoryRepository()


@pytest.fixture
def store(repository, fake_provider):
    """DomainStore over an in-memory repository and the fake provider."""
    domain_store = DomainStore(repository, fake_provider)
    yield domain_store
    domain_store.close()


@pytest.fixture
def student(store):
    return store.add_student("Ana", 10, "5º Ano")


@pytest.fixture
def placed_student(store, student):
    store.complete_nivelamento(student.id, {"Matemática": {"correct": 1, "total": 4}})
    return store.get_student(student.id)
