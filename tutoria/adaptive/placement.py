"""
Placement (nivelamento) test.

A one-time sequential quiz. Raw per-subject counts are normalized to a
0-100 score per subject and written once to the student record.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from tutoria.core.grading import Score, percent, tally_by_subject
from tutoria.core.models import Question

RawResult = Score | Mapping[str, int]


def normalize_results(raw_results: Mapping[str, RawResult]) -> dict[str, int]:
    """
    Convert per-subject correct/total counts to whole percentages.

    Accepts either Score objects or ``{"correct": n, "total": m}`` mappings.
    A subject with no questions scores 0.
    """
    normalized: dict[str, int] = {}
    for subject, result in raw_results.items():
        if isinstance(result, Score):
            correct, total = result.correct, result.total
        else:
            correct, total = int(result.get("correct", 0)), int(result.get("total", 0))
        normalized[subject] = percent(correct, total)
    return normalized


class PlacementTest:
    """
    Drives the placement quiz one question at a time.

    Each answer advances to the next question; once the last one is
    answered, ``results()`` returns the per-subject tally.
    """

    def __init__(self, questions: Sequence[Question]):
        if not questions:
            raise ValueError("Placement test has no questions")
        self.questions = list(questions)
        self.current_index = 0
        self.answers: dict[int, str] = {}

    @property
    def finished(self) -> bool:
        return self.current_index >= len(self.questions)

    @property
    def current_question(self) -> Question | None:
        if self.finished:
            return None
        return self.questions[self.current_index]

    @property
    def progress(self) -> float:
        return min(self.current_index + 1, len(self.questions)) / len(self.questions)

    def answer(self, option: str) -> None:
        if self.finished:
            raise RuntimeError("Placement test already finished")
        self.answers[self.current_index] = option
        self.current_index += 1

    def results(self) -> dict[str, Score]:
        return tally_by_subject(self.questions, self.answers)
