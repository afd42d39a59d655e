"""
Tutor activity authoring.

A tutor describes an activity (title, instructions, optional source
file); the Content Provider drafts the questions; the tutor edits the
draft and saves it with ``DomainStore.save_draft``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from loguru import logger

from tutoria.content.extraction import extract_text
from tutoria.content.provider import ContentProvider
from tutoria.core.exceptions import ContentProviderError
from tutoria.core.models import (
    CUSTOM_SUBJECT,
    ActivityType,
    Question,
    QuestionType,
    Student,
    new_id,
)

NEW_OPTION_TEXT = "Nova opção"
REQUIRED_FIELDS_MESSAGE = "O título e as instruções são obrigatórios."
EMPTY_GENERATION_MESSAGE = "A IA não conseguiu gerar questões. Tente ser mais específico."

_EDITABLE_FIELDS = {"question", "subject", "type", "options", "correct_answer"}


def _check_distinct(options: list[str]) -> None:
    if len(set(options)) != len(options):
        raise ValueError(f"Options must be distinct: {options}")


def check_question(question: Question) -> None:
    """
    Raise ValueError unless the question is storable.

    Multiple-choice options are distinct and the correct answer, when set,
    is one of them. Open-ended questions have neither.
    """
    if not question.is_auto_graded:
        if question.options is not None or question.correct_answer is not None:
            raise ValueError(f"Open-ended question {question.id} cannot have options")
        return
    options = question.options or []
    _check_distinct(options)
    if question.correct_answer is not None and question.correct_answer not in options:
        raise ValueError(f"'{question.correct_answer}' is not an option of question {question.id}")


@dataclass
class ActivityDraft:
    """Editable questions for an activity that has not been saved yet."""

    title: str
    student_id: str
    questions: list[Question] = field(default_factory=list)
    source_file: Path | None = None

    @property
    def subject(self) -> str:
        if self.questions and self.questions[0].subject:
            return self.questions[0].subject
        return CUSTOM_SUBJECT

    @property
    def activity_type(self) -> ActivityType:
        return ActivityType.PDF if self.source_file is not None else ActivityType.MANUAL

    def validate(self) -> None:
        """Raise ValueError if any question breaks the option rules."""
        for question in self.questions:
            check_question(question)

    def get_question(self, question_id: str) -> Question:
        for question in self.questions:
            if question.id == question_id:
                return question
        raise KeyError(question_id)

    def update_question(self, question_id: str, **fields: Any) -> Question:
        """
        Edit question fields.

        Options must stay distinct and the correct answer must be one of
        them; open-ended questions carry neither.
        """
        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit fields: {sorted(unknown)}")
        question = self.get_question(question_id)
        type = QuestionType(fields.get("type", question.type))
        options = fields.get("options", question.options)
        correct = fields.get("correct_answer", question.correct_answer)

        if type == QuestionType.OPEN_ENDED:
            options, correct = None, None
        else:
            options = list(options) if options is not None else [""]
            _check_distinct(options)
            if correct is not None and correct not in options:
                if "correct_answer" in fields:
                    raise ValueError(f"'{correct}' is not an option of question {question_id}")
                correct = None

        question.question = fields.get("question", question.question)
        question.subject = fields.get("subject", question.subject)
        question.type = type
        question.options = options
        question.correct_answer = correct
        return question

    def set_option(self, question_id: str, index: int, text: str) -> None:
        question = self.get_question(question_id)
        options = list(question.options or [])
        previous = options[index]
        if text != previous and text in options:
            raise ValueError(f"'{text}' is already an option of question {question_id}")
        options[index] = text
        question.options = options
        if question.correct_answer == previous:
            question.correct_answer = text

    def add_option(self, question_id: str) -> str:
        """Append a placeholder option, numbered when the plain one is taken."""
        question = self.get_question(question_id)
        options = question.options or []
        text = NEW_OPTION_TEXT
        number = 2
        while text in options:
            text = f"{NEW_OPTION_TEXT} {number}"
            number += 1
        question.options = [*options, text]
        return text

    def remove_option(self, question_id: str, index: int) -> None:
        """Drop an option; removing the correct one leaves no answer marked."""
        question = self.get_question(question_id)
        options = list(question.options or [])
        removed = options.pop(index)
        question.options = options
        if question.correct_answer == removed:
            question.correct_answer = None

    def set_correct_answer(self, question_id: str, option: str) -> None:
        question = self.get_question(question_id)
        if option not in (question.options or []):
            raise ValueError(f"'{option}' is not an option of question {question_id}")
        question.correct_answer = option

    def add_question(self, type: QuestionType = QuestionType.MULTIPLE_CHOICE) -> Question:
        type = QuestionType(type)
        question = Question(
            id=new_id("q"),
            question="",
            subject=self.subject,
            type=type,
            options=[""] if type == QuestionType.MULTIPLE_CHOICE else None,
        )
        self.questions.append(question)
        return question

    def remove_question(self, question_id: str) -> None:
        self.questions = [q for q in self.questions if q.id != question_id]


async def create_draft(
    provider: ContentProvider,
    student: Student,
    title: str,
    instructions: str,
    source_file: str | Path | None = None,
) -> ActivityDraft:
    """
    Ask the provider for questions following the tutor's instructions.

    Raises:
        ValueError: Title or instructions are blank
        ContentProviderError: Generation failed or produced nothing
    """
    if not title.strip() or not instructions.strip():
        raise ValueError(REQUIRED_FIELDS_MESSAGE)

    source_path = Path(source_file) if source_file is not None else None
    source_text = extract_text(source_path) if source_path is not None else None

    generated = await provider.generate_from_instructions(
        title, instructions, student.grade, source_text
    )
    if not generated:
        raise ContentProviderError(EMPTY_GENERATION_MESSAGE)

    questions = [
        replace(
            q,
            id=new_id("q"),
            type=QuestionType.MULTIPLE_CHOICE,
            options=list(q.options or []),
        )
        for q in generated
    ]
    logger.info(f"Drafted {len(questions)} questions for '{title}' ({student.id})")
    return ActivityDraft(title=title, student_id=student.id, questions=questions, source_file=source_path)
