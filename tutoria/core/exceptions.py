"""
Domain exceptions for tutoria.
"""

from __future__ import annotations


class TutoriaError(Exception):
    """Base error for the tutoria domain."""


class NotFoundError(TutoriaError):
    """A required entity does not exist."""

    entity = "entity"

    def __init__(self, entity_id: str):
        super().__init__(f"{self.entity.capitalize()} '{entity_id}' not found")
        self.entity_id = entity_id


class StudentNotFoundError(NotFoundError):
    entity = "student"


class PlacementAlreadyCompletedError(TutoriaError):
    """Placement results are write-once."""

    def __init__(self, student_id: str):
        super().__init__(f"Student '{student_id}' already completed placement")
        self.student_id = student_id


class ContentProviderError(TutoriaError):
    """
    A generation call failed.

    ``user_message`` is safe to show in the interface; the underlying
    exception, if any, is kept in ``cause``.
    """

    def __init__(self, user_message: str, cause: Exception | None = None):
        super().__init__(user_message)
        self.user_message = user_message
        self.cause = cause
