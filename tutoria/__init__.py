"""
tutoria - adaptive practice and gamification for elementary students.

Tutors register students and author activities; students take a one-time
placement test, then practice on generated activities weighted towards
their weakest subjects, earning points and badges.
"""

__version__ = "1.0.0"
