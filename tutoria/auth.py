"""
Tutor access gate.

A single shared password guards the tutor views. The first login sets it.
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from tutoria.store.domain_store import DomainStore


class TutorGate:
    def __init__(self, store: DomainStore, min_length: int = 4):
        self.store = store
        self.min_length = min_length

    @property
    def has_password(self) -> bool:
        return bool(self.store.tutor_password)

    def login(self, secret: str) -> bool:
        """
        Check ``secret`` against the stored password, setting it on first use.

        Raises:
            ValueError: First-time password shorter than ``min_length``
        """
        if not self.has_password:
            if len(secret) < self.min_length:
                raise ValueError(f"A senha deve ter pelo menos {self.min_length} caracteres.")
            self.store.set_tutor_password(secret)
            logger.info("Tutor password set")
            return True
        ok = secrets.compare_digest(secret.encode("utf-8"), self.store.tutor_password.encode("utf-8"))
        if not ok:
            logger.warning("Rejected tutor login")
        return ok
