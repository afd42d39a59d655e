"""
Store Module - Domain state and its persistence.

Components:
- repository: Key-value JSON backends with change notification
- domain_store: DomainStore, the owner of every domain mutation
"""

from tutoria.store.domain_store import STORE_KEYS, DomainStore
from tutoria.store.repository import JsonFileRepository, MemoryRepository, Repository

__all__ = [
    "DomainStore",
    "JsonFileRepository",
    "MemoryRepository",
    "Repository",
    "STORE_KEYS",
]
