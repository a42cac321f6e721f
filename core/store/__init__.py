"""
Document store abstraction and the in-memory implementation.
"""

from core.store.base import Condition, DocumentStore, Operator, SortSpec
from core.store.memory import InMemoryDocumentStore, matches_condition

__all__ = [
    "Condition",
    "DocumentStore",
    "Operator",
    "SortSpec",
    "InMemoryDocumentStore",
    "matches_condition",
]
