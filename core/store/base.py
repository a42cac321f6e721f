"""
Document store interface.

The workflow and resolver talk to a managed document database through this
interface only. Implementations are injected at construction time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence, Union


class Operator(Enum):
    """Comparison operators supported in query conditions."""

    EQ = "=="
    NE = "!="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="
    IN = "in"
    ARRAY_CONTAINS = "array-contains"


@dataclass(frozen=True)
class Condition:
    """A single ``field operator value`` filter."""

    field: str
    operator: Union[Operator, str]
    value: Any

    def __post_init__(self):
        if not self.field:
            raise ValueError("field is required")
        if not isinstance(self.operator, Operator):
            # frozen dataclass: normalise through object.__setattr__
            object.__setattr__(self, "operator", Operator(self.operator))


@dataclass(frozen=True)
class SortSpec:
    """Ordering applied to query results."""

    field: str
    descending: bool = False


class DocumentStore(ABC):
    """
    Abstract async document store.

    Records are plain dicts carrying a store-assigned ``id``, ``created_at``
    and ``updated_at``. Backend or network failures raise StoreUnavailable.
    """

    @abstractmethod
    async def create(self, collection: str, data: dict) -> dict:
        """Create a record with a generated id and return it."""
        pass

    @abstractmethod
    async def create_with_id(self, collection: str, record_id: str, data: dict) -> dict:
        """Create (or replace) a record under a caller-chosen id."""
        pass

    @abstractmethod
    async def get(self, collection: str, record_id: str) -> Optional[dict]:
        """Return the record, or None if it does not exist."""
        pass

    @abstractmethod
    async def update(self, collection: str, record_id: str, partial: dict) -> dict:
        """
        Merge ``partial`` into an existing record.

        Raises:
            NotFound: If the record does not exist.
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, record_id: str) -> None:
        """Delete a record. Missing records are ignored."""
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        conditions: Sequence[Condition] = (),
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """Return records matching every condition."""
        pass

    async def list_collection(self, collection: str) -> list[dict]:
        """Return every record in a collection."""
        return await self.query(collection)
