"""
In-memory document store with optional JSON file persistence.

Used for development, tests and the reporting CLI. Swappable for a managed
database behind the same DocumentStore interface.
"""

from __future__ import annotations

import copy
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, Sequence
from uuid import uuid4

from core.errors import NotFound
from core.models import parse_timestamp, utc_now
from core.store.base import Condition, DocumentStore, Operator, SortSpec


logger = logging.getLogger(__name__)

# Fields owned by the store; callers cannot overwrite them
RESERVED_FIELDS = ("id", "created_at", "updated_at")

_DATE_MARKER = "$date"


# =============================================================================
# Condition Evaluation
# =============================================================================


def _compare(left: Any, right: Any, op: Callable[[Any, Any], bool]) -> bool:
    if left is None or right is None:
        return False
    try:
        return op(left, right)
    except TypeError:
        return False


def matches_condition(record: dict, condition: Condition) -> bool:
    """Evaluate one condition against a record."""
    value = record.get(condition.field)
    target = condition.value
    op = condition.operator

    if op == Operator.EQ:
        return value == target
    if op == Operator.NE:
        return value != target
    if op == Operator.LT:
        return _compare(value, target, lambda a, b: a < b)
    if op == Operator.LTE:
        return _compare(value, target, lambda a, b: a <= b)
    if op == Operator.GT:
        return _compare(value, target, lambda a, b: a > b)
    if op == Operator.GTE:
        return _compare(value, target, lambda a, b: a >= b)
    if op == Operator.IN:
        return value in (target or ())
    if op == Operator.ARRAY_CONTAINS:
        return isinstance(value, (list, tuple)) and target in value
    raise ValueError(f"Unsupported operator: {op}")


def _sort_records(records: list[dict], sort: SortSpec) -> list[dict]:
    # Records missing the sort field always go last
    present = [r for r in records if r.get(sort.field) is not None]
    missing = [r for r in records if r.get(sort.field) is None]
    present.sort(key=lambda r: r[sort.field], reverse=sort.descending)
    return present + missing


# =============================================================================
# JSON Encoding
# =============================================================================


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {_DATE_MARKER: value.isoformat()}
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


def _decode_hook(obj: dict) -> Any:
    if set(obj.keys()) == {_DATE_MARKER}:
        return parse_timestamp(obj[_DATE_MARKER])
    return obj


# =============================================================================
# Store
# =============================================================================


class InMemoryDocumentStore(DocumentStore):
    """
    Document store kept in process memory.

    Reads return deep copies so callers cannot mutate stored state.
    """

    def __init__(
        self,
        persist_path: Optional[str] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialise store.

        Args:
            persist_path: Optional path to persist data to a JSON file
            clock: Source of record timestamps
        """
        self._collections: dict[str, dict[str, dict]] = {}
        self._persist_path = Path(persist_path) if persist_path else None
        self._clock = clock

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _save_to_file(self) -> None:
        """Persist data to file."""
        if not self._persist_path:
            return

        data = {
            "collections": _encode(self._collections),
            "saved_at": self._clock().isoformat(),
        }

        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        self._persist_path.write_text(json.dumps(data, indent=2))

    def _load_from_file(self) -> None:
        """Load data from file."""
        try:
            data = json.loads(self._persist_path.read_text(), object_hook=_decode_hook)
            self._collections = data.get("collections", {})
        except (json.JSONDecodeError, ValueError) as e:
            # Start fresh rather than refuse to boot
            logger.warning("Could not load store data from %s: %s", self._persist_path, e)

    def _bucket(self, collection: str) -> dict[str, dict]:
        return self._collections.setdefault(collection, {})

    # =========================================================================
    # CRUD Operations
    # =========================================================================

    async def create(self, collection: str, data: dict) -> dict:
        record_id = uuid4().hex[:20]
        while record_id in self._bucket(collection):
            record_id = uuid4().hex[:20]
        return await self.create_with_id(collection, record_id, data)

    async def create_with_id(self, collection: str, record_id: str, data: dict) -> dict:
        if not record_id:
            raise ValueError("record_id is required")

        now = self._clock()
        record = {k: copy.deepcopy(v) for k, v in data.items() if k not in RESERVED_FIELDS}
        record["id"] = record_id
        record["created_at"] = now
        record["updated_at"] = now

        self._bucket(collection)[record_id] = record
        self._save_to_file()
        return copy.deepcopy(record)

    async def get(self, collection: str, record_id: str) -> Optional[dict]:
        record = self._bucket(collection).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def update(self, collection: str, record_id: str, partial: dict) -> dict:
        record = self._bucket(collection).get(record_id)
        if record is None:
            raise NotFound(collection, record_id)

        for key, value in partial.items():
            if key in RESERVED_FIELDS:
                continue
            record[key] = copy.deepcopy(value)
        record["updated_at"] = self._clock()

        self._save_to_file()
        return copy.deepcopy(record)

    async def delete(self, collection: str, record_id: str) -> None:
        if self._bucket(collection).pop(record_id, None) is not None:
            self._save_to_file()

    # =========================================================================
    # Query Operations
    # =========================================================================

    async def query(
        self,
        collection: str,
        conditions: Sequence[Condition] = (),
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        records = [
            r for r in self._bucket(collection).values()
            if all(matches_condition(r, c) for c in conditions)
        ]
        if sort is not None:
            records = _sort_records(records, sort)
        if limit is not None:
            records = records[:limit]
        return [copy.deepcopy(r) for r in records]

    def count(self, collection: str) -> int:
        """Get number of records in a collection."""
        return len(self._bucket(collection))
