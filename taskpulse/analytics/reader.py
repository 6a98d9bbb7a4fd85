"""
TaskPulse Record Reader — Async read interface to the record store.

    docs = await reader.query(EntityType.TASKS,
                              filters={"status": "completed", "team_id__isnull": False},
                              date_range=DateWindow("completed_at", day_start, day_end))

Filter keys are field names with an optional operator suffix:
    field          equals
    field__ne      not equal
    field__lt / field__lte / field__gt / field__gte
    field__isnull  True → value missing, False → value present

Every failure to read surfaces as ReadFailure. The engine never writes.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple, Union

from taskpulse.analytics.enums import EntityType, RawParsingEnum
from taskpulse.analytics.records import parse_timestamp
from taskpulse.engine.errors import ReadFailure

logger = logging.getLogger("taskpulse.analytics.reader")

FILTER_OPERATORS = ("ne", "lt", "lte", "gt", "gte", "isnull")

EntityRef = Union[EntityType, str]


@dataclass(frozen=True)
class DateWindow:
    """Restricts a query to records whose ``field`` falls in [start, end] (or [start, end))."""
    field: str
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    end_inclusive: bool = True

    def matches(self, value: Optional[datetime]) -> bool:
        if value is None:
            return False
        if self.start is not None and value < self.start:
            return False
        if self.end is not None:
            if self.end_inclusive and value > self.end:
                return False
            if not self.end_inclusive and value >= self.end:
                return False
        return True


def split_filter_key(key: str) -> Tuple[str, str]:
    """'due_date__lt' → ('due_date', 'lt'); 'status' → ('status', 'eq')."""
    field_name, sep, op = key.rpartition("__")
    if sep and op in FILTER_OPERATORS:
        return field_name, op
    return key, "eq"


def entity_name(entity: EntityRef) -> str:
    if isinstance(entity, EntityType):
        return entity.value
    return EntityType(entity).value


class RecordReader(Protocol):
    """Async read access to the record store."""

    async def query(
        self,
        entity: EntityRef,
        filters: Optional[Dict[str, Any]] = None,
        date_range: Optional[DateWindow] = None,
    ) -> List[Dict[str, Any]]:
        """Return documents of ``entity`` matching all filters and the date window."""
        ...

    async def count(
        self,
        entity: EntityRef,
        filters: Optional[Dict[str, Any]] = None,
        date_range: Optional[DateWindow] = None,
    ) -> int:
        return len(await self.query(entity, filters=filters, date_range=date_range))


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

_SNAKE_PART = re.compile(r"_([a-z0-9])")


def _camel(name: str) -> str:
    return _SNAKE_PART.sub(lambda m: m.group(1).upper(), name)


def lookup_field(doc: Mapping[str, Any], field_name: str) -> Any:
    """Read a snake_case field, falling back to its camelCase spelling."""
    if field_name in doc:
        return doc[field_name]
    return doc.get(_camel(field_name))


def _comparable(doc_value: Any, filter_value: Any) -> Tuple[Any, Any]:
    # Stored enum spellings are parsed the same way the records parse them
    if isinstance(filter_value, RawParsingEnum):
        return type(filter_value).from_raw(doc_value), filter_value
    if isinstance(filter_value, Enum):
        filter_value = filter_value.value
    if isinstance(doc_value, Enum):
        doc_value = doc_value.value
    if isinstance(filter_value, datetime):
        return parse_timestamp(doc_value), parse_timestamp(filter_value)
    return doc_value, filter_value


def matches_filter(doc: Mapping[str, Any], key: str, expected: Any) -> bool:
    field_name, op = split_filter_key(key)
    raw = lookup_field(doc, field_name)

    if op == "isnull":
        return (raw is None) == bool(expected)

    actual, expected = _comparable(raw, expected)
    if op == "eq":
        return actual == expected
    if op == "ne":
        return actual != expected
    if actual is None:
        return False
    if op == "lt":
        return actual < expected
    if op == "lte":
        return actual <= expected
    if op == "gt":
        return actual > expected
    return actual >= expected


class InMemoryRecordReader(RecordReader):
    """
    RecordReader over documents held in memory.

    Usage:
        reader = InMemoryRecordReader({"tasks": [...], "users": [...]})
        reader.add("teams", [{"id": "t1", "memberIds": ["u1"]}])
    """

    def __init__(self, documents: Optional[Mapping[EntityRef, Iterable[Mapping[str, Any]]]] = None):
        self._documents: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self._query_count = 0
        for entity, docs in (documents or {}).items():
            self.add(entity, docs)

    def add(self, entity: EntityRef, docs: Iterable[Mapping[str, Any]]) -> None:
        self._documents[entity_name(entity)].extend(dict(d) for d in docs)

    def clear(self, entity: Optional[EntityRef] = None) -> None:
        if entity is None:
            self._documents.clear()
        else:
            self._documents.pop(entity_name(entity), None)

    async def query(
        self,
        entity: EntityRef,
        filters: Optional[Dict[str, Any]] = None,
        date_range: Optional[DateWindow] = None,
    ) -> List[Dict[str, Any]]:
        self._query_count += 1
        try:
            name = entity_name(entity)
            results = []
            for doc in self._documents.get(name, []):
                if filters and not all(matches_filter(doc, k, v) for k, v in filters.items()):
                    continue
                if date_range is not None:
                    stamp = parse_timestamp(lookup_field(doc, date_range.field))
                    if not date_range.matches(stamp):
                        continue
                results.append(dict(doc))
            return results
        except (TypeError, ValueError) as e:
            raise ReadFailure(
                f"In-memory query on {entity} failed: {e}",
                entity=str(entity),
                filters=filters,
            ) from e

    @property
    def query_count(self) -> int:
        return self._query_count
