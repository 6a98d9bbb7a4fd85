"""
TaskPulse SQL Record Reader — RecordReader over the SQLAlchemy record tables.

Sessions are synchronous; every query runs in a worker thread via
asyncio.to_thread so collectors can fan out concurrently. Counts are
pushed down as SELECT COUNT(*).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from taskpulse.analytics.enums import EntityType, RawParsingEnum
from taskpulse.analytics.reader import DateWindow, EntityRef, RecordReader, split_filter_key
from taskpulse.analytics.time_range import ensure_utc
from taskpulse.db.base import DEFAULT_ENGINE, EngineRegistry, engine_registry
from taskpulse.db.models import ENTITY_MODELS
from taskpulse.engine.errors import ReadFailure

logger = logging.getLogger("taskpulse.db.reader")


def _bind_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return ensure_utc(value)
    return value


class SqlRecordReader(RecordReader):
    """
    Usage:
        engine_registry.register("taskpulse", "sqlite:///taskpulse.db")
        reader = SqlRecordReader()
        tasks = await reader.query(EntityType.TASKS, filters={"status": "completed"})
    """

    def __init__(self, registry: Optional[EngineRegistry] = None, engine_name: str = DEFAULT_ENGINE):
        self._registry = registry or engine_registry
        self._engine_name = engine_name

    def _model(self, entity: EntityRef):
        try:
            return ENTITY_MODELS[EntityType(entity)]
        except (KeyError, ValueError) as e:
            raise ReadFailure(f"Unknown entity '{entity}'", entity=str(entity)) from e

    def _conditions(
        self,
        model,
        entity: EntityRef,
        filters: Optional[Dict[str, Any]],
        date_range: Optional[DateWindow],
    ) -> list:
        conditions = []
        for key, value in (filters or {}).items():
            field_name, op = split_filter_key(key)
            column = model.__table__.columns.get(field_name)
            if column is None:
                raise ReadFailure(
                    f"Unknown field '{field_name}' on {model.__tablename__}",
                    entity=str(entity),
                    filters=filters,
                )
            if isinstance(value, RawParsingEnum) and op in ("eq", "ne"):
                # Enumerated columns may hold legacy capitalisation
                column = func.lower(column)
            value = _bind_value(value)
            if op == "eq":
                conditions.append(column.is_(None) if value is None else column == value)
            elif op == "ne":
                conditions.append(column.is_not(None) if value is None else column != value)
            elif op == "lt":
                conditions.append(column < value)
            elif op == "lte":
                conditions.append(column <= value)
            elif op == "gt":
                conditions.append(column > value)
            elif op == "gte":
                conditions.append(column >= value)
            elif op == "isnull":
                conditions.append(column.is_(None) if value else column.is_not(None))

        if date_range is not None:
            column = model.__table__.columns.get(date_range.field)
            if column is None:
                raise ReadFailure(
                    f"Unknown date field '{date_range.field}' on {model.__tablename__}",
                    entity=str(entity),
                )
            conditions.append(column.is_not(None))
            if date_range.start is not None:
                conditions.append(column >= ensure_utc(date_range.start))
            if date_range.end is not None:
                end = ensure_utc(date_range.end)
                conditions.append(column <= end if date_range.end_inclusive else column < end)
        return conditions

    def _run(self, entity: EntityRef, filters, date_range, counting: bool):
        model = self._model(entity)
        conditions = self._conditions(model, entity, filters, date_range)
        if counting:
            stmt = select(func.count()).select_from(model).where(*conditions)
        else:
            stmt = select(model).where(*conditions)

        try:
            with self._registry.get_session(self._engine_name) as session:
                if counting:
                    return int(session.execute(stmt).scalar_one())
                return [row.to_document() for row in session.scalars(stmt).all()]
        except (SQLAlchemyError, KeyError) as e:
            raise ReadFailure(
                f"Query on {model.__tablename__} failed: {e}",
                entity=str(entity),
                filters=filters,
            ) from e

    async def query(
        self,
        entity: EntityRef,
        filters: Optional[Dict[str, Any]] = None,
        date_range: Optional[DateWindow] = None,
    ) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._run, entity, filters, date_range, False)

    async def count(
        self,
        entity: EntityRef,
        filters: Optional[Dict[str, Any]] = None,
        date_range: Optional[DateWindow] = None,
    ) -> int:
        return await asyncio.to_thread(self._run, entity, filters, date_range, True)
