"""
TaskPulse Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v

The ``scenario_documents`` fixture is a small organisation observed at
NOW = 2026-10-18 12:00 UTC over the default 7d range (Oct 11 12:00 → Oct 18
12:00, eight calendar days). Expected figures are spelled out in the tests.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def at(month: int, day: int, hour: int = 0) -> datetime:
    return datetime(2026, month, day, hour, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Isolation — reset global singletons between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_singletons():
    """Reset global singletons between tests."""
    import taskpulse.engine.config as cfg_mod
    import taskpulse.engine.logging as log_mod

    cfg_mod._config = None
    log_mod._global_queue = None
    yield
    if log_mod._global_queue is not None:
        log_mod.shutdown_logging()
    cfg_mod._config = None


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock():
    """Fixed clock for the aggregator."""
    return lambda: NOW


@pytest.fixture
def config():
    from taskpulse.engine.config import TaskPulseConfig

    return TaskPulseConfig()


# ---------------------------------------------------------------------------
# Seeded documents
# ---------------------------------------------------------------------------

def _task(task_id: str, status: str, created: datetime, **extra: Any) -> Dict[str, Any]:
    doc = {"id": task_id, "status": status, "priority": "medium", "created_at": created}
    doc.update(extra)
    return doc


@pytest.fixture
def scenario_documents() -> Dict[str, List[Dict[str, Any]]]:
    created = at(10, 12, 10)
    tasks = [
        # 6 completed inside the window
        _task("c1", "completed", created, completed_at=at(10, 12, 12), assignee_id="u1",
              team_id="t1", project_id="p-alpha", priority="high"),
        _task("c2", "completed", created, completed_at=at(10, 13, 10), assignee_id="u1",
              team_id="t1", project_id="p-alpha", priority="urgent"),
        _task("c3", "completed", created, completed_at=at(10, 14, 10), assignee_id="u2",
              team_id="t1"),
        _task("c4", "completed", created, completed_at=at(10, 15, 10), assignee_id="u3",
              team_id="t2", project_id="p-beta"),
        # camelCase keys as stored by the legacy document store
        {"id": "c5", "status": "completed", "priority": "low", "createdAt": created,
         "completedAt": at(10, 16, 10).isoformat()},
        _task("c6", "completed", created, completed_at=at(10, 18, 8), assignee_id="u1"),
        # 2 overdue todo
        _task("o1", "todo", created, due_date=at(10, 15), team_id="t1", project_id="p-alpha"),
        _task("o2", "todo", created, due_date=at(10, 16), priority="unheard-of"),
        # 2 in progress, not overdue
        {"id": "i1", "status": "inProgress", "priority": "high", "createdAt": created,
         "dueDate": at(10, 25), "teamId": "t2"},
        _task("i2", "in_progress", created, due_date=at(10, 25), team_id="t3"),
        # outside the window
        _task("old", "completed", at(10, 1), completed_at=at(10, 2), assignee_id="u1"),
    ]
    users = [
        {"id": "u1", "role": "admin", "is_active": True, "created_at": at(9, 1),
         "last_active_at": at(10, 17)},
        {"id": "u2", "role": "teamMember", "isActive": True, "createdAt": at(10, 5),
         "lastLoginAt": at(10, 16)},
        {"id": "u3", "role": "team_member", "is_active": False, "created_at": at(10, 12, 9),
         "last_active_at": at(10, 17)},
        {"id": "u4", "role": "guest", "is_active": True, "created_at": at(8, 1),
         "last_active_at": at(9, 1)},
    ]
    teams = [
        {"id": "t1", "members": [{"userId": "u1", "role": "lead"}, {"userId": "u2"}],
         "is_active": True, "created_at": at(10, 12)},
        {"id": "t2", "memberIds": ["u3"], "isActive": True, "createdAt": at(9, 1)},
        {"id": "t3", "member_ids": [], "is_active": False, "created_at": at(9, 1)},
    ]
    projects = [
        {"id": "p-alpha", "status": "active", "created_at": at(9, 1)},
        {"id": "p-beta", "status": "completed", "created_at": at(9, 1),
         "completed_at": at(10, 14, 15)},
        {"id": "p-gamma", "status": "planning", "created_at": at(10, 13)},
        {"id": "p-delta", "status": "onHold", "createdAt": at(9, 1)},
    ]
    notifications = [
        {"id": "n1", "user_id": "u1", "created_at": at(10, 12)},
        {"id": "n2", "user_id": "u2", "created_at": at(10, 14)},
        {"id": "n3", "user_id": "u2", "created_at": at(10, 18, 9)},
        {"id": "n0", "user_id": "u1", "created_at": at(10, 1)},
    ]
    return {
        "tasks": tasks,
        "users": users,
        "teams": teams,
        "projects": projects,
        "notifications": notifications,
    }


@pytest.fixture
def reader(scenario_documents):
    from taskpulse.analytics.reader import InMemoryRecordReader

    return InMemoryRecordReader(scenario_documents)


@pytest.fixture
def empty_reader():
    from taskpulse.analytics.reader import InMemoryRecordReader

    return InMemoryRecordReader()


@pytest.fixture
def seven_days():
    from taskpulse.analytics.time_range import resolve_time_range

    return resolve_time_range("7d", now=NOW)


@pytest.fixture
def reporter():
    from taskpulse.engine.reporting import LoggingErrorReporter

    return LoggingErrorReporter()


@pytest.fixture
def mock_redis():
    """Return a mock Redis client."""
    client = MagicMock()
    client.ping.return_value = True
    client.get.return_value = None
    client.set.return_value = True
    return client


# ---------------------------------------------------------------------------
# SQL seeding
# ---------------------------------------------------------------------------

def _column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, frozenset):
        return sorted(value)
    return value


@pytest.fixture
def seed_records():
    """Return a function inserting documents, normalized to the table columns."""
    from taskpulse.analytics.enums import EntityType
    from taskpulse.analytics.records import ProjectRecord, TaskRecord, TeamRecord, UserRecord
    from taskpulse.db.models import ENTITY_MODELS

    record_types = {
        EntityType.TASKS: TaskRecord,
        EntityType.USERS: UserRecord,
        EntityType.TEAMS: TeamRecord,
        EntityType.PROJECTS: ProjectRecord,
    }

    def _seed(registry, documents: Dict[str, List[Dict[str, Any]]], engine_name: str = "test") -> None:
        with registry.get_session(engine_name) as session:
            for entity, docs in documents.items():
                entity_type = EntityType(entity)
                model = ENTITY_MODELS[entity_type]
                columns = {c.name for c in model.__table__.columns}
                record_type = record_types.get(entity_type)
                for doc in docs:
                    values = record_type.from_document(doc).model_dump() if record_type else doc
                    session.add(model(**{
                        k: _column_value(v) for k, v in values.items() if k in columns
                    }))
            session.commit()

    return _seed
