"""
TaskPulse Record Tables — SQLAlchemy models for the records the engine reads.

Tables:
1. tasks
2. users
3. teams          (member ids stored as a JSON list)
4. projects
5. notifications

Enumerated columns hold the snake_case values of taskpulse.analytics.enums.
All timestamps are UTC.
"""

from __future__ import annotations

from typing import Any, Dict, Type

from sqlalchemy import JSON, Boolean, Column, DateTime, String

from taskpulse.analytics.enums import EntityType
from taskpulse.db.base import Base


class _DocumentMixin:
    """Row → plain document dict, the shape RecordReader returns."""

    def to_document(self) -> Dict[str, Any]:
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


# ---------------------------------------------------------------------------
# 1. Tasks
# ---------------------------------------------------------------------------

class Task(Base, _DocumentMixin):
    __tablename__ = "tasks"

    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=True)
    status = Column(String(20), default="todo", nullable=False, index=True)
    priority = Column(String(20), default="medium", nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True, index=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    assignee_id = Column(String(64), nullable=True, index=True)
    team_id = Column(String(64), nullable=True, index=True)
    project_id = Column(String(64), nullable=True, index=True)


# ---------------------------------------------------------------------------
# 2. Users
# ---------------------------------------------------------------------------

class User(Base, _DocumentMixin):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    role = Column(String(20), default="viewer", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=True, index=True)
    last_active_at = Column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# 3. Teams
# ---------------------------------------------------------------------------

class Team(Base, _DocumentMixin):
    __tablename__ = "teams"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=True)
    member_ids = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=True, index=True)


# ---------------------------------------------------------------------------
# 4. Projects
# ---------------------------------------------------------------------------

class Project(Base, _DocumentMixin):
    __tablename__ = "projects"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=True)
    status = Column(String(20), default="planning", nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=True, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True, index=True)


# ---------------------------------------------------------------------------
# 5. Notifications
# ---------------------------------------------------------------------------

class Notification(Base, _DocumentMixin):
    __tablename__ = "notifications"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=True, index=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)


ENTITY_MODELS: Dict[EntityType, Type[Base]] = {
    EntityType.TASKS: Task,
    EntityType.USERS: User,
    EntityType.TEAMS: Team,
    EntityType.PROJECTS: Project,
    EntityType.NOTIFICATIONS: Notification,
}
