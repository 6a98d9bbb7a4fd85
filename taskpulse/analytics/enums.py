"""
TaskPulse Enumerations — Closed value sets for record fields.

Every enum parses raw store values through ``from_raw``, which never raises:
unknown or missing values map to the enum's fallback member. Parsing is
case-insensitive and accepts the camelCase spellings older documents use
(``inProgress``, ``onHold``, ``superAdmin``, ``teamMember``).
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Optional

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _normalize(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    text = str(value).strip()
    if not text:
        return None
    text = _CAMEL_BOUNDARY.sub("_", text)
    return text.lower().replace("-", "_").replace(" ", "_")


class RawParsingEnum(str, Enum):
    """str Enum with a total parser. Subclasses name their fallback member."""

    @classmethod
    def fallback(cls) -> "RawParsingEnum":
        """Member returned for unknown or missing values. Every subclass overrides this."""
        raise NotImplementedError(f"{cls.__name__} does not define a fallback member")

    @classmethod
    def from_raw(cls, value: Any) -> "RawParsingEnum":
        key = _normalize(value)
        if key is not None:
            for member in cls:
                if member.value == key:
                    return member
        return cls.fallback()


class TaskStatus(RawParsingEnum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def fallback(cls) -> "TaskStatus":
        return cls.TODO

    @property
    def is_open(self) -> bool:
        """Not completed and not cancelled."""
        return self not in (TaskStatus.COMPLETED, TaskStatus.CANCELLED)


class TaskPriority(RawParsingEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def fallback(cls) -> "TaskPriority":
        return cls.MEDIUM


class UserRole(RawParsingEnum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    TEAM_MEMBER = "team_member"
    VIEWER = "viewer"

    @classmethod
    def fallback(cls) -> "UserRole":
        return cls.VIEWER


class ProjectStatus(RawParsingEnum):
    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"

    @classmethod
    def fallback(cls) -> "ProjectStatus":
        return cls.PLANNING


class EntityType(str, Enum):
    """Collections the record reader can be asked for."""
    TASKS = "tasks"
    USERS = "users"
    TEAMS = "teams"
    PROJECTS = "projects"
    NOTIFICATIONS = "notifications"
