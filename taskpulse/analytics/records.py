"""
TaskPulse Records — Read-only views of the raw documents the engine consumes.

Documents arrive as plain mappings from a RecordReader. ``from_document``
accepts snake_case keys as well as the camelCase keys of the legacy
document store, parses timestamps (datetime, ISO-8601 string, or epoch
seconds; naive values are UTC) and maps enumerated fields through
``from_raw``. A document that cannot be parsed raises ComputationFailure.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from taskpulse.analytics.enums import ProjectStatus, TaskPriority, TaskStatus, UserRole
from taskpulse.analytics.time_range import ensure_utc
from taskpulse.engine.errors import ComputationFailure

R = TypeVar("R", bound="_Record")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp into an aware UTC datetime (None passes through)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, bool):
        raise ValueError(f"Not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Epoch timestamp out of range: {value!r}") from e
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return ensure_utc(datetime.fromisoformat(text))
    raise ValueError(f"Not a timestamp: {value!r}")


class _Record(BaseModel):
    """Shared parsing for all consumed entities."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    # alias in the raw document → field name
    KEY_ALIASES: ClassVar[Dict[str, str]] = {}
    ENTITY: ClassVar[str] = ""

    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str:
        if v is None or str(v).strip() == "":
            raise ValueError("id is required")
        return str(v)

    @classmethod
    def _remap(cls, doc: Mapping[str, Any]) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for key, value in doc.items():
            field_name = cls.KEY_ALIASES.get(key, key)
            # snake_case keys win over their camelCase aliases
            if field_name in data and key != field_name:
                continue
            data[field_name] = value
        return data

    @classmethod
    def from_document(cls: Type[R], doc: Mapping[str, Any]) -> R:
        """Build a record from a raw document. Raises ComputationFailure when malformed."""
        if not isinstance(doc, Mapping):
            raise ComputationFailure(
                f"Expected a mapping for {cls.ENTITY} document, got {type(doc).__name__}",
                entity=cls.ENTITY,
            )
        try:
            return cls.model_validate(cls._remap(doc))
        except ValidationError as e:
            raise ComputationFailure(
                f"Malformed {cls.ENTITY} document: {e.errors()[0].get('msg', e)}",
                entity=cls.ENTITY,
                record_id=doc.get("id"),
            ) from e


class TaskRecord(_Record):
    ENTITY: ClassVar[str] = "tasks"
    KEY_ALIASES: ClassVar[Dict[str, str]] = {
        "createdAt": "created_at",
        "completedAt": "completed_at",
        "dueDate": "due_date",
        "assigneeId": "assignee_id",
        "assignedTo": "assignee_id",
        "teamId": "team_id",
        "projectId": "project_id",
    }

    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    created_at: datetime
    completed_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    assignee_id: Optional[str] = None
    team_id: Optional[str] = None
    project_id: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, v: Any) -> TaskStatus:
        return TaskStatus.from_raw(v)

    @field_validator("priority", mode="before")
    @classmethod
    def _parse_priority(cls, v: Any) -> TaskPriority:
        return TaskPriority.from_raw(v)

    @field_validator("created_at", "completed_at", "due_date", mode="before")
    @classmethod
    def _parse_timestamps(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @field_validator("assignee_id", "team_id", "project_id", mode="before")
    @classmethod
    def _optional_ref(cls, v: Any) -> Optional[str]:
        if v is None or str(v).strip() == "":
            return None
        return str(v)

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def is_overdue(self, now: datetime) -> bool:
        """Open task whose due date has passed."""
        return self.status.is_open and self.due_date is not None and self.due_date < now

    @property
    def completion_hours(self) -> Optional[float]:
        """Hours from creation to completion; None when unknown or negative."""
        if self.completed_at is None:
            return None
        seconds = (self.completed_at - self.created_at).total_seconds()
        if seconds < 0:
            return None
        return seconds / 3600.0


class UserRecord(_Record):
    ENTITY: ClassVar[str] = "users"
    KEY_ALIASES: ClassVar[Dict[str, str]] = {
        "isActive": "is_active",
        "createdAt": "created_at",
        "lastActiveAt": "last_active_at",
        "lastLoginAt": "last_active_at",
        "last_login_at": "last_active_at",
    }

    role: UserRole = UserRole.VIEWER
    is_active: bool = True
    created_at: Optional[datetime] = None
    last_active_at: Optional[datetime] = None

    @field_validator("role", mode="before")
    @classmethod
    def _parse_role(cls, v: Any) -> UserRole:
        return UserRole.from_raw(v)

    @field_validator("is_active", mode="before")
    @classmethod
    def _default_active(cls, v: Any) -> Any:
        return True if v is None else v

    @field_validator("created_at", "last_active_at", mode="before")
    @classmethod
    def _parse_timestamps(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)


class TeamRecord(_Record):
    ENTITY: ClassVar[str] = "teams"
    KEY_ALIASES: ClassVar[Dict[str, str]] = {
        "memberIds": "member_ids",
        "members": "member_ids",
        "isActive": "is_active",
        "createdAt": "created_at",
    }

    member_ids: FrozenSet[str] = frozenset()
    is_active: bool = True
    created_at: Optional[datetime] = None

    @field_validator("member_ids", mode="before")
    @classmethod
    def _parse_members(cls, v: Any) -> FrozenSet[str]:
        if v is None:
            return frozenset()
        if isinstance(v, (str, bytes)) or not hasattr(v, "__iter__"):
            raise ValueError("member_ids must be a list")
        ids = set()
        for member in v:
            # Legacy documents keep members as {"userId": ..., "role": ...}
            if isinstance(member, Mapping):
                member = member.get("userId", member.get("user_id"))
            if member is not None and str(member).strip():
                ids.add(str(member))
        return frozenset(ids)

    @field_validator("is_active", mode="before")
    @classmethod
    def _default_active(cls, v: Any) -> Any:
        return True if v is None else v

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_timestamps(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @property
    def size(self) -> int:
        return len(self.member_ids)


class ProjectRecord(_Record):
    ENTITY: ClassVar[str] = "projects"
    KEY_ALIASES: ClassVar[Dict[str, str]] = {
        "createdAt": "created_at",
        "completedAt": "completed_at",
    }

    status: ProjectStatus = ProjectStatus.PLANNING
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, v: Any) -> ProjectStatus:
        return ProjectStatus.from_raw(v)

    @field_validator("created_at", "completed_at", mode="before")
    @classmethod
    def _parse_timestamps(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)
