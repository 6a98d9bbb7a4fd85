"""
TaskPulse Metrics — Values produced by one dashboard refresh.

All values are frozen dataclasses. Each category carries ``failed`` and
``error`` so a category whose collector failed can still be rendered as an
empty placeholder next to the categories that succeeded.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from taskpulse.analytics.enums import ProjectStatus, TaskPriority, TaskStatus, UserRole
from taskpulse.analytics.time_range import TimeRange

# Fixed keys of SystemMetrics.feature_usage
FEATURE_KEYS = ("tasks", "teams", "projects", "notifications")


@dataclass(frozen=True)
class TrendPoint:
    """One calendar day of a trend series."""
    day_index: int
    value: float

    def __post_init__(self) -> None:
        if self.day_index < 0:
            raise ValueError(f"day_index must be >= 0, got {self.day_index}")
        if self.value < 0:
            raise ValueError(f"trend value must be >= 0, got {self.value}")

    def to_dict(self) -> Dict[str, Any]:
        return {"day_index": self.day_index, "value": self.value}


TrendSeries = Tuple[TrendPoint, ...]


def _plain(value: Any) -> Any:
    if isinstance(value, TrendPoint):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {str(_plain(k)): _plain(v) for k, v in value.items()}
    return value


def _zeroed(enum_type) -> Dict[str, int]:
    return {member.value: 0 for member in enum_type}


class _CategoryMetrics:
    """to_dict() over dataclass fields, shared by the five categories."""

    failed: bool
    error: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: _plain(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class TaskMetrics(_CategoryMetrics):
    total: int = 0
    completed: int = 0
    pending: int = 0
    overdue: int = 0
    completion_rate: float = 0.0
    average_completion_time_hours: float = 0.0
    trend: TrendSeries = ()
    by_priority: Dict[str, int] = field(default_factory=dict)
    by_status: Dict[str, int] = field(default_factory=dict)
    failed: bool = False
    error: Optional[str] = None

    @classmethod
    def empty(cls, error: Optional[str] = None) -> "TaskMetrics":
        return cls(failed=True, error=error, by_priority=_zeroed(TaskPriority), by_status=_zeroed(TaskStatus))


@dataclass(frozen=True)
class UserMetrics(_CategoryMetrics):
    total_users: int = 0
    active_users: int = 0
    new_users_this_month: int = 0
    user_engagement_rate: float = 0.0
    user_growth_trend: TrendSeries = ()
    users_by_role: Dict[str, int] = field(default_factory=dict)
    user_productivity: Dict[str, float] = field(default_factory=dict)
    failed: bool = False
    error: Optional[str] = None

    @classmethod
    def empty(cls, error: Optional[str] = None) -> "UserMetrics":
        return cls(failed=True, error=error, users_by_role=_zeroed(UserRole))


@dataclass(frozen=True)
class TeamMetrics(_CategoryMetrics):
    total_teams: int = 0
    active_teams: int = 0
    average_team_size: float = 0.0
    team_collaboration_score: float = 0.0
    team_performance_trend: TrendSeries = ()
    team_productivity: Dict[str, float] = field(default_factory=dict)
    team_task_distribution: Dict[str, int] = field(default_factory=dict)
    team_sizes: Dict[str, int] = field(default_factory=dict)
    failed: bool = False
    error: Optional[str] = None

    @classmethod
    def empty(cls, error: Optional[str] = None) -> "TeamMetrics":
        return cls(failed=True, error=error)


@dataclass(frozen=True)
class ProjectMetrics(_CategoryMetrics):
    total_projects: int = 0
    active_projects: int = 0
    completed_projects: int = 0
    project_success_rate: float = 0.0
    project_progress_trend: TrendSeries = ()
    project_health: Dict[str, float] = field(default_factory=dict)
    projects_by_status: Dict[str, int] = field(default_factory=dict)
    failed: bool = False
    error: Optional[str] = None

    @classmethod
    def empty(cls, error: Optional[str] = None) -> "ProjectMetrics":
        return cls(failed=True, error=error, projects_by_status=_zeroed(ProjectStatus))


@dataclass(frozen=True)
class SystemMetrics(_CategoryMetrics):
    system_uptime: float = 0.0
    total_notifications: int = 0
    average_response_time_ms: float = 0.0
    error_count: int = 0
    system_performance_trend: TrendSeries = ()
    feature_usage: Dict[str, int] = field(default_factory=dict)
    component_health: Dict[str, float] = field(default_factory=dict)
    failed: bool = False
    error: Optional[str] = None

    @classmethod
    def empty(cls, error: Optional[str] = None) -> "SystemMetrics":
        return cls(failed=True, error=error, feature_usage=dict.fromkeys(FEATURE_KEYS, 0))


# ---------------------------------------------------------------------------
# Dashboard Snapshot
# ---------------------------------------------------------------------------

class SnapshotStatus(str, Enum):
    READY = "ready"
    READY_WITH_PARTIAL_DATA = "ready_with_partial_data"


@dataclass(frozen=True)
class DashboardSnapshot:
    """Complete result of one refresh. Replaced wholesale, never patched."""
    task_metrics: TaskMetrics
    user_metrics: UserMetrics
    team_metrics: TeamMetrics
    project_metrics: ProjectMetrics
    system_metrics: SystemMetrics
    system_health_score: float
    system_health_status: str
    generated_at: datetime
    time_range: TimeRange
    range_key: str
    sequence: int

    def categories(self) -> Dict[str, _CategoryMetrics]:
        return {
            "task_metrics": self.task_metrics,
            "user_metrics": self.user_metrics,
            "team_metrics": self.team_metrics,
            "project_metrics": self.project_metrics,
            "system_metrics": self.system_metrics,
        }

    @property
    def failed_categories(self) -> List[str]:
        return [name for name, metrics in self.categories().items() if metrics.failed]

    @property
    def status(self) -> SnapshotStatus:
        if self.failed_categories:
            return SnapshotStatus.READY_WITH_PARTIAL_DATA
        return SnapshotStatus.READY

    def key_performance_indicators(self) -> Dict[str, float]:
        """Headline rates shown at the top of the dashboard."""
        return {
            "task_completion_rate": self.task_metrics.completion_rate,
            "user_engagement_rate": self.user_metrics.user_engagement_rate,
            "team_collaboration_score": self.team_metrics.team_collaboration_score,
            "project_success_rate": self.project_metrics.project_success_rate,
            "system_uptime": self.system_metrics.system_uptime,
        }

    def growth_metrics(self) -> Dict[str, float]:
        users = self.user_metrics
        growth_rate = (
            users.new_users_this_month / users.total_users * 100
            if users.total_users > 0 else 0.0
        )
        return {
            "user_growth_rate": growth_rate,
            "new_users_this_month": users.new_users_this_month,
            "total_users": users.total_users,
            "active_users": users.active_users,
        }

    def productivity_metrics(self) -> Dict[str, float]:
        trend = self.task_metrics.trend
        return {
            "average_task_completion_time_hours": self.task_metrics.average_completion_time_hours,
            # last point of the completion trend is today
            "tasks_completed_today": int(trend[-1].value) if trend else 0,
            "average_team_size": self.team_metrics.average_team_size,
            "system_response_time_ms": self.system_metrics.average_response_time_ms,
        }

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            name: metrics.to_dict() for name, metrics in self.categories().items()
        }
        data.update({
            "system_health_score": self.system_health_score,
            "system_health_status": self.system_health_status,
            "generated_at": self.generated_at.isoformat(),
            "time_range": self.time_range.to_dict(),
            "range_key": self.range_key,
            "sequence": self.sequence,
            "status": self.status.value,
            "failed_categories": self.failed_categories,
        })
        return data

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), default=str, indent=indent)
