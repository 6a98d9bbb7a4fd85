"""
TaskPulse Category Collectors — One aggregation pass per dashboard category.

Each collector reads records through a RecordReader, builds its trend with
the shared TrendSeriesBuilder and returns its metrics value. ``collect``
never raises: any failure is reported with the collector's context tag and
replaced by the category's empty placeholder.

    Task     → TaskMetrics       ("task_metrics")
    User     → UserMetrics       ("user_metrics")
    Team     → TeamMetrics       ("team_metrics")
    Project  → ProjectMetrics    ("project_metrics")
    System   → SystemMetrics     ("system_metrics")
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from taskpulse.analytics.enums import EntityType, ProjectStatus, TaskPriority, TaskStatus, UserRole
from taskpulse.analytics.metrics import (
    FEATURE_KEYS,
    ProjectMetrics,
    SystemMetrics,
    TaskMetrics,
    TeamMetrics,
    UserMetrics,
)
from taskpulse.analytics.reader import DateWindow, RecordReader
from taskpulse.analytics.records import ProjectRecord, TaskRecord, TeamRecord, UserRecord, _Record
from taskpulse.analytics.telemetry import StaticTelemetryFeed, TelemetryFeed
from taskpulse.analytics.time_range import TimeRange, ensure_utc
from taskpulse.analytics.trend import TrendSeriesBuilder
from taskpulse.engine.errors import ComputationFailure, TaskPulseError
from taskpulse.engine.logging import log, log_category_performance
from taskpulse.engine.reporting import ErrorReporter, LoggingErrorReporter

logger = logging.getLogger("taskpulse.analytics.collectors")

R = TypeVar("R", bound=_Record)


def _rate(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100, 0 when the denominator is 0."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100


def _day_window(field: str, day_start: datetime, day_end: datetime) -> DateWindow:
    return DateWindow(field, start=day_start, end=day_end, end_inclusive=False)


def _until(field: str, day_end: datetime) -> DateWindow:
    return DateWindow(field, start=None, end=day_end, end_inclusive=False)


class CategoryCollector(ABC):
    """
    Base collector. Subclasses set ``name`` and ``metrics_type`` and implement
    ``_compute``.
    """

    name: str = ""
    metrics_type: Type[Any] = object

    def __init__(
        self,
        reader: RecordReader,
        trend_builder: Optional[TrendSeriesBuilder] = None,
        reporter: Optional[ErrorReporter] = None,
    ):
        self._reader = reader
        self._trend_builder = trend_builder if trend_builder is not None else TrendSeriesBuilder()
        self._reporter = reporter if reporter is not None else LoggingErrorReporter()

    async def collect(self, time_range: TimeRange, now: Optional[datetime] = None) -> Any:
        """Compute this category's metrics. Returns the empty placeholder on failure."""
        now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
        start = time.monotonic()
        failed = False
        try:
            return await self._compute(time_range, now)
        except TaskPulseError as e:
            failed = True
            return self._fail(e)
        except Exception as e:
            failed = True
            wrapped = ComputationFailure(
                f"Unexpected {type(e).__name__} in {self.name}: {e}",
                category=self.name,
            )
            wrapped.__cause__ = e
            return self._fail(wrapped)
        finally:
            duration_ms = (time.monotonic() - start) * 1000
            logger.debug(f"{self.name} collected in {duration_ms:.1f}ms (failed={failed})")
            log(log_category_performance(self.name, duration_ms, failed))

    def _fail(self, error: TaskPulseError) -> Any:
        self._reporter.report(error, self.name)
        return self.metrics_type.empty(error=error.message)

    @abstractmethod
    async def _compute(self, time_range: TimeRange, now: datetime) -> Any:
        """Build the category metrics; may raise any TaskPulseError."""

    async def _records(
        self,
        entity: EntityType,
        record_type: Type[R],
        filters: Optional[Dict[str, Any]] = None,
        date_range: Optional[DateWindow] = None,
    ) -> List[R]:
        docs = await self._reader.query(entity, filters=filters, date_range=date_range)
        return [record_type.from_document(doc) for doc in docs]


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------

class TaskMetricsCollector(CategoryCollector):
    name = "task_metrics"
    metrics_type = TaskMetrics

    async def _compute(self, time_range: TimeRange, now: datetime) -> TaskMetrics:
        tasks = await self._records(
            EntityType.TASKS,
            TaskRecord,
            date_range=DateWindow("created_at", time_range.start, time_range.end),
        )

        by_status = {s.value: 0 for s in TaskStatus}
        by_priority = {p.value: 0 for p in TaskPriority}
        completed = pending = overdue = 0
        durations: List[float] = []

        for task in tasks:
            by_status[task.status.value] += 1
            by_priority[task.priority.value] += 1
            if task.is_completed:
                completed += 1
            if task.status.is_open:
                pending += 1
            if task.is_overdue(now):
                overdue += 1
            hours = task.completion_hours
            if hours is not None:
                durations.append(hours)

        async def completed_on(day_start: datetime, day_end: datetime) -> int:
            return await self._reader.count(
                EntityType.TASKS,
                filters={"status": TaskStatus.COMPLETED},
                date_range=_day_window("completed_at", day_start, day_end),
            )

        trend = await self._trend_builder.build(time_range, completed_on)
        total = len(tasks)

        return TaskMetrics(
            total=total,
            completed=completed,
            pending=pending,
            overdue=overdue,
            completion_rate=_rate(completed, total),
            average_completion_time_hours=sum(durations) / len(durations) if durations else 0.0,
            trend=trend,
            by_priority=by_priority,
            by_status=by_status,
        )


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------

class UserMetricsCollector(CategoryCollector):
    name = "user_metrics"
    metrics_type = UserMetrics

    def __init__(self, *args: Any, active_window_days: int = 7, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._active_window = timedelta(days=active_window_days)

    async def _compute(self, time_range: TimeRange, now: datetime) -> UserMetrics:
        users = await self._records(EntityType.USERS, UserRecord)
        completed_tasks = await self._records(
            EntityType.TASKS,
            TaskRecord,
            filters={"status": TaskStatus.COMPLETED},
            date_range=DateWindow("completed_at", time_range.start, time_range.end),
        )

        active_since = now - self._active_window
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        active = sum(
            1 for u in users
            if u.is_active and u.last_active_at is not None and u.last_active_at >= active_since
        )
        new_this_month = sum(
            1 for u in users if u.created_at is not None and u.created_at >= month_start
        )
        by_role = {r.value: 0 for r in UserRole}
        for user in users:
            by_role[user.role.value] += 1

        days = max(time_range.days, 1)
        per_assignee = Counter(t.assignee_id for t in completed_tasks if t.assignee_id)
        productivity = {uid: count / days for uid, count in per_assignee.items() if count > 0}

        async def registered_by(day_start: datetime, day_end: datetime) -> int:
            return await self._reader.count(EntityType.USERS, date_range=_until("created_at", day_end))

        growth = await self._trend_builder.build(time_range, registered_by)

        return UserMetrics(
            total_users=len(users),
            active_users=active,
            new_users_this_month=new_this_month,
            user_engagement_rate=_rate(active, len(users)),
            user_growth_trend=growth,
            users_by_role=by_role,
            user_productivity=productivity,
        )


# ---------------------------------------------------------------------------
# Team
# ---------------------------------------------------------------------------

class TeamMetricsCollector(CategoryCollector):
    """Collaboration score is left at 0 here; the aggregator fills it in."""

    name = "team_metrics"
    metrics_type = TeamMetrics

    async def _compute(self, time_range: TimeRange, now: datetime) -> TeamMetrics:
        teams = await self._records(EntityType.TEAMS, TeamRecord)
        team_tasks = await self._records(
            EntityType.TASKS,
            TaskRecord,
            filters={"team_id__isnull": False},
            date_range=DateWindow("created_at", time_range.start, time_range.end),
        )

        sizes = {team.id: team.size for team in teams}
        assigned: Dict[str, int] = defaultdict(int)
        done: Dict[str, int] = defaultdict(int)
        for task in team_tasks:
            if task.team_id not in sizes:
                continue
            assigned[task.team_id] += 1
            if task.is_completed:
                done[task.team_id] += 1

        distribution = {team_id: assigned.get(team_id, 0) for team_id in sizes}
        productivity = {
            team_id: _rate(done.get(team_id, 0), distribution[team_id]) for team_id in sizes
        }

        async def team_completions_on(day_start: datetime, day_end: datetime) -> int:
            return await self._reader.count(
                EntityType.TASKS,
                filters={"status": TaskStatus.COMPLETED, "team_id__isnull": False},
                date_range=_day_window("completed_at", day_start, day_end),
            )

        trend = await self._trend_builder.build(time_range, team_completions_on)

        return TeamMetrics(
            total_teams=len(teams),
            active_teams=sum(1 for t in teams if t.is_active),
            average_team_size=sum(sizes.values()) / len(sizes) if sizes else 0.0,
            team_collaboration_score=0.0,
            team_performance_trend=trend,
            team_productivity=productivity,
            team_task_distribution=distribution,
            team_sizes=sizes,
        )


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------

class ProjectMetricsCollector(CategoryCollector):
    name = "project_metrics"
    metrics_type = ProjectMetrics

    async def _compute(self, time_range: TimeRange, now: datetime) -> ProjectMetrics:
        projects = await self._records(EntityType.PROJECTS, ProjectRecord)
        project_tasks = await self._records(
            EntityType.TASKS, TaskRecord, filters={"project_id__isnull": False}
        )

        by_status = {s.value: 0 for s in ProjectStatus}
        for project in projects:
            by_status[project.status.value] += 1

        known = {p.id for p in projects}
        health = _completion_by_key(
            (t.project_id, t.is_completed) for t in project_tasks if t.project_id in known
        )

        async def completed_by(day_start: datetime, day_end: datetime) -> int:
            return await self._reader.count(
                EntityType.PROJECTS,
                filters={"status": ProjectStatus.COMPLETED},
                date_range=_until("completed_at", day_end),
            )

        trend = await self._trend_builder.build(time_range, completed_by)
        completed = by_status[ProjectStatus.COMPLETED.value]

        return ProjectMetrics(
            total_projects=len(projects),
            active_projects=by_status[ProjectStatus.ACTIVE.value],
            completed_projects=completed,
            project_success_rate=_rate(completed, len(projects)),
            project_progress_trend=trend,
            project_health=health,
            projects_by_status=by_status,
        )


def _completion_by_key(pairs: Iterable[tuple]) -> Dict[str, float]:
    """(key, is_completed) pairs → completion % per key seen at least once."""
    totals: Dict[str, int] = defaultdict(int)
    done: Dict[str, int] = defaultdict(int)
    for key, is_completed in pairs:
        totals[key] += 1
        if is_completed:
            done[key] += 1
    return {key: _rate(done[key], total) for key, total in totals.items()}


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------

FEATURE_ENTITIES = {key: EntityType(key) for key in FEATURE_KEYS}


class SystemMetricsCollector(CategoryCollector):
    name = "system_metrics"
    metrics_type = SystemMetrics

    def __init__(self, *args: Any, telemetry: Optional[TelemetryFeed] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._telemetry = telemetry if telemetry is not None else StaticTelemetryFeed()

    async def _compute(self, time_range: TimeRange, now: datetime) -> SystemMetrics:
        reading = await self._telemetry.snapshot(time_range)
        in_window = DateWindow("created_at", time_range.start, time_range.end)

        usage: Dict[str, int] = {}
        for feature, entity in FEATURE_ENTITIES.items():
            usage[feature] = await self._reader.count(entity, date_range=in_window)

        first_day = time_range.start.date()

        async def performance_on(day_start: datetime, day_end: datetime) -> float:
            index = (day_start.date() - first_day).days
            if index >= len(reading.performance):
                raise ComputationFailure(
                    f"No telemetry performance figure for day {index}",
                    category=self.name,
                )
            return reading.performance[index]

        trend = await self._trend_builder.build(time_range, performance_on)

        return SystemMetrics(
            system_uptime=reading.uptime,
            total_notifications=usage["notifications"],
            average_response_time_ms=reading.average_response_time_ms,
            error_count=reading.error_count,
            system_performance_trend=trend,
            feature_usage=usage,
            component_health=dict(reading.component_health),
        )


def build_collectors(
    reader: RecordReader,
    trend_builder: Optional[TrendSeriesBuilder] = None,
    reporter: Optional[ErrorReporter] = None,
    telemetry: Optional[TelemetryFeed] = None,
    active_window_days: int = 7,
) -> List[CategoryCollector]:
    """The five collectors in dashboard order, sharing one builder and reporter."""
    trend_builder = trend_builder if trend_builder is not None else TrendSeriesBuilder()
    reporter = reporter if reporter is not None else LoggingErrorReporter()
    return [
        TaskMetricsCollector(reader, trend_builder, reporter),
        UserMetricsCollector(reader, trend_builder, reporter, active_window_days=active_window_days),
        TeamMetricsCollector(reader, trend_builder, reporter),
        ProjectMetricsCollector(reader, trend_builder, reporter),
        SystemMetricsCollector(reader, trend_builder, reporter, telemetry=telemetry),
    ]
