"""Unit tests for taskpulse.analytics.collectors — the five category passes."""

from datetime import datetime, timezone

import pytest

from taskpulse.analytics.collectors import (
    CategoryCollector,
    ProjectMetricsCollector,
    SystemMetricsCollector,
    TaskMetricsCollector,
    TeamMetricsCollector,
    UserMetricsCollector,
    build_collectors,
)
from taskpulse.analytics.metrics import TaskMetrics, TeamMetrics, UserMetrics
from taskpulse.analytics.reader import InMemoryRecordReader
from taskpulse.analytics.telemetry import TelemetryReading, synthetic_performance
from taskpulse.engine.errors import ComputationFailure, ReadFailure


def values(series):
    return [p.value for p in series]


class BrokenReader(InMemoryRecordReader):
    """Reader whose store is unreachable."""

    async def query(self, entity, filters=None, date_range=None):
        raise ReadFailure("record store unreachable", entity=str(entity), filters=filters)


class TestTaskMetricsCollector:
    @pytest.mark.asyncio
    async def test_seven_day_scenario(self, reader, seven_days, now, reporter):
        metrics = await TaskMetricsCollector(reader, reporter=reporter).collect(seven_days, now)

        assert not metrics.failed
        assert metrics.total == 10
        assert metrics.completed == 6
        assert metrics.completion_rate == 60.0
        assert metrics.overdue == 2
        assert metrics.pending == 4
        assert metrics.average_completion_time_hours == pytest.approx(64.0)
        assert metrics.by_status == {
            "todo": 2, "in_progress": 2, "review": 0, "completed": 6, "cancelled": 0,
        }
        assert metrics.by_priority == {"low": 1, "medium": 6, "high": 2, "urgent": 1}
        assert values(metrics.trend) == [0, 1, 1, 1, 1, 1, 0, 1]
        assert len(reporter) == 0

    @pytest.mark.asyncio
    async def test_status_and_priority_buckets_partition_tasks(self, reader, seven_days, now):
        metrics = await TaskMetricsCollector(reader).collect(seven_days, now)
        assert sum(metrics.by_status.values()) == metrics.total
        assert sum(metrics.by_priority.values()) == metrics.total

    @pytest.mark.asyncio
    async def test_empty_store(self, empty_reader, seven_days, now):
        metrics = await TaskMetricsCollector(empty_reader).collect(seven_days, now)
        assert metrics.total == 0
        assert metrics.completion_rate == 0.0
        assert metrics.average_completion_time_hours == 0.0
        assert values(metrics.trend) == [0] * 8

    @pytest.mark.asyncio
    async def test_cancelled_is_neither_pending_nor_overdue(self, seven_days, now):
        reader = InMemoryRecordReader({"tasks": [{
            "id": "x", "status": "cancelled", "created_at": now, "due_date": seven_days.start,
        }]})
        metrics = await TaskMetricsCollector(reader).collect(seven_days, now)
        assert metrics.pending == 0
        assert metrics.overdue == 0
        assert metrics.completion_rate == 0.0


class TestUserMetricsCollector:
    @pytest.mark.asyncio
    async def test_scenario(self, reader, seven_days, now):
        metrics = await UserMetricsCollector(reader).collect(seven_days, now)

        assert metrics.total_users == 4
        assert metrics.active_users == 2
        assert metrics.new_users_this_month == 2
        assert metrics.user_engagement_rate == 50.0
        assert metrics.users_by_role == {"super_admin": 0, "admin": 1, "team_member": 2, "viewer": 1}
        assert metrics.user_productivity == pytest.approx({"u1": 3 / 7, "u2": 1 / 7, "u3": 1 / 7})
        assert values(metrics.user_growth_trend) == [3, 4, 4, 4, 4, 4, 4, 4]

    @pytest.mark.asyncio
    async def test_no_users(self, empty_reader, seven_days, now):
        metrics = await UserMetricsCollector(empty_reader).collect(seven_days, now)
        assert not metrics.failed
        assert metrics.total_users == 0
        assert metrics.active_users == 0
        assert metrics.user_engagement_rate == 0.0
        assert values(metrics.user_growth_trend) == [0] * 8

    @pytest.mark.asyncio
    async def test_active_window_is_configurable(self, reader, seven_days, now):
        metrics = await UserMetricsCollector(reader, active_window_days=1).collect(seven_days, now)
        assert metrics.active_users == 0


class TestTeamMetricsCollector:
    @pytest.mark.asyncio
    async def test_scenario(self, reader, seven_days, now):
        metrics = await TeamMetricsCollector(reader).collect(seven_days, now)

        assert metrics.total_teams == 3
        assert metrics.active_teams == 2
        assert metrics.average_team_size == 1.0
        assert metrics.team_sizes == {"t1": 2, "t2": 1, "t3": 0}
        assert metrics.team_task_distribution == {"t1": 4, "t2": 2, "t3": 1}
        assert metrics.team_productivity == {"t1": 75.0, "t2": 50.0, "t3": 0.0}
        assert values(metrics.team_performance_trend) == [0, 1, 1, 1, 1, 0, 0, 0]
        # filled in by the aggregator
        assert metrics.team_collaboration_score == 0.0


class TestProjectMetricsCollector:
    @pytest.mark.asyncio
    async def test_scenario(self, reader, seven_days, now):
        metrics = await ProjectMetricsCollector(reader).collect(seven_days, now)

        assert metrics.total_projects == 4
        assert metrics.active_projects == 1
        assert metrics.completed_projects == 1
        assert metrics.project_success_rate == 25.0
        assert metrics.projects_by_status["on_hold"] == 1
        assert metrics.projects_by_status["archived"] == 0
        assert metrics.project_health == pytest.approx({"p-alpha": 200 / 3, "p-beta": 100.0})
        assert values(metrics.project_progress_trend) == [0, 0, 0, 1, 1, 1, 1, 1]


class TestSystemMetricsCollector:
    @pytest.mark.asyncio
    async def test_static_telemetry(self, reader, seven_days, now):
        metrics = await SystemMetricsCollector(reader).collect(seven_days, now)

        assert metrics.system_uptime == 99.9
        assert metrics.average_response_time_ms == 150.0
        assert metrics.feature_usage == {"tasks": 10, "teams": 1, "projects": 1, "notifications": 3}
        assert metrics.total_notifications == 3
        assert metrics.component_health["database"] == 98.5
        assert values(metrics.system_performance_trend) == [synthetic_performance(i) for i in range(8)]
        assert values(metrics.system_performance_trend)[0] == 97.5

    @pytest.mark.asyncio
    async def test_short_telemetry_series_fails_category(self, reader, seven_days, now, reporter):
        class ShortFeed:
            async def snapshot(self, time_range):
                return TelemetryReading(99.0, 100.0, 1, {}, [90.0, 91.0])

        collector = SystemMetricsCollector(reader, reporter=reporter, telemetry=ShortFeed())
        metrics = await collector.collect(seven_days, now)
        assert metrics.failed
        assert len(reporter.recent("system_metrics")) == 1


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_read_failure_becomes_placeholder(self, seven_days, now, reporter):
        metrics = await TaskMetricsCollector(BrokenReader(), reporter=reporter).collect(seven_days, now)

        assert isinstance(metrics, TaskMetrics)
        assert metrics.failed
        assert metrics.error == "record store unreachable"
        assert metrics.total == 0
        assert metrics.trend == ()
        [failure] = reporter.recent()
        assert failure.context == "task_metrics"
        assert isinstance(failure.error, ReadFailure)
        assert failure.error.category == "task_metrics"

    @pytest.mark.asyncio
    async def test_malformed_record_is_computation_failure(self, seven_days, now, reporter):
        reader = InMemoryRecordReader({"users": [{"role": "admin"}]})
        metrics = await UserMetricsCollector(reader, reporter=reporter).collect(seven_days, now)

        assert isinstance(metrics, UserMetrics)
        assert metrics.failed
        assert isinstance(reporter.recent()[0].error, ComputationFailure)

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, reader, seven_days, now, reporter):
        class Exploding(TeamMetricsCollector):
            async def _compute(self, time_range, now):
                raise KeyError("boom")

        metrics = await Exploding(reader, reporter=reporter).collect(seven_days, now)
        assert isinstance(metrics, TeamMetrics)
        assert metrics.failed
        error = reporter.recent("team_metrics")[0].error
        assert isinstance(error, ComputationFailure)
        assert isinstance(error.__cause__, KeyError)


class TestBuildCollectors:
    def test_order_and_names(self, reader):
        names = [c.name for c in build_collectors(reader)]
        assert names == ["task_metrics", "user_metrics", "team_metrics", "project_metrics", "system_metrics"]

    def test_shares_injected_reporter(self, reader, reporter):
        assert len(reporter) == 0
        collectors = build_collectors(reader, reporter=reporter)
        assert all(c._reporter is reporter for c in collectors)

    def test_collector_keeps_injected_reporter(self, reader, reporter):
        assert TaskMetricsCollector(reader, reporter=reporter)._reporter is reporter

    def test_base_collector_is_abstract(self, reader):
        with pytest.raises(TypeError):
            CategoryCollector(reader)


class TestLegacyStatusSpellings:
    """Trend counts classify stored statuses the same way the records do."""

    def setup_method(self):
        created = datetime(2026, 10, 12, 9, tzinfo=timezone.utc)
        self.reader = InMemoryRecordReader({
            "tasks": [
                {"id": "a", "status": "Completed", "createdAt": created, "teamId": "t1",
                 "completedAt": datetime(2026, 10, 14, 10, tzinfo=timezone.utc)},
                {"id": "b", "status": "COMPLETED", "created_at": created,
                 "completed_at": datetime(2026, 10, 15, 10, tzinfo=timezone.utc)},
                {"id": "c", "status": "inProgress", "created_at": created},
            ],
            "teams": [{"id": "t1", "memberIds": ["u1"]}],
            "projects": [
                {"id": "p1", "status": "COMPLETED",
                 "completed_at": datetime(2026, 10, 13, tzinfo=timezone.utc)},
                {"id": "p2", "status": "onHold"},
            ],
        })

    @pytest.mark.asyncio
    async def test_task_trend(self, seven_days, now):
        metrics = await TaskMetricsCollector(self.reader).collect(seven_days, now)
        assert metrics.completed == 2
        assert values(metrics.trend) == [0, 0, 0, 1, 1, 0, 0, 0]

    @pytest.mark.asyncio
    async def test_team_trend(self, seven_days, now):
        metrics = await TeamMetricsCollector(self.reader).collect(seven_days, now)
        assert metrics.team_productivity == {"t1": 100.0}
        assert sum(values(metrics.team_performance_trend)) == 1

    @pytest.mark.asyncio
    async def test_project_trend(self, seven_days, now):
        metrics = await ProjectMetricsCollector(self.reader).collect(seven_days, now)
        assert metrics.completed_projects == 1
        assert values(metrics.project_progress_trend) == [0, 0, 1, 1, 1, 1, 1, 1]
