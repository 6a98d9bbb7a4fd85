"""Unit tests for taskpulse.engine.reporting — LoggingErrorReporter."""

import logging

from taskpulse.engine.errors import ComputationFailure, ReadFailure
from taskpulse.engine.logging import FileLogger, init_logging, shutdown_logging
from taskpulse.engine.reporting import LoggingErrorReporter


class TestLoggingErrorReporter:
    def setup_method(self):
        self.reporter = LoggingErrorReporter(max_history=3)

    def test_report_tags_category(self):
        err = ReadFailure("offline", entity="tasks")
        self.reporter.report(err, "task_metrics")
        assert err.category == "task_metrics"
        assert len(self.reporter) == 1

    def test_existing_category_kept(self):
        err = ComputationFailure("bad", category="user_metrics")
        self.reporter.report(err, "system_health")
        assert err.category == "user_metrics"
        assert self.reporter.recent()[0].context == "system_health"

    def test_recent_by_context(self):
        self.reporter.report(ReadFailure("a"), "task_metrics")
        self.reporter.report(ReadFailure("b"), "team_metrics")
        assert [f.error.message for f in self.reporter.recent("team_metrics")] == ["b"]

    def test_bounded_history(self):
        for i in range(5):
            self.reporter.report(ReadFailure(str(i)), "task_metrics")
        assert [f.error.message for f in self.reporter.recent()] == ["2", "3", "4"]

    def test_clear(self):
        self.reporter.report(ReadFailure("a"), "task_metrics")
        self.reporter.clear()
        assert len(self.reporter) == 0

    def test_to_dict(self):
        self.reporter.report(ReadFailure("a", entity="users"), "user_metrics")
        d = self.reporter.recent()[0].to_dict()
        assert d["context"] == "user_metrics"
        assert d["error"]["entity"] == "users"

    def test_writes_standard_log(self, caplog):
        with caplog.at_level(logging.ERROR, logger="taskpulse.engine.reporting"):
            self.reporter.report(ReadFailure("offline"), "project_metrics")
        assert "[project_metrics]" in caplog.text

    def test_writes_structured_log(self, tmp_path):
        init_logging(log_dir=str(tmp_path), flush_interval_ms=10)
        self.reporter.report(ReadFailure("offline", entity="projects"), "project_metrics")
        shutdown_logging()
        entries = FileLogger(log_dir=str(tmp_path)).query("analytics", "errors")
        assert entries[0]["category"] == "project_metrics"
        assert entries[0]["error_type"] == "ReadFailure"
