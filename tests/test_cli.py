"""Unit tests for taskpulse.cli — argument handling, ranges and failures."""

import argparse
from unittest.mock import patch

import pytest

import taskpulse.cli as cli_mod
from taskpulse.cli import main
from taskpulse.engine.logging import FileLogger, log_category_failure


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "taskpulse.yaml"
    path.write_text(f"logging:\n  directory: {tmp_path / 'logs'}\n")
    return path


class TestRanges:
    def test_lists_all_keys(self, capsys):
        assert main(["ranges"]) == 0
        out = capsys.readouterr().out
        assert "7d   Last 7 Days (7 days)" in out
        assert "1y   Last Year (365 days)" in out
        assert len(out.strip().splitlines()) == 5


class TestRefreshArguments:
    def test_bad_config(self, capsys, tmp_path):
        path = tmp_path / "taskpulse.yaml"
        path.write_text("taskpulse:\n  environment: moon\n")
        assert main(["refresh", "--config", str(path)]) == 1
        assert "[ERROR]" in capsys.readouterr().out

    def test_unknown_range_rejected(self):
        with pytest.raises(SystemExit):
            main(["refresh", "--range", "2w"])

    def test_dispatch(self):
        with patch.object(cli_mod, "cmd_refresh", return_value=0) as cmd:
            assert main(["refresh", "--range", "90d", "--json"]) == 0
        args = cmd.call_args.args[0]
        assert isinstance(args, argparse.Namespace)
        assert args.range_key == "90d"
        assert args.json is True
        assert args.db is None


class TestFailures:
    def test_no_failures(self, capsys, config_file):
        assert main(["failures", "--config", str(config_file)]) == 0
        assert "No category failures recorded." in capsys.readouterr().out

    def test_lists_failures(self, capsys, config_file, tmp_path):
        file_logger = FileLogger(log_dir=str(tmp_path / "logs"))
        file_logger.write(log_category_failure(
            "user_metrics", {"error_type": "ReadFailure", "message": "users offline"},
        ))
        assert main(["failures", "--config", str(config_file)]) == 0
        out = capsys.readouterr().out
        assert '"category": "user_metrics"' in out
        assert '"message": "users offline"' in out
        assert "1 failure(s)." in out

    def test_limit(self, capsys, config_file, tmp_path):
        file_logger = FileLogger(log_dir=str(tmp_path / "logs"))
        for name in ("task_metrics", "team_metrics", "project_metrics"):
            file_logger.write(log_category_failure(name, {"error_type": "ReadFailure"}))
        assert main(["failures", "--config", str(config_file), "--limit", "2"]) == 0
        out = capsys.readouterr().out
        assert "2 failure(s)." in out
        assert "project_metrics" in out
        assert "task_metrics" not in out


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage: taskpulse" in capsys.readouterr().out
