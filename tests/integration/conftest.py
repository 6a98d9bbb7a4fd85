"""
Integration test fixtures — a seeded SQLite record database and a config
tree on disk. No external infrastructure required.

Run: pytest tests/integration/ -v -m integration
"""

from __future__ import annotations

import pytest

from taskpulse.db.base import EngineRegistry, engine_registry


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: exercises SQLite, the filesystem and the CLI together")


@pytest.fixture
def workspace(tmp_path):
    """taskpulse.yaml pointing the JSON logs into tmp_path."""
    log_dir = tmp_path / "logs"
    config_path = tmp_path / "taskpulse.yaml"
    config_path.write_text(
        "taskpulse:\n"
        "  environment: dev\n"
        "logging:\n"
        f"  directory: {log_dir}\n"
        "  flush_interval_ms: 10\n",
        encoding="utf-8",
    )
    return {"config": str(config_path), "logs": log_dir, "root": tmp_path}


@pytest.fixture
def seeded_db(tmp_path, scenario_documents, seed_records):
    """URL of a SQLite file holding the scenario records."""
    url = f"sqlite:///{tmp_path / 'records.db'}"
    registry = EngineRegistry()
    registry.register("test", url)
    registry.create_tables("test")
    seed_records(registry, scenario_documents)
    registry.dispose()
    yield url
    engine_registry.dispose()
