#!/usr/bin/env python3
# CUI // SP-CTI
"""Tests for fnmigrate/migration/progress_store.py — durable run state."""

import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Ensure project root on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fnmigrate.migration.models import (
    Criticality,
    DependencyRecord,
    MigratableUnit,
    Phase,
    PhaseStatus,
    RunState,
    RunStatus,
    UnitKind,
)
from fnmigrate.migration.progress_store import ProgressStore
from fnmigrate.resilience.errors import ProgressStoreError


@pytest.fixture
def state(tmp_path):
    return RunState(
        run_id="abc123def456",
        started_at="2026-01-01T12:00:00+00:00",
        source_root=str(tmp_path / "src"),
        migration_root_path=str(tmp_path / "src" / "migration-20260101_120000"),
        phases={
            0: Phase(0, "preparation", Criticality.FATAL, PhaseStatus.SUCCEEDED),
            1: Phase(1, "base_scaffold", Criticality.FATAL, PhaseStatus.FAILED_FATAL,
                     warnings=["func_init: func init exited 1"], error_count=1),
            2: Phase(2, "dependency_mapping", Criticality.DEGRADED),
        },
        units=[MigratableUnit("GetOrder", UnitKind.HTTP, "GetOrder.cs")],
        dependencies=[DependencyRecord("Newtonsoft.Json", "13.0.1",
                                       "com.fasterxml.jackson.core:jackson-databind", "2.16.1")],
        unit_results={"GetOrder": "scaffolded"},
        project_name="OrdersApp",
        status=RunStatus.FAILED,
    )


# ---------------------------------------------------------------------------
# Tests: Save / load
# ---------------------------------------------------------------------------

class TestSaveLoad:
    """Tests for persisting and restoring RunState."""

    def test_round_trip(self, tmp_path, state):
        store = ProgressStore(tmp_path / "progress.json")
        store.save(state)
        loaded = store.load()
        assert loaded == state
        assert loaded.phases[1].status == PhaseStatus.FAILED_FATAL
        assert loaded.first_incomplete_phase().name == "base_scaffold"

    def test_file_is_indented_json(self, tmp_path, state):
        store = ProgressStore(tmp_path / "progress.json")
        store.save(state)
        data = json.loads(store.path.read_text(encoding="utf-8"))
        assert data["run_id"] == "abc123def456"
        assert data["phases"]["1"]["status"] == "FAILED_FATAL"
        assert data["total_units"] == 1
        assert data["completed_units"] == 1
        assert store.path.read_text(encoding="utf-8").startswith("{\n  ")

    def test_load_missing_returns_none(self, tmp_path):
        store = ProgressStore(tmp_path / "progress.json")
        assert not store.exists()
        assert store.load() is None

    def test_load_corrupt_raises(self, tmp_path):
        path = tmp_path / "progress.json"
        path.write_text("{ not json", encoding="utf-8")
        with pytest.raises(ProgressStoreError):
            ProgressStore(path).load()

    def test_load_missing_keys_raises(self, tmp_path):
        path = tmp_path / "progress.json"
        path.write_text('{"run_id": "x"}', encoding="utf-8")
        with pytest.raises(ProgressStoreError):
            ProgressStore(path).load()

    def test_creates_parent_directory(self, tmp_path, state):
        store = ProgressStore(tmp_path / "nested" / "progress.json")
        store.save(state)
        assert store.exists()


# ---------------------------------------------------------------------------
# Tests: Atomicity
# ---------------------------------------------------------------------------

class TestAtomicWrite:
    """A failed write leaves the previous snapshot intact."""

    def test_failed_replace_keeps_previous(self, tmp_path, state):
        store = ProgressStore(tmp_path / "progress.json")
        store.save(state)
        before = store.path.read_text(encoding="utf-8")

        state.status = RunStatus.COMPLETED
        with patch("fnmigrate.migration.progress_store.os.replace",
                   side_effect=OSError("crash")):
            with pytest.raises(OSError):
                store.save(state)

        assert store.path.read_text(encoding="utf-8") == before
        assert [p.name for p in tmp_path.iterdir()] == ["progress.json"]

    def test_interrupted_serialization_keeps_previous(self, tmp_path, state):
        store = ProgressStore(tmp_path / "progress.json")
        store.save(state)
        with patch("fnmigrate.migration.progress_store.os.fsync",
                   side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                store.save(state)
        assert store.load() == state
        assert len(list(tmp_path.iterdir())) == 1
