#!/usr/bin/env python3
# CUI // SP-CTI
"""Tests for fnmigrate.resilience — error hierarchy and run-ID log filter."""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import logging
import re
import threading

import pytest

from fnmigrate.resilience.correlation import (
    RunIdLogFilter,
    _thread_local,
    clear_run_id,
    generate_run_id,
    get_run_id,
    set_run_id,
)
from fnmigrate.resilience.errors import (
    ConfigurationError,
    MigrationCancelled,
    MigrationError,
    MigrationPermanentError,
    MigrationTransientError,
    NoMigratableUnitsError,
    PreconditionError,
    ProgressStoreError,
    SourceRootError,
    ToolNotFoundError,
    ToolTimeoutError,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _clear_thread_local():
    """Ensure thread-local state is clean before and after each test."""
    _thread_local.run_id = None
    yield
    _thread_local.run_id = None


# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------
class TestErrorHierarchy:
    """Tests for the typed migration errors."""

    @pytest.mark.parametrize("exc", [
        ToolNotFoundError("func"),
        SourceRootError("/nope"),
        NoMigratableUnitsError("/src"),
    ])
    def test_preconditions_are_permanent(self, exc):
        assert isinstance(exc, PreconditionError)
        assert isinstance(exc, MigrationPermanentError)
        assert exc.retryable is False

    def test_tool_not_found_message(self):
        exc = ToolNotFoundError("func")
        assert exc.tool == "func"
        assert "func" in str(exc)
        assert exc.service == "func"

    def test_timeout_is_transient(self):
        exc = ToolTimeoutError("mvn", 1800)
        assert isinstance(exc, MigrationTransientError)
        assert exc.retryable is True
        assert "1800s" in str(exc)

    def test_configuration_and_store_errors(self):
        assert ConfigurationError("bad", config_key="build.tool").config_key == "build.tool"
        assert ProgressStoreError("corrupt", path="/x/progress.json").path == "/x/progress.json"

    def test_cancelled_is_migration_error(self):
        exc = MigrationCancelled()
        assert isinstance(exc, MigrationError)
        assert not isinstance(exc, MigrationPermanentError)

    def test_no_units_keeps_anomalies(self):
        exc = NoMigratableUnitsError("/src", anomalies=["a"])
        assert exc.anomalies == ["a"]
        assert exc.source_root == "/src"


# ---------------------------------------------------------------------------
# Run ID
# ---------------------------------------------------------------------------
class TestRunId:
    """Tests for thread-local run-ID handling."""

    def test_returns_12_char_hex_string(self):
        rid = generate_run_id()
        assert re.fullmatch(r"[0-9a-f]{12}", rid), f"Not hex: {rid}"

    def test_set_get_clear(self):
        assert get_run_id() is None
        set_run_id("abc123def456")
        assert get_run_id() == "abc123def456"
        clear_run_id()
        assert get_run_id() is None

    def test_thread_isolation(self):
        set_run_id("main-thread")
        seen = {}

        def worker():
            seen["value"] = get_run_id()
        t = threading.Thread(target=worker)
        t.start()
        t.join()
        assert seen["value"] is None
        assert get_run_id() == "main-thread"


class TestRunIdLogFilter:
    """Tests for RunIdLogFilter."""

    def _record(self):
        return logging.LogRecord("fnmigrate.test", logging.INFO, __file__, 1, "msg", None, None)

    def test_injects_run_id(self):
        set_run_id("abc123def456")
        record = self._record()
        assert RunIdLogFilter().filter(record) is True
        assert record.run_id == "abc123def456"

    def test_placeholder_outside_run(self):
        record = self._record()
        RunIdLogFilter().filter(record)
        assert record.run_id == "-"
