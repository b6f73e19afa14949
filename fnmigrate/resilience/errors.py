#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""fnmigrate Resilience — Structured Exception Hierarchy.

Raised at the preflight and configuration seams. The pipeline never lets
these cross a phase boundary: the phase runner classifies them into
step outcomes, and the CLI maps the remainder to exit codes.

Usage:
    from fnmigrate.resilience.errors import ToolNotFoundError

    raise ToolNotFoundError("func")
"""


class MigrationError(Exception):
    """Base exception for all fnmigrate errors.

    Attributes:
        service: Name of the collaborator that caused the error (e.g. "func").
        retryable: Whether the caller could retry the operation.
    """

    def __init__(self, message: str, service: str = "", retryable: bool = False):
        super().__init__(message)
        self.service = service
        self.retryable = retryable


class MigrationTransientError(MigrationError):
    """Transient error — the operation may succeed if run again.

    Examples: tool timeout, locked build directory.
    """

    def __init__(self, message: str, service: str = "", retryable: bool = True):
        super().__init__(message, service=service, retryable=retryable)


class MigrationPermanentError(MigrationError):
    """Permanent error — running again without a change will not help."""

    def __init__(self, message: str, service: str = "", retryable: bool = False):
        super().__init__(message, service=service, retryable=retryable)


class PreconditionError(MigrationPermanentError):
    """A run cannot start: nothing is written when this is raised."""


class ToolNotFoundError(PreconditionError):
    """Required executable is not resolvable on PATH.

    Never tolerable, whatever the invocation policy.
    """

    def __init__(self, tool: str, message: str = ""):
        super().__init__(
            message or f"Required tool '{tool}' not found on PATH",
            service=tool,
        )
        self.tool = tool


class SourceRootError(PreconditionError):
    """Source project path is missing or not a directory."""

    def __init__(self, path, message: str = ""):
        super().__init__(message or f"Source project not found: {path}", service="source")
        self.path = str(path)


class NoMigratableUnitsError(PreconditionError):
    """Extraction found zero functions across the whole source tree."""

    def __init__(self, source_root, anomalies=None):
        super().__init__(
            f"No migratable units found in {source_root}",
            service="extractor",
        )
        self.source_root = str(source_root)
        self.anomalies = list(anomalies or [])


class ConfigurationError(MigrationPermanentError):
    """Configuration error — missing or invalid configuration."""

    def __init__(self, message: str, config_key: str = ""):
        super().__init__(message, service="config", retryable=False)
        self.config_key = config_key


class ProgressStoreError(MigrationPermanentError):
    """progress.json exists but cannot be parsed into a RunState."""

    def __init__(self, message: str, path=None):
        super().__init__(message, service="progress_store")
        self.path = str(path) if path is not None else ""


class ToolTimeoutError(MigrationTransientError):
    """External tool exceeded its per-invocation deadline."""

    def __init__(self, tool: str, timeout: float):
        super().__init__(
            f"'{tool}' did not finish within {timeout:.0f}s",
            service=tool,
        )
        self.tool = tool
        self.timeout = timeout


class MigrationCancelled(MigrationError):
    """User-initiated abort observed between steps."""

    def __init__(self, message: str = ""):
        super().__init__(message or "Migration cancelled by user", service="pipeline",
                         retryable=True)
