#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""fnmigrate Resilience Package — Errors and run correlation."""

from fnmigrate.resilience.correlation import (  # noqa: F401
    RunIdLogFilter,
    clear_run_id,
    generate_run_id,
    get_run_id,
    set_run_id,
)
from fnmigrate.resilience.errors import (  # noqa: F401
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
