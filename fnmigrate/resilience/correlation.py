#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""fnmigrate Resilience — Run ID propagation for log records.

Every log line written during a migration carries the run ID so a log file
shared across resumed runs can still be split per execution.

Usage:
    from fnmigrate.resilience.correlation import set_run_id, RunIdLogFilter

    set_run_id(state.run_id)
    handler.addFilter(RunIdLogFilter())
"""

import logging
import threading
import uuid
from typing import Optional

logger = logging.getLogger("fnmigrate.resilience.correlation")

_thread_local = threading.local()


def generate_run_id() -> str:
    """Generate a 12-character run ID (UUID prefix)."""
    return uuid.uuid4().hex[:12]


def get_run_id() -> Optional[str]:
    """Return the current run ID, or None outside a migration."""
    return getattr(_thread_local, "run_id", None)


def set_run_id(run_id: str):
    """Set the run ID for the current thread."""
    _thread_local.run_id = run_id


def clear_run_id():
    """Clear the thread-local run ID."""
    _thread_local.run_id = None


class RunIdLogFilter(logging.Filter):
    """Logging filter that injects run_id into log records.

    Usage:
        handler = logging.FileHandler(path)
        handler.addFilter(RunIdLogFilter())
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(run_id)s] %(name)s: %(message)s"
        ))
    """

    def filter(self, record):
        record.run_id = get_run_id() or "-"
        return True
