#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""Run log sink — migration-<timestamp>.log.

Append-only. Attached to the `fnmigrate` logger once the migration
directory exists, so a run that fails preflight leaves no log file behind.
"""

import logging
from pathlib import Path

from fnmigrate.resilience.correlation import RunIdLogFilter

ROOT_LOGGER = "fnmigrate"
LOG_FORMAT = "%(asctime)s [%(run_id)s] %(levelname)-7s %(name)s: %(message)s"
CONSOLE_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"


def attach_run_log(log_file, level=logging.DEBUG):
    """Add a FileHandler writing to log_file; returns it for detach_run_log()."""
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.addFilter(RunIdLogFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger = logging.getLogger(ROOT_LOGGER)
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > level:
        logger.setLevel(level)
    return handler


def detach_run_log(handler):
    if handler is None:
        return
    logging.getLogger(ROOT_LOGGER).removeHandler(handler)
    handler.close()


_console_handler = None


def configure_console(verbose=False):
    """Console logging for the CLI: INFO by default, DEBUG with --verbose.

    Replaces the handler installed by a previous call.
    """
    global _console_handler
    logger = logging.getLogger(ROOT_LOGGER)
    if _console_handler is not None:
        logger.removeHandler(_console_handler)
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    _console_handler = handler
    return handler
