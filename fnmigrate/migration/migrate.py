#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""C# Azure Functions -> Java Azure Functions migration CLI.

Exit codes: 0 completed (possibly degraded), 1 fatal or precondition failure,
130 cancelled (Ctrl-C; the in-flight tool call finishes first).

Usage:
    # New migration
    migrate ./MyFunctionApp

    # Continue a run that stopped at a fatal phase or was cancelled
    migrate ./MyFunctionApp --resume ./MyFunctionApp/migration-20260101_120000

    # Inspect or discard a run
    migrate --status ./MyFunctionApp/migration-20260101_120000 --json
    migrate --rollback ./MyFunctionApp/migration-20260101_120000
"""

import argparse
import json
import logging
import shutil
import signal
import sys
from pathlib import Path

from fnmigrate.cli.output_formatter import (
    format_banner,
    format_kv,
    format_list,
    format_pipeline,
    format_table,
)
from fnmigrate.migration.config import (
    MIGRATION_DIR_PREFIX,
    build_run_config,
    load_settings,
)
from fnmigrate.migration.models import PhaseStatus, RunStatus
from fnmigrate.migration.phase_runner import CancellationToken
from fnmigrate.migration.pipeline import (
    EXIT_CANCELLED,
    EXIT_FAILED,
    EXIT_OK,
    MigrationPipeline,
    exit_code_for,
)
from fnmigrate.migration.progress_store import ProgressStore
from fnmigrate.migration.run_log import configure_console
from fnmigrate.resilience.errors import (
    ConfigurationError,
    MigrationError,
    ProgressStoreError,
)

logger = logging.getLogger("fnmigrate.migration.migrate")

PROGRESS_FILE = "progress.json"


def build_parser():
    parser = argparse.ArgumentParser(
        prog="migrate",
        description="Migrate a C# Azure Functions project to a Java Azure Functions project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Usage:", 1)[1],
    )
    parser.add_argument("source", nargs="?", help="C# Azure Functions project directory")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--resume", metavar="MIGRATION_DIR",
                      help="Continue the run persisted in MIGRATION_DIR/progress.json")
    mode.add_argument("--status", metavar="MIGRATION_DIR",
                      help="Print the phase summary of an existing run")
    mode.add_argument("--rollback", metavar="MIGRATION_DIR",
                      help="Delete a migration directory (the source tree is never modified)")
    parser.add_argument("--config", help="Settings YAML (default: args/migration_config.yaml)")
    parser.add_argument("--timeout", type=float, metavar="SECONDS",
                        help="Per-invocation timeout for func/mvn; 0 disables")
    parser.add_argument("--json", action="store_true", help="JSON output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug console logging")
    return parser


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def _print_summary(state, as_json=False):
    if as_json:
        data = state.to_dict()
        data["exit_code"] = exit_code_for(state)
        print(json.dumps(data, indent=2))
        return

    phases = state.ordered_phases()
    succeeded = sum(1 for p in phases if p.status == PhaseStatus.SUCCEEDED)
    print()
    print(format_banner(state.status.value,
                        f"Migration {state.status.value.upper()}: "
                        f"{succeeded}/{len(phases)} phases succeeded"))
    print()
    print(format_kv([
        ("Run ID", state.run_id),
        ("Source", state.source_root),
        ("Migration dir", state.migration_root_path),
        ("Java project", state.target_project_path or "not created"),
        ("Functions", f"{state.to_dict()['completed_units']}/{len(state.units)} scaffolded"),
        ("Report", str(Path(state.migration_root_path) / "MIGRATION_REPORT.md")),
    ]))
    print()
    print(format_pipeline([{"name": p.name, "status": p.status.value} for p in phases]))
    print()
    print(format_table(
        ["#", "Phase", "Criticality", "Status", "Errors"],
        [[p.index, p.name, p.criticality.value, p.status.value, p.error_count] for p in phases],
    ))
    warnings = [f"{p.name}: {w}" for p in phases for w in p.warnings]
    if warnings:
        print()
        print(format_list(warnings))
    if state.status in (RunStatus.FAILED, RunStatus.CANCELLED):
        print()
        print(f"Resume with: migrate {state.source_root} --resume {state.migration_root_path}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _load_state(migration_dir):
    store = ProgressStore(Path(migration_dir) / PROGRESS_FILE)
    state = store.load()
    if state is None:
        raise ProgressStoreError(f"No {PROGRESS_FILE} in {migration_dir}", path=store.path)
    return state


def _install_sigint(token):
    """First Ctrl-C requests cancellation between steps; a second one aborts."""
    def handler(signum, frame):
        if token.cancelled:
            raise KeyboardInterrupt
        logger.warning("Interrupt received: stopping after the current step "
                       "(press Ctrl-C again to abort immediately)")
        token.cancel("interrupted by user (SIGINT)")
    return signal.signal(signal.SIGINT, handler)


def cmd_migrate(args):
    settings = load_settings(args.config)

    existing = None
    if args.resume:
        existing = _load_state(args.resume)
        source = args.source or existing.source_root
        if Path(source).resolve() != Path(existing.source_root).resolve():
            raise ConfigurationError(
                f"{args.resume} belongs to {existing.source_root}, not {source}",
                config_key="source",
            )
        config = build_run_config(existing.source_root, settings,
                                  migration_root=existing.migration_root_path,
                                  timeout_seconds=args.timeout)
    else:
        config = build_run_config(args.source, settings, timeout_seconds=args.timeout)

    token = CancellationToken()
    pipeline = MigrationPipeline(config, cancel_token=token)
    previous = _install_sigint(token)
    try:
        state = pipeline.resume(existing) if existing else pipeline.run_all()
    finally:
        signal.signal(signal.SIGINT, previous)

    _print_summary(state, args.json)
    return exit_code_for(state)


def cmd_status(args):
    state = _load_state(args.status)
    _print_summary(state, args.json)
    return EXIT_OK


def cmd_rollback(args):
    target = Path(args.rollback).resolve()
    if not target.name.startswith(MIGRATION_DIR_PREFIX):
        raise ConfigurationError(
            f"Refusing to delete {target}: not a '{MIGRATION_DIR_PREFIX}*' directory",
            config_key="rollback",
        )
    if not (target / PROGRESS_FILE).is_file():
        raise ConfigurationError(
            f"Refusing to delete {target}: no {PROGRESS_FILE} inside",
            config_key="rollback",
        )
    shutil.rmtree(target)
    logger.info("Rolled back: removed %s", target)
    if args.json:
        print(json.dumps({"removed": str(target)}, indent=2))
    else:
        print(f"[INFO] Removed {target}")
    return EXIT_OK


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not (args.source or args.status or args.rollback or args.resume):
        parser.error("a source project path is required")

    configure_console(args.verbose)
    try:
        if args.status:
            return cmd_status(args)
        if args.rollback:
            return cmd_rollback(args)
        return cmd_migrate(args)
    except KeyboardInterrupt:
        print("[ERROR] Migration aborted", file=sys.stderr)
        return EXIT_CANCELLED
    except MigrationError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_FAILED
    except OSError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
