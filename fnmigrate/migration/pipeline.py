#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""Migration Pipeline Controller — runs the phase plan for one migration run.

    preflight()   source root, tools on PATH, unit extraction; nothing written
    run_all()     preflight + fresh RunState + every phase in order
    resume()      preflight + continue a persisted RunState at its first
                  non-SUCCEEDED phase

The controller is the single writer of progress.json: every phase start and
end transition is persisted before the next step runs. A FAILED_FATAL phase
or a cancellation stops the loop; the report is refreshed from whatever state
exists when the run ends.
"""

import logging
from typing import Optional

from fnmigrate.migration.config import RunConfig, list_required_tools
from fnmigrate.migration.models import (
    Phase,
    PhaseStatus,
    RunState,
    RunStatus,
    utc_now_iso,
)
from fnmigrate.migration.phase_runner import CancellationToken, PhaseRunner
from fnmigrate.migration.phases import PHASE_PLAN, MigrationContext
from fnmigrate.migration.progress_store import ProgressStore
from fnmigrate.migration.report_generator import render, write_report
from fnmigrate.migration.run_log import attach_run_log, detach_run_log
from fnmigrate.migration.tool_invoker import ToolInvoker, check_tools
from fnmigrate.migration.unit_extractor import ExtractionResult, extract_units
from fnmigrate.resilience.correlation import clear_run_id, generate_run_id, set_run_id
from fnmigrate.resilience.errors import SourceRootError, ToolNotFoundError

logger = logging.getLogger("fnmigrate.migration.pipeline")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def exit_code_for(state: RunState) -> int:
    """0 for completed or degraded runs, 1 for fatal failures, 130 when cancelled."""
    if state.status == RunStatus.CANCELLED:
        return EXIT_CANCELLED
    if state.status == RunStatus.FAILED:
        return EXIT_FAILED
    return EXIT_OK


class MigrationPipeline:
    """Drives PHASE_PLAN against one RunConfig.

    Args:
        config: Paths and tool settings for this run.
        invoker: ToolInvoker to use; one honouring config.timeout_seconds by default.
        store: ProgressStore; defaults to config.progress_file.
        cancel_token: Shared abort flag, usually set by a SIGINT handler.
        plan: Ordered PhaseSpec sequence (tests substitute shorter plans).
    """

    def __init__(self, config: RunConfig, invoker: Optional[ToolInvoker] = None,
                 store: Optional[ProgressStore] = None,
                 cancel_token: Optional[CancellationToken] = None,
                 plan=PHASE_PLAN):
        self.config = config
        self.invoker = invoker or ToolInvoker(timeout_seconds=config.timeout_seconds)
        self.store = store or ProgressStore(config.progress_file)
        self.cancel_token = cancel_token or CancellationToken()
        self.plan = tuple(plan)
        self._state = None

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------

    def preflight(self, extract=True) -> Optional[ExtractionResult]:
        """Check preconditions without touching the filesystem.

        Raises:
            SourceRootError: source root missing or not a directory.
            ToolNotFoundError: a required tool is not on PATH.
            NoMigratableUnitsError: the source tree yields zero units.
        """
        source_root = self.config.source_root
        if not source_root.is_dir():
            raise SourceRootError(source_root)

        missing = check_tools(list_required_tools(self.config))
        if missing:
            raise ToolNotFoundError(
                missing[0],
                "Required tools not found on PATH: " + ", ".join(missing),
            )
        logger.debug("Preflight tools ok: %s", ", ".join(list_required_tools(self.config)))

        if not extract:
            return None
        return extract_units(source_root, self.config.exclude_dirs)

    def new_state(self) -> RunState:
        return RunState(
            run_id=generate_run_id(),
            started_at=utc_now_iso(),
            source_root=str(self.config.source_root),
            migration_root_path=str(self.config.migration_root),
            phases={
                index: Phase(index=index, name=spec.name, criticality=spec.criticality)
                for index, spec in enumerate(self.plan)
            },
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run_all(self) -> RunState:
        """Run every phase of a fresh migration."""
        extraction = self.preflight()
        return self._execute(self.new_state(), extraction)

    def resume(self, state: RunState) -> RunState:
        """Continue a persisted run from its first non-SUCCEEDED phase.

        Phases before that one are skipped; every phase after it runs again,
        whatever its stored status.

        Extraction is repeated only when Preparation itself never succeeded;
        otherwise units and dependencies come from the stored state.
        """
        preparation = state.phases.get(0)
        needs_extraction = preparation is None or preparation.status != PhaseStatus.SUCCEEDED
        extraction = self.preflight(extract=needs_extraction)

        for index, spec in enumerate(self.plan):
            if index not in state.phases:
                state.phases[index] = Phase(index=index, name=spec.name,
                                            criticality=spec.criticality)
        state.status = RunStatus.RUNNING
        state.finished_at = None
        return self._execute(state, extraction)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _persist(self, _phase=None):
        self.store.save(self._state)

    def _count_invocation(self, _result):
        self._state.metrics.tool_invocations += 1

    def _execute(self, state: RunState, extraction) -> RunState:
        self._state = state
        self.config.migration_root.mkdir(parents=True, exist_ok=True)
        log_handler = attach_run_log(self.config.log_file)
        set_run_id(state.run_id)

        previous_hook = self.invoker.on_invoke
        self.invoker.on_invoke = self._count_invocation
        try:
            logger.info("=" * 60)
            logger.info("C# -> Java Azure Functions migration %s", state.run_id)
            logger.info("Source:    %s", self.config.source_root)
            logger.info("Migration: %s", self.config.migration_root)
            logger.info("=" * 60)
            self._persist()

            ctx = MigrationContext(self.config, state, self.invoker, extraction)
            runner = PhaseRunner(self.cancel_token, on_transition=self._persist)
            self._run_phases(ctx, runner)
            self._finalize(state)
        finally:
            self.invoker.on_invoke = previous_hook
            logger.info("Log file: %s", self.config.log_file)
            detach_run_log(log_handler)
            clear_run_id()
        return state

    def _run_phases(self, ctx, runner):
        state = ctx.state
        first = state.first_incomplete_phase()
        start = first.index if first is not None else len(self.plan)
        for index, spec in enumerate(self.plan):
            phase = state.phases[index]
            # everything from the first incomplete phase onward runs again
            if index < start:
                logger.info("PHASE %d: %s already succeeded, skipping", index, phase.name)
                continue
            if self.cancel_token.cancelled:
                state.status = RunStatus.CANCELLED
                logger.warning("Migration cancelled before phase %s", phase.name)
                return

            result = runner.run(phase, spec.build_steps(ctx))
            if result.cancelled:
                state.status = RunStatus.CANCELLED
                return
            if result.status == PhaseStatus.FAILED_FATAL:
                state.status = RunStatus.FAILED
                logger.error("Phase %s failed fatally; stopping the migration", phase.name)
                return

    def _finalize(self, state):
        if state.status == RunStatus.RUNNING:
            statuses = [p.status for p in state.ordered_phases()]
            if PhaseStatus.FAILED_FATAL in statuses:
                state.status = RunStatus.FAILED
            elif PhaseStatus.FAILED_DEGRADED in statuses:
                state.status = RunStatus.DEGRADED
            else:
                state.status = RunStatus.COMPLETED
        state.finished_at = utc_now_iso()
        self._persist()

        try:
            path = write_report(self.config.report_file, render(state, state.units))
            logger.info("Report: %s", path)
        except OSError as e:
            logger.error("Could not write migration report: %s", e)

        completed = sum(1 for p in state.ordered_phases() if p.status == PhaseStatus.SUCCEEDED)
        logger.info("Migration %s: %d/%d phases succeeded",
                    state.status.value.upper(), completed, len(state.phases))
