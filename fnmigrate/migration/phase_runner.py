#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""Phase Runner — executes one phase's steps in order.

Step rules:
  - fatal=True                  stop the phase, FAILED_FATAL
  - ok=False, fatal=False       record a warning, continue
  - phase criticality FATAL     any non-ok step is promoted to fatal
  - DEGRADED phase with warnings ends FAILED_DEGRADED

A step that raises ToolNotFoundError is a fatal step; any other exception is
logged and counted as a non-fatal step failure, so no exception escapes a
phase. The cancellation token is checked before each step only; an in-flight
external call is never interrupted.

The runner holds no durable state: start and end transitions are handed to
on_transition(phase) for the controller to persist.
"""

import logging
import threading
import time
from typing import Callable, Optional, Sequence

from fnmigrate.migration.models import (
    Criticality,
    Phase,
    PhaseResult,
    PhaseStatus,
    Step,
    StepOutcome,
    utc_now_iso,
)
from fnmigrate.resilience.errors import MigrationCancelled, ToolNotFoundError

logger = logging.getLogger("fnmigrate.migration.phase_runner")


class CancellationToken:
    """Thread-safe abort flag, set from a signal handler, read between steps."""

    def __init__(self):
        self._event = threading.Event()
        self.reason = ""

    def cancel(self, reason: str = "cancelled by user"):
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class PhaseRunner:
    def __init__(self, cancel_token: Optional[CancellationToken] = None,
                 on_transition: Optional[Callable[[Phase], None]] = None):
        self.cancel_token = cancel_token or CancellationToken()
        self.on_transition = on_transition

    def _notify(self, phase):
        if self.on_transition:
            self.on_transition(phase)

    def _execute_step(self, step: Step) -> StepOutcome:
        try:
            outcome = step.action()
        except ToolNotFoundError as e:
            return StepOutcome.failure(str(e))
        except Exception as e:
            logger.exception("Step '%s' raised %s", step.name, type(e).__name__)
            return StepOutcome.warning(f"{type(e).__name__}: {e}")
        if outcome is None:
            return StepOutcome.success()
        return outcome

    def run(self, phase: Phase, steps: Sequence[Step]) -> PhaseResult:
        """Run steps for phase, update the phase record, return the result."""
        phase.status = PhaseStatus.RUNNING
        phase.started_at = utc_now_iso()
        phase.finished_at = None
        phase.error_count = 0
        phase.warnings = []
        self._notify(phase)
        logger.info("PHASE %d: %s (%s) started", phase.index, phase.name.upper(),
                    phase.criticality.value)

        start = time.monotonic()
        warnings = []
        error_count = 0
        fatal = False
        cancelled = False

        for position, step in enumerate(steps, start=1):
            if self.cancel_token.cancelled:
                cancelled = True
                fatal = True
                warnings.append(f"{step.name}: {MigrationCancelled(self.cancel_token.reason)}")
                logger.warning("Phase %s cancelled before step %d/%d (%s)",
                               phase.name, position, len(steps), step.name)
                break

            logger.debug("  step %d/%d: %s", position, len(steps), step.name)
            outcome = self._execute_step(step)
            if outcome.ok:
                if outcome.message:
                    logger.info("  [ok] %s: %s", step.name, outcome.message)
                continue

            error_count += 1
            message = f"{step.name}: {outcome.message}" if outcome.message else step.name
            warnings.append(message)
            if outcome.fatal or phase.criticality == Criticality.FATAL:
                fatal = True
                logger.error("  [fatal] %s", message)
                break
            logger.warning("  [warn] %s", message)

        if fatal:
            status = PhaseStatus.FAILED_FATAL
        elif error_count:
            status = PhaseStatus.FAILED_DEGRADED
        else:
            status = PhaseStatus.SUCCEEDED

        phase.status = status
        phase.duration_ms = int((time.monotonic() - start) * 1000)
        phase.finished_at = utc_now_iso()
        phase.error_count = error_count
        phase.warnings = list(warnings)
        self._notify(phase)

        log = logger.info if status == PhaseStatus.SUCCEEDED else logger.warning
        log("PHASE %d: %s -> %s (%dms, %d errors)", phase.index, phase.name.upper(),
            status.value, phase.duration_ms, error_count)
        return PhaseResult(status=status, error_count=error_count,
                           warnings=warnings, cancelled=cancelled)
