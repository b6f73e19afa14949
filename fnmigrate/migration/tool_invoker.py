#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""External Tool Invoker — synchronous wrapper around `func` and `mvn`.

One call spawns one subprocess and blocks until it exits or its deadline
passes. A non-zero exit is classified by policy:

    STRICT    non-zero -> FAILURE
    TOLERANT  non-zero -> WARNING (success-with-warning)

A timeout is always FAILURE. A tool missing from PATH raises
ToolNotFoundError whatever the policy; the caller's phase treats it as fatal.
Every invocation is logged (tool, args, exit code, duration) before return.
"""

import logging
import shlex
import shutil
import subprocess
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from fnmigrate.migration.models import InvocationOutcome, InvocationPolicy
from fnmigrate.resilience.errors import ToolNotFoundError, ToolTimeoutError

logger = logging.getLogger("fnmigrate.migration.tool_invoker")

# Output kept per stream in the invocation record.
MAX_CAPTURE_CHARS = 200_000


@dataclass
class InvocationResult:
    tool: str
    args: List[str]
    exit_code: Optional[int]
    stdout: str
    stderr: str
    outcome: InvocationOutcome
    duration_ms: int
    timed_out: bool = False
    timeout_seconds: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.outcome != InvocationOutcome.FAILURE

    @property
    def output(self) -> str:
        """stdout and stderr joined, for string-matching diagnostics."""
        return "\n".join(s for s in (self.stdout, self.stderr) if s)

    def summary(self) -> str:
        if self.timed_out:
            limit = self.timeout_seconds
            if limit is None:
                limit = self.duration_ms / 1000
            return str(ToolTimeoutError(self.tool, limit))
        return f"{self.tool} {' '.join(self.args[:2])} exited {self.exit_code}"


def check_tools(tools: Sequence[str]) -> List[str]:
    """Return the tools from the list that are not resolvable on PATH."""
    return [t for t in tools if shutil.which(t) is None]


def classify(exit_code, policy, timed_out=False) -> InvocationOutcome:
    if timed_out:
        return InvocationOutcome.FAILURE
    if exit_code == 0:
        return InvocationOutcome.SUCCESS
    if InvocationPolicy(policy) == InvocationPolicy.TOLERANT:
        return InvocationOutcome.WARNING
    return InvocationOutcome.FAILURE


class ToolInvoker:
    """Runs external commands with a default per-invocation timeout.

    Args:
        timeout_seconds: Deadline applied when invoke() gets none; None disables.
        on_invoke: Optional callback(InvocationResult) fired after each call.
    """

    def __init__(self, timeout_seconds: Optional[float] = None, on_invoke=None):
        self.timeout_seconds = timeout_seconds
        self.on_invoke = on_invoke

    def invoke(self, tool, args, working_dir, policy=InvocationPolicy.STRICT,
               timeout=None) -> InvocationResult:
        """Run `tool args...` in working_dir and classify the result.

        Raises:
            ToolNotFoundError: tool is not on PATH (never tolerated).
        """
        executable = shutil.which(tool)
        if executable is None:
            logger.error("Tool not found on PATH: %s", tool)
            raise ToolNotFoundError(tool)

        args = [str(a) for a in args]
        deadline = timeout if timeout is not None else self.timeout_seconds
        command_line = " ".join(shlex.quote(p) for p in [tool] + args)
        logger.info("$ %s  (cwd=%s)", command_line, working_dir)

        start = time.monotonic()
        timed_out = False
        try:
            proc = subprocess.run(
                [executable] + args,
                cwd=str(working_dir),
                capture_output=True,
                text=True,
                timeout=deadline,
                stdin=subprocess.DEVNULL,
            )
            exit_code, stdout, stderr = proc.returncode, proc.stdout or "", proc.stderr or ""
        except subprocess.TimeoutExpired as e:
            timed_out = True
            exit_code = None
            stdout = _decode(e.stdout)
            stderr = _decode(e.stderr)
        except FileNotFoundError as e:
            # which() succeeded but exec failed (race or broken shim)
            logger.error("Tool could not be executed: %s (%s)", tool, e)
            raise ToolNotFoundError(tool, f"Tool '{tool}' could not be executed: {e}") from e
        duration_ms = int((time.monotonic() - start) * 1000)

        outcome = classify(exit_code, policy, timed_out)
        result = InvocationResult(
            tool=tool,
            args=args,
            exit_code=exit_code,
            stdout=stdout[-MAX_CAPTURE_CHARS:],
            stderr=stderr[-MAX_CAPTURE_CHARS:],
            outcome=outcome,
            duration_ms=duration_ms,
            timed_out=timed_out,
            timeout_seconds=deadline,
        )
        self._log(result, command_line, deadline)
        if self.on_invoke:
            self.on_invoke(result)
        return result

    def _log(self, result, command_line, deadline):
        if result.timed_out:
            logger.error("%s -> TIMEOUT after %dms (limit %ss)",
                         command_line, result.duration_ms, deadline)
        elif result.outcome == InvocationOutcome.SUCCESS:
            logger.info("%s -> exit %s in %dms", command_line, result.exit_code,
                        result.duration_ms)
        elif result.outcome == InvocationOutcome.WARNING:
            logger.warning("%s -> exit %s in %dms (tolerated)", command_line,
                           result.exit_code, result.duration_ms)
        else:
            logger.error("%s -> exit %s in %dms", command_line, result.exit_code,
                         result.duration_ms)
        if result.outcome != InvocationOutcome.SUCCESS:
            tail = result.output.strip().splitlines()[-20:]
            for line in tail:
                logger.debug("    | %s", line)


def _decode(raw) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw
