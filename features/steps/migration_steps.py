#!/usr/bin/env python3
# CUI // SP-CTI
"""Step definitions for fnmigrate migration pipeline BDD scenarios."""

import hashlib
import os
from pathlib import Path
from unittest.mock import patch

from behave import given, then, when

from fnmigrate.migration.config import DEFAULT_SETTINGS, build_run_config
from fnmigrate.migration.models import InvocationPolicy
from fnmigrate.migration.pipeline import MigrationPipeline, exit_code_for
from fnmigrate.migration.progress_store import ProgressStore
from fnmigrate.migration.tool_invoker import InvocationResult, ToolInvoker, classify
from fnmigrate.resilience.errors import PreconditionError

CSPROJ = """<Project Sdk="Microsoft.NET.Sdk">
  <ItemGroup>
    <PackageReference Include="Microsoft.NET.Sdk.Functions" Version="4.1.1" />
  </ItemGroup>
</Project>
"""

FUNCTION_TEMPLATE = """namespace Contoso
{{
    public static class {name}
    {{
        [FunctionName("{name}")]
        public static void Run([{trigger}Trigger("x")] object input) {{ }}
    }}
}}
"""


class ScriptedInvoker(ToolInvoker):
    """Answers func/mvn calls from a table of "<tool> <arg>" -> exit code."""

    def __init__(self, exit_codes):
        super().__init__(timeout_seconds=None)
        self.exit_codes = exit_codes

    def _exit_code(self, tool, args):
        keys = []
        if tool == "func" and "--name" in args:
            keys.append(f"func new {args[args.index('--name') + 1]}")
        if args:
            keys.append(f"{tool} {args[0]}")
        for key in keys:
            if key in self.exit_codes:
                return self.exit_codes[key]
        return 0

    def invoke(self, tool, args, working_dir, policy=InvocationPolicy.STRICT, timeout=None):
        args = [str(a) for a in args]
        exit_code = self._exit_code(tool, args)
        if exit_code == 0 and tool == "func" and args[0] == "init":
            project = Path(working_dir) / args[1]
            project.mkdir(parents=True, exist_ok=True)
            (project / "host.json").write_text("{}", encoding="utf-8")
            (project / "pom.xml").write_text(
                "<project>\n    <dependencies>\n    </dependencies>\n</project>\n",
                encoding="utf-8")
        result = InvocationResult(
            tool=tool, args=args, exit_code=exit_code, stdout="", stderr="",
            outcome=classify(exit_code, policy), duration_ms=1,
        )
        if self.on_invoke:
            self.on_invoke(result)
        return result


def _tree_digest(root):
    digest = hashlib.sha256()
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("migration-"))
        for name in sorted(filenames):
            path = os.path.join(dirpath, name)
            digest.update(path.encode())
            with open(path, "rb") as f:
                digest.update(f.read())
    return digest.hexdigest()


def _run(context, resume_state=None):
    config = build_run_config(context.source_root, DEFAULT_SETTINGS,
                              timestamp="20260101_120000", timeout_seconds=0)
    pipeline = MigrationPipeline(config, invoker=ScriptedInvoker(context.exit_codes))
    with patch("fnmigrate.migration.pipeline.check_tools",
               lambda tools: [t for t in tools if t in context.missing_tools]):
        try:
            if resume_state is not None:
                context.state = pipeline.resume(resume_state)
            else:
                context.state = pipeline.run_all()
        except PreconditionError as e:
            context.error = e
    context.run_config = config


# ---------------------------------------------------------------------------
# Given
# ---------------------------------------------------------------------------

@given('a C# Functions project with functions "{first}" and "{second}"')
def step_csharp_project(context, first, second):
    root = Path(context.workdir) / "App"
    root.mkdir()
    (root / "App.csproj").write_text(CSPROJ, encoding="utf-8")
    (root / f"{first}.cs").write_text(
        FUNCTION_TEMPLATE.format(name=first, trigger="Http"), encoding="utf-8")
    (root / f"{second}.cs").write_text(
        FUNCTION_TEMPLATE.format(name=second, trigger="Timer"), encoding="utf-8")
    context.source_root = root
    context.source_digest = _tree_digest(root)
    context.exit_codes = {}
    context.missing_tools = set()


@given('the "{tool}" tool is not installed')
def step_tool_missing(context, tool):
    context.missing_tools.add(tool)


@given('the tool call "{call}" exits with code {code:d}')
def step_tool_exit_code(context, call, code):
    context.exit_codes[call] = code


# ---------------------------------------------------------------------------
# When
# ---------------------------------------------------------------------------

@when('I run the migration')
def step_run_migration(context):
    _run(context)


@when('the tool call "{call}" is fixed and I resume the migration')
def step_fix_and_resume(context, call):
    context.exit_codes.pop(call, None)
    context.previous_state = context.state
    stored = ProgressStore(context.run_config.progress_file).load()
    _run(context, resume_state=stored)


# ---------------------------------------------------------------------------
# Then
# ---------------------------------------------------------------------------

@then('the run status is "{status}"')
def step_run_status(context, status):
    assert context.error is None, f"Run refused: {context.error}"
    assert context.state.status.value == status, context.state.status


@then('the exit code is {code:d}')
def step_exit_code(context, code):
    assert exit_code_for(context.state) == code


@then('all {count:d} phases are "{status}"')
def step_all_phases(context, count, status):
    phases = context.state.ordered_phases()
    assert len(phases) == count
    assert all(p.status.value == status for p in phases), [p.status for p in phases]


@then('phase "{name}" is "{status}"')
def step_phase_status(context, name, status):
    phase = next(p for p in context.state.ordered_phases() if p.name == name)
    assert phase.status.value == status, phase.status


@then('unit "{name}" is "{result}"')
def step_unit_result(context, name, result):
    assert context.state.unit_results.get(name) == result, context.state.unit_results


@then('the migration directory contains "{filename}"')
def step_migration_file(context, filename):
    assert (Path(context.state.migration_root_path) / filename).is_file()


@then('the source tree is unchanged')
def step_source_unchanged(context):
    assert _tree_digest(context.source_root) == context.source_digest


@then('the migration is refused with "{text}"')
def step_refused(context, text):
    assert context.state is None
    assert text in str(context.error)


@then('no migration directory was created')
def step_no_migration_dir(context):
    assert not any(p.name.startswith("migration-") for p in context.source_root.iterdir())


@then('phase "{name}" was not run again')
def step_phase_not_rerun(context, name):
    before = next(p for p in context.previous_state.ordered_phases() if p.name == name)
    after = next(p for p in context.state.ordered_phases() if p.name == name)
    assert after.started_at == before.started_at
