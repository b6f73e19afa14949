#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""The fixed, ordered phase list of a C# -> Java Functions migration.

    0 preparation                FATAL     dirs, backup, manifest, unit inventory
    1 base_scaffold              FATAL     func init <Project> --worker-runtime java
    2 dependency_mapping         DEGRADED  NuGet -> Maven, pom.xml, mvn validate
    3 unit_scaffold              DEGRADED  func new per function (sorted by name)
    4 code_translation_handoff   DEGRADED  translation-handoff.json
    5 test_translation_handoff   DEGRADED  test discovery, test-handoff.json
    6 build_validate             DEGRADED  mvn compile / test / package / checkstyle
    7 report_generation          DEGRADED  MIGRATION_REPORT.md

Each builder turns the shared MigrationContext into a list of Steps; the
steps mutate ctx.state (units, dependencies, metrics) and report outcomes.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from fnmigrate.migration import build_validator, project_assembler
from fnmigrate.migration.config import RunConfig
from fnmigrate.migration.dependency_mapper import get_unmapped, load_mappings, map_dependencies
from fnmigrate.migration.models import (
    Criticality,
    InvocationOutcome,
    InvocationPolicy,
    RunState,
    Step,
    StepOutcome,
)
from fnmigrate.migration.report_generator import render, write_report
from fnmigrate.migration.tool_invoker import ToolInvoker
from fnmigrate.migration.unit_extractor import (
    ExtractionResult,
    count_trigger_kinds,
    find_test_files,
)

logger = logging.getLogger("fnmigrate.migration.phases")

SCAFFOLDED = "scaffolded"
FAILED = "failed"


@dataclass
class MigrationContext:
    """What the steps of one run share. Scratch is not persisted."""

    config: RunConfig
    state: RunState
    invoker: ToolInvoker
    extraction: Optional[ExtractionResult] = None
    scratch: dict = field(default_factory=dict)

    @property
    def project_dir(self) -> Path:
        if self.state.target_project_path:
            return Path(self.state.target_project_path)
        return self.config.target_dir / (self.state.project_name or "functions")


@dataclass(frozen=True)
class PhaseSpec:
    name: str
    criticality: Criticality
    build_steps: Callable[[MigrationContext], List[Step]]


def _invocation_outcome(result, what):
    """Map an InvocationResult to a StepOutcome (never fatal by itself)."""
    if result.outcome == InvocationOutcome.SUCCESS:
        return StepOutcome.success(f"{what} ok")
    if result.outcome == InvocationOutcome.WARNING:
        return StepOutcome.success(f"{what} returned {result.exit_code} (tolerated)")
    return StepOutcome.warning(f"{what} failed: {result.summary()}")


def _require_project_dir(ctx):
    if not ctx.project_dir.is_dir():
        return StepOutcome.warning(f"project directory missing: {ctx.project_dir}")
    return None


# ---------------------------------------------------------------------------
# Phase 0: Preparation
# ---------------------------------------------------------------------------

def preparation_steps(ctx: MigrationContext) -> List[Step]:
    config, state = ctx.config, ctx.state

    def create_directories():
        config.target_dir.mkdir(parents=True, exist_ok=True)
        config.backup_dir.mkdir(parents=True, exist_ok=True)
        return StepOutcome.success(f"created {config.target_dir.name}/ and {config.backup_dir.name}/")

    def backup_source():
        count = project_assembler.backup_source(
            config.source_root, config.backup_dir, config.backup_patterns, config.exclude_dirs,
        )
        state.metrics.files_touched += count
        return StepOutcome.success(f"{count} files backed up")

    def locate_manifest():
        if ctx.extraction is None:
            return StepOutcome.failure("no extraction result available")
        if not ctx.extraction.manifest_path:
            return StepOutcome.failure(f"No .csproj file found in {config.source_root}")
        state.project_name = ctx.extraction.project_name
        return StepOutcome.success(f"project {state.project_name}")

    def record_units():
        extraction = ctx.extraction
        state.units = list(extraction.units)
        state.dependencies = list(extraction.dependencies)
        state.unit_results = {}
        state.metrics.trigger_counts = count_trigger_kinds(extraction.units)
        for kind, count in state.metrics.trigger_counts.items():
            logger.info("  %s triggers: %d", kind, count)
        message = (f"{len(state.units)} functions, {len(state.dependencies)} NuGet packages, "
                   f"{len(extraction.anomalies)} anomalies, "
                   f"{len(extraction.skipped_files)} files skipped")
        return StepOutcome.success(message)

    def write_inventory():
        project_assembler.write_json(config.inventory_file, ctx.extraction.to_dict())
        return StepOutcome.success(f"inventory written to {config.inventory_file.name}")

    return [
        Step("create_directories", create_directories),
        Step("backup_source", backup_source),
        Step("locate_manifest", locate_manifest),
        Step("record_units", record_units),
        Step("write_inventory", write_inventory),
    ]


# ---------------------------------------------------------------------------
# Phase 1: Base scaffold
# ---------------------------------------------------------------------------

def base_scaffold_steps(ctx: MigrationContext) -> List[Step]:
    config, state = ctx.config, ctx.state
    project_dir = config.target_dir / (state.project_name or "functions")

    def func_init():
        if (project_dir / "host.json").exists():
            return StepOutcome.success(f"{project_dir.name} already initialized")
        config.target_dir.mkdir(parents=True, exist_ok=True)
        args = ["init", state.project_name, "--worker-runtime", config.worker_runtime]
        args.extend(config.init_extra_args)
        result = ctx.invoker.invoke(config.scaffold_tool, args, config.target_dir,
                                    InvocationPolicy.STRICT)
        return _invocation_outcome(result, f"{config.scaffold_tool} init")

    def verify_project():
        if not project_dir.is_dir():
            return StepOutcome.failure(f"{config.scaffold_tool} init did not create {project_dir}")
        state.target_project_path = str(project_dir)
        return StepOutcome.success(f"Java Functions project at {project_dir}")

    return [
        Step("func_init", func_init),
        Step("verify_project", verify_project),
    ]


# ---------------------------------------------------------------------------
# Phase 2: Dependency mapping
# ---------------------------------------------------------------------------

def dependency_mapping_steps(ctx: MigrationContext) -> List[Step]:
    config, state = ctx.config, ctx.state

    def map_packages():
        mappings = load_mappings(config.mappings_path)
        state.dependencies = map_dependencies(state.dependencies, mappings)
        unmapped = get_unmapped(state.dependencies)
        return StepOutcome.success(
            f"{len(state.dependencies) - len(unmapped)}/{len(state.dependencies)} mapped, "
            f"{len(unmapped)} need manual resolution"
        )

    def write_dependencies():
        project_assembler.write_json(
            config.dependencies_file, [d.to_dict() for d in state.dependencies],
        )
        return StepOutcome.success(f"written to {config.dependencies_file.name}")

    def update_pom():
        missing = _require_project_dir(ctx)
        if missing:
            return missing
        try:
            info = project_assembler.write_build_manifest(
                ctx.project_dir / "pom.xml",
                state.dependencies,
                project_name=state.project_name or "functions",
                source_project=state.project_name or "",
            )
        except ValueError as e:
            return StepOutcome.warning(str(e))
        state.metrics.files_touched += 1
        return StepOutcome.success(f"{info['mapped_count']} dependencies in pom.xml")

    def validate_pom():
        missing = _require_project_dir(ctx)
        if missing:
            return missing
        result = ctx.invoker.invoke(config.build_tool, list(config.validate_args),
                                    ctx.project_dir, config.validate_policy)
        return _invocation_outcome(result, f"{config.build_tool} validate")

    return [
        Step("map_dependencies", map_packages),
        Step("write_dependencies", write_dependencies),
        Step("update_pom", update_pom),
        Step("validate_pom", validate_pom),
    ]


# ---------------------------------------------------------------------------
# Phase 3: Per-unit scaffold
# ---------------------------------------------------------------------------

def unit_scaffold_steps(ctx: MigrationContext) -> List[Step]:
    config, state = ctx.config, ctx.state
    units = sorted(state.units, key=lambda u: u.name)
    total = len(units)

    def scaffold(position, unit):
        def action():
            if state.unit_results.get(unit.name) == SCAFFOLDED:
                return StepOutcome.success(f"{unit.name} already scaffolded")
            missing = _require_project_dir(ctx)
            if missing:
                state.unit_results[unit.name] = FAILED
                return missing
            logger.info("  [%d/%d] Creating function: %s (template: %s)",
                        position, total, unit.name, unit.template)
            result = ctx.invoker.invoke(
                config.scaffold_tool,
                ["new", "--name", unit.name, "--template", unit.template],
                ctx.project_dir,
                config.unit_policy,
            )
            if result.ok:
                state.unit_results[unit.name] = SCAFFOLDED
                state.metrics.files_touched += 1
            else:
                state.unit_results[unit.name] = FAILED
            return _invocation_outcome(result, f"func new {unit.name}")
        return action

    return [Step(f"scaffold:{u.name}", scaffold(i, u)) for i, u in enumerate(units, start=1)]


# ---------------------------------------------------------------------------
# Phase 4/5: Translation handoffs
# ---------------------------------------------------------------------------

def code_translation_handoff_steps(ctx: MigrationContext) -> List[Step]:
    config, state = ctx.config, ctx.state

    def write_handoff():
        handoff = project_assembler.build_translation_handoff(
            sorted(state.units, key=lambda u: u.name), state.unit_results, config.source_root,
        )
        project_assembler.write_json(config.translation_handoff_file, handoff)
        logger.warning("Code migration requires manual translation of business logic")
        return StepOutcome.success(f"{len(handoff['units'])} functions await translation")

    return [Step("write_translation_handoff", write_handoff)]


def test_translation_handoff_steps(ctx: MigrationContext) -> List[Step]:
    config, state = ctx.config, ctx.state

    def discover_tests():
        test_files = find_test_files(config.source_root, config.exclude_dirs)
        ctx.scratch["test_files"] = test_files
        state.metrics.test_files_found = len(test_files)
        if not test_files:
            logger.warning("No test files found in C# project")
        return StepOutcome.success(f"{len(test_files)} test files found")

    def write_handoff():
        handoff = project_assembler.build_test_handoff(
            ctx.scratch.get("test_files", []), config.source_root,
        )
        project_assembler.write_json(config.test_handoff_file, handoff)
        return StepOutcome.success(f"written to {config.test_handoff_file.name}")

    return [
        Step("discover_tests", discover_tests),
        Step("write_test_handoff", write_handoff),
    ]


# ---------------------------------------------------------------------------
# Phase 6: Build & validate
# ---------------------------------------------------------------------------

def build_validate_steps(ctx: MigrationContext) -> List[Step]:
    config, state = ctx.config, ctx.state
    tool = config.build_tool

    def compile_project():
        missing = _require_project_dir(ctx)
        if missing:
            ctx.scratch["compile_failed"] = True
            state.metrics.compilation_error_count = max(state.metrics.compilation_error_count, 1)
            return missing
        result = ctx.invoker.invoke(tool, list(config.compile_args), ctx.project_dir,
                                    InvocationPolicy.STRICT)
        errors = build_validator.count_compilation_errors(result.output, result.exit_code)
        state.metrics.compilation_error_count = errors
        if not result.ok:
            ctx.scratch["compile_failed"] = True
            return StepOutcome.warning(f"compilation failed with {errors} error(s): {result.summary()}")
        return StepOutcome.success("project compiled")

    def run_tests():
        if ctx.scratch.get("compile_failed"):
            return StepOutcome.warning("skipped: compilation failed")
        result = ctx.invoker.invoke(tool, list(config.test_args), ctx.project_dir,
                                    InvocationPolicy.STRICT)
        passed, failed = build_validator.parse_test_summary(result.output)
        state.metrics.tests_passed = passed
        state.metrics.tests_failed = failed
        if not result.ok:
            return StepOutcome.warning(f"{failed} test(s) failed: {result.summary()}")
        return StepOutcome.success(f"{passed} tests passed")

    def package_project():
        if ctx.scratch.get("compile_failed"):
            return StepOutcome.warning("skipped: compilation failed")
        result = ctx.invoker.invoke(tool, list(config.package_args), ctx.project_dir,
                                    InvocationPolicy.STRICT)
        return _invocation_outcome(result, f"{tool} package")

    def fix_style():
        result = ctx.invoker.invoke(tool, list(config.checkstyle_fix_args), ctx.project_dir,
                                    InvocationPolicy.TOLERANT)
        return _invocation_outcome(result, f"{tool} spotless")

    def run_checkstyle():
        missing = _require_project_dir(ctx)
        if missing:
            return missing
        result = ctx.invoker.invoke(tool, list(config.checkstyle_args), ctx.project_dir,
                                    InvocationPolicy.TOLERANT)
        violations = build_validator.count_checkstyle_violations(
            ctx.project_dir / config.checkstyle_report, result.output,
        )
        state.metrics.checkstyle_violations = violations
        if not result.ok:
            return StepOutcome.warning(f"checkstyle did not complete: {result.summary()}")
        return StepOutcome.success(f"{violations} checkstyle violation(s)")

    def count_function_json():
        count = build_validator.count_function_json(ctx.project_dir)
        state.metrics.function_json_count = count
        return StepOutcome.success(f"{count} function.json files")

    steps = [
        Step("compile", compile_project),
        Step("test", run_tests),
        Step("package", package_project),
    ]
    if config.checkstyle_enabled:
        if config.checkstyle_fix:
            steps.append(Step("style_fix", fix_style))
        steps.append(Step("checkstyle", run_checkstyle))
    steps.append(Step("count_function_json", count_function_json))
    return steps


# ---------------------------------------------------------------------------
# Phase 7: Report
# ---------------------------------------------------------------------------

def report_generation_steps(ctx: MigrationContext) -> List[Step]:
    def render_report():
        path = write_report(ctx.config.report_file, render(ctx.state, ctx.state.units))
        return StepOutcome.success(f"report at {path}")

    return [Step("render_report", render_report)]


PHASE_PLAN = (
    PhaseSpec("preparation", Criticality.FATAL, preparation_steps),
    PhaseSpec("base_scaffold", Criticality.FATAL, base_scaffold_steps),
    PhaseSpec("dependency_mapping", Criticality.DEGRADED, dependency_mapping_steps),
    PhaseSpec("unit_scaffold", Criticality.DEGRADED, unit_scaffold_steps),
    PhaseSpec("code_translation_handoff", Criticality.DEGRADED, code_translation_handoff_steps),
    PhaseSpec("test_translation_handoff", Criticality.DEGRADED, test_translation_handoff_steps),
    PhaseSpec("build_validate", Criticality.DEGRADED, build_validate_steps),
    PhaseSpec("report_generation", Criticality.DEGRADED, report_generation_steps),
)
