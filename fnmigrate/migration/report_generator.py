#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""Migration Report Generator — MIGRATION_REPORT.md from a RunState.

render() is pure and cannot fail on incomplete state: it runs at the end of a
possibly degraded pipeline, so any missing value renders as "unknown".

Usage:
    python -m fnmigrate.migration.report_generator --progress migration-X/progress.json
"""

import argparse
import json
import sys
from pathlib import Path

from fnmigrate.migration.models import FUNC_TEMPLATES, PhaseStatus, RunState

UNKNOWN = "unknown"

# Always listed after a run, in order.
POST_MIGRATION_STEPS = [
    "Review and complete code migration in `src/main/java/com/function/`",
    "Migrate unit tests to `src/test/java/` (xUnit -> JUnit 5)",
    "Run `mvn clean compile` in the Java project",
    "Run `mvn test`",
    "Deploy: `func azure functionapp publish <app-name>`",
]

# Extra manual step per phase that did not succeed.
PHASE_REMEDIATION = {
    "preparation": "Fix the source project (missing .csproj or unreadable files) and re-run",
    "base_scaffold": "Run `func init <Project> --worker-runtime java` manually and resume",
    "dependency_mapping": "Resolve unmapped NuGet packages and check `mvn validate` output",
    "unit_scaffold": "Create the failed functions with `func new --name <n> --template <t>`",
    "code_translation_handoff": "Translate function bodies listed in translation-handoff.json",
    "test_translation_handoff": "Port the test files listed in test-handoff.json",
    "build_validate": "Fix compilation/test failures reported in the migration log",
    "report_generation": "Regenerate the report with `python -m fnmigrate.migration.report_generator`",
}


def _val(value):
    if value is None or value == "":
        return UNKNOWN
    return value


def _format_duration(ms):
    if ms is None:
        return UNKNOWN
    try:
        ms = int(ms)
    except (TypeError, ValueError):
        return UNKNOWN
    if ms < 1000:
        return f"{ms}ms"
    return f"{ms / 1000:.1f}s"


def _template(unit):
    try:
        return FUNC_TEMPLATES[unit.kind]
    except (KeyError, AttributeError):
        return UNKNOWN


def _next_steps(state):
    steps = []
    for phase in state.ordered_phases():
        if phase.status in (PhaseStatus.FAILED_DEGRADED, PhaseStatus.FAILED_FATAL):
            hint = PHASE_REMEDIATION.get(phase.name, f"Investigate phase {phase.name}")
            steps.append(f"**{phase.name}** ({phase.status.value}): {hint}")
        elif phase.status in (PhaseStatus.PENDING, PhaseStatus.RUNNING):
            steps.append(f"**{phase.name}** did not run: resume with "
                         f"`migrate <source> --resume {state.migration_root_path}`")
    failed_units = sorted(n for n, r in (state.unit_results or {}).items() if r != "scaffolded")
    if failed_units:
        steps.append("Scaffold manually: " + ", ".join(f"`{n}`" for n in failed_units))
    unmapped = [d.source_package_name for d in state.dependencies if not d.is_mapped]
    if unmapped:
        steps.append("Find Maven equivalents for: " + ", ".join(f"`{n}`" for n in unmapped))
    violations = getattr(state.metrics, "checkstyle_violations", 0) or 0
    if violations:
        steps.append(f"Fix {violations} checkstyle violation(s) "
                     "(target/checkstyle-result.xml; `mvn spotless:apply` fixes formatting)")
    return steps + POST_MIGRATION_STEPS


def render(state, units=None):
    """Render the Markdown report for state. Never raises on missing fields."""
    units = list(units if units is not None else (state.units or []))
    metrics = state.metrics
    lines = [
        "# Migration Report: C# -> Java Azure Functions",
        "",
        "## Project Information",
        "",
        f"- **Run ID:** {_val(state.run_id)}",
        f"- **Started:** {_val(state.started_at)}",
        f"- **Finished:** {_val(state.finished_at)}",
        f"- **Status:** {_val(getattr(state.status, 'value', state.status))}",
        f"- **Source Project:** {_val(state.source_root)}",
        f"- **Project Name:** {_val(state.project_name)}",
        f"- **Target Project:** {_val(state.target_project_path)}",
        f"- **Migration Directory:** {_val(state.migration_root_path)}",
        "- **Java Version:** 17+",
        "- **Maven Version:** 3.9+",
        "",
        "## Phases",
        "",
        "| # | Phase | Criticality | Status | Duration | Errors |",
        "|---|-------|-------------|--------|----------|--------|",
    ]
    for phase in state.ordered_phases():
        lines.append(
            f"| {phase.index} | {phase.name} | {phase.criticality.value} | "
            f"{phase.status.value} | {_format_duration(phase.duration_ms)} | {phase.error_count} |"
        )
    warnings = [(p.name, w) for p in state.ordered_phases() for w in p.warnings]
    if warnings:
        lines += ["", "### Warnings", ""]
        lines += [f"- `{name}`: {w}" for name, w in warnings]

    lines += [
        "",
        f"## Functions ({len(units)})",
        "",
        "| Function | Trigger | Template | Source | Scaffold |",
        "|----------|---------|----------|--------|----------|",
    ]
    for unit in units:
        result = (state.unit_results or {}).get(unit.name, "pending")
        kind = getattr(unit.kind, "value", unit.kind)
        lines.append(f"| {unit.name} | {_val(kind)} | {_template(unit)} | "
                     f"{_val(unit.source_file)} | {result} |")

    mapped = [d for d in state.dependencies if d.is_mapped]
    unmapped = [d for d in state.dependencies if not d.is_mapped]
    lines += ["", f"## Dependencies ({len(state.dependencies)})", ""]
    if mapped:
        lines += ["| NuGet | Version | Maven | Version |",
                  "|-------|---------|-------|---------|"]
        for d in mapped:
            lines.append(f"| {d.source_package_name} | {_val(d.source_version)} | "
                         f"{d.mapped_package_name} | {_val(d.mapped_version)} |")
    else:
        lines.append("No mapped dependencies.")
    lines += ["", "### Needs Manual Resolution", ""]
    if unmapped:
        lines += [f"- {d.source_package_name} {d.source_version or ''}".rstrip() for d in unmapped]
    else:
        lines.append("None.")

    trigger_counts = getattr(metrics, "trigger_counts", None) or {}
    lines += [
        "",
        "## Metrics",
        "",
        f"- **Functions discovered:** {len(units)}",
        f"- **Functions scaffolded:** "
        f"{sum(1 for r in (state.unit_results or {}).values() if r == 'scaffolded')}",
        f"- **Files touched:** {_val(getattr(metrics, 'files_touched', None))}",
        f"- **Compilation errors:** {_val(getattr(metrics, 'compilation_error_count', None))}",
        f"- **Tests passed:** {_val(getattr(metrics, 'tests_passed', None))}",
        f"- **Tests failed:** {_val(getattr(metrics, 'tests_failed', None))}",
        f"- **Checkstyle violations:** {_val(getattr(metrics, 'checkstyle_violations', None))}",
        f"- **C# test files found:** {_val(getattr(metrics, 'test_files_found', None))}",
        f"- **function.json files:** {_val(getattr(metrics, 'function_json_count', None))}",
        f"- **Tool invocations:** {_val(getattr(metrics, 'tool_invocations', None))}",
    ]
    if trigger_counts:
        lines.append("- **Triggers:** " + ", ".join(f"{k}={v}" for k, v in trigger_counts.items()))

    lines += ["", "## Next Manual Steps", ""]
    lines += [f"{i}. {step}" for i, step in enumerate(_next_steps(state), start=1)]

    root = state.migration_root_path or "."
    lines += [
        "",
        "## Artifacts",
        "",
        f"- Progress: `{Path(root) / 'progress.json'}`",
        f"- Functions inventory: `{Path(root) / 'functions-inventory.json'}`",
        f"- Dependencies: `{Path(root) / 'dependencies.json'}`",
        f"- Translation handoff: `{Path(root) / 'translation-handoff.json'}`",
        "",
    ]
    return "\n".join(lines)


def write_report(path, text):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return str(path.resolve())


def main():
    parser = argparse.ArgumentParser(description="Render MIGRATION_REPORT.md from progress.json")
    parser.add_argument("--progress", required=True, help="Path to progress.json")
    parser.add_argument("--output", help="Write report here (default: stdout)")
    args = parser.parse_args()

    try:
        with open(args.progress, "r", encoding="utf-8") as f:
            state = RunState.from_dict(json.load(f))
    except (OSError, ValueError, KeyError) as e:
        print(f"[ERROR] Cannot read {args.progress}: {e}", file=sys.stderr)
        sys.exit(1)

    text = render(state)
    if args.output:
        print(f"[INFO] Report written to {write_report(args.output, text)}")
    else:
        print(text)


if __name__ == "__main__":
    main()
