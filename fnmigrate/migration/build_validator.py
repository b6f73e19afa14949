#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""Build output parsing for the Build & Validate phase.

Maven output is matched as text, not parsed structurally: the counts are
only as good as the log format. A failed compile that prints no recognisable
error line still counts as one error.
"""

import re
from pathlib import Path
from xml.etree import ElementTree

# [ERROR] /path/Foo.java:[12,8] cannot find symbol
COMPILE_ERROR_LINE = re.compile(r"^\[ERROR\]\s+\S+\.java:\[?\d+", re.MULTILINE)
TEST_SUMMARY = re.compile(
    r"Tests run:\s*(\d+),\s*Failures:\s*(\d+),\s*Errors:\s*(\d+),\s*Skipped:\s*(\d+)"
)


def count_compilation_errors(output, exit_code=0):
    """Count `[ERROR] X.java:[line,col]` lines; at least 1 when the compile failed."""
    count = len(set(COMPILE_ERROR_LINE.findall(output or "")))
    if count == 0 and exit_code != 0:
        return 1  # includes exit_code None (timed out)
    return count


def parse_test_summary(output):
    """Return (passed, failed) from Maven Surefire output.

    Surefire prints per-class lines and a final aggregate; the last match is
    the aggregate. Skipped tests count as neither.
    """
    matches = TEST_SUMMARY.findall(output or "")
    if not matches:
        return 0, 0
    run, failures, errors, skipped = (int(v) for v in matches[-1])
    failed = failures + errors
    return max(run - failed - skipped, 0), failed


def count_function_json(project_dir):
    """Count generated function.json files (present after `mvn package`)."""
    project_dir = Path(project_dir)
    if not project_dir.is_dir():
        return 0
    return sum(1 for _ in project_dir.rglob("function.json"))


# [WARN] /path/Foo.java:12:5: Missing a Javadoc comment. [JavadocMethod]
CHECKSTYLE_CONSOLE_LINE = re.compile(
    r"^\[(?:WARN|WARNING|ERROR)\]\s+\S+\.java:\d+(?::\d+)?:", re.MULTILINE
)
VIOLATION_TAGS = ("error", "violation")


def count_checkstyle_violations(report_path, output=""):
    """Count findings in checkstyle-result.xml.

    The plugin writes one <error> per finding; <violation> is accepted too.
    Without a report the console lines are counted instead.
    """
    report_path = Path(report_path)
    if report_path.is_file():
        try:
            root = ElementTree.parse(report_path).getroot()
            return sum(1 for el in root.iter() if el.tag in VIOLATION_TAGS)
        except ElementTree.ParseError:
            # truncated report from an interrupted run
            text = report_path.read_text(encoding="utf-8", errors="replace")
            return sum(text.count(f"<{tag} ") for tag in VIOLATION_TAGS)
    return len(CHECKSTYLE_CONSOLE_LINE.findall(output or ""))
