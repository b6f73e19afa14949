#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""Unit Extractor — discovers Azure Functions in a C# project tree.

Regex/line based on purpose: no C# grammar is parsed. For every *.cs file the
ordered KIND_PATTERNS list is applied and the FIRST matching trigger wins.
A file that mentions several trigger kinds is therefore classified by
declaration order, not by the most specific match.

Every `[FunctionName("X")]` / `[Function("X")]` declaration in a file becomes
one MigratableUnit of that file's kind. The project manifest (*.csproj) is
scanned separately for PackageReference names.

Callers only see extract_units(); a real parser can replace the internals
without touching the pipeline.
"""

import argparse
import json
import logging
import re
import sys
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from fnmigrate.migration.models import DependencyRecord, MigratableUnit, UnitKind
from fnmigrate.resilience.errors import NoMigratableUnitsError

logger = logging.getLogger("fnmigrate.migration.unit_extractor")

SOURCE_EXTENSION = ".cs"
MANIFEST_GLOB = "*.csproj"

EXCLUDE_DIRS = {
    "bin", "obj", ".git", ".vs", "node_modules", "packages", "TestResults",
}

# Detection order matters: the first match classifies the file.
# TOPIC must precede SERVICE_BUS; both use ServiceBusTrigger.
KIND_PATTERNS = [
    (UnitKind.HTTP, re.compile(r"\[\s*HttpTrigger(?:Attribute)?\b")),
    (UnitKind.TIMER, re.compile(r"\[\s*TimerTrigger(?:Attribute)?\b")),
    (UnitKind.QUEUE, re.compile(r"\[\s*QueueTrigger(?:Attribute)?\b")),
    (UnitKind.BLOB, re.compile(r"\[\s*BlobTrigger(?:Attribute)?\b")),
    (UnitKind.CHANGE_FEED, re.compile(r"\[\s*CosmosDBTrigger(?:Attribute)?\b")),
    (UnitKind.TOPIC, re.compile(
        r'\[\s*ServiceBusTrigger(?:Attribute)?\s*\(\s*"[^"]*"\s*,\s*"[^"]*"')),
    (UnitKind.SERVICE_BUS, re.compile(r"\[\s*ServiceBusTrigger(?:Attribute)?\b")),
    (UnitKind.EVENT_HUB, re.compile(r"\[\s*EventHubTrigger(?:Attribute)?\b")),
]

# [FunctionName("X")] (in-process), [Function("X")] (isolated worker), nameof(X)
NAME_PATTERN = re.compile(
    r'\[\s*(?:FunctionName|Function)(?:Attribute)?\s*\(\s*'
    r'(?:"(?P<literal>[^"]+)"|nameof\(\s*(?P<nameof>[\w.]+)\s*\))\s*\)'
)

PACKAGE_REFERENCE = re.compile(
    r'<PackageReference\b(?P<attrs>[^>]*?)(?P<selfclose>/?)>',
    re.IGNORECASE,
)
INCLUDE_ATTR = re.compile(r'\bInclude\s*=\s*"([^"]+)"', re.IGNORECASE)
VERSION_ATTR = re.compile(r'\bVersion\s*=\s*"([^"]+)"', re.IGNORECASE)
VERSION_ELEMENT = re.compile(
    r"<Version>\s*([^<]+?)\s*</Version>.*?</PackageReference>|</PackageReference>",
    re.IGNORECASE | re.DOTALL,
)

TEST_FILE_PATTERNS = ("*Test.cs", "*Tests.cs")


@dataclass
class ExtractionAnomaly:
    """A file that could not contribute a unit, and why."""

    source_file: str
    reason: str

    def to_dict(self) -> dict:
        return {"source_file": self.source_file, "reason": self.reason}


@dataclass
class ExtractionResult:
    units: List[MigratableUnit] = field(default_factory=list)
    dependencies: List[DependencyRecord] = field(default_factory=list)
    anomalies: List[ExtractionAnomaly] = field(default_factory=list)
    skipped_files: List[str] = field(default_factory=list)
    manifest_path: Optional[str] = None
    project_name: Optional[str] = None
    file_count: int = 0

    def to_dict(self) -> dict:
        return {
            "units": [u.to_dict() for u in self.units],
            "dependencies": [d.to_dict() for d in self.dependencies],
            "anomalies": [a.to_dict() for a in self.anomalies],
            "skipped_files": list(self.skipped_files),
            "manifest_path": self.manifest_path,
            "project_name": self.project_name,
            "file_count": self.file_count,
            "total_units": len(self.units),
        }


def _is_excluded(path: Path, root: Path, exclude_dirs) -> bool:
    for part in path.relative_to(root).parts[:-1]:
        if part in exclude_dirs or part.startswith("migration-"):
            return True
    return False


def iter_source_files(source_root, pattern="*" + SOURCE_EXTENSION, exclude_dirs=None):
    """Yield matching files under source_root in sorted order."""
    root = Path(source_root)
    excluded = set(exclude_dirs) if exclude_dirs is not None else EXCLUDE_DIRS
    for path in sorted(root.rglob(pattern)):
        if path.is_file() and not _is_excluded(path, root, excluded):
            yield path


def _strip_line_comments(source_code):
    """Drop whole-line // comments so commented-out attributes are ignored."""
    return "\n".join(
        line for line in source_code.split("\n")
        if not line.lstrip().startswith("//")
    )


def detect_kind(source_code) -> Optional[UnitKind]:
    """Return the first trigger kind whose pattern matches, or None."""
    for kind, pattern in KIND_PATTERNS:
        if pattern.search(source_code):
            return kind
    return None


def extract_names(source_code) -> List[str]:
    """Return declared function names in source order."""
    names = []
    for match in NAME_PATTERN.finditer(source_code):
        name = match.group("literal") or match.group("nameof").split(".")[-1]
        names.append(name)
    return names


def parse_manifest(manifest_path) -> List[DependencyRecord]:
    """Extract PackageReference names (and versions, when declared) from a .csproj."""
    text = Path(manifest_path).read_text(encoding="utf-8-sig", errors="replace")
    records = []
    seen = set()
    for match in PACKAGE_REFERENCE.finditer(text):
        attrs = match.group("attrs")
        include = INCLUDE_ATTR.search(attrs)
        if not include:
            continue
        name = include.group(1).strip()
        if name in seen:
            continue
        seen.add(name)

        version_match = VERSION_ATTR.search(attrs)
        version = version_match.group(1).strip() if version_match else None
        if version is None and not match.group("selfclose"):
            element = VERSION_ELEMENT.search(text, match.end())
            if element and element.group(1):
                version = element.group(1)
        records.append(DependencyRecord(source_package_name=name, source_version=version))
    return records


def find_manifest(source_root, exclude_dirs=None) -> Optional[Path]:
    manifests = list(iter_source_files(source_root, MANIFEST_GLOB, exclude_dirs))
    return manifests[0] if manifests else None


def find_test_files(source_root, exclude_dirs=None) -> List[Path]:
    """Return C# test files (*Test.cs, *Tests.cs), sorted."""
    found = set()
    for pattern in TEST_FILE_PATTERNS:
        found.update(iter_source_files(source_root, pattern, exclude_dirs))
    return sorted(found)


def count_trigger_kinds(units) -> dict:
    """Histogram of unit kinds, in KIND_PATTERNS order, zero counts omitted."""
    counts = Counter(u.kind for u in units)
    return {kind.value: counts[kind] for kind, _ in KIND_PATTERNS if counts[kind]}


def extract_units(source_root, exclude_dirs=None) -> ExtractionResult:
    """Scan a C# Functions project for migratable units and its dependencies.

    Returns:
        ExtractionResult with units sorted by name.

    Raises:
        NoMigratableUnitsError: when the whole tree yields zero units.
    """
    root = Path(source_root)
    result = ExtractionResult()
    seen_names = {}

    for fpath in iter_source_files(root, exclude_dirs=exclude_dirs):
        rel_path = str(fpath.relative_to(root))
        try:
            source_code = fpath.read_text(encoding="utf-8-sig", errors="replace")
        except OSError as e:
            logger.warning("Skipping unreadable file %s: %s", rel_path, e)
            result.skipped_files.append(rel_path)
            continue

        result.file_count += 1
        code = _strip_line_comments(source_code)
        kind = detect_kind(code)
        names = extract_names(code)

        if kind is None and not names:
            logger.debug("No function markers in %s", rel_path)
            result.skipped_files.append(rel_path)
            continue

        if not names:
            reason = f"{kind.value} trigger found but no FunctionName declaration"
            logger.warning("%s: %s", rel_path, reason)
            result.anomalies.append(ExtractionAnomaly(rel_path, reason))
            continue

        if kind is None:
            kind = UnitKind.HTTP
            reason = "FunctionName without a recognised trigger, defaulting to HTTP"
            logger.warning("%s: %s", rel_path, reason)
            result.anomalies.append(ExtractionAnomaly(rel_path, reason))

        for name in names:
            if name in seen_names:
                reason = f"duplicate function name '{name}' (first declared in {seen_names[name]})"
                logger.warning("%s: %s", rel_path, reason)
                result.anomalies.append(ExtractionAnomaly(rel_path, reason))
                continue
            seen_names[name] = rel_path
            logger.info("  Found function: %s (%s) in %s", name, kind.value, rel_path)
            result.units.append(MigratableUnit(name=name, kind=kind, source_file=rel_path))

    result.units.sort(key=lambda u: u.name)

    manifest = find_manifest(root, exclude_dirs)
    if manifest is not None:
        result.manifest_path = str(manifest)
        result.project_name = manifest.stem
        try:
            result.dependencies = parse_manifest(manifest)
        except OSError as e:
            logger.warning("Could not read manifest %s: %s", manifest, e)
        logger.info("Found %d NuGet packages in %s", len(result.dependencies), manifest.name)
    else:
        logger.warning("No %s found in %s", MANIFEST_GLOB, root)

    if not result.units:
        raise NoMigratableUnitsError(root, anomalies=result.anomalies)

    logger.info("Found %d functions in %d files", len(result.units), result.file_count)
    return result


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------
def main():
    parser = argparse.ArgumentParser(
        description="Discover Azure Functions and NuGet packages in a C# project",
    )
    parser.add_argument("--source-path", required=True, help="C# project directory")
    parser.add_argument("--json", action="store_true", dest="json_output", help="JSON output")
    args = parser.parse_args()

    source_path = Path(args.source_path).resolve()
    if not source_path.is_dir():
        print(f"[ERROR] Source path does not exist: {source_path}", file=sys.stderr)
        sys.exit(1)

    try:
        result = extract_units(source_path)
    except NoMigratableUnitsError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)

    if args.json_output:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(f"[INFO] Project: {result.project_name or 'unknown'}")
        print(f"[INFO] {len(result.units)} functions in {result.file_count} files")
        for unit in result.units:
            print(f"  {unit.name:<40} {unit.kind.value:<12} {unit.source_file}")
        for anomaly in result.anomalies:
            print(f"[WARN] {anomaly.source_file}: {anomaly.reason}")


if __name__ == "__main__":
    main()
