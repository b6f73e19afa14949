#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""Project assembly helpers for the Java Functions target.

Non-destructive: the C# tree is only read. Everything is written under the
migration directory (backup copy, pom.xml edits, handoff manifests).
"""

import json
import logging
import re
import shutil
from pathlib import Path

from fnmigrate.migration.unit_extractor import iter_source_files

logger = logging.getLogger("fnmigrate.migration.project_assembler")

# Package `func init --worker-runtime java` generates sources under.
DEFAULT_JAVA_PACKAGE = "com.function"

DEPS_BLOCK_START = "<!-- fnmigrate:dependencies:start -->"
DEPS_BLOCK_END = "<!-- fnmigrate:dependencies:end -->"

POM_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<!-- Migrated from C# Azure Functions project {source_project} -->
<project xmlns="http://maven.apache.org/POM/4.0.0"
         xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
         xsi:schemaLocation="http://maven.apache.org/POM/4.0.0
         http://maven.apache.org/xsd/maven-4.0.0.xsd">
    <modelVersion>4.0.0</modelVersion>
    <groupId>{group_id}</groupId>
    <artifactId>{project_name}</artifactId>
    <version>1.0-SNAPSHOT</version>
    <packaging>jar</packaging>
    <properties>
        <java.version>17</java.version>
        <maven.compiler.source>17</maven.compiler.source>
        <maven.compiler.target>17</maven.compiler.target>
        <project.build.sourceEncoding>UTF-8</project.build.sourceEncoding>
    </properties>
    <dependencies>
    </dependencies>
</project>
"""


def write_json(path, data):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")
    return str(path)


# ---------------------------------------------------------------------------
# Backup
# ---------------------------------------------------------------------------

def backup_source(source_root, backup_dir, patterns, exclude_dirs=None):
    """Copy source/manifest/settings files verbatim, keeping relative paths.

    Returns:
        Number of files copied.
    """
    source_root = Path(source_root)
    backup_dir = Path(backup_dir)
    backup_dir.mkdir(parents=True, exist_ok=True)

    copied = set()
    for pattern in patterns:
        for fpath in iter_source_files(source_root, pattern, exclude_dirs):
            rel = fpath.relative_to(source_root)
            if rel in copied:
                continue
            dest = backup_dir / rel
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(fpath, dest)
            copied.add(rel)
    logger.info("Backed up %d files to %s", len(copied), backup_dir)
    return len(copied)


# ---------------------------------------------------------------------------
# Build manifest
# ---------------------------------------------------------------------------

def _split_coordinates(mapped_name):
    if ":" in mapped_name:
        group, artifact = mapped_name.split(":", 1)
    else:
        group, _, artifact = mapped_name.rpartition(".")
    return group, artifact


def format_dependencies(records, existing_pom=""):
    """Render mapped records as a marked <dependency> block.

    Each mapping is preceded by a comment naming the NuGet source and the
    Maven coordinates verbatim. Artifacts already declared elsewhere in the
    pom get the comment only.
    """
    grouped = {}
    for record in records:
        if not record.is_mapped:
            continue
        grouped.setdefault(record.mapped_package_name, []).append(record)

    lines = [f"        {DEPS_BLOCK_START}"]
    for mapped_name in sorted(grouped):
        sources = grouped[mapped_name]
        first = sources[0]
        for r in sources:
            version = f" {r.source_version}" if r.source_version else ""
            lines.append(f"        <!-- NuGet {r.source_package_name}{version} -> {mapped_name} -->")

        group, artifact = _split_coordinates(mapped_name)
        if f"<artifactId>{artifact}</artifactId>" in existing_pom:
            lines.append(f"        <!-- {mapped_name} already declared -->")
            continue
        lines.append("        <dependency>")
        lines.append(f"            <groupId>{group}</groupId>")
        lines.append(f"            <artifactId>{artifact}</artifactId>")
        if first.mapped_version:
            lines.append(f"            <version>{first.mapped_version}</version>")
        if first.mapped_scope:
            lines.append(f"            <scope>{first.mapped_scope}</scope>")
        lines.append("        </dependency>")
    lines.append(f"        {DEPS_BLOCK_END}")
    return "\n".join(lines)


def _project_dependencies_close(pom_text):
    """Offset of the project-level </dependencies>, or -1.

    Skips <dependencies> nested in <dependencyManagement> or <plugin>.
    """
    for match in re.finditer(r"<dependencies>", pom_text):
        before = pom_text[:match.start()]
        in_management = before.count("<dependencyManagement>") > before.count("</dependencyManagement>")
        in_plugin = len(re.findall(r"<plugin>", before)) > before.count("</plugin>")
        if in_management or in_plugin:
            continue
        return pom_text.find("</dependencies>", match.end())
    return -1


def write_build_manifest(pom_path, records, project_name="functions", source_project=""):
    """Inject mapped dependencies into pom.xml, creating a minimal pom if absent.

    Re-running replaces the previously injected block.

    Returns:
        dict with pom path, created flag and the number of mapped records.

    Raises:
        ValueError: the pom has no </project> to anchor the dependencies on.
    """
    pom_path = Path(pom_path)
    created = False
    if pom_path.exists():
        pom_text = pom_path.read_text(encoding="utf-8")
    else:
        pom_text = POM_TEMPLATE.format(
            group_id=DEFAULT_JAVA_PACKAGE,
            project_name=project_name,
            source_project=source_project or project_name,
        )
        created = True
        logger.warning("No pom.xml at %s, writing a minimal one", pom_path)

    # Drop any block from a previous run before deciding what is declared.
    pom_text = re.sub(
        r"[ \t]*" + re.escape(DEPS_BLOCK_START) + r".*?" + re.escape(DEPS_BLOCK_END) + r"\n?",
        "",
        pom_text,
        flags=re.DOTALL,
    )
    block = format_dependencies(records, existing_pom=pom_text)

    close = _project_dependencies_close(pom_text)
    if close >= 0:
        pom_text = pom_text[:close] + block + "\n    " + pom_text[close:]
    else:
        end = pom_text.rfind("</project>")
        if end < 0:
            raise ValueError(f"{pom_path} has no </project> element")
        pom_text = (pom_text[:end] + "    <dependencies>\n" + block
                    + "\n    </dependencies>\n" + pom_text[end:])

    pom_path.parent.mkdir(parents=True, exist_ok=True)
    pom_path.write_text(pom_text, encoding="utf-8")
    mapped = sum(1 for r in records if r.is_mapped)
    logger.info("Wrote %d mapped dependencies to %s", mapped, pom_path)
    return {"pom_path": str(pom_path), "created": created, "mapped_count": mapped}


# ---------------------------------------------------------------------------
# Handoff manifests
# ---------------------------------------------------------------------------

def java_class_path(unit_name, java_package=DEFAULT_JAVA_PACKAGE):
    return f"src/main/java/{java_package.replace('.', '/')}/{unit_name}.java"


def build_translation_handoff(units, unit_results, source_root):
    """Per-unit record telling a translator where each C# function goes."""
    return {
        "source_root": str(source_root),
        "units": [
            {
                "name": u.name,
                "kind": u.kind.value,
                "template": u.template,
                "source_file": u.source_file,
                "target_file": java_class_path(u.name),
                "scaffold_result": unit_results.get(u.name, "unknown"),
            }
            for u in units
        ],
    }


def build_test_handoff(test_files, source_root):
    source_root = Path(source_root)
    entries = []
    for path in test_files:
        rel = Path(path).relative_to(source_root)
        stem = rel.stem
        entries.append({
            "source_file": str(rel),
            "target_file": f"src/test/java/{DEFAULT_JAVA_PACKAGE.replace('.', '/')}/{stem}.java",
            "framework": "xUnit -> JUnit 5",
        })
    return {"source_root": str(source_root), "tests": entries}
