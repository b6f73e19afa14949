#!/usr/bin/env python3
# CUI // SP-CTI
"""Tests for fnmigrate/migration/project_assembler.py — backup, pom.xml, handoffs."""

import sys
from pathlib import Path

import pytest

# Ensure project root on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fnmigrate.migration.models import DependencyRecord, MigratableUnit, UnitKind
from fnmigrate.migration.project_assembler import (
    DEPS_BLOCK_START,
    backup_source,
    build_test_handoff,
    build_translation_handoff,
    format_dependencies,
    java_class_path,
    write_build_manifest,
)

GENERATED_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project>
    <dependencyManagement>
        <dependencies>
            <dependency><artifactId>bom</artifactId></dependency>
        </dependencies>
    </dependencyManagement>
    <dependencies>
        <dependency>
            <groupId>com.microsoft.azure.functions</groupId>
            <artifactId>azure-functions-java-library</artifactId>
        </dependency>
    </dependencies>
    <build>
        <plugins>
            <plugin>
                <dependencies>
                    <dependency><artifactId>plugin-dep</artifactId></dependency>
                </dependencies>
            </plugin>
        </plugins>
    </build>
</project>
"""


@pytest.fixture
def records():
    return [
        DependencyRecord("Microsoft.NET.Sdk.Functions", "4.1.1",
                         "com.microsoft.azure.functions:azure-functions-java-library", "3.1.0"),
        DependencyRecord("Newtonsoft.Json", "13.0.1",
                         "com.fasterxml.jackson.core:jackson-databind", "2.16.1"),
        DependencyRecord("xunit", "2.4.2", "org.junit.jupiter:junit-jupiter", "5.10.1", "test"),
        DependencyRecord("Contoso.Internal", "1.0"),
    ]


# ---------------------------------------------------------------------------
# Tests: Backup
# ---------------------------------------------------------------------------

class TestBackup:
    """Tests for backup_source()."""

    def test_copies_matching_files(self, csharp_project, tmp_path):
        backup = tmp_path / "backup"
        count = backup_source(csharp_project, backup, ["*.cs", "*.csproj", "*.json"])
        assert count == 6
        assert (backup / "Tests" / "GetOrderTests.cs").exists()
        assert (backup / "OrdersApp.csproj").read_text(encoding="utf-8") == \
            (csharp_project / "OrdersApp.csproj").read_text(encoding="utf-8")

    def test_skips_migration_directories(self, csharp_project):
        migration = csharp_project / "migration-20260101_120000"
        backup = migration / "csharp-backup"
        backup_source(csharp_project, backup, ["*.cs"])
        second = backup_source(csharp_project, migration / "again", ["*.cs"])
        assert second == 4


# ---------------------------------------------------------------------------
# Tests: Build manifest
# ---------------------------------------------------------------------------

class TestFormatDependencies:
    """Tests for the marked dependency block."""

    def test_comment_per_mapping(self, records):
        block = format_dependencies(records)
        assert ("<!-- NuGet Newtonsoft.Json 13.0.1 -> "
                "com.fasterxml.jackson.core:jackson-databind -->") in block
        assert "Contoso.Internal" not in block

    def test_scope_and_version(self, records):
        block = format_dependencies(records)
        assert "<artifactId>junit-jupiter</artifactId>" in block
        assert "<scope>test</scope>" in block
        assert "<version>2.16.1</version>" in block

    def test_already_declared_artifact(self, records):
        block = format_dependencies(records, existing_pom=GENERATED_POM)
        assert "azure-functions-java-library already declared" in block
        assert block.count("<artifactId>azure-functions-java-library</artifactId>") == 0


class TestWriteBuildManifest:
    """Tests for pom.xml injection."""

    def test_inserts_into_project_dependencies(self, tmp_path, records):
        pom = tmp_path / "pom.xml"
        pom.write_text(GENERATED_POM, encoding="utf-8")
        info = write_build_manifest(pom, records)
        text = pom.read_text(encoding="utf-8")
        assert info["mapped_count"] == 3
        assert not info["created"]
        block_at = text.index(DEPS_BLOCK_START)
        assert text.index("</dependencyManagement>") < block_at < text.index("<build>")

    def test_rerun_replaces_block(self, tmp_path, records):
        pom = tmp_path / "pom.xml"
        pom.write_text(GENERATED_POM, encoding="utf-8")
        write_build_manifest(pom, records)
        write_build_manifest(pom, records)
        text = pom.read_text(encoding="utf-8")
        assert text.count(DEPS_BLOCK_START) == 1
        assert text.count("<artifactId>jackson-databind</artifactId>") == 1

    def test_creates_minimal_pom(self, tmp_path, records):
        pom = tmp_path / "OrdersApp" / "pom.xml"
        info = write_build_manifest(pom, records, project_name="OrdersApp")
        assert info["created"]
        text = pom.read_text(encoding="utf-8")
        assert "<artifactId>OrdersApp</artifactId>" in text
        assert "<artifactId>jackson-databind</artifactId>" in text

    def test_pom_without_dependencies_element(self, tmp_path, records):
        pom = tmp_path / "pom.xml"
        pom.write_text("<project>\n</project>\n", encoding="utf-8")
        write_build_manifest(pom, records)
        text = pom.read_text(encoding="utf-8")
        assert text.index("<dependencies>") < text.index("</project>")

    def test_malformed_pom_raises(self, tmp_path, records):
        pom = tmp_path / "pom.xml"
        pom.write_text("<nothing/>", encoding="utf-8")
        with pytest.raises(ValueError):
            write_build_manifest(pom, records)


# ---------------------------------------------------------------------------
# Tests: Handoff manifests
# ---------------------------------------------------------------------------

class TestHandoffs:
    """Tests for translation and test handoff records."""

    def test_translation_handoff(self, tmp_path):
        units = [MigratableUnit("GetOrder", UnitKind.HTTP, "GetOrder.cs"),
                 MigratableUnit("Cleanup", UnitKind.TIMER, "Jobs/Cleanup.cs")]
        handoff = build_translation_handoff(units, {"GetOrder": "scaffolded"}, tmp_path)
        first, second = handoff["units"]
        assert first["target_file"] == "src/main/java/com/function/GetOrder.java"
        assert first["template"] == "HTTP trigger"
        assert first["scaffold_result"] == "scaffolded"
        assert second["scaffold_result"] == "unknown"

    def test_test_handoff(self, csharp_project):
        handoff = build_test_handoff([csharp_project / "Tests" / "GetOrderTests.cs"], csharp_project)
        entry = handoff["tests"][0]
        assert entry["source_file"] == str(Path("Tests") / "GetOrderTests.cs")
        assert entry["target_file"] == "src/test/java/com/function/GetOrderTests.java"

    def test_java_class_path_custom_package(self):
        assert java_class_path("A", "org.acme.fn") == "src/main/java/org/acme/fn/A.java"
