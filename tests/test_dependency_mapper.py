#!/usr/bin/env python3
# CUI // SP-CTI
"""Tests for fnmigrate/migration/dependency_mapper.py — NuGet to Maven mapping."""

import json
import sys
from pathlib import Path

import pytest

# Ensure project root on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fnmigrate.migration.config import MAPPINGS_PATH
from fnmigrate.migration.dependency_mapper import (
    get_domain_coverage,
    get_unmapped,
    load_mappings,
    map_dependencies,
    resolve_dependency,
)
from fnmigrate.migration.models import DependencyRecord


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mappings():
    return {
        "domains": {
            "runtime": {
                "notes": "functions runtime",
                "mappings": [
                    {"nuget": ["Microsoft.NET.Sdk.Functions", "Microsoft.Azure.WebJobs.Extensions.*"],
                     "maven": "com.microsoft.azure.functions:azure-functions-java-library",
                     "version": "3.1.0"},
                    {"nuget": ["Microsoft.Azure.WebJobs.Extensions.Storage.*"],
                     "maven": "com.azure:azure-storage-blob", "version": "12.0.0"},
                ],
            },
            "testing": {
                "mappings": [
                    {"nuget": ["xunit"], "maven": "org.junit.jupiter:junit-jupiter",
                     "version": "5.10.1", "scope": "test"},
                ],
            },
        }
    }


# ---------------------------------------------------------------------------
# Tests: Resolution
# ---------------------------------------------------------------------------

class TestResolveDependency:
    """Tests for single-package resolution."""

    def test_exact_match(self, mappings):
        record = resolve_dependency(DependencyRecord("Microsoft.NET.Sdk.Functions", "4.1.1"), mappings)
        assert record.mapped_package_name == "com.microsoft.azure.functions:azure-functions-java-library"
        assert record.mapped_version == "3.1.0"
        assert record.source_version == "4.1.1"

    def test_case_insensitive(self, mappings):
        record = resolve_dependency(DependencyRecord("XUnit"), mappings)
        assert record.mapped_package_name == "org.junit.jupiter:junit-jupiter"
        assert record.mapped_scope == "test"

    def test_wildcard_prefix(self, mappings):
        record = resolve_dependency(DependencyRecord("Microsoft.Azure.WebJobs.Extensions.Http"), mappings)
        assert record.mapped_package_name.endswith("azure-functions-java-library")

    def test_longest_prefix_wins(self, mappings):
        record = resolve_dependency(
            DependencyRecord("Microsoft.Azure.WebJobs.Extensions.Storage.Blobs"), mappings,
        )
        assert record.mapped_package_name == "com.azure:azure-storage-blob"

    def test_unmapped(self, mappings):
        record = resolve_dependency(DependencyRecord("Contoso.Internal", "1.0"), mappings)
        assert not record.is_mapped
        assert record.notes == "no known Maven equivalent"

    def test_input_not_mutated(self, mappings):
        original = DependencyRecord("xunit")
        resolve_dependency(original, mappings)
        assert original.mapped_package_name is None


class TestMapDependencies:
    """Tests for batch mapping."""

    def test_order_preserved(self, mappings):
        records = [DependencyRecord("zzz"), DependencyRecord("xunit"), DependencyRecord("aaa")]
        resolved = map_dependencies(records, mappings)
        assert [r.source_package_name for r in resolved] == ["zzz", "xunit", "aaa"]
        assert [r.source_package_name for r in get_unmapped(resolved)] == ["zzz", "aaa"]

    def test_empty_table(self):
        resolved = map_dependencies([DependencyRecord("xunit")], {})
        assert get_unmapped(resolved) == resolved


# ---------------------------------------------------------------------------
# Tests: Mapping table
# ---------------------------------------------------------------------------

class TestMappingTable:
    """Tests for the shipped context/migration/dependency_mappings.json."""

    def test_table_is_valid_json(self):
        with open(MAPPINGS_PATH, encoding="utf-8") as f:
            data = json.load(f)
        assert "domains" in data

    def test_every_entry_has_maven_coordinates(self):
        for domain in load_mappings()["domains"].values():
            for entry in domain["mappings"]:
                assert entry["nuget"]
                assert ":" in entry["maven"]

    def test_common_packages_covered(self):
        resolved = map_dependencies([
            DependencyRecord("Microsoft.NET.Sdk.Functions"),
            DependencyRecord("Newtonsoft.Json"),
            DependencyRecord("Azure.Storage.Blobs"),
            DependencyRecord("Microsoft.Azure.WebJobs.Extensions.ServiceBus"),
        ])
        assert get_unmapped(resolved) == []

    def test_missing_table_file(self, tmp_path):
        assert load_mappings(tmp_path / "absent.json") == {}

    def test_domain_coverage(self, mappings):
        assert get_domain_coverage(mappings) == {"runtime": 3, "testing": 1}
