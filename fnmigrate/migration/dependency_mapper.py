#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""Dependency Mapper — NuGet package -> Maven artifact equivalents.

Mappings live in context/migration/dependency_mappings.json so new packages
can be added without code changes. Exact package names are matched before
wildcard prefixes ("Microsoft.Azure.WebJobs.Extensions.*").

A package with no entry keeps mapped_package_name=None and is reported as
needing manual resolution.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from fnmigrate.migration.config import MAPPINGS_PATH
from fnmigrate.migration.models import DependencyRecord

logger = logging.getLogger("fnmigrate.migration.dependency_mapper")


def load_mappings(path=None):
    """Load the NuGet -> Maven mapping table. Missing file yields {}."""
    mappings_path = Path(path) if path else MAPPINGS_PATH
    if not mappings_path.exists():
        logger.warning("Dependency mapping table not found: %s", mappings_path)
        return {}
    with open(mappings_path, encoding="utf-8") as f:
        return json.load(f)


def _index_mappings(mappings):
    """Flatten domains into (exact, prefixes) lookup structures.

    Exact and prefix keys are compared case-insensitively; NuGet IDs are.
    """
    exact = {}
    prefixes = []
    for domain_name, domain in (mappings.get("domains") or {}).items():
        for entry in domain.get("mappings", []):
            target = {
                "maven": entry.get("maven"),
                "version": entry.get("version"),
                "scope": entry.get("scope"),
                "domain": domain_name,
                "notes": domain.get("notes", ""),
            }
            for name in entry.get("nuget", []):
                if name.endswith("*"):
                    prefixes.append((name[:-1].lower(), target))
                else:
                    exact[name.lower()] = target
    # Longest prefix first so the most specific wildcard wins.
    prefixes.sort(key=lambda item: len(item[0]), reverse=True)
    return exact, prefixes


def resolve_dependency(record, mappings=None, _index=None):
    """Return a copy of record with its Maven mapping filled in, if known."""
    if _index is None:
        _index = _index_mappings(mappings if mappings is not None else load_mappings())
    exact, prefixes = _index

    key = record.source_package_name.lower()
    target = exact.get(key)
    if target is None:
        for prefix, candidate in prefixes:
            if key.startswith(prefix):
                target = candidate
                break

    if target is None or not target.get("maven"):
        return replace(record, mapped_package_name=None, mapped_version=None,
                       mapped_scope=None, notes="no known Maven equivalent")

    return replace(
        record,
        mapped_package_name=target["maven"],
        mapped_version=target.get("version"),
        mapped_scope=target.get("scope"),
        notes=f"{target['domain']}: {target['notes']}".strip(": "),
    )


def map_dependencies(records, mappings=None):
    """Resolve every record against the table, preserving input order."""
    index = _index_mappings(mappings if mappings is not None else load_mappings())
    resolved = [resolve_dependency(r, _index=index) for r in records]
    mapped = sum(1 for r in resolved if r.is_mapped)
    logger.info("Mapped %d/%d NuGet packages to Maven", mapped, len(resolved))
    for record in resolved:
        if record.is_mapped:
            logger.info("  %s -> %s:%s", record.source_package_name,
                        record.mapped_package_name, record.mapped_version or "?")
        else:
            logger.warning("  %s -> (unmapped, needs manual resolution)",
                           record.source_package_name)
    return resolved


def get_unmapped(records):
    return [r for r in records if not r.is_mapped]


def get_domain_coverage(mappings=None):
    """Count NuGet names covered per domain."""
    if mappings is None:
        mappings = load_mappings()
    return {
        name: sum(len(e.get("nuget", [])) for e in domain.get("mappings", []))
        for name, domain in (mappings.get("domains") or {}).items()
    }


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------
def main():
    parser = argparse.ArgumentParser(description="Map NuGet packages to Maven artifacts")
    parser.add_argument("packages", nargs="*", help="NuGet package IDs")
    parser.add_argument("--coverage", action="store_true", help="Show table coverage per domain")
    parser.add_argument("--json", action="store_true", help="JSON output")
    args = parser.parse_args()

    mappings = load_mappings()
    if args.coverage:
        coverage = get_domain_coverage(mappings)
        if args.json:
            print(json.dumps(coverage, indent=2))
        else:
            for domain, count in coverage.items():
                print(f"  {domain:<24} {count}")
        return

    if not args.packages:
        parser.print_usage(sys.stderr)
        sys.exit(2)

    records = map_dependencies(
        [DependencyRecord(source_package_name=p) for p in args.packages], mappings
    )
    if args.json:
        print(json.dumps([r.to_dict() for r in records], indent=2))
    else:
        for r in records:
            target = (f"{r.mapped_package_name}:{r.mapped_version or '?'}"
                      if r.is_mapped else "UNMAPPED")
            print(f"  {r.source_package_name:<48} {target}")


if __name__ == "__main__":
    main()
