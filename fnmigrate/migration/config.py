#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""Run configuration for the migration pipeline.

Settings come from args/migration_config.yaml layered over built-in defaults,
then CLI overrides. The result is frozen into one RunConfig at startup and
handed to every component; nothing reads paths or timestamps from globals.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import yaml

from fnmigrate.migration.models import InvocationPolicy
from fnmigrate.resilience.errors import ConfigurationError

logger = logging.getLogger("fnmigrate.migration.config")

BASE_DIR = Path(__file__).resolve().parent.parent.parent
CONFIG_PATH = BASE_DIR / "args" / "migration_config.yaml"
MAPPINGS_PATH = BASE_DIR / "context" / "migration" / "dependency_mappings.json"

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
MIGRATION_DIR_PREFIX = "migration-"

DEFAULT_SETTINGS = {
    "scaffold": {
        "tool": "func",
        "worker_runtime": "java",
        "init_extra_args": [],
        "unit_policy": "strict",
    },
    "build": {
        "tool": "mvn",
        "validate_args": ["validate", "-q"],
        "validate_policy": "tolerant",
        "compile_args": ["clean", "compile"],
        "test_args": ["test"],
        "package_args": ["package", "-DskipTests"],
    },
    "checkstyle": {
        "enabled": True,
        "check_args": ["checkstyle:check", "-Dcheckstyle.consoleOutput=true"],
        "config_location": "",
        "report_file": "target/checkstyle-result.xml",
        "auto_fix": False,
        "fix_args": ["spotless:apply", "-q"],
    },
    "invocation": {
        "timeout_seconds": 1800,
    },
    "preflight": {
        "required_tools": ["func", "mvn", "java"],
    },
    "source": {
        "backup_patterns": ["*.cs", "*.csproj", "*.json"],
        "exclude_dirs": ["bin", "obj", ".git", ".vs", "node_modules", "packages", "TestResults"],
    },
    "output": {
        "target_dir_name": "java-functions",
        "backup_dir_name": "csharp-backup",
    },
}


def _deep_merge(base, override):
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(config_path=None):
    """Load settings from YAML merged over DEFAULT_SETTINGS.

    A missing default config file is not an error; a missing explicit one is.
    """
    path = Path(config_path) if config_path else CONFIG_PATH
    if not path.exists():
        if config_path:
            raise ConfigurationError(f"Config file not found: {path}", config_key="config")
        logger.debug("No config at %s, using built-in defaults", path)
        return copy.deepcopy(DEFAULT_SETTINGS)

    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}", config_key="config") from e

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Config root must be a mapping: {path}", config_key="config")
    return _deep_merge(DEFAULT_SETTINGS, loaded)


def _policy(value, key):
    try:
        return InvocationPolicy(str(value).upper())
    except ValueError:
        raise ConfigurationError(
            f"Unknown invocation policy '{value}' (expected strict or tolerant)",
            config_key=key,
        ) from None


def _arg_list(value, key):
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"'{key}' must be a list of strings", config_key=key)
    return list(value)


def _checkstyle_args(checkstyle):
    """check_args plus -Dcheckstyle.config.location when a rules file is configured."""
    args = _arg_list(checkstyle.get("check_args", []), "checkstyle.check_args")
    location = checkstyle.get("config_location") or ""
    if location:
        args.append(f"-Dcheckstyle.config.location={location}")
    return args


@dataclass(frozen=True)
class RunConfig:
    """Everything a migration run needs to know, built once at startup."""

    source_root: Path
    timestamp: str
    migration_root: Path
    target_dir: Path
    backup_dir: Path
    log_file: Path
    progress_file: Path
    report_file: Path
    scaffold_tool: str = "func"
    build_tool: str = "mvn"
    worker_runtime: str = "java"
    init_extra_args: Tuple[str, ...] = ()
    unit_policy: InvocationPolicy = InvocationPolicy.STRICT
    validate_args: Tuple[str, ...] = ("validate", "-q")
    validate_policy: InvocationPolicy = InvocationPolicy.TOLERANT
    compile_args: Tuple[str, ...] = ("clean", "compile")
    test_args: Tuple[str, ...] = ("test",)
    package_args: Tuple[str, ...] = ("package", "-DskipTests")
    checkstyle_enabled: bool = True
    checkstyle_args: Tuple[str, ...] = ("checkstyle:check", "-Dcheckstyle.consoleOutput=true")
    checkstyle_report: str = "target/checkstyle-result.xml"
    checkstyle_fix: bool = False
    checkstyle_fix_args: Tuple[str, ...] = ("spotless:apply", "-q")
    timeout_seconds: Optional[float] = 1800.0
    required_tools: Tuple[str, ...] = ("func", "mvn", "java")
    backup_patterns: Tuple[str, ...] = ("*.cs", "*.csproj", "*.json")
    exclude_dirs: Tuple[str, ...] = field(default_factory=tuple)
    mappings_path: Path = MAPPINGS_PATH

    @property
    def inventory_file(self) -> Path:
        return self.migration_root / "functions-inventory.json"

    @property
    def dependencies_file(self) -> Path:
        return self.migration_root / "dependencies.json"

    @property
    def translation_handoff_file(self) -> Path:
        return self.migration_root / "translation-handoff.json"

    @property
    def test_handoff_file(self) -> Path:
        return self.migration_root / "test-handoff.json"


def new_timestamp() -> str:
    return datetime.now().strftime(TIMESTAMP_FORMAT)


def timestamp_from_migration_dir(migration_root) -> str:
    """Recover the run timestamp from a `migration-<ts>` directory name."""
    name = Path(migration_root).name
    if not name.startswith(MIGRATION_DIR_PREFIX):
        raise ConfigurationError(
            f"Not a migration directory (expected '{MIGRATION_DIR_PREFIX}*'): {migration_root}",
            config_key="migration_root",
        )
    return name[len(MIGRATION_DIR_PREFIX):]


def build_run_config(source_root, settings=None, timestamp=None, migration_root=None,
                     timeout_seconds=None, mappings_path=None):
    """Construct a RunConfig for a new run or, given migration_root, a resumed one.

    Args:
        source_root: C# project directory.
        settings: Settings dict (defaults to load_settings()).
        timestamp: Run timestamp; generated when omitted.
        migration_root: Existing migration directory (resume).
        timeout_seconds: CLI override of invocation.timeout_seconds; 0 disables.
        mappings_path: Override of the dependency mapping table.

    Raises:
        ConfigurationError: on invalid settings.
    """
    settings = settings if settings is not None else load_settings()
    source_root = Path(source_root).resolve()

    if migration_root is not None:
        migration_root = Path(migration_root).resolve()
        timestamp = timestamp or timestamp_from_migration_dir(migration_root)
    else:
        timestamp = timestamp or new_timestamp()
        migration_root = source_root / f"{MIGRATION_DIR_PREFIX}{timestamp}"

    scaffold = settings.get("scaffold", {})
    build = settings.get("build", {})
    output = settings.get("output", {})
    source = settings.get("source", {})
    checkstyle = settings.get("checkstyle", {})

    timeout = timeout_seconds
    if timeout is None:
        timeout = settings.get("invocation", {}).get("timeout_seconds")
    if timeout is not None:
        try:
            timeout = float(timeout)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"timeout_seconds must be a number, got {timeout!r}",
                config_key="invocation.timeout_seconds",
            ) from None
        if timeout < 0:
            raise ConfigurationError("timeout_seconds must not be negative",
                                     config_key="invocation.timeout_seconds")
        timeout = timeout or None  # 0 means no deadline

    return RunConfig(
        source_root=source_root,
        timestamp=timestamp,
        migration_root=migration_root,
        target_dir=migration_root / output.get("target_dir_name", "java-functions"),
        backup_dir=migration_root / output.get("backup_dir_name", "csharp-backup"),
        log_file=migration_root / f"{MIGRATION_DIR_PREFIX}{timestamp}.log",
        progress_file=migration_root / "progress.json",
        report_file=migration_root / "MIGRATION_REPORT.md",
        scaffold_tool=scaffold.get("tool", "func"),
        build_tool=build.get("tool", "mvn"),
        worker_runtime=scaffold.get("worker_runtime", "java"),
        init_extra_args=tuple(_arg_list(scaffold.get("init_extra_args", []),
                                        "scaffold.init_extra_args")),
        unit_policy=_policy(scaffold.get("unit_policy", "strict"), "scaffold.unit_policy"),
        validate_args=tuple(_arg_list(build.get("validate_args", []), "build.validate_args")),
        validate_policy=_policy(build.get("validate_policy", "tolerant"), "build.validate_policy"),
        compile_args=tuple(_arg_list(build.get("compile_args", []), "build.compile_args")),
        test_args=tuple(_arg_list(build.get("test_args", []), "build.test_args")),
        package_args=tuple(_arg_list(build.get("package_args", []), "build.package_args")),
        checkstyle_enabled=bool(checkstyle.get("enabled", True)),
        checkstyle_args=tuple(_checkstyle_args(checkstyle)),
        checkstyle_report=str(checkstyle.get("report_file") or "target/checkstyle-result.xml"),
        checkstyle_fix=bool(checkstyle.get("auto_fix", False)),
        checkstyle_fix_args=tuple(_arg_list(checkstyle.get("fix_args", []), "checkstyle.fix_args")),
        timeout_seconds=timeout,
        required_tools=tuple(_arg_list(settings.get("preflight", {}).get("required_tools", []),
                                       "preflight.required_tools")),
        backup_patterns=tuple(_arg_list(source.get("backup_patterns", []),
                                        "source.backup_patterns")),
        exclude_dirs=tuple(_arg_list(source.get("exclude_dirs", []), "source.exclude_dirs")),
        mappings_path=Path(mappings_path) if mappings_path else MAPPINGS_PATH,
    )


def list_required_tools(config: RunConfig) -> List[str]:
    """Preflight tool list, always including the scaffolding CLI and build tool."""
    tools = [config.scaffold_tool, config.build_tool]
    for tool in config.required_tools:
        if tool not in tools:
            tools.append(tool)
    return tools
