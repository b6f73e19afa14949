#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""Migration domain models.

MigratableUnit, DependencyRecord, Phase, PhaseResult, RunMetrics and RunState
are shared by the extractor, the pipeline, the progress store and the report
generator. Enum values are plain strings so a RunState serializes straight
into progress.json.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class UnitKind(str, Enum):
    """Azure Functions trigger category, in detection order."""

    HTTP = "HTTP"
    TIMER = "TIMER"
    QUEUE = "QUEUE"
    BLOB = "BLOB"
    CHANGE_FEED = "CHANGE_FEED"
    TOPIC = "TOPIC"
    SERVICE_BUS = "SERVICE_BUS"
    EVENT_HUB = "EVENT_HUB"


# Template names understood by `func new --template`.
FUNC_TEMPLATES = {
    UnitKind.HTTP: "HTTP trigger",
    UnitKind.TIMER: "Timer trigger",
    UnitKind.QUEUE: "Queue trigger",
    UnitKind.BLOB: "Blob trigger",
    UnitKind.CHANGE_FEED: "Cosmos DB trigger",
    UnitKind.TOPIC: "Service Bus Topic trigger",
    UnitKind.SERVICE_BUS: "Service Bus Queue trigger",
    UnitKind.EVENT_HUB: "Event Hub trigger",
}


class Criticality(str, Enum):
    """Whether a phase failure aborts the run or is tolerated."""

    FATAL = "FATAL"
    DEGRADED = "DEGRADED"


class PhaseStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED_FATAL = "FAILED_FATAL"
    FAILED_DEGRADED = "FAILED_DEGRADED"


class InvocationPolicy(str, Enum):
    """How a non-zero exit code is classified."""

    STRICT = "STRICT"
    TOLERANT = "TOLERANT"


class InvocationOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"  # success-with-warning (TOLERANT, non-zero exit)
    FAILURE = "FAILURE"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    DEGRADED = "degraded"
    FAILED = "failed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Discovery records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MigratableUnit:
    """One discovered function, scaffolded individually."""

    name: str
    kind: UnitKind
    source_file: str

    @property
    def template(self) -> str:
        return FUNC_TEMPLATES[self.kind]

    def to_dict(self) -> dict:
        return {"name": self.name, "kind": self.kind.value, "source_file": self.source_file}

    @classmethod
    def from_dict(cls, data: dict) -> "MigratableUnit":
        return cls(
            name=data["name"],
            kind=UnitKind(data["kind"]),
            source_file=data.get("source_file", ""),
        )


@dataclass
class DependencyRecord:
    """One NuGet PackageReference and its Maven equivalent, if known."""

    source_package_name: str
    source_version: Optional[str] = None
    mapped_package_name: Optional[str] = None  # groupId:artifactId
    mapped_version: Optional[str] = None
    mapped_scope: Optional[str] = None
    notes: str = ""

    @property
    def is_mapped(self) -> bool:
        return bool(self.mapped_package_name)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "DependencyRecord":
        known = {f.name for f in cls.__dataclass_fields__.values()}
        return cls(**{k: v for k, v in data.items() if k in known})


# ---------------------------------------------------------------------------
# Phase execution
# ---------------------------------------------------------------------------

@dataclass
class StepOutcome:
    """Result of one step closure."""

    ok: bool
    fatal: bool = False
    message: str = ""

    @classmethod
    def success(cls, message: str = "") -> "StepOutcome":
        return cls(ok=True, message=message)

    @classmethod
    def warning(cls, message: str) -> "StepOutcome":
        return cls(ok=False, fatal=False, message=message)

    @classmethod
    def failure(cls, message: str) -> "StepOutcome":
        return cls(ok=False, fatal=True, message=message)


@dataclass
class Step:
    name: str
    action: Callable[[], StepOutcome]


@dataclass
class PhaseResult:
    """Aggregated outcome of one phase."""

    status: PhaseStatus
    error_count: int = 0
    warnings: List[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def failed(self) -> bool:
        return self.status in (PhaseStatus.FAILED_FATAL, PhaseStatus.FAILED_DEGRADED)


@dataclass
class Phase:
    """One fixed stage of the pipeline plus its bookkeeping."""

    index: int
    name: str
    criticality: Criticality
    status: PhaseStatus = PhaseStatus.PENDING
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    duration_ms: int = 0
    error_count: int = 0
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "name": self.name,
            "criticality": self.criticality.value,
            "status": self.status.value,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "duration_ms": self.duration_ms,
            "error_count": self.error_count,
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Phase":
        return cls(
            index=int(data["index"]),
            name=data["name"],
            criticality=Criticality(data["criticality"]),
            status=PhaseStatus(data.get("status", PhaseStatus.PENDING.value)),
            started_at=data.get("started_at"),
            finished_at=data.get("finished_at"),
            duration_ms=int(data.get("duration_ms", 0) or 0),
            error_count=int(data.get("error_count", 0) or 0),
            warnings=list(data.get("warnings") or []),
        )


# ---------------------------------------------------------------------------
# Run state
# ---------------------------------------------------------------------------

@dataclass
class RunMetrics:
    """Counters populated incrementally by the phases."""

    files_touched: int = 0
    compilation_error_count: int = 0
    checkstyle_violations: int = 0
    tests_passed: int = 0
    tests_failed: int = 0
    tool_invocations: int = 0
    test_files_found: int = 0
    function_json_count: int = 0
    trigger_counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "RunMetrics":
        known = {f.name for f in cls.__dataclass_fields__.values()}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})


@dataclass
class RunState:
    """Persisted snapshot of one migration execution (progress.json)."""

    run_id: str
    started_at: str
    source_root: str
    migration_root_path: str
    phases: Dict[int, Phase] = field(default_factory=dict)
    units: List[MigratableUnit] = field(default_factory=list)
    dependencies: List[DependencyRecord] = field(default_factory=list)
    unit_results: Dict[str, str] = field(default_factory=dict)
    metrics: RunMetrics = field(default_factory=RunMetrics)
    project_name: Optional[str] = None
    target_project_path: Optional[str] = None
    status: RunStatus = RunStatus.RUNNING
    finished_at: Optional[str] = None

    def ordered_phases(self) -> List[Phase]:
        return [self.phases[i] for i in sorted(self.phases)]

    def first_incomplete_phase(self) -> Optional[Phase]:
        """Return the first phase not yet SUCCEEDED, or None if all are."""
        for phase in self.ordered_phases():
            if phase.status != PhaseStatus.SUCCEEDED:
                return phase
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "status": self.status.value,
            "source_root": self.source_root,
            "migration_root_path": self.migration_root_path,
            "project_name": self.project_name,
            "target_project_path": self.target_project_path,
            "phases": {str(i): p.to_dict() for i, p in sorted(self.phases.items())},
            "units": [u.to_dict() for u in self.units],
            "dependencies": [d.to_dict() for d in self.dependencies],
            "unit_results": dict(self.unit_results),
            "metrics": self.metrics.to_dict(),
            "total_units": len(self.units),
            "completed_units": sum(1 for r in self.unit_results.values() if r == "scaffolded"),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RunState":
        phases = {}
        for key, raw in (data.get("phases") or {}).items():
            phase = Phase.from_dict(raw)
            phases[int(key)] = phase
        return cls(
            run_id=data["run_id"],
            started_at=data["started_at"],
            source_root=data["source_root"],
            migration_root_path=data["migration_root_path"],
            phases=dict(sorted(phases.items())),
            units=[MigratableUnit.from_dict(u) for u in data.get("units") or []],
            dependencies=[DependencyRecord.from_dict(d) for d in data.get("dependencies") or []],
            unit_results=dict(data.get("unit_results") or {}),
            metrics=RunMetrics.from_dict(data.get("metrics") or {}),
            project_name=data.get("project_name"),
            target_project_path=data.get("target_project_path"),
            status=RunStatus(data.get("status", RunStatus.RUNNING.value)),
            finished_at=data.get("finished_at"),
        )
