"""Data models for planwarden.

This module contains the core data structures used throughout planwarden,
representing the planning configuration, roadmap and phase layout, and the
findings, repair actions and reports produced by the validators.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger("planwarden.models")


PLANNING_DIR_NAME = ".planning"
CONFIG_RELATIVE_PATH = ".planning/config.json"

MODEL_PROFILES = ("quality", "balanced", "budget")

DEFAULT_CONFIG: Dict[str, Any] = {
    "model_profile": "balanced",
    "commit_docs": True,
    "search_gitignored": False,
    "branching_strategy": "none",
    "parallelization": True,
    "workflow": {
        "research": True,
        "plan_check": True,
        "verifier": True,
    },
    "playwright": {
        "enabled": False,
        "ui_verification": True,
        "e2e_generation": True,
        "dev_server_command": "npm run dev",
        "dev_server_port": 3000,
        "base_url": "http://localhost:3000",
    },
}


def default_config() -> Dict[str, Any]:
    """Return a fresh deep copy of the full default configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)


def merge_with_defaults(user: Dict[str, Any]) -> Dict[str, Any]:
    """Fill every recognised key missing from ``user`` without dropping user keys."""
    merged = copy.deepcopy(user)
    for key, default in DEFAULT_CONFIG.items():
        if isinstance(default, dict):
            section = merged.get(key)
            if not isinstance(section, dict):
                if key in merged:
                    logger.warning(f"config.json: replacing non-object {key!r} value {section!r} with defaults")
                merged[key] = copy.deepcopy(default)
                continue
            for sub_key, sub_default in default.items():
                section.setdefault(sub_key, sub_default)
        else:
            merged.setdefault(key, default)
    return merged


def missing_config_keys(user: Dict[str, Any]) -> List[str]:
    """List recognised keys absent from ``user`` as dotted paths."""
    missing: List[str] = []
    for key, default in DEFAULT_CONFIG.items():
        if key not in user:
            missing.append(key)
            continue
        if isinstance(default, dict):
            section = user[key]
            if not isinstance(section, dict):
                missing.append(key)
                continue
            missing.extend(f"{key}.{sub_key}" for sub_key in default if sub_key not in section)
    return missing


class Severity(str, Enum):
    """Severity of a finding."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class HealthStatus(str, Enum):
    """Overall health of a planning tree."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    BROKEN = "broken"


class FindingKind(str, Enum):
    """Rule that produced a finding."""

    PLANNING_MISSING = "planning_missing"
    PROJECT_MISSING = "project_missing"
    ROADMAP_MISSING = "roadmap_missing"
    ROADMAP_UNREADABLE = "roadmap_unreadable"
    CONFIG_INVALID = "config_invalid"
    STATE_MISSING = "state_missing"
    STATE_UNREADABLE = "state_unreadable"
    CONFIG_MISSING = "config_missing"
    MODEL_PROFILE_INVALID = "model_profile_invalid"
    PHASE_DIR_NAME = "phase_dir_name"
    CONFIG_INCOMPLETE = "config_incomplete"
    ORPHANED_PLAN = "orphaned_plan"
    PHASES_MISSING = "phases_missing"


FINDING_CODES: Dict[FindingKind, str] = {
    FindingKind.PLANNING_MISSING: "E001",
    FindingKind.PROJECT_MISSING: "E002",
    FindingKind.ROADMAP_MISSING: "E003",
    FindingKind.ROADMAP_UNREADABLE: "E004",
    FindingKind.CONFIG_INVALID: "E005",
    FindingKind.STATE_MISSING: "W001",
    FindingKind.STATE_UNREADABLE: "W002",
    FindingKind.CONFIG_MISSING: "W003",
    FindingKind.MODEL_PROFILE_INVALID: "W004",
    FindingKind.PHASE_DIR_NAME: "W005",
    FindingKind.CONFIG_INCOMPLETE: "W006",
    FindingKind.ORPHANED_PLAN: "I001",
    FindingKind.PHASES_MISSING: "I002",
}

# Finding kinds with a well-defined remediation, mapped to the repair action.
REPAIRABLE_KINDS: Dict[FindingKind, str] = {
    FindingKind.CONFIG_MISSING: "createConfig",
    FindingKind.CONFIG_INVALID: "resetConfig",
    FindingKind.STATE_MISSING: "regenerateState",
    FindingKind.STATE_UNREADABLE: "regenerateState",
}


@dataclass(slots=True)
class ProjectConfig:
    """Persisted tool configuration from ``.planning/config.json``."""

    model_profile: str = "balanced"
    commit_docs: bool = True
    workflow: Dict[str, bool] = field(default_factory=lambda: dict(DEFAULT_CONFIG["workflow"]))
    playwright: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_CONFIG["playwright"]))
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = dict(self.extra)
        data.update(
            {
                "model_profile": self.model_profile,
                "commit_docs": self.commit_docs,
                "workflow": dict(self.workflow),
                "playwright": dict(self.playwright),
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectConfig":
        """Create from a (possibly partial) dictionary, filling defaults."""
        merged = merge_with_defaults(data)
        extra = {
            key: value
            for key, value in merged.items()
            if key not in {"model_profile", "commit_docs", "workflow", "playwright"}
        }
        return cls(
            model_profile=merged["model_profile"],
            commit_docs=merged["commit_docs"],
            workflow=merged["workflow"],
            playwright=merged["playwright"],
            extra=extra,
        )


@dataclass(slots=True)
class RoadmapPhase:
    """One ``### Phase N: Title`` entry of the roadmap."""

    number: int
    title: str
    line: int = 0


@dataclass(slots=True)
class RoadmapDocument:
    """Declared phase list parsed from ``ROADMAP.md``."""

    path: Path
    exists: bool
    phases: List[RoadmapPhase] = field(default_factory=list)
    error: Optional[str] = None

    def numbers(self) -> set[int]:
        return {phase.number for phase in self.phases}

    def get(self, number: int) -> Optional[RoadmapPhase]:
        for phase in self.phases:
            if phase.number == number:
                return phase
        return None


@dataclass(slots=True)
class PhaseFile:
    """A PLAN, SUMMARY, CONTEXT or VERIFICATION document inside a phase directory."""

    name: str
    kind: str
    key: str


@dataclass(slots=True)
class PhaseDirectory:
    """On-disk unit of work for one phase.

    ``number`` is the leading integer of the name, so a decimal sub-phase such
    as ``02.1-hotfix`` belongs to phase 2.
    """

    number: int
    name: str
    path: Path
    files: List[PhaseFile] = field(default_factory=list)

    @property
    def slug(self) -> str:
        _, _, rest = self.name.partition("-")
        return rest

    def files_of_kind(self, kind: str) -> List[PhaseFile]:
        return [item for item in self.files if item.kind == kind]

    def orphaned_plans(self) -> List[PhaseFile]:
        """Return PLAN documents that have no SUMMARY with the same key."""
        summary_keys = {item.key for item in self.files_of_kind("SUMMARY")}
        return [plan for plan in self.files_of_kind("PLAN") if plan.key not in summary_keys]


@dataclass(slots=True)
class Finding:
    """One health or consistency observation."""

    kind: FindingKind
    severity: Severity
    message: str
    fix: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def code(self) -> str:
        return FINDING_CODES[self.kind]

    @property
    def repairable(self) -> bool:
        return self.kind in REPAIRABLE_KINDS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data: Dict[str, Any] = {
            "code": self.code,
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "fix": self.fix,
            "repairable": self.repairable,
        }
        if self.context:
            data["context"] = dict(self.context)
        return data


@dataclass(slots=True)
class RepairAction:
    """One corrective operation performed by the repair engine."""

    action: str
    success: bool
    path: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"action": self.action, "success": self.success}
        if self.path is not None:
            data["path"] = self.path
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(slots=True)
class ConsistencyReport:
    """Outcome of comparing roadmap phases against phase directories."""

    passed: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass(slots=True)
class HealthReport:
    """Severity-classified findings plus the aggregated status."""

    status: HealthStatus
    findings: List[Finding] = field(default_factory=list)
    repairs_performed: List[RepairAction] = field(default_factory=list)

    def by_severity(self, severity: Severity) -> List[Finding]:
        return [finding for finding in self.findings if finding.severity is severity]

    @property
    def errors(self) -> List[Finding]:
        return self.by_severity(Severity.ERROR)

    @property
    def warnings(self) -> List[Finding]:
        return self.by_severity(Severity.WARNING)

    @property
    def info(self) -> List[Finding]:
        return self.by_severity(Severity.INFO)

    def repairable(self) -> List[Finding]:
        return [finding for finding in self.findings if finding.repairable]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON shape emitted by ``validate health``."""
        data: Dict[str, Any] = {
            "status": self.status.value,
            "errors": [finding.to_dict() for finding in self.errors],
            "warnings": [finding.to_dict() for finding in self.warnings],
            "info": [finding.to_dict() for finding in self.info],
            "repairable_count": len(self.repairable()),
        }
        if self.repairs_performed:
            data["repairs_performed"] = [action.to_dict() for action in self.repairs_performed]
        return data
