"""Health auditing of the planning tree.

The auditor is a pure function from a :class:`PlanningSnapshot` to a
:class:`HealthReport`. Checks run in a fixed order so that two audits of an
unchanged tree produce identical findings.
"""

from __future__ import annotations

import logging
from typing import List

from .models import (
    MODEL_PROFILES,
    Finding,
    FindingKind,
    HealthReport,
    HealthStatus,
    Severity,
    missing_config_keys,
)
from .readers import PlanningSnapshot

logger = logging.getLogger("planwarden.health")


def aggregate_status(planning_exists: bool, findings: List[Finding]) -> HealthStatus:
    """Fold findings into a single status; a missing root short-circuits to broken."""
    if not planning_exists:
        return HealthStatus.BROKEN
    if any(finding.severity is Severity.ERROR for finding in findings):
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


def audit(snapshot: PlanningSnapshot) -> HealthReport:
    """Run every health check against ``snapshot``."""
    if not snapshot.planning_exists:
        findings = [
            Finding(
                kind=FindingKind.PLANNING_MISSING,
                severity=Severity.ERROR,
                message=".planning/ directory not found",
                fix="Initialise the project to create .planning/",
                context={"path": str(snapshot.root / ".planning")},
            )
        ]
        return HealthReport(status=aggregate_status(False, findings), findings=findings)

    findings: List[Finding] = []
    findings.extend(_check_required_documents(snapshot))
    findings.extend(_check_config(snapshot))
    findings.extend(_check_phases(snapshot))

    report = HealthReport(status=aggregate_status(True, findings), findings=findings)
    logger.debug(
        f"Health of {snapshot.root}: {report.status.value} "
        f"({len(report.errors)} errors, {len(report.warnings)} warnings, {len(report.info)} info)"
    )
    return report


def _check_required_documents(snapshot: PlanningSnapshot) -> List[Finding]:
    findings: List[Finding] = []

    if not snapshot.project.exists:
        findings.append(
            Finding(
                kind=FindingKind.PROJECT_MISSING,
                severity=Severity.ERROR,
                message="PROJECT.md not found",
                fix="Recreate .planning/PROJECT.md describing the project",
            )
        )

    if not snapshot.roadmap.exists:
        findings.append(
            Finding(
                kind=FindingKind.ROADMAP_MISSING,
                severity=Severity.ERROR,
                message="ROADMAP.md not found",
                fix="Recreate .planning/ROADMAP.md with the phase list",
            )
        )
    elif snapshot.roadmap.error is not None:
        findings.append(
            Finding(
                kind=FindingKind.ROADMAP_UNREADABLE,
                severity=Severity.ERROR,
                message=f"ROADMAP.md could not be read: {snapshot.roadmap.error}",
                fix="Restore .planning/ROADMAP.md as a UTF-8 text file",
            )
        )

    # STATE.md is always regenerable, so its absence never degrades the tree.
    if not snapshot.state.exists:
        findings.append(
            Finding(
                kind=FindingKind.STATE_MISSING,
                severity=Severity.WARNING,
                message="STATE.md not found",
                fix="Run validate health --repair to regenerate it",
            )
        )
    elif snapshot.state.error is not None:
        findings.append(
            Finding(
                kind=FindingKind.STATE_UNREADABLE,
                severity=Severity.WARNING,
                message=f"STATE.md could not be read: {snapshot.state.error}",
                fix="Run validate health --repair to regenerate it",
            )
        )

    return findings


def _check_config(snapshot: PlanningSnapshot) -> List[Finding]:
    config = snapshot.config
    if not config.exists:
        return [
            Finding(
                kind=FindingKind.CONFIG_MISSING,
                severity=Severity.WARNING,
                message="config.json not found",
                fix="Run validate health --repair or config-ensure-section to create it",
            )
        ]
    if not config.valid:
        return [
            Finding(
                kind=FindingKind.CONFIG_INVALID,
                severity=Severity.ERROR,
                message=f"config.json: {config.error}",
                fix="Run validate health --repair to reset it to defaults",
            )
        ]

    findings: List[Finding] = []
    profile = config.data.get("model_profile")
    if profile is not None and profile not in MODEL_PROFILES:
        findings.append(
            Finding(
                kind=FindingKind.MODEL_PROFILE_INVALID,
                severity=Severity.WARNING,
                message=f'config.json: invalid model_profile "{profile}"',
                fix=f"Use one of: {', '.join(MODEL_PROFILES)}",
                context={"model_profile": profile},
            )
        )

    missing = missing_config_keys(config.data)
    if missing:
        findings.append(
            Finding(
                kind=FindingKind.CONFIG_INCOMPLETE,
                severity=Severity.WARNING,
                message=f"config.json is missing keys: {', '.join(missing)}",
                fix="Run config-ensure-section to add the missing defaults",
                context={"missing_keys": missing},
            )
        )
    return findings


def _check_phases(snapshot: PlanningSnapshot) -> List[Finding]:
    if not snapshot.phases_dir_exists:
        return [
            Finding(
                kind=FindingKind.PHASES_MISSING,
                severity=Severity.INFO,
                message="phases/ directory not found; no phase work has started",
            )
        ]

    findings: List[Finding] = []
    for name in snapshot.stray_phase_entries:
        findings.append(
            Finding(
                kind=FindingKind.PHASE_DIR_NAME,
                severity=Severity.WARNING,
                message=f'Phase directory "{name}" does not start with a phase number',
                fix="Rename it to NN-slug format (e.g. 01-setup)",
                context={"directory": name},
            )
        )

    for directory in snapshot.phases:
        for plan in directory.orphaned_plans():
            findings.append(
                Finding(
                    kind=FindingKind.ORPHANED_PLAN,
                    severity=Severity.INFO,
                    message=f"{directory.name}/{plan.name} has no SUMMARY.md (may be in progress)",
                    context={"phase": directory.number, "plan": plan.name},
                )
            )
    return findings
