"""Command orchestration for planwarden.

This module ties the readers, checkers and repair engine together into the
operations exposed by the CLI and the MCP server. Every call re-reads the
planning tree and returns a JSON-ready dictionary.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from .consistency import check_consistency
from .health import audit
from .planwarden_logging import (
    log_error_with_context,
    log_operation,
    log_performance,
    observability_hooks,
)
from .repair import run_repairs
from .workspace import PlanningWorkspace

logger = logging.getLogger("planwarden.workflow")


class ValidationManager:
    """Runs validation, repair and reporting commands against one project root."""

    def __init__(self, root: Path | str):
        self.workspace = PlanningWorkspace(root)

    @property
    def root(self) -> Path:
        return self.workspace.root

    @log_performance("validate_consistency")
    def validate_consistency(self) -> Dict[str, Any]:
        """Compare ROADMAP.md phases with phase directories on disk."""
        with log_operation("validate_consistency", root=str(self.root)):
            report = check_consistency(self.workspace.snapshot())

        observability_hooks.log_planning_event(
            "consistency_checked",
            root=str(self.root),
            passed=report.passed,
            warnings=len(report.warnings),
        )
        return report.to_dict()

    @log_performance("validate_health")
    def validate_health(self, repair: bool = False) -> Dict[str, Any]:
        """Audit the planning tree, optionally repairing what can be repaired.

        With ``repair`` the returned findings come from a second audit taken
        after the repairs, so a fixed finding is never reported again.
        """
        try:
            with log_operation("validate_health", root=str(self.root), repair=repair):
                snapshot = self.workspace.snapshot()
                report = audit(snapshot)

                if repair:
                    performed = run_repairs(snapshot, report)
                    if performed:
                        report = audit(self.workspace.snapshot())
                        report.repairs_performed = performed
                        logger.info(
                            f"Performed {len(performed)} repair(s); status is now {report.status.value}"
                        )
        except Exception as e:
            log_error_with_context(e, {"operation": "validate_health", "root": str(self.root)})
            raise

        observability_hooks.log_planning_event(
            "health_audited",
            root=str(self.root),
            status=report.status.value,
            errors=len(report.errors),
            warnings=len(report.warnings),
            repairs=len(report.repairs_performed),
        )
        return report.to_dict()

    def config_ensure_section(self) -> Dict[str, Any]:
        """Create ``.planning/config.json`` with defaults when absent."""
        return self.workspace.ensure_config()

    def state(self) -> Dict[str, Any]:
        return self.workspace.state_snapshot()

    def history_digest(self) -> Dict[str, Any]:
        return self.workspace.history_digest()

    def phase_info(self, number: int) -> Dict[str, Any]:
        """Look up one phase; raises NotFoundError when no source knows it."""
        return self.workspace.find_phase(number)

    def complete_phase(self, number: int) -> Dict[str, Any]:
        """Mark a phase complete; raises NotFoundError for an unknown phase."""
        return self.workspace.complete_phase(number)
