"""Workspace access for a project's ``.planning/`` tree.

This module provides path layout, configuration management, the read-only
views (state snapshot, history digest, phase lookup) built on top of the
document readers, and phase completion.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path
from typing import Any, Dict, List

from .errors import NotFoundError
from .models import (
    CONFIG_RELATIVE_PATH,
    PLANNING_DIR_NAME,
    ProjectConfig,
    RoadmapPhase,
    default_config,
    merge_with_defaults,
    missing_config_keys,
)
from .planwarden_logging import (
    log_error_with_context,
    log_operation,
    log_performance,
    observability_hooks,
)
from .readers import (
    PlanningSnapshot,
    read_config,
    read_phase_document,
    read_snapshot,
)
from .repair import render_state, write_config

logger = logging.getLogger("planwarden.workspace")

ROADMAP_STATUS_LINE = re.compile(r"^\*\*Status\*\*:")
STATE_PHASE_LINE = re.compile(r"^Phase:")
STATE_STATUS_LINE = re.compile(r"^Status:")


class PlanningWorkspace:
    """Read and maintain the planning documents of one project root."""

    def __init__(self, root: Path | str):
        """Initialize workspace with given root directory.

        Nothing is created on disk; a missing tree is something to report.
        """
        self.root = Path(root).resolve()
        self.planning_dir = self.root / PLANNING_DIR_NAME
        self.phases_dir = self.planning_dir / "phases"

    @property
    def config_path(self) -> Path:
        return self.planning_dir / "config.json"

    @property
    def roadmap_path(self) -> Path:
        return self.planning_dir / "ROADMAP.md"

    @property
    def state_path(self) -> Path:
        return self.planning_dir / "STATE.md"

    @property
    def project_path(self) -> Path:
        return self.planning_dir / "PROJECT.md"

    def snapshot(self) -> PlanningSnapshot:
        """Read the tree from scratch; nothing is cached between calls."""
        return read_snapshot(self.root)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def load_config(self) -> ProjectConfig:
        """Effective configuration: defaults for anything absent or unreadable."""
        config = read_config(self.root)
        if not config.valid:
            return ProjectConfig.from_dict({})
        return ProjectConfig.from_dict(config.data)

    @log_performance("ensure_config")
    def ensure_config(self) -> Dict[str, Any]:
        """Create config.json with full defaults, or fill keys missing from an existing one."""
        try:
            with log_operation("ensure_config", path=str(self.config_path)):
                config = read_config(self.root)

                if not config.exists:
                    write_config(self.config_path, default_config())
                    logger.info(f"Created {self.config_path}")
                    observability_hooks.log_planning_event("config_ensured", root=str(self.root), created=True)
                    return {"created": True, "path": CONFIG_RELATIVE_PATH}

                if not config.valid:
                    logger.warning(f"Leaving unparseable {self.config_path} untouched: {config.error}")
                    return {
                        "created": False,
                        "reason": "invalid_json",
                        "error": config.error,
                        "path": CONFIG_RELATIVE_PATH,
                    }

                added = missing_config_keys(config.data)
                if added:
                    write_config(self.config_path, merge_with_defaults(config.data))
                    logger.info(f"Added missing config keys: {', '.join(added)}")
                observability_hooks.log_planning_event(
                    "config_ensured", root=str(self.root), created=False, added_keys=added
                )
                return {
                    "created": False,
                    "reason": "already_exists",
                    "path": CONFIG_RELATIVE_PATH,
                    "added_keys": added,
                }
        except OSError as e:
            log_error_with_context(e, {"operation": "ensure_config", "path": str(self.config_path)})
            raise

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def state_snapshot(self) -> Dict[str, Any]:
        """Summarise which documents exist, with the effective config and raw state."""
        snapshot = self.snapshot()
        return {
            "config": self.load_config().to_dict(),
            "state_raw": snapshot.state.content or "",
            "state_exists": snapshot.state.exists,
            "roadmap_exists": snapshot.roadmap.exists,
            "config_exists": snapshot.config.exists,
            "project_exists": snapshot.project.exists,
            "phase_count": len(snapshot.phases),
        }

    @log_performance("history_digest")
    def history_digest(self) -> Dict[str, Any]:
        """Aggregate SUMMARY frontmatter across all phases.

        Corrupt summaries contribute whatever metadata could be salvaged and
        an entry in ``issues``; they never abort the digest.
        """
        phases: Dict[str, Dict[str, Any]] = {}
        decisions: List[Dict[str, str]] = []
        tech_stack: List[str] = []
        issues: List[Dict[str, str]] = []

        for directory in self.snapshot().phases:
            for summary in directory.files_of_kind("SUMMARY"):
                path = directory.path / summary.name
                _, parsed = read_phase_document(path)
                relative = path.relative_to(self.root).as_posix()
                for issue in parsed.issues:
                    issues.append({"file": relative, "issue": issue})
                if not parsed.metadata:
                    continue

                key = f"{directory.number:02d}"
                entry = phases.setdefault(
                    key,
                    {"name": directory.slug or directory.name, "provides": [], "affects": [], "patterns": []},
                )
                name = parsed.metadata.get("name")
                if isinstance(name, str) and name:
                    entry["name"] = name
                _extend_unique(entry["provides"], parsed.get_list("provides"))
                _extend_unique(entry["affects"], parsed.get_list("affects"))
                _extend_unique(entry["patterns"], parsed.get_list("patterns-established"))

                for decision in parsed.get_list("key-decisions"):
                    decisions.append({"phase": key, "decision": str(decision)})

                stack = parsed.metadata.get("tech-stack")
                if isinstance(stack, dict):
                    added = stack.get("added") or []
                    _extend_unique(tech_stack, added if isinstance(added, list) else [added])
                elif isinstance(stack, list):
                    _extend_unique(tech_stack, stack)

        if issues:
            logger.warning(f"History digest skipped {len(issues)} frontmatter issue(s)")
        return {"phases": phases, "decisions": decisions, "tech_stack": tech_stack, "issues": issues}

    def find_phase(self, number: int) -> Dict[str, Any]:
        """Describe phase ``number`` from the roadmap and disk, or raise NotFoundError."""
        snapshot = self.snapshot()
        declared = snapshot.roadmap.get(number)
        directory = next((item for item in snapshot.phases if item.number == number), None)
        if declared is None and directory is None:
            raise NotFoundError(f"Phase {number} not found")

        result: Dict[str, Any] = {
            "phase_number": number,
            "title": declared.title if declared else None,
            "in_roadmap": declared is not None,
            "on_disk": directory is not None,
            "directory": None,
            "plans": [],
            "summaries": [],
            "orphaned_plans": [],
        }
        if directory is not None:
            result.update(
                {
                    "directory": directory.path.relative_to(self.root).as_posix(),
                    "plans": [item.name for item in directory.files_of_kind("PLAN")],
                    "summaries": [item.name for item in directory.files_of_kind("SUMMARY")],
                    "orphaned_plans": [item.name for item in directory.orphaned_plans()],
                }
            )
        return result

    # ------------------------------------------------------------------
    # Phase completion
    # ------------------------------------------------------------------

    @log_performance("complete_phase")
    def complete_phase(self, number: int) -> Dict[str, Any]:
        """Mark phase ``number`` complete in ROADMAP.md and advance STATE.md.

        The roadmap heading gains a ``**Status**: Complete`` line and STATE.md's
        current position moves to the next known phase. A missing or unreadable
        STATE.md is regenerated first. Raises NotFoundError when neither the
        roadmap nor the phases directory knows the phase.
        """
        snapshot = self.snapshot()
        declared = snapshot.roadmap.get(number)
        directory = next((item for item in snapshot.phases if item.number == number), None)
        if declared is None and directory is None:
            raise NotFoundError(f"Phase {number} not found")

        known = snapshot.roadmap.numbers() | {item.number for item in snapshot.phases}
        following = sorted(candidate for candidate in known if candidate > number)
        next_phase = following[0] if following else None
        total = len(known)
        completed_on = date.today().isoformat()

        if next_phase is None:
            position = f"{number} of {total} ({_phase_title(snapshot, number)})"
            status = f"Milestone complete (phase {number} completed {completed_on})"
        else:
            position = f"{next_phase} of {total} ({_phase_title(snapshot, next_phase)})"
            status = f"Ready to plan (phase {number} completed {completed_on})"

        try:
            with log_operation("complete_phase", root=str(self.root), phase=number):
                roadmap_updated = False
                if declared is not None and snapshot.roadmap.error is None:
                    content = mark_roadmap_phase_complete(
                        snapshot.roadmap.path.read_text(encoding="utf-8"), declared, completed_on
                    )
                    self.roadmap_path.write_text(content, encoding="utf-8")
                    roadmap_updated = True

                state = snapshot.state.content if snapshot.state.readable else render_state(snapshot)
                self.state_path.parent.mkdir(parents=True, exist_ok=True)
                self.state_path.write_text(set_current_position(state or "", position, status), encoding="utf-8")
        except OSError as e:
            log_error_with_context(e, {"operation": "complete_phase", "root": str(self.root), "phase": number})
            raise

        logger.info(f"Phase {number} marked complete; next phase: {next_phase}")
        observability_hooks.log_planning_event(
            "phase_completed", root=str(self.root), phase=number, next_phase=next_phase
        )
        return {
            "completed_phase": number,
            "title": declared.title if declared else None,
            "roadmap_updated": roadmap_updated,
            "state_updated": True,
            "next_phase": next_phase,
            "is_last_phase": next_phase is None,
            "completed_on": completed_on,
        }


def _phase_title(snapshot: PlanningSnapshot, number: int) -> str:
    declared = snapshot.roadmap.get(number)
    if declared is not None and declared.title:
        return declared.title
    directory = next((item for item in snapshot.phases if item.number == number), None)
    if directory is not None:
        return directory.slug or directory.name
    return f"Phase {number}"


def mark_roadmap_phase_complete(content: str, phase: RoadmapPhase, completed_on: str) -> str:
    """Set the ``**Status**`` line directly under ``phase``'s heading."""
    lines = content.splitlines()
    status = f"**Status**: Complete ({completed_on})"
    heading = phase.line - 1

    end = len(lines)
    for index in range(heading + 1, len(lines)):
        if lines[index].lstrip().startswith("#"):
            end = index
            break

    for index in range(heading + 1, end):
        if ROADMAP_STATUS_LINE.match(lines[index].strip()):
            lines[index] = status
            break
    else:
        lines.insert(heading + 1, status)
    return "\n".join(lines) + "\n"


def set_current_position(content: str, position: str, status: str) -> str:
    """Rewrite the ``Phase:`` and ``Status:`` lines of STATE.md's current position."""
    lines = content.splitlines()
    phase_line = f"Phase: {position}"
    status_line = f"Status: {status}"

    phase_index = next((i for i, line in enumerate(lines) if STATE_PHASE_LINE.match(line)), None)
    if phase_index is None:
        section = next((i for i, line in enumerate(lines) if line.strip() == "## Current Position"), None)
        if section is None:
            lines.extend(["", "## Current Position", ""])
            phase_index = len(lines)
        else:
            phase_index = section + 1
            if phase_index < len(lines) and not lines[phase_index].strip():
                phase_index += 1
        lines.insert(phase_index, phase_line)
    else:
        lines[phase_index] = phase_line

    status_index = next((i for i, line in enumerate(lines) if STATE_STATUS_LINE.match(line)), None)
    if status_index is None:
        lines.insert(phase_index + 1, status_line)
    else:
        lines[status_index] = status_line
    return "\n".join(lines) + "\n"


def _extend_unique(target: List[Any], values: List[Any]) -> None:
    for value in values:
        item = str(value) if not isinstance(value, str) else value
        if item not in target:
            target.append(item)
