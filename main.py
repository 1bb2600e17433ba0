"""MCP server exposing planwarden validation and repair tools."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.resources import TextResource

from planwarden import ValidationManager
from planwarden.models import PLANNING_DIR_NAME
from planwarden.planwarden_logging import setup_logging_from_env

mcp = FastMCP("planwarden")


PROJECT_ROOT_ENV = "PLANWARDEN_PROJECT_ROOT"


def _candidate_bases() -> List[Path]:
    cwd = Path.cwd().resolve()
    return [cwd, *cwd.parents]


def _locate_planning_root() -> Optional[Path]:
    for base in _candidate_bases():
        if (base / PLANNING_DIR_NAME).is_dir():
            return base
    return None


def _resolve_root(root: Optional[str]) -> Path:
    if root:
        resolved = Path(root).expanduser().resolve()
        if not resolved.exists():
            raise ValueError(f"Provided root '{root}' does not exist.")
        return resolved

    env_root = os.getenv(PROJECT_ROOT_ENV)
    if env_root:
        env_path = Path(env_root).expanduser().resolve()
        if not env_path.exists():
            raise ValueError(
                f"Environment variable {PROJECT_ROOT_ENV} points to '{env_root}', which does not exist."
            )
        return env_path

    detected_root = _locate_planning_root()
    if detected_root:
        return detected_root

    # No tree anywhere above us: validate the current directory so it reports as broken.
    return Path.cwd().resolve()


def _manager(root: Optional[str]) -> ValidationManager:
    return ValidationManager(_resolve_root(root))


@mcp.tool()
def validate_consistency(root: Optional[str] = None) -> Dict[str, Any]:
    """Compare the phases declared in ROADMAP.md with the phase directories on disk.
    Reports phases missing on either side and gaps in the numbering.
    `passed` is false only when ROADMAP.md itself is missing."""

    return _manager(root).validate_consistency()


@mcp.tool()
def validate_health(repair: bool = False, root: Optional[str] = None) -> Dict[str, Any]:
    """Audit the .planning/ tree and classify findings as errors, warnings and info.
    With repair=True, regenerate a missing STATE.md and create or reset config.json,
    then report `repairs_performed` alongside the post-repair findings."""

    return _manager(root).validate_health(repair=repair)


@mcp.tool()
def config_ensure_section(root: Optional[str] = None) -> Dict[str, Any]:
    """Create .planning/config.json with the full defaults when it does not exist.
    An existing config keeps its values and only gains missing keys."""

    return _manager(root).config_ensure_section()


@mcp.tool()
def planning_state(root: Optional[str] = None) -> Dict[str, Any]:
    """Report which planning documents exist, the effective config and raw STATE.md."""

    return _manager(root).state()


@mcp.tool()
def history_digest(root: Optional[str] = None) -> Dict[str, Any]:
    """Aggregate decisions, provided capabilities and tech stack from SUMMARY frontmatter.
    Corrupt or empty summaries are listed under `issues` instead of failing the call."""

    return _manager(root).history_digest()


@mcp.tool()
def phase_info(phase_number: int, root: Optional[str] = None) -> Dict[str, Any]:
    """Describe one phase: roadmap title, directory, plans, summaries and orphaned plans."""

    return _manager(root).phase_info(phase_number)


@mcp.tool()
def complete_phase(phase_number: int, root: Optional[str] = None) -> Dict[str, Any]:
    """Mark a phase complete in ROADMAP.md and move STATE.md to the next phase.
    Fails with "Phase N not found" when neither the roadmap nor disk knows it."""

    return _manager(root).complete_phase(phase_number)


@mcp.resource("planwarden://health")
def resource_health():
    """Resource view rendering the current health report as text."""

    report = _manager(None).validate_health()
    lines = [f"Planning health: {report['status']}"]
    for section in ("errors", "warnings", "info"):
        entries = report[section]
        if not entries:
            continue
        lines.append("")
        lines.append(f"{section.capitalize()}:")
        for finding in entries:
            lines.append(f"- [{finding['code']}] {finding['message']}")
            if finding.get("fix"):
                lines.append(f"  Fix: {finding['fix']}")

    return TextResource(
        uri="planwarden://health",
        name="health",
        text="\n".join(lines),
        mime_type="text/plain",
    )


if __name__ == "__main__":
    setup_logging_from_env("INFO")
    mcp.run(transport="stdio")
