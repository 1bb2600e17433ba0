"""Repair engine for the planning tree.

Only findings with a well-defined remediation are acted on: a missing or
unreadable STATE.md and a missing or corrupt config.json. Actions run in a
fixed order (config before state) and each failure is reported on its own
without stopping the others.
"""

from __future__ import annotations

import json
import logging
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List

from .models import (
    REPAIRABLE_KINDS,
    HealthReport,
    RepairAction,
    default_config,
)
from .planwarden_logging import log_repair_action
from .readers import PlanningSnapshot, planning_dir

logger = logging.getLogger("planwarden.repair")

REPAIR_ORDER = ("createConfig", "resetConfig", "regenerateState")

STATE_TEMPLATE = textwrap.dedent(
    """\
    # Project State

    ## Project Reference

    See: .planning/PROJECT.md

    ## Current Position

    Phase: {position}
    Status: Resuming after STATE.md was regenerated

    ## Session State

    Last session: {timestamp}
    Stopped at: STATE.md regenerated by validate health --repair
    Resume file: None
    """
)


def render_state(snapshot: PlanningSnapshot) -> str:
    """Render a fresh STATE.md from what the roadmap and phase layout show."""
    total = len(snapshot.roadmap.phases) or len(snapshot.phases)
    if snapshot.phases and total:
        current = snapshot.phases[-1]
        position = f"{current.number} of {total} ({current.name})"
    elif total:
        position = f"not started ({total} phases planned)"
    else:
        position = "unknown"
    timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
    return STATE_TEMPLATE.format(position=position, timestamp=timestamp)


def write_config(path: Path, data: Dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def _create_config(snapshot: PlanningSnapshot) -> Path:
    path = snapshot.config.path
    write_config(path, default_config())
    return path


def _regenerate_state(snapshot: PlanningSnapshot) -> Path:
    path = planning_dir(snapshot.root) / "STATE.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_state(snapshot), encoding="utf-8")
    return path


_ACTIONS: Dict[str, Callable[[PlanningSnapshot], Path]] = {
    "createConfig": _create_config,
    "resetConfig": _create_config,
    "regenerateState": _regenerate_state,
}


def planned_actions(report: HealthReport) -> List[str]:
    """Repair actions the findings call for, deduplicated and in execution order."""
    wanted = {REPAIRABLE_KINDS[finding.kind] for finding in report.repairable()}
    return [action for action in REPAIR_ORDER if action in wanted]


def run_repairs(snapshot: PlanningSnapshot, report: HealthReport) -> List[RepairAction]:
    """Apply one corrective action per fixable finding."""
    if not snapshot.planning_exists:
        return []

    performed: List[RepairAction] = []
    for name in planned_actions(report):
        try:
            path = _ACTIONS[name](snapshot)
        except OSError as e:
            logger.error(f"Repair {name} failed: {e}")
            action = RepairAction(action=name, success=False, error=str(e))
        else:
            logger.info(f"Repair {name} wrote {path}")
            action = RepairAction(action=name, success=True, path=path.relative_to(snapshot.root).as_posix())
        log_repair_action(str(snapshot.root), action.action, action.success)
        performed.append(action)
    return performed
