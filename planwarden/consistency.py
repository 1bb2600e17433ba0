"""Cross-reference the roadmap's declared phases with the on-disk phase layout."""

from __future__ import annotations

import logging
from typing import Iterable, List

from .models import ConsistencyReport, PhaseDirectory, RoadmapDocument
from .readers import PlanningSnapshot

logger = logging.getLogger("planwarden.consistency")


def check_consistency(snapshot: PlanningSnapshot) -> ConsistencyReport:
    """Diff roadmap phase numbers against phase directory numbers.

    Warnings never fail the check. Only a missing ROADMAP.md does.
    """
    return compare_phases(snapshot.roadmap, snapshot.phases)


def compare_phases(roadmap: RoadmapDocument, directories: List[PhaseDirectory]) -> ConsistencyReport:
    if not roadmap.exists:
        return ConsistencyReport(passed=False, errors=["ROADMAP.md not found"])

    report = ConsistencyReport(passed=True)
    if roadmap.error:
        report.warnings.append(f"ROADMAP.md could not be read: {roadmap.error}")

    declared = roadmap.numbers()
    on_disk: dict[int, str] = {}
    for directory in directories:
        on_disk.setdefault(directory.number, directory.name)

    for number in sorted(declared - on_disk.keys()):
        title = roadmap.get(number).title
        report.warnings.append(
            f'Phase {number} ("{title}") is listed in ROADMAP.md but has no directory on disk'
        )

    for number in sorted(on_disk.keys() - declared):
        report.warnings.append(
            f"Phase {number:02d} exists on disk ({on_disk[number]}) but not in ROADMAP.md"
        )

    known = declared | on_disk.keys()
    if known:
        missing = {i for i in range(1, max(known) + 1) if i not in known}
        if on_disk:
            missing |= {i for i in range(1, max(on_disk) + 1) if i not in on_disk}
        for run in _contiguous_runs(sorted(missing)):
            report.warnings.append(_gap_message(run))

    logger.debug(
        f"Consistency: {len(declared)} roadmap phases, {len(on_disk)} directories, "
        f"{len(report.warnings)} warnings"
    )
    return report


def _contiguous_runs(numbers: Iterable[int]) -> List[List[int]]:
    runs: List[List[int]] = []
    for number in numbers:
        if runs and runs[-1][-1] == number - 1:
            runs[-1].append(number)
        else:
            runs.append([number])
    return runs


def _gap_message(run: List[int]) -> str:
    if len(run) == 1:
        return f"Gap in phase numbering: phase {run[0]} is missing"
    listed = ", ".join(str(number) for number in run)
    return f"Gap in phase numbering: phases {listed} are missing"
