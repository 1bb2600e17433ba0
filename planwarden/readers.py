"""Document readers for the ``.planning/`` tree.

Each reader takes the project root and returns a best-effort parsed value
with explicit existence and parse-error flags. Readers never raise for a
missing or malformed file; malformed content is reported through the
returned value so the auditors can turn it into findings.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import DataError
from .frontmatter import FrontmatterResult, parse_frontmatter
from .models import (
    PLANNING_DIR_NAME,
    PhaseDirectory,
    PhaseFile,
    RoadmapDocument,
    RoadmapPhase,
)

logger = logging.getLogger("planwarden.readers")

ROADMAP_HEADING = re.compile(r"^#{2,4}\s*Phase\s+(\d+)\s*:\s*(.*?)\s*$")
PHASE_DIR_NAME = re.compile(r"^(\d+)")
PHASE_FILE_NAME = re.compile(r"^(?:(.+)-)?(PLAN|SUMMARY|CONTEXT|VERIFICATION)\.md$")


def planning_dir(root: Path) -> Path:
    return Path(root) / PLANNING_DIR_NAME


@dataclass(slots=True)
class ConfigRead:
    """Result of reading ``config.json``."""

    path: Path
    exists: bool
    valid: bool = False
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass(slots=True)
class DocumentRead:
    """Result of reading a free-form markdown document."""

    path: Path
    exists: bool
    content: Optional[str] = None
    error: Optional[str] = None

    @property
    def readable(self) -> bool:
        return self.exists and self.error is None


@dataclass(slots=True)
class PlanningSnapshot:
    """Everything the validators need, read once per invocation."""

    root: Path
    planning_exists: bool
    config: ConfigRead
    roadmap: RoadmapDocument
    state: DocumentRead
    project: DocumentRead
    phases_dir_exists: bool = False
    phases: List[PhaseDirectory] = field(default_factory=list)
    stray_phase_entries: List[str] = field(default_factory=list)


def read_text(path: Path) -> DocumentRead:
    """Read a UTF-8 document, reporting absence or unreadability."""
    if not path.is_file():
        return DocumentRead(path=path, exists=path.exists(), error="not a file" if path.exists() else None)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return DocumentRead(path=path, exists=True, error=str(e))
    return DocumentRead(path=path, exists=True, content=content)


def read_config(root: Path) -> ConfigRead:
    """Load ``config.json``; invalid JSON yields ``valid=False`` with the parse message."""
    path = planning_dir(root) / "config.json"
    document = read_text(path)
    if not document.exists:
        return ConfigRead(path=path, exists=False)
    if document.error is not None:
        return ConfigRead(path=path, exists=True, error=f"Read error: {document.error}")

    try:
        data = parse_json_object(document.content or "", path)
    except DataError as e:
        logger.debug(f"Invalid JSON in {e.path}: {e}")
        return ConfigRead(path=path, exists=True, error=str(e))
    return ConfigRead(path=path, exists=True, valid=True, data=data)


def parse_json_object(text: str, path: Path) -> Dict[str, Any]:
    """Decode ``text`` as a JSON object or raise DataError."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DataError(f"JSON parse error: {e}", path=str(path)) from e
    if not isinstance(data, dict):
        raise DataError(f"JSON parse error: expected an object, got {type(data).__name__}", path=str(path))
    return data


def read_roadmap(root: Path) -> RoadmapDocument:
    """Collect ``### Phase N: Title`` headings from ``ROADMAP.md``."""
    path = planning_dir(root) / "ROADMAP.md"
    document = read_text(path)
    if not document.exists:
        return RoadmapDocument(path=path, exists=False)
    if document.error is not None:
        return RoadmapDocument(path=path, exists=True, error=document.error)

    phases: List[RoadmapPhase] = []
    seen: set[int] = set()
    for line_number, line in enumerate((document.content or "").splitlines(), start=1):
        match = ROADMAP_HEADING.match(line.strip())
        if not match:
            continue
        number = int(match.group(1))
        if number in seen:
            continue
        seen.add(number)
        phases.append(RoadmapPhase(number=number, title=match.group(2), line=line_number))
    return RoadmapDocument(path=path, exists=True, phases=phases)


def classify_phase_file(name: str) -> Optional[PhaseFile]:
    """Recognise ``NN-MM-PLAN.md`` style names; anything else is ignored."""
    match = PHASE_FILE_NAME.match(name)
    if not match:
        return None
    return PhaseFile(name=name, kind=match.group(2), key=match.group(1) or "")


def read_phase_directories(root: Path) -> tuple[List[PhaseDirectory], List[str]]:
    """List numbered phase directories, plus the names of entries that do not conform."""
    phases_root = planning_dir(root) / "phases"
    if not phases_root.is_dir():
        return [], []

    try:
        entries = sorted(phases_root.iterdir(), key=lambda entry: entry.name)
    except OSError as e:
        logger.warning(f"Could not list {phases_root}: {e}")
        return [], []

    directories: List[PhaseDirectory] = []
    stray: List[str] = []
    for entry in entries:
        if not entry.is_dir():
            continue
        match = PHASE_DIR_NAME.match(entry.name)
        if not match:
            stray.append(entry.name)
            continue
        directories.append(
            PhaseDirectory(
                number=int(match.group(1)),
                name=entry.name,
                path=entry,
                files=_list_phase_files(entry),
            )
        )
    directories.sort(key=lambda directory: (directory.number, directory.name))
    return directories, stray


def _list_phase_files(directory: Path) -> List[PhaseFile]:
    try:
        names = sorted(child.name for child in directory.iterdir() if child.is_file())
    except OSError as e:
        logger.warning(f"Could not list {directory}: {e}")
        return []
    files = []
    for name in names:
        classified = classify_phase_file(name)
        if classified is not None:
            files.append(classified)
    return files


def read_phase_document(path: Path) -> tuple[DocumentRead, FrontmatterResult]:
    """Read a PLAN or SUMMARY document and split its frontmatter tolerantly."""
    document = read_text(path)
    if not document.readable:
        issues = [document.error] if document.error else ["file not found"]
        return document, FrontmatterResult(issues=issues)
    return document, parse_frontmatter(document.content or "")


def read_snapshot(root: Path | str) -> PlanningSnapshot:
    """Read the whole planning tree from scratch."""
    root = Path(root)
    base = planning_dir(root)
    phases, stray = read_phase_directories(root)
    snapshot = PlanningSnapshot(
        root=root,
        planning_exists=base.is_dir(),
        config=read_config(root),
        roadmap=read_roadmap(root),
        state=read_text(base / "STATE.md"),
        project=read_text(base / "PROJECT.md"),
        phases_dir_exists=(base / "phases").is_dir(),
        phases=phases,
        stray_phase_entries=stray,
    )
    logger.debug(
        f"Snapshot of {root}: planning={snapshot.planning_exists} "
        f"roadmap_phases={len(snapshot.roadmap.phases)} disk_phases={len(phases)}"
    )
    return snapshot
