"""Shared helpers for building .planning/ trees in tests."""

import textwrap
from pathlib import Path


ROADMAP = textwrap.dedent(
    """\
    # Roadmap

    ## Phases

    ### Phase 1: Foundation
    **Goal**: Project skeleton and tooling

    ### Phase 2: Auth
    **Goal**: Users can sign in
    """
)

STATE = textwrap.dedent(
    """\
    # Project State

    ## Current Position

    Phase: 2 of 2 (Auth)

    ## Session State

    Last session: 2025-01-15
    """
)

SUMMARY = textwrap.dedent(
    """\
    ---
    phase: "01"
    name: "Foundation"
    provides:
      - project skeleton
      - CI pipeline
    affects: [build]
    key-decisions:
      - Use pnpm workspaces
    patterns-established:
      - Feature folders
    tech-stack:
      added: [typescript, vitest]
    ---

    # Phase 1 Plan 1 Summary

    Skeleton in place.
    """
)


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def add_roadmap_phase(root: Path, number: int, title: str) -> None:
    roadmap = root / ".planning" / "ROADMAP.md"
    roadmap.write_text(
        roadmap.read_text(encoding="utf-8") + f"\n### Phase {number}: {title}\n**Goal**: {title}\n",
        encoding="utf-8",
    )

