"""
Contract tests for validation and repair.

These tests pin the behaviour every caller relies on: how consistency
warnings relate to the roadmap and disk phase sets, how the health status is
derived, that repair is idempotent, and what a defaulted config contains.
"""

import itertools
import json
from pathlib import Path

import pytest

from planwarden.consistency import compare_phases
from planwarden.models import PhaseDirectory, RoadmapDocument, RoadmapPhase
from planwarden.workflow import ValidationManager

from tests.helpers import ROADMAP, STATE, write


NUMBERS = (1, 2, 3, 4)


def _subsets():
    for size in range(len(NUMBERS) + 1):
        yield from itertools.combinations(NUMBERS, size)


def _compare(declared, on_disk):
    roadmap = RoadmapDocument(
        path=Path("ROADMAP.md"),
        exists=True,
        phases=[RoadmapPhase(number, f"Phase {number}") for number in declared],
    )
    directories = [PhaseDirectory(number, f"{number:02d}-p", Path(f"{number:02d}-p")) for number in on_disk]
    return compare_phases(roadmap, directories)


def _build_tree(root, project, roadmap, state, config):
    planning = root / ".planning"
    planning.mkdir(parents=True)
    if project:
        write(planning / "PROJECT.md", "# Project\n")
    if roadmap:
        write(planning / "ROADMAP.md", ROADMAP)
    if state:
        write(planning / "STATE.md", STATE)
    if config == "valid":
        write(planning / "config.json", json.dumps({"model_profile": "balanced"}))
    elif config == "invalid":
        write(planning / "config.json", "{ not json")


class TestConsistencyContract:
    """Warnings cover the symmetric difference and every gap; only a missing roadmap fails."""

    def test_warnings_for_all_small_sets(self):
        """Test every pair of subsets of 1..4."""
        for declared in _subsets():
            for on_disk in _subsets():
                report = _compare(declared, on_disk)
                R, D = set(declared), set(on_disk)

                assert report.passed is True
                assert report.errors == []

                mismatches = [w for w in report.warnings if not w.startswith("Gap in phase numbering")]
                assert len(mismatches) == len(R ^ D), (declared, on_disk, report.warnings)
                for number in R - D:
                    assert any(f"Phase {number} " in w and "no directory" in w for w in mismatches)
                for number in D - R:
                    assert any(f"Phase {number:02d} exists on disk" in w for w in mismatches)

                gaps = "\n".join(w for w in report.warnings if w.startswith("Gap in phase numbering"))
                for number in range(1, max(R | D, default=0) + 1):
                    if number not in R | D:
                        assert str(number) in gaps, (declared, on_disk, report.warnings)

    def test_missing_roadmap_fails(self):
        """Test passed is false exactly when the roadmap is absent."""
        report = compare_phases(RoadmapDocument(path=Path("ROADMAP.md"), exists=False), [])

        assert report.passed is False
        assert any("ROADMAP.md not found" in error for error in report.errors)


class TestStatusContract:
    """broken iff .planning is absent, degraded iff errors remain, healthy otherwise."""

    def test_status_for_all_document_combinations(self, tmp_path):
        """Test every combination of present, absent and corrupt documents."""
        combinations = itertools.product((True, False), (True, False), (True, False), ("valid", "invalid", "missing"))
        for index, (project, roadmap, state, config) in enumerate(combinations):
            root = tmp_path / f"tree-{index}"
            _build_tree(root, project, roadmap, state, config)

            report = ValidationManager(root).validate_health()

            has_errors = not project or not roadmap or config == "invalid"
            expected = "degraded" if has_errors else "healthy"
            assert report["status"] == expected, (project, roadmap, state, config, report)
            assert bool(report["errors"]) is has_errors

    def test_absent_root_is_broken(self, tmp_path):
        """Test that no .planning directory is always broken."""
        report = ValidationManager(tmp_path).validate_health()

        assert report["status"] == "broken"


class TestRepairContract:
    """Repair is idempotent and only touches what is broken."""

    @pytest.mark.parametrize(
        "break_tree",
        [
            lambda planning: (planning / "STATE.md").unlink(),
            lambda planning: (planning / "config.json").unlink(),
            lambda planning: (planning / "config.json").write_text("{ broken", encoding="utf-8"),
            lambda planning: (planning / "STATE.md").write_bytes(b"\xff\xfe"),
        ],
        ids=["state-missing", "config-missing", "config-invalid", "state-unreadable"],
    )
    def test_second_repair_does_nothing(self, rich_project, break_tree):
        """Test repairs appear only on the first of two consecutive runs."""
        break_tree(rich_project / ".planning")
        manager = ValidationManager(rich_project)

        first = manager.validate_health(repair=True)
        second = manager.validate_health(repair=True)

        assert len(first["repairs_performed"]) == 1
        assert first["repairs_performed"][0]["success"] is True
        assert not second.get("repairs_performed")

    def test_defaulted_config_is_complete(self, rich_project):
        """Test both the reset and the ensure paths write the full defaults."""
        config_path = rich_project / ".planning" / "config.json"
        expected_playwright = {
            "enabled": False,
            "ui_verification": True,
            "e2e_generation": True,
            "dev_server_command": "npm run dev",
            "dev_server_port": 3000,
            "base_url": "http://localhost:3000",
        }

        config_path.write_text("[1, 2", encoding="utf-8")
        ValidationManager(rich_project).validate_health(repair=True)
        reset = json.loads(config_path.read_text(encoding="utf-8"))

        config_path.unlink()
        ValidationManager(rich_project).config_ensure_section()
        created = json.loads(config_path.read_text(encoding="utf-8"))

        for config in (reset, created):
            assert config["model_profile"] == "balanced"
            assert config["commit_docs"] is True
            assert config["workflow"]["research"] is True
            assert config["playwright"] == expected_playwright


class TestScenarioContract:
    """End-to-end scenario over the rich project."""

    def test_scenario(self, rich_project):
        """Test the documented sequence of edits and the reports they produce."""
        manager = ValidationManager(rich_project)
        planning = rich_project / ".planning"

        baseline = manager.validate_consistency()
        assert baseline["passed"] is True
        assert baseline["warnings"] == []

        (planning / "STATE.md").unlink()
        repaired = manager.validate_health(repair=True)
        assert {"action": "regenerateState", "success": True, "path": ".planning/STATE.md"} in repaired[
            "repairs_performed"
        ]
        assert "Session State" in (planning / "STATE.md").read_text(encoding="utf-8")

        (planning / "config.json").write_text("{ invalid json here }}}", encoding="utf-8")
        repaired = manager.validate_health(repair=True)
        assert [item["action"] for item in repaired["repairs_performed"]] == ["resetConfig"]
        assert json.loads((planning / "config.json").read_text(encoding="utf-8"))["model_profile"] == "balanced"
