"""Unit tests for the planning document readers.

Readers must never raise for missing or malformed files.
"""

import json

import pytest

from planwarden.errors import DataError
from planwarden.readers import (
    classify_phase_file,
    parse_json_object,
    read_config,
    read_phase_directories,
    read_phase_document,
    read_roadmap,
    read_snapshot,
)

from tests.helpers import write


class TestReadConfig:
    """Test cases for read_config."""

    def test_missing_config(self, tmp_path):
        """Test that a missing config is reported, not raised."""
        result = read_config(tmp_path)

        assert result.exists is False
        assert result.valid is False

    def test_valid_config(self, rich_project):
        """Test reading a valid config."""
        result = read_config(rich_project)

        assert result.exists and result.valid
        assert result.data["model_profile"] == "balanced"

    def test_invalid_json(self, tmp_path):
        """Test that invalid JSON yields a parse error message."""
        write(tmp_path / ".planning" / "config.json", "{ invalid json here }}}")

        result = read_config(tmp_path)

        assert result.exists is True
        assert result.valid is False
        assert result.error.startswith("JSON parse error:")

    def test_empty_file_is_invalid(self, tmp_path):
        """Test that an empty config file is invalid JSON."""
        write(tmp_path / ".planning" / "config.json", "")

        assert read_config(tmp_path).valid is False

    def test_non_object_json(self, tmp_path):
        """Test that a JSON array is not accepted as a config."""
        write(tmp_path / ".planning" / "config.json", json.dumps([1, 2]))

        result = read_config(tmp_path)

        assert result.valid is False
        assert "expected an object" in result.error

    def test_parse_json_object_raises_data_error(self, tmp_path):
        """Test the decoding helper raises DataError carrying the path."""
        path = tmp_path / "config.json"

        with pytest.raises(DataError) as excinfo:
            parse_json_object("{ nope", path)

        assert str(excinfo.value).startswith("JSON parse error:")
        assert excinfo.value.path == str(path)
        assert isinstance(excinfo.value, ValueError)


class TestReadRoadmap:
    """Test cases for read_roadmap."""

    def test_missing_roadmap(self, tmp_path):
        """Test that a missing roadmap is reported."""
        roadmap = read_roadmap(tmp_path)

        assert roadmap.exists is False
        assert roadmap.phases == []

    def test_parses_phase_headings(self, tmp_path):
        """Test heading extraction ignores unrelated lines."""
        write(
            tmp_path / ".planning" / "ROADMAP.md",
            "# Roadmap\n\n### Phase 1: Foundation\ntext\n## Phase 02: Auth\n"
            "- Phase 9: not a heading\n#### Phase 3: Deep\n### Phase 1: Duplicate\n",
        )

        roadmap = read_roadmap(tmp_path)

        assert [(phase.number, phase.title) for phase in roadmap.phases] == [
            (1, "Foundation"),
            (2, "Auth"),
            (3, "Deep"),
        ]


class TestPhaseDirectories:
    """Test cases for phase directory scanning."""

    def test_classify_phase_file(self):
        """Test recognised and ignored file names."""
        assert classify_phase_file("02-01-PLAN.md").key == "02-01"
        assert classify_phase_file("02-01-SUMMARY.md").kind == "SUMMARY"
        assert classify_phase_file("01-CONTEXT.md").key == "01"
        assert classify_phase_file("PLAN.md").key == ""
        assert classify_phase_file("notes.md") is None

    def test_missing_phases_root(self, tmp_path):
        """Test that no phases directory means no phases."""
        assert read_phase_directories(tmp_path) == ([], [])

    def test_numbers_and_stray_entries(self, rich_project):
        """Test numeric prefixes are parsed and other entries are set aside."""
        phases_root = rich_project / ".planning" / "phases"
        (phases_root / "notes").mkdir()
        (phases_root / "10-later").mkdir()
        write(phases_root / "README.md", "not a directory")

        directories, stray = read_phase_directories(rich_project)

        assert [directory.number for directory in directories] == [1, 2, 10]
        assert stray == ["notes"]
        assert [item.name for item in directories[0].files] == [
            "01-01-PLAN.md",
            "01-01-SUMMARY.md",
            "01-VERIFICATION.md",
        ]

    def test_leading_digits_qualify(self, rich_project):
        """Test decimal sub-phases and undashed names count under their leading integer."""
        phases_root = rich_project / ".planning" / "phases"
        (phases_root / "02.1-hotfix").mkdir()
        (phases_root / "03extra").mkdir()

        directories, stray = read_phase_directories(rich_project)

        assert [(directory.number, directory.name) for directory in directories] == [
            (1, "01-foundation"),
            (2, "02-auth"),
            (2, "02.1-hotfix"),
            (3, "03extra"),
        ]
        assert stray == []
        assert directories[2].slug == "hotfix"


class TestReadPhaseDocument:
    """Test cases for read_phase_document."""

    def test_missing_document(self, tmp_path):
        """Test that a missing document is an issue, not an exception."""
        document, parsed = read_phase_document(tmp_path / "01-01-SUMMARY.md")

        assert document.exists is False
        assert parsed.issues == ["file not found"]

    def test_undecodable_document(self, tmp_path):
        """Test that bytes that are not UTF-8 are reported."""
        path = tmp_path / "01-01-SUMMARY.md"
        path.write_bytes(b"---\n\xff\xfe\n---\n")

        document, parsed = read_phase_document(path)

        assert document.exists is True
        assert document.error is not None
        assert parsed.metadata == {}
        assert parsed.issues


class TestSnapshot:
    """Test cases for read_snapshot."""

    def test_snapshot_of_rich_project(self, rich_project):
        """Test every source is read."""
        snapshot = read_snapshot(rich_project)

        assert snapshot.planning_exists
        assert snapshot.config.valid
        assert snapshot.roadmap.numbers() == {1, 2}
        assert snapshot.state.exists and snapshot.project.exists
        assert snapshot.phases_dir_exists
        assert [directory.name for directory in snapshot.phases] == ["01-foundation", "02-auth"]

    def test_snapshot_of_empty_directory(self, tmp_path):
        """Test a directory without .planning reads cleanly."""
        snapshot = read_snapshot(tmp_path)

        assert snapshot.planning_exists is False
        assert snapshot.config.exists is False
        assert snapshot.roadmap.exists is False
        assert snapshot.phases == []
