"""Shared fixtures: small and rich .planning/ trees built in tmp_path."""

import json
import logging

import pytest

from planwarden.models import default_config
from tests.helpers import ROADMAP, STATE, SUMMARY, write


@pytest.fixture
def minimal_project(tmp_path):
    """config.json (partial), ROADMAP.md and STATE.md; no PROJECT.md, no phases."""
    planning = tmp_path / ".planning"
    write(planning / "config.json", json.dumps({"model_profile": "balanced", "commit_docs": True}))
    write(planning / "ROADMAP.md", ROADMAP)
    write(planning / "STATE.md", STATE)
    return tmp_path


@pytest.fixture
def rich_project(tmp_path):
    """A complete tree with two phases; phase 02 has a plan without a summary."""
    planning = tmp_path / ".planning"
    write(planning / "config.json", json.dumps(default_config(), indent=2))
    write(planning / "PROJECT.md", "# Project\n\nA sample project.\n")
    write(planning / "ROADMAP.md", ROADMAP)
    write(planning / "STATE.md", STATE)

    foundation = planning / "phases" / "01-foundation"
    write(foundation / "01-01-PLAN.md", "---\nphase: 01-foundation\nplan: 01\n---\n\n# Plan\n")
    write(foundation / "01-01-SUMMARY.md", SUMMARY)
    write(foundation / "01-VERIFICATION.md", "# Phase 1 Verification\n")

    auth = planning / "phases" / "02-auth"
    write(auth / "02-01-PLAN.md", "---\nphase: 02-auth\nplan: 01\n---\n\n# Plan\n")
    return tmp_path


@pytest.fixture(autouse=True)
def reset_planwarden_logger():
    """Drop handlers installed by setup_logging so they never outlive a captured stream."""
    yield
    logger = logging.getLogger("planwarden")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
