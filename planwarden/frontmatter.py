"""Tolerant frontmatter parsing for PLAN and SUMMARY documents.

Human-edited documents routinely carry broken YAML. Parsing here never
raises: the result always holds whatever metadata could be recovered, the
document body, and a list of issues describing what went wrong.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List

import yaml

logger = logging.getLogger("planwarden.frontmatter")

_DELIMITER = "---"
_TOP_LEVEL_KEY = re.compile(r"^([A-Za-z0-9_][A-Za-z0-9_.-]*):(?:\s+(.*))?$")


@dataclass(slots=True)
class FrontmatterResult:
    """Parsed-or-partial metadata, the body, and any parse issues."""

    metadata: Dict[str, Any] = field(default_factory=dict)
    body: str = ""
    issues: List[str] = field(default_factory=list)
    has_frontmatter: bool = False

    @property
    def ok(self) -> bool:
        return not self.issues

    def get_list(self, key: str) -> List[Any]:
        """Return ``key`` as a list; scalars are wrapped, anything else is empty."""
        value = self.metadata.get(key)
        if value is None:
            return []
        if isinstance(value, list):
            return value
        if isinstance(value, (str, int, float)):
            return [value]
        return []


def parse_frontmatter(text: str) -> FrontmatterResult:
    """Split optional ``---`` delimited YAML frontmatter from the body."""
    if not text.strip():
        return FrontmatterResult(body=text)

    lines = text.splitlines()
    if lines[0].strip() != _DELIMITER:
        return FrontmatterResult(body=text)

    closing = None
    for index in range(1, len(lines)):
        if lines[index].strip() == _DELIMITER:
            closing = index
            break

    if closing is None:
        return FrontmatterResult(
            body=text,
            issues=["frontmatter block is not terminated by '---'"],
            has_frontmatter=True,
        )

    block_lines = lines[1:closing]
    body = "\n".join(lines[closing + 1:])
    result = FrontmatterResult(body=body, has_frontmatter=True)

    try:
        data = yaml.safe_load("\n".join(block_lines))
    except yaml.YAMLError as e:
        detail = str(e).splitlines()[0] if str(e) else type(e).__name__
        result.issues.append(f"invalid YAML frontmatter: {detail}")
        result.metadata = _salvage_scalars(block_lines)
        logger.debug("Recovered %d frontmatter keys after YAML error", len(result.metadata))
        return result

    if data is None:
        return result
    if not isinstance(data, dict):
        result.issues.append(f"frontmatter is a {type(data).__name__}, expected a mapping")
        return result

    result.metadata = {str(key): value for key, value in data.items()}
    return result


def _salvage_scalars(block_lines: List[str]) -> Dict[str, Any]:
    """Recover the top-level ``key: value`` lines that parse on their own."""
    recovered: Dict[str, Any] = {}
    for line in block_lines:
        match = _TOP_LEVEL_KEY.match(line)
        if not match or not match.group(2):
            continue
        try:
            parsed = yaml.safe_load(line)
        except yaml.YAMLError:
            continue
        if isinstance(parsed, dict) and match.group(1) in parsed:
            recovered[match.group(1)] = parsed[match.group(1)]
    return recovered
