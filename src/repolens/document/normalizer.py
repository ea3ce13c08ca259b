"""Repair helpers that clean up model-generated report markdown before parsing."""

from __future__ import annotations

import logging
import re
from typing import Sequence

from .syntax import (
    DIAGRAM_LANGUAGE,
    FENCE_OPEN_PATTERN,
    REPORT_LANGUAGE,
    is_fence_line,
    looks_like_diagram,
)

__all__ = ["normalize"]

LOGGER = logging.getLogger(__name__)

_MAX_PASSES = 64
_REPORT_TAGS = frozenset({REPORT_LANGUAGE, "md"})
_HEADING_LINE = re.compile(r"^[ \t]{0,3}#{1,6}[ \t]+\S")
_WRAPPER_OPEN = re.compile(r"^```(?P<lang>\w*)[ \t]*(?P<rest>.*)$")
_STRAY_LANGUAGE_LINE = re.compile(rf"^[ \t]*{DIAGRAM_LANGUAGE}[ \t]*(?:\n|\Z)", re.MULTILINE)


def normalize(raw: str) -> str:
    """Return ``raw`` with wrapper fences removed and diagram fences tagged.

    The repair rules feed into each other (dropping a stray ``mermaid`` line can
    expose an untagged diagram fence), so they are re-applied until the text stops
    changing. That makes the result stable under repeated normalization.
    """

    if not raw:
        return ""
    text = raw
    for _ in range(_MAX_PASSES):
        repaired = _repair_once(text)
        if repaired == text:
            break
        text = repaired
    else:  # pragma: no cover - every rule shrinks or settles the text
        LOGGER.debug("Report normalization did not settle after %s passes", _MAX_PASSES)
    return text


def _repair_once(text: str) -> str:
    text = _unwrap_outer_fence(text)
    text = _tag_diagram_fences(text)
    return _STRAY_LANGUAGE_LINE.sub("", text)


# ---------------------------------------------------------------------------
# Outer wrapper removal
# ---------------------------------------------------------------------------
def _unwrap_outer_fence(text: str) -> str:
    stripped = text.strip()
    if not stripped.startswith("```"):
        return text
    lines = stripped.split("\n")
    opening = FENCE_OPEN_PATTERN.match(lines[0])
    if opening is not None and opening.group("lang").lower() in _REPORT_TAGS:
        body = lines[1:]
        # An odd number of fence lines means the last one closes the wrapper.
        if body and _count_fences(body) % 2 == 1 and body[-1].strip() == "```":
            body = body[:-1]
        return "\n".join(body).strip()
    # A report that already has line-leading headings is never wrapped.
    if "\n#" in stripped:
        return text
    if len(lines) < 2 or lines[-1].strip() != "```" or _closing_fence_index(lines) != len(lines) - 1:
        return text
    wrapper = _WRAPPER_OPEN.match(lines[0])
    if wrapper is None:
        return text
    body = [wrapper.group("rest")] if wrapper.group("rest") else []
    body.extend(lines[1:-1])
    if not any(_HEADING_LINE.match(line) for line in body):
        return text
    LOGGER.debug("Unwrapping spurious outer fence around report body")
    return "\n".join(body).strip()


def _count_fences(lines: Sequence[str]) -> int:
    return sum(1 for line in lines if is_fence_line(line))


def _closing_fence_index(lines: Sequence[str]) -> int | None:
    """Return the index of the fence that closes the one opened on the first line."""

    for index in range(1, len(lines)):
        if is_fence_line(lines[index]):
            return index
    return None


# ---------------------------------------------------------------------------
# Diagram fence tagging
# ---------------------------------------------------------------------------
def _tag_diagram_fences(text: str) -> str:
    lines = text.split("\n")
    in_fence = False
    for index, line in enumerate(lines):
        if not is_fence_line(line):
            continue
        if in_fence:
            in_fence = False
            continue
        in_fence = True
        match = FENCE_OPEN_PATTERN.match(line)
        if match is None or match.group("lang") == DIAGRAM_LANGUAGE:
            continue
        first_line = _first_content_line(lines, index + 1)
        if first_line is not None and looks_like_diagram(first_line):
            lines[index] = f"{match.group('indent')}```{DIAGRAM_LANGUAGE}"
    return "\n".join(lines)


def _first_content_line(lines: Sequence[str], start: int) -> str | None:
    for line in lines[start:]:
        if is_fence_line(line):
            return None
        if line.strip():
            return line
    return None
