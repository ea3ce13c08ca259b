"""Shared fence and diagram-keyword vocabulary for report parsing."""

from __future__ import annotations

import re

__all__ = [
    "FENCE_MARKER",
    "DIAGRAM_LANGUAGE",
    "DIAGRAM_KEYWORDS",
    "REPORT_LANGUAGE",
    "FENCE_OPEN_PATTERN",
    "is_fence_line",
    "looks_like_diagram",
]

FENCE_MARKER = "```"
DIAGRAM_LANGUAGE = "mermaid"
REPORT_LANGUAGE = "markdown"

# Order matters only for readability; every entry is matched as a prefix.
DIAGRAM_KEYWORDS: tuple[str, ...] = (
    "sequenceDiagram",
    "graph ",
    "classDiagram",
    "stateDiagram",
    "erDiagram",
    "pie",
    "gantt",
)

FENCE_OPEN_PATTERN = re.compile(r"^(?P<indent>[ \t]*)```(?P<lang>[\w+-]*)[ \t]*$")


def is_fence_line(line: str) -> bool:
    """Return ``True`` when ``line`` toggles a fenced region."""

    return line.strip().startswith(FENCE_MARKER)


def looks_like_diagram(content: str) -> bool:
    """Return ``True`` when the first non-blank text starts with a diagram keyword."""

    stripped = (content or "").lstrip()
    if not stripped:
        return False
    return stripped.startswith(DIAGRAM_KEYWORDS)
