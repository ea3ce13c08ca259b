"""Table-of-contents extraction for normalized report markdown."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict

from .normalizer import normalize
from .slug import HeadingIdAllocator
from .syntax import is_fence_line

__all__ = [
    "TocEntry",
    "PreparedDocument",
    "extract_toc",
    "prepare_document",
    "clean_heading_text",
    "MAX_TOC_LEVEL",
]

MAX_TOC_LEVEL = 3
_HEADING_PATTERN = re.compile(r"^(?P<hashes>#{1,3})\s+(?P<title>.+)$")
# Optional closing run of an ATX heading; markdown-it drops it from the label.
_CLOSING_HASHES_PATTERN = re.compile(r"(?:^|[ \t]+)#+[ \t]*$")
_INLINE_MARKUP_PATTERN = re.compile(r"(\*\*|__|`|\[|\])")


@dataclass(frozen=True, slots=True)
class TocEntry:
    """One navigable heading of the rendered report."""

    id: str
    text: str
    level: int

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text, "level": self.level}


@dataclass(frozen=True, slots=True)
class PreparedDocument:
    """Normalized report text paired with its table of contents."""

    normalized_text: str
    toc: tuple[TocEntry, ...]


def clean_heading_text(text: str) -> str:
    """Strip emphasis, code, and bracket markup from a heading label."""

    return _INLINE_MARKUP_PATTERN.sub("", text).strip()


def extract_toc(normalized: str) -> list[TocEntry]:
    """Return level 1-3 headings in document order, skipping fenced regions."""

    entries: list[TocEntry] = []
    allocator = HeadingIdAllocator()
    in_fence = False
    for line in (normalized or "").split("\n"):
        if is_fence_line(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = _HEADING_PATTERN.match(line)
        if match is None:
            continue
        title = _CLOSING_HASHES_PATTERN.sub("", match.group("title").strip()).strip()
        if not title:
            continue
        label = clean_heading_text(title)
        entries.append(TocEntry(id=allocator.allocate(label), text=label, level=len(match.group("hashes"))))
    return entries


def prepare_document(raw: str) -> PreparedDocument:
    """Normalize ``raw`` and extract its table of contents in one step."""

    normalized = normalize(raw)
    return PreparedDocument(normalized_text=normalized, toc=tuple(extract_toc(normalized)))
