"""Heading slug generation and per-document id allocation."""

from __future__ import annotations

import re
from typing import Iterable

__all__ = ["slugify", "HeadingIdAllocator"]

_WHITESPACE_PATTERN = re.compile(r"\s+")
# Word characters, hyphen, and CJK Unified Ideographs survive.
_DISALLOWED_PATTERN = re.compile(r"[^\w一-龥-]", re.ASCII)
_HYPHEN_RUN_PATTERN = re.compile(r"-{2,}")


def slugify(text: str) -> str:
    """Return a URL-safe identifier for heading ``text``.

    Distinct headings may share a slug; :class:`HeadingIdAllocator` resolves that.
    """

    slug = (text or "").lower().strip()
    slug = _WHITESPACE_PATTERN.sub("-", slug)
    slug = _DISALLOWED_PATTERN.sub("", slug)
    slug = _HYPHEN_RUN_PATTERN.sub("-", slug)
    return slug.strip("-")


class HeadingIdAllocator:
    """Hands out unique heading ids in first-seen order."""

    def __init__(self, reserved: Iterable[str] | None = None) -> None:
        self._used: set[str] = set(reserved or ())

    def allocate(self, text: str) -> str:
        base = slugify(text)
        candidate = base
        counter = 1
        while candidate in self._used:
            candidate = f"{base}-{counter}"
            counter += 1
        self._used.add(candidate)
        return candidate

    def __contains__(self, value: object) -> bool:
        return value in self._used

    def __len__(self) -> int:
        return len(self._used)
