"""Turn raw model output into a normalized :class:`RepoAnalysis`."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Protocol

from ..document.normalizer import normalize

__all__ = [
    "RepoAnalysis",
    "ReportGenerator",
    "extract_summary",
    "generate_repo_analysis",
    "FALLBACK_SUMMARY",
    "SUMMARY_CHARS",
]

LOGGER = logging.getLogger(__name__)

FALLBACK_SUMMARY = "Technical deep dive"
SUMMARY_CHARS = 150
_SUMMARY_PATTERN = re.compile(r"#.*?\n+([^#]+)")


class ReportGenerator(Protocol):
    async def generate_report(self, identifier: str, description: str | None) -> str:
        ...


@dataclass(slots=True, frozen=True)
class RepoAnalysis:
    repo_name: str
    summary: str
    content: str


def extract_summary(content: str) -> str:
    """Return the prose following the first heading, clipped for list views."""

    match = _SUMMARY_PATTERN.search(content or "")
    if match is None:
        return FALLBACK_SUMMARY
    text = match.group(1).strip()
    if not text:
        return FALLBACK_SUMMARY
    return text[:SUMMARY_CHARS] + "..."


async def generate_repo_analysis(
    generator: ReportGenerator,
    repo_name: str,
    description: str | None = None,
) -> RepoAnalysis:
    """Request a report and return it normalized.

    Errors raised by ``generator`` propagate untouched so callers can show a
    failure state instead of a partial document.
    """

    raw = await generator.generate_report(repo_name, description)
    content = normalize(raw)
    LOGGER.debug("Normalized report for %s: %d -> %d chars", repo_name, len(raw), len(content))
    return RepoAnalysis(repo_name=repo_name, summary=extract_summary(content), content=content)
