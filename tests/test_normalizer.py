"""Tests for report markdown repair."""

from __future__ import annotations

import pytest

from repolens.document.normalizer import normalize
from repolens.document.toc import extract_toc


def test_normalize_unwraps_markdown_fence() -> None:
    assert normalize("```markdown\n# Title\nHello\n```") == "# Title\nHello"


def test_normalize_handles_empty_input() -> None:
    assert normalize("") == ""


def test_normalize_keeps_inner_fences_of_markdown_wrapper() -> None:
    raw = "```markdown\n# Title\n```python\nprint('x')\n```\n```"

    assert normalize(raw) == "# Title\n```python\nprint('x')\n```"


def test_normalize_markdown_wrapper_without_closing_fence() -> None:
    raw = "```markdown\n# Title\n```python\nprint('x')\n```"

    assert normalize(raw) == "# Title\n```python\nprint('x')\n```"


def test_normalize_keeps_fence_when_report_has_line_leading_headings() -> None:
    raw = "```\n# Report\n\nIntro text\n```"

    assert normalize(raw) == raw


def test_normalize_unwraps_fence_with_heading_on_opening_line() -> None:
    raw = "``` # Report\nIntro text\n```"

    assert normalize(raw) == "# Report\nIntro text"


def test_normalize_unwraps_fence_around_indented_headings() -> None:
    raw = "```\n  ## Overview\nIntro text\n```"

    assert normalize(raw) == "## Overview\nIntro text"


def test_normalize_keeps_report_that_opens_and_closes_with_code_blocks() -> None:
    raw = "```bash\n# clone the repo\ngit clone x\n```\n\nSome prose.\n\n## Usage\n\n```bash\nmake\n```"

    result = normalize(raw)

    assert result == raw
    assert [entry.text for entry in extract_toc(result)] == ["Usage"]


def test_normalize_keeps_single_block_with_inline_comment() -> None:
    raw = "```python\nx = 1  # counter\n```"

    assert normalize(raw) == raw


def test_normalize_requires_outer_fence_to_close_on_last_line() -> None:
    raw = "```\n  # Title\n```\ntext\n```\ncode\n```"

    assert normalize(raw) == raw


def test_normalize_leaves_leading_code_block_alone() -> None:
    raw = "```python\nprint('hi')\n```\n\n# Heading\nBody"

    assert normalize(raw) == raw


def test_normalize_tags_sequence_diagram_fence() -> None:
    raw = "# Flows\n\n```\nsequenceDiagram\nA->>B: hi\n```\n"

    result = normalize(raw)

    assert "```mermaid\nsequenceDiagram" in result


def test_normalize_retags_diagram_with_wrong_language() -> None:
    raw = "Intro\n\n```text\n\ngraph TD\nA-->B\n```"

    assert normalize(raw) == "Intro\n\n```mermaid\n\ngraph TD\nA-->B\n```"


def test_normalize_does_not_tag_closing_fences() -> None:
    raw = "```python\nx = 1\n```\ngraph is a word here\n"

    assert normalize(raw) == raw


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("mermaid\n# Title", "# Title"),
        ("# Title\n\nmermaid\n```mermaid\ngraph TD\nA-->B\n```", "# Title\n\n```mermaid\ngraph TD\nA-->B\n```"),
    ],
)
def test_normalize_drops_stray_mermaid_lines(raw: str, expected: str) -> None:
    assert normalize(raw) == expected


def test_normalize_is_idempotent(sample_report: str) -> None:
    samples = [
        sample_report,
        "```markdown\n```markdown\n# Nested\n```\n```",
        "mermaid\n```\npie\n\"a\": 1\n```",
        "```\n```\n# inside\n```\n```",
        "plain text without structure",
        "   \n\n",
    ]
    for raw in samples:
        once = normalize(raw)
        assert normalize(once) == once
