"""Tests for table-of-contents extraction."""

from __future__ import annotations

from repolens.document.toc import TocEntry, clean_heading_text, extract_toc, prepare_document


def test_prepare_document_scenario() -> None:
    prepared = prepare_document("```markdown\n# Title\nHello\n```")

    assert prepared.normalized_text == "# Title\nHello"
    assert prepared.toc == (TocEntry(id="title", text="Title", level=1),)


def test_extract_toc_levels_and_order() -> None:
    text = "# One\n## Two\n### Three\n#### Four\n##NoSpace\n"

    toc = extract_toc(text)

    assert [(entry.text, entry.level) for entry in toc] == [("One", 1), ("Two", 2), ("Three", 3)]


def test_extract_toc_ignores_headings_inside_fences() -> None:
    text = "```bash\n# install deps\npip install x\n```\n\n```\n## not a heading\n```"

    assert extract_toc(text) == []


def test_extract_toc_ids_are_unique(sample_report: str) -> None:
    toc = prepare_document(sample_report).toc
    ids = [entry.id for entry in toc]

    assert len(ids) == len(set(ids))
    assert ids == [
        "demoengine-technical-deep-dive",
        "1-architecture-and-technology-stack",
        "architecture-overview",
        "2-hard-problems",
        "3-key-flows",
        "2-hard-problems-1",
    ]


def test_extract_toc_strips_inline_markup() -> None:
    toc = extract_toc("## **Core** `module` [link]\n")

    assert toc[0].text == "Core module link"
    assert toc[0].id == "core-module-link"


def test_clean_heading_text_keeps_plain_characters() -> None:
    assert clean_heading_text("__init__ & `main`") == "init & main"


def test_extract_toc_is_restartable() -> None:
    text = "# A\n# A\n"

    assert extract_toc(text) == extract_toc(text)
    assert [entry.id for entry in extract_toc(text)] == ["a", "a-1"]


def test_extract_toc_drops_closing_hash_run() -> None:
    entries = extract_toc("# Intro ##\n## C#\n### #tag\n# ###")

    assert [(entry.text, entry.level) for entry in entries] == [("Intro", 1), ("C#", 2), ("#tag", 3)]
