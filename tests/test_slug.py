"""Tests for heading slugs and id allocation."""

from __future__ import annotations

import pytest

from repolens.document.slug import HeadingIdAllocator, slugify


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Title", "title"),
        ("  Hello   World  ", "hello-world"),
        ("1. Architecture & Stack", "1-architecture-stack"),
        ("C++ / Rust -- FFI", "c-rust-ffi"),
        ("核心 模块 Overview", "核心-模块-overview"),
        ("snake_case_name", "snake_case_name"),
        ("Ünïcödé", "ncd"),
        ("!!!", ""),
    ],
)
def test_slugify(text: str, expected: str) -> None:
    assert slugify(text) == expected


def test_allocator_suffixes_duplicates_in_first_seen_order() -> None:
    allocator = HeadingIdAllocator()

    ids = [allocator.allocate(text) for text in ("Intro", "Intro", "Usage", "Intro")]

    assert ids == ["intro", "intro-1", "usage", "intro-2"]
    assert "intro-1" in allocator
    assert len(allocator) == 4


def test_allocator_skips_suffix_that_is_already_taken() -> None:
    allocator = HeadingIdAllocator()

    assert allocator.allocate("Intro 1") == "intro-1"
    assert allocator.allocate("Intro") == "intro"
    assert allocator.allocate("Intro") == "intro-2"


def test_allocator_respects_reserved_ids() -> None:
    allocator = HeadingIdAllocator(["summary"])

    assert allocator.allocate("Summary") == "summary-1"
