"""Classification of fenced and inline code spans."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .syntax import DIAGRAM_LANGUAGE, looks_like_diagram

__all__ = [
    "BlockKind",
    "BlockClassification",
    "FencedBlock",
    "classify",
    "classify_block",
    "DEFAULT_INLINE_THRESHOLD",
    "FALLBACK_LANGUAGE",
]

DEFAULT_INLINE_THRESHOLD = 80
FALLBACK_LANGUAGE = "text"


class BlockKind(str, Enum):
    INLINE = "inline"
    CODE_BLOCK = "code_block"
    DIAGRAM = "diagram"


@dataclass(frozen=True, slots=True)
class FencedBlock:
    """A verbatim region of the report as seen by the renderer."""

    declared_language: str
    raw_content: str


@dataclass(frozen=True, slots=True)
class BlockClassification:
    """Result of :func:`classify`; ``language`` is only set for code blocks."""

    kind: BlockKind
    language: str | None = None

    @classmethod
    def inline(cls) -> "BlockClassification":
        return cls(BlockKind.INLINE)

    @classmethod
    def diagram(cls) -> "BlockClassification":
        return cls(BlockKind.DIAGRAM)

    @classmethod
    def code_block(cls, language: str) -> "BlockClassification":
        return cls(BlockKind.CODE_BLOCK, language)


def classify(
    declared_language: str | None,
    content: str,
    is_block_level: bool,
    *,
    inline_threshold: int = DEFAULT_INLINE_THRESHOLD,
) -> BlockClassification:
    """Decide how a code span should be rendered.

    Short single-line blocks are demoted to inline code because generated reports
    often fence shell one-liners. Untagged blocks that open with a diagram keyword
    are still treated as diagrams.
    """

    language = (declared_language or "").strip()
    text = content or ""
    is_diagram = language == DIAGRAM_LANGUAGE or (not language and looks_like_diagram(text))
    if not is_block_level:
        return BlockClassification.inline()
    if "\n" not in text and len(text) < inline_threshold and not is_diagram:
        return BlockClassification.inline()
    if is_diagram:
        return BlockClassification.diagram()
    return BlockClassification.code_block(language or FALLBACK_LANGUAGE)


def classify_block(
    block: FencedBlock,
    *,
    is_block_level: bool = True,
    inline_threshold: int = DEFAULT_INLINE_THRESHOLD,
) -> BlockClassification:
    return classify(
        block.declared_language,
        block.raw_content,
        is_block_level,
        inline_threshold=inline_threshold,
    )
