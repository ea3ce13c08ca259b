"""Markdown rendering with classified code/diagram blocks and TOC-aligned anchors."""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, MutableMapping, Sequence

from markdown_it import MarkdownIt
from markdown_it.token import Token

from .blocks import (
    DEFAULT_INLINE_THRESHOLD,
    BlockClassification,
    BlockKind,
    FencedBlock,
    classify,
)
from .slug import HeadingIdAllocator, slugify
from .toc import MAX_TOC_LEVEL, TocEntry, clean_heading_text, extract_toc

__all__ = [
    "BlockContext",
    "BlockHandler",
    "BlockHandlerRegistry",
    "DocumentRenderer",
    "RenderedDocument",
    "default_handlers",
]

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BlockContext:
    """A classified code span handed to a block handler."""

    block: FencedBlock
    classification: BlockClassification
    index: int
    diagram_index: int | None = None

    @property
    def content(self) -> str:
        return self.block.raw_content


BlockHandler = Callable[[BlockContext], str]


class BlockHandlerRegistry:
    """Maps :class:`BlockKind` values to HTML-producing handlers."""

    def __init__(self, handlers: Mapping[BlockKind, BlockHandler] | None = None) -> None:
        self._handlers: Dict[BlockKind, BlockHandler] = dict(default_handlers())
        if handlers:
            self._handlers.update(handlers)

    def register(self, kind: BlockKind, handler: BlockHandler) -> None:
        self._handlers[kind] = handler

    def handler_for(self, kind: BlockKind) -> BlockHandler:
        return self._handlers[kind]


@dataclass(slots=True)
class RenderedDocument:
    html: str
    toc: tuple[TocEntry, ...]
    blocks: List[BlockContext] = field(default_factory=list)

    @property
    def diagram_sources(self) -> List[str]:
        return [ctx.content for ctx in self.blocks if ctx.classification.kind is BlockKind.DIAGRAM]


class DocumentRenderer:
    """Render normalized report markdown through a registry of block handlers."""

    def __init__(
        self,
        handlers: BlockHandlerRegistry | Mapping[BlockKind, BlockHandler] | None = None,
        *,
        inline_threshold: int = DEFAULT_INLINE_THRESHOLD,
    ) -> None:
        if isinstance(handlers, BlockHandlerRegistry):
            self._registry = handlers
        else:
            self._registry = BlockHandlerRegistry(handlers)
        self._inline_threshold = inline_threshold
        self._md = self._build_markdown()

    def render(self, normalized_text: str, *, toc: Sequence[TocEntry] | None = None) -> RenderedDocument:
        text = normalized_text or ""
        entries = tuple(toc) if toc is not None else tuple(extract_toc(text))
        env: MutableMapping[str, Any] = {
            "anchors": _HeadingAnchors(entries),
            "blocks": [],
            "diagram_count": 0,
        }
        body = self._md.render(text, env)
        return RenderedDocument(html=body, toc=entries, blocks=list(env["blocks"]))

    def iter_blocks(self, normalized_text: str) -> List[BlockContext]:
        """Classify every code span without producing HTML."""

        env: MutableMapping[str, Any] = {"blocks": [], "diagram_count": 0}
        tokens = self._md.parse(normalized_text or "", env)
        for token in _walk_tokens(tokens):
            if token.type == "fence":
                self._record_block(_fence_language(token), _strip_trailing_newline(token.content), True, env)
            elif token.type == "code_block":
                self._record_block("", _strip_trailing_newline(token.content), True, env)
            elif token.type == "code_inline":
                self._record_block("", token.content, False, env)
        return list(env["blocks"])

    # ------------------------------------------------------------------
    # markdown-it wiring
    # ------------------------------------------------------------------
    def _build_markdown(self) -> MarkdownIt:
        md = MarkdownIt("commonmark", {"html": False, "typographer": False})
        md.enable("table")
        md.enable("strikethrough")
        render_token = md.renderer.renderToken

        def render_fence(tokens: Sequence[Token], idx: int, options: Any, env: MutableMapping[str, Any]) -> str:
            token = tokens[idx]
            content = _strip_trailing_newline(token.content)
            return self._render_block(_fence_language(token), content, True, env)

        def render_code_block(tokens: Sequence[Token], idx: int, options: Any, env: MutableMapping[str, Any]) -> str:
            content = _strip_trailing_newline(tokens[idx].content)
            return self._render_block("", content, True, env)

        def render_code_inline(tokens: Sequence[Token], idx: int, options: Any, env: MutableMapping[str, Any]) -> str:
            return self._render_block("", tokens[idx].content, False, env)

        def render_heading_open(tokens: Sequence[Token], idx: int, options: Any, env: MutableMapping[str, Any]) -> str:
            token = tokens[idx]
            anchors = env.get("anchors")
            level = int(token.tag[1:]) if token.tag[1:].isdigit() else 0
            if isinstance(anchors, _HeadingAnchors) and 1 <= level <= MAX_TOC_LEVEL:
                inline = tokens[idx + 1] if idx + 1 < len(tokens) else None
                label = clean_heading_text(inline.content if inline is not None else "")
                token.attrSet("id", anchors.anchor_for(level, label))
            return render_token(tokens, idx, options, env)

        md.renderer.rules["fence"] = render_fence
        md.renderer.rules["code_block"] = render_code_block
        md.renderer.rules["code_inline"] = render_code_inline
        md.renderer.rules["heading_open"] = render_heading_open
        return md

    def _record_block(
        self,
        language: str,
        content: str,
        is_block_level: bool,
        env: MutableMapping[str, Any],
    ) -> BlockContext:
        classification = classify(
            language,
            content,
            is_block_level,
            inline_threshold=self._inline_threshold,
        )
        diagram_index: int | None = None
        if classification.kind is BlockKind.DIAGRAM:
            diagram_index = int(env.get("diagram_count", 0))
            env["diagram_count"] = diagram_index + 1
        blocks: List[BlockContext] = env.setdefault("blocks", [])
        context = BlockContext(
            block=FencedBlock(declared_language=language, raw_content=content),
            classification=classification,
            index=len(blocks),
            diagram_index=diagram_index,
        )
        blocks.append(context)
        return context

    def _render_block(
        self,
        language: str,
        content: str,
        is_block_level: bool,
        env: MutableMapping[str, Any],
    ) -> str:
        context = self._record_block(language, content, is_block_level, env)
        handler = self._registry.handler_for(context.classification.kind)
        return handler(context)


class _HeadingAnchors:
    """Assigns heading ids by walking the TOC in step with rendered headings.

    Headings the line scanner did not see (setext headings, headings nested in
    lists) get fresh ids that cannot collide with TOC ids.
    """

    def __init__(self, entries: Sequence[TocEntry]) -> None:
        self._entries = list(entries)
        self._cursor = 0
        self._extra = HeadingIdAllocator(entry.id for entry in entries)

    def anchor_for(self, level: int, label: str) -> str:
        slug = slugify(label)
        for position in range(self._cursor, len(self._entries)):
            entry = self._entries[position]
            if entry.level == level and (entry.text == label or slugify(entry.text) == slug):
                self._cursor = position + 1
                return entry.id
        LOGGER.debug("Heading %r has no matching TOC entry; allocating a fresh anchor", label)
        return self._extra.allocate(label)


def default_handlers() -> Dict[BlockKind, BlockHandler]:
    return {
        BlockKind.INLINE: render_inline_code,
        BlockKind.CODE_BLOCK: render_code_block,
        BlockKind.DIAGRAM: render_diagram_placeholder,
    }


def render_inline_code(context: BlockContext) -> str:
    return f'<code class="rl-inline-code">{html.escape(context.content)}</code>'


def render_code_block(context: BlockContext) -> str:
    language = context.classification.language or "text"
    escaped_language = html.escape(language)
    return (
        '<div class="rl-code-block">'
        f'<div class="rl-code-header">{html.escape(language.upper())}</div>'
        f'<pre><code class="language-{escaped_language}">{html.escape(context.content)}</code></pre>'
        "</div>\n"
    )


def render_diagram_placeholder(context: BlockContext) -> str:
    return (
        f'<div class="rl-diagram" data-diagram-index="{context.diagram_index}" data-status="loading">'
        f'<pre class="rl-diagram-source">{html.escape(context.content)}</pre>'
        "</div>\n"
    )


def _fence_language(token: Token) -> str:
    info = (token.info or "").strip()
    return info.split(maxsplit=1)[0] if info else ""


def _strip_trailing_newline(content: str) -> str:
    return content[:-1] if content.endswith("\n") else content


def _walk_tokens(tokens: Iterable[Token]) -> Iterable[Token]:
    for token in tokens:
        yield token
        if token.children:
            yield from _walk_tokens(token.children)
