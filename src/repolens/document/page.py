"""Standalone HTML export of a prepared report with compiled diagrams."""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from ..diagrams.pipeline import DiagramRenderPipeline, DiagramRenderResult, RenderStatus
from ..theme import Palette, Theme, palette_for
from .blocks import DEFAULT_INLINE_THRESHOLD, BlockKind
from .renderer import BlockContext, BlockHandlerRegistry, DocumentRenderer
from .toc import PreparedDocument, TocEntry

__all__ = ["ExportedPage", "export_page", "render_diagram_result", "render_toc"]

LOGGER = logging.getLogger(__name__)

_PLACEHOLDER = "<!--rl-diagram-{index}-->"


@dataclass(slots=True)
class ExportedPage:
    """HTML page plus the diagram results it embeds."""

    html: str
    toc: tuple[TocEntry, ...]
    diagrams: List[DiagramRenderResult] = field(default_factory=list)

    @property
    def failed_diagrams(self) -> List[DiagramRenderResult]:
        return [result for result in self.diagrams if result.status is RenderStatus.ERROR]

    def metadata(self) -> Dict[str, Any]:
        return {
            "headings": len(self.toc),
            "diagrams": len(self.diagrams),
            "failed_diagrams": len(self.failed_diagrams),
        }


async def export_page(
    prepared: PreparedDocument,
    pipeline: DiagramRenderPipeline,
    *,
    theme: Theme = Theme.LIGHT,
    title: str | None = None,
    inline_threshold: int = DEFAULT_INLINE_THRESHOLD,
) -> ExportedPage:
    """Render ``prepared`` to a full HTML page.

    Diagrams are compiled through ``pipeline``; a diagram that fails to compile
    becomes an error panel showing its source and never fails the export.
    """

    registry = BlockHandlerRegistry()
    registry.register(BlockKind.DIAGRAM, _diagram_marker)
    renderer = DocumentRenderer(registry, inline_threshold=inline_threshold)
    rendered = renderer.render(prepared.normalized_text, toc=prepared.toc)

    sources = rendered.diagram_sources
    results = await pipeline.render_all(sources) if sources else []
    body = rendered.html
    for index, result in enumerate(results):
        body = body.replace(_PLACEHOLDER.format(index=index), render_diagram_result(result, index), 1)

    page_title = title or (prepared.toc[0].text if prepared.toc else "Report")
    page = _wrap_page(body, render_toc(prepared.toc), page_title, palette_for(theme), theme)
    exported = ExportedPage(html=page, toc=prepared.toc, diagrams=list(results))
    LOGGER.debug("Exported page %r: %s", page_title, exported.metadata())
    return exported


def render_diagram_result(result: DiagramRenderResult, index: int) -> str:
    if result.status is RenderStatus.SUCCESS and result.artifact is not None:
        artifact = result.artifact
        if artifact.is_svg:
            image = artifact.as_text()
        else:
            image = f'<img src="{artifact.data_uri()}" alt="Diagram {index + 1}">'
        return (
            f'<figure class="rl-diagram" data-diagram-index="{index}" data-status="success">'
            f'<a class="rl-diagram-zoom" href="{artifact.data_uri()}" target="_blank" title="Zoom">{image}</a>'
            "</figure>\n"
        )
    message = result.error or "Diagram is still loading"
    return (
        f'<div class="rl-diagram-error" data-diagram-index="{index}" data-status="{result.status.value}">'
        '<div class="rl-diagram-error-title">Diagram render failed</div>'
        f'<p class="rl-diagram-error-message">{html.escape(message)}</p>'
        f'<pre class="rl-diagram-source">{html.escape(result.source)}</pre>'
        "</div>\n"
    )


def render_toc(entries: Sequence[TocEntry]) -> str:
    if not entries:
        return ""
    items = "".join(
        f'<li class="rl-toc-level-{entry.level}">'
        f'<a id="toc-btn-{html.escape(entry.id, quote=True)}" href="#{html.escape(entry.id, quote=True)}">'
        f"{html.escape(entry.text)}</a></li>"
        for entry in entries
    )
    return f'<nav class="rl-toc"><div class="rl-toc-title">Contents</div><ul>{items}</ul></nav>'


def _diagram_marker(context: BlockContext) -> str:
    return _PLACEHOLDER.format(index=context.diagram_index) + "\n"


def _wrap_page(body: str, toc_html: str, title: str, palette: Palette, theme: Theme) -> str:
    fg = palette.css("foreground")
    bg = palette.css("background")
    surface = palette.css("surface")
    border = palette.css("border")
    accent = palette.css("accent")
    muted = palette.css("muted")
    warning = palette.css("warning")
    code_bg = palette.css("code_background")
    code_fg = palette.css("code_foreground")
    style = f"""
<style>
body {{
  margin: 0;
  background-color: {bg};
  color: {fg};
  font-family: Inter, 'Noto Sans SC', system-ui, -apple-system, sans-serif;
  line-height: 1.7;
}}
.rl-layout {{
  display: flex;
  align-items: flex-start;
}}
.rl-toc {{
  position: sticky;
  top: 0;
  width: 18rem;
  max-height: 100vh;
  overflow-y: auto;
  padding: 1.5rem 1rem;
  border-right: 1px solid {border};
  background-color: {surface};
  box-sizing: border-box;
}}
.rl-toc-title {{
  font-size: 0.75rem;
  font-weight: 700;
  text-transform: uppercase;
  color: {muted};
  margin-bottom: 0.75rem;
}}
.rl-toc ul {{
  list-style: none;
  margin: 0;
  padding: 0;
}}
.rl-toc a {{
  display: block;
  padding: 0.2rem 0.5rem;
  color: {fg};
  text-decoration: none;
  font-size: 0.875rem;
}}
.rl-toc .rl-toc-level-2 a {{ padding-left: 1rem; }}
.rl-toc .rl-toc-level-3 a {{ padding-left: 1.75rem; color: {muted}; }}
.rl-toc a:hover {{ color: {accent}; }}
.rl-content {{
  flex: 1;
  max-width: 56rem;
  padding: 2rem 3rem;
}}
.rl-content h1, .rl-content h2, .rl-content h3 {{
  scroll-margin-top: 6rem;
}}
.rl-content h2 {{
  border-bottom: 1px solid {border};
  padding-bottom: 0.4rem;
  margin-top: 2.5rem;
}}
.rl-content a {{ color: {accent}; }}
.rl-content table {{ border-collapse: collapse; }}
.rl-content th, .rl-content td {{ border-bottom: 1px solid {border}; padding: 0.5rem 0.75rem; }}
.rl-inline-code {{
  background-color: {surface};
  border: 1px solid {border};
  border-radius: 4px;
  padding: 0.1rem 0.35rem;
  font-family: 'Fira Code', 'Consolas', 'Courier New', monospace;
  font-size: 0.875em;
}}
.rl-code-block {{
  margin: 1.5rem 0;
  border: 1px solid {border};
  border-radius: 8px;
  overflow: hidden;
}}
.rl-code-header {{
  background-color: {surface};
  color: {muted};
  font-size: 0.75rem;
  font-family: 'Fira Code', monospace;
  padding: 0.4rem 1rem;
}}
.rl-code-block pre, .rl-diagram-source {{
  margin: 0;
  padding: 1rem;
  overflow-x: auto;
  background-color: {code_bg};
  color: {code_fg};
  font-family: 'Fira Code', 'Consolas', 'Courier New', monospace;
  font-size: 0.85rem;
}}
.rl-diagram {{
  margin: 1.5rem 0;
  padding: 1rem;
  border: 1px solid {border};
  border-radius: 8px;
  text-align: center;
  overflow-x: auto;
}}
.rl-diagram svg, .rl-diagram img {{ max-width: 100%; height: auto; }}
.rl-diagram-error {{
  margin: 1.5rem 0;
  border: 1px solid {warning};
  border-radius: 8px;
  overflow: hidden;
}}
.rl-diagram-error-title {{
  color: {warning};
  font-weight: 700;
  padding: 0.5rem 1rem 0;
}}
.rl-diagram-error-message {{
  color: {muted};
  font-size: 0.8rem;
  padding: 0 1rem;
}}
</style>
"""
    return (
        "<!DOCTYPE html>\n"
        f'<html lang="en" data-theme="{theme.value}">\n'
        "<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{html.escape(title)}</title>\n"
        f"{style}"
        "</head>\n"
        "<body>\n"
        f'<div class="rl-layout">{toc_html}<main class="rl-content">{body}</main></div>\n'
        "</body>\n"
        "</html>\n"
    )
