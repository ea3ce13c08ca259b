"""Headless controller for one repository analysis view.

The view owns the prepared report, the active-heading state with its
scroll-spy, and the lazily loaded file tree. It switches between document
mode and file mode; the scroll-spy only runs in document mode.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

from ..document.renderer import DocumentRenderer, RenderedDocument
from ..document.toc import PreparedDocument, TocEntry, prepare_document
from ..services.github import DirectoryLister, FileContentFetcher, GitHubClient, language_for_filename
from .events import EventBus, FileContentLoaded, ViewModeChanged
from .file_tree import LazyFileTree, TreeNode
from .scroll_spy import (
    DEFAULT_ACTIVATION_OFFSET,
    DEFAULT_BOTTOM_TOLERANCE,
    ActiveHeaderState,
    RevealCallback,
    Scroller,
    ScrollSpy,
    ViewportProvider,
    ViewportState,
)

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..services.settings import Settings

__all__ = ["AnalysisView", "FileView", "ViewMode", "MISSING_CONTENT_PLACEHOLDER"]

LOGGER = logging.getLogger(__name__)

MISSING_CONTENT_PLACEHOLDER = "Unable to read file content (API limit)"


class ViewMode(str, Enum):
    DOCUMENT = "document"
    FILE = "file"


@dataclass(slots=True)
class FileView:
    path: str
    name: str
    language: str
    content: str = ""
    loading: bool = True


class AnalysisView:
    def __init__(
        self,
        repo_name: str,
        report: str | PreparedDocument,
        *,
        lister: DirectoryLister,
        fetcher: FileContentFetcher,
        bus: EventBus | None = None,
        viewport_provider: ViewportProvider | None = None,
        scroller: Scroller | None = None,
        reveal: RevealCallback | None = None,
        renderer: DocumentRenderer | None = None,
        bottom_tolerance: float = DEFAULT_BOTTOM_TOLERANCE,
        activation_offset: float = DEFAULT_ACTIVATION_OFFSET,
    ) -> None:
        self._repo_name = repo_name
        self._document = report if isinstance(report, PreparedDocument) else prepare_document(report)
        self._fetcher = fetcher
        self._bus = bus
        self._renderer = renderer
        self._rendered: RenderedDocument | None = None
        self._mode = ViewMode.DOCUMENT
        self._file_view: FileView | None = None
        self._file_generation = 0
        self.active_header = ActiveHeaderState(bus=bus)
        self.scroll_spy = ScrollSpy(
            self.active_header,
            self._document.toc,
            viewport_provider=viewport_provider,
            scroller=scroller,
            reveal=reveal,
            bottom_tolerance=bottom_tolerance,
            activation_offset=activation_offset,
        )
        self.tree = LazyFileTree(repo_name, lister, bus=bus)
        self._owned_client: GitHubClient | None = None

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        repo_name: str,
        report: str | PreparedDocument,
        *,
        github: GitHubClient | None = None,
        bus: EventBus | None = None,
        viewport_provider: ViewportProvider | None = None,
        scroller: Scroller | None = None,
        reveal: RevealCallback | None = None,
    ) -> "AnalysisView":
        """Build a view whose tree and file viewer use a GitHub client from ``settings``.

        A client created here is owned by the view and closed by :meth:`aclose`.
        """

        client = github or GitHubClient.from_settings(settings)
        view = cls(
            repo_name,
            report,
            lister=client,
            fetcher=client,
            bus=bus,
            viewport_provider=viewport_provider,
            scroller=scroller,
            reveal=reveal,
            renderer=DocumentRenderer(inline_threshold=settings.inline_code_threshold),
            bottom_tolerance=settings.scroll_bottom_tolerance,
            activation_offset=settings.scroll_activation_offset,
        )
        if github is None:
            view._owned_client = client
        return view

    @property
    def repo_name(self) -> str:
        return self._repo_name

    @property
    def document(self) -> PreparedDocument:
        return self._document

    @property
    def toc(self) -> Tuple[TocEntry, ...]:
        return self._document.toc

    @property
    def mode(self) -> ViewMode:
        return self._mode

    @property
    def file_view(self) -> Optional[FileView]:
        return self._file_view

    def render(self) -> RenderedDocument:
        """Render the report once; later calls reuse the result."""

        if self._rendered is None:
            renderer = self._renderer or DocumentRenderer()
            self._rendered = renderer.render(self._document.normalized_text, toc=self._document.toc)
        return self._rendered

    async def open(self) -> List[TreeNode]:
        """Arm the scroll-spy and load the top level of the file tree."""

        self.scroll_spy.arm()
        return await self.tree.load_root()

    def on_scroll(self, viewport: ViewportState) -> Optional[str]:
        return self.scroll_spy.on_scroll(viewport)

    async def select_file(self, path: str) -> FileView:
        node = self.tree.select_file(path)
        self._file_generation += 1
        generation = self._file_generation
        view = FileView(path=node.path, name=node.name, language=language_for_filename(node.name))
        self._file_view = view
        self._enter_file_mode(node.path)

        if node.content_ref:
            content = await self._fetcher.fetch_file_content(node.content_ref)
        else:
            content = MISSING_CONTENT_PLACEHOLDER
        if generation != self._file_generation or self._file_view is not view:
            LOGGER.debug("Dropping stale content for %s", node.path)
            return view
        view.content = content
        view.loading = False
        if self._bus is not None:
            self._bus.publish(FileContentLoaded(path=view.path, language=view.language, content=content))
        return view

    def close_file(self) -> None:
        if self._mode is ViewMode.DOCUMENT:
            return
        self._file_generation += 1
        self._file_view = None
        self._mode = ViewMode.DOCUMENT
        if self._bus is not None:
            self._bus.publish(ViewModeChanged(mode=self._mode.value))
        self.scroll_spy.arm()

    def scroll_to_header(self, header_id: str) -> None:
        """Leave file mode if needed, then scroll to and highlight ``header_id``."""

        self.close_file()
        self.scroll_spy.select(header_id)

    async def aclose(self) -> None:
        client, self._owned_client = self._owned_client, None
        if client is not None:
            await client.aclose()

    def _enter_file_mode(self, path: str) -> None:
        already_in_file_mode = self._mode is ViewMode.FILE
        self._mode = ViewMode.FILE
        if not already_in_file_mode:
            self.scroll_spy.disarm()
            self.active_header.reset()
        if self._bus is not None:
            self._bus.publish(ViewModeChanged(mode=self._mode.value, file_path=path))
