"""Lazily loaded repository file tree.

Nodes live in an arena keyed by repository path; a directory stores the paths
of its children rather than the child nodes themselves. Children are fetched
once, on first expansion, and ordered at fetch time.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List

from ..services.github import DirectoryLister, EntryKind, RepoEntry, sort_entries
from .events import EventBus, FileSelected, TreeNodeLoaded

__all__ = ["TreeNode", "TreeRow", "LazyFileTree", "ROOT_PATH"]

LOGGER = logging.getLogger(__name__)

ROOT_PATH = ""

SelectionCallback = Callable[["TreeNode"], None]


@dataclass(slots=True)
class TreeNode:
    name: str
    path: str
    kind: EntryKind
    content_ref: str | None = None
    sha: str = ""
    children_loaded: bool = False
    children: List[str] = field(default_factory=list)
    expanded: bool = False
    loading: bool = False

    @property
    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @classmethod
    def from_entry(cls, entry: RepoEntry) -> "TreeNode":
        return cls(
            name=entry.name,
            path=entry.path,
            kind=entry.kind,
            content_ref=entry.content_ref,
            sha=entry.sha,
        )


@dataclass(slots=True, frozen=True)
class TreeRow:
    node: TreeNode
    depth: int


class LazyFileTree:
    """File tree for one repository backed by a :class:`DirectoryLister`."""

    def __init__(
        self,
        repository: str,
        lister: DirectoryLister,
        *,
        on_select: SelectionCallback | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._repository = repository
        self._lister = lister
        self._on_select = on_select
        self._bus = bus
        self._nodes: Dict[str, TreeNode] = {
            ROOT_PATH: TreeNode(name=repository, path=ROOT_PATH, kind=EntryKind.DIRECTORY, expanded=True)
        }
        self._inflight: Dict[str, asyncio.Task[List[str]]] = {}

    @property
    def repository(self) -> str:
        return self._repository

    @property
    def root(self) -> TreeNode:
        return self._nodes[ROOT_PATH]

    def node(self, path: str) -> TreeNode:
        try:
            return self._nodes[path]
        except KeyError:
            raise KeyError(f"Unknown tree path: {path!r}") from None

    def children(self, path: str = ROOT_PATH) -> List[TreeNode]:
        return [self._nodes[child] for child in self.node(path).children]

    async def load_root(self) -> List[TreeNode]:
        await self._ensure_children(self.root)
        return self.children(ROOT_PATH)

    async def expand(self, path: str) -> List[TreeNode]:
        """Show the children of ``path``, fetching them on first expansion only."""

        node = self.node(path)
        if not node.is_directory:
            raise ValueError(f"{path!r} is not a directory")
        await self._ensure_children(node)
        node.expanded = True
        return self.children(path)

    def collapse(self, path: str) -> None:
        node = self.node(path)
        if node.is_directory:
            node.expanded = False

    async def toggle(self, path: str) -> bool:
        """Flip visibility of ``path``; returns the new expanded state."""

        node = self.node(path)
        if node.expanded:
            self.collapse(path)
            return False
        await self.expand(path)
        return True

    def select_file(self, path: str) -> TreeNode:
        node = self.node(path)
        if node.is_directory:
            raise ValueError(f"{path!r} is a directory")
        LOGGER.debug("Selected %s:%s", self._repository, path)
        if self._bus is not None:
            self._bus.publish(FileSelected(repository=self._repository, path=path, content_ref=node.content_ref))
        if self._on_select is not None:
            self._on_select(node)
        return node

    def visible_rows(self) -> List[TreeRow]:
        """Flatten expanded directories into display rows (root excluded)."""

        return list(self._walk(ROOT_PATH, 0))

    def _walk(self, path: str, depth: int) -> Iterator[TreeRow]:
        for child_path in self._nodes[path].children:
            child = self._nodes[child_path]
            yield TreeRow(node=child, depth=depth)
            if child.is_directory and child.expanded:
                yield from self._walk(child_path, depth + 1)

    async def _ensure_children(self, node: TreeNode) -> None:
        if node.children_loaded:
            return
        task = self._inflight.get(node.path)
        if task is None:
            task = asyncio.ensure_future(self._fetch(node))
            self._inflight[node.path] = task
            task.add_done_callback(lambda _task, path=node.path: self._inflight.pop(path, None))
        # One cancelled expander must not cancel the fetch the others share.
        await asyncio.shield(task)

    async def _fetch(self, node: TreeNode) -> List[str]:
        node.loading = True
        try:
            entries = await self._lister.list_directory(self._repository, node.path)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOGGER.warning("Listing %s:%s failed: %s", self._repository, node.path or "/", exc)
            entries = None
        finally:
            node.loading = False

        if entries is None:
            node.children = []
        else:
            node.children = self._adopt(entries)
            node.children_loaded = True
        if self._bus is not None:
            self._bus.publish(
                TreeNodeLoaded(repository=self._repository, path=node.path, count=len(node.children))
            )
        return node.children

    def _adopt(self, entries: List[RepoEntry]) -> List[str]:
        paths: List[str] = []
        for entry in sort_entries(entries):
            existing = self._nodes.get(entry.path)
            if existing is None:
                self._nodes[entry.path] = TreeNode.from_entry(entry)
            paths.append(entry.path)
        return paths
