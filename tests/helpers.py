"""Shared test helpers and stub collaborators.

Import from here instead of redefining stubs in individual test files.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, Dict, List, Mapping, Sequence

from repolens.diagrams.pipeline import DiagramArtifact
from repolens.errors import DiagramCompileError
from repolens.services.github import EntryKind, RepoEntry
from repolens.theme import Theme


def svg_for(source: str) -> bytes:
    return f"<svg data-source='{len(source)}'></svg>".encode("utf-8")


class StubCompiler:
    """Diagram compiler stub that records every compile call.

    ``failures`` lists sources that raise :class:`DiagramCompileError`;
    ``gates`` maps a source to an event the compile waits on before returning.
    """

    def __init__(
        self,
        *,
        failures: Sequence[str] = (),
        gates: Mapping[str, asyncio.Event] | None = None,
    ) -> None:
        self.calls: List[Dict[str, Any]] = []
        self._failures = set(failures)
        self._gates = dict(gates or {})
        self.fail_next = False
        self.closed = False

    async def compile(self, source: str, theme: Theme, *, diagram_id: str) -> DiagramArtifact:
        self.calls.append({"source": source, "theme": theme, "diagram_id": diagram_id})
        gate = self._gates.get(source)
        if gate is not None:
            await gate.wait()
        if self.fail_next:
            self.fail_next = False
            raise DiagramCompileError("Parse error on line 1", diagram_id=diagram_id)
        if source in self._failures:
            raise DiagramCompileError("Parse error on line 1", diagram_id=diagram_id)
        return DiagramArtifact(diagram_id=diagram_id, data=svg_for(source))

    async def aclose(self) -> None:
        self.closed = True


def make_entry(path: str, kind: EntryKind = EntryKind.FILE, *, url: str | None = None) -> RepoEntry:
    name = path.rsplit("/", 1)[-1]
    content_ref = url if url is not None else (None if kind is EntryKind.DIRECTORY else f"https://raw.test/{path}")
    return RepoEntry(name=name, path=path, kind=kind, sha=f"sha-{path}", content_ref=content_ref)


class StubLister:
    """Directory lister stub keyed by path; records every call."""

    def __init__(
        self,
        listings: Mapping[str, Sequence[RepoEntry]] | None = None,
        *,
        errors: Mapping[str, Exception] | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.listings = {path: list(entries) for path, entries in (listings or {}).items()}
        self.errors = dict(errors or {})
        self.gate = gate
        self.calls: List[tuple[str, str]] = []

    async def list_directory(self, repository: str, path: str = "") -> List[RepoEntry]:
        self.calls.append((repository, path))
        if self.gate is not None:
            await self.gate.wait()
        if path in self.errors:
            raise self.errors[path]
        return list(self.listings.get(path, []))


class StubFetcher:
    def __init__(self, contents: Mapping[str, str] | None = None) -> None:
        self.contents = dict(contents or {})
        self.calls: List[str] = []
        self.gates: Dict[str, asyncio.Event] = {}

    async def fetch_file_content(self, content_ref: str) -> str:
        self.calls.append(content_ref)
        gate = self.gates.get(content_ref)
        if gate is not None:
            await gate.wait()
        return self.contents.get(content_ref, f"contents of {content_ref}")


class _StubCompletions:
    def __init__(self, owner: "StubOpenAI") -> None:
        self._owner = owner

    async def create(self, **payload: Any) -> Any:
        self._owner.requests.append(payload)
        if self._owner.errors:
            raise self._owner.errors.pop(0)
        message = SimpleNamespace(content=self._owner.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class StubOpenAI:
    """Stands in for ``AsyncOpenAI`` with a canned chat completion reply."""

    def __init__(self, reply: str | None = "# Report\n\nBody", *, errors: Sequence[Exception] = ()) -> None:
        self.reply = reply
        self.errors = list(errors)
        self.requests: List[Dict[str, Any]] = []
        self.closed = False
        self.chat = SimpleNamespace(completions=_StubCompletions(self))

    async def close(self) -> None:
        self.closed = True


class StubReportGenerator:
    def __init__(self, reply: str = "", *, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: List[tuple[str, str | None]] = []

    async def generate_report(self, identifier: str, description: str | None) -> str:
        self.calls.append((identifier, description))
        if self.error is not None:
            raise self.error
        return self.reply
