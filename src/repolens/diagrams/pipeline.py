"""Asynchronous diagram rendering with per-slot staleness tracking."""

from __future__ import annotations

import asyncio
import base64
import logging
import os
import tempfile
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, List, Protocol

from ..theme import Theme

__all__ = [
    "RenderStatus",
    "DiagramArtifact",
    "DiagramRenderResult",
    "DiagramCompilerProtocol",
    "DiagramSlot",
    "DiagramRenderPipeline",
    "LightboxHandle",
    "new_diagram_id",
    "DEFAULT_SETTLE_DELAY",
]

LOGGER = logging.getLogger(__name__)
DEFAULT_SETTLE_DELAY = 0.1
_MEDIA_SUFFIXES = {
    "image/svg+xml": ".svg",
    "image/png": ".png",
}

ThemeProvider = Callable[[], Theme]
ResultListener = Callable[["DiagramSlot", "DiagramRenderResult"], None]


def new_diagram_id() -> str:
    return f"mermaid-{uuid.uuid4().hex[:12]}"


class RenderStatus(str, Enum):
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class LightboxHandle:
    """Standalone image file backing a zoomed diagram view."""

    def __init__(self, artifact: "DiagramArtifact") -> None:
        self._artifact = artifact
        self._path: Path | None = None

    @property
    def path(self) -> Path:
        if self._path is None:
            suffix = _MEDIA_SUFFIXES.get(self._artifact.media_type, ".bin")
            fd, name = tempfile.mkstemp(prefix=f"{self._artifact.diagram_id}-", suffix=suffix)
            with os.fdopen(fd, "wb") as handle:
                handle.write(self._artifact.data)
            self._path = Path(name)
            LOGGER.debug("Exported diagram %s to %s", self._artifact.diagram_id, self._path)
        return self._path

    @property
    def is_open(self) -> bool:
        return self._path is not None

    def uri(self) -> str:
        return self.path.as_uri()

    def close(self) -> None:
        path, self._path = self._path, None
        if path is None:
            return
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    def __enter__(self) -> "LightboxHandle":
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.close()


@dataclass(frozen=True, slots=True)
class DiagramArtifact:
    """Compiled diagram image."""

    diagram_id: str
    data: bytes
    media_type: str = "image/svg+xml"

    @property
    def is_svg(self) -> bool:
        return self.media_type == "image/svg+xml"

    def as_text(self) -> str:
        return self.data.decode("utf-8", errors="replace")

    def data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"

    def open_lightbox(self) -> LightboxHandle:
        """Return a handle whose image file is written on first access."""

        return LightboxHandle(self)


@dataclass(slots=True)
class DiagramRenderResult:
    """State of one render invocation; resolves at most once."""

    source: str
    status: RenderStatus = RenderStatus.LOADING
    artifact: DiagramArtifact | None = None
    error: str | None = None
    discarded: bool = False
    _done: asyncio.Event | None = field(default=None, repr=False, compare=False)

    @property
    def is_loading(self) -> bool:
        return self.status is RenderStatus.LOADING

    def resolve_success(self, artifact: DiagramArtifact) -> None:
        if not self.is_loading or self.discarded:
            return
        self.status = RenderStatus.SUCCESS
        self.artifact = artifact
        self._mark_done()

    def resolve_error(self, message: str) -> None:
        if not self.is_loading or self.discarded:
            return
        self.status = RenderStatus.ERROR
        self.error = message
        self._mark_done()

    def discard(self) -> None:
        """Release waiters of a superseded render without writing a status."""

        if not self.is_loading or self.discarded:
            return
        self.discarded = True
        self._mark_done()

    async def wait(self) -> "DiagramRenderResult":
        """Return once resolved or discarded; a discarded result stays LOADING."""

        if self.is_loading and not self.discarded:
            if self._done is None:
                self._done = asyncio.Event()
            await self._done.wait()
        return self

    def _mark_done(self) -> None:
        if self._done is not None:
            self._done.set()


class DiagramCompilerProtocol(Protocol):
    async def compile(self, source: str, theme: Theme, *, diagram_id: str) -> DiagramArtifact:
        ...


class DiagramSlot:
    """One mounted diagram position in the document.

    Every render invocation gets a fresh generation token; completions carrying
    an older token are dropped instead of being written back.
    """

    def __init__(self, pipeline: "DiagramRenderPipeline", slot_id: int, content: str) -> None:
        self._pipeline = pipeline
        self.slot_id = slot_id
        self._content = ""
        self._generation = 0
        self._mounted = True
        self._result: DiagramRenderResult | None = None
        self._start(content)

    @property
    def content(self) -> str:
        return self._content

    @property
    def result(self) -> DiagramRenderResult:
        assert self._result is not None
        return self._result

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def mounted(self) -> bool:
        return self._mounted

    def is_current(self, generation: int) -> bool:
        return self._mounted and generation == self._generation

    def update(self, content: str) -> bool:
        """Re-render when ``content`` differs; returns ``True`` if a new render started."""

        if not self._mounted:
            raise RuntimeError("Cannot update an unmounted diagram slot")
        if _prepare_source(content) == self._content:
            return False
        self._start(content)
        return True

    def unmount(self) -> None:
        if not self._mounted:
            return
        self._mounted = False
        self._generation += 1
        self.result.discard()
        self._pipeline._forget(self)

    async def wait(self) -> DiagramRenderResult:
        return await self.result.wait()

    def _start(self, content: str) -> None:
        if self._result is not None:
            self._result.discard()
        self._generation += 1
        self._content = _prepare_source(content)
        self._result = DiagramRenderResult(source=self._content)
        self._pipeline._schedule(self, self._generation, self._result)


class DiagramRenderPipeline:
    """Compiles diagram sources in the background and tracks mounted slots."""

    def __init__(
        self,
        compiler: DiagramCompilerProtocol,
        *,
        theme: Theme | ThemeProvider = Theme.LIGHT,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        id_factory: Callable[[], str] | None = None,
        listener: ResultListener | None = None,
    ) -> None:
        self._compiler = compiler
        self._theme_provider: ThemeProvider = theme if callable(theme) else (lambda: theme)  # type: ignore[assignment]
        self._settle_delay = max(0.0, float(settle_delay))
        self._id_factory = id_factory or new_diagram_id
        self._listener = listener
        self._slots: dict[int, DiagramSlot] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._next_slot_id = 0

    @property
    def slots(self) -> List[DiagramSlot]:
        return list(self._slots.values())

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def mount(self, content: str) -> DiagramSlot:
        """Mount a diagram and start rendering it; requires a running loop."""

        slot_id = self._next_slot_id
        self._next_slot_id += 1
        slot = DiagramSlot(self, slot_id, content)
        self._slots[slot_id] = slot
        return slot

    async def render(self, content: str, theme: Theme | None = None) -> DiagramRenderResult:
        """Render ``content`` once without mounting a slot."""

        source = _prepare_source(content)
        result = DiagramRenderResult(source=source)
        await asyncio.sleep(self._settle_delay)
        await self._compile_into(result, theme or self._theme_provider(), always_current=lambda: True)
        return result

    async def render_all(self, contents: Iterable[str]) -> List[DiagramRenderResult]:
        slots = [self.mount(content) for content in contents]
        try:
            return list(await asyncio.gather(*(slot.wait() for slot in slots)))
        finally:
            for slot in slots:
                slot.unmount()

    async def aclose(self) -> None:
        for slot in list(self._slots.values()):
            slot.unmount()
        tasks = list(self._tasks)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Slot plumbing
    # ------------------------------------------------------------------
    def _schedule(self, slot: DiagramSlot, generation: int, result: DiagramRenderResult) -> None:
        task = asyncio.get_running_loop().create_task(self._run(slot, generation, result))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _forget(self, slot: DiagramSlot) -> None:
        self._slots.pop(slot.slot_id, None)

    async def _run(self, slot: DiagramSlot, generation: int, result: DiagramRenderResult) -> None:
        await asyncio.sleep(self._settle_delay)
        if not slot.is_current(generation):
            LOGGER.debug("Diagram slot %s went stale before compiling", slot.slot_id)
            return
        await self._compile_into(result, self._theme_provider(), always_current=lambda: slot.is_current(generation))
        if slot.is_current(generation) and self._listener is not None:
            try:
                self._listener(slot, result)
            except Exception:  # pragma: no cover - listeners must not break rendering
                LOGGER.debug("Diagram result listener failed", exc_info=True)

    async def _compile_into(
        self,
        result: DiagramRenderResult,
        theme: Theme,
        *,
        always_current: Callable[[], bool],
    ) -> None:
        diagram_id = self._id_factory()
        if not result.source:
            if always_current():
                result.resolve_error("Diagram source is empty")
            return
        try:
            artifact = await self._compiler.compile(result.source, theme, diagram_id=diagram_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOGGER.warning("Diagram %s failed to render: %s", diagram_id, exc)
            if always_current():
                result.resolve_error(str(exc) or exc.__class__.__name__)
            return
        if always_current():
            result.resolve_success(artifact)
        else:
            LOGGER.debug("Dropping stale render for diagram %s", diagram_id)


def _prepare_source(content: str) -> str:
    return (content or "").strip()
