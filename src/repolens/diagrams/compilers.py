"""Diagram compiler backends: Kroki over HTTP and the local mermaid CLI."""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx

from ..errors import DiagramCompileError
from ..theme import Theme, mermaid_config
from .pipeline import DiagramArtifact, DiagramCompilerProtocol

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..services.settings import Settings

__all__ = [
    "KrokiDiagramCompiler",
    "MermaidCliCompiler",
    "build_compiler",
    "close_compiler",
    "DEFAULT_KROKI_URL",
]

LOGGER = logging.getLogger(__name__)
DEFAULT_KROKI_URL = "https://kroki.io"
_SVG_MEDIA_TYPE = "image/svg+xml"
_ERROR_SNIPPET_CHARS = 300


def _with_init_directive(source: str, theme: Theme) -> str:
    config = mermaid_config(theme)
    directive = {
        "theme": config["theme"],
        "themeVariables": config["themeVariables"],
        "flowchart": config["flowchart"],
        "sequence": config["sequence"],
    }
    return f"%%{{init: {json.dumps(directive)}}}%%\n{source}"


class KrokiDiagramCompiler:
    """Compile mermaid sources to SVG by POSTing them to a Kroki server."""

    def __init__(
        self,
        base_url: str = DEFAULT_KROKI_URL,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = (base_url or DEFAULT_KROKI_URL).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def compile(self, source: str, theme: Theme, *, diagram_id: str) -> DiagramArtifact:
        url = f"{self._base_url}/mermaid/svg"
        payload = _with_init_directive(source, theme).encode("utf-8")
        LOGGER.debug("Compiling diagram %s via %s (%s bytes)", diagram_id, url, len(payload))
        try:
            response = await self._client.post(
                url,
                content=payload,
                headers={"Content-Type": "text/plain", "Accept": _SVG_MEDIA_TYPE},
            )
        except httpx.HTTPError as exc:
            raise DiagramCompileError(f"Kroki request failed: {exc}", diagram_id=diagram_id) from exc
        if response.status_code != 200:
            detail = response.text[:_ERROR_SNIPPET_CHARS].strip()
            raise DiagramCompileError(
                f"Kroki returned HTTP {response.status_code}: {detail}",
                diagram_id=diagram_id,
            )
        if not response.content:
            raise DiagramCompileError("Kroki returned an empty image", diagram_id=diagram_id)
        return DiagramArtifact(diagram_id=diagram_id, data=response.content, media_type=_SVG_MEDIA_TYPE)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class MermaidCliCompiler:
    """Compile mermaid sources with ``mmdc``.

    Input, config, and output files share one work directory and are named after
    the diagram id, so concurrent compiles must never reuse an id.
    """

    def __init__(
        self,
        executable: str = "mmdc",
        *,
        work_dir: Path | str | None = None,
        timeout: float = 60.0,
    ) -> None:
        self._executable = executable
        self._work_dir = Path(work_dir) if work_dir else Path(tempfile.gettempdir()) / "repolens-diagrams"
        self._timeout = timeout

    @property
    def available(self) -> bool:
        return shutil.which(self._executable) is not None

    async def compile(self, source: str, theme: Theme, *, diagram_id: str) -> DiagramArtifact:
        executable = shutil.which(self._executable)
        if executable is None:
            raise DiagramCompileError(f"{self._executable} not found on PATH", diagram_id=diagram_id)
        self._work_dir.mkdir(parents=True, exist_ok=True)
        input_path = self._work_dir / f"{diagram_id}.mmd"
        config_path = self._work_dir / f"{diagram_id}.json"
        output_path = self._work_dir / f"{diagram_id}.svg"
        input_path.write_text(source, encoding="utf-8")
        config_path.write_text(json.dumps(mermaid_config(theme)), encoding="utf-8")
        try:
            await self._run(executable, input_path, config_path, output_path, diagram_id)
            if not output_path.exists():
                raise DiagramCompileError("mmdc produced no output", diagram_id=diagram_id)
            data = output_path.read_bytes()
        finally:
            for path in (input_path, config_path, output_path):
                path.unlink(missing_ok=True)
        return DiagramArtifact(diagram_id=diagram_id, data=data, media_type=_SVG_MEDIA_TYPE)

    async def _run(
        self,
        executable: str,
        input_path: Path,
        config_path: Path,
        output_path: Path,
        diagram_id: str,
    ) -> None:
        process = await asyncio.create_subprocess_exec(
            executable,
            "-i",
            str(input_path),
            "-o",
            str(output_path),
            "-c",
            str(config_path),
            "-b",
            "transparent",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self._timeout)
        except asyncio.CancelledError:
            await _kill(process)
            raise
        except asyncio.TimeoutError as exc:
            await _kill(process)
            raise DiagramCompileError(
                f"mmdc timed out after {self._timeout:.0f}s", diagram_id=diagram_id
            ) from exc
        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()[:_ERROR_SNIPPET_CHARS]
            raise DiagramCompileError(message or f"mmdc exited with {process.returncode}", diagram_id=diagram_id)

    async def aclose(self) -> None:
        return None


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    await process.wait()


def build_compiler(settings: "Settings", *, client: httpx.AsyncClient | None = None) -> DiagramCompilerProtocol:
    """Return the compiler selected by ``settings.diagram_backend``."""

    backend = (settings.diagram_backend or "auto").strip().lower()
    cli = MermaidCliCompiler(settings.mermaid_cli, timeout=settings.request_timeout)
    if backend in {"mermaid-cli", "mmdc"}:
        return cli
    if backend == "auto" and cli.available:
        LOGGER.debug("Using local mermaid CLI for diagrams")
        return cli
    if backend not in {"auto", "kroki"}:
        LOGGER.warning("Unknown diagram backend %r; falling back to Kroki", backend)
    return KrokiDiagramCompiler(settings.kroki_url, client=client, timeout=settings.request_timeout)


async def close_compiler(compiler: Any) -> None:
    close = getattr(compiler, "aclose", None)
    if close is not None:
        await close()
