"""Diagram compilation and render pipeline."""

from .compilers import KrokiDiagramCompiler, MermaidCliCompiler, build_compiler, close_compiler
from .pipeline import (
    DiagramArtifact,
    DiagramRenderPipeline,
    DiagramRenderResult,
    DiagramSlot,
    LightboxHandle,
    RenderStatus,
)

__all__ = [
    "DiagramArtifact",
    "DiagramRenderPipeline",
    "DiagramRenderResult",
    "DiagramSlot",
    "KrokiDiagramCompiler",
    "LightboxHandle",
    "MermaidCliCompiler",
    "RenderStatus",
    "build_compiler",
    "close_compiler",
]
