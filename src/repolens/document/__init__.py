"""Report normalization, structure extraction, and rendering."""

from .blocks import BlockClassification, BlockKind, FencedBlock, classify
from .normalizer import normalize
from .renderer import BlockHandlerRegistry, DocumentRenderer, RenderedDocument
from .slug import HeadingIdAllocator, slugify
from .toc import PreparedDocument, TocEntry, extract_toc, prepare_document

__all__ = [
    "BlockClassification",
    "BlockHandlerRegistry",
    "BlockKind",
    "DocumentRenderer",
    "FencedBlock",
    "HeadingIdAllocator",
    "PreparedDocument",
    "RenderedDocument",
    "TocEntry",
    "classify",
    "extract_toc",
    "normalize",
    "prepare_document",
    "slugify",
]
