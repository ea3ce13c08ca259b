"""Headless view controllers for the analysis screen."""

from .analysis_view import AnalysisView, FileView, ViewMode
from .events import EventBus
from .file_tree import LazyFileTree, TreeNode, TreeRow
from .scroll_spy import ActiveHeaderState, ScrollSpy, ViewportState

__all__ = [
    # Controllers
    "AnalysisView",
    "FileView",
    "ViewMode",
    # Event Bus
    "EventBus",
    # File tree
    "LazyFileTree",
    "TreeNode",
    "TreeRow",
    # Scroll spy
    "ActiveHeaderState",
    "ScrollSpy",
    "ViewportState",
]
