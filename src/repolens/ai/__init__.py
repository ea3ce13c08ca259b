"""Report generation: prompts, client, and result shaping."""

from .client import ClientSettings, ReportClient
from .report import RepoAnalysis, ReportGenerator, extract_summary, generate_repo_analysis

__all__ = [
    "ClientSettings",
    "RepoAnalysis",
    "ReportClient",
    "ReportGenerator",
    "extract_summary",
    "generate_repo_analysis",
]
