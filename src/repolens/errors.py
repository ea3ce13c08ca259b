"""Exception hierarchy shared across RepoLens components."""

from __future__ import annotations

__all__ = [
    "RepoLensError",
    "ReportGenerationError",
    "DiagramCompileError",
    "RepositoryAccessError",
]


class RepoLensError(Exception):
    """Base class for all RepoLens failures."""


class ReportGenerationError(RepoLensError):
    """Raised when the report model call fails or returns nothing usable.

    This is the only failure allowed to reach the top-level caller; the user is
    expected to retry the whole analysis.
    """

    def __init__(self, message: str, *, repo_name: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.repo_name = repo_name
        self.status_code = status_code


class DiagramCompileError(RepoLensError):
    """Raised by a diagram compiler when the source cannot be rendered."""

    def __init__(self, message: str, *, diagram_id: str | None = None) -> None:
        super().__init__(message)
        self.diagram_id = diagram_id


class RepositoryAccessError(RepoLensError):
    """Raised by the hosting client when a listing or file request fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
