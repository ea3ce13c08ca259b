"""Service layer helpers (settings, repository hosting)."""

from .github import GitHubClient, RepoEntry, language_for_filename
from .settings import Settings, SettingsStore

__all__ = [
    "GitHubClient",
    "RepoEntry",
    "Settings",
    "SettingsStore",
    "language_for_filename",
]
