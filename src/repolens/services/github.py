"""GitHub REST adapter backing the lazy file tree and file viewer."""

from __future__ import annotations

import locale
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Protocol

import httpx

from ..errors import RepositoryAccessError

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from .settings import Settings

__all__ = [
    "EntryKind",
    "RepoEntry",
    "DirectoryLister",
    "FileContentFetcher",
    "GitHubClient",
    "language_for_filename",
    "sort_entries",
    "FILE_FETCH_PLACEHOLDER",
    "DEFAULT_GITHUB_API_URL",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_GITHUB_API_URL = "https://api.github.com"
FILE_FETCH_PLACEHOLDER = "// Unable to load file content, possibly due to network issues or access restrictions."

_LANGUAGE_BY_EXTENSION: Mapping[str, str] = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "java": "java",
    "c": "c",
    "cpp": "cpp",
    "h": "cpp",
    "cs": "csharp",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "json": "json",
    "yml": "yaml",
    "yaml": "yaml",
    "md": "markdown",
    "sql": "sql",
    "sh": "bash",
    "bash": "bash",
    "dockerfile": "dockerfile",
    "php": "php",
}


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "dir"


@dataclass(slots=True, frozen=True)
class RepoEntry:
    """One item of a directory listing.

    ``content_ref`` is the raw download URL for files and ``None`` for
    directories.
    """

    name: str
    path: str
    kind: EntryKind
    sha: str = ""
    content_ref: str | None = None

    @property
    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RepoEntry":
        kind = EntryKind.DIRECTORY if payload.get("type") == "dir" else EntryKind.FILE
        return cls(
            name=str(payload.get("name", "")),
            path=str(payload.get("path", "")),
            kind=kind,
            sha=str(payload.get("sha") or ""),
            content_ref=payload.get("download_url") or None,
        )


class DirectoryLister(Protocol):
    async def list_directory(self, repository: str, path: str = "") -> List[RepoEntry]:
        ...


class FileContentFetcher(Protocol):
    async def fetch_file_content(self, content_ref: str) -> str:
        ...


def _name_key(name: str) -> str:
    return locale.strxfrm(name.casefold())


def sort_entries(entries: Iterable[RepoEntry]) -> List[RepoEntry]:
    """Directories first, then files, each group by case-insensitive name.

    Names are collated with the process LC_COLLATE locale; the CLI adopts the
    user's locale at startup, otherwise this is code-point order.
    """

    return sorted(entries, key=lambda entry: (not entry.is_directory, _name_key(entry.name), entry.name))


def language_for_filename(filename: str) -> str:
    """Return the highlight language for ``filename`` (``"text"`` when unknown)."""

    extension = filename.rsplit(".", 1)[-1].lower()
    return _LANGUAGE_BY_EXTENSION.get(extension, "text")


class GitHubClient:
    """Minimal async client for the GitHub contents API.

    Listing and file fetches never raise; failures are logged and degrade to an
    empty listing or :data:`FILE_FETCH_PLACEHOLDER`.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_GITHUB_API_URL,
        *,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._api_url = (api_url or DEFAULT_GITHUB_API_URL).rstrip("/")
        self._token = token or None
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    @classmethod
    def from_settings(cls, settings: "Settings", *, client: httpx.AsyncClient | None = None) -> "GitHubClient":
        return cls(
            settings.github_api_url,
            token=settings.github_token,
            client=client,
            timeout=settings.request_timeout,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def contents_url(self, repository: str, path: str = "") -> str:
        clean_path = path.lstrip("/")
        base = f"{self._api_url}/repos/{repository}/contents"
        return f"{base}/{clean_path}" if clean_path else base

    async def list_directory(self, repository: str, path: str = "") -> List[RepoEntry]:
        if not repository:
            return []
        try:
            payload = await self._get_json(self.contents_url(repository, path))
        except RepositoryAccessError as exc:
            LOGGER.warning("Listing %s:%s failed: %s", repository, path or "/", exc)
            return []
        if not isinstance(payload, list):
            LOGGER.debug("Listing %s:%s did not return a directory", repository, path or "/")
            return []
        entries = [RepoEntry.from_payload(item) for item in payload if isinstance(item, Mapping)]
        return sort_entries(entries)

    async def fetch_file_content(self, content_ref: str) -> str:
        if not content_ref:
            return FILE_FETCH_PLACEHOLDER
        try:
            response = await self._client.get(content_ref, headers=self._auth_only_headers())
        except httpx.HTTPError as exc:
            LOGGER.warning("Fetching %s failed: %s", content_ref, exc)
            return FILE_FETCH_PLACEHOLDER
        if response.status_code != 200:
            LOGGER.warning("Fetching %s returned HTTP %s", content_ref, response.status_code)
            return FILE_FETCH_PLACEHOLDER
        return response.text

    async def _get_json(self, url: str) -> Any:
        try:
            response = await self._client.get(url, headers=self._headers())
        except httpx.HTTPError as exc:
            raise RepositoryAccessError(f"request failed: {exc}") from exc
        if response.status_code != 200:
            raise RepositoryAccessError(
                f"GitHub API error: HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise RepositoryAccessError("GitHub API returned invalid JSON") from exc

    def _auth_only_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"} if self._token else {}

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
