"""Tests for the GitHub contents adapter."""

from __future__ import annotations

import httpx
import pytest

from repolens.services.github import (
    FILE_FETCH_PLACEHOLDER,
    EntryKind,
    GitHubClient,
    language_for_filename,
)
from repolens.services.settings import Settings

LISTING = [
    {"name": "setup.py", "path": "setup.py", "type": "file", "sha": "1", "download_url": "https://raw.test/setup.py"},
    {"name": "src", "path": "src", "type": "dir", "sha": "2", "download_url": None},
    {"name": "README.md", "path": "README.md", "type": "file", "sha": "3", "download_url": "https://raw.test/README.md"},
    {"name": "docs", "path": "docs", "type": "dir", "sha": "4", "download_url": None},
    {"name": "app.py", "path": "app.py", "type": "file", "sha": "5", "download_url": "https://raw.test/app.py"},
]


def _client(handler, *, token: str | None = None) -> GitHubClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubClient("https://api.github.test", token=token, client=http)


@pytest.mark.asyncio
async def test_list_directory_sorts_directories_first() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=LISTING)

    entries = await _client(handler, token="tok").list_directory("octo/demo", "/")

    assert [entry.name for entry in entries] == ["docs", "src", "app.py", "README.md", "setup.py"]
    assert entries[0].kind is EntryKind.DIRECTORY
    assert entries[0].content_ref is None
    assert entries[2].content_ref == "https://raw.test/app.py"
    assert str(requests[0].url) == "https://api.github.test/repos/octo/demo/contents"
    assert requests[0].headers["Authorization"] == "Bearer tok"


@pytest.mark.asyncio
async def test_list_directory_uses_nested_path() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json=[])

    await _client(handler).list_directory("octo/demo", "src/core")

    assert seen == ["/repos/octo/demo/contents/src/core"]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(403, json={"message": "rate limited"}),
        httpx.Response(200, json={"type": "file", "name": "x"}),
        httpx.Response(200, text="not json"),
    ],
)
@pytest.mark.asyncio
async def test_list_directory_failures_yield_empty_listing(response: httpx.Response) -> None:
    entries = await _client(lambda request: response).list_directory("octo/demo")

    assert entries == []


@pytest.mark.asyncio
async def test_list_directory_network_error_yields_empty_listing() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    assert await _client(handler).list_directory("octo/demo") == []


@pytest.mark.asyncio
async def test_fetch_file_content_returns_text_or_placeholder() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("ok.py"):
            return httpx.Response(200, text="print('ok')\n")
        return httpx.Response(404, text="missing")

    client = _client(handler)
    ok = await client.fetch_file_content("https://raw.test/ok.py")
    missing = await client.fetch_file_content("https://raw.test/gone.py")
    empty = await client.fetch_file_content("")

    assert ok == "print('ok')\n"
    assert missing == FILE_FETCH_PLACEHOLDER
    assert empty == FILE_FETCH_PLACEHOLDER


@pytest.mark.asyncio
async def test_client_from_settings_uses_configured_api_and_token() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[])

    settings = Settings(github_api_url="https://ghe.example.test/api/v3/", github_token="ghe-token")
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = GitHubClient.from_settings(settings, client=http)

    await client.list_directory("octo/demo", "docs")
    await client.aclose()

    assert str(requests[0].url) == "https://ghe.example.test/api/v3/repos/octo/demo/contents/docs"
    assert requests[0].headers["Authorization"] == "Bearer ghe-token"
    assert not http.is_closed
    await http.aclose()


@pytest.mark.parametrize(
    "filename, language",
    [
        ("main.py", "python"),
        ("index.TSX", "typescript"),
        ("Dockerfile", "dockerfile"),
        ("config.yml", "yaml"),
        ("header.h", "cpp"),
        ("LICENSE", "text"),
        ("archive.tar.gz", "text"),
    ],
)
def test_language_for_filename(filename: str, language: str) -> None:
    assert language_for_filename(filename) == language
