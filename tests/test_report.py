"""Tests for report generation and result shaping."""

from __future__ import annotations

from typing import Any, cast

import httpx
import pytest
from openai import APIConnectionError

from repolens.ai.client import ClientSettings, ReportClient
from repolens.ai.prompts import build_user_prompt
from repolens.ai.report import FALLBACK_SUMMARY, extract_summary, generate_repo_analysis
from repolens.errors import ReportGenerationError
from tests.helpers import StubOpenAI, StubReportGenerator


def _settings(**overrides: Any) -> ClientSettings:
    base = {
        "base_url": "https://api.test/v1",
        "api_key": "sk-test",
        "model": "test-model",
        "retry_min_seconds": 0.0,
        "retry_max_seconds": 0.0,
    }
    base.update(overrides)
    return ClientSettings(**base)


@pytest.mark.asyncio
async def test_generate_report_sends_chat_payload() -> None:
    stub = StubOpenAI("# Report\n\nBody")
    client = ReportClient(_settings(), client=cast(Any, stub))

    text = await client.generate_report("octo/demo", "A demo")

    assert text == "# Report\n\nBody"
    request = stub.requests[0]
    assert request["model"] == "test-model"
    assert request["temperature"] == 0.2
    assert request["stream"] is False
    assert request["messages"][0]["role"] == "system"
    assert "octo/demo" in request["messages"][1]["content"]
    assert '"A demo"' in request["messages"][1]["content"]


@pytest.mark.asyncio
async def test_generate_report_empty_output_raises() -> None:
    client = ReportClient(_settings(), client=cast(Any, StubOpenAI("   ")))

    with pytest.raises(ReportGenerationError, match="empty"):
        await client.generate_report("octo/demo", None)


@pytest.mark.asyncio
async def test_generate_report_requires_api_key() -> None:
    client = ReportClient(_settings(api_key=""))

    with pytest.raises(ReportGenerationError) as excinfo:
        await client.generate_report("octo/demo", None)

    assert excinfo.value.repo_name == "octo/demo"


@pytest.mark.asyncio
async def test_generate_report_retries_transient_errors() -> None:
    request = httpx.Request("POST", "https://api.test/v1/chat/completions")
    stub = StubOpenAI("# Ok", errors=[APIConnectionError(request=request)])
    client = ReportClient(_settings(max_retries=2), client=cast(Any, stub))

    assert await client.generate_report("octo/demo", None) == "# Ok"
    assert len(stub.requests) == 2


@pytest.mark.asyncio
async def test_generate_report_wraps_exhausted_retries() -> None:
    request = httpx.Request("POST", "https://api.test/v1/chat/completions")
    errors = [APIConnectionError(request=request), APIConnectionError(request=request)]
    client = ReportClient(_settings(max_retries=2), client=cast(Any, StubOpenAI("# Ok", errors=errors)))

    with pytest.raises(ReportGenerationError):
        await client.generate_report("octo/demo", None)


@pytest.mark.asyncio
async def test_aclose_closes_underlying_client() -> None:
    stub = StubOpenAI()
    client = ReportClient(_settings(), client=cast(Any, stub))

    await client.aclose()

    assert stub.closed


def test_user_prompt_defaults_description() -> None:
    prompt = build_user_prompt("octo/demo", None)

    assert '"No description"' in prompt
    assert "# octo/demo Technical Deep Dive" in prompt
    assert "```mermaid" in prompt


def test_extract_summary_takes_first_paragraph_after_heading() -> None:
    content = "# Title\n\nFirst paragraph line.\nSecond line.\n\n## Next\nMore"

    assert extract_summary(content) == "First paragraph line.\nSecond line...."


def test_extract_summary_truncates_and_falls_back() -> None:
    long_text = "# T\n" + "x" * 400

    assert extract_summary(long_text) == "x" * 150 + "..."
    assert extract_summary("no headings at all") == FALLBACK_SUMMARY


@pytest.mark.asyncio
async def test_generate_repo_analysis_normalizes_output() -> None:
    generator = StubReportGenerator("```markdown\n# Title\nHello\n```")

    analysis = await generate_repo_analysis(generator, "octo/demo", "desc")

    assert analysis.repo_name == "octo/demo"
    assert analysis.content == "# Title\nHello"
    assert analysis.summary == "Hello..."
    assert generator.calls == [("octo/demo", "desc")]


@pytest.mark.asyncio
async def test_generate_repo_analysis_propagates_failures() -> None:
    generator = StubReportGenerator(error=ReportGenerationError("API request failed: 500"))

    with pytest.raises(ReportGenerationError):
        await generate_repo_analysis(generator, "octo/demo")
