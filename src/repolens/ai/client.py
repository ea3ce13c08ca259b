"""Async report client built around OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

import httpx
from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI, RateLimitError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..errors import ReportGenerationError
from .prompts import DEFAULT_SYSTEM_PROMPT, build_user_prompt

__all__ = ["ClientSettings", "ReportClient"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the report client."""

    base_url: str
    api_key: str
    model: str
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    temperature: float = 0.2
    request_timeout: float | None = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    default_headers: Mapping[str, str] | None = None
    debug_logging: bool = False

    @classmethod
    def from_settings(cls, settings: Any) -> "ClientSettings":
        return cls(
            base_url=settings.base_url,
            api_key=settings.api_key,
            model=settings.model,
            system_prompt=settings.system_prompt or DEFAULT_SYSTEM_PROMPT,
            temperature=settings.temperature,
            request_timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            retry_min_seconds=settings.retry_min_seconds,
            retry_max_seconds=settings.retry_max_seconds,
            debug_logging=settings.debug_logging,
        )


class ReportClient:
    """Generates raw report markdown for a repository."""

    def __init__(self, settings: ClientSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def generate_report(self, identifier: str, description: str | None) -> str:
        """Return the raw model output for ``identifier``.

        Raises :class:`ReportGenerationError` on any failure; callers must not
        render partial output.
        """

        if not self._settings.api_key and self._client is None:
            raise ReportGenerationError("An API key is required for report generation", repo_name=identifier)
        messages = [
            {"role": "system", "content": self._settings.system_prompt},
            {"role": "user", "content": build_user_prompt(identifier, description)},
        ]
        payload: Dict[str, Any] = {
            "model": self._settings.model,
            "messages": messages,
            "temperature": self._settings.temperature,
            "stream": False,
        }
        LOGGER.debug("Requesting report for %s via %s", identifier, self._settings.model)
        if self._settings.debug_logging:
            LOGGER.debug("Report prompt:\n%s", messages[1]["content"])
        client = self._ensure_client()
        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await client.chat.completions.create(**payload)
        except APIStatusError as exc:
            raise ReportGenerationError(
                f"Report request failed: {exc.status_code} - {exc.message}",
                repo_name=identifier,
                status_code=exc.status_code,
            ) from exc
        except (APIError, httpx.HTTPError) as exc:
            raise ReportGenerationError(f"Report request failed: {exc}", repo_name=identifier) from exc
        text = _first_choice_text(response)
        if not text:
            raise ReportGenerationError("Model output is empty", repo_name=identifier)
        LOGGER.info("Generated report for %s (%d chars)", identifier, len(text))
        return text

    def _ensure_client(self) -> AsyncOpenAI:
        if self._client is None:
            headers = dict(self._settings.default_headers) if self._settings.default_headers else None
            self._client = AsyncOpenAI(
                api_key=self._settings.api_key,
                base_url=(self._settings.base_url or "").rstrip("/") or None,
                timeout=self._settings.request_timeout,
                default_headers=headers,
                max_retries=0,
            )
        return self._client

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception_type(
                (
                    APIConnectionError,
                    RateLimitError,
                    httpx.TimeoutException,
                )
            ),
        )

    async def aclose(self) -> None:
        """Close the underlying OpenAI client to release network resources."""

        close = getattr(self._client, "close", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result


def _first_choice_text(response: Any) -> str:
    choices: List[Any] = list(getattr(response, "choices", None) or [])
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    return str(content or "").strip()
