"""Settings dataclass and read-only loading helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from ..ai.prompts import DEFAULT_SYSTEM_PROMPT

__all__ = ["Settings", "SettingsStore", "redact_secret"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".repolens"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_ENV_OVERRIDES: Mapping[str, str] = {
    "REPOLENS_API_KEY": "api_key",
    "REPOLENS_BASE_URL": "base_url",
    "REPOLENS_MODEL": "model",
    "REPOLENS_SYSTEM_PROMPT": "system_prompt",
    "REPOLENS_GITHUB_TOKEN": "github_token",
    "REPOLENS_GITHUB_API_URL": "github_api_url",
    "REPOLENS_KROKI_URL": "kroki_url",
    "REPOLENS_DIAGRAM_BACKEND": "diagram_backend",
    "REPOLENS_THEME": "theme",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "REPOLENS_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "REPOLENS_REQUEST_TIMEOUT": "request_timeout",
    "REPOLENS_TEMPERATURE": "temperature",
    "REPOLENS_DIAGRAM_SETTLE_DELAY": "diagram_settle_delay",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "REPOLENS_INLINE_CODE_THRESHOLD": "inline_code_threshold",
    "REPOLENS_MAX_RETRIES": "max_retries",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


@dataclass(slots=True)
class Settings:
    """User configuration consumed by the report, repository, and render layers."""

    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    temperature: float = 0.2
    request_timeout: float = 90.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    github_api_url: str = "https://api.github.com"
    github_token: str = ""
    kroki_url: str = "https://kroki.io"
    diagram_backend: str = "auto"
    mermaid_cli: str = "mmdc"
    diagram_settle_delay: float = 0.1
    inline_code_threshold: int = 80
    scroll_bottom_tolerance: float = 50.0
    scroll_activation_offset: float = 150.0
    theme: str = "light"
    debug_logging: bool = False

    def redacted(self) -> Dict[str, Any]:
        data = asdict(self)
        data["api_key"] = redact_secret(self.api_key)
        data["github_token"] = redact_secret(self.github_token)
        return data


def redact_secret(value: str | None) -> str:
    if not value:
        return ""
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}…{value[-4:]}"


class SettingsStore:
    """Loads :class:`Settings` from an optional JSON file plus overrides.

    Writing settings back is owned by the host application.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI then environment overrides."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            data = _filter_fields(payload)
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            LOGGER.debug("Settings loaded from %s (%d field(s))", self._path, len(data))
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        return self._apply_env_overrides(settings)

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            LOGGER.warning("Settings file %s must contain a JSON object", self._path)
            return {}
        return data

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {field.name for field in fields(Settings)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed or value is None:
                continue
            filtered[key] = value
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(Settings)}
    return {key: value for key, value in payload.items() if key in allowed}
