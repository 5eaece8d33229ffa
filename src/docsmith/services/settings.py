"""Runtime settings resolved from defaults, the environment and explicit overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping

from ..api.client import ClientSettings

__all__ = [
    "DEFAULT_BASE_URL",
    "ENV_PREFIX",
    "Settings",
    "load_settings",
    "active_env_overrides",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5004/api"
ENV_PREFIX = "DOCSMITH_"
_ENV_OVERRIDES: Mapping[str, str] = {
    "DOCSMITH_API_URL": "base_url",
    "DOCSMITH_DOWNLOAD_DIR": "download_dir",
    "DOCSMITH_LOG_DIR": "log_dir",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "DOCSMITH_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "DOCSMITH_REQUEST_TIMEOUT": "request_timeout",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_NO_TIMEOUT_VALUES = {"", "0", "none", "off"}


@dataclass(slots=True)
class Settings:
    """Client configuration.

    ``request_timeout`` of ``None`` waits for the backend indefinitely.
    """

    base_url: str = DEFAULT_BASE_URL
    request_timeout: float | None = None
    download_dir: str | None = None
    debug_logging: bool = False
    log_dir: str | None = None
    default_headers: dict[str, str] = field(default_factory=dict)

    def client_settings(self) -> ClientSettings:
        return ClientSettings(
            base_url=self.base_url,
            request_timeout=self.request_timeout,
            default_headers=dict(self.default_headers) or None,
        )


def load_settings(
    *,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Build settings from defaults, then environment variables, then ``overrides``."""

    env = os.environ if environ is None else environ
    settings = _apply_env_overrides(Settings(), env)
    if overrides:
        settings = _apply_overrides(settings, overrides, source="cli")
    return settings


def active_env_overrides(environ: Mapping[str, str] | None = None) -> list[str]:
    env = os.environ if environ is None else environ
    return sorted(name for name in env if name.startswith(ENV_PREFIX))


def _apply_env_overrides(settings: Settings, env: Mapping[str, str]) -> Settings:
    overrides: dict[str, Any] = {}
    for env_name, field_name in _ENV_OVERRIDES.items():
        value = env.get(env_name)
        if value:
            overrides[field_name] = value.strip()
    for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
        value = env.get(env_name)
        if value is not None:
            overrides[field_name] = value.strip().lower() in _TRUE_VALUES
    for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
        value = env.get(env_name)
        if value is None:
            continue
        normalized = value.strip().lower()
        if normalized in _NO_TIMEOUT_VALUES:
            overrides[field_name] = None
            continue
        try:
            overrides[field_name] = float(normalized)
        except ValueError:
            LOGGER.warning("Ignoring invalid float for %s: %s", env_name, value)
    if overrides:
        settings = _apply_overrides(settings, overrides, source="environment")
    return settings


def _apply_overrides(settings: Settings, overrides: Mapping[str, Any], *, source: str) -> Settings:
    known = {item.name for item in fields(Settings)}
    accepted = {key: value for key, value in overrides.items() if key in known}
    ignored = sorted(set(overrides) - set(accepted))
    if ignored:
        LOGGER.warning("Ignoring unknown %s settings: %s", source, ", ".join(ignored))
    if accepted:
        LOGGER.debug("Applying %s overrides for %s", source, ", ".join(sorted(accepted)))
    return replace(settings, **accepted)
