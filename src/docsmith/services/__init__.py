"""Service layer helpers (settings)."""

from .settings import DEFAULT_BASE_URL, Settings, active_env_overrides, load_settings

__all__ = [
    "DEFAULT_BASE_URL",
    "Settings",
    "active_env_overrides",
    "load_settings",
]
