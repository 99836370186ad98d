"""Application configuration helpers."""

from __future__ import annotations

from .apply import ApplyPolicy, get_apply_policy
from .env import require_any_env_var
from .errors import ConfigurationError, MissingConfigurationError
from .github import GitHubConfig, default_github_resilience, get_github_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .presets import (
    DEFAULT_PRESET,
    PRESETS,
    SettingsDocument,
    load_preset,
    load_settings,
    load_settings_file,
    preset_names,
    validate_preset,
    with_overrides,
)

__all__ = [
    "DEFAULT_PRESET",
    "PRESETS",
    "ApplyPolicy",
    "ConfigurationError",
    "GitHubConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SettingsDocument",
    "configure_logging",
    "default_github_resilience",
    "get_apply_policy",
    "get_github_config",
    "load_preset",
    "load_settings",
    "load_settings_file",
    "preset_names",
    "require_any_env_var",
    "validate_preset",
    "with_overrides",
]
