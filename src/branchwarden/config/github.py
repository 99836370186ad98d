"""GitHub API configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .env import require_any_env_var
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_TIMEOUT_SECONDS = 30.0
GITHUB_TOKEN_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


@dataclass(frozen=True)
class GitHubConfig:
    """Holds GitHub API configuration values."""

    token: str = field(repr=False)
    api_url: str
    resilience: ResilienceConfig


def default_github_resilience(api_url: str = GITHUB_API_URL) -> ResilienceConfig:
    # Status codes are never retried here: rate limits belong to the applier.
    return ResilienceConfig(
        name="github",
        base_url=api_url,
        timeout_seconds=GITHUB_TIMEOUT_SECONDS,
        retry=RetryPolicy(),
        ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        default_headers={
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": "branchwarden",
        },
    )


def get_github_config(
    *,
    token: str | None = None,
    resilience: ResilienceConfig | None = None,
) -> GitHubConfig:
    api_url = (os.getenv("GITHUB_API_URL") or GITHUB_API_URL).strip().rstrip("/")
    return GitHubConfig(
        token=token or require_any_env_var(GITHUB_TOKEN_VARS),
        api_url=api_url,
        resilience=resilience or default_github_resilience(api_url),
    )
