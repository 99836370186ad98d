from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from branchwarden.config.github import GitHubConfig, default_github_resilience
from branchwarden.domain.model import BranchProtection, BranchTarget, StatusChecks
from tests.support.fake_client import FakeProtectionClient
from tests.support.http import API_URL

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


@pytest.fixture
def target() -> BranchTarget:
    return BranchTarget(owner="octo", repo="service", branch="main")


@pytest.fixture
def github_config() -> GitHubConfig:
    return GitHubConfig(
        token="test-token",  # noqa: S106
        api_url=API_URL,
        resilience=default_github_resilience(API_URL),
    )


@pytest.fixture
def fake_client() -> FakeProtectionClient:
    return FakeProtectionClient()


@pytest.fixture
def protected_client() -> FakeProtectionClient:
    """A branch that is protected with only an empty status-check section."""

    return FakeProtectionClient(
        initial=BranchProtection(protected=True, status_checks=StatusChecks())
    )


@pytest.fixture
def recorded_sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps: list[float]) -> Callable[[float], Awaitable[None]]:
    async def sleep(delay: float) -> None:
        recorded_sleeps.append(delay)

    return sleep
