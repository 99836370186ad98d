"""GitHub adapter package."""

from __future__ import annotations

from .client import NOT_PROTECTED_MESSAGE, GitHubProtectionClient
from .schema import BranchProtectionPayload, RequiredStatusChecksPayload
from .translator import protection_body, translate_protection

__all__ = [
    "NOT_PROTECTED_MESSAGE",
    "BranchProtectionPayload",
    "GitHubProtectionClient",
    "RequiredStatusChecksPayload",
    "protection_body",
    "translate_protection",
]
