"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class StepName(StrEnum):
    """Sub-resources in the order a run touches them."""

    PROTECTION = "protection"
    STATUS_CHECKS = "status_checks"
    PUSH_RESTRICTIONS = "push_restrictions"
    ALLOW_DELETIONS = "allow_deletions"
    ENFORCE_ADMINS = "enforce_admins"
    PULL_REQUEST_REVIEWS = "pull_request_reviews"
    SIGNED_COMMITS = "signed_commits"
    CONVERSATION_RESOLUTION = "conversation_resolution"
    VERIFY = "verify"


class StepStatus(StrEnum):
    APPLIED = "applied"
    UNCHANGED = "unchanged"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RunState(StrEnum):
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


class ActorKind(StrEnum):
    USER = "user"
    TEAM = "team"
    APP = "app"
