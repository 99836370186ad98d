"""Minimal Pydantic models for GitHub's branch-protection endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GitHubBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class EnabledFlag(GitHubBaseModel):
    enabled: bool = False


class StatusCheckEntry(GitHubBaseModel):
    context: str
    app_id: int | None = None


class RequiredStatusChecksPayload(GitHubBaseModel):
    strict: bool = False
    contexts: list[str] = Field(default_factory=list)
    checks: list[StatusCheckEntry] = Field(default_factory=list["StatusCheckEntry"])


class UserRef(GitHubBaseModel):
    login: str


class SlugRef(GitHubBaseModel):
    slug: str


class RestrictionsPayload(GitHubBaseModel):
    users: list[UserRef] = Field(default_factory=list["UserRef"])
    teams: list[SlugRef] = Field(default_factory=list["SlugRef"])
    apps: list[SlugRef] = Field(default_factory=list["SlugRef"])


class RequiredReviewsPayload(GitHubBaseModel):
    dismiss_stale_reviews: bool = False
    require_code_owner_reviews: bool = False
    required_approving_review_count: int = 0
    require_last_push_approval: bool = False
    dismissal_restrictions: RestrictionsPayload | None = None
    bypass_pull_request_allowances: RestrictionsPayload | None = None


class BranchProtectionPayload(GitHubBaseModel):
    required_status_checks: RequiredStatusChecksPayload | None = None
    required_pull_request_reviews: RequiredReviewsPayload | None = None
    restrictions: RestrictionsPayload | None = None
    enforce_admins: EnabledFlag | None = None
    required_signatures: EnabledFlag | None = None
    allow_deletions: EnabledFlag | None = None
    required_conversation_resolution: EnabledFlag | None = None
    required_linear_history: EnabledFlag | None = None
    allow_force_pushes: EnabledFlag | None = None
    lock_branch: EnabledFlag | None = None
    block_creations: EnabledFlag | None = None
    allow_fork_syncing: EnabledFlag | None = None


class ErrorPayload(GitHubBaseModel):
    message: str = ""
    documentation_url: str | None = None
