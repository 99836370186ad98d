"""Desired protection settings and the branches they target."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from branchwarden.domain.errors import InvalidSettings

from .enums import ActorKind
from .protection import BranchProtection, PushRestrictions, ReviewRules, StatusChecks

MAX_REQUIRED_REVIEWERS: Final[int] = 6
DEFAULT_BRANCH: Final[str] = "main"

_TARGET_PATTERN = re.compile(r"^(?P<owner>[^/\s:]+)/(?P<repo>[^/\s:]+)(?::(?P<branch>\S+))?$")


def parse_actor(identifier: str) -> tuple[ActorKind, str]:
    """Split ``kind:name`` into its parts; a bare name is a user login."""

    raw = identifier.strip()
    kind_text, sep, name = raw.partition(":")
    if not sep:
        kind_text, name = ActorKind.USER, raw
    try:
        kind = ActorKind(kind_text.strip().lower())
    except ValueError:
        raise InvalidSettings(f"Unknown actor kind in {identifier!r}") from None
    name = name.strip()
    if not name:
        raise InvalidSettings(f"Empty actor name in {identifier!r}")
    return kind, name


@dataclass(frozen=True, slots=True)
class BranchTarget:
    owner: str
    repo: str
    branch: str = DEFAULT_BRANCH

    @classmethod
    def parse(cls, value: str, *, default_branch: str = DEFAULT_BRANCH) -> BranchTarget:
        match = _TARGET_PATTERN.match(value.strip())
        if match is None:
            raise InvalidSettings(f"Invalid target {value!r} (expected owner/repo[:branch])")
        return cls(
            owner=match["owner"],
            repo=match["repo"],
            branch=match["branch"] or default_branch,
        )

    def validate(self) -> BranchTarget:
        for label, value in (("owner", self.owner), ("repo", self.repo), ("branch", self.branch)):
            if not value or not value.strip():
                raise InvalidSettings(f"Target {label} must not be empty")
        return self

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}:{self.branch}"


@dataclass(frozen=True, slots=True)
class ProtectionPreset:
    """A named bundle of protection settings.

    Instances are plain values; :meth:`validate` enforces the invariants so a
    hand-built preset can still be rejected before any network call.
    """

    name: str
    required_reviewers: int = 0
    dismiss_stale: bool = False
    require_codeowners: bool = False
    required_contexts: tuple[str, ...] = ()
    strict: bool = False
    require_conversation_resolution: bool = False
    restrict_push_to: frozenset[str] = frozenset()
    allow_deletions: bool = False
    enforce_admins: bool = False
    require_signed_commits: bool = False

    def validate(self) -> ProtectionPreset:
        if self.required_reviewers < 0:
            raise InvalidSettings(
                f"required_reviewers must be >= 0 (got {self.required_reviewers})"
            )
        if self.required_reviewers > MAX_REQUIRED_REVIEWERS:
            raise InvalidSettings(
                f"required_reviewers must be <= {MAX_REQUIRED_REVIEWERS} "
                f"(got {self.required_reviewers})"
            )
        seen: set[str] = set()
        for context in self.required_contexts:
            if not context.strip():
                raise InvalidSettings("required_contexts must not contain empty entries")
            if context in seen:
                raise InvalidSettings(f"Duplicate required context {context!r}")
            seen.add(context)
        for actor in self.restrict_push_to:
            parse_actor(actor)
        return self

    def desired_status_checks(self) -> StatusChecks:
        return StatusChecks(strict=self.strict, contexts=self.required_contexts)

    def desired_reviews(self) -> ReviewRules:
        return ReviewRules(
            required_reviewers=self.required_reviewers,
            dismiss_stale=self.dismiss_stale,
            require_codeowners=self.require_codeowners,
        )

    def desired_restrictions(self) -> PushRestrictions:
        buckets: dict[ActorKind, set[str]] = {kind: set() for kind in ActorKind}
        for actor in self.restrict_push_to:
            kind, name = parse_actor(actor)
            buckets[kind].add(name)
        return PushRestrictions(
            users=frozenset(buckets[ActorKind.USER]),
            teams=frozenset(buckets[ActorKind.TEAM]),
            apps=frozenset(buckets[ActorKind.APP]),
        )

    def to_protection(self) -> BranchProtection:
        """Full rule used to protect a branch that has no rule yet."""

        reviews = self.desired_reviews()
        restrictions = self.desired_restrictions()
        return BranchProtection(
            protected=True,
            status_checks=self.desired_status_checks(),
            reviews=None if reviews.is_off else reviews,
            restrictions=None if restrictions.is_empty else restrictions,
            enforce_admins=self.enforce_admins,
            allow_deletions=self.allow_deletions,
            required_signatures=self.require_signed_commits,
            conversation_resolution=self.require_conversation_resolution,
        )

    def drift(self, protection: BranchProtection) -> list[str]:
        """Names of preset-controlled fields that differ from ``protection``."""

        fields: list[str] = []
        if not protection.protected:
            fields.append("protected")
        if not protection.effective_status_checks().matches(self.desired_status_checks()):
            fields.append("status_checks")
        if protection.effective_restrictions() != self.desired_restrictions():
            fields.append("push_restrictions")
        if protection.allow_deletions != self.allow_deletions:
            fields.append("allow_deletions")
        if protection.enforce_admins != self.enforce_admins:
            fields.append("enforce_admins")
        if protection.effective_reviews() != self.desired_reviews():
            fields.append("pull_request_reviews")
        if protection.required_signatures != self.require_signed_commits:
            fields.append("signed_commits")
        if protection.conversation_resolution != self.require_conversation_resolution:
            fields.append("conversation_resolution")
        return fields
