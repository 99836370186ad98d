"""Normalized snapshot of a branch's protection rule."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class StatusChecks:
    """Required checks; ``app_ids`` pins a context to the GitHub App that must report it.

    Bindings are carried through writes but never compared: presets only name contexts.
    """

    strict: bool = False
    contexts: tuple[str, ...] = ()
    app_ids: tuple[tuple[str, int], ...] = field(default=(), compare=False)

    def matches(self, other: StatusChecks) -> bool:
        """Compare ignoring context order; GitHub does not preserve it."""

        return self.strict == other.strict and set(self.contexts) == set(other.contexts)

    def app_id_for(self, context: str) -> int | None:
        return dict(self.app_ids).get(context)


@dataclass(frozen=True, slots=True)
class PushRestrictions:
    users: frozenset[str] = frozenset()
    teams: frozenset[str] = frozenset()
    apps: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not (self.users or self.teams or self.apps)


@dataclass(frozen=True, slots=True)
class ReviewRules:
    """Pull-request review requirements.

    Only the first three fields are preset-controlled; the rest are read back so a
    full-rule write does not reset them, and take no part in equality.
    """

    required_reviewers: int = 0
    dismiss_stale: bool = False
    require_codeowners: bool = False
    require_last_push_approval: bool = field(default=False, compare=False)
    dismissal_restrictions: PushRestrictions | None = field(default=None, compare=False)
    bypass_allowances: PushRestrictions | None = field(default=None, compare=False)

    @property
    def is_off(self) -> bool:
        return self == ReviewRules()


@dataclass(frozen=True, slots=True)
class BranchProtection:
    """Everything branchwarden reads from, and writes back to, a protection rule.

    Absent sections are ``None``. ``linear_history``, ``allow_force_pushes``,
    ``lock_branch``, ``block_creations`` and ``allow_fork_syncing`` are not controlled
    by presets but are carried so full-rule writes preserve them.
    """

    protected: bool = True
    status_checks: StatusChecks | None = None
    reviews: ReviewRules | None = None
    restrictions: PushRestrictions | None = None
    enforce_admins: bool = False
    allow_deletions: bool = False
    required_signatures: bool = False
    conversation_resolution: bool = False
    linear_history: bool = False
    allow_force_pushes: bool = False
    lock_branch: bool = False
    block_creations: bool = False
    allow_fork_syncing: bool = False

    @classmethod
    def unprotected(cls) -> BranchProtection:
        return cls(protected=False)

    def effective_status_checks(self) -> StatusChecks:
        return self.status_checks or StatusChecks()

    def effective_reviews(self) -> ReviewRules:
        return self.reviews or ReviewRules()

    def effective_restrictions(self) -> PushRestrictions:
        return self.restrictions or PushRestrictions()
