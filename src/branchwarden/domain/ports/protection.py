"""Port for reading and writing a branch's protection rule."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping, Sequence

    from branchwarden.domain.model import (
        BranchProtection,
        BranchTarget,
        PushRestrictions,
        ReviewRules,
        StatusChecks,
    )


@runtime_checkable
class ProtectionClient(Protocol):
    """One method per remote operation; every call performs exactly one request.

    Implementations raise the errors in :mod:`branchwarden.domain.errors` and never
    retry on HTTP status themselves.
    """

    async def get_protection(self, target: BranchTarget) -> BranchProtection: ...

    async def put_protection(
        self, target: BranchTarget, protection: BranchProtection
    ) -> BranchProtection: ...

    async def set_required_status_checks(
        self,
        target: BranchTarget,
        *,
        strict: bool,
        contexts: Sequence[str],
        app_ids: Mapping[str, int] | None = None,
    ) -> StatusChecks: ...

    async def set_push_restrictions(
        self,
        target: BranchTarget,
        *,
        users: Collection[str],
        teams: Collection[str],
        apps: Collection[str],
        base: BranchProtection,
    ) -> PushRestrictions: ...

    async def set_allow_deletions(
        self, target: BranchTarget, allowed: bool, *, base: BranchProtection
    ) -> bool: ...

    async def set_enforce_admins(self, target: BranchTarget, enabled: bool) -> bool: ...

    async def set_required_reviews(
        self,
        target: BranchTarget,
        *,
        required_reviewers: int,
        dismiss_stale: bool,
        require_codeowners: bool,
    ) -> ReviewRules: ...

    async def delete_required_reviews(self, target: BranchTarget) -> None: ...

    async def set_required_signatures(self, target: BranchTarget, enabled: bool) -> bool: ...

    async def set_conversation_resolution(
        self, target: BranchTarget, enabled: bool, *, base: BranchProtection
    ) -> bool: ...


__all__ = ["ProtectionClient"]
