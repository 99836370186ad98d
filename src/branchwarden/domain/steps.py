"""The ordered sub-resource steps of a protection run.

Each step reads the current rule, compares one sub-resource with the preset and
writes only when they differ. Steps raise :class:`ProtectionError` subclasses;
retry and failure isolation live in the applier.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from branchwarden.domain.errors import VerificationFailed
from branchwarden.domain.model import StepName, StepStatus

if TYPE_CHECKING:
    from branchwarden.domain.model import BranchTarget, ProtectionPreset
    from branchwarden.domain.ports import ProtectionClient

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StepContext:
    target: BranchTarget
    preset: ProtectionPreset
    client: ProtectionClient


@dataclass(frozen=True, slots=True)
class StepOutcome:
    status: StepStatus
    prior_state: object | None = None
    new_state: object | None = None

    @classmethod
    def unchanged(cls, state: object) -> StepOutcome:
        return cls(status=StepStatus.UNCHANGED, prior_state=state, new_state=state)

    @classmethod
    def applied(cls, prior: object, new: object) -> StepOutcome:
        return cls(status=StepStatus.APPLIED, prior_state=prior, new_state=new)


class ProtectionStep(Protocol):
    """Contract implemented by each step."""

    name: StepName

    async def run(self, context: StepContext) -> StepOutcome: ...


class BootstrapStep:
    """Create the rule from the full preset when the branch has none."""

    name = StepName.PROTECTION

    async def run(self, context: StepContext) -> StepOutcome:
        current = await context.client.get_protection(context.target)
        if current.protected:
            return StepOutcome.unchanged(True)
        log.info(
            "%s is not protected; creating rule from preset %s",
            context.target,
            context.preset.name,
        )
        desired = context.preset.to_protection()
        created = await context.client.put_protection(context.target, desired)
        return StepOutcome.applied(False, created.protected)


class StatusChecksStep:
    name = StepName.STATUS_CHECKS

    async def run(self, context: StepContext) -> StepOutcome:
        current = await context.client.get_protection(context.target)
        desired = context.preset.desired_status_checks()
        prior = current.effective_status_checks()
        if prior.matches(desired):
            return StepOutcome.unchanged(prior)
        if current.status_checks is None:
            # The PATCH endpoint cannot enable a disabled section.
            updated = await context.client.put_protection(
                context.target, replace(current, protected=True, status_checks=desired)
            )
            return StepOutcome.applied(prior, updated.effective_status_checks())
        new = await context.client.set_required_status_checks(
            context.target,
            strict=desired.strict,
            contexts=desired.contexts,
            app_ids=dict(prior.app_ids),
        )
        return StepOutcome.applied(prior, new)


class PushRestrictionsStep:
    name = StepName.PUSH_RESTRICTIONS

    async def run(self, context: StepContext) -> StepOutcome:
        current = await context.client.get_protection(context.target)
        desired = context.preset.desired_restrictions()
        prior = current.effective_restrictions()
        if prior == desired:
            return StepOutcome.unchanged(prior)
        new = await context.client.set_push_restrictions(
            context.target,
            users=desired.users,
            teams=desired.teams,
            apps=desired.apps,
            base=current,
        )
        return StepOutcome.applied(prior, new)


class AllowDeletionsStep:
    name = StepName.ALLOW_DELETIONS

    async def run(self, context: StepContext) -> StepOutcome:
        current = await context.client.get_protection(context.target)
        desired = context.preset.allow_deletions
        if current.allow_deletions == desired:
            return StepOutcome.unchanged(current.allow_deletions)
        new = await context.client.set_allow_deletions(context.target, desired, base=current)
        return StepOutcome.applied(current.allow_deletions, new)


class EnforceAdminsStep:
    name = StepName.ENFORCE_ADMINS

    async def run(self, context: StepContext) -> StepOutcome:
        current = await context.client.get_protection(context.target)
        desired = context.preset.enforce_admins
        if current.enforce_admins == desired:
            return StepOutcome.unchanged(current.enforce_admins)
        new = await context.client.set_enforce_admins(context.target, desired)
        return StepOutcome.applied(current.enforce_admins, new)


class PullRequestReviewsStep:
    name = StepName.PULL_REQUEST_REVIEWS

    async def run(self, context: StepContext) -> StepOutcome:
        current = await context.client.get_protection(context.target)
        desired = context.preset.desired_reviews()
        prior = current.effective_reviews()
        if prior == desired:
            return StepOutcome.unchanged(prior)
        if desired.is_off:
            await context.client.delete_required_reviews(context.target)
            return StepOutcome.applied(prior, desired)
        if current.reviews is None:
            updated = await context.client.put_protection(
                context.target, replace(current, protected=True, reviews=desired)
            )
            return StepOutcome.applied(prior, updated.effective_reviews())
        new = await context.client.set_required_reviews(
            context.target,
            required_reviewers=desired.required_reviewers,
            dismiss_stale=desired.dismiss_stale,
            require_codeowners=desired.require_codeowners,
        )
        return StepOutcome.applied(prior, new)


class SignedCommitsStep:
    name = StepName.SIGNED_COMMITS

    async def run(self, context: StepContext) -> StepOutcome:
        current = await context.client.get_protection(context.target)
        desired = context.preset.require_signed_commits
        if current.required_signatures == desired:
            return StepOutcome.unchanged(current.required_signatures)
        new = await context.client.set_required_signatures(context.target, desired)
        return StepOutcome.applied(current.required_signatures, new)


class ConversationResolutionStep:
    name = StepName.CONVERSATION_RESOLUTION

    async def run(self, context: StepContext) -> StepOutcome:
        current = await context.client.get_protection(context.target)
        desired = context.preset.require_conversation_resolution
        if current.conversation_resolution == desired:
            return StepOutcome.unchanged(current.conversation_resolution)
        new = await context.client.set_conversation_resolution(
            context.target, desired, base=current
        )
        return StepOutcome.applied(current.conversation_resolution, new)


class VerifyStep:
    """Final read; fails when any preset-controlled field drifted."""

    name = StepName.VERIFY

    async def run(self, context: StepContext) -> StepOutcome:
        current = await context.client.get_protection(context.target)
        drift = context.preset.drift(current)
        if drift:
            raise VerificationFailed(
                f"{context.target} does not match preset {context.preset.name}: "
                + ", ".join(drift),
                fields=drift,
            )
        return StepOutcome.unchanged(current)


DEFAULT_STEPS: tuple[ProtectionStep, ...] = (
    BootstrapStep(),
    StatusChecksStep(),
    PushRestrictionsStep(),
    AllowDeletionsStep(),
    EnforceAdminsStep(),
    PullRequestReviewsStep(),
    SignedCommitsStep(),
    ConversationResolutionStep(),
    VerifyStep(),
)
