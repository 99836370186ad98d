"""Translate between GitHub payloads and domain snapshots."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from branchwarden.domain.model import (
    BranchProtection,
    PushRestrictions,
    ReviewRules,
    StatusChecks,
)

if TYPE_CHECKING:
    from .schema import (
        BranchProtectionPayload,
        EnabledFlag,
        RequiredReviewsPayload,
        RequiredStatusChecksPayload,
        RestrictionsPayload,
    )


def translate_status_checks(payload: RequiredStatusChecksPayload) -> StatusChecks:
    # Newer rules list checks instead of the deprecated contexts array.
    contexts = payload.contexts or [check.context for check in payload.checks]
    return StatusChecks(
        strict=payload.strict,
        contexts=tuple(contexts),
        app_ids=tuple(
            (check.context, check.app_id) for check in payload.checks if check.app_id is not None
        ),
    )


def translate_reviews(payload: RequiredReviewsPayload) -> ReviewRules:
    return ReviewRules(
        required_reviewers=payload.required_approving_review_count,
        dismiss_stale=payload.dismiss_stale_reviews,
        require_codeowners=payload.require_code_owner_reviews,
        require_last_push_approval=payload.require_last_push_approval,
        dismissal_restrictions=_optional_restrictions(payload.dismissal_restrictions),
        bypass_allowances=_optional_restrictions(payload.bypass_pull_request_allowances),
    )


def translate_restrictions(payload: RestrictionsPayload) -> PushRestrictions:
    return PushRestrictions(
        users=frozenset(user.login for user in payload.users),
        teams=frozenset(team.slug for team in payload.teams),
        apps=frozenset(app.slug for app in payload.apps),
    )


def translate_protection(payload: BranchProtectionPayload) -> BranchProtection:
    return BranchProtection(
        protected=True,
        status_checks=(
            translate_status_checks(payload.required_status_checks)
            if payload.required_status_checks is not None
            else None
        ),
        reviews=(
            translate_reviews(payload.required_pull_request_reviews)
            if payload.required_pull_request_reviews is not None
            else None
        ),
        restrictions=_optional_restrictions(payload.restrictions),
        enforce_admins=_enabled(payload.enforce_admins),
        allow_deletions=_enabled(payload.allow_deletions),
        required_signatures=_enabled(payload.required_signatures),
        conversation_resolution=_enabled(payload.required_conversation_resolution),
        linear_history=_enabled(payload.required_linear_history),
        allow_force_pushes=_enabled(payload.allow_force_pushes),
        lock_branch=_enabled(payload.lock_branch),
        block_creations=_enabled(payload.block_creations),
        allow_fork_syncing=_enabled(payload.allow_fork_syncing),
    )


def status_checks_body(checks: StatusChecks) -> dict[str, Any]:
    """Body for the status-checks section, written as ``checks`` so app bindings survive."""

    entries: list[dict[str, Any]] = []
    for context in checks.contexts:
        entry: dict[str, Any] = {"context": context}
        app_id = checks.app_id_for(context)
        if app_id is not None:
            entry["app_id"] = app_id
        entries.append(entry)
    return {"strict": checks.strict, "checks": entries}


def reviews_body(rules: ReviewRules) -> dict[str, Any]:
    return {
        "dismiss_stale_reviews": rules.dismiss_stale,
        "require_code_owner_reviews": rules.require_codeowners,
        "required_approving_review_count": rules.required_reviewers,
    }


def full_reviews_body(rules: ReviewRules) -> dict[str, Any]:
    # A PATCH leaves unnamed keys alone; a full-rule PUT resets them unless resent.
    body = reviews_body(rules)
    body["require_last_push_approval"] = rules.require_last_push_approval
    if rules.dismissal_restrictions is not None:
        body["dismissal_restrictions"] = restrictions_body(rules.dismissal_restrictions)
    if rules.bypass_allowances is not None:
        body["bypass_pull_request_allowances"] = restrictions_body(rules.bypass_allowances)
    return body


def restrictions_body(restrictions: PushRestrictions) -> dict[str, list[str]]:
    return {
        "users": sorted(restrictions.users),
        "teams": sorted(restrictions.teams),
        "apps": sorted(restrictions.apps),
    }


def protection_body(protection: BranchProtection) -> dict[str, Any]:
    """Full-rule body for ``PUT .../protection``.

    The four nullable sections are required keys; signatures are managed by their
    own endpoint and are not part of this body. Every other flag read from the rule
    is written back unchanged.
    """

    status_checks = protection.status_checks
    restrictions = protection.restrictions
    return {
        "required_status_checks": (
            status_checks_body(status_checks) if status_checks is not None else None
        ),
        "enforce_admins": protection.enforce_admins,
        "required_pull_request_reviews": (
            full_reviews_body(protection.reviews) if protection.reviews is not None else None
        ),
        "restrictions": (
            restrictions_body(restrictions)
            if restrictions is not None and not restrictions.is_empty
            else None
        ),
        "required_linear_history": protection.linear_history,
        "allow_force_pushes": protection.allow_force_pushes,
        "allow_deletions": protection.allow_deletions,
        "required_conversation_resolution": protection.conversation_resolution,
        "lock_branch": protection.lock_branch,
        "block_creations": protection.block_creations,
        "allow_fork_syncing": protection.allow_fork_syncing,
    }


def _optional_restrictions(payload: RestrictionsPayload | None) -> PushRestrictions | None:
    return translate_restrictions(payload) if payload is not None else None


def _enabled(flag: EnabledFlag | None) -> bool:
    return flag is not None and flag.enabled
