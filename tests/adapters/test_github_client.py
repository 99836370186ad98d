from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any

import httpx
import pytest

from branchwarden.adapters.github import GitHubProtectionClient
from branchwarden.domain.errors import (
    AuthError,
    NotFound,
    RateLimited,
    RemoteError,
    RequestTimeout,
)
from branchwarden.domain.model import (
    BranchProtection,
    BranchTarget,
    PushRestrictions,
    ProtectionPreset,
    ReviewRules,
    StatusChecks,
)
from tests.support.http import make_client_factory

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from branchwarden.config import GitHubConfig

    Handler = Callable[[httpx.Request], httpx.Response]

PROTECTION_PATH = "/repos/octo/service/branches/main/protection"

PROTECTION_PAYLOAD: dict[str, Any] = {
    "url": f"https://api.github.test{PROTECTION_PATH}",
    "required_status_checks": {
        "strict": True,
        "contexts": ["ci / test"],
        "checks": [{"context": "ci / test", "app_id": 15368}],
    },
    "required_pull_request_reviews": {
        "dismiss_stale_reviews": True,
        "require_code_owner_reviews": False,
        "required_approving_review_count": 2,
    },
    "restrictions": {
        "users": [{"login": "alice", "id": 1}],
        "teams": [{"slug": "core", "id": 2}],
        "apps": [],
    },
    "enforce_admins": {"url": "https://api.github.test/x", "enabled": True},
    "required_signatures": {"enabled": False},
    "allow_deletions": {"enabled": False},
    "required_conversation_resolution": {"enabled": True},
    "required_linear_history": {"enabled": True},
    "allow_force_pushes": {"enabled": False},
}


def _run[T](
    config: GitHubConfig,
    handler: Handler,
    operation: Callable[[GitHubProtectionClient], Awaitable[T]],
    *,
    clock: Callable[[], float] = lambda: 1_000.0,
) -> T:
    async def scenario() -> T:
        async with GitHubProtectionClient(
            config=config,
            client_factory=make_client_factory(handler),
            clock=clock,
        ) as client:
            return await operation(client)

    return asyncio.run(scenario())


def _recording(
    requests: list[httpx.Request], status: int = 200, payload: object = None
) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if payload is None:
            return httpx.Response(status)
        return httpx.Response(status, json=payload)

    return handler


def _body(request: httpx.Request) -> dict[str, Any]:
    return json.loads(request.content)


def test_get_protection_parses_full_rule(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    requests: list[httpx.Request] = []

    protection = _run(
        github_config,
        _recording(requests, payload=PROTECTION_PAYLOAD),
        lambda client: client.get_protection(target),
    )

    assert protection == BranchProtection(
        protected=True,
        status_checks=StatusChecks(strict=True, contexts=("ci / test",)),
        reviews=ReviewRules(required_reviewers=2, dismiss_stale=True),
        restrictions=PushRestrictions(users=frozenset({"alice"}), teams=frozenset({"core"})),
        enforce_admins=True,
        conversation_resolution=True,
        linear_history=True,
    )
    request = requests[0]
    assert request.method == "GET"
    assert request.url.path == PROTECTION_PATH
    assert request.headers["Authorization"] == "Bearer test-token"
    assert request.headers["Accept"] == "application/vnd.github+json"
    assert request.headers["X-GitHub-Api-Version"] == "2022-11-28"


def test_get_protection_reads_contexts_from_checks(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    payload = {"required_status_checks": {"strict": False, "checks": [{"context": "build"}]}}

    protection = _run(
        github_config,
        _recording([], payload=payload),
        lambda client: client.get_protection(target),
    )

    assert protection.status_checks == StatusChecks(strict=False, contexts=("build",))
    assert protection.reviews is None
    assert not protection.enforce_admins


def test_unprotected_branch_reads_as_unprotected(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    payload = {"message": "Branch not protected", "documentation_url": "https://docs"}

    protection = _run(
        github_config,
        _recording([], status=404, payload=payload),
        lambda client: client.get_protection(target),
    )

    assert protection == BranchProtection.unprotected()


def test_missing_branch_raises_not_found(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    with pytest.raises(NotFound) as exc:
        _run(
            github_config,
            _recording([], status=404, payload={"message": "Branch not found"}),
            lambda client: client.get_protection(target),
        )

    assert exc.value.status == 404
    assert exc.value.message == "Branch not found"


@pytest.mark.parametrize("status", [401, 403])
def test_auth_failures_raise_auth_error(
    github_config: GitHubConfig, target: BranchTarget, status: int
) -> None:
    with pytest.raises(AuthError) as exc:
        _run(
            github_config,
            _recording([], status=status, payload={"message": "Bad credentials"}),
            lambda client: client.get_protection(target),
        )

    assert exc.value.status == status


def test_primary_rate_limit_uses_reset_header(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(
            403,
            json={"message": "API rate limit exceeded for user ID 1."},
            headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1042"},
        )

    with pytest.raises(RateLimited) as exc:
        _run(github_config, handler, lambda client: client.get_protection(target))

    assert exc.value.retry_after == 42.0


def test_too_many_requests_uses_retry_after(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"message": "slow down"}, headers={"Retry-After": "7"})

    with pytest.raises(RateLimited) as exc:
        _run(github_config, handler, lambda client: client.get_protection(target))

    assert exc.value.retry_after == 7.0
    assert exc.value.status == 429


def test_secondary_rate_limit_is_detected_from_message(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    payload = {"message": "You have exceeded a secondary rate limit."}

    with pytest.raises(RateLimited) as exc:
        _run(
            github_config,
            _recording([], status=403, payload=payload),
            lambda client: client.get_protection(target),
        )

    assert exc.value.retry_after is None


def test_server_error_raises_remote_error(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    with pytest.raises(RemoteError) as exc:
        _run(
            github_config,
            _recording([], status=502, payload={"message": "Bad gateway"}),
            lambda client: client.get_protection(target),
        )

    assert exc.value.status == 502
    assert exc.value.kind == "RemoteError"


def test_timeout_raises_request_timeout(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(RequestTimeout) as exc:
        _run(github_config, handler, lambda client: client.get_protection(target))

    assert exc.value.kind == "Timeout"


def test_unexpected_payload_raises_remote_error(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    payload = {"required_pull_request_reviews": {"required_approving_review_count": "many"}}

    with pytest.raises(RemoteError, match="Unexpected GitHub response"):
        _run(
            github_config,
            _recording([], payload=payload),
            lambda client: client.get_protection(target),
        )


def test_set_status_checks_patches_sub_resource(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    requests: list[httpx.Request] = []

    checks = _run(
        github_config,
        _recording(requests, payload={"strict": True, "contexts": ["a", "b"]}),
        lambda client: client.set_required_status_checks(
            target, strict=True, contexts=("a", "b")
        ),
    )

    assert checks == StatusChecks(strict=True, contexts=("a", "b"))
    request = requests[0]
    assert request.method == "PATCH"
    assert request.url.path == f"{PROTECTION_PATH}/required_status_checks"
    assert _body(request) == {"strict": True, "checks": [{"context": "a"}, {"context": "b"}]}


def test_set_status_checks_keeps_app_bindings(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    requests: list[httpx.Request] = []
    payload = {"strict": False, "checks": [{"context": "ci / test", "app_id": 15368}]}

    checks = _run(
        github_config,
        _recording(requests, payload=payload),
        lambda client: client.set_required_status_checks(
            target, strict=False, contexts=("ci / test", "lint"), app_ids={"ci / test": 15368}
        ),
    )

    assert checks.app_id_for("ci / test") == 15368
    assert _body(requests[0])["checks"] == [
        {"context": "ci / test", "app_id": 15368},
        {"context": "lint"},
    ]


def test_set_required_reviews_patches_sub_resource(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    requests: list[httpx.Request] = []
    payload = PROTECTION_PAYLOAD["required_pull_request_reviews"]

    rules = _run(
        github_config,
        _recording(requests, payload=payload),
        lambda client: client.set_required_reviews(
            target, required_reviewers=2, dismiss_stale=True, require_codeowners=False
        ),
    )

    assert rules == ReviewRules(required_reviewers=2, dismiss_stale=True)
    assert requests[0].url.path == f"{PROTECTION_PATH}/required_pull_request_reviews"
    assert _body(requests[0])["required_approving_review_count"] == 2


def test_delete_required_reviews_removes_section(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    requests: list[httpx.Request] = []

    _run(
        github_config,
        _recording(requests, status=204),
        lambda client: client.delete_required_reviews(target),
    )

    [request] = requests
    assert request.method == "DELETE"
    assert request.url.path == f"{PROTECTION_PATH}/required_pull_request_reviews"
    assert request.content == b""


def test_allow_deletions_rewrites_full_rule(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    requests: list[httpx.Request] = []
    base = BranchProtection(
        status_checks=StatusChecks(strict=True, contexts=("ci",)),
        reviews=ReviewRules(required_reviewers=1),
        required_signatures=True,
        linear_history=True,
    )
    payload = {**PROTECTION_PAYLOAD, "allow_deletions": {"enabled": True}}

    allowed = _run(
        github_config,
        _recording(requests, payload=payload),
        lambda client: client.set_allow_deletions(target, True, base=base),
    )

    assert allowed is True
    request = requests[0]
    assert request.method == "PUT"
    assert request.url.path == PROTECTION_PATH
    assert _body(request) == {
        "required_status_checks": {"strict": True, "checks": [{"context": "ci"}]},
        "enforce_admins": False,
        "required_pull_request_reviews": {
            "dismiss_stale_reviews": False,
            "require_code_owner_reviews": False,
            "required_approving_review_count": 1,
            "require_last_push_approval": False,
        },
        "restrictions": None,
        "required_linear_history": True,
        "allow_force_pushes": False,
        "allow_deletions": True,
        "required_conversation_resolution": False,
        "lock_branch": False,
        "block_creations": False,
        "allow_fork_syncing": False,
    }


def test_full_rule_write_keeps_settings_presets_do_not_manage(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    requests: list[httpx.Request] = []
    payload: dict[str, Any] = {
        **PROTECTION_PAYLOAD,
        "required_pull_request_reviews": {
            **PROTECTION_PAYLOAD["required_pull_request_reviews"],
            "require_last_push_approval": True,
            "dismissal_restrictions": {"users": [{"login": "alice"}], "teams": [], "apps": []},
            "bypass_pull_request_allowances": {
                "users": [],
                "teams": [{"slug": "release"}],
                "apps": [{"slug": "deploy-bot"}],
            },
        },
        "lock_branch": {"enabled": True},
        "block_creations": {"enabled": True},
        "allow_fork_syncing": {"enabled": True},
    }

    async def flip_deletions(client: GitHubProtectionClient) -> bool:
        base = await client.get_protection(target)
        return await client.set_allow_deletions(target, True, base=base)

    _run(github_config, _recording(requests, payload=payload), flip_deletions)

    get, put = requests
    assert (get.method, put.method) == ("GET", "PUT")
    body = _body(put)
    assert body["required_status_checks"] == {
        "strict": True,
        "checks": [{"context": "ci / test", "app_id": 15368}],
    }
    reviews = body["required_pull_request_reviews"]
    assert reviews["require_last_push_approval"] is True
    assert reviews["dismissal_restrictions"] == {"users": ["alice"], "teams": [], "apps": []}
    assert reviews["bypass_pull_request_allowances"] == {
        "users": [],
        "teams": ["release"],
        "apps": ["deploy-bot"],
    }
    assert body["lock_branch"] is True
    assert body["block_creations"] is True
    assert body["allow_fork_syncing"] is True
    assert body["required_linear_history"] is True
    assert body["allow_deletions"] is True


def test_conversation_resolution_rewrites_full_rule(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    requests: list[httpx.Request] = []
    base = BranchProtection(status_checks=StatusChecks(), enforce_admins=True, lock_branch=True)

    enabled = _run(
        github_config,
        _recording(requests, payload=PROTECTION_PAYLOAD),
        lambda client: client.set_conversation_resolution(target, True, base=base),
    )

    assert enabled is True
    request = requests[0]
    assert request.method == "PUT"
    assert request.url.path == PROTECTION_PATH
    body = _body(request)
    assert body["required_conversation_resolution"] is True
    assert body["enforce_admins"] is True
    assert body["lock_branch"] is True
    assert body["required_pull_request_reviews"] is None


@pytest.mark.parametrize(
    ("preset", "reviews"),
    [
        (ProtectionPreset(name="admins-only", enforce_admins=True), None),
        (
            ProtectionPreset(name="reviewed", required_reviewers=1, dismiss_stale=True),
            {
                "dismiss_stale_reviews": True,
                "require_code_owner_reviews": False,
                "required_approving_review_count": 1,
                "require_last_push_approval": False,
            },
        ),
    ],
)
def test_bootstrap_body_follows_preset(
    github_config: GitHubConfig,
    target: BranchTarget,
    preset: ProtectionPreset,
    reviews: dict[str, Any] | None,
) -> None:
    requests: list[httpx.Request] = []

    _run(
        github_config,
        _recording(requests, payload=PROTECTION_PAYLOAD),
        lambda client: client.put_protection(target, preset.to_protection()),
    )

    request = requests[0]
    assert request.method == "PUT"
    assert request.url.path == PROTECTION_PATH
    body = _body(request)
    assert body["required_pull_request_reviews"] == reviews
    assert body["required_status_checks"] == {"strict": False, "checks": []}
    assert body["enforce_admins"] is preset.enforce_admins
    assert body["restrictions"] is None
    assert "required_signatures" not in body


def test_push_restrictions_rewrite_rule_when_non_empty(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    requests: list[httpx.Request] = []

    restrictions = _run(
        github_config,
        _recording(requests, payload=PROTECTION_PAYLOAD),
        lambda client: client.set_push_restrictions(
            target,
            users={"alice"},
            teams={"core"},
            apps=set(),
            base=BranchProtection(status_checks=StatusChecks()),
        ),
    )

    assert restrictions == PushRestrictions(
        users=frozenset({"alice"}), teams=frozenset({"core"})
    )
    assert requests[0].method == "PUT"
    assert _body(requests[0])["restrictions"] == {
        "users": ["alice"],
        "teams": ["core"],
        "apps": [],
    }


def test_empty_push_restrictions_delete_section(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    requests: list[httpx.Request] = []

    restrictions = _run(
        github_config,
        _recording(requests, status=204),
        lambda client: client.set_push_restrictions(
            target, users=(), teams=(), apps=(), base=BranchProtection()
        ),
    )

    assert restrictions.is_empty
    assert requests[0].method == "DELETE"
    assert requests[0].url.path == f"{PROTECTION_PATH}/restrictions"


@pytest.mark.parametrize(
    ("enabled", "method", "status", "payload"),
    [(True, "POST", 200, {"enabled": True}), (False, "DELETE", 204, None)],
)
def test_enforce_admins_toggles_sub_resource(
    github_config: GitHubConfig,
    target: BranchTarget,
    enabled: bool,
    method: str,
    status: int,
    payload: object,
) -> None:
    requests: list[httpx.Request] = []

    result = _run(
        github_config,
        _recording(requests, status=status, payload=payload),
        lambda client: client.set_enforce_admins(target, enabled),
    )

    assert result is enabled
    assert requests[0].method == method
    assert requests[0].url.path == f"{PROTECTION_PATH}/enforce_admins"


@pytest.mark.parametrize(
    ("enabled", "method", "status", "payload"),
    [(True, "POST", 200, {"enabled": True}), (False, "DELETE", 204, None)],
)
def test_required_signatures_toggle_sub_resource(
    github_config: GitHubConfig,
    target: BranchTarget,
    enabled: bool,
    method: str,
    status: int,
    payload: object,
) -> None:
    requests: list[httpx.Request] = []

    result = _run(
        github_config,
        _recording(requests, status=status, payload=payload),
        lambda client: client.set_required_signatures(target, enabled),
    )

    assert result is enabled
    assert requests[0].method == method
    assert requests[0].url.path == f"{PROTECTION_PATH}/required_signatures"
    assert requests[0].content == b""


def test_branch_names_are_path_quoted(github_config: GitHubConfig) -> None:
    requests: list[httpx.Request] = []
    target = BranchTarget(owner="octo", repo="service", branch="feature/login")

    _run(
        github_config,
        _recording(requests, status=404, payload={"message": "Branch not protected"}),
        lambda client: client.get_protection(target),
    )

    assert requests[0].url.raw_path == b"/repos/octo/service/branches/feature%2Flogin/protection"


def test_client_requires_context_manager(
    github_config: GitHubConfig, target: BranchTarget
) -> None:
    client = GitHubProtectionClient(config=github_config)

    with pytest.raises(RuntimeError, match="async with"):
        asyncio.run(client.get_protection(target))
