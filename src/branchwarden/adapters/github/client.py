"""HTTP client for GitHub's branch-protection REST endpoints."""

from __future__ import annotations

import time
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from branchwarden.adapters.http_resilience import ResilientClient
from branchwarden.domain.errors import (
    AuthError,
    NotFound,
    ProtectionError,
    RateLimited,
    RemoteError,
    RequestTimeout,
)
from branchwarden.domain.model import (
    BranchProtection,
    PushRestrictions,
    ReviewRules,
    StatusChecks,
)

from .schema import (
    BranchProtectionPayload,
    EnabledFlag,
    ErrorPayload,
    RequiredReviewsPayload,
    RequiredStatusChecksPayload,
)
from .translator import (
    protection_body,
    reviews_body,
    status_checks_body,
    translate_protection,
    translate_reviews,
    translate_status_checks,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Mapping, Sequence
    from types import TracebackType

    from branchwarden.config.github import GitHubConfig
    from branchwarden.config.http_resilience import ResilienceConfig
    from branchwarden.domain.model import BranchTarget

log = getLogger(__name__)

NOT_PROTECTED_MESSAGE: Final[str] = "Branch not protected"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class GitHubProtectionClient:
    """Async client with one method per branch-protection operation.

    Use it as an async context manager so the underlying connection pool is closed.
    Non-2xx responses are mapped onto :mod:`branchwarden.domain.errors`; nothing is
    retried on HTTP status here.
    """

    def __init__(
        self,
        *,
        config: GitHubConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        headers = dict(config.resilience.default_headers or {})
        headers["Authorization"] = f"Bearer {config.token}"
        self._resilience = replace(
            config.resilience,
            base_url=config.api_url,
            default_headers=headers,
        )
        self._client_factory = client_factory or _default_client_factory
        self._clock = clock
        self._http: ResilientClient | None = None

    async def __aenter__(self) -> GitHubProtectionClient:
        self._http = self._client_factory(self._resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def get_protection(self, target: BranchTarget) -> BranchProtection:
        try:
            response = await self._request("GET", _protection_path(target))
        except NotFound as exc:
            if NOT_PROTECTED_MESSAGE.lower() in exc.message.lower():
                return BranchProtection.unprotected()
            raise
        return translate_protection(_parse(response, BranchProtectionPayload))

    async def put_protection(
        self, target: BranchTarget, protection: BranchProtection
    ) -> BranchProtection:
        response = await self._request(
            "PUT", _protection_path(target), json=protection_body(protection)
        )
        return translate_protection(_parse(response, BranchProtectionPayload))

    async def set_required_status_checks(
        self,
        target: BranchTarget,
        *,
        strict: bool,
        contexts: Sequence[str],
        app_ids: Mapping[str, int] | None = None,
    ) -> StatusChecks:
        bound = app_ids or {}
        checks = StatusChecks(
            strict=strict,
            contexts=tuple(contexts),
            app_ids=tuple((name, bound[name]) for name in contexts if name in bound),
        )
        response = await self._request(
            "PATCH",
            _protection_path(target, "required_status_checks"),
            json=status_checks_body(checks),
        )
        return translate_status_checks(_parse(response, RequiredStatusChecksPayload))

    async def set_push_restrictions(
        self,
        target: BranchTarget,
        *,
        users: Collection[str],
        teams: Collection[str],
        apps: Collection[str],
        base: BranchProtection,
    ) -> PushRestrictions:
        restrictions = PushRestrictions(
            users=frozenset(users), teams=frozenset(teams), apps=frozenset(apps)
        )
        if restrictions.is_empty:
            await self._request("DELETE", _protection_path(target, "restrictions"))
            return restrictions
        # The narrow restrictions endpoints cannot create the section; rewrite the rule.
        updated = await self.put_protection(target, replace(base, restrictions=restrictions))
        return updated.effective_restrictions()

    async def set_allow_deletions(
        self, target: BranchTarget, allowed: bool, *, base: BranchProtection
    ) -> bool:
        updated = await self.put_protection(target, replace(base, allow_deletions=allowed))
        return updated.allow_deletions

    async def set_enforce_admins(self, target: BranchTarget, enabled: bool) -> bool:
        path = _protection_path(target, "enforce_admins")
        if not enabled:
            await self._request("DELETE", path)
            return False
        response = await self._request("POST", path)
        return _parse(response, EnabledFlag).enabled

    async def set_required_reviews(
        self,
        target: BranchTarget,
        *,
        required_reviewers: int,
        dismiss_stale: bool,
        require_codeowners: bool,
    ) -> ReviewRules:
        rules = ReviewRules(
            required_reviewers=required_reviewers,
            dismiss_stale=dismiss_stale,
            require_codeowners=require_codeowners,
        )
        response = await self._request(
            "PATCH",
            _protection_path(target, "required_pull_request_reviews"),
            json=reviews_body(rules),
        )
        return translate_reviews(_parse(response, RequiredReviewsPayload))

    async def delete_required_reviews(self, target: BranchTarget) -> None:
        await self._request("DELETE", _protection_path(target, "required_pull_request_reviews"))

    async def set_required_signatures(self, target: BranchTarget, enabled: bool) -> bool:
        path = _protection_path(target, "required_signatures")
        if not enabled:
            await self._request("DELETE", path)
            return False
        response = await self._request("POST", path)
        return _parse(response, EnabledFlag).enabled

    async def set_conversation_resolution(
        self, target: BranchTarget, enabled: bool, *, base: BranchProtection
    ) -> bool:
        updated = await self.put_protection(
            target, replace(base, conversation_resolution=enabled)
        )
        return updated.conversation_resolution

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        if self._http is None:
            raise RuntimeError("GitHubProtectionClient used outside 'async with'")
        log.debug("%s %s", method, path)
        try:
            if json is None:
                response = await self._http.request(method, path)
            else:
                response = await self._http.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            raise RequestTimeout(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise RemoteError(f"{method} {path} failed: {exc}") from exc

        if response.is_success:
            return response
        raise self._error_for(method, path, response)

    def _error_for(self, method: str, path: str, response: httpx.Response) -> ProtectionError:
        status = response.status_code
        detail = _error_message(response)
        message = f"{method} {path} returned {status}: {detail}"
        if _is_rate_limited(response, detail):
            return RateLimited(message, status=status, retry_after=self._retry_after(response))
        if status in {401, 403}:
            return AuthError(message, status=status)
        if status == 404:
            return NotFound(detail or message, status=status)
        return RemoteError(message, status=status)

    def _retry_after(self, response: httpx.Response) -> float | None:
        retry_after = response.headers.get("retry-after")
        if retry_after is not None:
            try:
                return max(float(retry_after), 0.0)
            except ValueError:
                log.debug("Ignoring non-numeric Retry-After %r", retry_after)
        reset = response.headers.get("x-ratelimit-reset")
        if reset is not None:
            try:
                return max(float(reset) - self._clock(), 0.0)
            except ValueError:
                log.debug("Ignoring non-numeric x-ratelimit-reset %r", reset)
        return None


def _protection_path(target: BranchTarget, resource: str | None = None) -> str:
    path = (
        f"/repos/{quote(target.owner, safe='')}/{quote(target.repo, safe='')}"
        f"/branches/{quote(target.branch, safe='')}/protection"
    )
    return f"{path}/{resource}" if resource else path


def _parse[ModelT: BaseModel](response: httpx.Response, model: type[ModelT]) -> ModelT:
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise RemoteError(
            f"Unexpected GitHub response payload from {response.request.url}",
            status=response.status_code,
        ) from exc


def _error_message(response: httpx.Response) -> str:
    try:
        return ErrorPayload.model_validate(response.json()).message
    except (ValueError, ValidationError):
        return response.text.strip()


def _is_rate_limited(response: httpx.Response, detail: str) -> bool:
    if response.status_code == 429:
        return True
    if response.status_code != 403:
        return False
    if response.headers.get("x-ratelimit-remaining") == "0":
        return True
    return "rate limit" in detail.lower()
