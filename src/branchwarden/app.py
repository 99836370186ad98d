"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
import contextlib
from logging import getLogger
from signal import SIGINT
from typing import TYPE_CHECKING

from branchwarden.adapters.github import GitHubProtectionClient
from branchwarden.config import ApplyPolicy, get_github_config, validate_preset
from branchwarden.domain.applier import Applier
from branchwarden.domain.errors import InvalidSettings
from branchwarden.domain.model import RunReport, overall_state

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from branchwarden.config import GitHubConfig
    from branchwarden.domain.model import BranchProtection, BranchTarget, ProtectionPreset
    from branchwarden.domain.ports import ProtectionClient


log = getLogger(__name__)


async def apply_targets(
    targets: Sequence[BranchTarget],
    preset: ProtectionPreset,
    *,
    client: ProtectionClient,
    policy: ApplyPolicy | None = None,
    cancel_event: asyncio.Event | None = None,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> list[RunReport]:
    """Run one independent applier pass per target, at most ``policy.concurrency`` at once."""

    active_policy = policy or ApplyPolicy()
    applier = Applier(
        client=client,
        max_attempts=active_policy.max_attempts,
        backoff_factor=active_policy.backoff_factor,
        max_backoff_wait=active_policy.max_backoff_wait,
        sleep=sleep or asyncio.sleep,
    )
    semaphore = asyncio.Semaphore(active_policy.concurrency)

    async def run_one(target: BranchTarget) -> RunReport:
        async with semaphore:
            return await applier.apply(target, preset, cancel_event=cancel_event)

    return list(await asyncio.gather(*(run_one(target) for target in targets)))


async def apply_protection_async(
    targets: Sequence[BranchTarget],
    preset: ProtectionPreset,
    *,
    config: GitHubConfig | None = None,
    client: ProtectionClient | None = None,
    policy: ApplyPolicy | None = None,
    cancel_event: asyncio.Event | None = None,
) -> list[RunReport]:
    try:
        validate_preset(preset)
    except InvalidSettings as exc:
        log.error("Preset %s is invalid; no request sent: %s", preset.name, exc.message)
        return [RunReport.aborted(target, preset.name, exc) for target in targets]

    log.info(
        "Applying preset %s to %s target(s): %s",
        preset.name,
        len(targets),
        ", ".join(str(target) for target in targets),
    )
    if client is not None:
        reports = await apply_targets(
            targets, preset, client=client, policy=policy, cancel_event=cancel_event
        )
    else:
        async with GitHubProtectionClient(config=config or get_github_config()) as github:
            reports = await apply_targets(
                targets, preset, client=github, policy=policy, cancel_event=cancel_event
            )
    for report in reports:
        if report.failed_steps:
            log.warning(
                "%s failed steps: %s",
                report.target,
                ", ".join(step.resource_name for step in report.failed_steps),
            )
    log.info("Finished applying preset %s: %s", preset.name, overall_state(reports))
    return reports


def apply_protection(
    targets: Sequence[BranchTarget],
    preset: ProtectionPreset,
    *,
    config: GitHubConfig | None = None,
    client: ProtectionClient | None = None,
    policy: ApplyPolicy | None = None,
    cancel_on_sigint: bool = False,
) -> list[RunReport]:
    """Synchronous wrapper; with ``cancel_on_sigint`` the first Ctrl+C stops between steps."""

    async def runner() -> list[RunReport]:
        cancel_event = asyncio.Event()
        if cancel_on_sigint:
            _install_sigint_cancel(cancel_event)
        return await apply_protection_async(
            targets,
            preset,
            config=config,
            client=client,
            policy=policy,
            cancel_event=cancel_event,
        )

    return asyncio.run(runner())


async def read_protection_async(
    targets: Sequence[BranchTarget],
    *,
    config: GitHubConfig | None = None,
    client: ProtectionClient | None = None,
) -> list[tuple[BranchTarget, BranchProtection]]:
    if client is not None:
        return [(target, await client.get_protection(target)) for target in targets]
    async with GitHubProtectionClient(config=config or get_github_config()) as github:
        return [(target, await github.get_protection(target)) for target in targets]


def read_protection(
    targets: Sequence[BranchTarget],
    *,
    config: GitHubConfig | None = None,
    client: ProtectionClient | None = None,
) -> list[tuple[BranchTarget, BranchProtection]]:
    return asyncio.run(read_protection_async(targets, config=config, client=client))


def _install_sigint_cancel(cancel_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def request_cancel() -> None:
        log.warning("Interrupt received; finishing the current step (Ctrl+C again to abort)")
        cancel_event.set()
        loop.remove_signal_handler(SIGINT)

    # add_signal_handler is unavailable on Windows event loops.
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(SIGINT, request_cancel)
