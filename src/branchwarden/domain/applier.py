"""Step machine that converges one branch onto a preset."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from branchwarden.domain.errors import (
    Cancelled,
    InvalidSettings,
    ProtectionError,
    RateLimited,
)
from branchwarden.domain.model import (
    ApplyResult,
    RunReport,
    StepError,
    StepStatus,
    summarize_run,
)
from branchwarden.domain.steps import DEFAULT_STEPS, StepContext

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from branchwarden.domain.model import BranchTarget, ProtectionPreset
    from branchwarden.domain.ports import ProtectionClient
    from branchwarden.domain.steps import ProtectionStep

    Sleep = Callable[[float], Awaitable[None]]

log = getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


@dataclass(slots=True)
class Applier:
    """Run the ordered steps against one target.

    Steps run strictly in order. A failing step is recorded and the run moves on;
    ``RateLimited`` is retried with exponential backoff up to ``max_attempts``.
    The optional ``cancel_event`` is checked between steps.
    """

    client: ProtectionClient
    steps: Sequence[ProtectionStep] = field(default_factory=lambda: DEFAULT_STEPS)
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_factor: float = 1.0
    max_backoff_wait: float = 60.0
    sleep: Sleep = field(default=asyncio.sleep)

    async def apply(
        self,
        target: BranchTarget,
        preset: ProtectionPreset,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> RunReport:
        try:
            target.validate()
            preset.validate()
        except InvalidSettings as exc:
            log.error("Aborting %s before any request: %s", target, exc.message)
            return RunReport.aborted(target, preset.name, exc)

        context = StepContext(target=target, preset=preset, client=self.client)
        results: list[ApplyResult] = []
        for index, step in enumerate(self.steps):
            if cancel_event is not None and cancel_event.is_set():
                log.warning("Run for %s cancelled before step %s", target, step.name)
                results.extend(_cancelled(remaining) for remaining in self.steps[index:])
                break
            results.append(await self._run_step(step, context))

        report = RunReport(
            target=target,
            preset=preset.name,
            state=summarize_run(results),
            steps=tuple(results),
        )
        log.info("Finished %s with preset %s: %s", target, preset.name, report.state)
        return report

    async def _run_step(self, step: ProtectionStep, context: StepContext) -> ApplyResult:
        attempt = 0
        while True:
            attempt += 1
            try:
                outcome = await step.run(context)
            except RateLimited as exc:
                if attempt >= self.max_attempts:
                    log.error(
                        "%s %s still rate limited after %s attempts",
                        context.target,
                        step.name,
                        attempt,
                    )
                    return _failed(step, exc, attempt)
                delay = self.backoff_delay(attempt, exc.retry_after)
                log.warning(
                    "%s %s rate limited; retrying in %.1fs (attempt %s/%s)",
                    context.target,
                    step.name,
                    delay,
                    attempt,
                    self.max_attempts,
                )
                await self.sleep(delay)
                continue
            except ProtectionError as exc:
                log.error("%s %s failed: %s: %s", context.target, step.name, exc.kind, exc.message)
                return _failed(step, exc, attempt)

            log.info("%s %s: %s", context.target, step.name, outcome.status)
            return ApplyResult(
                resource_name=step.name,
                status=outcome.status,
                prior_state=outcome.prior_state,
                new_state=outcome.new_state,
                attempts=attempt,
            )

    def backoff_delay(self, attempt: int, retry_after: float | None) -> float:
        delay = self.backoff_factor * (2 ** (attempt - 1))
        if retry_after is not None:
            delay = max(delay, retry_after)
        return min(delay, self.max_backoff_wait)


def _failed(step: ProtectionStep, exc: ProtectionError, attempts: int) -> ApplyResult:
    return ApplyResult(
        resource_name=step.name,
        status=StepStatus.FAILED,
        error=StepError.from_exception(exc),
        attempts=attempts,
    )


def _cancelled(step: ProtectionStep) -> ApplyResult:
    error = Cancelled("Run cancelled before this step")
    return ApplyResult(
        resource_name=step.name,
        status=StepStatus.CANCELLED,
        error=StepError.from_exception(error),
    )
