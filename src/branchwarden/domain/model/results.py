"""Per-step outcomes and run reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import RunState, StepName, StepStatus

if TYPE_CHECKING:
    from collections.abc import Sequence

    from branchwarden.domain.errors import ProtectionError

    from .preset import BranchTarget


@dataclass(frozen=True, slots=True)
class StepError:
    kind: str
    message: str

    @classmethod
    def from_exception(cls, exc: ProtectionError) -> StepError:
        return cls(kind=exc.kind, message=exc.message)


@dataclass(frozen=True, slots=True)
class ApplyResult:
    """Outcome of one sub-resource step."""

    resource_name: StepName
    status: StepStatus
    prior_state: object | None = None
    new_state: object | None = None
    error: StepError | None = None
    attempts: int = 0


@dataclass(frozen=True, slots=True)
class RunReport:
    target: BranchTarget
    preset: str
    state: RunState
    steps: tuple[ApplyResult, ...] = field(default_factory=tuple)
    error: StepError | None = None

    @classmethod
    def aborted(cls, target: BranchTarget, preset: str, error: ProtectionError) -> RunReport:
        return cls(
            target=target,
            preset=preset,
            state=RunState.ABORTED,
            error=StepError.from_exception(error),
        )

    @property
    def failed_steps(self) -> tuple[ApplyResult, ...]:
        return tuple(step for step in self.steps if step.status is StepStatus.FAILED)


def summarize_run(steps: Sequence[ApplyResult]) -> RunState:
    statuses = {step.status for step in steps}
    if StepStatus.CANCELLED in statuses:
        return RunState.CANCELLED
    if StepStatus.FAILED in statuses:
        return RunState.PARTIALLY_FAILED
    return RunState.COMPLETED


def overall_state(reports: Sequence[RunReport]) -> RunState:
    """Worst state across several targets (aborted > cancelled > failed > completed)."""

    states = {report.state for report in reports}
    for state in (RunState.ABORTED, RunState.CANCELLED, RunState.PARTIALLY_FAILED):
        if state in states:
            return state
    return RunState.COMPLETED
