"""Domain model for branch protection runs."""

from __future__ import annotations

from .enums import ActorKind, RunState, StepName, StepStatus
from .preset import (
    DEFAULT_BRANCH,
    MAX_REQUIRED_REVIEWERS,
    BranchTarget,
    ProtectionPreset,
    parse_actor,
)
from .protection import BranchProtection, PushRestrictions, ReviewRules, StatusChecks
from .results import ApplyResult, RunReport, StepError, overall_state, summarize_run

__all__ = [
    "DEFAULT_BRANCH",
    "MAX_REQUIRED_REVIEWERS",
    "ActorKind",
    "ApplyResult",
    "BranchProtection",
    "BranchTarget",
    "ProtectionPreset",
    "PushRestrictions",
    "ReviewRules",
    "RunReport",
    "RunState",
    "StatusChecks",
    "StepError",
    "StepName",
    "StepStatus",
    "overall_state",
    "parse_actor",
    "summarize_run",
]
