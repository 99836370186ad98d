"""Console and JSON rendering of run reports."""

from __future__ import annotations

import json
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import TYPE_CHECKING

from branchwarden.domain.model import (
    BranchProtection,
    PushRestrictions,
    ReviewRules,
    StatusChecks,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from branchwarden.domain.model import (
        ApplyResult,
        BranchTarget,
        ProtectionPreset,
        RunReport,
    )


def to_jsonable(value: object) -> object:
    """Convert report values (dataclasses, enums, sets) into JSON-friendly data."""

    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return {item.name: to_jsonable(getattr(value, item.name)) for item in fields(value)}
    if isinstance(value, (set, frozenset)):
        return sorted(to_jsonable(item) for item in value)  # type: ignore[type-var]
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def report_to_dict(report: RunReport) -> dict[str, object]:
    return {
        "target": str(report.target),
        "owner": report.target.owner,
        "repo": report.target.repo,
        "branch": report.target.branch,
        "preset": report.preset,
        "state": report.state.value,
        "error": to_jsonable(report.error),
        "steps": [to_jsonable(step) for step in report.steps],
    }


def render_json(reports: Sequence[RunReport]) -> str:
    return json.dumps([report_to_dict(report) for report in reports], indent=2)


def render_text(reports: Sequence[RunReport]) -> str:
    lines: list[str] = []
    for report in reports:
        lines.append(f"{report.target}  preset={report.preset}  state={report.state.value}")
        if report.error is not None:
            lines.append(f"  aborted: {report.error.kind}: {report.error.message}")
        lines.extend(f"  {_render_step(step)}" for step in report.steps)
    return "\n".join(lines)


def render_protection_text(entries: Sequence[tuple[BranchTarget, BranchProtection]]) -> str:
    lines: list[str] = []
    for target, protection in entries:
        lines.append(str(target))
        if not protection.protected:
            lines.append("  not protected")
            continue
        for item in fields(protection):
            if item.name == "protected":
                continue
            lines.append(f"  {item.name:<24} {describe(getattr(protection, item.name))}")
    return "\n".join(lines)


def render_protection_json(entries: Sequence[tuple[BranchTarget, BranchProtection]]) -> str:
    return json.dumps(
        [{"target": str(target), **_as_dict(protection)} for target, protection in entries],
        indent=2,
    )


def render_presets_text(presets: Sequence[ProtectionPreset]) -> str:
    lines: list[str] = []
    for preset in presets:
        lines.append(preset.name)
        for item in fields(preset):
            if item.name == "name":
                continue
            lines.append(f"  {item.name:<32} {describe(getattr(preset, item.name))}")
    return "\n".join(lines)


def render_presets_json(presets: Sequence[ProtectionPreset]) -> str:
    return json.dumps([_as_dict(preset) for preset in presets], indent=2)


def describe(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "on" if value else "off"
    if isinstance(value, StatusChecks):
        contexts = ", ".join(value.contexts) or "none"
        return f"strict={describe(value.strict)} contexts=[{contexts}]"
    if isinstance(value, ReviewRules):
        return (
            f"reviewers={value.required_reviewers} "
            f"dismiss_stale={describe(value.dismiss_stale)} "
            f"codeowners={describe(value.require_codeowners)}"
        )
    if isinstance(value, PushRestrictions):
        if value.is_empty:
            return "none"
        buckets = (("users", value.users), ("teams", value.teams), ("apps", value.apps))
        return " ".join(
            f"{label}=[{', '.join(sorted(names))}]" for label, names in buckets if names
        )
    if isinstance(value, BranchProtection):
        return "protected" if value.protected else "not protected"
    if isinstance(value, (set, frozenset)):
        return ", ".join(sorted(str(item) for item in value)) or "none"
    if isinstance(value, tuple):
        return ", ".join(str(item) for item in value) or "none"
    return str(value)


def _render_step(step: ApplyResult) -> str:
    line = f"{step.resource_name.value:<24} {step.status.value:<10}"
    if step.error is not None:
        return f"{line} {step.error.kind}: {step.error.message}"
    if step.prior_state != step.new_state:
        return f"{line} {describe(step.prior_state)} -> {describe(step.new_state)}"
    if step.attempts > 1:
        return f"{line} after {step.attempts} attempts"
    return line.rstrip()


def _as_dict(value: object) -> dict[str, object]:
    converted = to_jsonable(value)
    if not isinstance(converted, dict):
        raise TypeError(f"Expected a dataclass, got {type(value).__name__}")
    return converted
