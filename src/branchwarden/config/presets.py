"""Built-in presets and loaders for explicit settings documents."""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from branchwarden.domain.errors import InvalidPreset, InvalidSettings
from branchwarden.domain.model import (
    MAX_REQUIRED_REVIEWERS,
    BranchTarget,
    ProtectionPreset,
    parse_actor,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

PRESETS: Final[dict[str, ProtectionPreset]] = {
    "minimal": ProtectionPreset(
        name="minimal",
        required_reviewers=1,
    ),
    "recommended": ProtectionPreset(
        name="recommended",
        required_reviewers=1,
        dismiss_stale=True,
        strict=True,
        require_conversation_resolution=True,
    ),
    "strict": ProtectionPreset(
        name="strict",
        required_reviewers=2,
        dismiss_stale=True,
        require_codeowners=True,
        strict=True,
        require_conversation_resolution=True,
        enforce_admins=True,
        require_signed_commits=True,
    ),
}
DEFAULT_PRESET: Final[str] = "recommended"


class ProtectionSettings(BaseModel):
    """Explicit settings; every field is optional and overrides the base preset."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    required_reviewers: int | None = Field(default=None, ge=0, le=MAX_REQUIRED_REVIEWERS)
    dismiss_stale: bool | None = None
    require_codeowners: bool | None = None
    required_contexts: list[str] | None = None
    strict: bool | None = None
    require_conversation_resolution: bool | None = None
    restrict_push_to: list[str] | None = None
    allow_deletions: bool | None = None
    enforce_admins: bool | None = None
    require_signed_commits: bool | None = None

    @field_validator("required_contexts")
    @classmethod
    def _contexts_are_unique(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        seen: set[str] = set()
        for context in value:
            if not context.strip():
                raise ValueError("required context must not be empty")
            if context in seen:
                raise ValueError(f"duplicate required context {context!r}")
            seen.add(context)
        return value

    @field_validator("restrict_push_to")
    @classmethod
    def _actors_are_known(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        for actor in value:
            try:
                parse_actor(actor)
            except InvalidSettings as exc:
                raise ValueError(exc.message) from None
        return value


class TargetEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    branch: str = Field(default="main", min_length=1)


class SettingsFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    extends: str | None = None
    settings: ProtectionSettings = Field(default_factory=ProtectionSettings)
    targets: list[TargetEntry] = Field(default_factory=list["TargetEntry"])


@dataclass(frozen=True, slots=True)
class SettingsDocument:
    preset: ProtectionPreset
    targets: tuple[BranchTarget, ...] = field(default_factory=tuple)


def preset_names() -> tuple[str, ...]:
    return tuple(PRESETS)


def load_preset(name: str) -> ProtectionPreset:
    """Return the built-in preset called ``name``."""

    try:
        return PRESETS[name.strip().lower()]
    except KeyError:
        known = ", ".join(PRESETS)
        raise InvalidPreset(f"Unknown preset {name!r} (expected one of: {known})") from None


def load_settings(
    settings: Mapping[str, Any],
    *,
    base: str | None = None,
    name: str | None = None,
) -> ProtectionPreset:
    """Build a validated preset from an explicit settings mapping.

    Keys override ``base`` when given; without a base, unspecified settings are off.
    """

    try:
        parsed = ProtectionSettings.model_validate(dict(settings))
    except ValidationError as exc:
        raise InvalidSettings(_describe_validation_error(exc)) from None
    return _merge(parsed, base=base, name=name)


def load_settings_file(path: Path | str) -> SettingsDocument:
    """Read a TOML or JSON settings document."""

    source = Path(path)
    raw = _read_document(source)
    try:
        parsed = SettingsFile.model_validate(raw)
    except ValidationError as exc:
        raise InvalidSettings(f"{source}: {_describe_validation_error(exc)}") from None

    preset = _merge(parsed.settings, base=parsed.extends, name=source.stem)
    targets = tuple(
        BranchTarget(owner=entry.owner, repo=entry.repo, branch=entry.branch)
        for entry in parsed.targets
    )
    return SettingsDocument(preset=preset, targets=targets)


def validate_preset(preset: ProtectionPreset) -> ProtectionPreset:
    """Re-check the invariants of an already-built preset; raises ``InvalidSettings``."""

    return preset.validate()


def with_overrides(
    preset: ProtectionPreset,
    *,
    contexts: list[str] | None = None,
    restrict_push_to: list[str] | None = None,
    strict: bool | None = None,
) -> ProtectionPreset:
    """Apply command-line overrides to an already-loaded preset."""

    updated = preset
    if contexts:
        updated = replace(updated, required_contexts=tuple(contexts))
    if restrict_push_to:
        updated = replace(updated, restrict_push_to=frozenset(restrict_push_to))
    if strict is not None:
        updated = replace(updated, strict=strict)
    return updated.validate()


def _merge(
    settings: ProtectionSettings,
    *,
    base: str | None,
    name: str | None,
) -> ProtectionPreset:
    start = load_preset(base) if base is not None else ProtectionPreset(name="custom")
    overrides: dict[str, Any] = {}
    for key, value in settings.model_dump(exclude_none=True).items():
        if key == "required_contexts":
            overrides[key] = tuple(value)
        elif key == "restrict_push_to":
            overrides[key] = frozenset(value)
        else:
            overrides[key] = value
    preset_name = name or (f"{base}+custom" if base and overrides else start.name)
    return replace(start, name=preset_name, **overrides).validate()


def _read_document(source: Path) -> dict[str, Any]:
    suffix = source.suffix.lower()
    try:
        if suffix == ".toml":
            with source.open("rb") as handle:
                return tomllib.load(handle)
        if suffix == ".json":
            document = json.loads(source.read_text(encoding="utf-8"))
            if not isinstance(document, dict):
                raise InvalidSettings(f"{source}: top-level JSON value must be an object")
            return document
    except (OSError, tomllib.TOMLDecodeError, json.JSONDecodeError) as exc:
        raise InvalidSettings(f"Cannot read settings from {source}: {exc}") from exc
    raise InvalidSettings(f"Unsupported settings format {source.suffix!r} (use .toml or .json)")


def _describe_validation_error(exc: ValidationError) -> str:
    problems: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "settings"
        problems.append(f"{location}: {error['msg']}")
    return "; ".join(problems)
