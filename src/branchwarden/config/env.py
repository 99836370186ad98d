"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence


def require_any_env_var(names: Sequence[str]) -> str:
    """Return the first non-blank variable among ``names``, in order."""

    for name in names:
        value = os.getenv(name)
        if value is not None and value.strip():
            return value.strip()
    raise MissingConfigurationError(f"Missing configuration for: one of {', '.join(names)}")
