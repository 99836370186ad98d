"""Defaults for protection runs."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_FACTOR = 1.0
DEFAULT_MAX_BACKOFF_WAIT = 60.0
DEFAULT_CONCURRENCY = 1


@dataclass(frozen=True, slots=True)
class ApplyPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
    max_backoff_wait: float = DEFAULT_MAX_BACKOFF_WAIT
    concurrency: int = DEFAULT_CONCURRENCY


def get_apply_policy(*, concurrency: int | None = None) -> ApplyPolicy:
    if concurrency is None:
        return ApplyPolicy()
    if concurrency < 1:
        raise ValueError("Concurrency must be at least 1")
    return ApplyPolicy(concurrency=concurrency)
