"""Error taxonomy for protection runs.

Every error carries a stable ``kind`` so reports can name it without relying on
class names. Validation errors (``InvalidPreset``/``InvalidSettings``) are raised
before any network call; the remaining kinds come from the protection client.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from collections.abc import Sequence


class ProtectionError(RuntimeError):
    """Base class for every error a protection run can report."""

    kind: ClassVar[str] = "ProtectionError"

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class InvalidPreset(ProtectionError):
    """Raised when a preset name is not one of the built-in presets."""

    kind = "InvalidPreset"


class InvalidSettings(ProtectionError):
    """Raised when explicit settings break a preset invariant."""

    kind = "InvalidSettings"


class AuthError(ProtectionError):
    kind = "AuthError"


class NotFound(ProtectionError):
    kind = "NotFound"


class RateLimited(ProtectionError):
    """Primary or secondary rate limit; retryable after ``retry_after`` seconds."""

    kind = "RateLimited"

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status=status)
        self.retry_after = retry_after


class RemoteError(ProtectionError):
    kind = "RemoteError"


class RequestTimeout(RemoteError):
    kind = "Timeout"


class Cancelled(ProtectionError):
    kind = "Cancelled"


class VerificationFailed(ProtectionError):
    """Raised when the final read does not match the desired settings."""

    kind = "VerificationFailed"

    def __init__(self, message: str, *, fields: Sequence[str]) -> None:
        super().__init__(message)
        self.fields = tuple(fields)


__all__ = [
    "AuthError",
    "Cancelled",
    "InvalidPreset",
    "InvalidSettings",
    "NotFound",
    "ProtectionError",
    "RateLimited",
    "RemoteError",
    "RequestTimeout",
    "VerificationFailed",
]
