"""Domain port definitions for adapters."""

from __future__ import annotations

from .protection import ProtectionClient

__all__ = ["ProtectionClient"]
