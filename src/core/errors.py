"""Ipelfs exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each error carries a stable kind plus structured context so outer
surfaces can map failures without parsing message text.
"""

from __future__ import annotations

from typing import Literal

ErrorKind = Literal[
    "validation",
    "not_found",
    "conflict",
    "device_unmounted",
    "io",
    "config",
    "startup",
]


class IpelfsError(Exception):
    """Base exception for all Ipelfs failures."""

    kind: ErrorKind = "io"

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, object] = {
            key: value for key, value in context.items() if value is not None
        }


class ValidationError(IpelfsError):
    """Raised for malformed ids, names, or paths."""

    kind: ErrorKind = "validation"


class NotFoundError(IpelfsError):
    """Raised when a volume, collection, or marker is absent."""

    kind: ErrorKind = "not_found"


class ConflictError(IpelfsError):
    """Raised for duplicates, ambiguous matches, ownership, and lock clashes."""

    kind: ErrorKind = "conflict"


class DeviceUnmountedError(IpelfsError):
    """Raised when a device path has no live mount point."""

    kind: ErrorKind = "device_unmounted"


class IpelfsIoError(IpelfsError):
    """Raised for filesystem and external process failures."""

    kind: ErrorKind = "io"


class ConfigError(IpelfsError):
    """Raised for invalid runtime configuration."""

    kind: ErrorKind = "config"


class StartupError(IpelfsError):
    """Raised when the registry cannot be read or created at all."""

    kind: ErrorKind = "startup"
