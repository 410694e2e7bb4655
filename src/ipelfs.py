"""Public SDK surface for Ipelfs.

This module provides a stable import path for library users.
It re-exports the client, configuration, and error types.
"""

from __future__ import annotations

from core.config import IpelfsConfig
from core.errors import (
    ConfigError,
    ConflictError,
    DeviceUnmountedError,
    IpelfsError,
    IpelfsIoError,
    NotFoundError,
    StartupError,
    ValidationError,
)
from core.identifiers import IdGenerator, is_valid_collection_name, is_valid_id
from core.types import TransferResult, VolumeMeta
from volume.client import IpelfsClient

__all__ = [
    "ConfigError",
    "ConflictError",
    "DeviceUnmountedError",
    "IdGenerator",
    "IpelfsClient",
    "IpelfsConfig",
    "IpelfsError",
    "IpelfsIoError",
    "NotFoundError",
    "StartupError",
    "TransferResult",
    "ValidationError",
    "VolumeMeta",
    "is_valid_collection_name",
    "is_valid_id",
]
