"""Central volume registry persistence.

This module stores the VolumeID -> path mapping inside a TOML document
that may also carry unrelated configuration. Unknown tables, keys, and
comments survive every load -> mutate -> save cycle.
"""

from __future__ import annotations

import platform
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

import tomlkit
from tomlkit.items import Table
from tomlkit.toml_document import TOMLDocument

from core.constants import APP_VERSION, REGISTRY_HOST_TABLE, REGISTRY_VOLUME_TABLE
from core.errors import IpelfsError, IpelfsIoError, NotFoundError, StartupError
from core.logging_config import get_logger
from store.document_io import (
    exclusive_lock,
    read_toml_document,
    write_toml_document,
)

_LOGGER = get_logger(__name__)


class Registry:
    """In-memory registry document with typed access to the volume table."""

    def __init__(self, document: TOMLDocument) -> None:
        self._document = document

    @property
    def document(self) -> TOMLDocument:
        return self._document

    def get_volume_map(self) -> dict[str, str]:
        """Return VolumeID -> path, empty when no volume table exists yet."""
        table = self._document.get(REGISTRY_VOLUME_TABLE)
        if table is None:
            return {}
        if not isinstance(table, dict):
            raise IpelfsIoError(
                f"Invalid registry: '{REGISTRY_VOLUME_TABLE}' must be a table.",
            )
        return {str(volume_id): str(path) for volume_id, path in table.items()}

    def ids_for_path(self, path: str) -> list[str]:
        """Return every volume id registered under exactly this path."""
        return [
            volume_id
            for volume_id, registered_path in self.get_volume_map().items()
            if registered_path == path
        ]

    def set_volume(self, volume_id: str, path: str) -> None:
        table = self._document.get(REGISTRY_VOLUME_TABLE)
        if table is None:
            table = tomlkit.table()
            self._document[REGISTRY_VOLUME_TABLE] = table
        table[volume_id] = path

    def remove_volume(self, volume_id: str) -> None:
        table = self._document.get(REGISTRY_VOLUME_TABLE)
        if table is not None and volume_id in table:
            del table[volume_id]


class RegistryStore:
    """Filesystem-backed registry with single-writer discipline."""

    def __init__(self, registry_path: Path) -> None:
        self._registry_path = registry_path

    @property
    def path(self) -> Path:
        return self._registry_path

    def initialize(self) -> None:
        """Ensure the registry exists and is readable, bootstrapping it if absent.

        Raises:
            StartupError: If the registry can be neither read nor created.
        """
        try:
            if self._registry_path.exists():
                self.load()
                return
            self._registry_path.parent.mkdir(parents=True, exist_ok=True)
            with self.transaction() as registry:
                if REGISTRY_HOST_TABLE not in registry.document:
                    registry.document[REGISTRY_HOST_TABLE] = _host_table()
        except (OSError, IpelfsError) as error:
            raise StartupError(
                f"Cannot read or create registry at {self._registry_path}: {error}. "
                "Run with sufficient permissions (e.g. sudo) or set "
                "IPELFS_REGISTRY_PATH to a writable location.",
                path=str(self._registry_path),
            ) from error
        _LOGGER.info("registry_created", path=str(self._registry_path))

    def load(self) -> Registry:
        """Load the registry; a missing file yields an empty registry."""
        return Registry(read_toml_document(self._registry_path))

    def save(self, registry: Registry) -> None:
        """Persist the full registry document atomically."""
        write_toml_document(self._registry_path, registry.document)

    def get_volume_map(self) -> dict[str, str]:
        return self.load().get_volume_map()

    def resolve_volume_root(self, volume_id: str) -> Path:
        """Return the registered root of a volume.

        Raises:
            NotFoundError: If the volume id is not registered.
        """
        path = self.get_volume_map().get(volume_id)
        if path is None:
            raise NotFoundError(f"Volume @{volume_id} not found", volume_id=volume_id)
        return Path(path)

    @contextmanager
    def transaction(self) -> Iterator[Registry]:
        """Lock, load, and yield the registry; save it when the block succeeds."""
        with exclusive_lock(self._registry_path):
            registry = self.load()
            yield registry
            self.save(registry)


def _host_table() -> Table:
    table = tomlkit.table()
    table["os"] = platform.system().lower() or "unknown"
    table["arch"] = platform.machine() or "unknown"
    table["version"] = APP_VERSION
    table["timestamp"] = datetime.now().astimezone().isoformat()
    return table
