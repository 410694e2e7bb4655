"""Volume lifecycle: create, add, remove, delete.

A physical root moves through three states:

    Unregistered      no ownership marker
    Owned-Unlocked    .ipelfs present, no .vlock, not in the registry
    Owned-Locked      .ipelfs + .vlock present, registered

create: Unregistered -> Owned-Locked. add: Owned-Unlocked -> Owned-Locked.
remove: Owned-Locked -> Owned-Unlocked. delete: either Owned state ->
Unregistered. The ownership marker is the volume's identity; the registry
only caches which owned roots are currently attached.
"""

from __future__ import annotations

from pathlib import Path

from core.errors import (
    ConflictError,
    IpelfsError,
    IpelfsIoError,
    NotFoundError,
    ValidationError,
)
from core.identifiers import IdGenerator, is_valid_id
from core.logging_config import get_logger
from store.registry_store import Registry, RegistryStore
from volume.markers import (
    has_lock_marker,
    read_ownership_marker,
    remove_lock_marker,
    remove_ownership_marker,
    write_lock_marker,
    write_ownership_marker,
)
from volume.metadata import MetadataCollector, meta_path_for, read_volume_meta, write_volume_meta
from volume.mount import MountResolver, resolve_volume_path

_LOGGER = get_logger(__name__)


class VolumeManager:
    """Lifecycle operations over volume markers and the central registry."""

    def __init__(
        self,
        registry_store: RegistryStore,
        id_generator: IdGenerator,
        metadata_collector: MetadataCollector,
        mount_resolver: MountResolver,
    ) -> None:
        self._registry_store = registry_store
        self._id_generator = id_generator
        self._metadata_collector = metadata_collector
        self._mount_resolver = mount_resolver

    def create(self, path: str) -> str:
        """Initialize an empty directory as a new volume and attach it.

        Markers and metadata are written before the registry entry is
        persisted. If any step fails, every file written so far is removed
        and the registry is left untouched.

        Args:
            path: Directory or device path of the new volume.

        Returns:
            The minted volume id.

        Raises:
            DeviceUnmountedError: If a device path is not mounted.
            ValidationError: If the path is not absolute.
            NotFoundError: If the directory does not exist.
            ConflictError: If the directory is owned, not empty, or registered.
            IpelfsIoError: If markers, metadata, or the registry cannot be written.
        """
        root_path = resolve_volume_path(path, self._mount_resolver)
        volume_root = Path(root_path)
        _ensure_empty_directory(volume_root)
        initialized = False
        try:
            with self._registry_store.transaction() as registry:
                _ensure_path_unregistered(registry, root_path)
                volume_id = self._id_generator.generate(registry.get_volume_map().keys())
                write_ownership_marker(volume_root, volume_id)
                initialized = True
                meta = self._metadata_collector.collect(volume_id, volume_root)
                write_volume_meta(volume_root, meta)
                write_lock_marker(volume_root)
                registry.set_volume(volume_id, root_path)
        except IpelfsError as error:
            if initialized:
                _discard_initialization(volume_root)
                _LOGGER.warning("volume_create_rolled_back", path=root_path, error=str(error))
            raise
        _LOGGER.info("volume_created", volume_id=volume_id, path=root_path)
        return volume_id

    def add(self, path: str) -> str:
        """Attach a previously initialized volume using its ownership marker.

        Raises:
            NotFoundError: If the root has no ownership marker.
            ValidationError: If the marker does not hold a well-formed id.
            ConflictError: If the volume is locked or its id or path is registered.
        """
        root_path = resolve_volume_path(path, self._mount_resolver)
        volume_root = Path(root_path)
        volume_id = read_ownership_marker(volume_root)
        if volume_id is None:
            raise NotFoundError("'.ipelfs' not found in volume root", path=root_path)
        if not is_valid_id(volume_id):
            raise ValidationError(
                f"Invalid volume ID format in .ipelfs: '{volume_id}'",
                path=root_path,
                volume_id=volume_id,
            )
        if has_lock_marker(volume_root):
            raise ConflictError(
                "Volume appears locked ('.vlock' exists): either in use or not cleanly unmounted",
                path=root_path,
                volume_id=volume_id,
            )
        lock_written = False
        try:
            with self._registry_store.transaction() as registry:
                volume_map = registry.get_volume_map()
                if volume_id in volume_map:
                    raise ConflictError(
                        f"Volume ID '{volume_id}' already registered",
                        volume_id=volume_id,
                        path=volume_map[volume_id],
                    )
                _ensure_path_unregistered(registry, root_path)
                registry.set_volume(volume_id, root_path)
                write_lock_marker(volume_root)
                lock_written = True
        except IpelfsError:
            if lock_written:
                remove_lock_marker(volume_root)
            raise
        _LOGGER.info("volume_added", volume_id=volume_id, path=root_path)
        return volume_id

    def remove(self, id_or_path: str) -> str:
        """Detach a volume: drop its registry entry and lock marker.

        The ownership marker stays, so the volume can be re-attached with add.

        Returns:
            The detached volume id.
        """
        with self._registry_store.transaction() as registry:
            volume_id, volume_root = self._resolve_registered(registry, id_or_path)
            remove_lock_marker(volume_root)
            registry.remove_volume(volume_id)
        _LOGGER.info("volume_removed", volume_id=volume_id, path=str(volume_root))
        return volume_id

    def delete(self, id_or_path: str) -> str:
        """Release a volume entirely: registry entry, lock and ownership markers.

        After this the directory is an ordinary directory again and may be
        wiped or reused externally.

        Returns:
            The released volume id.
        """
        with self._registry_store.transaction() as registry:
            volume_id, volume_root = self._resolve_registered(registry, id_or_path)
            remove_lock_marker(volume_root)
            remove_ownership_marker(volume_root)
            registry.remove_volume(volume_id)
        _LOGGER.info("volume_deleted", volume_id=volume_id, path=str(volume_root))
        return volume_id

    def list_volumes(self) -> dict[str, str]:
        """Return VolumeID -> path for every attached volume."""
        return self._registry_store.get_volume_map()

    def info(self, volume_id: str) -> dict[str, object]:
        """Return the metadata record of an attached volume."""
        volume_root = self._registry_store.resolve_volume_root(volume_id)
        return read_volume_meta(volume_root)

    def _resolve_registered(self, registry: Registry, id_or_path: str) -> tuple[str, Path]:
        """Resolve an exact volume id, or a path that must match exactly one entry."""
        if not id_or_path.startswith("/"):
            path = registry.get_volume_map().get(id_or_path)
            if path is None:
                raise NotFoundError(f"Volume @{id_or_path} not found", volume_id=id_or_path)
            return id_or_path, Path(path)
        root_path = resolve_volume_path(id_or_path, self._mount_resolver)
        matches = registry.ids_for_path(root_path)
        if not matches:
            raise NotFoundError("No volume found with given path", path=root_path)
        if len(matches) > 1:
            raise ConflictError(
                "Multiple volumes match this path (ambiguous)",
                path=root_path,
                volume_ids=",".join(sorted(matches)),
            )
        return matches[0], Path(root_path)


def _ensure_empty_directory(volume_root: Path) -> None:
    if not volume_root.is_dir():
        raise NotFoundError(f"Directory {volume_root} does not exist", path=str(volume_root))
    owner_id = read_ownership_marker(volume_root)
    if owner_id is not None:
        raise ConflictError(
            f"Directory is already owned by volume @{owner_id}",
            path=str(volume_root),
            owner_id=owner_id,
        )
    try:
        has_entries = any(volume_root.iterdir())
    except OSError as error:
        raise IpelfsIoError(
            f"Failed to list {volume_root}: {error}.",
            path=str(volume_root),
        ) from error
    if has_entries:
        raise ConflictError(
            "Directory is not empty and carries no ownership marker",
            path=str(volume_root),
        )


def _ensure_path_unregistered(registry: Registry, root_path: str) -> None:
    registered_ids = registry.ids_for_path(root_path)
    if registered_ids:
        raise ConflictError(
            "Path already exists in volume table",
            path=root_path,
            volume_id=registered_ids[0],
        )


def _discard_initialization(volume_root: Path) -> None:
    """Remove files written by a create that did not complete."""
    remove_lock_marker(volume_root)
    meta_path_for(volume_root).unlink(missing_ok=True)
    remove_ownership_marker(volume_root)
