"""Python SDK for volume and collection operations.

This module wires the registry store, managers, and default external
collaborators from one configuration object.
"""

from __future__ import annotations

from functools import partial

from core.config import IpelfsConfig
from core.identifiers import IdGenerator
from store.audit_log import AuditLog
from store.collection_index import CollectionIndexManager
from store.registry_store import RegistryStore
from volume.lifecycle import VolumeManager
from volume.metadata import MetadataCollector, SystemMetadataCollector
from volume.mount import MountResolver, resolve_mount_point
from volume.transfer import TransferCoordinator


class IpelfsClient:
    """Primary SDK entry point.

    External collaborators default to the host implementations and can
    be replaced for tests or embedding.
    """

    def __init__(
        self,
        config: IpelfsConfig | None = None,
        mount_resolver: MountResolver | None = None,
        metadata_collector: MetadataCollector | None = None,
        id_generator: IdGenerator | None = None,
        audit_log: AuditLog | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            mount_resolver: Device path -> mount point lookup.
            metadata_collector: Producer of meta.toml records.
            id_generator: Shared id generator for volumes and collections.
            audit_log: Per-volume audit log writer.
        """
        self._config = config or IpelfsConfig.from_env()
        self._registry_store = RegistryStore(self._config.registry_path)
        self._audit_log = audit_log or AuditLog()
        generator = id_generator or IdGenerator(
            length=self._config.id_length,
            digit_bias=self._config.id_digit_bias,
        )
        self._volumes = VolumeManager(
            registry_store=self._registry_store,
            id_generator=generator,
            metadata_collector=metadata_collector
            or SystemMetadataCollector(self._config.command_timeout_seconds),
            mount_resolver=mount_resolver
            or partial(resolve_mount_point, mounts_file=self._config.mounts_file),
        )
        self._collections = CollectionIndexManager(
            registry_store=self._registry_store,
            id_generator=generator,
            audit_log=self._audit_log,
        )
        self._transfers = TransferCoordinator(self._registry_store, self._audit_log)

    @property
    def config(self) -> IpelfsConfig:
        return self._config

    @property
    def registry_store(self) -> RegistryStore:
        return self._registry_store

    @property
    def audit_log(self) -> AuditLog:
        return self._audit_log

    @property
    def volumes(self) -> VolumeManager:
        return self._volumes

    @property
    def collections(self) -> CollectionIndexManager:
        return self._collections

    @property
    def transfers(self) -> TransferCoordinator:
        return self._transfers

    def initialize(self) -> None:
        """Ensure the registry exists before serving any operation.

        Raises:
            StartupError: If the registry can be neither read nor created.
        """
        self._registry_store.initialize()
