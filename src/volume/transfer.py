"""Collection transfer between volumes.

A transfer keeps the collection's id and name and changes only which
volume root contains it. Destination collisions fail closed.
"""

from __future__ import annotations

import shutil
from contextlib import ExitStack

from core.errors import ConflictError, IpelfsIoError, NotFoundError, ValidationError
from core.identifiers import is_valid_id
from core.logging_config import get_logger
from core.types import TransferResult
from store.audit_log import AuditLog
from store.collection_index import index_lock, load_index, save_index
from store.registry_store import RegistryStore

_LOGGER = get_logger(__name__)


class TransferCoordinator:
    """Move collections across two independently owned volume indexes."""

    def __init__(self, registry_store: RegistryStore, audit_log: AuditLog) -> None:
        self._registry_store = registry_store
        self._audit_log = audit_log

    def transfer(
        self,
        from_volume_id: str,
        collection_id: str,
        to_volume_id: str,
    ) -> TransferResult:
        """Move one collection directory and its index entry to another volume.

        Both index locks are held, in ascending volume id order, from the
        collision checks until both indexes are persisted. There is no
        rollback if a later step fails after the directory has moved.

        Raises:
            ValidationError: If the collection id is malformed or both volumes match.
            NotFoundError: If a volume or the source collection is missing.
            ConflictError: If the destination already has the id, the name, or the directory.
            IpelfsIoError: If the move or an index write fails.
        """
        if not is_valid_id(collection_id):
            raise ValidationError(
                f"Invalid collection id '{collection_id}'",
                collection_id=collection_id,
            )
        if from_volume_id == to_volume_id:
            raise ValidationError(
                "Source and destination volumes must differ",
                volume_id=from_volume_id,
            )
        source_root = self._registry_store.resolve_volume_root(from_volume_id)
        target_root = self._registry_store.resolve_volume_root(to_volume_id)
        roots = {from_volume_id: source_root, to_volume_id: target_root}
        with ExitStack() as stack:
            for volume_id in sorted(roots):
                stack.enter_context(index_lock(roots[volume_id]))
            source_index = load_index(source_root)
            target_index = load_index(target_root)
            name = source_index.entries().get(collection_id)
            if name is None:
                raise NotFoundError(
                    f"Collection {collection_id} not found in @{from_volume_id}",
                    volume_id=from_volume_id,
                    collection_id=collection_id,
                )
            target_entries = target_index.entries()
            if collection_id in target_entries:
                raise ConflictError(
                    f"Collection id {collection_id} already exists in @{to_volume_id}",
                    volume_id=to_volume_id,
                    collection_id=collection_id,
                )
            if name in target_entries.values():
                raise ConflictError(
                    f"Collection name '{name}' already exists in @{to_volume_id}",
                    volume_id=to_volume_id,
                    name=name,
                )
            source_dir = source_root / collection_id
            target_dir = target_root / collection_id
            if not source_dir.is_dir():
                raise NotFoundError(
                    f"Collection directory {source_dir} is missing",
                    volume_id=from_volume_id,
                    collection_id=collection_id,
                )
            if target_dir.exists():
                raise ConflictError(
                    f"Untracked path {target_dir} already exists in @{to_volume_id}",
                    volume_id=to_volume_id,
                    collection_id=collection_id,
                )
            try:
                shutil.move(str(source_dir), str(target_dir))
            except OSError as error:
                raise IpelfsIoError(
                    f"Failed to move {source_dir} to {target_dir}: {error}.",
                    collection_id=collection_id,
                ) from error
            source_index.remove(collection_id)
            save_index(source_root, source_index)
            target_index.insert(collection_id, name)
            save_index(target_root, target_index)
        self._audit_log.append_best_effort(source_root, "t", collection_id, to_volume_id)
        self._audit_log.append_best_effort(target_root, "r", collection_id, from_volume_id)
        _LOGGER.info(
            "collection_transferred",
            collection_id=collection_id,
            name=name,
            from_volume_id=from_volume_id,
            to_volume_id=to_volume_id,
        )
        return TransferResult(
            collection_id=collection_id,
            name=name,
            from_volume_id=from_volume_id,
            to_volume_id=to_volume_id,
            path=target_dir,
        )
