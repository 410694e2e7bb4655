"""Per-volume collection index and physical collection directories.

Each volume root holds an ``index.toml`` whose ``collection`` table maps
CollectionID -> name, plus one subdirectory per collection named by its id.
"""

from __future__ import annotations

import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import tomlkit
from tomlkit.toml_document import TOMLDocument

from core.constants import INDEX_COLLECTION_TABLE, INDEX_FILE_NAME
from core.errors import ConflictError, IpelfsIoError, NotFoundError, ValidationError
from core.identifiers import IdGenerator, is_valid_collection_name
from core.logging_config import get_logger
from core.types import CollectionLookup
from store.audit_log import AuditLog
from store.document_io import exclusive_lock, read_toml_document, write_toml_document
from store.registry_store import RegistryStore

_LOGGER = get_logger(__name__)


class CollectionIndex:
    """In-memory index document with typed access to the collection table."""

    def __init__(self, document: TOMLDocument, index_path: Path) -> None:
        self._document = document
        self._index_path = index_path

    @property
    def document(self) -> TOMLDocument:
        return self._document

    def entries(self) -> dict[str, str]:
        """Return CollectionID -> name."""
        table = self._document.get(INDEX_COLLECTION_TABLE)
        if table is None:
            return {}
        if not isinstance(table, dict):
            raise IpelfsIoError(
                f"Invalid index at {self._index_path}: "
                f"'{INDEX_COLLECTION_TABLE}' must be a table.",
                path=str(self._index_path),
            )
        return {str(collection_id): str(name) for collection_id, name in table.items()}

    def find_id_by_name(self, name: str) -> str | None:
        for collection_id, collection_name in self.entries().items():
            if collection_name == name:
                return collection_id
        return None

    def insert(self, collection_id: str, name: str) -> None:
        table = self._document.get(INDEX_COLLECTION_TABLE)
        if table is None:
            table = tomlkit.table()
            self._document[INDEX_COLLECTION_TABLE] = table
        table[collection_id] = name

    def remove(self, collection_id: str) -> None:
        table = self._document.get(INDEX_COLLECTION_TABLE)
        if table is not None and collection_id in table:
            del table[collection_id]


def index_path_for(volume_root: Path) -> Path:
    return volume_root / INDEX_FILE_NAME


def load_index(volume_root: Path) -> CollectionIndex:
    """Load a volume's index, empty when index.toml does not exist yet."""
    index_path = index_path_for(volume_root)
    return CollectionIndex(read_toml_document(index_path), index_path)


def save_index(volume_root: Path, index: CollectionIndex) -> None:
    write_toml_document(index_path_for(volume_root), index.document)


@contextmanager
def index_lock(volume_root: Path) -> Iterator[None]:
    """Hold the single-writer lock for one volume's index."""
    with exclusive_lock(index_path_for(volume_root)):
        yield


class CollectionIndexManager:
    """Create, list, and delete collections inside registered volumes."""

    def __init__(
        self,
        registry_store: RegistryStore,
        id_generator: IdGenerator,
        audit_log: AuditLog,
    ) -> None:
        self._registry_store = registry_store
        self._id_generator = id_generator
        self._audit_log = audit_log

    def create(self, volume_id: str, name: str) -> str:
        """Create a named collection and its directory.

        Args:
            volume_id: Owning volume.
            name: Collection name, unique within the volume.

        Returns:
            The minted collection id.

        Raises:
            ValidationError: If the name is malformed.
            NotFoundError: If the volume is not registered.
            ConflictError: If the name already exists in the volume.
        """
        if not is_valid_collection_name(name):
            raise ValidationError(
                f"Invalid collection name '{name}': use lowercase letters, digits, or '_'.",
                name=name,
            )
        volume_root = self._registry_store.resolve_volume_root(volume_id)
        with index_lock(volume_root):
            index = load_index(volume_root)
            existing = index.entries()
            if name in existing.values():
                raise ConflictError(
                    f"Collection name '{name}' already exists in @{volume_id}",
                    volume_id=volume_id,
                    name=name,
                )
            taken = set(existing) | _root_entry_names(volume_root)
            collection_id = self._id_generator.generate(taken)
            index.insert(collection_id, name)
            save_index(volume_root, index)
            try:
                (volume_root / collection_id).mkdir()
            except OSError as error:
                index.remove(collection_id)
                save_index(volume_root, index)
                raise IpelfsIoError(
                    f"Failed to create collection directory {volume_root / collection_id}: "
                    f"{error}.",
                    volume_id=volume_id,
                    collection_id=collection_id,
                ) from error
        self._audit_log.append_best_effort(volume_root, "c", collection_id)
        _LOGGER.info(
            "collection_created",
            volume_id=volume_id,
            collection_id=collection_id,
            name=name,
        )
        return collection_id

    def list_collections(self, volume_id: str) -> dict[str, str]:
        """Return CollectionID -> name; empty when the volume has no index yet."""
        volume_root = self._registry_store.resolve_volume_root(volume_id)
        return load_index(volume_root).entries()

    def delete(
        self,
        volume_id: str,
        id_or_name: str,
        by: CollectionLookup | None = None,
    ) -> str:
        """Delete a collection's directory tree and index entry.

        Args:
            volume_id: Owning volume.
            id_or_name: Collection id or name.
            by: Force lookup by "id" or "name"; None tries id then name.

        Returns:
            The deleted collection id.

        Raises:
            NotFoundError: If the volume or collection does not exist.
            IpelfsIoError: If the directory tree cannot be removed.
        """
        volume_root = self._registry_store.resolve_volume_root(volume_id)
        with index_lock(volume_root):
            index = load_index(volume_root)
            collection_id = _resolve_collection_id(index, id_or_name, by)
            if collection_id is None:
                raise NotFoundError(
                    f"Collection '{id_or_name}' not found in @{volume_id}",
                    volume_id=volume_id,
                    collection=id_or_name,
                )
            collection_dir = volume_root / collection_id
            if collection_dir.exists():
                try:
                    shutil.rmtree(collection_dir)
                except OSError as error:
                    raise IpelfsIoError(
                        f"Failed to remove collection folder {collection_dir}: {error}.",
                        volume_id=volume_id,
                        collection_id=collection_id,
                    ) from error
            index.remove(collection_id)
            save_index(volume_root, index)
        self._audit_log.append_best_effort(volume_root, "d", collection_id)
        _LOGGER.info("collection_deleted", volume_id=volume_id, collection_id=collection_id)
        return collection_id


def _resolve_collection_id(
    index: CollectionIndex,
    id_or_name: str,
    by: CollectionLookup | None,
) -> str | None:
    if by != "name" and id_or_name in index.entries():
        return id_or_name
    if by != "id":
        return index.find_id_by_name(id_or_name)
    return None


def _root_entry_names(volume_root: Path) -> set[str]:
    """Names already present at the volume root, tracked or not."""
    try:
        return {entry.name for entry in volume_root.iterdir()}
    except OSError as error:
        raise IpelfsIoError(
            f"Failed to list {volume_root}: {error}.",
            path=str(volume_root),
        ) from error
