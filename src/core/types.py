"""Shared typed models.

This module defines immutable data models used by the store, volume,
CLI, and web layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Literal

AuditAction = Literal["c", "d", "t", "r"]
CollectionLookup = Literal["id", "name"]
StorageType = Literal["SSD", "HDD"]


@dataclass(frozen=True)
class VolumeMeta:
    """Device metadata recorded in a volume's meta.toml.

    Attributes:
        id: Volume id the record belongs to.
        timestamp: RFC3339 local collection time.
        fs_type: Filesystem type reported by df.
        storage_type: SSD or HDD; None for removable devices.
        removable: Whether the device sits on a USB bus.
        smart_total_written: Bytes written according to SMART.
        power_on_hours: Power-on hours according to SMART.
        tbw_estimate: Rated bytes written for SSDs.
        poh_estimate: Rated power-on hours for HDDs.
    """

    id: str
    timestamp: str
    fs_type: str
    storage_type: StorageType | None
    removable: bool
    smart_total_written: int | None = None
    power_on_hours: int | None = None
    tbw_estimate: int | None = None
    poh_estimate: int | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize to a mapping without absent optional fields."""
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class TransferResult:
    """Outcome of moving one collection between volumes.

    Attributes:
        collection_id: Preserved collection id.
        name: Preserved collection name.
        from_volume_id: Volume that owned the collection before the move.
        to_volume_id: Volume that owns the collection now.
        path: New physical location of the collection.
    """

    collection_id: str
    name: str
    from_volume_id: str
    to_volume_id: str
    path: Path
