"""Ownership and lock sentinel files at a volume root.

``.ipelfs`` holds the VolumeID and is written once at initialization.
``.vlock`` holds an RFC3339 timestamp while the volume is attached.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from core.constants import LOCK_MARKER_FILE_NAME, OWNERSHIP_MARKER_FILE_NAME
from core.errors import ConflictError, IpelfsIoError
from store.document_io import write_text_atomic


def ownership_marker_path(volume_root: Path) -> Path:
    return volume_root / OWNERSHIP_MARKER_FILE_NAME


def lock_marker_path(volume_root: Path) -> Path:
    return volume_root / LOCK_MARKER_FILE_NAME


def read_ownership_marker(volume_root: Path) -> str | None:
    """Return the stripped VolumeID from .ipelfs, or None when absent."""
    marker_path = ownership_marker_path(volume_root)
    try:
        return marker_path.read_text(encoding="utf-8").strip()
    except (FileNotFoundError, NotADirectoryError):
        return None
    except OSError as error:
        raise IpelfsIoError(
            f"Failed to read ownership marker {marker_path}: {error}.",
            path=str(marker_path),
        ) from error


def write_ownership_marker(volume_root: Path, volume_id: str) -> None:
    """Create .ipelfs; an existing marker is never overwritten."""
    marker_path = ownership_marker_path(volume_root)
    try:
        with marker_path.open("x", encoding="utf-8") as handle:
            handle.write(volume_id)
    except FileExistsError as error:
        raise ConflictError(
            f"Ownership marker already present at {marker_path}",
            path=str(volume_root),
        ) from error
    except OSError as error:
        raise IpelfsIoError(
            f"Failed to write ownership marker {marker_path}: {error}.",
            path=str(marker_path),
        ) from error


def has_lock_marker(volume_root: Path) -> bool:
    return lock_marker_path(volume_root).exists()


def write_lock_marker(volume_root: Path, locked_at: datetime | None = None) -> str:
    """Write .vlock with the lock time and return the timestamp written."""
    timestamp = (locked_at or datetime.now().astimezone()).isoformat()
    write_text_atomic(lock_marker_path(volume_root), timestamp)
    return timestamp


def remove_lock_marker(volume_root: Path) -> None:
    _remove_marker(lock_marker_path(volume_root))


def remove_ownership_marker(volume_root: Path) -> None:
    _remove_marker(ownership_marker_path(volume_root))


def _remove_marker(marker_path: Path) -> None:
    """Remove one marker file; a marker that is already gone is fine."""
    try:
        marker_path.unlink()
    except (FileNotFoundError, NotADirectoryError):
        return
    except OSError as error:
        raise IpelfsIoError(
            f"Failed to remove marker {marker_path}: {error}.",
            path=str(marker_path),
        ) from error
