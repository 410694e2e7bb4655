"""Device metadata collection for newly created volumes.

This module shells out to df, udevadm, and smartctl to describe the
device backing a volume, and persists the result as ``meta.toml``.
Every external command is bounded by a timeout.
"""

from __future__ import annotations

import subprocess
from datetime import datetime
from pathlib import Path
from typing import Protocol, Sequence

import tomlkit

from core.constants import (
    HDD_POH_ESTIMATE_HOURS,
    META_FILE_NAME,
    SMART_LBA_SIZE_BYTES,
    SSD_TBW_ESTIMATE_BYTES,
)
from core.errors import IpelfsIoError, NotFoundError
from core.logging_config import get_logger
from core.types import StorageType, VolumeMeta
from store.document_io import read_toml_document, write_text_atomic

_LOGGER = get_logger(__name__)


class MetadataCollector(Protocol):
    """Produces the metadata record for a volume being created."""

    def collect(self, volume_id: str, volume_root: Path) -> VolumeMeta:
        ...


class SystemMetadataCollector:
    """Collect device metadata from the host's block-device tooling."""

    def __init__(self, timeout_seconds: float, sys_block_root: Path = Path("/sys/block")) -> None:
        self._timeout_seconds = timeout_seconds
        self._sys_block_root = sys_block_root

    def collect(self, volume_id: str, volume_root: Path) -> VolumeMeta:
        """Describe the device that backs volume_root.

        Raises:
            IpelfsIoError: If df fails or any command exceeds the timeout.
        """
        df_output = self._run(["df", str(volume_root)], required=True)
        device = parse_df_device(df_output)
        fs_type = parse_df_fs_type(self._run(["df", "-T", str(volume_root)], required=True))
        udev_output = self._run(["udevadm", "info", "--query=property", "--name", device])
        removable = parse_removable(udev_output)
        storage_type = None if removable else self._read_storage_type(device)
        smart_output = self._run(["smartctl", "-A", device])
        _LOGGER.info(
            "volume_metadata_collected",
            volume_id=volume_id,
            device=device,
            fs_type=fs_type,
            removable=removable,
            storage_type=storage_type,
        )
        return VolumeMeta(
            id=volume_id,
            timestamp=datetime.now().astimezone().isoformat(),
            fs_type=fs_type,
            storage_type=storage_type,
            removable=removable,
            smart_total_written=parse_total_written(smart_output),
            power_on_hours=parse_power_on_hours(smart_output),
            tbw_estimate=estimate_tbw(storage_type),
            poh_estimate=estimate_poh(storage_type),
        )

    def _read_storage_type(self, device: str) -> StorageType:
        rotational_path = self._sys_block_root / device_basename(device) / "queue" / "rotational"
        try:
            rotational = rotational_path.read_text(encoding="utf-8").strip()
        except OSError as error:
            _LOGGER.warning(
                "rotational_read_failed",
                path=str(rotational_path),
                error=str(error),
                fallback="SSD",
            )
            return "SSD"
        return "HDD" if rotational == "1" else "SSD"

    def _run(self, command: Sequence[str], required: bool = False) -> str:
        """Run one command and return stdout.

        Optional commands that are not installed yield empty output.
        """
        try:
            completed = subprocess.run(
                list(command),
                capture_output=True,
                text=True,
                timeout=self._timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired as error:
            raise IpelfsIoError(
                f"Command '{' '.join(command)}' timed out after {self._timeout_seconds}s.",
                command=command[0],
            ) from error
        except FileNotFoundError as error:
            if required:
                raise IpelfsIoError(
                    f"Command '{command[0]}' is not available: {error}.",
                    command=command[0],
                ) from error
            _LOGGER.warning("metadata_command_missing", command=command[0])
            return ""
        except OSError as error:
            raise IpelfsIoError(
                f"Failed to run '{' '.join(command)}': {error}.",
                command=command[0],
            ) from error
        if required and completed.returncode != 0:
            raise IpelfsIoError(
                f"Command '{' '.join(command)}' failed with exit code "
                f"{completed.returncode}: {completed.stderr.strip()}",
                command=command[0],
            )
        return completed.stdout


def parse_df_device(df_output: str) -> str:
    """Return the device column from the first df data row."""
    return _df_column(df_output, 0) or "/dev/unknown"


def parse_df_fs_type(df_output: str) -> str:
    """Return the type column from the first ``df -T`` data row."""
    return _df_column(df_output, 1) or "unknown"


def parse_removable(udev_output: str) -> bool:
    return any("ID_BUS=usb" in line for line in udev_output.splitlines())


def parse_total_written(smart_output: str) -> int | None:
    """Return bytes written from the Total_LBAs_Written attribute."""
    for line in smart_output.splitlines():
        if "Total_LBAs_Written" in line:
            fields = line.split()
            if fields and fields[-1].isdigit():
                return int(fields[-1]) * SMART_LBA_SIZE_BYTES
            return None
    return None


def parse_power_on_hours(smart_output: str) -> int | None:
    """Return the raw value column of the Power_On_Hours attribute."""
    for line in smart_output.splitlines():
        if "Power_On_Hours" in line:
            fields = line.split()
            if len(fields) > 9 and fields[9].isdigit():
                return int(fields[9])
            return None
    return None


def estimate_tbw(storage_type: StorageType | None) -> int | None:
    return SSD_TBW_ESTIMATE_BYTES if storage_type == "SSD" else None


def estimate_poh(storage_type: StorageType | None) -> int | None:
    return HDD_POH_ESTIMATE_HOURS if storage_type == "HDD" else None


def device_basename(device: str) -> str:
    """Map ``/dev/sdb1`` to ``sdb1`` for /sys/block lookups."""
    return device.removeprefix("/dev/").split("/")[0] or "unknown"


def meta_path_for(volume_root: Path) -> Path:
    return volume_root / META_FILE_NAME


def write_volume_meta(volume_root: Path, meta: VolumeMeta) -> Path:
    """Persist meta.toml, omitting absent optional values."""
    document = tomlkit.document()
    for key, value in meta.to_dict().items():
        document[key] = value
    meta_path = meta_path_for(volume_root)
    write_text_atomic(meta_path, tomlkit.dumps(document))
    return meta_path


def read_volume_meta(volume_root: Path) -> dict[str, object]:
    """Read meta.toml as plain Python values.

    Raises:
        NotFoundError: If the volume has no metadata record.
    """
    meta_path = meta_path_for(volume_root)
    if not meta_path.exists():
        raise NotFoundError(f"meta.toml does not exist at {meta_path}", path=str(meta_path))
    return read_toml_document(meta_path).unwrap()


def _df_column(df_output: str, column: int) -> str | None:
    lines = df_output.splitlines()
    if len(lines) < 2:
        return None
    fields = lines[1].split()
    return fields[column] if len(fields) > column else None
