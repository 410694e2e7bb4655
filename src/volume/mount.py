"""Mount-point resolution for device paths.

Volumes may be named by block device (``/dev/sdb1``); those are mapped
to their live mount point through the kernel mount table.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Callable

from core.constants import DEFAULT_MOUNTS_FILE, DEVICE_PATH_PREFIX
from core.errors import DeviceUnmountedError, IpelfsIoError, ValidationError

MountResolver = Callable[[str], str | None]

_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")


def is_device_path(path: str) -> bool:
    return path.startswith(DEVICE_PATH_PREFIX)


def resolve_mount_point(device_path: str, mounts_file: Path = DEFAULT_MOUNTS_FILE) -> str | None:
    """Return where device_path is mounted, or None when it is not mounted.

    Raises:
        IpelfsIoError: If the mount table cannot be read.
    """
    try:
        lines = mounts_file.read_text(encoding="utf-8").splitlines()
    except OSError as error:
        raise IpelfsIoError(
            f"Failed to read mount table {mounts_file}: {error}.",
            path=str(mounts_file),
        ) from error
    for line in lines:
        parts = line.split()
        if len(parts) >= 2 and parts[0] == device_path:
            return _unescape(parts[1])
    return None


def resolve_volume_path(path: str, mount_resolver: MountResolver) -> str:
    """Normalize a user-supplied volume path, mapping device paths to mount points.

    Raises:
        DeviceUnmountedError: If a device path has no live mount point.
        ValidationError: If the path is empty or relative.
    """
    if is_device_path(path):
        mount_point = mount_resolver(path)
        if mount_point is None:
            raise DeviceUnmountedError(f"Device {path} is not mounted", device=path)
        path = mount_point
    if not path or not os.path.isabs(path):
        raise ValidationError(f"Volume path must be absolute, got '{path}'", path=path)
    return os.path.normpath(path)


def _unescape(field: str) -> str:
    return _OCTAL_ESCAPE.sub(lambda match: chr(int(match.group(1), 8)), field)
