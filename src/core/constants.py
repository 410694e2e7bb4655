"""Core constants used across Ipelfs modules.

This module centralizes file names, patterns, and defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

APP_NAME = "ipelfs"
APP_VERSION = "0.1.0"
DEFAULT_REGISTRY_PATH = Path("/etc/ipel/fs/config.toml")
DEFAULT_MOUNTS_FILE = Path("/proc/mounts")
DEFAULT_COMMAND_TIMEOUT_SECONDS = 10.0
DEFAULT_WEB_PORT = 33330
API_BASE_PATH = "/v1/ipelfs"

REGISTRY_VOLUME_TABLE = "volume"
REGISTRY_HOST_TABLE = "ipelfs"
INDEX_COLLECTION_TABLE = "collection"

OWNERSHIP_MARKER_FILE_NAME = ".ipelfs"
LOCK_MARKER_FILE_NAME = ".vlock"
INDEX_FILE_NAME = "index.toml"
META_FILE_NAME = "meta.toml"
LOGS_DIR_NAME = "logs"
DEVICE_PATH_PREFIX = "/dev/"

DEFAULT_ID_LENGTH = 7
DEFAULT_ID_DIGIT_BIAS = 0.7
MIN_ID_LENGTH = 5
MAX_ID_LENGTH = 7
ID_PATTERN = r"[a-z][a-z0-9]{4,6}"
COLLECTION_NAME_PATTERN = r"[a-z0-9_]+"
ID_LETTERS = "abcdefghijklmnopqrstuvwxyz"
ID_DIGITS = "0123456789"

AUDIT_DATE_FORMAT = "%Y-%m-%d"
AUDIT_TIME_FORMAT = "%H:%M:%S"

SSD_TBW_ESTIMATE_BYTES = 600 * 1024**4
HDD_POH_ESTIMATE_HOURS = 3 * 365 * 24
SMART_LBA_SIZE_BYTES = 512
