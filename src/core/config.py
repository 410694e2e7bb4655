"""Runtime configuration model for Ipelfs.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_COMMAND_TIMEOUT_SECONDS,
    DEFAULT_ID_DIGIT_BIAS,
    DEFAULT_ID_LENGTH,
    DEFAULT_MOUNTS_FILE,
    DEFAULT_REGISTRY_PATH,
    DEFAULT_WEB_PORT,
    MAX_ID_LENGTH,
    MIN_ID_LENGTH,
)
from core.errors import ConfigError


@dataclass(frozen=True)
class IpelfsConfig:
    """Validated runtime configuration.

    Attributes:
        registry_path: Central registry TOML document.
        id_length: Length of minted volume and collection ids.
        id_digit_bias: Probability that a non-leading id character is a digit.
        command_timeout_seconds: Upper bound for each external command.
        mounts_file: Mount table used to resolve device paths.
        web_port: Default HTTP port for the web command.
    """

    registry_path: Path
    id_length: int = DEFAULT_ID_LENGTH
    id_digit_bias: float = DEFAULT_ID_DIGIT_BIAS
    command_timeout_seconds: float = DEFAULT_COMMAND_TIMEOUT_SECONDS
    mounts_file: Path = DEFAULT_MOUNTS_FILE
    web_port: int = DEFAULT_WEB_PORT

    @classmethod
    def from_env(cls) -> "IpelfsConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ConfigError: If environment values are invalid.
        """
        registry_value = os.getenv("IPELFS_REGISTRY_PATH", str(DEFAULT_REGISTRY_PATH))
        mounts_value = os.getenv("IPELFS_MOUNTS_FILE", str(DEFAULT_MOUNTS_FILE))
        return cls(
            registry_path=Path(registry_value).expanduser(),
            id_length=_parse_id_length(os.getenv("IPELFS_ID_LENGTH", str(DEFAULT_ID_LENGTH))),
            id_digit_bias=_parse_digit_bias(
                os.getenv("IPELFS_ID_DIGIT_BIAS", str(DEFAULT_ID_DIGIT_BIAS))
            ),
            command_timeout_seconds=_parse_timeout(
                os.getenv("IPELFS_COMMAND_TIMEOUT", str(DEFAULT_COMMAND_TIMEOUT_SECONDS))
            ),
            mounts_file=Path(mounts_value),
            web_port=_parse_port(os.getenv("IPELFS_WEB_PORT", str(DEFAULT_WEB_PORT))),
        )


def _parse_id_length(raw_value: str) -> int:
    """Parse the id length environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Id length within the canonical bounds.

    Raises:
        ConfigError: If value is not an integer in range.
    """
    try:
        length = int(raw_value)
    except ValueError as error:
        raise ConfigError(
            "Invalid IPELFS_ID_LENGTH value: "
            f"expected integer, got '{raw_value}'. "
            f"Set IPELFS_ID_LENGTH between {MIN_ID_LENGTH} and {MAX_ID_LENGTH}."
        ) from error
    if not MIN_ID_LENGTH <= length <= MAX_ID_LENGTH:
        raise ConfigError(
            f"Invalid IPELFS_ID_LENGTH value {length}: "
            f"must be between {MIN_ID_LENGTH} and {MAX_ID_LENGTH}."
        )
    return length


def _parse_digit_bias(raw_value: str) -> float:
    """Parse the id digit-bias environment value."""
    try:
        bias = float(raw_value)
    except ValueError as error:
        raise ConfigError(
            "Invalid IPELFS_ID_DIGIT_BIAS value: "
            f"expected number, got '{raw_value}'. "
            "Set IPELFS_ID_DIGIT_BIAS to a probability in [0, 1]."
        ) from error
    if not 0.0 <= bias <= 1.0:
        raise ConfigError(
            f"Invalid IPELFS_ID_DIGIT_BIAS value {bias}: must be within [0, 1]."
        )
    return bias


def _parse_timeout(raw_value: str) -> float:
    """Parse the external command timeout environment value."""
    try:
        timeout = float(raw_value)
    except ValueError as error:
        raise ConfigError(
            "Invalid IPELFS_COMMAND_TIMEOUT value: "
            f"expected seconds, got '{raw_value}'."
        ) from error
    if timeout <= 0:
        raise ConfigError(
            f"Invalid IPELFS_COMMAND_TIMEOUT value {timeout}: must be positive."
        )
    return timeout


def _parse_port(raw_value: str) -> int:
    """Parse the web port environment value."""
    try:
        port = int(raw_value)
    except ValueError as error:
        raise ConfigError(
            "Invalid IPELFS_WEB_PORT value: "
            f"expected integer, got '{raw_value}'."
        ) from error
    if not 0 < port < 65536:
        raise ConfigError(f"Invalid IPELFS_WEB_PORT value {port}: must be 1-65535.")
    return port
