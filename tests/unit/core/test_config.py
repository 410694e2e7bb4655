"""Unit tests for core config parsing."""

from __future__ import annotations

import os

import pytest

from core.config import IpelfsConfig
from core.constants import DEFAULT_REGISTRY_PATH
from core.errors import ConfigError


def test_from_env_reads_registry_path(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should resolve registry path from environment."""
    monkeypatch.setenv("IPELFS_REGISTRY_PATH", "./.tmp-ipelfs/config.toml")

    config = IpelfsConfig.from_env()

    assert config.registry_path.parent.name == ".tmp-ipelfs"


def test_from_env_defaults_to_canonical_policy(monkeypatch: pytest.MonkeyPatch) -> None:
    """Without overrides the system registry and 7/0.7 id policy apply."""
    monkeypatch.delenv("IPELFS_REGISTRY_PATH", raising=False)

    config = IpelfsConfig.from_env()

    assert (
        config.registry_path == DEFAULT_REGISTRY_PATH
        and config.id_length == 7
        and config.id_digit_bias == 0.7
        and config.web_port == 33330
    )


def test_from_env_raises_for_invalid_id_length(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for id lengths outside the canonical pattern."""
    monkeypatch.setenv("IPELFS_ID_LENGTH", "4")

    with pytest.raises(ConfigError):
        IpelfsConfig.from_env()

    assert os.getenv("IPELFS_ID_LENGTH") == "4"


def test_from_env_raises_for_non_numeric_bias(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for a digit bias that is not a number."""
    monkeypatch.setenv("IPELFS_ID_DIGIT_BIAS", "often")

    with pytest.raises(ConfigError, match="IPELFS_ID_DIGIT_BIAS"):
        IpelfsConfig.from_env()


def test_from_env_raises_for_bias_out_of_range(monkeypatch: pytest.MonkeyPatch) -> None:
    """Digit bias is a probability."""
    monkeypatch.setenv("IPELFS_ID_DIGIT_BIAS", "1.5")

    with pytest.raises(ConfigError):
        IpelfsConfig.from_env()


def test_from_env_raises_for_non_positive_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    """External command timeout must be positive."""
    monkeypatch.setenv("IPELFS_COMMAND_TIMEOUT", "0")

    with pytest.raises(ConfigError):
        IpelfsConfig.from_env()
