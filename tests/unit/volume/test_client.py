"""Unit tests for SDK client wiring."""

from __future__ import annotations

import pytest

import ipelfs
from volume.metadata import SystemMetadataCollector


def test_client_reads_config_from_env(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A client built without arguments uses environment configuration."""
    monkeypatch.setenv("IPELFS_COMMAND_TIMEOUT", "3")

    client = ipelfs.IpelfsClient()
    client.initialize()

    assert (
        client.config.registry_path == tmp_path / "etc" / "config.toml"
        and client.config.command_timeout_seconds == 3.0
        and client.registry_store.path.exists()
        and client.volumes.list_volumes() == {}
    )


def test_client_defaults_to_system_metadata_collector(tmp_path) -> None:
    """Host collaborators are used unless replaced."""
    config = ipelfs.IpelfsConfig(registry_path=tmp_path / "config.toml")

    client = ipelfs.IpelfsClient(config)

    assert isinstance(client.volumes._metadata_collector, SystemMetadataCollector)


def test_public_surface_exports_error_hierarchy() -> None:
    """Every exported error derives from the base error."""
    error_types = [
        ipelfs.ValidationError,
        ipelfs.NotFoundError,
        ipelfs.ConflictError,
        ipelfs.DeviceUnmountedError,
        ipelfs.IpelfsIoError,
        ipelfs.ConfigError,
        ipelfs.StartupError,
    ]

    assert all(issubclass(error_type, ipelfs.IpelfsError) for error_type in error_types)
