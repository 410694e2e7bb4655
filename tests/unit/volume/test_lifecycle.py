"""Unit tests for volume lifecycle transitions."""

from __future__ import annotations

import pytest

from core.errors import (
    ConflictError,
    DeviceUnmountedError,
    IpelfsIoError,
    NotFoundError,
    ValidationError,
)
from volume_fixtures import FakeMetadataCollector, build_client, make_volume_dir


def test_create_initializes_locked_registered_volume(tmp_path) -> None:
    """create writes both markers and meta.toml, then registers the path."""
    volume_dir = make_volume_dir(tmp_path, "a")
    collector = FakeMetadataCollector()
    client = build_client(tmp_path, ids=("b3x9q2z",), collector=collector)

    volume_id = client.volumes.create(str(volume_dir))

    assert (
        volume_id == "b3x9q2z"
        and (volume_dir / ".ipelfs").read_text(encoding="utf-8").strip() == "b3x9q2z"
        and (volume_dir / ".vlock").exists()
        and (volume_dir / "meta.toml").exists()
        and client.volumes.list_volumes() == {"b3x9q2z": str(volume_dir)}
        and collector.calls == [("b3x9q2z", volume_dir)]
    )


def test_create_rejects_owned_directory(tmp_path) -> None:
    """A directory that already carries a marker is never re-initialized."""
    volume_dir = make_volume_dir(tmp_path, "a")
    (volume_dir / ".ipelfs").write_text("b3x9q2z", encoding="utf-8")
    client = build_client(tmp_path)

    with pytest.raises(ConflictError) as error_info:
        client.volumes.create(str(volume_dir))

    assert error_info.value.context["owner_id"] == "b3x9q2z"


def test_create_rejects_non_empty_directory(tmp_path) -> None:
    """Unowned directories must be empty."""
    volume_dir = make_volume_dir(tmp_path, "a")
    (volume_dir / "stray.txt").write_text("x", encoding="utf-8")
    client = build_client(tmp_path)
    registry_before = client.registry_store.path.read_bytes()

    with pytest.raises(ConflictError):
        client.volumes.create(str(volume_dir))

    assert (
        not (volume_dir / ".ipelfs").exists()
        and client.volumes.list_volumes() == {}
        and client.registry_store.path.read_bytes() == registry_before
    )


def test_create_rejects_missing_directory(tmp_path) -> None:
    """Volume roots must exist."""
    client = build_client(tmp_path)

    with pytest.raises(NotFoundError):
        client.volumes.create(str(tmp_path / "nowhere"))


def test_create_rejects_unmounted_device(tmp_path) -> None:
    """Device paths without a mount point fail before touching disk."""
    client = build_client(tmp_path)

    with pytest.raises(DeviceUnmountedError):
        client.volumes.create("/dev/sdz9")


def test_create_resolves_mounted_device(tmp_path) -> None:
    """Device paths are registered under their mount point."""
    volume_dir = make_volume_dir(tmp_path, "a")
    client = build_client(
        tmp_path,
        ids=("b3x9q2z",),
        mount_points={"/dev/sdb1": str(volume_dir)},
    )

    client.volumes.create("/dev/sdb1")

    assert client.volumes.list_volumes() == {"b3x9q2z": str(volume_dir)}


def test_create_rolls_back_when_metadata_fails(tmp_path) -> None:
    """A failed metadata step leaves the directory and registry as they were."""
    volume_dir = make_volume_dir(tmp_path, "a")
    client = build_client(tmp_path, collector=FakeMetadataCollector(fail=True))

    with pytest.raises(IpelfsIoError):
        client.volumes.create(str(volume_dir))

    assert list(volume_dir.iterdir()) == [] and client.volumes.list_volumes() == {}


def test_remove_detaches_and_add_reattaches(tmp_path) -> None:
    """remove keeps the ownership marker so add can restore the volume."""
    volume_dir = make_volume_dir(tmp_path, "a")
    client = build_client(tmp_path, ids=("b3x9q2z",))
    client.volumes.create(str(volume_dir))

    removed = client.volumes.remove("b3x9q2z")
    detached = (
        client.volumes.list_volumes() == {}
        and (volume_dir / ".ipelfs").exists()
        and not (volume_dir / ".vlock").exists()
    )
    added = client.volumes.add(str(volume_dir))

    assert (
        removed == "b3x9q2z"
        and detached
        and added == "b3x9q2z"
        and (volume_dir / ".vlock").exists()
        and client.volumes.list_volumes() == {"b3x9q2z": str(volume_dir)}
    )


def test_remove_by_path(tmp_path) -> None:
    """Absolute paths resolve to the volume registered there."""
    volume_dir = make_volume_dir(tmp_path, "a")
    client = build_client(tmp_path, ids=("b3x9q2z",))
    client.volumes.create(str(volume_dir))

    assert client.volumes.remove(str(volume_dir)) == "b3x9q2z"


def test_remove_unknown_volume_raises(tmp_path) -> None:
    """Unknown ids and paths are not found."""
    client = build_client(tmp_path)

    with pytest.raises(NotFoundError):
        client.volumes.remove("b3x9q2z")

    with pytest.raises(NotFoundError):
        client.volumes.remove(str(tmp_path / "nowhere"))


def test_remove_rejects_ambiguous_path(tmp_path) -> None:
    """A path registered under two ids cannot be resolved by path."""
    volume_dir = make_volume_dir(tmp_path, "a")
    client = build_client(tmp_path)
    with client.registry_store.transaction() as registry:
        registry.set_volume("b3x9q2z", str(volume_dir))
        registry.set_volume("k2p0stu", str(volume_dir))

    with pytest.raises(ConflictError, match="ambiguous"):
        client.volumes.remove(str(volume_dir))

    assert len(client.volumes.list_volumes()) == 2


def test_add_rejects_locked_volume(tmp_path) -> None:
    """A volume still carrying .vlock is either in use or not cleanly detached."""
    volume_dir = make_volume_dir(tmp_path, "a")
    client = build_client(tmp_path, ids=("b3x9q2z",))
    client.volumes.create(str(volume_dir))
    client.volumes.remove("b3x9q2z")
    (volume_dir / ".vlock").write_text("2026-10-19T10:00:00+00:00", encoding="utf-8")

    with pytest.raises(ConflictError, match="locked"):
        client.volumes.add(str(volume_dir))

    assert client.volumes.list_volumes() == {}


def test_add_rejects_missing_or_invalid_marker(tmp_path) -> None:
    """add requires a well-formed ownership marker."""
    plain_dir = make_volume_dir(tmp_path, "plain")
    bad_dir = make_volume_dir(tmp_path, "bad")
    (bad_dir / ".ipelfs").write_text("Not-An-Id", encoding="utf-8")
    client = build_client(tmp_path)

    with pytest.raises(NotFoundError):
        client.volumes.add(str(plain_dir))

    with pytest.raises(ValidationError):
        client.volumes.add(str(bad_dir))


def test_add_rejects_registered_id(tmp_path) -> None:
    """A copied marker cannot attach a second root under the same id."""
    first_dir = make_volume_dir(tmp_path, "a")
    copy_dir = make_volume_dir(tmp_path, "copy")
    client = build_client(tmp_path, ids=("b3x9q2z",))
    client.volumes.create(str(first_dir))
    (copy_dir / ".ipelfs").write_text("b3x9q2z", encoding="utf-8")

    with pytest.raises(ConflictError, match="already registered"):
        client.volumes.add(str(copy_dir))

    assert not (copy_dir / ".vlock").exists()


def test_delete_releases_directory(tmp_path) -> None:
    """delete removes the registry entry and both markers."""
    volume_dir = make_volume_dir(tmp_path, "a")
    client = build_client(tmp_path, ids=("b3x9q2z",))
    client.volumes.create(str(volume_dir))

    deleted = client.volumes.delete("b3x9q2z")

    assert (
        deleted == "b3x9q2z"
        and client.volumes.list_volumes() == {}
        and not (volume_dir / ".ipelfs").exists()
        and not (volume_dir / ".vlock").exists()
    )


def test_info_returns_metadata_record(tmp_path) -> None:
    """info reads meta.toml of an attached volume."""
    volume_dir = make_volume_dir(tmp_path, "a")
    client = build_client(tmp_path, ids=("b3x9q2z",))
    client.volumes.create(str(volume_dir))

    record = client.volumes.info("b3x9q2z")

    assert record["id"] == "b3x9q2z" and record["fs_type"] == "ext4"
