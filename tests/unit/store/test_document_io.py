"""Unit tests for locked TOML document IO."""

from __future__ import annotations

import stat
import threading

import pytest
import tomlkit

from core.errors import IpelfsIoError
from store.document_io import (
    exclusive_lock,
    lock_path_for,
    read_toml_document,
    write_text_atomic,
    write_toml_document,
)


def test_read_missing_document_returns_empty(tmp_path) -> None:
    """A missing file reads as an empty document."""
    document = read_toml_document(tmp_path / "absent.toml")

    assert dict(document) == {}


def test_read_invalid_document_raises_io_error(tmp_path) -> None:
    """Malformed TOML is reported as an IO error with the file path."""
    broken_path = tmp_path / "broken.toml"
    broken_path.write_text("[volume\nkey = ", encoding="utf-8")

    with pytest.raises(IpelfsIoError) as error_info:
        read_toml_document(broken_path)

    assert error_info.value.context["path"] == str(broken_path)


def test_write_preserves_comments_and_unknown_tables(tmp_path) -> None:
    """Round-tripping keeps content the writer did not touch."""
    document_path = tmp_path / "config.toml"
    document_path.write_text(
        "# operator notes\n[custom]\nkeep = true\n\n[volume]\nb3x9q2z = \"/mnt/a\"\n",
        encoding="utf-8",
    )
    document = read_toml_document(document_path)
    document["volume"]["k2p0stu"] = "/mnt/b"

    write_toml_document(document_path, document)
    content = document_path.read_text(encoding="utf-8")

    assert (
        "# operator notes" in content
        and "keep = true" in content
        and 'k2p0stu = "/mnt/b"' in content
    )


def test_write_text_atomic_leaves_no_temp_files_and_sets_mode(tmp_path) -> None:
    """Atomic writes land as 0644 files with no leftover temp siblings."""
    target_path = tmp_path / "index.toml"

    write_text_atomic(target_path, "[collection]\n")

    siblings = sorted(path.name for path in tmp_path.iterdir())
    mode = stat.S_IMODE(target_path.stat().st_mode)
    assert siblings == ["index.toml"] and mode == 0o644


def test_write_text_atomic_keeps_existing_mode(tmp_path) -> None:
    """Replacing a file keeps the permissions it already had."""
    target_path = tmp_path / "config.toml"
    target_path.write_text("", encoding="utf-8")
    target_path.chmod(0o600)

    write_text_atomic(target_path, "[volume]\n")

    assert stat.S_IMODE(target_path.stat().st_mode) == 0o600


def test_write_text_atomic_raises_for_missing_directory(tmp_path) -> None:
    """Writes into a missing directory fail as IO errors."""
    with pytest.raises(IpelfsIoError):
        write_text_atomic(tmp_path / "missing" / "config.toml", "")


def test_lock_path_is_hidden_sidecar(tmp_path) -> None:
    """The lock guarding a document sits beside it as a dot file."""
    assert lock_path_for(tmp_path / "index.toml") == tmp_path / ".index.toml.lock"


def test_exclusive_lock_is_reentrant(tmp_path) -> None:
    """Nested acquisition from one thread does not deadlock."""
    document_path = tmp_path / "config.toml"

    with exclusive_lock(document_path):
        with exclusive_lock(document_path):
            entered = True

    assert entered and lock_path_for(document_path).exists()


def test_exclusive_lock_prevents_lost_updates(tmp_path) -> None:
    """Concurrent read-modify-write cycles under the lock all persist."""
    document_path = tmp_path / "config.toml"
    write_toml_document(document_path, tomlkit.document())

    def add_key(index: int) -> None:
        with exclusive_lock(document_path):
            document = read_toml_document(document_path)
            document[f"key{index}"] = index
            write_toml_document(document_path, document)

    threads = [threading.Thread(target=add_key, args=(index,)) for index in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(read_toml_document(document_path)) == 16
