"""Locked TOML document persistence helpers.

This module isolates advisory locking and atomic write-then-rename IO
shared by the central registry and the per-volume collection indexes.
"""

from __future__ import annotations

import fcntl
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator

import tomlkit
from tomlkit.exceptions import ParseError
from tomlkit.toml_document import TOMLDocument

from core.errors import IpelfsIoError

_PATH_LOCKS: dict[str, "_PathLock"] = {}
_PATH_LOCKS_GUARD = threading.Lock()


class _PathLock:
    """Re-entrant lock combining a thread lock with an fcntl advisory lock."""

    def __init__(self, lock_path: Path) -> None:
        self._lock_path = lock_path
        self._thread_lock = threading.RLock()
        self._depth = 0
        self._handle: IO[str] | None = None

    def acquire(self) -> None:
        self._thread_lock.acquire()
        if self._depth == 0:
            try:
                handle = self._lock_path.open("a", encoding="utf-8")
            except OSError as error:
                self._thread_lock.release()
                raise IpelfsIoError(
                    f"Failed to open lock file {self._lock_path}: {error}. "
                    "Check that the directory exists and is writable.",
                    path=str(self._lock_path),
                ) from error
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            self._handle = handle
        self._depth += 1

    def release(self) -> None:
        self._depth -= 1
        if self._depth == 0 and self._handle is not None:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
            self._handle.close()
            self._handle = None
        self._thread_lock.release()


def lock_path_for(target_path: Path) -> Path:
    """Return the hidden sidecar lock file guarding target_path."""
    return target_path.parent / f".{target_path.name}.lock"


@contextmanager
def exclusive_lock(target_path: Path) -> Iterator[None]:
    """Hold the single-writer lock for one persisted document.

    Args:
        target_path: Document whose read-modify-write cycle is guarded.
    """
    lock_path = lock_path_for(target_path)
    key = os.path.abspath(lock_path)
    with _PATH_LOCKS_GUARD:
        path_lock = _PATH_LOCKS.setdefault(key, _PathLock(lock_path))
    path_lock.acquire()
    try:
        yield
    finally:
        path_lock.release()


def read_toml_document(document_path: Path) -> TOMLDocument:
    """Read a TOML document, returning an empty one when the file is absent.

    Raises:
        IpelfsIoError: If the file cannot be read or parsed.
    """
    try:
        content = document_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return tomlkit.document()
    except OSError as error:
        raise IpelfsIoError(
            f"Failed to read {document_path}: {error}.",
            path=str(document_path),
        ) from error
    try:
        return tomlkit.parse(content)
    except ParseError as error:
        raise IpelfsIoError(
            f"Failed to parse TOML at {document_path}: {error}. "
            "Fix or restore the file before retrying.",
            path=str(document_path),
        ) from error


def write_toml_document(document_path: Path, document: TOMLDocument) -> None:
    """Atomically replace document_path with the rendered document."""
    write_text_atomic(document_path, tomlkit.dumps(document))


def write_text_atomic(target_path: Path, content: str) -> None:
    """Write content to a temp file beside target_path, then rename over it.

    Raises:
        IpelfsIoError: If any step of the write fails.
    """
    temp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=target_path.parent,
            prefix=f".{target_path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            temp_name = handle.name
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        mode = target_path.stat().st_mode & 0o777 if target_path.exists() else 0o644
        os.chmod(temp_name, mode)
        os.replace(temp_name, target_path)
    except OSError as error:
        if temp_name is not None:
            Path(temp_name).unlink(missing_ok=True)
        raise IpelfsIoError(
            f"Failed to write {target_path}: {error}.",
            path=str(target_path),
        ) from error
