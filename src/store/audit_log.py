"""Per-volume audit trail.

Each volume keeps a daily-rotated log under ``logs/<YYYY-MM-DD>.log``
with one ``<HH:MM:SS> <action> <subject>[ -> <target>]`` line per event.
"""

from __future__ import annotations

import threading
from datetime import datetime
from pathlib import Path
from typing import Callable

from core.constants import AUDIT_DATE_FORMAT, AUDIT_TIME_FORMAT, LOGS_DIR_NAME
from core.errors import IpelfsIoError
from core.logging_config import get_logger
from core.types import AuditAction

_LOGGER = get_logger(__name__)


class AuditLog:
    """Append-only audit log writer with a failure counter."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or datetime.now
        self._failure_count = 0
        self._counter_lock = threading.Lock()

    @property
    def failure_count(self) -> int:
        """Number of best-effort writes that failed since construction."""
        return self._failure_count

    def append(
        self,
        volume_root: Path,
        action: AuditAction,
        subject: str,
        target: str | None = None,
    ) -> Path:
        """Append one audit line to today's log file.

        Returns:
            The log file written.

        Raises:
            IpelfsIoError: If the logs directory or file cannot be written.
        """
        now = self._clock()
        log_path = volume_root / LOGS_DIR_NAME / f"{now.strftime(AUDIT_DATE_FORMAT)}.log"
        line = f"{now.strftime(AUDIT_TIME_FORMAT)} {action} {subject}"
        if target is not None:
            line = f"{line} -> {target}"
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            with log_path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except OSError as error:
            raise IpelfsIoError(
                f"Failed to append audit log {log_path}: {error}.",
                path=str(log_path),
            ) from error
        return log_path

    def append_best_effort(
        self,
        volume_root: Path,
        action: AuditAction,
        subject: str,
        target: str | None = None,
    ) -> bool:
        """Append one line; report failure through logging and the counter."""
        try:
            self.append(volume_root, action, subject, target)
        except IpelfsIoError as error:
            with self._counter_lock:
                self._failure_count += 1
            _LOGGER.warning(
                "audit_log_write_failed",
                volume_root=str(volume_root),
                action=action,
                subject=subject,
                error=str(error),
                failure_count=self._failure_count,
            )
            return False
        return True
