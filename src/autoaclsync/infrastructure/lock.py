"""
Single-instance lock file.

Provides mutual exclusion between scheduler-triggered invocations sharing a
working directory. The lock is a plain file holding the owner's process ID,
created atomically (O_CREAT | O_EXCL) and removed when the run ends.

There is no staleness detection. A lock left behind by a run that crashed
before cleanup must be removed manually.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from autoaclsync.domain.errors import LockError

logger = logging.getLogger(__name__)


@dataclass
class LockHandle:
    """An acquired lock file."""

    path: Path
    pid: int
    released: bool = False

    def release(self) -> None:
        """Delete the lock file. Safe to call more than once."""
        if self.released:
            return

        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.warning("Lock file %s already removed", self.path)

        self.released = True
        logger.debug("Released lock %s", self.path)


def acquire(path: Path | str) -> LockHandle:
    """
    Create the lock file, failing if it already exists.

    Args:
        path: Lock file path. Parent directories are created if needed.

    Returns:
        LockHandle for the acquired lock

    Raises:
        LockError: If the lock file already exists. Its contents are not
                   inspected or trusted.
    """
    lockfile = Path(path)
    lockfile.parent.mkdir(parents=True, exist_ok=True)

    pid = os.getpid()
    try:
        fd = os.open(lockfile, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o660)
    except FileExistsError as e:
        raise LockError(lockfile) from e

    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(f"{pid}\n")

    logger.debug("Acquired lock %s (pid %d)", lockfile, pid)
    return LockHandle(path=lockfile, pid=pid)


@contextmanager
def locked(path: Path | str) -> Iterator[LockHandle]:
    """Hold the lock for the duration of the block, releasing on every exit path."""
    handle = acquire(path)
    try:
        yield handle
    finally:
        handle.release()
