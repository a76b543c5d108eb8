"""Advisory file locks and atomic file replacement.

Both recipe files and the lockfile are single-writer values guarded by an
exclusive ``flock`` on a ``.lock`` sidecar. The sidecar, not the data file,
carries the lock so the data file can be replaced with ``os.replace``
without disturbing the lock handle.
"""

from __future__ import annotations

import errno
import fcntl
import logging
import os
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from recipepm.exceptions import LockError

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"

# Seconds to wait for a contended lock before giving up.
DEFAULT_LOCK_TIMEOUT = 30.0

_POLL_INTERVAL = 0.05


def lock_path_for(path: Path) -> Path:
    """Return the sidecar lock path for *path* (``recipe.rhai.lock``)."""
    return path.with_name(path.name + LOCK_SUFFIX)


@contextmanager
def advisory_lock(path: Path, timeout: float | None = None) -> Iterator[Path]:
    """Hold an exclusive advisory lock on *path* for the duration of the block.

    Args:
        path: The data file being protected. The lock is taken on its
            sidecar, which is created if needed.
        timeout: Seconds to wait for a contended lock. ``None`` uses
            ``DEFAULT_LOCK_TIMEOUT``; ``0`` fails immediately.

    Yields:
        The sidecar lock path.

    Raises:
        LockError: If the lock is still held elsewhere after *timeout*.
    """
    if timeout is None:
        timeout = DEFAULT_LOCK_TIMEOUT
    lock_path = lock_path_for(path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with lock_path.open("a+", encoding="utf-8") as handle:
        deadline = time.monotonic() + timeout
        while True:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except OSError as exc:
                if exc.errno not in (errno.EAGAIN, errno.EACCES):
                    raise
                if time.monotonic() >= deadline:
                    raise LockError(
                        f"Timed out after {timeout:g}s waiting for lock on {path} "
                        f"(held by another recipe process)"
                    ) from exc
                time.sleep(_POLL_INTERVAL)
        logger.debug("Acquired lock %s", lock_path)
        try:
            yield lock_path
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            logger.debug("Released lock %s", lock_path)


def atomic_write_text(path: Path, content: str) -> None:
    """Write *content* to *path* atomically.

    The text goes to a temporary file in the same directory, is flushed to
    disk, and is renamed over the target, so a reader sees either the old
    file or the new one. An existing file's permission bits are kept.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        mode = path.stat().st_mode & 0o7777
    except FileNotFoundError:
        mode = None
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as tmp_handle:
            tmp_handle.write(content)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
