"""Atomic Installer: stage install output, then commit it into place.

During the install phase the destination exposed to the recipe (``PREFIX``)
points at a staging directory created as a sibling of the real destination,
so every rename at commit time stays on one filesystem. Commit walks the
staging tree and renames each file into the destination.

Guarantees:

- Before commit, the destination tree is never written.
- A failed commit leaves the files already moved in place (no rollback)
  and reports them on ``CommitError.committed``.
- The staging directory is removed whatever the outcome.
- If staging was placed on another filesystem (``EXDEV``), files are
  copied then deleted, which is not atomic per file.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import stat
import tempfile
from pathlib import Path

from recipepm.exceptions import CommitError

logger = logging.getLogger(__name__)

DIR_MODE = 0o755


class AtomicInstaller:
    """Creates staging roots and commits them into a destination tree."""

    def stage(self, destination_root: Path, staging_parent: Path | None = None) -> Path:
        """Create an empty staging root for *destination_root*.

        Args:
            destination_root: The real install prefix.
            staging_parent: Override the staging location. Defaults to the
                destination's parent directory.

        Returns:
            The new staging directory.
        """
        destination_root = Path(destination_root)
        parent = Path(staging_parent) if staging_parent is not None else destination_root.parent
        parent.mkdir(parents=True, exist_ok=True)
        name = destination_root.name or "root"
        staging = Path(tempfile.mkdtemp(prefix=f".{name}.staging-", dir=str(parent)))
        logger.debug("Staging %s in %s", destination_root, staging)
        return staging

    def discard(self, staging_root: Path) -> None:
        """Remove a staging root and everything in it."""
        staging_root = Path(staging_root)
        if staging_root.exists() or staging_root.is_symlink():
            try:
                shutil.rmtree(staging_root)
            except OSError:
                logger.warning("Could not remove staging directory %s", staging_root, exc_info=True)

    def commit(self, staging_root: Path, destination_root: Path) -> list[Path]:
        """Move every staged file or symlink into *destination_root*.

        Returns:
            Destination paths of the committed files, in walk order.

        Raises:
            CommitError: If a file could not be moved. ``committed`` lists
                the files already in place.
        """
        staging_root = Path(staging_root)
        destination_root = Path(destination_root)
        committed: list[Path] = []
        try:
            for source in _staged_entries(staging_root):
                rel = source.relative_to(staging_root)
                target = destination_root / rel
                try:
                    _make_parents(target.parent, destination_root)
                    _move(source, target)
                except OSError as exc:
                    raise CommitError(
                        f"Failed to commit {rel} into {destination_root}: {exc}",
                        committed=committed,
                    ) from exc
                committed.append(target)
        finally:
            self.discard(staging_root)
        logger.debug("Committed %d files into %s", len(committed), destination_root)
        return committed


def _staged_entries(staging_root: Path) -> list[Path]:
    """Files and symlinks under *staging_root*, sorted for determinism."""
    entries: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(staging_root, followlinks=False):
        dirnames.sort()
        base = Path(dirpath)
        # Symlinks to directories show up in dirnames; treat them as leaves.
        for d in list(dirnames):
            if (base / d).is_symlink():
                entries.append(base / d)
                dirnames.remove(d)
        entries.extend(base / f for f in sorted(filenames))
    return entries


def _make_parents(directory: Path, destination_root: Path) -> None:
    """Create *directory* and missing parents with mode 0755."""
    missing: list[Path] = []
    current = directory
    while not current.exists():
        missing.append(current)
        if current == destination_root or current.parent == current:
            break
        current = current.parent
    for d in reversed(missing):
        d.mkdir(mode=DIR_MODE, exist_ok=True)
        # mkdir honours the umask and may inherit setgid; pin the mode.
        os.chmod(d, DIR_MODE)


def _move(source: Path, target: Path) -> None:
    try:
        os.replace(source, target)
        return
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise
    logger.debug("Cross-device commit of %s; copying", target)
    tmp = target.with_name(f".{target.name}.recipe-tmp")
    if source.is_symlink():
        if tmp.is_symlink() or tmp.exists():
            tmp.unlink()
        os.symlink(os.readlink(source), tmp)
    else:
        shutil.copy2(source, tmp)
        mode = tmp.stat().st_mode
        os.chmod(tmp, stat.S_IMODE(mode) & ~(stat.S_ISUID | stat.S_ISGID))
    os.replace(tmp, target)
    source.unlink()

