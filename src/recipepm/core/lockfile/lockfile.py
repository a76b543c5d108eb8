"""Lockfile core class --- package versions, serialization, and disk I/O.

The ``Lockfile`` class represents a ``recipe.lock`` file at the root of the
recipe search path: a mapping of package name to the exact version string
declared when the snapshot was taken, plus generation metadata.

Determinism guarantee: ``to_json()`` sorts every key, so two lockfiles with
the same content and metadata produce byte-identical JSON, and rewriting a
lockfile never reorders unrelated entries.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from recipepm import _GENERATOR
from recipepm.core.lockfile.models import LockfileMetadata
from recipepm.core.state.locking import advisory_lock, atomic_write_text


class Lockfile:
    """Snapshot of recipe versions for reproducible installs.

    Example::

        lf = Lockfile()
        lf.set_version("zlib", "1.3.1")
        lf.write(recipes_dir / "recipe.lock")
    """

    LOCKFILE_VERSION: int = 1

    def __init__(self) -> None:
        self._packages: dict[str, str] = {}
        self._metadata = LockfileMetadata()

    # -- Package management -------------------------------------------------

    def set_version(self, name: str, version: str) -> None:
        """Lock *name* at *version*, replacing any existing entry."""
        self._packages[name] = version

    def get_version(self, name: str) -> str | None:
        return self._packages.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._packages

    @property
    def packages(self) -> dict[str, str]:
        """Return a sorted copy of the name -> version mapping."""
        return dict(sorted(self._packages.items()))

    @property
    def package_count(self) -> int:
        return len(self._packages)

    # -- Metadata -----------------------------------------------------------

    @property
    def metadata(self) -> LockfileMetadata:
        return self._metadata

    @metadata.setter
    def metadata(self, value: LockfileMetadata) -> None:
        self._metadata = value

    def stamp(self, now: datetime | None = None) -> None:
        """Record the generation time and generator identity."""
        now = now or datetime.now(timezone.utc)
        self._metadata = LockfileMetadata(
            generated_at=now.isoformat(timespec="seconds"),
            generated_by=_GENERATOR,
        )

    # -- Serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dict matching the on-disk schema."""
        return {
            "lockfile_version": self.LOCKFILE_VERSION,
            "metadata": {
                "generated_at": self._metadata.generated_at,
                "generated_by": self._metadata.generated_by,
            },
            "packages": self.packages,
        }

    def to_json(self, indent: int = 2) -> str:
        """Deterministic JSON text, with a trailing newline."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True) + "\n"

    def write(self, path: Path, lock_timeout: float | None = None) -> None:
        """Atomically replace the lockfile at *path* under its advisory lock."""
        path = Path(path)
        with advisory_lock(path, lock_timeout):
            atomic_write_text(path, self.to_json())
