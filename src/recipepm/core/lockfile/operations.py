"""Lockfile operations --- deserialization and diffing.

Attached to the ``Lockfile`` class at import time (in ``__init__.py``) so
callers see a single API: ``Lockfile.from_dict``, ``Lockfile.from_json``,
``Lockfile.read`` and ``Lockfile.diff``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from recipepm.core.lockfile.models import LockfileMetadata
from recipepm.exceptions import LockfileError


def _from_dict(cls: type, data: Any) -> Any:
    """Deserialize a lockfile from parsed JSON.

    Raises:
        LockfileError: If the structure does not match the schema.
    """
    if not isinstance(data, dict):
        raise LockfileError("Lockfile must be a JSON object")
    version = data.get("lockfile_version", cls.LOCKFILE_VERSION)
    if version != cls.LOCKFILE_VERSION:
        raise LockfileError(f"Unsupported lockfile version: {version!r}")

    packages = data.get("packages", {})
    if not isinstance(packages, dict):
        raise LockfileError("Lockfile 'packages' must be an object")
    lf = cls()
    for name, locked in packages.items():
        if not isinstance(locked, str):
            raise LockfileError(
                f"Locked version of {name!r} must be a string, got {locked!r}"
            )
        lf.set_version(name, locked)

    meta = data.get("metadata", {})
    if not isinstance(meta, dict):
        raise LockfileError("Lockfile 'metadata' must be an object")
    lf.metadata = LockfileMetadata(
        generated_at=str(meta.get("generated_at", "")),
        generated_by=str(meta.get("generated_by", "")),
    )
    return lf


def _from_json(cls: type, json_str: str) -> Any:
    """Deserialize from a JSON string.

    Raises:
        LockfileError: If the text is not valid JSON or not a lockfile.
    """
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as exc:
        raise LockfileError(f"Lockfile is not valid JSON: {exc}") from exc
    return cls.from_dict(data)


def _read(cls: type, path: Path) -> Any:
    """Read a lockfile from disk.

    Raises:
        FileNotFoundError: If the file does not exist.
        LockfileError: If the content is malformed.
    """
    text = Path(path).read_text(encoding="utf-8")
    try:
        return cls.from_json(text)
    except LockfileError as exc:
        raise LockfileError(f"{path}: {exc}") from exc


def _diff(self: Any, other: Any) -> dict[str, Any]:
    """Compare two lockfiles.

    - **added**: Packages present in ``other`` but not in ``self``.
    - **removed**: Packages present in ``self`` but not in ``other``.
    - **changed**: Packages in both with different versions, as
      ``{"name", "old", "new"}`` dicts.
    """
    old = self.packages
    new = other.packages
    changed = [
        {"name": name, "old": old[name], "new": new[name]}
        for name in sorted(old.keys() & new.keys())
        if old[name] != new[name]
    ]
    return {
        "added": sorted(new.keys() - old.keys()),
        "removed": sorted(old.keys() - new.keys()),
        "changed": changed,
    }
