"""Recipe lockfile --- reproducible installs from a version snapshot.

- ``models``: ``LockfileMetadata`` and ``LockMismatch``.
- ``lockfile``: the ``Lockfile`` class with serialization and atomic writes.
- ``operations``: deserialization (``from_dict``, ``from_json``, ``read``)
  and ``diff``.
- ``factory``: ``generate``, ``verify`` and ``check_locked`` against a
  recipe directory.
"""

from recipepm.core.lockfile.models import (
    LOCKFILE_NAME,
    MISSING,
    UNREADABLE,
    LockfileMetadata,
    LockMismatch,
)
from recipepm.core.lockfile.lockfile import Lockfile

# Attach operations to Lockfile as methods/classmethods
from recipepm.core.lockfile import operations as _ops

Lockfile.from_dict = classmethod(_ops._from_dict)
Lockfile.from_json = classmethod(_ops._from_json)
Lockfile.read = classmethod(_ops._read)
Lockfile.diff = _ops._diff

from recipepm.core.lockfile.factory import (  # noqa: E402
    check_locked,
    generate,
    lockfile_path,
    verify,
)

__all__ = [
    "LOCKFILE_NAME",
    "MISSING",
    "UNREADABLE",
    "Lockfile",
    "LockfileMetadata",
    "LockMismatch",
    "check_locked",
    "generate",
    "lockfile_path",
    "verify",
]
