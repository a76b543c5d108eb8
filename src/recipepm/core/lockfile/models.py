"""Lockfile data models --- LockfileMetadata and LockMismatch.

Pure data holders with no I/O, safe to import from anywhere.
"""

from __future__ import annotations

from dataclasses import dataclass

LOCKFILE_NAME = "recipe.lock"

# Current value recorded for a locked package that no longer has a recipe.
MISSING = "(missing)"

# Current value recorded for a locked package whose recipe cannot be read.
UNREADABLE = "(unreadable)"


@dataclass
class LockfileMetadata:
    """Metadata section of the lockfile.

    Attributes:
        generated_at: ISO-8601 UTC timestamp of generation.
        generated_by: Generator identity, e.g. ``"recipepm 0.1.0"``.
    """

    generated_at: str = ""
    generated_by: str = ""


@dataclass(frozen=True)
class LockMismatch:
    """A package whose current recipe version differs from the locked one.

    Attributes:
        name: Package name.
        locked: Version recorded in the lockfile.
        current: Version declared by the recipe now, or ``MISSING`` /
            ``UNREADABLE`` when there is no usable recipe.
    """

    name: str
    locked: str
    current: str

    def __str__(self) -> str:
        return f"{self.name}: locked {self.locked}, recipe has {self.current}"
