"""recipepm exception hierarchy.

All public exceptions inherit from RecipePMError, giving callers a single
base class to catch when they want to handle any recipepm-specific failure
without swallowing unrelated errors.

Every class carries an ``exit_code`` used by the CLI. Lower layers raise
these typed failures; only the lifecycle executor and the resolver decide
whether a failure aborts one recipe or the whole plan, and the CLI only
maps them to exit codes.

Exit codes:
    1: general failure (recipe, phase, commit, lock contention).
    2: usage error.
    3: recipe not found.
    4: dependency error (cycle, missing, constraint, lock drift).
    5: network failure.
    6: permission denied.
"""

from __future__ import annotations

from collections.abc import Sequence


class RecipePMError(Exception):
    """Base exception for all recipepm errors."""

    exit_code: int = 1


# ---------------------------------------------------------------------------
# User errors
# ---------------------------------------------------------------------------


class UserError(RecipePMError):
    """Raised for bad package names, bad arguments and invalid configuration.

    Reported immediately and never retried.
    """

    exit_code = 2


class RecipeNotFoundError(UserError):
    """Raised when a package name does not match any recipe in the search path."""

    exit_code = 3

    def __init__(self, name: str, search_path: object | None = None) -> None:
        self.name = name
        self.search_path = search_path
        where = f" in {search_path}" if search_path is not None else ""
        super().__init__(f"Recipe not found: {name!r}{where}")


# ---------------------------------------------------------------------------
# Recipe errors
# ---------------------------------------------------------------------------


class RecipeError(RecipePMError):
    """Raised when a single recipe is unusable.

    Covers missing required variables or functions and malformed values.
    Fails only the affected recipe; batch scans skip and warn.
    """


class ParseError(RecipeError):
    """Raised when a recipe file's declared variables cannot be read.

    Attributes:
        variable: The offending variable name, when one is known.
    """

    def __init__(self, message: str, *, variable: str | None = None, path: object | None = None) -> None:
        self.variable = variable
        self.path = path
        prefix = f"{path}: " if path is not None else ""
        super().__init__(f"{prefix}{message}")


# ---------------------------------------------------------------------------
# Dependency errors (abort the whole plan before any phase runs)
# ---------------------------------------------------------------------------


class DependencyError(RecipePMError):
    """Raised when an install plan is invalid."""

    exit_code = 4


class CycleError(DependencyError):
    """Raised when the dependency graph contains a cycle.

    Attributes:
        participants: The chain from the target to the repeated node; the
            repeated node appears at both the position where it was first
            entered and at the end (e.g. ``["a", "b", "c", "b"]``).
    """

    def __init__(self, participants: Sequence[str]) -> None:
        self.participants = list(participants)
        super().__init__(
            "Dependency cycle detected: " + " -> ".join(self.participants)
        )


class MissingDependencyError(DependencyError):
    """Raised when a recipe depends on a package with no recipe."""

    def __init__(self, name: str, requested_by: str) -> None:
        self.name = name
        self.requested_by = requested_by
        super().__init__(
            f"{requested_by!r} depends on missing package {name!r}"
        )


class ConstraintViolation(DependencyError):
    """Raised when a resolved version does not satisfy a declared constraint."""

    def __init__(
        self,
        dependent: str,
        dependency: str,
        constraint: str,
        found: str,
        reason: str | None = None,
    ) -> None:
        self.dependent = dependent
        self.dependency = dependency
        self.constraint = constraint
        self.found = found
        self.reason = reason
        message = (
            f"{dependent!r} requires {dependency!r} {constraint} "
            f"but found version {found!r}"
        )
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class LockMismatchError(DependencyError):
    """Raised by ``--locked`` installs when recipe versions drifted from the lockfile.

    Attributes:
        mismatches: Every mismatch found, not only the first.
    """

    def __init__(self, mismatches: Sequence[object]) -> None:
        self.mismatches = list(mismatches)
        lines = [
            f"  {m.name}: locked {m.locked}, recipe has {m.current}"  # type: ignore[attr-defined]
            for m in self.mismatches
        ]
        super().__init__(
            "Recipe versions do not match the lockfile:\n" + "\n".join(lines)
        )


class ReverseDependencyError(DependencyError):
    """Raised when removing a package that installed packages still depend on."""

    def __init__(self, name: str, dependents: Sequence[str]) -> None:
        self.name = name
        self.dependents = sorted(dependents)
        super().__init__(
            f"Cannot remove {name!r}: required by {', '.join(self.dependents)} "
            "(use --force to remove anyway)"
        )


# ---------------------------------------------------------------------------
# Execution errors
# ---------------------------------------------------------------------------


class ScriptFailure(RecipePMError):
    """Raised when a recipe function fails inside the script runtime."""

    def __init__(self, function: str, message: str) -> None:
        self.function = function
        self.message = message
        super().__init__(f"{function}() failed: {message}")


class PhaseError(RecipePMError):
    """Raised when a lifecycle phase or hook fails.

    The executor guarantees that the destination tree and the recipe
    state are untouched when this is raised.
    """

    def __init__(self, recipe: str, phase: str, message: str) -> None:
        self.recipe = recipe
        self.phase = phase
        super().__init__(f"{recipe}: {phase} failed: {message}")


class CommitError(RecipePMError):
    """Raised when moving staged files into the destination fails partway.

    This is the one failure where partial destination mutation is possible.

    Attributes:
        committed: Destination paths already moved before the failure.
    """

    def __init__(self, message: str, committed: Sequence[object] = ()) -> None:
        self.committed = list(committed)
        super().__init__(message)


class RemovalError(RecipePMError):
    """Raised when some installed files could not be deleted.

    Attributes:
        remaining: Files that are still present after the attempt.
    """

    def __init__(self, name: str, remaining: Sequence[str]) -> None:
        self.name = name
        self.remaining = list(remaining)
        super().__init__(
            f"Failed to remove {len(self.remaining)} file(s) of {name!r}; "
            "package stays installed with the remaining files recorded"
        )


class LockError(RecipePMError):
    """Raised when an advisory lock cannot be acquired in time."""


class LockfileError(RecipePMError):
    """Raised for unreadable or malformed lockfiles."""


class IntegrityError(RecipePMError):
    """Raised when a content hash does not match the expected value."""


class NetworkError(RecipePMError):
    """Raised when a download or remote fetch fails."""

    exit_code = 5


class PermissionDenied(RecipePMError):
    """Raised when the filesystem refuses an operation."""

    exit_code = 6


class InternalError(RecipePMError):
    """Raised for implementation defects. Always fatal."""
