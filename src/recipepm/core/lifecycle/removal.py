"""Removal sub-machine.

``CHECK_REVERSE_DEPS -> PRE_REMOVE? -> DELETING_FILES -> POST_REMOVE? ->
CUSTOM_REMOVE? -> COMMITTED``

Installed dependents block removal unless forced. When every recorded file
is gone the state block is cleared; when some files cannot be deleted the
package stays ``installed`` and ``installed_files`` is rewritten to the
files that remain.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from recipepm.core.dependency.graph import DependencyGraph
from recipepm.core.lifecycle.context import ExecutionContext
from recipepm.core.lifecycle.runner import PhaseRunner
from recipepm.core.lifecycle.states import RemovalPhase
from recipepm.core.state.store import RecipeStore
from recipepm.exceptions import RemovalError, ReverseDependencyError, UserError
from recipepm.script.registry import HostRegistry

logger = logging.getLogger(__name__)


@dataclass
class RemovalOutcome:
    """Result of a successful removal.

    Attributes:
        forced_past: Installed dependents that were ignored because of
            ``force``.
    """

    name: str
    path: Path
    removed_files: list[str] = field(default_factory=list)
    forced_past: list[str] = field(default_factory=list)
    transitions: list[RemovalPhase] = field(default_factory=list)


def prune_empty_dirs(directories: Iterable[Path], stop_at: Path) -> None:
    """Remove empty directories, walking upward, never touching *stop_at*.

    Only directories strictly inside *stop_at* are considered.
    """
    stop_at = Path(stop_at)
    candidates: set[Path] = set()
    for d in directories:
        d = Path(d)
        while d != stop_at and stop_at in d.parents:
            candidates.add(d)
            d = d.parent
    # Deepest first, so children go before their parents.
    for d in sorted(candidates, key=lambda p: len(p.parts), reverse=True):
        try:
            d.rmdir()
        except OSError:
            continue
        logger.debug("Removed empty directory %s", d)


def delete_files(files: Iterable[str], prefix: Path) -> tuple[list[str], list[str]]:
    """Delete installed files and prune directories they leave empty.

    A file that is already gone counts as removed.

    Returns:
        ``(removed, remaining)``.
    """
    removed: list[str] = []
    remaining: list[str] = []
    for f in files:
        p = Path(f)
        try:
            if p.is_dir() and not p.is_symlink():
                p.rmdir()
            else:
                p.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove %s: %s", p, exc)
            remaining.append(f)
            continue
        removed.append(f)
    prune_empty_dirs((Path(f).parent for f in removed), prefix)
    return removed, remaining


class RecipeRemover:
    """Runs the removal sub-machine for one recipe at a time."""

    def __init__(
        self,
        recipes_path: Path,
        prefix: Path,
        build_dir: Path,
        *,
        hosts: HostRegistry,
        store: RecipeStore,
    ) -> None:
        self.recipes_path = Path(recipes_path)
        self.prefix = Path(prefix)
        self.build_dir = Path(build_dir)
        self.hosts = hosts
        self.store = store

    def remove(
        self, path: Path, *, force: bool = False, graph: DependencyGraph | None = None
    ) -> RemovalOutcome:
        """Uninstall the package described by the recipe at *path*.

        Raises:
            UserError: The package is not installed.
            ReverseDependencyError: Installed packages depend on it and
                *force* is False.
            PhaseError: ``pre_remove`` failed (nothing was deleted), or a
                later hook failed (files are gone and state is cleared).
            RemovalError: Some files could not be deleted.
        """
        path = Path(path)
        outcome_transitions = [RemovalPhase.CHECK_REVERSE_DEPS]
        recipe = self.store.load(path)
        if not recipe.installed:
            raise UserError(f"{recipe.name} is not installed")

        graph = graph if graph is not None else DependencyGraph.scan(self.recipes_path)
        dependents = graph.installed_dependents(recipe.name)
        if dependents and not force:
            raise ReverseDependencyError(recipe.name, dependents)
        if dependents:
            logger.warning(
                "Removing %s although %s depend on it", recipe.name, ", ".join(dependents)
            )

        runner = self._runner(recipe.name, recipe.version, path)

        if runner is not None and runner.has("pre_remove"):
            outcome_transitions.append(RemovalPhase.PRE_REMOVE)
            runner.run("pre_remove")

        outcome_transitions.append(RemovalPhase.DELETING_FILES)
        removed, remaining = delete_files(recipe.installed_files, self.prefix)
        if remaining:
            self.store.set_installed_files(path, remaining)
            outcome_transitions.append(RemovalPhase.FAILED)
            raise RemovalError(recipe.name, remaining)

        try:
            if runner is not None and runner.has("post_remove"):
                outcome_transitions.append(RemovalPhase.POST_REMOVE)
                runner.run("post_remove")
            if runner is not None and runner.has("remove"):
                outcome_transitions.append(RemovalPhase.CUSTOM_REMOVE)
                runner.run("remove")
        finally:
            # The files are gone whatever the hooks did.
            self.store.clear_installed(path)

        outcome_transitions.append(RemovalPhase.COMMITTED)
        logger.debug("Removed %s (%d files)", recipe.name, len(removed))
        return RemovalOutcome(
            name=recipe.name,
            path=path,
            removed_files=removed,
            forced_past=dependents,
            transitions=outcome_transitions,
        )

    def _runner(self, name: str, version: str, path: Path) -> PhaseRunner | None:
        # Removal must work even when the recipe's functions are gone.
        if self.hosts.find(path) is None:
            logger.debug("No script host for %s; removing without hooks", path)
            return None
        ctx = ExecutionContext(
            name=name,
            version=version,
            recipe_path=path,
            recipes_path=self.recipes_path,
            prefix=self.prefix,
            build_dir=self.build_dir,
        )
        return PhaseRunner(self.hosts.load(path), ctx)
