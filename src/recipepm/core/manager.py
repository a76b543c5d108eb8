"""Package manager facade: the operations behind each CLI command.

``PackageManager`` ties the pieces together for one configuration:
resolution over a fresh scan of the search path, ``--locked`` checks
against ``recipe.lock``, and the lifecycle executor for every recipe in
plan order. A failure aborts the remaining plan; recipes already
committed earlier in the plan stay installed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from recipepm.config import Settings
from recipepm.core.dependency.constraints import is_upgrade_needed
from recipepm.core.dependency.graph import DependencyGraph, RecipeNode
from recipepm.core.dependency.resolver import DependencyResolver, ResolutionPlan
from recipepm.core.lifecycle.executor import InstallOutcome, LifecycleExecutor
from recipepm.core.lifecycle.removal import RemovalOutcome
from recipepm.core.lockfile import (
    Lockfile,
    LockMismatch,
    check_locked,
    generate,
    lockfile_path,
    verify,
)
from recipepm.core.staging import AtomicInstaller
from recipepm.core.state.models import Recipe
from recipepm.core.state.store import RecipeStore
from recipepm.exceptions import RecipePMError, UserError
from recipepm.script.registry import HostRegistry

logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    """Per-package results of an operation run over several packages.

    Attributes:
        succeeded: Package name to the operation's result.
        failed: Package name to the error that stopped it.
    """

    succeeded: dict[str, object] = field(default_factory=dict)
    failed: dict[str, RecipePMError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class PackageManager:
    """High-level operations over one recipe directory and prefix.

    Args:
        settings: Resolved configuration.
        hosts: Script hosts; defaults to the built-in registry.
        staging_parent: Override where staging roots are created.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        hosts: HostRegistry | None = None,
        staging_parent: Path | None = None,
    ) -> None:
        self.settings = settings
        self.store = RecipeStore(lock_timeout=settings.lock_timeout)
        self.executor = LifecycleExecutor(
            settings.recipes_path,
            settings.prefix,
            settings.build_dir,
            hosts=hosts,
            store=self.store,
            installer=AtomicInstaller(),
            keep_build_dir=settings.keep_build_dir,
            staging_parent=staging_parent,
        )

    @property
    def recipes_path(self) -> Path:
        return self.settings.recipes_path

    def graph(self) -> DependencyGraph:
        """Scan the search path. Every call sees the recipes currently on disk."""
        return DependencyGraph.scan(self.recipes_path)

    # -- Install ------------------------------------------------------------

    def plan(self, name: str, *, no_deps: bool = False, locked: bool = False) -> ResolutionPlan:
        """Resolve *name* and, with *locked*, check the plan against the lockfile.

        Raises:
            RecipeNotFoundError, DependencyError: From resolution.
            UserError: *locked* was requested but there is no lockfile.
            LockMismatchError: A planned package drifted from the lockfile.
        """
        graph = self.graph()
        plan = DependencyResolver(graph).resolve(name, no_deps=no_deps)
        if locked:
            check_locked(self.recipes_path, self.read_lockfile(), plan.names, graph)
        return plan

    def install(
        self,
        name: str,
        *,
        no_deps: bool = False,
        locked: bool = False,
        force: bool = False,
    ) -> list[InstallOutcome]:
        """Install *name* and its dependencies in plan order.

        Dependencies are recorded with ``installed_as_dep = true`` and the
        target with ``false``. *force* reinstalls the target only.
        """
        plan = self.plan(name, no_deps=no_deps, locked=locked)
        outcomes = []
        for entry in plan:
            logger.debug("Plan step %s (dependency=%s)", entry.name, entry.is_dependency)
            outcomes.append(
                self.executor.install(
                    entry.path,
                    as_dep=entry.is_dependency,
                    force=force and not entry.is_dependency,
                )
            )
        return outcomes

    # -- Remove -------------------------------------------------------------

    def remove(self, name: str, *, force: bool = False) -> RemovalOutcome:
        graph = self.graph()
        node = graph.require(name)
        return self.executor.remove(node.path, force=force, graph=graph)

    def orphans(self) -> list[RecipeNode]:
        return self.graph().orphans()

    def autoremove(self, *, dry_run: bool = False) -> list[str]:
        """Remove orphans until none are left.

        Removing an orphan can orphan its own dependencies, so the scan
        repeats. A dry run simulates the same rounds on one graph.

        Returns:
            Removed (or, for a dry run, removable) package names in order.
        """
        removed: list[str] = []
        graph = self.graph()
        while True:
            orphans = graph.orphans()
            if not orphans:
                return removed
            for node in orphans:
                if not dry_run:
                    self.executor.remove(node.path, graph=graph)
                removed.append(node.name)
                node.installed = False
                node.installed_as_dep = False
            if not dry_run:
                graph = self.graph()

    # -- Update / upgrade ---------------------------------------------------

    def _selected(self, name: str | None, graph: DependencyGraph) -> list[RecipeNode]:
        if name is not None:
            return [graph.require(name)]
        return graph.nodes

    def update(self, name: str | None = None) -> BatchReport:
        """Run ``check_update`` for one package or every package.

        ``succeeded`` maps each package that has a newer version to it.
        """
        report = BatchReport()
        for node in self._selected(name, self.graph()):
            try:
                new_version = self.executor.update(node.path)
            except RecipePMError as exc:
                if name is not None:
                    raise
                logger.warning("update of %s failed: %s", node.name, exc)
                report.failed[node.name] = exc
                continue
            if new_version is not None:
                report.succeeded[node.name] = new_version
        return report

    def upgrade(self, name: str | None = None) -> BatchReport:
        """Reinstall one package, or every installed package, that is outdated.

        Raises:
            UserError: *name* is given but not installed.
        """
        report = BatchReport()
        graph = self.graph()
        if name is not None:
            node = graph.require(name)
            if not node.installed:
                raise UserError(f"{name} is not installed")
            outcome = self.executor.upgrade(node.path)
            if outcome is not None:
                report.succeeded[name] = outcome
            return report

        for node in graph.nodes:
            if not node.installed or not is_upgrade_needed(node.installed_version, node.version):
                continue
            try:
                outcome = self.executor.upgrade(node.path)
            except RecipePMError as exc:
                logger.warning("upgrade of %s failed: %s", node.name, exc)
                report.failed[node.name] = exc
                continue
            if outcome is not None:
                report.succeeded[node.name] = outcome
        return report

    # -- Queries ------------------------------------------------------------

    def list_packages(self, *, installed_only: bool = False) -> list[RecipeNode]:
        nodes = self.graph().nodes
        if installed_only:
            nodes = [n for n in nodes if n.installed]
        return nodes

    def search(self, term: str) -> list[RecipeNode]:
        """Recipes whose name or description contains *term*, case-insensitively."""
        needle = term.lower()
        return [
            n for n in self.graph().nodes
            if needle in n.name.lower() or needle in n.description.lower()
        ]

    def info(self, name: str) -> Recipe:
        return self.store.load(self.graph().require(name).path)

    # -- Lockfile -----------------------------------------------------------

    @property
    def lockfile_path(self) -> Path:
        return lockfile_path(self.recipes_path)

    def read_lockfile(self) -> Lockfile:
        """Read ``recipe.lock``.

        Raises:
            UserError: There is no lockfile yet.
            LockfileError: It is malformed.
        """
        path = self.lockfile_path
        if not path.is_file():
            raise UserError(f"No lockfile at {path}; run 'recipe lock update' first")
        return Lockfile.read(path)

    def lock_update(self) -> tuple[Lockfile, dict]:
        """Regenerate and write the lockfile.

        Returns:
            The new lockfile and its diff against the previous one (empty
            sections when there was none).
        """
        new = generate(self.recipes_path)
        old = Lockfile.read(self.lockfile_path) if self.lockfile_path.is_file() else Lockfile()
        new.write(self.lockfile_path, self.settings.lock_timeout)
        return new, old.diff(new)

    def lock_verify(self) -> list[LockMismatch]:
        return verify(self.recipes_path, self.read_lockfile())
