"""Lifecycle Executor: the per-recipe install state machine.

``PENDING -> CHECKING_INSTALLED -> ACQUIRING -> BUILDING? -> PRE_INSTALL? ->
INSTALLING -> POST_INSTALL? -> COMMITTING -> DONE``

``FAILED`` is reachable from every non-terminal state and guarantees that
the staging directory is removed, the destination tree is untouched and the
recipe state is not written. The single exception is a commit that fails
partway (``CommitError``): files already moved stay in place and the state
records exactly those files with ``install_incomplete = true``, which makes
the next install request run again. A commit that moved nothing leaves the
state as it was.

Phase transitions are taken unconditionally; only hook invocation is
conditional on the script defining the function. The recipe lock is held
only for the state write after commit, never across phases.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from recipepm.core.dependency.constraints import is_upgrade_needed
from recipepm.core.dependency.graph import DependencyGraph, parse_specs
from recipepm.core.lifecycle.build_deps import BuildDepsProvisioner
from recipepm.core.lifecycle.context import ExecutionContext
from recipepm.core.lifecycle.removal import RecipeRemover, RemovalOutcome, delete_files
from recipepm.core.lifecycle.runner import PhaseRunner
from recipepm.core.lifecycle.states import Phase
from recipepm.core.staging import AtomicInstaller
from recipepm.core.state.models import Recipe
from recipepm.core.state.store import RecipeStore
from recipepm.exceptions import CommitError, RecipeError, UserError
from recipepm.script.base import ScriptHandle
from recipepm.script.registry import HostRegistry, default_registry

logger = logging.getLogger(__name__)

REQUIRED_FUNCTIONS = ("acquire", "install")


@dataclass
class InstallOutcome:
    """Result of one executor run.

    Attributes:
        skipped: True when the install check was satisfied and no phase ran.
        installed_files: Destination paths recorded in the state block.
        transitions: Every state visited, in order.
    """

    name: str
    path: Path
    version: str
    skipped: bool = False
    installed_files: list[str] = field(default_factory=list)
    transitions: list[Phase] = field(default_factory=list)


class LifecycleExecutor:
    """Drives recipes through their phases.

    Args:
        recipes_path: The recipe search path.
        prefix: The real install destination.
        build_dir: Parent of the per-run ephemeral build directories.
        hosts: Script hosts; defaults to ``default_registry()``.
        store: Recipe state store.
        installer: Atomic installer used for staging and commit.
        keep_build_dir: Leave per-run build directories in place.
        staging_parent: Override where staging roots are created.
    """

    def __init__(
        self,
        recipes_path: Path,
        prefix: Path,
        build_dir: Path,
        *,
        hosts: HostRegistry | None = None,
        store: RecipeStore | None = None,
        installer: AtomicInstaller | None = None,
        keep_build_dir: bool = False,
        staging_parent: Path | None = None,
    ) -> None:
        self.recipes_path = Path(recipes_path)
        self.prefix = Path(prefix)
        self.build_dir = Path(build_dir)
        self.hosts = hosts if hosts is not None else default_registry()
        self.store = store if store is not None else RecipeStore()
        self.installer = installer if installer is not None else AtomicInstaller()
        self.keep_build_dir = keep_build_dir
        self.staging_parent = staging_parent
        self.build_deps = BuildDepsProvisioner(self.recipes_path, self.hosts)

    # -- Install ------------------------------------------------------------

    def install(self, path: Path, *, as_dep: bool = False, force: bool = False) -> InstallOutcome:
        """Run the install state machine for the recipe at *path*.

        Args:
            path: The recipe file.
            as_dep: Installed only because another package needs it.
            force: Skip the install check and reinstall.

        Raises:
            RecipeError: Unreadable recipe or missing required function.
            PhaseError: A phase, hook or install check failed.
            CommitError: Moving staged files into place failed partway.
        """
        path = Path(path)
        transitions = [Phase.PENDING]
        recipe = self.store.load(path)
        handle = self.hosts.load(path)
        self._require_functions(recipe, handle)

        build_root = self._make_build_root(recipe.name)
        ctx = ExecutionContext(
            name=recipe.name,
            version=recipe.version,
            recipe_path=path,
            recipes_path=self.recipes_path,
            prefix=self.prefix,
            build_dir=build_root,
        )
        runner = PhaseRunner(handle, ctx)
        staging: Path | None = None
        try:
            transitions.append(Phase.CHECKING_INSTALLED)
            if not force and self._is_installed(recipe, runner):
                if recipe.installed and recipe.installed_as_dep and not as_dep:
                    # Explicitly requested now; autoremove must leave it alone.
                    self.store.write(path, {"installed_as_dep": False})
                transitions.append(Phase.DONE)
                logger.info("%s is already installed", recipe.name)
                return InstallOutcome(
                    name=recipe.name,
                    path=path,
                    version=recipe.version,
                    skipped=True,
                    installed_files=list(recipe.installed_files),
                    transitions=transitions,
                )

            transitions.append(Phase.ACQUIRING)
            if runner.require_check("is_acquired"):
                logger.debug("%s: acquire already done", recipe.name)
            else:
                runner.run("acquire")

            if runner.has("build"):
                transitions.append(Phase.BUILDING)
                self._build(recipe, runner, build_root)

            staging = self.installer.stage(self.prefix, self.staging_parent)
            ctx.staging_root = staging

            if runner.has("pre_install"):
                transitions.append(Phase.PRE_INSTALL)
                runner.run("pre_install")

            transitions.append(Phase.INSTALLING)
            runner.run("install")

            if runner.has("post_install"):
                transitions.append(Phase.POST_INSTALL)
                runner.run("post_install")

            transitions.append(Phase.COMMITTING)
            effective_as_dep = as_dep and (recipe.installed_as_dep if recipe.installed else True)
            committed_staging, staging = staging, None
            ctx.staging_root = None
            try:
                committed = self.installer.commit(committed_staging, self.prefix)
            except CommitError as exc:
                if exc.committed:
                    self.store.mark_installed(
                        path,
                        version=recipe.version,
                        files=[str(p) for p in exc.committed],
                        as_dep=effective_as_dep,
                        incomplete=True,
                    )
                raise
            self._check_reported(ctx, committed_staging, committed)
            files = [str(p) for p in committed]
            if recipe.installed:
                self._remove_stale(recipe, files)
            self.store.mark_installed(
                path, version=recipe.version, files=files, as_dep=effective_as_dep
            )
            transitions.append(Phase.DONE)
            logger.info("Installed %s %s (%d files)", recipe.name, recipe.version, len(files))
            return InstallOutcome(
                name=recipe.name,
                path=path,
                version=recipe.version,
                installed_files=files,
                transitions=transitions,
            )
        except BaseException:
            transitions.append(Phase.FAILED)
            raise
        finally:
            if staging is not None:
                self.installer.discard(staging)
            self._cleanup_build_root(build_root)

    def _require_functions(self, recipe: Recipe, handle: ScriptHandle) -> None:
        missing = [
            name
            for name in REQUIRED_FUNCTIONS
            if not (handle.has_function(name, 1) or handle.has_function(name, 0))
        ]
        if missing:
            raise RecipeError(
                f"{recipe.name}: missing required function(s): {', '.join(missing)}"
            )

    def _is_installed(self, recipe: Recipe, runner: PhaseRunner) -> bool:
        """Custom ``is_installed`` if declared, else the ``installed`` flag.

        A partially committed install is never satisfied, so a retry
        completes it.
        """
        if recipe.install_incomplete:
            logger.warning("%s was only partially installed; reinstalling", recipe.name)
            return False
        if not runner.has("is_installed"):
            return recipe.installed
        if runner.require_check("is_installed"):
            return True
        if recipe.installed:
            logger.warning(
                "%s is recorded as installed but is_installed() disagrees; reinstalling",
                recipe.name,
            )
        return False

    def _build(self, recipe: Recipe, runner: PhaseRunner, build_root: Path) -> None:
        if runner.require_check("is_built"):
            logger.debug("%s: build already done", recipe.name)
            return
        specs = parse_specs(recipe.build_deps, "build_deps", recipe.path)
        if specs:
            tools = self.build_deps.provision(recipe.name, specs, build_root)
            runner.ctx.path_prepend = [tools / "bin"]
        try:
            runner.run("build")
        finally:
            runner.ctx.path_prepend = []

    def _check_reported(
        self, ctx: ExecutionContext, staging: Path, committed: list[Path]
    ) -> list[Path]:
        """Warn about helper-installed files that did not reach the prefix.

        Returns:
            Destination paths reported by install helpers but not committed
            (a later hook deleted or moved them).
        """
        landed = set(committed)
        missing = []
        for produced in ctx.produced_files:
            try:
                rel = produced.relative_to(staging)
            except ValueError:
                continue
            target = self.prefix / rel
            if target not in landed:
                logger.warning("%s: installed %s but it was not committed", ctx.name, rel)
                missing.append(target)
        return missing

    def _remove_stale(self, recipe: Recipe, files: list[str]) -> None:
        """Delete files of the previous install that the new one no longer ships."""
        current = set(files)
        stale = [f for f in recipe.installed_files if f not in current]
        if stale:
            _, remaining = delete_files(stale, self.prefix)
            for f in remaining:
                logger.warning("Could not remove stale file %s of %s", f, recipe.name)

    def _make_build_root(self, name: str) -> Path:
        self.build_dir.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=f"{name}-", dir=str(self.build_dir)))

    def _cleanup_build_root(self, build_root: Path) -> None:
        if self.keep_build_dir:
            logger.info("Keeping build directory %s", build_root)
            return
        shutil.rmtree(build_root, ignore_errors=True)

    # -- Update / upgrade ---------------------------------------------------

    def update(self, path: Path) -> str | None:
        """Ask the recipe for a newer upstream version.

        Calls the optional ``check_update`` function. A returned version
        string different from ``version`` is written back to the recipe.

        Returns:
            The new version, or None when there is nothing newer.

        Raises:
            PhaseError: If ``check_update`` fails.
        """
        path = Path(path)
        recipe = self.store.load(path)
        handle = self.hosts.load(path)
        ctx = ExecutionContext(
            name=recipe.name,
            version=recipe.version,
            recipe_path=path,
            recipes_path=self.recipes_path,
            prefix=self.prefix,
            build_dir=self.build_dir,
        )
        runner = PhaseRunner(handle, ctx)
        if not runner.has("check_update"):
            logger.debug("%s has no check_update()", recipe.name)
            return None
        result = runner.call_value("check_update")
        if not isinstance(result, str) or not result or result == recipe.version:
            return None
        self.store.set_version(path, result)
        logger.info("%s: %s -> %s", recipe.name, recipe.version, result)
        return result

    def upgrade(self, path: Path) -> InstallOutcome | None:
        """Reinstall when the installed version is older than the declared one.

        Returns:
            The install outcome, or None when no upgrade is needed.

        Raises:
            UserError: The package is not installed.
        """
        path = Path(path)
        recipe = self.store.load(path)
        if not recipe.installed:
            raise UserError(f"{recipe.name} is not installed")
        if not is_upgrade_needed(recipe.installed_version, recipe.version):
            return None
        logger.info(
            "Upgrading %s %s -> %s", recipe.name, recipe.installed_version, recipe.version
        )
        return self.install(path, as_dep=recipe.installed_as_dep, force=True)

    # -- Removal ------------------------------------------------------------

    def remove(
        self, path: Path, *, force: bool = False, graph: DependencyGraph | None = None
    ) -> RemovalOutcome:
        """Run the removal sub-machine (see ``RecipeRemover.remove``)."""
        remover = RecipeRemover(
            self.recipes_path,
            self.prefix,
            self.build_dir,
            hosts=self.hosts,
            store=self.store,
        )
        return remover.remove(path, force=force, graph=graph)
