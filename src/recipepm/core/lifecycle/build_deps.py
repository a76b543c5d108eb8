"""Build-only dependencies installed into the build area.

A recipe's ``build_deps`` are tools needed while building, not at run
time. Before the build phase each one is resolved from the search path and
installed into ``<build_dir>/.tools``; that prefix's ``bin`` directory is
put in front of ``PATH`` for the build phase only. Build dependencies are
not staged and never touch recipe state.
"""

from __future__ import annotations

import logging
from pathlib import Path

from recipepm.core.dependency.constraints import DependencySpec
from recipepm.core.dependency.graph import DependencyGraph, RecipeNode
from recipepm.core.lifecycle.context import ExecutionContext
from recipepm.core.lifecycle.runner import PhaseRunner
from recipepm.exceptions import ConstraintViolation, CycleError
from recipepm.script.registry import HostRegistry

logger = logging.getLogger(__name__)

TOOLS_DIRNAME = ".tools"


class BuildDepsProvisioner:
    """Installs build dependencies for one recipe run.

    Args:
        recipes_path: The recipe search path.
        hosts: Script hosts used to run the tool recipes.
    """

    def __init__(self, recipes_path: Path, hosts: HostRegistry) -> None:
        self.recipes_path = Path(recipes_path)
        self.hosts = hosts

    def provision(
        self,
        owner: str,
        deps: list[DependencySpec],
        build_root: Path,
        graph: DependencyGraph | None = None,
    ) -> Path:
        """Install *deps* (and their own build deps) for *owner*.

        Returns:
            The tools prefix, ``<build_root>/.tools``.

        Raises:
            CycleError: Build dependencies form a cycle.
            MissingDependencyError: A build dependency has no recipe.
            ConstraintViolation: A build dependency's version is unacceptable.
            PhaseError: A tool recipe failed.
        """
        tools = Path(build_root) / TOOLS_DIRNAME
        tools.mkdir(parents=True, exist_ok=True)
        graph = graph if graph is not None else DependencyGraph.scan(self.recipes_path)
        done: set[str] = set()
        for spec in deps:
            self._install(graph, spec, tools, Path(build_root), [owner], done)
        return tools

    def _install(
        self,
        graph: DependencyGraph,
        spec: DependencySpec,
        tools: Path,
        build_root: Path,
        stack: list[str],
        done: set[str],
    ) -> None:
        if spec.name in stack:
            raise CycleError(stack + [spec.name])
        node = graph.require(spec.name, stack[-1])
        _check_constraint(stack[-1], spec, node)
        if spec.name in done:
            return

        stack.append(spec.name)
        for sub in node.build_dependencies:
            self._install(graph, sub, tools, build_root, stack, done)
        self._run_tool_recipe(node, tools, build_root)
        stack.pop()
        done.add(spec.name)

    def _run_tool_recipe(self, node: RecipeNode, tools: Path, build_root: Path) -> None:
        dep_build = build_root / ".deps" / node.name
        dep_build.mkdir(parents=True, exist_ok=True)
        ctx = ExecutionContext(
            name=node.name,
            version=node.version,
            recipe_path=node.path,
            recipes_path=self.recipes_path,
            prefix=tools,
            build_dir=dep_build,
            path_prepend=[tools / "bin"],
        )
        runner = PhaseRunner(self.hosts.load(node.path), ctx)
        if runner.require_check("is_installed"):
            logger.info("build-dep %s already satisfied", node.name)
            return
        logger.info("Installing build-dep %s into %s", node.name, tools)
        if not runner.require_check("is_acquired"):
            runner.run("acquire")
        if runner.has("build") and not runner.require_check("is_built"):
            runner.run("build")
        runner.run("install")


def _check_constraint(owner: str, spec: DependencySpec, node: RecipeNode) -> None:
    try:
        ok = spec.satisfied_by(node.version)
    except ValueError as exc:
        raise ConstraintViolation(
            owner, spec.name, str(spec.constraint), node.version, reason=str(exc)
        ) from exc
    if not ok:
        raise ConstraintViolation(owner, spec.name, str(spec.constraint), node.version)
