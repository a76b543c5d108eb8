"""Dependency resolution: cycle-checked topological install plans.

Resolution is a depth-first traversal from the target with three-colour
marking. A node is appended to the plan only after all of its dependencies
(post-order), so every entry's dependencies appear earlier. Diamonds
collapse because a finished node is never visited twice.

Constraint validation runs only after the plan is fixed. This keeps "no
plan exists" (cycle, missing recipe) distinct from "a plan exists but a
version is wrong" (``ConstraintViolation``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from recipepm.core.dependency.graph import DependencyGraph
from recipepm.exceptions import ConstraintViolation, CycleError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ResolutionPlan: the output of resolution
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PlanEntry:
    """One recipe to process, in plan order."""

    name: str
    path: Path
    is_dependency: bool


@dataclass
class ResolutionPlan:
    """Ordered install plan; the target is always the last entry.

    Attributes:
        target: The package that was requested.
        entries: Dependencies first, target last.
    """

    target: str
    entries: list[PlanEntry] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [e.name for e in self.entries]

    @property
    def dependencies(self) -> list[PlanEntry]:
        return [e for e in self.entries if e.is_dependency]

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


# ---------------------------------------------------------------------------
# DependencyResolver
# ---------------------------------------------------------------------------

_WHITE, _GRAY, _BLACK = 0, 1, 2


class DependencyResolver:
    """Computes install plans over a ``DependencyGraph``.

    Args:
        graph: The graph to resolve against. Build it with
            ``DependencyGraph.scan`` for on-disk recipes.
    """

    def __init__(self, graph: DependencyGraph) -> None:
        self._graph = graph

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    def resolve(self, target: str, no_deps: bool = False) -> ResolutionPlan:
        """Compute the install plan for *target*.

        Args:
            target: The requested package name.
            no_deps: Skip resolution; the plan is only the target.

        Returns:
            A ``ResolutionPlan`` whose entries are in install order.

        Raises:
            RecipeNotFoundError: No recipe named *target*.
            RecipeError: A recipe on the traversal could not be read.
            CycleError: The traversal re-entered a node on the current path.
            MissingDependencyError: A dependency has no recipe.
            ConstraintViolation: A resolved version fails a declared constraint.
        """
        root = self._graph.require(target)
        if no_deps:
            return ResolutionPlan(target, [PlanEntry(root.name, root.path, False)])

        order = self.topological_order(target)
        plan = ResolutionPlan(
            target,
            [
                PlanEntry(
                    name=name,
                    path=self._graph.require(name).path,
                    is_dependency=name != target,
                )
                for name in order
            ],
        )
        self.validate_constraints(plan)
        logger.debug("Resolved %s: %s", target, " -> ".join(plan.names))
        return plan

    def topological_order(self, target: str) -> list[str]:
        """Post-order DFS from *target*; dependencies come first.

        Raises:
            CycleError: With the chain from *target* to the repeated node,
                the repeated node appearing at both ends of the loop.
            MissingDependencyError: A dependency has no recipe.
        """
        color: dict[str, int] = {}
        order: list[str] = []
        stack: list[str] = []

        def _visit(name: str, requested_by: str | None) -> None:
            state = color.get(name, _WHITE)
            if state == _BLACK:
                return
            if state == _GRAY:
                raise CycleError(stack + [name])
            node = self._graph.require(name, requested_by)
            color[name] = _GRAY
            stack.append(name)
            for dep_name in node.dependency_names:
                _visit(dep_name, name)
            stack.pop()
            color[name] = _BLACK
            order.append(name)

        _visit(target, None)
        return order

    def validate_constraints(self, plan: ResolutionPlan) -> None:
        """Check every constrained edge of the plan, in plan order.

        Non-semantic versions only satisfy ``=``/``==``/``!=`` by exact
        string comparison; an ordered operator against one is a violation.

        Raises:
            ConstraintViolation: For the first unmet edge.
        """
        for entry in plan.entries:
            node = self._graph.require(entry.name)
            for dep in node.dependencies:
                if dep.constraint is None or dep.constraint.is_any:
                    continue
                found = self._graph.require(dep.name, node.name).version
                try:
                    ok = dep.satisfied_by(found)
                except ValueError as exc:
                    raise ConstraintViolation(
                        node.name, dep.name, str(dep.constraint), found, reason=str(exc)
                    ) from exc
                if not ok:
                    raise ConstraintViolation(node.name, dep.name, str(dep.constraint), found)


def resolve(target: str, search_path: Path, no_deps: bool = False) -> ResolutionPlan:
    """Scan *search_path* and resolve *target* against it."""
    graph = DependencyGraph.scan(search_path)
    return DependencyResolver(graph).resolve(target, no_deps=no_deps)
