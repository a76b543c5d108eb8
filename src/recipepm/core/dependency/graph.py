"""Dependency graph over a recipe directory, and its derived views.

The graph is built fresh for every resolution by scanning the search path,
so it always reflects the recipes currently on disk. Recipe counts are
small, and reading declared variables is cheap and side-effect free.

Derived views (reverse dependencies, orphans, ``why``, ``impact``) are
computed over the full graph on demand and never persisted.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from pathlib import Path

from recipepm.core.dependency.constraints import DependencySpec
from recipepm.core.state.models import Recipe
from recipepm.core.state.store import load_recipe
from recipepm.exceptions import (
    MissingDependencyError,
    ParseError,
    RecipeError,
    RecipeNotFoundError,
)

logger = logging.getLogger(__name__)

RECIPE_SUFFIX = ".rhai"


def parse_specs(raw: list[str], variable: str, path: Path | None = None) -> list[DependencySpec]:
    """Parse dependency strings, reporting the recipe variable on failure.

    Raises:
        ParseError: If an entry is malformed.
    """
    specs = []
    for spec in raw:
        try:
            specs.append(DependencySpec.parse(spec))
        except ValueError as exc:
            raise ParseError(str(exc), variable=variable, path=path) from exc
    return specs


# ---------------------------------------------------------------------------
# RecipeNode: a vertex of the graph
# ---------------------------------------------------------------------------


@dataclass
class RecipeNode:
    """A recipe in the graph, with its declared dependency edges."""

    name: str
    path: Path
    version: str = "0.0.0"
    dependencies: list[DependencySpec] = field(default_factory=list)
    build_dependencies: list[DependencySpec] = field(default_factory=list)
    description: str = ""
    installed: bool = False
    installed_as_dep: bool = False
    installed_version: str | None = None

    @classmethod
    def from_recipe(cls, recipe: Recipe) -> RecipeNode:
        """Build a node, parsing the recipe's dependency strings.

        Raises:
            ParseError: If a ``deps`` or ``build_deps`` entry is malformed.
        """
        return cls(
            name=recipe.name,
            path=recipe.path,
            version=recipe.version,
            dependencies=parse_specs(recipe.deps, "deps", recipe.path),
            build_dependencies=parse_specs(recipe.build_deps, "build_deps", recipe.path),
            description=recipe.description,
            installed=recipe.installed,
            installed_as_dep=recipe.installed_as_dep,
            installed_version=recipe.installed_version,
        )

    @property
    def dependency_names(self) -> list[str]:
        """Dependency names in declaration order, without duplicates."""
        seen: dict[str, None] = {}
        for dep in self.dependencies:
            seen.setdefault(dep.name, None)
        return list(seen)


@dataclass
class TreeNode:
    """One node of a rendered dependency tree.

    Attributes:
        spec: The edge that led here (None for the root).
        repeated: True when this package was already expanded earlier in
            the tree; its children are not repeated.
        cycle: True when this edge closes a dependency cycle.
        missing: True when no recipe exists for this name.
    """

    name: str
    version: str | None
    installed: bool
    spec: DependencySpec | None = None
    children: list[TreeNode] = field(default_factory=list)
    repeated: bool = False
    cycle: bool = False
    missing: bool = False


# ---------------------------------------------------------------------------
# DependencyGraph
# ---------------------------------------------------------------------------


class DependencyGraph:
    """Mapping of recipe name to recipe node, plus recipes that failed to load.

    Unreadable recipes do not stop a scan. They are kept in ``broken``
    under their file stem so that resolving through one re-raises its
    original ``RecipeError`` while unrelated queries keep working.

    This class is NOT thread-safe.
    """

    def __init__(self) -> None:
        self._nodes: dict[str, RecipeNode] = {}
        self._broken: dict[str, RecipeError] = {}

    # -- Construction -------------------------------------------------------

    @classmethod
    def scan(cls, search_path: Path) -> DependencyGraph:
        """Build a graph from every ``*.rhai`` recipe directly in *search_path*.

        A missing directory yields an empty graph. When two recipes declare
        the same name, the first in path order wins and the other is
        skipped with a warning.
        """
        graph = cls()
        search_path = Path(search_path)
        if not search_path.is_dir():
            logger.debug("Recipe directory %s does not exist", search_path)
            return graph

        for path in sorted(search_path.glob(f"*{RECIPE_SUFFIX}")):
            if not path.is_file():
                continue
            try:
                node = RecipeNode.from_recipe(load_recipe(path))
            except RecipeError as exc:
                logger.warning("Skipping unreadable recipe %s: %s", path, exc)
                graph._broken.setdefault(path.stem, exc)
                continue
            existing = graph._nodes.get(node.name)
            if existing is not None:
                logger.warning(
                    "Recipe name %r declared by both %s and %s; using the first",
                    node.name,
                    existing.path,
                    path,
                )
                continue
            graph.add_node(node)
        return graph

    def add_node(self, node: RecipeNode) -> None:
        """Add or replace a node."""
        self._nodes[node.name] = node
        self._broken.pop(node.name, None)

    def add_package(
        self,
        name: str,
        deps: list[str] | None = None,
        path: Path | None = None,
        *,
        version: str = "0.0.0",
        installed: bool = False,
        installed_as_dep: bool = False,
    ) -> RecipeNode:
        """Add a node from plain dependency strings.

        Raises:
            ValueError: If a dependency string is malformed.
        """
        node = RecipeNode(
            name=name,
            path=Path(path) if path is not None else Path(f"{name}{RECIPE_SUFFIX}"),
            version=version,
            dependencies=[DependencySpec.parse(d) for d in deps or []],
            installed=installed,
            installed_as_dep=installed_as_dep,
        )
        self.add_node(node)
        return node

    # -- Lookup -------------------------------------------------------------

    @property
    def names(self) -> list[str]:
        return sorted(self._nodes)

    @property
    def nodes(self) -> list[RecipeNode]:
        return [self._nodes[n] for n in self.names]

    @property
    def broken(self) -> dict[str, RecipeError]:
        return dict(self._broken)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, name: str) -> RecipeNode | None:
        return self._nodes.get(name)

    def require(self, name: str, requested_by: str | None = None) -> RecipeNode:
        """Return the node for *name* or raise the error that explains its absence.

        Raises:
            RecipeError: The recipe exists but could not be read.
            RecipeNotFoundError: *name* is a top-level request with no recipe.
            MissingDependencyError: *name* was required by *requested_by*.
        """
        node = self._nodes.get(name)
        if node is not None:
            return node
        if name in self._broken:
            raise self._broken[name]
        if requested_by is None:
            raise RecipeNotFoundError(name)
        raise MissingDependencyError(name, requested_by)

    def direct_dependencies(self, name: str) -> list[DependencySpec]:
        """Declared dependency edges of *name*, in declaration order."""
        return list(self.require(name).dependencies)

    # -- Reverse views ------------------------------------------------------

    def _reverse_adjacency(self) -> dict[str, set[str]]:
        reverse: dict[str, set[str]] = defaultdict(set)
        for node in self._nodes.values():
            for dep_name in node.dependency_names:
                reverse[dep_name].add(node.name)
        return reverse

    def reverse_dependencies(self, name: str) -> list[str]:
        """Every recipe that lists *name* in its ``deps``, sorted."""
        return sorted(self._reverse_adjacency().get(name, set()))

    def installed_dependents(self, name: str) -> list[str]:
        """Installed recipes that list *name* in their ``deps``, sorted."""
        return [
            dependent
            for dependent in self.reverse_dependencies(name)
            if self._nodes[dependent].installed
        ]

    def orphans(self) -> list[RecipeNode]:
        """Installed-as-dependency recipes that no installed recipe needs."""
        reverse = self._reverse_adjacency()
        result = []
        for node in self.nodes:
            if not (node.installed and node.installed_as_dep):
                continue
            if any(self._nodes[d].installed for d in reverse.get(node.name, ())):
                continue
            result.append(node)
        return result

    def impact(self, name: str, installed_only: bool = False) -> list[str]:
        """Transitive reverse dependencies of *name*.

        Returns names ordered by distance from *name* (direct dependents
        first), then alphabetically.
        """
        self.require(name)
        reverse = self._reverse_adjacency()
        seen = {name}
        order: list[str] = []
        frontier = [name]
        while frontier:
            layer: set[str] = set()
            for current in frontier:
                layer.update(d for d in reverse.get(current, ()) if d not in seen)
            seen.update(layer)
            next_frontier = sorted(layer)
            order.extend(next_frontier)
            frontier = next_frontier
        if installed_only:
            order = [n for n in order if self._nodes[n].installed]
        return order

    def why(self, name: str) -> list[list[str]]:
        """Explain why *name* is installed.

        For every explicitly installed recipe that transitively requires
        *name* through installed recipes, return the shortest chain from
        that recipe down to *name*. An explicitly installed *name* yields
        the single chain ``[name]``.
        """
        target = self.require(name)
        chains: list[list[str]] = []
        if target.installed and not target.installed_as_dep:
            chains.append([name])
        for root in self.nodes:
            if root.name == name or not root.installed or root.installed_as_dep:
                continue
            chain = self._shortest_chain(root.name, name)
            if chain is not None:
                chains.append(chain)
        return chains

    def _shortest_chain(self, start: str, goal: str) -> list[str] | None:
        parents: dict[str, str | None] = {start: None}
        queue: deque[str] = deque([start])
        while queue:
            current = queue.popleft()
            node = self._nodes.get(current)
            if node is None:
                continue
            for dep_name in node.dependency_names:
                if dep_name in parents:
                    continue
                dep = self._nodes.get(dep_name)
                if dep_name != goal and (dep is None or not dep.installed):
                    continue
                parents[dep_name] = current
                if dep_name == goal:
                    chain = [goal]
                    cursor = parents[goal]
                    while cursor is not None:
                        chain.append(cursor)
                        cursor = parents[cursor]
                    chain.reverse()
                    return chain
                queue.append(dep_name)
        return None

    # -- Tree view ----------------------------------------------------------

    def dependency_tree(self, name: str) -> TreeNode:
        """Expand the dependency tree of *name* for display.

        Packages already expanded elsewhere in the tree are marked
        ``repeated``; an edge back into the current path is marked
        ``cycle``; an edge to an unknown package is marked ``missing``.
        """
        root = self.require(name)
        expanded: set[str] = set()

        def _expand(node: RecipeNode, spec: DependencySpec | None, path: list[str]) -> TreeNode:
            tree = TreeNode(
                name=node.name,
                version=node.version,
                installed=node.installed,
                spec=spec,
            )
            expanded.add(node.name)
            for dep in node.dependencies:
                child = self._nodes.get(dep.name)
                if child is None:
                    tree.children.append(
                        TreeNode(name=dep.name, version=None, installed=False, spec=dep, missing=True)
                    )
                elif dep.name in path:
                    tree.children.append(
                        TreeNode(
                            name=dep.name,
                            version=child.version,
                            installed=child.installed,
                            spec=dep,
                            cycle=True,
                        )
                    )
                elif dep.name in expanded:
                    tree.children.append(
                        TreeNode(
                            name=dep.name,
                            version=child.version,
                            installed=child.installed,
                            spec=dep,
                            repeated=True,
                        )
                    )
                else:
                    tree.children.append(_expand(child, dep, path + [dep.name]))
            return tree

        return _expand(root, None, [root.name])

