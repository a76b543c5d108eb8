"""Rich output formatting helpers for the recipe CLI.

User-facing results go to stdout through ``console``; errors go to
stderr through ``err_console``. Logging is configured separately and never
used for results.
"""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from recipepm.core.dependency.graph import RecipeNode, TreeNode
from recipepm.core.dependency.resolver import ResolutionPlan
from recipepm.core.lifecycle.executor import InstallOutcome
from recipepm.core.lockfile import Lockfile, LockMismatch
from recipepm.core.state.models import Recipe

console = Console()
err_console = Console(stderr=True)


def print_error(message: str) -> None:
    err_console.print(Text(f"error: {message}", style="bold red"))


def _status(installed: bool, as_dep: bool = False) -> Text:
    if not installed:
        return Text("-", style="dim")
    if as_dep:
        return Text("installed (dep)", style="cyan")
    return Text("installed", style="bold green")


def print_plan(plan: ResolutionPlan) -> None:
    """Print an install plan without running it."""
    console.print(f"[bold]Install plan for {plan.target}[/bold] ({len(plan)} packages)")
    for i, entry in enumerate(plan, start=1):
        role = "dependency" if entry.is_dependency else "target"
        console.print(f"  {i}. {entry.name} [dim]({role})[/dim]")


def print_install_outcomes(outcomes: Sequence[InstallOutcome]) -> None:
    for outcome in outcomes:
        if outcome.skipped:
            console.print(f"[dim]{outcome.name} {outcome.version} already installed[/dim]")
        else:
            console.print(
                f"[green]Installed[/green] {outcome.name} {outcome.version} "
                f"({len(outcome.installed_files)} files)"
            )


def print_packages(nodes: Sequence[RecipeNode], title: str = "Recipes") -> None:
    """Print a table of recipes with their install status."""
    if not nodes:
        console.print("[dim]No recipes found.[/dim]")
        return
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Installed")
    table.add_column("Status")
    table.add_column("Description", style="dim")
    for node in nodes:
        table.add_row(
            node.name,
            node.version,
            node.installed_version or "-",
            _status(node.installed, node.installed_as_dep),
            node.description,
        )
    console.print(table)


def print_recipe_info(recipe: Recipe, dependents: Sequence[str]) -> None:
    lines = Text.assemble(
        ("Name: ", "bold"), (recipe.name, ""), "\n",
        ("Version: ", "bold"), (recipe.version, ""), "\n",
        ("Description: ", "bold"), (recipe.description or "-", ""), "\n",
        ("Dependencies: ", "bold"), (", ".join(recipe.deps) or "-", ""), "\n",
        ("Build dependencies: ", "bold"), (", ".join(recipe.build_deps) or "-", ""), "\n",
        ("Required by: ", "bold"), (", ".join(dependents) or "-", ""), "\n",
        ("Status: ", "bold"), _status(recipe.installed, recipe.installed_as_dep),
    )
    if recipe.installed:
        lines.append_text(
            Text.assemble(
                "\n",
                ("Installed version: ", "bold"), (recipe.installed_version or "-", ""), "\n",
                ("Installed files: ", "bold"), (str(len(recipe.installed_files)), ""),
            )
        )
        if recipe.install_incomplete:
            lines.append("\nThe last install did not finish committing.", style="yellow")
    console.print(Panel(lines, title=str(recipe.path)))


def _tree_label(node: TreeNode) -> Text:
    label = Text(node.name, style="bold" if node.spec is None else "")
    if node.spec is not None and node.spec.constraint is not None:
        label.append(f" ({node.spec.constraint})", style="dim")
    if node.version is not None:
        label.append(f" {node.version}")
    if node.missing:
        label.append(" [missing]", style="bold red")
    elif node.cycle:
        label.append(" [cycle]", style="bold red")
    elif node.repeated:
        label.append(" (*)", style="dim")
    if node.installed:
        label.append(" ✓", style="green")
    return label


def print_tree(root: TreeNode) -> None:
    tree = Tree(_tree_label(root))

    def _add(branch: Tree, node: TreeNode) -> None:
        for child in node.children:
            _add(branch.add(_tree_label(child)), child)

    _add(tree, root)
    console.print(tree)


def print_chains(name: str, chains: Sequence[Sequence[str]]) -> None:
    if not chains:
        console.print(f"{name} is not required by any explicitly installed package.")
        return
    for chain in chains:
        if len(chain) == 1:
            console.print(f"{name} was installed explicitly")
        else:
            console.print(" -> ".join(chain))


def print_names(names: Sequence[str], empty: str) -> None:
    if not names:
        console.print(f"[dim]{empty}[/dim]")
        return
    for n in names:
        console.print(n)


def print_lockfile(lockfile: Lockfile) -> None:
    meta = lockfile.metadata
    table = Table(
        title=f"recipe.lock ({meta.generated_at or 'unknown time'}, {meta.generated_by or '?'})",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Package", style="bold")
    table.add_column("Locked version")
    for name, version in lockfile.packages.items():
        table.add_row(name, version)
    console.print(table)


def print_lock_diff(diff: dict) -> None:
    for name in diff["added"]:
        console.print(f"[green]+ {name}[/green]")
    for name in diff["removed"]:
        console.print(f"[red]- {name}[/red]")
    for change in diff["changed"]:
        console.print(f"[yellow]~ {change['name']}: {change['old']} -> {change['new']}[/yellow]")


def print_mismatches(mismatches: Sequence[LockMismatch]) -> None:
    for m in mismatches:
        console.print(f"[red]{m}[/red]")
