"""Read-only commands: listing, searching and dependency queries."""

from __future__ import annotations

from pathlib import Path

import click

from recipepm.cli.output import (
    console,
    print_chains,
    print_names,
    print_packages,
    print_recipe_info,
    print_tree,
)
from recipepm.core.manager import PackageManager
from recipepm.helpers.acquire import sha256_file


def _manager(ctx: click.Context) -> PackageManager:
    return ctx.obj["manager"]


@click.command("list")
@click.option("--installed", is_flag=True, help="Only installed packages.")
@click.pass_context
def list_command(ctx: click.Context, installed: bool) -> None:
    """List recipes in the search path."""
    print_packages(_manager(ctx).list_packages(installed_only=installed))


@click.command("search")
@click.argument("term")
@click.pass_context
def search_command(ctx: click.Context, term: str) -> None:
    """Find recipes whose name or description contains TERM."""
    print_packages(_manager(ctx).search(term), title=f"Recipes matching {term!r}")


@click.command("info")
@click.argument("package")
@click.pass_context
def info_command(ctx: click.Context, package: str) -> None:
    """Show the details and install state of PACKAGE."""
    manager = _manager(ctx)
    recipe = manager.info(package)
    print_recipe_info(recipe, manager.graph().reverse_dependencies(package))


@click.command("deps")
@click.argument("package")
@click.pass_context
def deps_command(ctx: click.Context, package: str) -> None:
    """List the direct dependencies of PACKAGE."""
    graph = _manager(ctx).graph()
    specs = graph.direct_dependencies(package)
    if not specs:
        console.print(f"[dim]{package} has no dependencies.[/dim]")
        return
    for spec in specs:
        node = graph.get(spec.name)
        found = node.version if node is not None else "missing"
        console.print(f"{spec} [dim]({found})[/dim]")


@click.command("tree")
@click.argument("package")
@click.pass_context
def tree_command(ctx: click.Context, package: str) -> None:
    """Show the full dependency tree of PACKAGE."""
    print_tree(_manager(ctx).graph().dependency_tree(package))


@click.command("why")
@click.argument("package")
@click.pass_context
def why_command(ctx: click.Context, package: str) -> None:
    """Explain which explicitly installed packages need PACKAGE."""
    print_chains(package, _manager(ctx).graph().why(package))


@click.command("impact")
@click.argument("package")
@click.option("--installed", is_flag=True, help="Only installed dependents.")
@click.pass_context
def impact_command(ctx: click.Context, package: str, installed: bool) -> None:
    """List every package that depends on PACKAGE, directly or not."""
    names = _manager(ctx).graph().impact(package, installed_only=installed)
    print_names(names, f"Nothing depends on {package}.")


@click.command("hash")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def hash_command(file: Path) -> None:
    """Print the SHA-256 of FILE, for use with verify_sha256()."""
    click.echo(f"{sha256_file(file)}  {file}")
