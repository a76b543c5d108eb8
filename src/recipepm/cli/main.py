"""recipe CLI: a local-first package manager driven by recipes.

Entry point for the ``recipe`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    install     Resolve and install a package with its dependencies.
    remove      Uninstall a package.
    update      Ask recipes for newer upstream versions.
    upgrade     Reinstall packages whose recipe version moved ahead.
    list        Show every recipe and its install status.
    search      Find recipes by name or description.
    info        Show one recipe's details.
    deps        Direct dependencies of a package.
    tree        Full dependency tree of a package.
    why         Why an installed package is needed.
    impact      Packages affected by changing or removing a package.
    orphans     Dependencies nothing installed needs any more.
    autoremove  Remove orphans.
    hash        SHA-256 of a file, for pinning downloads.
    lock        Manage recipe.lock (update, show, verify).

Usage::

    recipe install ripgrep
    recipe install ripgrep --locked
    recipe remove zlib --force
    recipe lock update

Exit Codes:
    0 success, 1 general failure, 2 usage error, 3 recipe not found,
    4 dependency error, 5 network failure, 6 permission denied.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import click
from rich.logging import RichHandler

from recipepm import __version__
from recipepm.cli.lock import lock_command
from recipepm.cli.output import err_console, print_error
from recipepm.cli.packages_cmd import (
    autoremove_command,
    install_command,
    orphans_command,
    remove_command,
    update_command,
    upgrade_command,
)
from recipepm.cli.query_cmd import (
    deps_command,
    hash_command,
    impact_command,
    info_command,
    list_command,
    search_command,
    tree_command,
    why_command,
)
from recipepm.config import Settings
from recipepm.core.manager import PackageManager
from recipepm.exceptions import PermissionDenied, RecipePMError


def _configure_logging(verbose: int) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


class RecipeGroup(click.Group):
    """Click group that maps recipepm errors to exit codes in one place."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except RecipePMError as exc:
            print_error(str(exc))
            sys.exit(exc.exit_code)
        except PermissionError as exc:
            print_error(str(exc))
            sys.exit(PermissionDenied.exit_code)


_PATH = click.Path(path_type=Path)


@click.group(cls=RecipeGroup)
@click.version_option(version=__version__)
@click.option("--recipes-path", type=_PATH, default=None, help="Recipe directory.")
@click.option("--prefix", type=_PATH, default=None, help="Install destination.")
@click.option("--build-dir", type=_PATH, default=None, help="Build area.")
@click.option(
    "--config",
    "config_file",
    type=_PATH,
    default=None,
    help="Config file (default: $RECIPE_CONFIG or ~/.config/recipe/config.yaml).",
)
@click.option("--keep-build-dir", is_flag=True, help="Leave build directories in place.")
@click.option("-v", "--verbose", count=True, help="Enable debug logging on stderr.")
@click.pass_context
def cli(
    ctx: click.Context,
    recipes_path: Path | None,
    prefix: Path | None,
    build_dir: Path | None,
    config_file: Path | None,
    keep_build_dir: bool,
    verbose: int,
) -> None:
    """recipe: install software from procedural recipes.

    Recipes live in one directory as ``<name>.rhai`` files. Each recipe
    describes how to acquire, build and install one package and records its
    own install state.
    """
    _configure_logging(verbose)
    obj = ctx.ensure_object(dict)
    settings = Settings.load(
        config_file=config_file,
        recipes_path=recipes_path,
        prefix=prefix,
        build_dir=build_dir,
        keep_build_dir=keep_build_dir or None,
    )
    obj["settings"] = settings
    obj["manager"] = PackageManager(
        settings,
        hosts=obj.get("hosts"),
        staging_parent=obj.get("staging_parent"),
    )


# Register all subcommands
cli.add_command(install_command)
cli.add_command(remove_command)
cli.add_command(update_command)
cli.add_command(upgrade_command)
cli.add_command(list_command)
cli.add_command(search_command)
cli.add_command(info_command)
cli.add_command(deps_command)
cli.add_command(tree_command)
cli.add_command(why_command)
cli.add_command(impact_command)
cli.add_command(orphans_command)
cli.add_command(autoremove_command)
cli.add_command(hash_command)
cli.add_command(lock_command)
