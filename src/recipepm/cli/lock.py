"""``recipe lock``: manage recipe.lock for reproducible installs.

Subcommands:
    update  Snapshot every recipe's declared version into recipe.lock.
    show    Print the current lockfile.
    verify  Compare recipe.lock with the recipes on disk.

Exit Codes:
    0: Success; for ``verify``, every locked version matches.
    2: No lockfile (``show``/``verify``).
    4: ``verify`` found mismatches.
"""

from __future__ import annotations

import click

from recipepm.cli.output import (
    console,
    print_lock_diff,
    print_lockfile,
    print_mismatches,
)
from recipepm.core.manager import PackageManager
from recipepm.exceptions import LockMismatchError


def _manager(ctx: click.Context) -> PackageManager:
    return ctx.obj["manager"]


@click.group("lock")
def lock_command() -> None:
    """Manage recipe.lock, the version snapshot used by ``install --locked``."""


@lock_command.command("update")
@click.pass_context
def lock_update(ctx: click.Context) -> None:
    """Regenerate recipe.lock from the recipes on disk."""
    manager = _manager(ctx)
    lockfile, diff = manager.lock_update()
    print_lock_diff(diff)
    console.print(f"Locked {lockfile.package_count} packages in {manager.lockfile_path}")


@lock_command.command("show")
@click.pass_context
def lock_show(ctx: click.Context) -> None:
    """Print the locked versions."""
    print_lockfile(_manager(ctx).read_lockfile())


@lock_command.command("verify")
@click.pass_context
def lock_verify(ctx: click.Context) -> None:
    """Check that every locked package still has the locked version."""
    mismatches = _manager(ctx).lock_verify()
    if mismatches:
        print_mismatches(mismatches)
        raise LockMismatchError(mismatches)
    console.print("[green]recipe.lock matches the recipes.[/green]")
