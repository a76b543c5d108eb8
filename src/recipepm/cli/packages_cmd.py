"""Commands that change what is installed.

``install``, ``remove``, ``update``, ``upgrade``, ``orphans`` and
``autoremove``. Failures propagate as recipepm errors and are turned into
exit codes by the group.
"""

from __future__ import annotations

import sys

import click

from recipepm.cli.output import (
    console,
    print_install_outcomes,
    print_names,
    print_plan,
)
from recipepm.core.manager import BatchReport, PackageManager


def _manager(ctx: click.Context) -> PackageManager:
    return ctx.obj["manager"]


def _finish(report: BatchReport) -> None:
    for name, exc in report.failed.items():
        console.print(f"[red]{name}: {exc}[/red]")
    if not report.ok:
        sys.exit(1)


@click.command("install")
@click.argument("package")
@click.option("--no-deps", is_flag=True, help="Install only PACKAGE, skipping resolution.")
@click.option("--dry-run", is_flag=True, help="Print the install plan and stop.")
@click.option("--locked", is_flag=True, help="Fail if planned versions differ from recipe.lock.")
@click.option("--force", is_flag=True, help="Reinstall PACKAGE even if it is installed.")
@click.pass_context
def install_command(
    ctx: click.Context, package: str, no_deps: bool, dry_run: bool, locked: bool, force: bool
) -> None:
    """Install PACKAGE and its dependencies.

    Dependencies are installed first, in resolution order, and are
    recorded as installed-as-dependency so that ``autoremove`` can clean
    them up later.
    """
    manager = _manager(ctx)
    if dry_run:
        print_plan(manager.plan(package, no_deps=no_deps, locked=locked))
        return
    print_install_outcomes(
        manager.install(package, no_deps=no_deps, locked=locked, force=force)
    )


@click.command("remove")
@click.argument("package")
@click.option("--force", is_flag=True, help="Remove even if installed packages depend on it.")
@click.pass_context
def remove_command(ctx: click.Context, package: str, force: bool) -> None:
    """Uninstall PACKAGE and delete the files it installed."""
    outcome = _manager(ctx).remove(package, force=force)
    if outcome.forced_past:
        console.print(
            f"[yellow]Warning: {', '.join(outcome.forced_past)} still depend on {package}[/yellow]"
        )
    console.print(f"Removed {outcome.name} ({len(outcome.removed_files)} files)")


@click.command("update")
@click.argument("package", required=False)
@click.pass_context
def update_command(ctx: click.Context, package: str | None) -> None:
    """Check recipes for newer upstream versions.

    Recipes that define ``check_update`` may bump their own ``version``.
    Run ``recipe upgrade`` afterwards to install the new versions.
    """
    report = _manager(ctx).update(package)
    if not report.succeeded:
        console.print("[dim]Everything is up to date.[/dim]")
    for name, version in report.succeeded.items():
        console.print(f"{name} -> {version}")
    _finish(report)


@click.command("upgrade")
@click.argument("package", required=False)
@click.pass_context
def upgrade_command(ctx: click.Context, package: str | None) -> None:
    """Reinstall installed packages whose recipe version is newer."""
    report = _manager(ctx).upgrade(package)
    if not report.succeeded:
        console.print("[dim]Nothing to upgrade.[/dim]")
    for name, outcome in report.succeeded.items():
        console.print(f"[green]Upgraded[/green] {name} to {outcome.version}")  # type: ignore[attr-defined]
    _finish(report)


@click.command("orphans")
@click.pass_context
def orphans_command(ctx: click.Context) -> None:
    """List dependencies no installed package needs any more."""
    print_names([n.name for n in _manager(ctx).orphans()], "No orphaned packages.")


@click.command("autoremove")
@click.option("--dry-run", is_flag=True, help="List what would be removed.")
@click.pass_context
def autoremove_command(ctx: click.Context, dry_run: bool) -> None:
    """Remove orphaned dependencies, repeating until none are left."""
    removed = _manager(ctx).autoremove(dry_run=dry_run)
    if not removed:
        console.print("[dim]No orphaned packages.[/dim]")
        return
    verb = "Would remove" if dry_run else "Removed"
    for name in removed:
        console.print(f"{verb} {name}")
