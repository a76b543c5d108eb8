"""Recipe-writing helpers shared by the test modules."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from recipepm.core.state.parser import render_value


def recipe_text(
    name: str,
    version: str = "1.0.0",
    deps: Sequence[str] = (),
    *,
    build_deps: Sequence[str] | None = None,
    description: str = "",
    installed: bool = False,
    installed_as_dep: bool | None = None,
    installed_version: str | None = None,
    installed_files: Sequence[str] = (),
    body: str = "",
) -> str:
    """Render a recipe file with a definition and state block."""
    lines = [
        f"// {name} recipe",
        f"let name = {render_value(name)};",
        f"let version = {render_value(version)};",
        f"let description = {render_value(description or f'The {name} package')};",
        f"let deps = {render_value(list(deps))};",
    ]
    if build_deps is not None:
        lines.append(f"let build_deps = {render_value(list(build_deps))};")
    lines.append("")
    lines.append(f"let installed = {render_value(installed)};")
    if installed:
        lines.append(f"let installed_version = {render_value(installed_version or version)};")
        lines.append(f"let installed_files = {render_value(list(installed_files))};")
    if installed_as_dep is not None:
        lines.append(f"let installed_as_dep = {render_value(installed_as_dep)};")
    text = "\n".join(lines) + "\n"
    if body:
        text += "\n" + body
    return text


def write_recipe(directory: Path, name: str, *args: Any, **kwargs: Any) -> Path:
    """Write ``<directory>/<name>.rhai`` and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.rhai"
    path.write_text(recipe_text(name, *args, **kwargs), encoding="utf-8")
    return path


def file_installer(*relpaths: str, content: str = "data\n") -> Callable[[dict], dict]:
    """An ``install`` phase that writes *relpaths* under ``PREFIX``."""

    def install(ctx: dict) -> dict:
        root = Path(ctx["PREFIX"])
        for rel in relpaths:
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return ctx

    return install


def noop(ctx: dict) -> dict:
    return ctx


def failing(message: str = "boom") -> Callable[[dict], Any]:
    """A phase function that raises ``RuntimeError(message)``."""

    def phase(ctx: dict) -> Any:
        raise RuntimeError(message)

    return phase
