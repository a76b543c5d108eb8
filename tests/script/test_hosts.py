"""Tests for script hosts and the host registry."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from recipepm.core.lifecycle import LifecycleExecutor
from recipepm.core.state import load_recipe
from recipepm.exceptions import RecipeError, ScriptFailure
from recipepm.script import (
    FunctionTableHandle,
    HostRegistry,
    InProcessHost,
    ModuleHost,
    accepts_arity,
    default_registry,
)
from tests.helpers import noop, write_recipe

MODULE = '''\
from os.path import join

from recipepm import helpers

GREETING = "hi"


def acquire(ctx):
    helpers.copy_local("hello.sh")


def install(ctx):
    helpers.install_bin("hello.sh", "hello")
    return ctx


def _private(ctx):
    return ctx
'''


def _write_module(recipes_dir: Path, name: str, source: str) -> Path:
    path = recipes_dir / f"{name}.py"
    path.write_text(textwrap.dedent(source))
    return path


class TestAcceptsArity:
    def test_arity(self) -> None:
        assert accepts_arity(lambda ctx: None, 1)
        assert not accepts_arity(lambda ctx: None, 0)
        assert accepts_arity(lambda: None, 0)
        assert accepts_arity(lambda *args: None, 1)
        assert accepts_arity(lambda ctx=None: None, 0)


class TestFunctionTableHandle:
    """Tests for the callable-table handle."""

    def test_has_function(self, tmp_path: Path) -> None:
        handle = FunctionTableHandle(tmp_path / "x.rhai", {"build": lambda ctx: ctx, "n": 3})
        assert handle.has_function("build")
        assert handle.has_function("build", 1)
        assert not handle.has_function("build", 0)
        assert not handle.has_function("n")
        assert not handle.has_function("install")

    def test_call_wraps_errors(self, tmp_path: Path) -> None:
        def build(ctx: dict) -> None:
            raise ZeroDivisionError("division by zero")

        handle = FunctionTableHandle(tmp_path / "x.rhai", {"build": build})
        with pytest.raises(ScriptFailure) as info:
            handle.call("build", {})
        assert info.value.function == "build"
        assert info.value.message == "ZeroDivisionError: division by zero"

    def test_call_undefined(self, tmp_path: Path) -> None:
        with pytest.raises(ScriptFailure):
            FunctionTableHandle(tmp_path / "x.rhai", {}).call("install")

    def test_bindings_read_declared_variables(self, recipes_dir: Path) -> None:
        path = write_recipe(recipes_dir, "demo", "2.0.0")
        bindings = FunctionTableHandle(path, {}).bindings()
        assert bindings["name"] == "demo"
        assert bindings["version"] == "2.0.0"


class TestInProcessHost:
    """Tests for ``InProcessHost``."""

    def test_matches_by_file_stem(self, recipes_dir: Path) -> None:
        host = InProcessHost()
        host.register("demo", install=noop)
        path = write_recipe(recipes_dir, "demo")
        assert host.can_load(path)
        assert host.load(path).has_function("install", 1)

    def test_matches_by_declared_name(self, recipes_dir: Path) -> None:
        host = InProcessHost()
        host.register("demo", install=noop)
        path = recipes_dir / "renamed.rhai"
        path.write_text(write_recipe(recipes_dir, "demo").read_text())
        assert host.can_load(path)

    def test_register_extends(self, recipes_dir: Path) -> None:
        host = InProcessHost()
        host.register("demo", acquire=noop)
        host.register("demo", install=noop)
        handle = host.load(write_recipe(recipes_dir, "demo"))
        assert handle.has_function("acquire") and handle.has_function("install")

    def test_unregistered(self, recipes_dir: Path) -> None:
        host = InProcessHost()
        path = write_recipe(recipes_dir, "demo")
        assert not host.can_load(path)
        with pytest.raises(RecipeError):
            host.load(path)
        host.register("demo", install=noop)
        host.unregister("demo")
        assert not host.can_load(path)


class TestModuleHost:
    """Tests for ``ModuleHost``."""

    def test_requires_companion_module(self, recipes_dir: Path) -> None:
        path = write_recipe(recipes_dir, "hello")
        assert not ModuleHost().can_load(path)
        _write_module(recipes_dir, "hello", MODULE)
        assert ModuleHost().can_load(path)

    def test_exposes_public_module_functions(self, recipes_dir: Path) -> None:
        path = write_recipe(recipes_dir, "hello")
        _write_module(recipes_dir, "hello", MODULE)
        handle = ModuleHost().load(path)
        assert handle.function_names == ["acquire", "install"]

    def test_import_failure(self, recipes_dir: Path) -> None:
        path = write_recipe(recipes_dir, "hello")
        _write_module(recipes_dir, "hello", "raise RuntimeError('bad recipe')\n")
        with pytest.raises(RecipeError, match="bad recipe"):
            ModuleHost().load(path)

    def test_syntax_error_is_recipe_error(self, recipes_dir: Path) -> None:
        """A companion module that does not parse makes the recipe unusable."""
        path = write_recipe(recipes_dir, "hello")
        _write_module(recipes_dir, "hello", "def acquire(ctx)\n    pass\n")
        with pytest.raises(RecipeError, match="SyntaxError") as info:
            ModuleHost().load(path)
        assert not isinstance(info.value, ScriptFailure)

    def test_end_to_end_install(self, recipes_dir: Path, prefix: Path, build_dir: Path) -> None:
        path = write_recipe(recipes_dir, "hello")
        _write_module(recipes_dir, "hello", MODULE)
        (recipes_dir / "hello.sh").write_text("#!/bin/sh\necho hello\n")
        executor = LifecycleExecutor(recipes_dir, prefix, build_dir)

        executor.install(path)

        binary = prefix / "bin" / "hello"
        assert binary.read_text() == "#!/bin/sh\necho hello\n"
        assert binary.stat().st_mode & 0o777 == 0o755
        assert load_recipe(path).installed_files == [str(binary)]


class TestHostRegistry:
    """Tests for ``HostRegistry``."""

    def test_first_match_wins(self, recipes_dir: Path) -> None:
        path = write_recipe(recipes_dir, "hello")
        _write_module(recipes_dir, "hello", MODULE)
        inprocess = InProcessHost()
        inprocess.register("hello", acquire=noop, install=noop)
        registry = default_registry()
        assert isinstance(registry.find(path), ModuleHost)
        registry.register(inprocess, first=True)
        assert registry.find(path) is inprocess

    def test_no_host(self, recipes_dir: Path) -> None:
        path = write_recipe(recipes_dir, "hello")
        with pytest.raises(RecipeError, match="registered hosts: module"):
            default_registry().load(path)
        assert HostRegistry().find(path) is None
