"""Run recipe phases from a companion Python module.

A recipe ``foo.rhai`` keeps its declared variables (the state block) and
``foo.py`` next to it defines the phase functions::

    # foo.py
    from recipepm import helpers

    def acquire(ctx):
        helpers.download(f"https://example.org/foo-{ctx['VERSION']}.tar.gz")

    def install(ctx):
        helpers.install_bin("foo")

The module is imported under a private name so recipes never collide with
each other or with installed packages.
"""

from __future__ import annotations

import hashlib
import importlib.util
import logging
from pathlib import Path

from recipepm.exceptions import RecipeError, RecipePMError
from recipepm.script.base import FunctionTableHandle, ScriptHandle, ScriptHost

logger = logging.getLogger(__name__)

MODULE_SUFFIX = ".py"


def companion_module(path: Path) -> Path:
    return Path(path).with_suffix(MODULE_SUFFIX)


class ModuleHost(ScriptHost):
    """Loads ``<recipe>.py`` beside the recipe file."""

    name = "module"

    def can_load(self, path: Path) -> bool:
        return companion_module(path).is_file()

    def load(self, path: Path) -> ScriptHandle:
        module_path = companion_module(path)
        digest = hashlib.sha256(str(module_path.resolve()).encode("utf-8")).hexdigest()[:12]
        module_name = f"_recipepm_recipe_{module_path.stem.replace('-', '_')}_{digest}"
        spec = importlib.util.spec_from_file_location(module_name, module_path)
        if spec is None or spec.loader is None:
            raise RecipeError(f"cannot import {module_path}")
        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except RecipePMError:
            raise
        except Exception as exc:
            raise RecipeError(f"{module_path}: {type(exc).__name__}: {exc}") from exc
        logger.debug("Loaded recipe module %s as %s", module_path, module_name)
        functions = {
            attr: value
            for attr, value in vars(module).items()
            if not attr.startswith("_")
            and callable(value)
            and getattr(value, "__module__", None) == module_name
        }
        return FunctionTableHandle(path, functions)
