"""Runtime settings: defaults, YAML config file, environment, CLI flags.

Later sources win::

    defaults < config file < environment < command-line flags

The config file is ``$RECIPE_CONFIG`` when set, else
``~/.config/recipe/config.yaml``. A missing file is not an error. Example::

    recipes_path: ~/recipes
    prefix: ~/.local
    build_dir: /var/tmp/recipe-build
    lock_timeout: 10
    keep_build_dir: false
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from recipepm.exceptions import UserError

logger = logging.getLogger(__name__)

CONFIG_ENV = "RECIPE_CONFIG"
DEFAULT_CONFIG_FILE = Path("~/.config/recipe/config.yaml")

# Environment variable -> settings field.
ENV_VARS: dict[str, str] = {
    "RECIPE_PATH": "recipes_path",
    "RECIPE_PREFIX": "prefix",
    "RECIPE_BUILD_DIR": "build_dir",
}

_PATH_FIELDS = ("recipes_path", "prefix", "build_dir")


def _default_build_dir() -> Path:
    return Path(tempfile.gettempdir()) / "recipe-build"


@dataclass
class Settings:
    """Resolved configuration for one ``recipe`` invocation.

    Attributes:
        recipes_path: Directory holding ``*.rhai`` recipes and ``recipe.lock``.
        prefix: Install destination.
        build_dir: Parent of per-run build directories.
        lock_timeout: Seconds to wait for a contended advisory lock.
        keep_build_dir: Leave build directories behind for debugging.
    """

    recipes_path: Path
    prefix: Path
    build_dir: Path
    lock_timeout: float | None = None
    keep_build_dir: bool = False

    @classmethod
    def defaults(cls) -> Settings:
        return cls(
            recipes_path=Path("~/.local/share/recipe/recipes").expanduser(),
            prefix=Path("~/.local").expanduser(),
            build_dir=_default_build_dir(),
        )

    @classmethod
    def load(
        cls,
        config_file: Path | None = None,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> Settings:
        """Resolve settings from every source.

        Args:
            config_file: Explicit config file; defaults to ``$RECIPE_CONFIG``
                or ``~/.config/recipe/config.yaml``.
            environ: Environment mapping; defaults to ``os.environ``.
            **overrides: Command-line values. ``None`` means "not given".

        Raises:
            UserError: The config file is unreadable or has bad values.
        """
        environ = os.environ if environ is None else environ
        settings = cls.defaults()

        path = config_file
        if path is None:
            path = Path(environ[CONFIG_ENV]) if environ.get(CONFIG_ENV) else DEFAULT_CONFIG_FILE
        settings._apply(read_config_file(Path(path).expanduser()), f"config file {path}")

        from_env = {field: environ[var] for var, field in ENV_VARS.items() if environ.get(var)}
        settings._apply(from_env, "environment")

        settings._apply({k: v for k, v in overrides.items() if v is not None}, "command line")
        return settings

    def _apply(self, values: Mapping[str, Any], source: str) -> None:
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key not in known:
                raise UserError(f"Unknown setting {key!r} in {source}")
            setattr(self, key, _coerce(key, value, source))


def _coerce(key: str, value: Any, source: str) -> Any:
    if key in _PATH_FIELDS:
        if not isinstance(value, (str, os.PathLike)) or not str(value):
            raise UserError(f"{key} must be a path in {source}")
        return Path(value).expanduser()
    if key == "lock_timeout":
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise UserError(f"lock_timeout must be a non-negative number in {source}")
        return float(value)
    if key == "keep_build_dir":
        if not isinstance(value, bool):
            raise UserError(f"keep_build_dir must be true or false in {source}")
        return value
    return value


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a YAML config file; a missing file yields ``{}``.

    Raises:
        UserError: Invalid YAML, or a top level that is not a mapping.
    """
    if not path.is_file():
        logger.debug("No config file at %s", path)
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise UserError(f"Cannot read config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise UserError(f"Config file {path} must contain a mapping")
    logger.debug("Loaded config file %s", path)
    return data
