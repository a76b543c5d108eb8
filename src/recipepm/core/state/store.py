"""Recipe State Store: the recipe file is the package database.

Reads a recipe's declared variables without executing it, and rewrites
selected variables in place. Everything outside the rewritten value text
(other statements, comments, indentation, function bodies) is kept
byte-for-byte. Writes are atomic and every read-modify-write span runs
under the recipe's advisory lock.

Typical use::

    store = RecipeStore()
    with store.transaction(path) as txn:
        if not txn.values["installed"]:
            txn.set("installed", True)
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from recipepm.core.state.locking import advisory_lock, atomic_write_text
from recipepm.core.state.models import (
    DEFINITION_VARS,
    REQUIRED_VARS,
    STATE_VARS,
    Recipe,
)
from recipepm.core.state.parser import (
    Binding,
    LiteralError,
    Value,
    render_value,
    scan_bindings,
)
from recipepm.exceptions import ParseError

logger = logging.getLogger(__name__)

NAME_RE = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")


# ---------------------------------------------------------------------------
# Type checks for well-known variables
# ---------------------------------------------------------------------------


def _is_str(v: Any) -> bool:
    return isinstance(v, str)


def _is_bool(v: Any) -> bool:
    return isinstance(v, bool)


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _is_str_list(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(x, str) for x in v)


def _is_opt_str(v: Any) -> bool:
    return v is None or isinstance(v, str)


_WELL_KNOWN: dict[str, tuple[Any, str]] = {
    "name": (_is_str, "a string"),
    "version": (_is_str, "a string"),
    "description": (_is_str, "a string"),
    "deps": (_is_str_list, "an array of strings"),
    "build_deps": (_is_str_list, "an array of strings"),
    "installed": (_is_bool, "a boolean"),
    "installed_version": (_is_opt_str, "a string or ()"),
    "installed_at": (_is_int, "an integer"),
    "installed_files": (_is_str_list, "an array of strings"),
    "installed_as_dep": (_is_bool, "a boolean"),
    "install_incomplete": (_is_bool, "a boolean"),
}


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError("recipe is not valid UTF-8", path=path) from exc


def _effective_bindings(text: str, path: Path | None) -> dict[str, Binding]:
    try:
        bindings = scan_bindings(text)
    except LiteralError as exc:
        raise ParseError(str(exc), path=path) from exc
    # Later bindings shadow earlier ones, as they do when the script runs.
    return {b.name: b for b in bindings}


def parse_declared(
    text: str, path: Path | None = None, *, require: bool = True
) -> dict[str, Value]:
    """Extract declared variables from recipe source text.

    Args:
        text: The recipe source.
        path: Used in error messages only.
        require: Enforce the required variables and the name pattern.

    Returns:
        Mapping of variable name to value for every literal top-level
        binding. Non-literal bindings of unknown variables are omitted.

    Raises:
        ParseError: Naming the offending variable.
    """
    values: dict[str, Value] = {}
    for name, binding in _effective_bindings(text, path).items():
        check = _WELL_KNOWN.get(name)
        if not binding.is_literal:
            if check is not None:
                raise ParseError(
                    f"{name!r} must be a literal value ({binding.error})",
                    variable=name,
                    path=path,
                )
            continue
        if check is not None and not check[0](binding.value):
            raise ParseError(
                f"{name!r} must be {check[1]}, got {render_value(binding.value)}",
                variable=name,
                path=path,
            )
        values[name] = binding.value

    if require:
        for name in REQUIRED_VARS:
            if name not in values:
                raise ParseError(
                    f"missing required variable {name!r}", variable=name, path=path
                )
        if not NAME_RE.match(values["name"]):  # type: ignore[arg-type]
            raise ParseError(
                f"invalid package name {values['name']!r} "
                "(lowercase letters, digits and single dashes)",
                variable="name",
                path=path,
            )
    return values


def read_declared(path: Path) -> dict[str, Value]:
    """Read a recipe file's declared variables without executing it.

    Raises:
        ParseError: If ``name``, ``version`` or ``installed`` is missing or
            malformed, or a well-known variable has the wrong type.
        FileNotFoundError: If *path* does not exist.
    """
    path = Path(path)
    return parse_declared(_read_text(path), path)


def recipe_from_values(path: Path, values: Mapping[str, Value]) -> Recipe:
    """Build the typed ``Recipe`` view from a declared-variable mapping."""
    return Recipe(
        path=Path(path),
        name=values["name"],  # type: ignore[arg-type]
        version=values["version"],  # type: ignore[arg-type]
        description=values.get("description") or "",  # type: ignore[arg-type]
        deps=list(values.get("deps") or []),  # type: ignore[arg-type]
        build_deps=list(values.get("build_deps") or []),  # type: ignore[arg-type]
        installed=bool(values["installed"]),
        installed_version=values.get("installed_version"),  # type: ignore[arg-type]
        installed_at=values.get("installed_at") or 0,  # type: ignore[arg-type]
        installed_files=list(values.get("installed_files") or []),  # type: ignore[arg-type]
        installed_as_dep=bool(values.get("installed_as_dep", False)),
        install_incomplete=bool(values.get("install_incomplete", False)),
        variables=dict(values),
    )


def load_recipe(path: Path) -> Recipe:
    """Read and type a recipe file.

    Raises:
        ParseError: If the recipe's declared variables are unusable.
    """
    path = Path(path)
    return recipe_from_values(path, read_declared(path))


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def _line_start(text: str, pos: int) -> int:
    return text.rfind("\n", 0, pos) + 1


def _insertion_point(text: str, bindings: Mapping[str, Binding]) -> tuple[int, str, bool]:
    """Where new bindings go: after the last state variable, else after the
    last definition variable, else at the top.

    Returns:
        ``(offset, indent, needs_leading_newline)``.
    """
    for group in (STATE_VARS, DEFINITION_VARS):
        present = [bindings[n] for n in group if n in bindings]
        if present:
            anchor = max(present, key=lambda b: b.stmt_end)
            line_start = _line_start(text, anchor.stmt_start)
            prefix = text[line_start:anchor.stmt_start]
            indent = prefix if prefix.strip() == "" else ""
            newline = text.find("\n", anchor.stmt_end)
            if newline == -1:
                return len(text), indent, True
            return newline + 1, indent, False
    return 0, "", False


def apply_updates(text: str, updates: Mapping[str, Value], path: Path | None = None) -> str:
    """Return *text* with the listed bindings rewritten.

    Only the value text of each existing binding changes. Bindings that do
    not exist yet are inserted as new ``let`` lines.

    Raises:
        ParseError: If the text cannot be scanned.
        TypeError: If a value is outside the supported value set.
    """
    if not updates:
        return text
    bindings = _effective_bindings(text, path)
    edits: list[tuple[int, int, str]] = []
    missing: list[str] = []
    for name, value in updates.items():
        rendered = render_value(value)
        binding = bindings.get(name)
        if binding is None:
            missing.append(f"let {name} = {rendered};")
        else:
            edits.append((binding.value_start, binding.value_end, rendered))

    if missing:
        offset, indent, leading_newline = _insertion_point(text, bindings)
        block = "\n".join(indent + line for line in missing)
        if leading_newline:
            block = "\n" + block
        else:
            block = block + "\n"
        edits.append((offset, offset, block))

    for start, end, replacement in sorted(edits, key=lambda e: (e[0], e[1]), reverse=True):
        text = text[:start] + replacement + text[end:]
    return text


def write_declared(path: Path, updates: Mapping[str, Value]) -> None:
    """Rewrite the listed variables of a recipe file atomically.

    The caller is responsible for holding the recipe lock when this is
    part of a read-modify-write sequence (see ``RecipeStore.transaction``).
    """
    path = Path(path)
    text = _read_text(path)
    new_text = apply_updates(text, updates, path)
    if new_text != text:
        atomic_write_text(path, new_text)
        logger.debug("Updated %s in %s", ", ".join(updates), path)


# ---------------------------------------------------------------------------
# Transactions and state helpers
# ---------------------------------------------------------------------------


class Transaction:
    """A locked read-modify-write span over one recipe file.

    ``values`` is the declared state read when the lock was taken. Updates
    staged with ``set``/``update`` are written in one atomic replacement
    when the ``with`` block exits cleanly, and discarded if it raises.
    """

    def __init__(self, path: Path, values: dict[str, Value]) -> None:
        self.path = path
        self.values = values
        self.pending: dict[str, Value] = {}

    def set(self, name: str, value: Value) -> None:
        self.pending[name] = value
        self.values[name] = value

    def update(self, updates: Mapping[str, Value]) -> None:
        for name, value in updates.items():
            self.set(name, value)

    @property
    def recipe(self) -> Recipe:
        return recipe_from_values(self.path, self.values)


class RecipeStore:
    """Locked access to recipe state.

    Args:
        lock_timeout: Seconds to wait for a contended recipe lock.
    """

    def __init__(self, lock_timeout: float | None = None) -> None:
        self.lock_timeout = lock_timeout

    @contextmanager
    def transaction(self, path: Path, *, require: bool = True) -> Iterator[Transaction]:
        """Lock, read, let the caller stage updates, write, release."""
        path = Path(path)
        with advisory_lock(path, self.lock_timeout):
            values = parse_declared(_read_text(path), path, require=require)
            txn = Transaction(path, values)
            yield txn
            if txn.pending:
                write_declared(path, txn.pending)

    def read(self, path: Path) -> dict[str, Value]:
        return read_declared(path)

    def load(self, path: Path) -> Recipe:
        return load_recipe(path)

    def write(self, path: Path, updates: Mapping[str, Value]) -> None:
        """Lock and rewrite the listed variables."""
        with advisory_lock(Path(path), self.lock_timeout):
            write_declared(path, updates)

    def mark_installed(
        self,
        path: Path,
        *,
        version: str,
        files: Sequence[str],
        as_dep: bool,
        incomplete: bool = False,
        installed_at: int | None = None,
    ) -> None:
        """Record a successful (or partially committed) install."""
        with self.transaction(path) as txn:
            txn.update(
                {
                    "installed": True,
                    "installed_version": version,
                    "installed_at": int(time.time()) if installed_at is None else installed_at,
                    "installed_files": [str(f) for f in files],
                    "installed_as_dep": as_dep,
                }
            )
            if incomplete or "install_incomplete" in txn.values:
                txn.set("install_incomplete", incomplete)

    def clear_installed(self, path: Path) -> None:
        """Reset the state block to "not installed"."""
        with self.transaction(path) as txn:
            txn.update(
                {
                    "installed": False,
                    "installed_version": None,
                    "installed_at": 0,
                    "installed_files": [],
                }
            )
            if "installed_as_dep" in txn.values:
                txn.set("installed_as_dep", False)
            if "install_incomplete" in txn.values:
                txn.set("install_incomplete", False)

    def set_installed_files(self, path: Path, files: Sequence[str]) -> None:
        with self.transaction(path) as txn:
            txn.set("installed_files", [str(f) for f in files])

    def set_version(self, path: Path, version: str) -> None:
        with self.transaction(path) as txn:
            txn.set("version", version)
