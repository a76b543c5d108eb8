"""Versions, version constraints and dependency specifications.

This module is the pure version model used by the resolver and the
lifecycle executor. It performs no I/O.

Recipe versions are free-form strings. When a version parses as a
semantic version (``1.2.3``, ``v1.2``, ``2.0.0-rc.1+build``) it is compared
with SemVer 2.0.0 precedence; otherwise it is an opaque string that only
supports exact comparison.

Constraint semantics follow Cargo conventions with support for exact match
(``=``, ``==``), not-equal (``!=``), range (``>=``, ``<=``, ``>``, ``<``),
caret (``^``), tilde (``~``), wildcard (``*``), and compound comma-separated
constraints. A bare version (``1.2``) is a caret requirement.

Dependency specifications, as written in a recipe's ``deps`` array::

    "core"                  any version
    "openssl >= 3.0.0"      minimum version
    "zlib >= 1.2, < 1.3"    range
    "readline ^8.0"         compatible (>=8.0.0, <9.0.0)
    "ncurses ~6.4"          patch-level (>=6.4.0, <6.5.0)
    "exact = 1.2.3"         exact version

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering


# ---------------------------------------------------------------------------
# Version: a parsed semantic version
# ---------------------------------------------------------------------------

_VERSION_RE = re.compile(
    r"^[vV]?(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?"
    r"(?:-(?P<pre>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?$"
)


def _pre_key(identifier: str) -> tuple[int, int, str]:
    # Numeric identifiers sort before alphanumeric ones (SemVer section 11).
    if identifier.isdigit():
        return (0, int(identifier), "")
    return (1, 0, identifier)


@total_ordering
@dataclass(frozen=True)
class Version:
    """A semantic version.

    Partial versions are padded with zeros (``1.2`` is ``1.2.0``); the
    number of components actually written is kept in ``given`` because
    partial constraint targets (``~1``, ``=1.2``) depend on it.

    Build metadata is kept for display but ignored for precedence.
    """

    major: int
    minor: int = 0
    patch: int = 0
    pre: tuple[str, ...] = ()
    build: str = ""
    given: int = field(default=3, compare=False)

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse a version string.

        Raises:
            ValueError: If *text* is not a semantic version.
        """
        m = _VERSION_RE.match(text.strip())
        if not m:
            raise ValueError(f"Invalid semantic version: {text!r}")
        given = 1 + (m.group("minor") is not None) + (m.group("patch") is not None)
        return cls(
            major=int(m.group("major")),
            minor=int(m.group("minor") or 0),
            patch=int(m.group("patch") or 0),
            pre=tuple(m.group("pre").split(".")) if m.group("pre") else (),
            build=m.group("build") or "",
            given=given,
        )

    @classmethod
    def try_parse(cls, text: str) -> Version | None:
        """Parse *text*, returning None for non-semantic version strings."""
        try:
            return cls.parse(text)
        except ValueError:
            return None

    @property
    def release(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def _key(self) -> tuple:
        # A release sorts after all of its pre-releases.
        if not self.pre:
            return (self.release, 1, ())
        return (self.release, 0, tuple(_pre_key(p) for p in self.pre))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            text += "-" + ".".join(self.pre)
        if self.build:
            text += "+" + self.build
        return text


def version_key(version: str) -> tuple:
    """Sort key for free-form version strings.

    Semantic versions sort by precedence and before opaque strings, which
    sort lexically among themselves.
    """
    parsed = Version.try_parse(version)
    if parsed is None:
        return (1, (), version)
    return (0, parsed._key(), version)


def is_upgrade_needed(installed: str | None, current: str | None) -> bool:
    """Decide whether an installed package should be reinstalled.

    Args:
        installed: The ``installed_version`` recorded in the recipe state.
        current: The recipe's declared ``version``.

    Returns:
        False when nothing is known about either side, True when only one
        side is known, otherwise True iff the installed version is older
        (or, for opaque strings, different).
    """
    if installed is None and current is None:
        return False
    if installed is None or current is None:
        return True
    old = Version.try_parse(installed)
    new = Version.try_parse(current)
    if old is not None and new is not None:
        return old < new
    return installed != current


# ---------------------------------------------------------------------------
# VersionConstraint: declarative version requirement
# ---------------------------------------------------------------------------

# Regex to tokenize a single constraint atom like ">=1.2.3" or "^ 8.0"
_CONSTRAINT_ATOM_RE = re.compile(
    r"^\s*(?P<op>==|=|!=|>=|<=|>|<|\^|~)?\s*(?P<ver>[^\s,]+)\s*$"
)

# Operators that need an ordering and therefore a semantic version.
ORDERED_OPERATORS = frozenset({">", ">=", "<", "<=", "^", "~"})


@dataclass(frozen=True)
class ConstraintAtom:
    """A single ``(operator, version)`` pair of a constraint."""

    op: str
    target: str

    def satisfied_by(self, version: str) -> bool:
        """Evaluate this atom against a version string.

        Raises:
            ValueError: If the operator is ordered and either side is not a
                semantic version.
        """
        found = Version.try_parse(version)
        target = Version.try_parse(self.target)

        if self.op in ("=", "=="):
            if found is None or target is None:
                return version.strip() == self.target
            return _matches_exact(found, target)
        if self.op == "!=":
            if found is None or target is None:
                return version.strip() != self.target
            return not _matches_exact(found, target)

        if found is None:
            raise ValueError(
                f"version {version!r} is not semantic; operator {self.op!r} needs an ordering"
            )
        if target is None:
            raise ValueError(f"constraint target {self.target!r} is not a semantic version")

        if self.op == "^":
            return target <= found < _caret_upper(target)
        if self.op == "~":
            return target <= found < _tilde_upper(target)
        if self.op == ">=":
            return found >= target
        if self.op == "<":
            return found < target
        if self.op == ">":
            if target.given >= 3:
                return found > target
            return found >= _partial_upper(target)
        if self.op == "<=":
            if target.given >= 3:
                return found <= target
            return found < _partial_upper(target)
        raise ValueError(f"Unknown operator: {self.op!r}")  # pragma: no cover

    def __str__(self) -> str:
        return f"{self.op}{self.target}"


# Lowest possible pre-release; ``X.Y.Z-0`` sorts below every ``X.Y.Z-*``.
_MIN_PRE = ("0",)


def _partial_upper(target: Version) -> Version:
    """First version past every release a partial target covers.

    ``1.2`` covers ``1.2.*``, so the bound is ``1.3.0-0`` and pre-releases
    of ``1.3.0`` fall outside. Used by ``=``, ``>`` and ``<=`` with
    partial targets, matching Cargo's reading of partial comparators.
    """
    if target.given == 1:
        return Version(target.major + 1, pre=_MIN_PRE)
    return Version(target.major, target.minor + 1, pre=_MIN_PRE)


def _matches_exact(found: Version, target: Version) -> bool:
    if target.given >= 3:
        return found == target
    return target <= found < _partial_upper(target)


def _caret_upper(target: Version) -> Version:
    major, minor, patch = target.release
    if major > 0 or target.given == 1:
        return Version(major + 1, pre=_MIN_PRE)
    if minor > 0 or target.given == 2:
        return Version(0, minor + 1, pre=_MIN_PRE)
    return Version(0, 0, patch + 1, pre=_MIN_PRE)


def _tilde_upper(target: Version) -> Version:
    if target.given == 1:
        return Version(target.major + 1, pre=_MIN_PRE)
    return Version(target.major, target.minor + 1, pre=_MIN_PRE)


def _parse_atoms(raw: str) -> tuple[ConstraintAtom, ...]:
    atoms: list[ConstraintAtom] = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            raise ValueError(f"Empty constraint atom in {raw!r}")
        if chunk == "*":
            continue
        m = _CONSTRAINT_ATOM_RE.match(chunk)
        if not m:
            raise ValueError(f"Invalid constraint atom: {chunk!r}")
        op = m.group("op") or "^"
        target = m.group("ver")
        if op in ORDERED_OPERATORS and Version.try_parse(target) is None:
            raise ValueError(f"Invalid constraint atom: {chunk!r}")
        atoms.append(ConstraintAtom(op=op, target=target))
    return tuple(atoms)


@dataclass(frozen=True)
class VersionConstraint:
    """A version constraint such as ``>= 1.2, < 1.3``.

    The raw text is parsed once at construction; a malformed constraint
    raises ``ValueError`` immediately rather than at comparison time.

    Attributes:
        raw: The constraint string as authored.
        atoms: The parsed conjunction. Empty means "any version".
    """

    raw: str
    atoms: tuple[ConstraintAtom, ...] = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "atoms", _parse_atoms(self.raw))

    @property
    def is_any(self) -> bool:
        return not self.atoms

    def satisfies(self, version: str) -> bool:
        """Check whether a version string satisfies every atom.

        Raises:
            ValueError: If an ordered operator meets a non-semantic version.
        """
        return all(atom.satisfied_by(version) for atom in self.atoms)

    def __str__(self) -> str:
        return self.raw.strip()

    def __repr__(self) -> str:
        return f"VersionConstraint({self.raw!r})"


# ---------------------------------------------------------------------------
# DependencySpec: an edge declared in a recipe's deps array
# ---------------------------------------------------------------------------

_DEP_NAME_RE = re.compile(r"^\s*(?P<name>[A-Za-z0-9_][A-Za-z0-9_\-]*)\s*(?P<rest>.*)$")


@dataclass(frozen=True)
class DependencySpec:
    """A dependency on another recipe, optionally constrained.

    Attributes:
        name: The required package name.
        constraint: Version constraint the dependency must satisfy, or None
            for any version.
    """

    name: str
    constraint: VersionConstraint | None = None

    @classmethod
    def parse(cls, spec: str) -> DependencySpec:
        """Parse a dependency specification string.

        Raises:
            ValueError: If the name is empty or the constraint is malformed.
        """
        if not spec.strip():
            raise ValueError("Empty dependency specification")
        m = _DEP_NAME_RE.match(spec)
        if not m:
            raise ValueError(f"Empty package name in dependency: {spec!r}")
        rest = m.group("rest").strip()
        if not rest:
            return cls(name=m.group("name"))
        try:
            constraint = VersionConstraint(rest)
        except ValueError as exc:
            raise ValueError(
                f"Invalid version constraint {rest!r} for {m.group('name')!r}: {exc}"
            ) from exc
        return cls(name=m.group("name"), constraint=constraint)

    def satisfied_by(self, version: str) -> bool:
        """Check a resolved version against this dependency's constraint."""
        if self.constraint is None:
            return True
        return self.constraint.satisfies(version)

    def __str__(self) -> str:
        if self.constraint is None:
            return self.name
        return f"{self.name} {self.constraint}"
