"""recipepm: a local-first package manager driven by procedural recipes."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Generator identity recorded in lockfile metadata.
_GENERATOR = f"recipepm {__version__}"
