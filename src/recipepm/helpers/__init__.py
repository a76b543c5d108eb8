"""Helper functions recipes call from their phase functions.

Helpers act on the active execution context; they are only usable while
a phase is running.
"""

from recipepm.helpers.acquire import copy_local, download, sha256_file, verify_sha256
from recipepm.helpers.build import cd, env, extract, run, shell
from recipepm.helpers.install import install_bin, install_file, install_tree

__all__ = [
    "cd",
    "copy_local",
    "download",
    "env",
    "extract",
    "install_bin",
    "install_file",
    "install_tree",
    "run",
    "sha256_file",
    "shell",
    "verify_sha256",
]
