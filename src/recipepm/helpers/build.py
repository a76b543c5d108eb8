"""Build helpers: archive extraction, subprocesses, cwd and environment."""

from __future__ import annotations

import logging
import os
import subprocess
import tarfile
import zipfile
from collections.abc import Sequence
from pathlib import Path

from recipepm.core.lifecycle.context import current_context

logger = logging.getLogger(__name__)


def _inside(root: Path, candidate: Path) -> bool:
    try:
        candidate.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


def _safe_tar_members(tar: tarfile.TarFile, dest: Path) -> list[tarfile.TarInfo]:
    members = []
    for member in tar.getmembers():
        target = dest / member.name
        if member.name.startswith("/") or not _inside(dest, target):
            raise ValueError(f"archive member escapes the extraction directory: {member.name}")
        if member.issym() or member.islnk():
            link_base = target.parent if member.issym() else dest
            if os.path.isabs(member.linkname) or not _inside(dest, link_base / member.linkname):
                raise ValueError(f"archive link escapes the extraction directory: {member.name}")
        if member.isdev():
            raise ValueError(f"archive contains a device file: {member.name}")
        members.append(member)
    return members


def extract(
    archive: str | os.PathLike[str] | None = None,
    dest: str | os.PathLike[str] | None = None,
) -> Path:
    """Extract a tar (any compression) or zip archive.

    Args:
        archive: Defaults to the last acquired file.
        dest: Defaults to the context's working directory.

    Returns:
        The extraction directory.

    Raises:
        ValueError: For unknown formats, or members that would land
            outside *dest* (absolute paths, ``..``, escaping links).
    """
    ctx = current_context()
    if archive is None:
        if ctx.last_downloaded is None:
            raise ValueError("extract(): nothing has been acquired yet")
        src = ctx.last_downloaded
    else:
        src = ctx.resolve(archive)
    out = ctx.resolve(dest) if dest is not None else Path(ctx.cwd)  # type: ignore[arg-type]
    out.mkdir(parents=True, exist_ok=True)

    if tarfile.is_tarfile(src):
        with tarfile.open(src) as tar:
            members = _safe_tar_members(tar, out)
            if hasattr(tarfile, "data_filter"):
                tar.extractall(out, members=members, filter="data")
            else:
                tar.extractall(out, members=members)
    elif zipfile.is_zipfile(src):
        with zipfile.ZipFile(src) as zf:
            for name in zf.namelist():
                if name.startswith("/") or not _inside(out, out / name):
                    raise ValueError(f"archive member escapes the extraction directory: {name}")
            zf.extractall(out)
    else:
        raise ValueError(f"Unsupported archive format: {src.name}")
    logger.debug("Extracted %s into %s", src, out)
    return out


def run(
    cmd: Sequence[str] | str,
    *,
    env: dict[str, str] | None = None,
    cwd: str | os.PathLike[str] | None = None,
    check: bool = True,
    capture: bool = False,
) -> subprocess.CompletedProcess:
    """Run a command in the context's working directory.

    A string *cmd* is split on whitespace; use ``shell()`` for shell syntax.

    Raises:
        subprocess.CalledProcessError: If *check* and the command fails.
    """
    ctx = current_context()
    argv = cmd.split() if isinstance(cmd, str) else list(cmd)
    full_env = ctx.subprocess_env()
    if env:
        full_env.update(env)
    workdir = ctx.resolve(cwd) if cwd is not None else ctx.cwd
    logger.debug("run: %s (cwd=%s)", " ".join(argv), workdir)
    return subprocess.run(
        argv,
        cwd=workdir,
        env=full_env,
        check=check,
        capture_output=capture,
        text=capture,
    )


def shell(command: str, *, check: bool = True, capture: bool = False) -> subprocess.CompletedProcess:
    """Run *command* through ``sh -c``."""
    return run(["sh", "-c", command], check=check, capture=capture)


def cd(path: str | os.PathLike[str]) -> Path:
    """Change the working directory used by later helpers.

    Raises:
        NotADirectoryError: If *path* is not an existing directory.
    """
    ctx = current_context()
    target = ctx.resolve(path)
    if not target.is_dir():
        raise NotADirectoryError(f"cd: {target} is not a directory")
    ctx.cwd = target
    return target


def env(name: str, value: str) -> None:
    """Set an environment variable for later subprocesses."""
    current_context().env[name] = value
