"""Acquisition helpers: download, local copy and hash verification.

Each helper records the file it produced as the context's
``last_downloaded`` so that ``verify_sha256()`` and ``extract()`` can be
chained without repeating the path.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from recipepm import __version__
from recipepm.core.lifecycle.context import current_context
from recipepm.exceptions import IntegrityError, NetworkError

logger = logging.getLogger(__name__)

# Timeout for downloads (seconds), applied per network operation.
DEFAULT_TIMEOUT: float = 60.0

USER_AGENT: str = f"recipepm/{__version__}"

_CHUNK = 1 << 16


def _filename_from_url(url: str) -> str:
    name = Path(unquote(urlparse(url).path)).name
    return name or "download"


def download(
    url: str,
    dest: str | os.PathLike[str] | None = None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
) -> Path:
    """Stream *url* to a file in the build area.

    Args:
        url: ``http(s)://`` or ``file://`` URL.
        dest: Target path, relative to the context's working directory.
            Defaults to the URL's file name.
        timeout: Per-operation network timeout in seconds.

    Returns:
        The downloaded file.

    Raises:
        NetworkError: On HTTP errors, timeouts, or connection failures.
    """
    ctx = current_context()
    if urlparse(url).scheme == "file":
        return copy_local(unquote(urlparse(url).path), dest)

    target = ctx.resolve(dest if dest is not None else _filename_from_url(url))
    target.parent.mkdir(parents=True, exist_ok=True)
    partial = target.with_name(target.name + ".part")
    logger.info("Downloading %s", url)
    try:
        with httpx.Client(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        ) as client:
            with client.stream("GET", url) as resp:
                resp.raise_for_status()
                with partial.open("wb") as fh:
                    for chunk in resp.iter_bytes(_CHUNK):
                        fh.write(chunk)
    except httpx.TimeoutException as exc:
        partial.unlink(missing_ok=True)
        raise NetworkError(f"Timed out downloading {url}") from exc
    except httpx.HTTPStatusError as exc:
        partial.unlink(missing_ok=True)
        raise NetworkError(f"HTTP {exc.response.status_code} from {url}") from exc
    except httpx.HTTPError as exc:
        partial.unlink(missing_ok=True)
        raise NetworkError(f"Failed to download {url}: {exc}") from exc
    os.replace(partial, target)
    ctx.last_downloaded = target
    return target


def copy_local(source: str | os.PathLike[str], dest: str | os.PathLike[str] | None = None) -> Path:
    """Copy a local file into the build area.

    Relative *source* paths are resolved against the recipe's directory.
    """
    ctx = current_context()
    src = Path(source)
    if not src.is_absolute():
        src = ctx.recipe_path.parent / src
    target = ctx.resolve(dest if dest is not None else src.name)
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, target)
    ctx.last_downloaded = target
    return target


def sha256_file(path: str | os.PathLike[str]) -> str:
    """Hex SHA-256 digest of a file, read in chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


def verify_sha256(expected: str, path: str | os.PathLike[str] | None = None) -> Path:
    """Check a file's SHA-256 digest.

    Args:
        expected: Hex digest, optionally prefixed with ``sha256:``.
        path: File to check; defaults to the last acquired file.

    Raises:
        IntegrityError: On mismatch, or when there is nothing to verify.
    """
    ctx = current_context()
    if path is None:
        if ctx.last_downloaded is None:
            raise IntegrityError("verify_sha256(): nothing has been acquired yet")
        target = ctx.last_downloaded
    else:
        target = ctx.resolve(path)
    want = expected.lower().removeprefix("sha256:").strip()
    got = sha256_file(target)
    if got != want:
        raise IntegrityError(f"SHA-256 mismatch for {target.name}: expected {want}, got {got}")
    logger.debug("Verified %s", target)
    return target
