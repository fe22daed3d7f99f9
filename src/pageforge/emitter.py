"""
pageforge.emitter - Writing Rendered Pages
==========================================

Writes each RenderResult under the destination root, mirroring the page's
path relative to the pages root and normalising its extension::

    pages/blog/post.njk  ->  dist/blog/post.html

Writes go through a temporary file in the target directory followed by
``os.replace``, so a page is either fully written or left untouched, and
re-running a build overwrites earlier output deterministically.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pageforge.exceptions import WriteError
from pageforge.models import RenderResult

logger = logging.getLogger(__name__)


def output_path_for(relative_path: Path, extension: str = ".html") -> Path:
    """
    Destination-relative path for a page.

    Examples
    --------
    >>> output_path_for(Path("blog/post.njk"))
    PosixPath('blog/post.html')
    >>> output_path_for(Path("README"))
    PosixPath('README.html')
    """
    if relative_path.suffix:
        return relative_path.with_suffix(extension)
    return relative_path.with_name(relative_path.name + extension)


def ensure_parent(path: Path) -> None:
    """Create the parent directories of ``path`` if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)


def atomic_write_text(path: Path, text: str, mode: int = 0o644) -> None:
    """
    Write text to a file atomically using a temporary file.

    Parameters
    ----------
    path : Path
        Destination file path.

    text : str
        Text content to write.

    mode : int, default=0o644
        Permissions of the written file. ``mkstemp`` creates files readable
        by the owner only.
    """
    ensure_parent(path)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
        os.chmod(path, mode)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


def write_result(
    result: RenderResult,
    dest_root: Path,
    *,
    extension: str = ".html",
) -> Path:
    """
    Write one rendered page under ``dest_root``.

    Parameters
    ----------
    result : RenderResult
        The rendered page.

    dest_root : Path
        Destination directory; created if missing.

    extension : str, default=".html"
        Extension given to the written file.

    Returns
    -------
    Path
        Path of the written file.

    Raises
    ------
    WriteError
        If a directory cannot be created or the file cannot be written.
    """
    target = dest_root / output_path_for(result.relative_path, extension)
    try:
        atomic_write_text(target, result.text)
    except OSError as e:
        raise WriteError(target, e.strerror or str(e)) from e

    logger.debug("Wrote %s", target)
    return target
