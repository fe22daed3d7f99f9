"""
pageforge.collector - Source Collection
=======================================

Enumerates the page templates to render. Patterns are ordinary
``pathlib`` globs extended with the alternation forms build tools commonly
accept:

- brace alternation: ``**/*.{html,njk}``
- extglob alternation: ``**/*.+(html|njk)`` or ``**/*.@(html|njk)``

Both forms are expanded into plain globs before matching; ``+(...)`` is
treated as a single choice among its alternatives.

Usage Example
-------------
>>> from pageforge.collector import collect_sources
>>> for path in collect_sources(Path("src/pages"), "**/*.{html,njk}"):
...     print(path)
about.njk
index.html
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from pathlib import Path

from pageforge.exceptions import CollectionError

logger = logging.getLogger(__name__)

# Innermost brace group, so nested groups expand from the inside out
_BRACE_RE = re.compile(r"\{([^{}]*)\}")
_EXTGLOB_RE = re.compile(r"[@+]\(([^()]*)\)")


def expand_pattern(pattern: str) -> list[str]:
    """
    Expand alternation groups into plain glob patterns.

    Parameters
    ----------
    pattern : str
        A glob pattern, possibly containing ``{a,b}`` or ``+(a|b)`` groups.

    Returns
    -------
    list[str]
        The expanded patterns in a deterministic order,
        without duplicates.

    Examples
    --------
    >>> expand_pattern("**/*.{html,njk}")
    ['**/*.html', '**/*.njk']
    >>> expand_pattern("{a,b}/*.+(md|txt)")
    ['a/*.md', 'a/*.txt', 'b/*.md', 'b/*.txt']
    """
    pattern = _EXTGLOB_RE.sub(lambda m: "{" + m.group(1).replace("|", ",") + "}", pattern)

    pending = [pattern]
    expanded: list[str] = []
    while pending:
        current = pending.pop(0)
        match = _BRACE_RE.search(current)
        if match is None:
            if current not in expanded:
                expanded.append(current)
            continue
        head, tail = current[: match.start()], current[match.end() :]
        alternatives = [head + choice + tail for choice in match.group(1).split(",")]
        # Keep left-to-right order when groups are nested or repeated
        pending[0:0] = alternatives
    return expanded


def collect_sources(root: Path, pattern: str) -> Iterator[Path]:
    """
    Lazily yield the files under ``root`` matching ``pattern``.

    Paths are relative to ``root`` and yielded in sorted POSIX order, so
    repeated builds see the pages in the same order. Directories matching
    the pattern are skipped.

    Parameters
    ----------
    root : Path
        The pages root directory.

    pattern : str
        Glob pattern relative to ``root``.

    Returns
    -------
    Iterator[Path]
        Relative paths of the matching files.

    Raises
    ------
    CollectionError
        If ``root`` does not exist or is not a directory. Raised when this
        function is called, not on first iteration.
    """
    if not root.exists():
        raise CollectionError(root, "Pages root does not exist", pattern)
    if not root.is_dir():
        raise CollectionError(root, "Pages root is not a directory", pattern)

    return _iter_sources(root, expand_pattern(pattern))


def _iter_sources(root: Path, patterns: list[str]) -> Iterator[Path]:
    matches: set[Path] = set()
    for glob in patterns:
        logger.debug("Collecting %s under %s", glob, root)
        for path in root.glob(glob):
            if path.is_file():
                matches.add(path.relative_to(root))

    yield from sorted(matches, key=lambda p: p.as_posix())
