"""
pageforge.resolver - Template Search Roots
==========================================

``TemplateResolver`` maps a template name such as ``"partials/nav.html"``
to a file by searching an explicit, ordered list of root directories. The
first root containing the name wins; there is no global registry.

``ResolverLoader`` exposes a resolver to Jinja2 so that ``extends``,
``include`` and ``import`` inside templates go through the same lookup.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable
from pathlib import Path

from jinja2 import BaseLoader, Environment, TemplateNotFound
from jinja2.loaders import split_template_path

from pageforge.exceptions import RenderError

logger = logging.getLogger(__name__)


class TemplateResolver:
    """
    Deterministic first-match lookup over ordered template roots.

    Parameters
    ----------
    roots : Iterable[Path]
        Root directories, highest priority first. Roots that do not exist
        are kept; they simply never match.

    Examples
    --------
    >>> resolver = TemplateResolver([Path("overrides"), Path("templates")])
    >>> resolver.find("layout.html")
    PosixPath('overrides/layout.html')
    """

    def __init__(self, roots: Iterable[Path]) -> None:
        self._roots = tuple(Path(root) for root in roots)

    @property
    def roots(self) -> tuple[Path, ...]:
        return self._roots

    def find(self, name: str) -> Path | None:
        """
        Return the file for ``name`` in the first root that has it.

        Raises
        ------
        jinja2.TemplateNotFound
            If ``name`` tries to escape its root with ``..``.
        """
        pieces = split_template_path(name)
        for root in self._roots:
            candidate = root.joinpath(*pieces)
            if candidate.is_file():
                return candidate
        return None

    def resolve(self, name: str) -> Path:
        """Like ``find`` but raises ``TemplateNotFound`` on a miss."""
        path = self.find(name)
        if path is None:
            raise TemplateNotFound(name)
        return path

    def list_templates(self) -> list[str]:
        """All template names visible through the roots, sorted."""
        found: set[str] = set()
        for root in self._roots:
            if not root.is_dir():
                continue
            for path in root.rglob("*"):
                if path.is_file():
                    found.add(path.relative_to(root).as_posix())
        return sorted(found)

    def __repr__(self) -> str:
        return f"TemplateResolver({[str(root) for root in self._roots]!r})"


class ResolverLoader(BaseLoader):
    """
    Jinja2 loader backed by a ``TemplateResolver``.

    Templates that are not valid UTF-8 raise ``RenderError`` naming the file.
    """

    def __init__(self, resolver: TemplateResolver) -> None:
        self.resolver = resolver

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, str, Callable[[], bool]]:
        path = self.resolver.resolve(template)
        logger.debug("Resolved %s -> %s", template, path)
        try:
            source = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise RenderError(template, f"cannot decode {path} as UTF-8: {e.reason}") from e
        mtime = os.path.getmtime(path)

        def uptodate() -> bool:
            try:
                return os.path.getmtime(path) == mtime
            except OSError:
                return False

        return source, str(path), uptodate

    def list_templates(self) -> list[str]:
        return self.resolver.list_templates()
