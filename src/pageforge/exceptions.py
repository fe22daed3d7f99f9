"""
pageforge.exceptions - Error Taxonomy
=====================================

Every failure pageforge can report is a subclass of ``PageforgeError``.
Library code raises these; the CLI catches them, prints the message and
exits with status 1. A build never skips a failed page.

Hierarchy
---------

    PageforgeError
    ├── ConfigError
    ├── CollectionError
    ├── DataLoadError
    ├── TemplateError
    │   ├── TemplateResolutionError
    │   │   ├── ExtendsResolutionError
    │   │   ├── IncludeResolutionError
    │   │   └── ImportResolutionError
    │   ├── MacroInvocationError
    │   ├── TemplateSyntaxError
    │   └── RenderError
    └── WriteError

Template errors carry the offending template name, the directive that
failed and its target, so messages read like::

    pages/index.html: {% extends "base.html" %} not found (searched: templates)
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class PageforgeError(Exception):
    """Base class for all pageforge errors."""


class ConfigError(PageforgeError):
    """A configuration file could not be read or failed validation."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid configuration {path}: {reason}")


class CollectionError(PageforgeError):
    """The pages root is missing or is not a directory."""

    def __init__(self, root: Path, reason: str, pattern: str | None = None) -> None:
        self.root = root
        self.pattern = pattern
        super().__init__(f"{reason}: {root}")


class DataLoadError(PageforgeError):
    """The data document is missing, unreadable or malformed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load data from {path}: {reason}")


class WriteError(PageforgeError):
    """Writing a rendered page to the destination failed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot write {path}: {reason}")


# =============================================================================
# Template Errors
# =============================================================================


def format_directive(directive: str, target: str | None) -> str:
    """
    Render a directive the way it is written in a template.

    Examples
    --------
    >>> format_directive("extends", "layout.html")
    '{% extends "layout.html" %}'
    >>> format_directive("call", "nav.active")
    '{{ nav.active(...) }}'
    """
    if directive == "call":
        return f"{{{{ {target}(...) }}}}"
    if target is None:
        return f"{{% {directive} %}}"
    return f'{{% {directive} "{target}" %}}'


class TemplateError(PageforgeError):
    """
    Base class for failures tied to a specific template.

    Attributes
    ----------
    template : str
        Name (or relative path) of the template being processed.

    directive : str | None
        The directive that failed (``extends``, ``include``, ``import``, ...).

    target : str | None
        The argument of the failing directive, usually a template path.
    """

    def __init__(
        self,
        template: str,
        reason: str,
        *,
        directive: str | None = None,
        target: str | None = None,
    ) -> None:
        self.template = template
        self.directive = directive
        self.target = target
        self.reason = reason
        if directive is not None:
            message = f"{template}: {format_directive(directive, target)} {reason}"
        else:
            message = f"{template}: {reason}"
        super().__init__(message)


class TemplateResolutionError(TemplateError):
    """A referenced template could not be found in any search root."""

    directive_name = "load"

    def __init__(
        self,
        template: str,
        target: str,
        searched: Sequence[Path] = (),
        *,
        reason: str | None = None,
    ) -> None:
        self.searched = tuple(searched)
        if reason is None:
            roots = ", ".join(str(root) for root in self.searched) or "no roots"
            reason = f"not found (searched: {roots})"
        super().__init__(
            template,
            reason,
            directive=self.directive_name,
            target=target,
        )


class ExtendsResolutionError(TemplateResolutionError):
    """The parent named by ``{% extends %}`` could not be resolved."""

    directive_name = "extends"


class IncludeResolutionError(TemplateResolutionError):
    """The partial named by ``{% include %}`` could not be resolved."""

    directive_name = "include"


class ImportResolutionError(TemplateResolutionError):
    """The macro file named by ``{% import %}`` could not be resolved."""

    directive_name = "import"


class MacroInvocationError(TemplateError):
    """
    A template asked for a macro its macro file does not define.

    Raised for ``{{ alias.name() }}`` calls on an import alias and for
    ``{% from "file" import name %}``; ``alias`` is None in the latter case.
    """

    def __init__(
        self,
        template: str,
        macro: str,
        source: str,
        *,
        alias: str | None = None,
        lineno: int | None = None,
    ) -> None:
        self.alias = alias
        self.macro = macro
        self.source = source
        self.lineno = lineno
        where = f" (line {lineno})" if lineno else ""
        if alias is not None:
            super().__init__(
                template,
                f"names no macro defined in {source}{where}",
                directive="call",
                target=f"{alias}.{macro}",
            )
        else:
            super().__init__(template, f"{source} defines no macro {macro!r}{where}")
            self.directive = "from"
            self.target = source


class TemplateSyntaxError(TemplateError):
    """A template could not be parsed."""

    def __init__(self, template: str, message: str, lineno: int | None = None) -> None:
        self.lineno = lineno
        where = f"line {lineno}: " if lineno else ""
        super().__init__(template, f"syntax error: {where}{message}")


class RenderError(TemplateError):
    """Rendering failed at runtime, e.g. an undefined variable in strict mode."""
