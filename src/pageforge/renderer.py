"""
pageforge.renderer - Template Rendering
=======================================

This module turns one page template into its final text. Expression
evaluation, loops, conditionals, blocks and macros are handled by Jinja2;
pageforge wraps it with:

- a fresh environment per build whose loader is an explicit
  ``TemplateResolver`` (ordered roots, first match wins),
- a static reference check run before rendering, which walks the page and
  every template it reaches through ``extends``/``include``/``import`` and
  reports the first unresolvable target or unknown macro with a typed error,
- the undefined-variable policy: undefined names render as an empty string
  unless strict mode is on,
- translation of Jinja2 failures into the pageforge error taxonomy.

Rendering Rules
---------------
- A page without ``{% extends %}`` renders its blocks in place; a block
  nobody overrides renders its own body.
- With ``{% extends "layout.html" %}`` the layout is rendered with the
  page's blocks spliced into the matching slots. Page content outside its
  blocks is discarded, and a page block with no matching slot is inert.
- ``{% import "macros.html" as nav %}`` binds ``nav`` for the importing file
  only. Missing macro arguments fall back to the declared default, or to
  undefined when there is none.
- Macro defaults are bound in the macro's definition scope; the DataContext
  is read-only, so every call sees the same defaults.

Usage Example
-------------
>>> resolver = TemplateResolver([Path("src/templates")])
>>> renderer = TemplateRenderer(resolver, load_data(Path("src/data.json")))
>>> result = renderer.render_file(Path("src/pages/index.html"), Path("index.html"))
>>> result.text[:15]
'<!DOCTYPE html>'
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path

from jinja2 import ChainableUndefined, Environment, StrictUndefined, nodes
from jinja2 import exceptions as jinja_errors

from pageforge.exceptions import (
    ExtendsResolutionError,
    ImportResolutionError,
    IncludeResolutionError,
    MacroInvocationError,
    PageforgeError,
    RenderError,
    TemplateResolutionError,
    TemplateSyntaxError,
)
from pageforge.models import DataContext, MacroCall, RenderResult, TemplateFile
from pageforge.resolver import ResolverLoader, TemplateResolver

logger = logging.getLogger(__name__)


# =============================================================================
# Environment Setup
# =============================================================================


def create_environment(
    resolver: TemplateResolver,
    *,
    strict: bool = False,
    trim_blocks: bool = False,
    lstrip_blocks: bool = False,
) -> Environment:
    """
    Create the Jinja2 environment for one build.

    The environment is configured with:
    - A ``ResolverLoader`` so every template reference goes through
      ``resolver``
    - ``ChainableUndefined`` (tolerant) or ``StrictUndefined`` (strict);
      tolerant lookups such as ``missing.attr`` also render empty
    - Autoescaping disabled, the templates are the author's own markup
    - Trailing newlines preserved so literal text round-trips unchanged
    - No template cache, templates are parsed fresh every build
    - A ``tojson`` policy that serialises the frozen DataContext values

    Parameters
    ----------
    resolver : TemplateResolver
        Ordered template-search roots.

    strict : bool, default=False
        Fail on undefined variables instead of rendering them empty.

    trim_blocks, lstrip_blocks : bool, default=False
        Jinja2 whitespace control.

    Returns
    -------
    Environment
        Configured Jinja2 environment.
    """
    env = Environment(
        loader=ResolverLoader(resolver),
        undefined=StrictUndefined if strict else ChainableUndefined,
        autoescape=False,
        trim_blocks=trim_blocks,
        lstrip_blocks=lstrip_blocks,
        keep_trailing_newline=True,
        cache_size=0,
    )
    env.policies["json.dumps_kwargs"] = {"sort_keys": True, "default": _json_default}
    return env


def _json_default(value: object) -> object:
    # Frozen data mappings for the tojson filter; tuples serialise natively
    if isinstance(value, Mapping):
        return dict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


# =============================================================================
# Parsing
# =============================================================================


def parse_template(
    env: Environment,
    name: str,
    source: str,
    filename: Path | str | None = None,
) -> TemplateFile:
    """
    Parse a template and summarise its directives.

    Parameters
    ----------
    env : Environment
        Environment whose syntax settings are used for parsing.

    name : str
        Template name used in error messages.

    source : str
        Raw template text.

    filename : Path | str | None
        File the source came from, if any.

    Returns
    -------
    TemplateFile
        The directive summary. Only string-literal targets are recorded.

    Raises
    ------
    TemplateSyntaxError
        If the source cannot be parsed.
    """
    try:
        ast = env.parse(source, name, str(filename) if filename else None)
    except jinja_errors.TemplateSyntaxError as e:
        raise TemplateSyntaxError(name, e.message or str(e), e.lineno) from e

    extends = None
    for node in ast.find_all(nodes.Extends):
        extends = _literal(node.template)
        break

    includes = [
        target
        for node in ast.find_all(nodes.Include)
        if not node.ignore_missing and (target := _literal(node.template)) is not None
    ]

    imports: dict[str, str] = {}
    for node in ast.find_all(nodes.Import):
        target = _literal(node.template)
        if target is not None:
            imports[node.target] = target

    from_imports = []
    for node in ast.find_all(nodes.FromImport):
        target = _literal(node.template)
        if target is not None:
            names = tuple(item[0] if isinstance(item, tuple) else item for item in node.names)
            from_imports.append((target, names))

    macro_calls = []
    for call in ast.find_all(nodes.Call):
        callee = call.node
        if (
            isinstance(callee, nodes.Getattr)
            and isinstance(callee.node, nodes.Name)
            and callee.node.name in imports
        ):
            macro_calls.append(MacroCall(callee.node.name, callee.attr, call.lineno))

    return TemplateFile(
        name=name,
        filename=Path(filename) if filename else None,
        source=source,
        extends=extends,
        blocks=tuple(block.name for block in ast.find_all(nodes.Block)),
        includes=tuple(includes),
        imports=imports,
        from_imports=tuple(from_imports),
        macros=tuple(_exported_macros(ast)),
        macro_calls=tuple(macro_calls),
    )


def _literal(expr: nodes.Expr) -> str | None:
    if isinstance(expr, nodes.Const) and isinstance(expr.value, str):
        return expr.value
    return None


def _exported_macros(node: nodes.Node) -> Iterator[str]:
    # Macros inside blocks or other macros are not part of the module;
    # underscore names are private to the file.
    for child in node.iter_child_nodes():
        if isinstance(child, nodes.Macro):
            if not child.name.startswith("_"):
                yield child.name
        elif not isinstance(child, (nodes.Block, nodes.CallBlock)):
            yield from _exported_macros(child)


def load_template_file(env: Environment, name: str) -> TemplateFile:
    """
    Resolve ``name`` through the environment's loader and parse it.

    Raises
    ------
    jinja2.TemplateNotFound
        If no search root contains ``name``.
    TemplateSyntaxError
        If the file cannot be parsed.
    """
    source, filename, _ = env.loader.get_source(env, name)
    return parse_template(env, name, source, filename)


# =============================================================================
# Reference Checking
# =============================================================================


class _ReferenceWalk:
    """One traversal of the templates reachable from an entry template."""

    def __init__(self, env: Environment) -> None:
        self.env = env
        self.roots = env.loader.resolver.roots
        self.parsed: dict[str, TemplateFile] = {}
        self.visited: set[str] = set()

    def load(
        self,
        referrer: TemplateFile,
        target: str,
        error: type[TemplateResolutionError],
    ) -> TemplateFile:
        if target in self.parsed:
            return self.parsed[target]
        try:
            template = load_template_file(self.env, target)
        except jinja_errors.TemplateNotFound as e:
            raise error(referrer.name, target, self.roots) from e
        self.parsed[target] = template
        return template

    def visit(self, template: TemplateFile, chain: tuple[str, ...] = ()) -> None:
        key = _key(template)
        if key in self.visited:
            return
        self.visited.add(key)
        logger.debug("Checking references of %s", template.name)

        if template.extends is not None:
            parent = self.load(template, template.extends, ExtendsResolutionError)
            if _key(parent) in (*chain, key):
                raise ExtendsResolutionError(
                    template.name,
                    template.extends,
                    self.roots,
                    reason="forms an inheritance cycle",
                )
            self.visit(parent, (*chain, key))

        for target in template.includes:
            self.visit(self.load(template, target, IncludeResolutionError))

        modules: dict[str, TemplateFile] = {}
        for alias, target in template.imports.items():
            modules[alias] = self.load(template, target, ImportResolutionError)
            self.visit(modules[alias])

        for call in template.macro_calls:
            self.check_call(template, call, modules[call.alias])

        for target, names in template.from_imports:
            module = self.load(template, target, ImportResolutionError)
            self.visit(module)
            for name in names:
                if name not in module.macros:
                    raise MacroInvocationError(template.name, name, module.name)

    def check_call(self, template: TemplateFile, call: MacroCall, module: TemplateFile) -> None:
        if call.name not in module.macros:
            raise MacroInvocationError(
                template.name,
                call.name,
                module.name,
                alias=call.alias,
                lineno=call.lineno,
            )


def _key(template: TemplateFile) -> str:
    return str(template.filename) if template.filename else template.name


def check_references(env: Environment, template: TemplateFile) -> None:
    """
    Verify every template reachable from ``template`` before rendering.

    Follows ``extends`` chains, includes and imports recursively, each file
    once. Only string-literal targets can be checked; dynamic targets are
    resolved (or reported) at render time.

    Raises
    ------
    ExtendsResolutionError
        A parent template is missing, or the inheritance chain is a cycle.
    IncludeResolutionError
        An included partial is missing (unless ``ignore missing``).
    ImportResolutionError
        An imported macro file is missing.
    MacroInvocationError
        A call ``alias.name(...)`` or ``from ... import name`` names a macro
        the macro file does not define.
    TemplateSyntaxError
        Any reached template fails to parse.
    """
    _ReferenceWalk(env).visit(template)


# =============================================================================
# Renderer
# =============================================================================


class TemplateRenderer:
    """
    Renders templates for one build.

    Holds the Jinja2 environment and the shared, read-only DataContext.
    Each render is independent of every other.

    Parameters
    ----------
    resolver : TemplateResolver
        Ordered template-search roots for ``extends``/``include``/``import``.

    context : DataContext | None
        Variables visible to every template. Empty when None.

    strict : bool, default=False
        Fail on undefined variables.

    Examples
    --------
    >>> renderer = TemplateRenderer(TemplateResolver([Path("templates")]))
    >>> renderer.render_source("Hello {{ name }}!", "greeting.html").text
    'Hello !'
    """

    def __init__(
        self,
        resolver: TemplateResolver,
        context: DataContext | None = None,
        *,
        strict: bool = False,
        trim_blocks: bool = False,
        lstrip_blocks: bool = False,
    ) -> None:
        self.resolver = resolver
        self.context = context if context is not None else DataContext.empty()
        self.strict = strict
        self.env = create_environment(
            resolver,
            strict=strict,
            trim_blocks=trim_blocks,
            lstrip_blocks=lstrip_blocks,
        )

    def render(self, name: str) -> RenderResult:
        """
        Render a template found through the search roots.

        Raises
        ------
        TemplateResolutionError
            If no root contains ``name``.
        """
        try:
            source, filename, _ = self.env.loader.get_source(self.env, name)
        except jinja_errors.TemplateNotFound as e:
            raise TemplateResolutionError(name, name, self.resolver.roots) from e
        return self.render_source(source, name, filename=Path(filename))

    def render_file(self, path: Path, relative_path: Path) -> RenderResult:
        """
        Render an entry page read directly from ``path``.

        Entry pages do not have to live under a search root; their
        references are still resolved through the resolver.

        Parameters
        ----------
        path : Path
            The page file.

        relative_path : Path
            The page's path relative to the pages root. Used as the template
            name in errors and carried on the result for the emitter.
        """
        name = relative_path.as_posix()
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as e:
            raise RenderError(name, f"cannot read {path}: {e.strerror or e}") from e
        except UnicodeDecodeError as e:
            raise RenderError(name, f"cannot decode {path} as UTF-8: {e.reason}") from e
        return self.render_source(source, name, filename=path, relative_path=relative_path)

    def render_source(
        self,
        source: str,
        name: str,
        *,
        filename: Path | None = None,
        relative_path: Path | None = None,
    ) -> RenderResult:
        """
        Check and render template text.

        Parameters
        ----------
        source : str
            Template text.

        name : str
            Name used in error messages.

        filename : Path | None
            File the text came from, used to detect self-inheritance.

        relative_path : Path | None
            Destination-relative path; defaults to ``name``.

        Returns
        -------
        RenderResult
            The rendered text and its relative path.
        """
        template_file = parse_template(self.env, name, source, filename)
        check_references(self.env, template_file)

        logger.debug("Rendering %s", name)
        try:
            code = self.env.compile(source, name, str(filename) if filename else None)
            template = self.env.template_class.from_code(
                self.env, code, self.env.make_globals(None), None
            )
            text = template.render(self.context.as_template_vars())
        except jinja_errors.TemplateSyntaxError as e:
            raise TemplateSyntaxError(e.name or name, e.message or str(e), e.lineno) from e
        except jinja_errors.TemplateNotFound as e:
            raise TemplateResolutionError(name, str(e.name or ""), self.resolver.roots) from e
        except jinja_errors.UndefinedError as e:
            raise RenderError(name, f"undefined value: {e.message}") from e
        except jinja_errors.TemplateError as e:
            raise RenderError(name, e.message or str(e)) from e
        except PageforgeError:
            raise
        except Exception as e:
            # Expression failures on user data: bad operands, recursive includes
            raise RenderError(name, f"{type(e).__name__}: {e}") from e

        return RenderResult(
            relative_path=relative_path if relative_path is not None else Path(name),
            text=text,
        )


def render_string(source: str, context: DataContext | None = None, *, strict: bool = False) -> str:
    """Render standalone template text with no search roots."""
    renderer = TemplateRenderer(TemplateResolver([]), context, strict=strict)
    return renderer.render_source(source, "<string>").text
