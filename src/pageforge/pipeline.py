"""
pageforge.pipeline - Site Build Orchestration
=============================================

This module contains the main build logic. It wires the four stages
together and reports progress on the console.

Architecture
------------
The build follows a linear, single-pass pipeline:

    1. Collect page sources matching the pattern under the pages root
    2. Load the data document into a DataContext (once per build)
    3. Render every page against the template-search roots
    4. Write each rendered page under the destination root

The pipeline is designed to be:
- **Idempotent**: Running twice with unchanged inputs writes identical files
- **Fail-fast**: The first error aborts the build; no page is silently skipped
- **Verbose**: Users see what's happening at each step

Usage Example
-------------
>>> from pageforge.models import BuildConfig
>>> from pageforge.pipeline import build_site
>>>
>>> config = BuildConfig(
...     pages_root="src/pages",
...     template_roots=["src/templates"],
...     data_file="src/data.json",
...     dest_root="dist",
... )
>>> result = build_site(config)
>>> len(result.files_written)
3

See Also
--------
- collector.py: Source collection
- data.py: Data document loading
- renderer.py: Template rendering
- emitter.py: Output writing
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from pageforge.collector import collect_sources
from pageforge.data import load_optional_data
from pageforge.emitter import output_path_for, write_result
from pageforge.exceptions import CollectionError, PageforgeError
from pageforge.models import BuildConfig, RenderResult
from pageforge.renderer import TemplateRenderer
from pageforge.resolver import TemplateResolver

logger = logging.getLogger(__name__)

# Console for rich output
console = Console()


# =============================================================================
# Result Data Classes
# =============================================================================


@dataclass
class BuildResult:
    """
    Result of a build.

    Attributes
    ----------
    success : bool
        Whether every page was rendered and written.

    dest_root : Path
        Destination directory of the build.

    pages : list[Path]
        Pages rendered, relative to the pages root.

    files_written : list[Path]
        Files written under the destination root. Empty on a dry run.

    warnings : list[str]
        Non-fatal issues, such as a missing template root.

    errors : list[str]
        The error that aborted the build. Only seen by callers that pass
        ``raise_errors=False``; otherwise the error is raised.
    """

    success: bool
    dest_root: Path
    pages: list[Path] = field(default_factory=list)
    files_written: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


# =============================================================================
# Helpers
# =============================================================================


def create_renderer(config: BuildConfig) -> TemplateRenderer:
    """
    Build the renderer for one build: resolver, data and environment.

    Raises
    ------
    DataLoadError
        If the configured data document cannot be loaded.
    """
    resolver = TemplateResolver(config.template_roots)
    context = load_optional_data(config.data_file)
    return TemplateRenderer(
        resolver,
        context,
        strict=config.strict,
        trim_blocks=config.trim_blocks,
        lstrip_blocks=config.lstrip_blocks,
    )


def check_template_roots(config: BuildConfig) -> list[str]:
    """Warnings for configured template roots that are not directories."""
    return [
        f"Template root does not exist: {root}"
        for root in config.template_roots
        if not root.is_dir()
    ]


def plan_outputs(config: BuildConfig, pages: list[Path]) -> dict[Path, Path]:
    """
    Map each page to its destination-relative output path.

    Raises
    ------
    CollectionError
        If two pages would be written to the same file, e.g. ``index.html``
        and ``index.njk``.
    """
    outputs: dict[Path, Path] = {}
    owners: dict[Path, Path] = {}
    for page in pages:
        target = output_path_for(page, config.output_extension)
        if target in owners:
            raise CollectionError(
                config.pages_root,
                f"Pages {owners[target].as_posix()} and {page.as_posix()} "
                f"would both be written to {target.as_posix()}",
                config.pattern,
            )
        owners[target] = page
        outputs[page] = target
    return outputs


def render_page(config: BuildConfig, page: Path) -> RenderResult:
    """
    Render one page without writing it.

    Parameters
    ----------
    config : BuildConfig
        Build configuration.

    page : Path
        Page path relative to ``config.pages_root``.

    Returns
    -------
    RenderResult
        The rendered page.
    """
    renderer = create_renderer(config)
    return renderer.render_file(config.pages_root / page, page)


# =============================================================================
# Main Build Function
# =============================================================================


def build_site(
    config: BuildConfig,
    *,
    verbose: bool = True,
    dry_run: bool = False,
    raise_errors: bool = True,
) -> BuildResult:
    """
    Build the site described by ``config``.

    This is the main entry point for a build. It orchestrates the entire
    pipeline: collection, data loading, rendering and writing.

    Parameters
    ----------
    config : BuildConfig
        Complete build configuration.

    verbose : bool, default=True
        If True, display progress information to the console.

    dry_run : bool, default=False
        If True, render every page but write nothing.

    raise_errors : bool, default=True
        If False, the first error is recorded in ``errors`` and the failed
        result is returned instead of raised.

    Returns
    -------
    BuildResult
        Result object listing the rendered pages and written files.

    Raises
    ------
    PageforgeError
        The first collection, data, template or write error, unless
        ``raise_errors`` is False. Pages sharing an output path are a
        ``CollectionError`` raised before anything is rendered.
    """
    result = BuildResult(success=False, dest_root=config.dest_root)

    try:
        if verbose:
            console.print()
            console.print(
                Panel(
                    f"[bold blue]Building site:[/] [green]{escape(str(config.pages_root))}[/]"
                    f" → [green]{escape(str(config.dest_root))}[/]\n"
                    f"[dim]Pattern: {escape(config.pattern)} | "
                    f"Undefined: {config.undefined.value}"
                    f"{' | dry run' if dry_run else ''}[/]",
                    title="[bold]pageforge[/]",
                    border_style="blue",
                )
            )
            console.print()

        # Step 1: Collect sources
        pages = list(collect_sources(config.pages_root, config.pattern))
        outputs = plan_outputs(config, pages)
        logger.debug("Collected %d page(s)", len(pages))

        if not pages:
            result.warnings.append(
                f"No pages matched {config.pattern} under {config.pages_root}"
            )

        result.warnings.extend(check_template_roots(config))
        if verbose:
            for warning in result.warnings:
                console.print(f"  [yellow]⚠[/] {escape(warning)}")

        # Step 2: Load data
        renderer = create_renderer(config)
        if verbose and config.data_file is not None:
            console.print(
                f"[bold]📦 Loaded {len(renderer.context)} data key(s)[/] "
                f"[dim]from {escape(str(config.data_file))}[/]"
            )

        # Steps 3 and 4: Render and write, one page at a time
        if verbose:
            console.print("[bold]📝 Rendering pages...[/]")

        for page in pages:
            rendered = renderer.render_file(config.pages_root / page, page)
            result.pages.append(page)

            if dry_run:
                if verbose:
                    console.print(f"  Would write {escape(outputs[page].as_posix())}")
                continue

            written = write_result(
                rendered, config.dest_root, extension=config.output_extension
            )
            result.files_written.append(written)
            if verbose:
                console.print(
                    f"  {escape(page.as_posix())} → "
                    f"{escape(written.relative_to(config.dest_root).as_posix())}"
                )

        result.success = True

        if verbose:
            console.print()
            console.print(
                Panel(
                    f"[bold green]✨ Rendered {len(result.pages)} page(s)[/]\n\n"
                    f"[dim]Output:[/] {escape(str(config.dest_root))}",
                    title="[bold green]Success[/]",
                    border_style="green",
                )
            )

    except PageforgeError as e:
        result.errors.append(str(e))
        if verbose:
            console.print(f"\n[bold red]Build failed:[/] {escape(str(e))}")
        if raise_errors:
            raise

    return result
