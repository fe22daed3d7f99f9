"""
pageforge.cli - Command Line Interface
======================================

This module provides the command-line interface for pageforge using Typer.

Architecture
------------
The CLI is structured around Typer's app pattern:

    app (main entry point)
    ├── build    - Render every page into the destination directory
    ├── sources  - List the pages a build would render
    ├── render   - Render a single page to stdout
    └── init     - Create a starter site

Configuration is read from ``--config`` or, when present, ``pageforge.toml``
in the current directory. Command-line options override file values.

Usage Examples
--------------
Build with a config file:
    $ pageforge build

Build without one:
    $ pageforge build --pages src/pages --templates src/templates \\
        --data src/data.json --dest dist

Show help:
    $ pageforge --help
    $ pageforge build --help

See Also
--------
- pipeline.py: Build orchestration
- models.py: BuildConfig
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any

import questionary
import typer
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from pageforge import __version__
from pageforge.collector import collect_sources
from pageforge.emitter import output_path_for
from pageforge.exceptions import PageforgeError
from pageforge.models import BuildConfig, UndefinedPolicy
from pageforge.pipeline import build_site, render_page
from pageforge.scaffold import CONFIG_FILENAME, create_starter_site, existing_files


# =============================================================================
# CLI Application Setup
# =============================================================================

app = typer.Typer(
    name="pageforge",
    help="Render Jinja page templates into a static site.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Console for rich output
console = Console()


# =============================================================================
# Shared Options
# =============================================================================

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help=f"Configuration file (default: ./{CONFIG_FILENAME} if present)",
        dir_okay=False,
    ),
]
PagesOption = Annotated[
    Path | None,
    typer.Option("--pages", help="Directory containing the page templates"),
]
PatternOption = Annotated[
    str | None,
    typer.Option("--pattern", help="Glob selecting pages, e.g. '**/*.{html,njk}'"),
]
TemplatesOption = Annotated[
    list[Path] | None,
    typer.Option(
        "--templates",
        "-t",
        help="Template-search root; repeat for more, first match wins",
    ),
]
DataOption = Annotated[
    Path | None,
    typer.Option("--data", help="JSON data document"),
]
DestOption = Annotated[
    Path | None,
    typer.Option("--dest", "-o", help="Output directory"),
]
StrictOption = Annotated[
    bool,
    typer.Option("--strict", help="Fail on undefined template variables"),
]


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        console.print(Panel(
            f"[bold green]pageforge[/] version [cyan]{__version__}[/]\n\n"
            f"[dim]Static site builds from Jinja templates[/]",
            border_style="green",
        ))
        raise typer.Exit()


def fail(message: str) -> typer.Exit:
    """Print an error line and return the exit to raise."""
    rprint(f"[red]Error:[/] {escape(message)}")
    return typer.Exit(1)


def load_config(
    config_path: Path | None,
    *,
    pages: Path | None = None,
    pattern: str | None = None,
    templates: list[Path] | None = None,
    data: Path | None = None,
    dest: Path | None = None,
    strict: bool = False,
) -> BuildConfig:
    """
    Resolve the effective BuildConfig.

    Starts from ``config_path`` (or ``./pageforge.toml`` when it exists, or
    the defaults) and applies the command-line overrides on top.

    Raises
    ------
    typer.Exit
        If the config file or the combined values are invalid.
    """
    if config_path is None and Path(CONFIG_FILENAME).is_file():
        config_path = Path(CONFIG_FILENAME)

    try:
        base = BuildConfig.from_toml(config_path) if config_path else BuildConfig()
    except PageforgeError as e:
        raise fail(str(e)) from e

    overrides: dict[str, Any] = {}
    if pages is not None:
        overrides["pages_root"] = pages
    if pattern is not None:
        overrides["pattern"] = pattern
    if templates:
        overrides["template_roots"] = templates
    if data is not None:
        overrides["data_file"] = data
    if dest is not None:
        overrides["dest_root"] = dest
    if strict:
        overrides["undefined"] = UndefinedPolicy.STRICT

    try:
        return BuildConfig(**{**base.model_dump(), **overrides})
    except ValidationError as e:
        raise fail(str(e)) from e


def configure_logging(debug: bool) -> None:
    """Route pageforge's debug logging through rich when requested."""
    if not debug:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


# =============================================================================
# Main Application Callback
# =============================================================================


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    [bold]pageforge[/] - Static site builds from Jinja templates.

    Pages extend layouts, include partials, import macros and loop over
    data loaded from a JSON document.

    [bold]Quick Start:[/]

        pageforge init mysite
        cd mysite
        pageforge build
    """


# =============================================================================
# Build Command
# =============================================================================


@app.command()
def build(
    config_path: ConfigOption = None,
    pages: PagesOption = None,
    pattern: PatternOption = None,
    templates: TemplatesOption = None,
    data: DataOption = None,
    dest: DestOption = None,
    strict: StrictOption = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Render pages but write nothing"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Only report errors"),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show debug logging"),
    ] = False,
) -> None:
    """
    Build the site.

    Renders every page matching the pattern and writes it, with an
    [cyan].html[/] extension, under the destination directory.

    [bold]Examples:[/]

        pageforge build
        pageforge build --strict
        pageforge build --pages pages --templates overrides --templates templates
    """
    configure_logging(debug)
    config = load_config(
        config_path,
        pages=pages,
        pattern=pattern,
        templates=templates,
        data=data,
        dest=dest,
        strict=strict,
    )

    result = build_site(config, verbose=not quiet, dry_run=dry_run, raise_errors=False)
    if not result.success:
        # Verbose builds have already printed the failure
        if quiet:
            raise fail(result.errors[0])
        raise typer.Exit(1)


# =============================================================================
# Sources Command
# =============================================================================


@app.command()
def sources(
    config_path: ConfigOption = None,
    pages: PagesOption = None,
    pattern: PatternOption = None,
    dest: DestOption = None,
) -> None:
    """
    List the pages a build would render and where they would be written.

    [bold]Example:[/]

        pageforge sources --pattern '**/*.njk'
    """
    config = load_config(config_path, pages=pages, pattern=pattern, dest=dest)

    try:
        found = list(collect_sources(config.pages_root, config.pattern))
    except PageforgeError as e:
        raise fail(str(e)) from e

    if not found:
        console.print(
            f"[yellow]No pages match {escape(config.pattern)} "
            f"under {escape(str(config.pages_root))}[/]"
        )
        return

    table = Table(title="Pages", show_header=True)
    table.add_column("Source", style="cyan")
    table.add_column("Output", style="green")
    for page in found:
        target = config.dest_root / output_path_for(page, config.output_extension)
        table.add_row(page.as_posix(), target.as_posix())

    console.print(table)


# =============================================================================
# Render Command
# =============================================================================


@app.command()
def render(
    page: Annotated[
        Path,
        typer.Argument(help="Page to render, relative to the pages root"),
    ],
    config_path: ConfigOption = None,
    pages: PagesOption = None,
    templates: TemplatesOption = None,
    data: DataOption = None,
    strict: StrictOption = False,
) -> None:
    """
    Render one page and print the result.

    [bold]Example:[/]

        pageforge render about.html
    """
    config = load_config(
        config_path, pages=pages, templates=templates, data=data, strict=strict
    )

    if not (config.pages_root / page).is_file():
        raise fail(f"Page not found: {config.pages_root / page}")

    try:
        result = render_page(config, page)
    except PageforgeError as e:
        raise fail(str(e)) from e

    typer.echo(result.text, nl=False)


# =============================================================================
# Init Command
# =============================================================================


@app.command()
def init(
    path: Annotated[
        Path,
        typer.Argument(help="Directory to create the site in"),
    ] = Path("."),
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing files"),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip the overwrite prompt"),
    ] = False,
) -> None:
    """
    Create a starter site.

    The starter has a layout, a navigation partial, a navigation macro,
    three pages and a data document.

    [bold]Examples:[/]

        pageforge init mysite
        pageforge init . --force
    """
    conflicts = existing_files(path)
    if conflicts and not force:
        if yes:
            raise fail(
                f"Files already exist: {', '.join(str(c) for c in conflicts)}. "
                "Use --force to overwrite."
            )
        listing = "\n".join(f"  - {c}" for c in conflicts)
        console.print(f"[yellow]These files already exist:[/]\n{escape(listing)}")
        if not questionary.confirm("Overwrite them?", default=False).ask():
            raise typer.Abort()
        force = True

    try:
        created = create_starter_site(path, force=force)
    except (FileExistsError, OSError) as e:
        raise fail(str(e)) from e

    root = path.resolve()
    console.print(Panel(
        f"[bold green]Created starter site![/]\n\n"
        f"Created {len(created)} file(s):\n"
        + "\n".join(f"  - {escape(f.relative_to(root).as_posix())}" for f in created)
        + f"\n\n[bold]Next steps:[/]\n  cd {escape(str(path))}\n  pageforge build",
        title="[bold]Success[/]",
        border_style="green",
    ))


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    app()
