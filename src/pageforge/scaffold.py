"""
pageforge.scaffold - Starter Site
=================================

``pageforge init`` creates a small working site that exercises every
template feature pageforge supports:

    pageforge.toml                        build configuration
    src/
    ├── data.json                         site title and a list of images
    ├── templates/
    │   ├── layout.html                   base layout with title/content blocks
    │   ├── partials/navigation.html      partial included by the layout
    │   └── macros/navigation.html        active(activePage="home") macro
    └── pages/
        ├── index.html                    extends layout, calls nav.active()
        ├── about.html                    overrides the title block
        └── gallery.njk                   loops over the images data

The template files are packaged under ``pageforge/starter`` and copied
verbatim; ``pageforge.toml`` is generated from the BuildConfig defaults.
"""

from __future__ import annotations

from importlib.resources import files
from importlib.resources.abc import Traversable
from pathlib import Path

import tomlkit

from pageforge.models import BuildConfig

# Destination of the packaged starter files, relative to the site root
STARTER_PREFIX = Path("src")
CONFIG_FILENAME = "pageforge.toml"


def starter_config() -> BuildConfig:
    """The configuration written into a new site's ``pageforge.toml``."""
    return BuildConfig(
        pages_root=STARTER_PREFIX / "pages",
        template_roots=[STARTER_PREFIX / "templates"],
        data_file=STARTER_PREFIX / "data.json",
        dest_root=Path("dist"),
    )


def render_config_toml(config: BuildConfig) -> str:
    """
    Serialise a BuildConfig as a commented ``pageforge.toml``.

    Paths are written relative, as given in ``config``.
    """
    doc = tomlkit.document()
    doc.add(tomlkit.comment("pageforge build configuration"))
    doc.add(tomlkit.comment("Relative paths are resolved against this file's directory."))
    doc.add(tomlkit.nl())

    for key, value in config.to_toml_dict().items():
        doc.add(key, value)

    return tomlkit.dumps(doc)


def _walk(node: Traversable, prefix: Path) -> list[tuple[Path, Traversable]]:
    entries: list[tuple[Path, Traversable]] = []
    for child in sorted(node.iterdir(), key=lambda c: c.name):
        if child.is_dir():
            entries.extend(_walk(child, prefix / child.name))
        elif not child.name.startswith((".", "__")):
            entries.append((prefix / child.name, child))
    return entries


def starter_files() -> dict[Path, str]:
    """
    Files of the starter site.

    Returns
    -------
    dict[Path, str]
        Mapping of paths relative to the site root to file contents.
    """
    rendered = {
        path: resource.read_text(encoding="utf-8")
        for path, resource in _walk(files("pageforge") / "starter", STARTER_PREFIX)
    }
    rendered[Path(CONFIG_FILENAME)] = render_config_toml(starter_config())
    return rendered


def existing_files(target: Path) -> list[Path]:
    """Starter files that already exist under ``target``."""
    return [path for path in starter_files() if (target / path).exists()]


def create_starter_site(target: Path, *, force: bool = False) -> list[Path]:
    """
    Write the starter site into ``target``.

    Parameters
    ----------
    target : Path
        Site root; created if missing.

    force : bool, default=False
        If True, overwrite existing files.

    Returns
    -------
    list[Path]
        Absolute paths of the files written.

    Raises
    ------
    FileExistsError
        If some starter files already exist and ``force`` is False.
    """
    target = target.resolve()
    contents = starter_files()

    if not force:
        existing = [str(path) for path in contents if (target / path).exists()]
        if existing:
            raise FileExistsError(
                f"Files already exist: {', '.join(existing)}. Use --force to overwrite."
            )

    created: list[Path] = []
    for relative_path, text in contents.items():
        full_path = target / relative_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(text, encoding="utf-8")
        created.append(full_path)

    return created
