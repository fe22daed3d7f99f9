"""
pytest configuration and shared fixtures for pageforge tests.

This module provides fixtures and configuration used across all test modules.
Fixtures defined here are automatically available to all tests.

Fixtures
--------
write : Callable
    Write a file under a root, creating parent directories.

site_dir : Path
    A small site: layout, partial, macro file, three pages and a data
    document, laid out like the starter site.

site_config : BuildConfig
    A BuildConfig pointing at ``site_dir``.
"""

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from pageforge.models import BuildConfig


LAYOUT = """<html>
<head><title>{% block title %}{{ site.title }}{% endblock %}</title></head>
<body>
{% include "partials/header.html" %}
{% block content %}{% endblock %}
</body>
</html>
"""

HEADER = "<header>SITE HEADER</header>"

NAV_MACRO = """{% macro active(activePage="home") -%}
<nav><a{% if activePage == "home" %} class="active"{% endif %}>Home</a><a{% if activePage == "about" %} class="active"{% endif %}>About</a></nav>
{%- endmacro %}
"""

INDEX_PAGE = """{% extends "layout.html" %}
{% import "macros/navigation.html" as nav %}
This text is outside any block.
{% block content %}{{ nav.active() }}<h1>Home</h1>{% endblock %}
"""

ABOUT_PAGE = """{% extends "layout.html" %}
{% import "macros/navigation.html" as nav %}
{% block title %}About{% endblock %}
{% block content %}{{ nav.active(activePage="about") }}<h1>About</h1>{% endblock %}
"""

GALLERY_PAGE = """{% extends "layout.html" %}
{% block content %}{% for image in images %}<img src="{{ image.src }}" alt="{{ image.alt }}">
{% endfor %}{% endblock %}
"""

DATA = {
    "site": {"title": "Test Site"},
    "images": [
        {"src": "a.png", "alt": "A"},
        {"src": "b.png", "alt": "B"},
    ],
}


def write_file(root: Path, relative: str, text: str) -> Path:
    """Write ``text`` to ``root / relative``, creating directories."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def write() -> Callable[[Path, str, str], Path]:
    """Provide the write_file helper to tests."""
    return write_file


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """
    Create a small site in a temporary directory.

    Returns
    -------
    Path
        Site root containing ``templates/``, ``pages/`` and ``data.json``.
    """
    root = tmp_path / "site"
    write_file(root, "templates/layout.html", LAYOUT)
    write_file(root, "templates/partials/header.html", HEADER)
    write_file(root, "templates/macros/navigation.html", NAV_MACRO)
    write_file(root, "pages/index.html", INDEX_PAGE)
    write_file(root, "pages/about.html", ABOUT_PAGE)
    write_file(root, "pages/gallery/index.njk", GALLERY_PAGE)
    write_file(root, "data.json", json.dumps(DATA))
    return root


@pytest.fixture
def site_config(site_dir: Path) -> BuildConfig:
    """Build configuration for ``site_dir``."""
    return BuildConfig(
        pages_root=site_dir / "pages",
        template_roots=[site_dir / "templates"],
        data_file=site_dir / "data.json",
        dest_root=site_dir / "dist",
    )


# =============================================================================
# pytest Configuration
# =============================================================================

def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the test suite."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
