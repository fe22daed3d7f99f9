"""
pageforge - Static Site Builds from Jinja Templates
===================================================

A small build tool that renders a directory of page templates into a
static site. Pages use Jinja syntax to extend layouts, include partials,
import macros and loop over values from a JSON data document.

Features
--------
- **Template inheritance**: ``{% extends %}`` and ``{% block %}`` across
  any number of levels
- **Partials and macros**: ``{% include %}``, ``{% import ... as alias %}``
  and ``{{ alias.macro() }}``
- **Data-driven pages**: top-level keys of a JSON document become variables
- **Ordered search roots**: the first template root containing a name wins
- **Early errors**: missing templates and unknown macros are reported with
  the page, directive and target before anything is rendered

Quick Start
-----------
```bash
pip install pageforge

pageforge init mysite
cd mysite
pageforge build
```

Example
-------
>>> from pageforge import BuildConfig, build_site
>>> result = build_site(BuildConfig(pages_root="src/pages", dest_root="dist"))
>>> result.success
True

Architecture
------------
- ``collector``: Find page templates by glob pattern
- ``data``: Load the JSON data document into a DataContext
- ``resolver``: Ordered template-search roots
- ``renderer``: Reference checking and Jinja2 rendering
- ``emitter``: Write rendered pages
- ``pipeline``: Build orchestration
- ``scaffold``: Starter site
- ``cli``: Typer-based command line interface
- ``models``: Configuration and data models
- ``exceptions``: Error taxonomy
"""

# =============================================================================
# Package Metadata
# =============================================================================
__version__ = "0.1.0"
__license__ = "MIT"

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

# =============================================================================
# Public API Exports
# =============================================================================

from pageforge.collector import collect_sources
from pageforge.data import load_data
from pageforge.emitter import write_result
from pageforge.exceptions import PageforgeError
from pageforge.models import BuildConfig, DataContext, RenderResult, UndefinedPolicy
from pageforge.pipeline import BuildResult, build_site
from pageforge.renderer import TemplateRenderer, render_string
from pageforge.resolver import TemplateResolver


__all__ = [
    # Configuration and data
    "BuildConfig",
    "BuildResult",
    "DataContext",
    "PageforgeError",
    "RenderResult",
    "TemplateRenderer",
    "TemplateResolver",
    "UndefinedPolicy",
    # Version info
    "__version__",
    # Core functions
    "build_site",
    "collect_sources",
    "load_data",
    "render_string",
    "write_result",
]
