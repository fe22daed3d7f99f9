"""
pageforge.models - Build Configuration and Data Models
======================================================

This module defines the data models used throughout pageforge. The build
configuration is a Pydantic model so that values coming from the command
line, a ``pageforge.toml`` file or the Python API are validated the same way.
The per-build objects (templates, data, render results) are plain immutable
containers.

Architecture Notes
------------------

    BuildConfig (pydantic)
    ├── pages_root: Path
    ├── pattern: str
    ├── template_roots: list[Path]      ordered, first match wins
    ├── data_file: Path | None
    ├── dest_root: Path
    ├── output_extension: str
    └── undefined: UndefinedPolicy

    DataContext          read-only variable namespace shared by every render
    TemplateFile         directive summary of one parsed template
    RenderResult         rendered text + destination-relative path

Usage Example
-------------
>>> from pageforge.models import BuildConfig
>>> config = BuildConfig(pages_root="site/pages", template_roots=["site/templates"])
>>> config.pattern
'**/*.{html,njk}'
"""

from __future__ import annotations

import tomllib
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, Field, JsonValue, ValidationError, field_validator

from pageforge.exceptions import ConfigError


# =============================================================================
# Enumerations
# =============================================================================


class UndefinedPolicy(str, Enum):
    """
    How templates treat variables that are not in the DataContext.

    Attributes
    ----------
    TOLERANT : str
        Undefined names interpolate as an empty string and are falsy in
        conditions. This is the default.

    STRICT : str
        Any use of an undefined name aborts the render with a RenderError.
    """

    TOLERANT = "tolerant"
    STRICT = "strict"


# =============================================================================
# Build Configuration
# =============================================================================

# Keys of BuildConfig that hold paths relative to the configuration file
_PATH_FIELDS = ("pages_root", "data_file", "dest_root")


class BuildConfig(BaseModel):
    """
    Complete configuration for one build invocation.

    Attributes
    ----------
    pages_root : Path
        Directory holding the entry page templates.

    pattern : str
        Glob pattern, relative to ``pages_root``, selecting the pages to
        render. Supports extension alternation: ``**/*.{html,njk}`` or the
        extglob form ``**/*.+(html|njk)``.

    template_roots : list[Path]
        Ordered template-search roots used to resolve ``extends``,
        ``include`` and ``import`` targets. The first root containing a
        name wins.

    data_file : Path | None
        Optional JSON document whose top-level keys become template
        variables.

    dest_root : Path
        Directory receiving the rendered pages.

    output_extension : str
        Extension given to every emitted page (default ``.html``).

    undefined : UndefinedPolicy
        Undefined-variable policy, tolerant by default.

    Examples
    --------
    >>> config = BuildConfig(output_extension="htm")
    >>> config.output_extension
    '.htm'
    """

    pages_root: Path = Field(
        default=Path("src/pages"),
        description="Directory containing the page templates to render",
    )
    pattern: str = Field(
        default="**/*.{html,njk}",
        description="Glob pattern selecting pages under pages_root",
    )
    template_roots: list[Path] = Field(
        default_factory=lambda: [Path("src/templates")],
        description="Ordered template-search roots (first match wins)",
    )
    data_file: Path | None = Field(
        default=None,
        description="Optional JSON data document",
    )
    dest_root: Path = Field(
        default=Path("dist"),
        description="Output directory",
    )
    output_extension: str = Field(
        default=".html",
        description="Extension of emitted pages",
    )
    undefined: UndefinedPolicy = Field(
        default=UndefinedPolicy.TOLERANT,
        description="Undefined-variable policy",
    )
    trim_blocks: bool = Field(
        default=False,
        description="Remove the first newline after a block tag",
    )
    lstrip_blocks: bool = Field(
        default=False,
        description="Strip leading whitespace before block tags",
    )

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        """Reject empty and absolute patterns."""
        v = v.strip()
        if not v:
            raise ValueError("Source pattern must not be empty.")
        if v.startswith("/"):
            raise ValueError(f"Source pattern must be relative to pages_root: {v}")
        return v

    @field_validator("output_extension")
    @classmethod
    def normalize_extension(cls, v: str) -> str:
        """Ensure the extension carries exactly one leading dot."""
        v = v.strip().lstrip(".")
        if not v or "/" in v:
            raise ValueError(f"Invalid output extension: {v!r}")
        return f".{v}"

    @field_validator("template_roots")
    @classmethod
    def dedupe_roots(cls, v: list[Path]) -> list[Path]:
        """Drop repeated roots, keeping the first occurrence."""
        seen: set[Path] = set()
        roots: list[Path] = []
        for root in v:
            if root not in seen:
                seen.add(root)
                roots.append(root)
        return roots

    @property
    def strict(self) -> bool:
        """True when undefined variables must fail the render."""
        return self.undefined is UndefinedPolicy.STRICT

    # -------------------------------------------------------------------------
    # Serialization Methods
    # -------------------------------------------------------------------------

    def to_toml_dict(self) -> dict[str, Any]:
        """
        Convert the config to TOML-compatible types.

        ``data_file`` is omitted when unset since TOML has no null.
        """
        data = self.model_dump(mode="json")
        if data["data_file"] is None:
            del data["data_file"]
        return data

    @classmethod
    def from_toml(cls, path: Path) -> BuildConfig:
        """
        Load configuration from a TOML file.

        The file may be a dedicated ``pageforge.toml`` (settings at the top
        level) or a ``pyproject.toml`` with a ``[tool.pageforge]`` table.
        Relative paths are resolved against the file's directory.

        Parameters
        ----------
        path : Path
            Path to the TOML configuration file.

        Returns
        -------
        BuildConfig
            Validated configuration object.

        Raises
        ------
        ConfigError
            If the file is missing, is not valid TOML or has invalid values.
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except OSError as e:
            raise ConfigError(path, e.strerror or str(e)) from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(path, str(e)) from e

        if "tool" in data and "pageforge" in data["tool"]:
            data = data["tool"]["pageforge"]

        base = path.parent
        for key in _PATH_FIELDS:
            if data.get(key) is not None:
                data[key] = base / data[key]
        if "template_roots" in data:
            data["template_roots"] = [base / root for root in data["template_roots"]]

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigError(path, str(e)) from e


# =============================================================================
# Data Context
# =============================================================================


class DataContext(Mapping[str, JsonValue]):
    """
    Read-only variable namespace available to every template in a build.

    Values are JSON values: None, bool, int, float, str, a sequence (stored
    as a tuple) or a nested mapping (stored as a read-only mapping). Lookups
    are by exact name; ``get`` returns None for unknown names.

    Examples
    --------
    >>> ctx = DataContext({"site": {"title": "Demo"}, "tags": ["a", "b"]})
    >>> ctx["tags"]
    ('a', 'b')
    >>> ctx.get("missing") is None
    True
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        frozen = {str(key): freeze_value(value) for key, value in (values or {}).items()}
        self._values: Mapping[str, Any] = MappingProxyType(frozen)

    @classmethod
    def empty(cls) -> DataContext:
        """An empty context, used when no data document is configured."""
        return cls()

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"DataContext({dict(self._values)!r})"

    def as_template_vars(self) -> dict[str, Any]:
        """Top-level namespace handed to the renderer."""
        return dict(self._values)


def freeze_value(value: Any) -> Any:
    """
    Deep-freeze a JSON value.

    Lists become tuples and dicts become read-only mappings, recursively.
    Scalars are returned unchanged.
    """
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): freeze_value(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze_value(item) for item in value)
    return value


# =============================================================================
# Template and Render Results
# =============================================================================


@dataclass(frozen=True)
class MacroCall:
    """An ``alias.name(...)`` call found in a template."""

    alias: str
    name: str
    lineno: int


@dataclass(frozen=True)
class TemplateFile:
    """
    Directive summary of one parsed template.

    Only targets written as string literals are recorded; dynamic targets
    are left to the renderer.

    Attributes
    ----------
    name : str
        Template name, a ``/``-separated path relative to its root.

    filename : Path | None
        File the source was read from.

    source : str
        Raw template text.

    extends : str | None
        Parent template named by ``{% extends %}``.

    blocks : tuple[str, ...]
        Names of the blocks declared in this file.

    includes : tuple[str, ...]
        Partials included with ``{% include %}`` (``ignore missing`` excluded).

    imports : Mapping[str, str]
        Alias to template name for ``{% import "x" as alias %}``.

    from_imports : tuple[tuple[str, tuple[str, ...]], ...]
        ``{% from "x" import a, b %}`` as (template, names) pairs.

    macros : tuple[str, ...]
        Names of the macros this file exports.

    macro_calls : tuple[MacroCall, ...]
        Calls made through import aliases.
    """

    name: str
    filename: Path | None = None
    source: str = field(default="", repr=False)
    extends: str | None = None
    blocks: tuple[str, ...] = ()
    includes: tuple[str, ...] = ()
    imports: Mapping[str, str] = field(default_factory=dict)
    from_imports: tuple[tuple[str, tuple[str, ...]], ...] = ()
    macros: tuple[str, ...] = ()
    macro_calls: tuple[MacroCall, ...] = ()


@dataclass(frozen=True)
class RenderResult:
    """
    Rendered text paired with the page's path relative to the pages root.

    The emitter normalises the extension when writing.
    """

    relative_path: Path
    text: str
