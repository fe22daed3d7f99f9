"""
pageforge.data - Data Provider
==============================

Loads the optional JSON data document of a build. Its top-level keys
become template variables: a key ``images`` holding a list of
``{"src": ..., "alt": ...}`` objects can be looped over with
``{% for image in images %}``.

The document is parsed and validated in one step by a Pydantic
``TypeAdapter`` over ``dict[str, JsonValue]``, which both rejects malformed
JSON and guarantees a JSON object at the top level. The result is deep
frozen into a ``DataContext``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import JsonValue, TypeAdapter, ValidationError

from pageforge.exceptions import DataLoadError
from pageforge.models import DataContext

logger = logging.getLogger(__name__)

_DOCUMENT_ADAPTER: TypeAdapter[dict[str, JsonValue]] = TypeAdapter(dict[str, JsonValue])


def load_data(path: Path) -> DataContext:
    """
    Load a JSON data document into a DataContext.

    Parameters
    ----------
    path : Path
        Path to the JSON document.

    Returns
    -------
    DataContext
        Read-only namespace of the document's top-level keys.

    Raises
    ------
    DataLoadError
        If the file is missing or unreadable, is not valid JSON, or its top
        level is not an object.
    """
    if not path.is_file():
        raise DataLoadError(path, "file not found")

    try:
        raw = path.read_bytes()
    except OSError as e:
        raise DataLoadError(path, e.strerror or str(e)) from e

    try:
        document = _DOCUMENT_ADAPTER.validate_json(raw)
    except ValidationError as e:
        raise DataLoadError(path, _describe(e)) from e

    logger.debug("Loaded %d data key(s) from %s", len(document), path)
    return DataContext(document)


def load_optional_data(path: Path | None) -> DataContext:
    """Load ``path`` if given, otherwise return an empty context."""
    if path is None:
        return DataContext.empty()
    return load_data(path)


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    if first["type"] == "json_invalid":
        return f"malformed JSON: {first['msg']}"
    if first["type"] == "dict_type":
        return "top-level value must be a JSON object"
    return first["msg"]
