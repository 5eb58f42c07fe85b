"""
NexaSFC Serializer
==================

JSON encoding and decoding backed by orjson.

Context layers are read-only mappings and loop data may contain tuples or
sets, so :func:`dumps` converts those to plain JSON containers.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Union

import orjson

from nexasfc.errors import HydrationError

_SCRIPT_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _default(obj: Any) -> Any:
    if isinstance(obj, Mapping):
        return dict(obj)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps(obj: Any, sort_keys: bool = False) -> str:
    """Serialize ``obj`` to a compact JSON string."""
    option = orjson.OPT_NON_STR_KEYS
    if sort_keys:
        option |= orjson.OPT_SORT_KEYS
    try:
        return orjson.dumps(obj, default=_default, option=option).decode("utf-8")
    except TypeError as exc:
        raise HydrationError(f"Value is not JSON serializable: {exc}") from exc


def pretty_dumps(obj: Any) -> str:
    """Serialize ``obj`` with two-space indentation."""
    option = orjson.OPT_NON_STR_KEYS | orjson.OPT_INDENT_2
    return orjson.dumps(obj, default=_default, option=option).decode("utf-8")


def loads(data: Union[str, bytes]) -> Any:
    """
    Parse JSON text.

    Raises:
        HydrationError: If the text is not valid JSON
    """
    try:
        return orjson.loads(data)
    except orjson.JSONDecodeError as exc:
        raise HydrationError(f"Invalid JSON: {exc}") from exc


def script_safe_dumps(obj: Any) -> str:
    """
    Serialize ``obj`` for embedding inside an HTML ``<script>`` element.

    Characters that could end the element or break a JavaScript string
    literal are replaced with their ``\\uXXXX`` escapes, which parse back to
    the same value.
    """
    text = dumps(obj)
    for char, escaped in _SCRIPT_ESCAPES.items():
        text = text.replace(char, escaped)
    return text
