"""
NexaSFC Output Escaping
=======================

Context-aware encoding for values the compiler writes into HTML:

- element text (template variables)
- attribute values (nonces, window names, endpoint URLs)
- JavaScript string literals (generated hydration scripts)
"""

from __future__ import annotations

import html
import re

_JS_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")

_JS_RESERVED = frozenset({
    "await", "break", "case", "catch", "class", "const", "continue",
    "debugger", "default", "delete", "do", "else", "enum", "export",
    "extends", "false", "finally", "for", "function", "if", "implements",
    "import", "in", "instanceof", "interface", "let", "new", "null",
    "package", "private", "protected", "public", "return", "static",
    "super", "switch", "this", "throw", "true", "try", "typeof", "var",
    "void", "while", "with", "yield",
})

_JS_REPLACEMENTS = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "<": "\\x3c",
    ">": "\\x3e",
    "&": "\\x26",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def escape_html(text: str) -> str:
    """Escape text for an HTML element body."""
    return html.escape(str(text), quote=True)


def escape_attribute(value: str) -> str:
    """Escape a value for a double- or single-quoted HTML attribute."""
    return html.escape(str(value), quote=True)


def escape_js(text: str) -> str:
    """
    Escape text for a JavaScript string literal inside ``<script>``.

    Args:
        text: Text to escape

    Returns:
        Text safe between single or double quotes
    """
    result = str(text)
    for char, escaped in _JS_REPLACEMENTS.items():
        result = result.replace(char, escaped)
    return result


def is_js_identifier(name: str) -> bool:
    """True when ``name`` can be used as ``window.<name>``."""
    return bool(name) and bool(_JS_IDENTIFIER.match(name)) and name not in _JS_RESERVED
