"""
NexaSFC Security Module
=======================

- Context-aware escaping for HTML, attributes and JavaScript
- CSP nonces and Content-Security-Policy headers
"""

from nexasfc.security.xss import escape_attribute, escape_html, escape_js, is_js_identifier
from nexasfc.security.csp import ContentSecurityPolicy, default_csp, generate_nonce

__all__ = [
    "escape_attribute",
    "escape_html",
    "escape_js",
    "is_js_identifier",
    "ContentSecurityPolicy",
    "default_csp",
    "generate_nonce",
]
