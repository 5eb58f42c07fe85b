"""
NexaSFC Content Security Policy
===============================

Nonce generation and CSP header construction.

Policy sources may contain a ``{{nonce}}`` placeholder that is replaced
with the per-response nonce when the header is built.

Example:
    nonce = generate_nonce()
    csp = ContentSecurityPolicy.from_policy(DEFAULT_CSP_POLICY, nonce=nonce)
    csp.script_src("https://cdn.example.com")
    name, value = csp.to_header()
"""

from __future__ import annotations

import secrets
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from nexasfc.core.config import DEFAULT_CSP_POLICY
from nexasfc.errors import ConfigurationError

NONCE_PLACEHOLDER = "{{nonce}}"


def generate_nonce() -> str:
    """Random 128-bit nonce as 32 hex characters."""
    return secrets.token_hex(16)


class ContentSecurityPolicy:
    """
    Content Security Policy header builder.

    Example:
        csp = ContentSecurityPolicy(nonce="abc123")
        csp.default_src("'self'")
        csp.script_src("'self'", "'nonce-{{nonce}}'")
        csp.build()  # "default-src 'self'; script-src 'self' 'nonce-abc123'"
    """

    def __init__(self, nonce: Optional[str] = None) -> None:
        self.nonce = nonce
        self._directives: Dict[str, List[str]] = {}

    @classmethod
    def from_policy(
        cls,
        policy: Mapping[str, Sequence[str]],
        nonce: Optional[str] = None,
    ) -> "ContentSecurityPolicy":
        csp = cls(nonce)
        for directive, sources in policy.items():
            csp.add(directive, *sources)
        return csp

    def add(self, directive: str, *sources: str) -> "ContentSecurityPolicy":
        """Add sources to a directive; a directive with no sources is a flag."""
        self._directives.setdefault(directive, []).extend(sources)
        return self

    def default_src(self, *sources: str) -> "ContentSecurityPolicy":
        return self.add("default-src", *sources)

    def script_src(self, *sources: str) -> "ContentSecurityPolicy":
        return self.add("script-src", *sources)

    def style_src(self, *sources: str) -> "ContentSecurityPolicy":
        return self.add("style-src", *sources)

    def connect_src(self, *sources: str) -> "ContentSecurityPolicy":
        return self.add("connect-src", *sources)

    @property
    def directives(self) -> Dict[str, List[str]]:
        return {name: list(sources) for name, sources in self._directives.items()}

    def nonce_required(self) -> bool:
        """True when any source uses the nonce placeholder."""
        return any(
            NONCE_PLACEHOLDER in source
            for sources in self._directives.values()
            for source in sources
        )

    def validate(self) -> None:
        """
        Reject sources that defeat the policy.

        Raises:
            ConfigurationError: Listing every problem found
        """
        errors: List[str] = []
        for directive, sources in self._directives.items():
            if "'unsafe-eval'" in sources:
                errors.append(f"{directive} contains dangerous 'unsafe-eval' source")
            if "'unsafe-inline'" in sources and directive != "style-src":
                errors.append(f"{directive} contains dangerous 'unsafe-inline' source")
        if errors:
            raise ConfigurationError("CSP policy errors: " + ", ".join(errors))

    def _interpolate(self, source: str) -> str:
        if self.nonce and NONCE_PLACEHOLDER in source:
            return source.replace(NONCE_PLACEHOLDER, self.nonce)
        return source

    def build(self) -> str:
        """Header value, directives joined with ``; ``."""
        parts: List[str] = []
        for directive, sources in self._directives.items():
            if not sources:
                parts.append(directive)
            else:
                values = " ".join(self._interpolate(source) for source in sources)
                parts.append(f"{directive} {values}")
        return "; ".join(parts)

    def to_header(self) -> Tuple[str, str]:
        return ("Content-Security-Policy", self.build())


def default_csp(nonce: Optional[str] = None) -> ContentSecurityPolicy:
    """Builder preloaded with the default policy."""
    return ContentSecurityPolicy.from_policy(DEFAULT_CSP_POLICY, nonce=nonce)
