"""
NexaSFC Errors
==============

Exception hierarchy shared by the grammars, the renderer, view composition
and the hydration pipeline.

Hierarchy:
    NexaSFCError
    ├── ParseError
    │   ├── EmptyDocumentError
    │   └── SectionError
    │       ├── MissingSectionError
    │       ├── DuplicateSectionError
    │       └── UnknownSectionError
    ├── RenderError
    │   └── PartialNotFoundError
    ├── CompositionError
    │   ├── TemplateNotFoundError
    │   └── CircularDependencyError
    ├── HydrationError
    │   └── HydrationCollisionError
    ├── ValidationError
    └── ConfigurationError
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence


class NexaSFCError(Exception):
    """Base exception for all NexaSFC errors."""
    pass


class ParseError(NexaSFCError):
    """
    Raised when markup or document source is malformed.

    Every parse error carries the position where the problem was found.
    Line and column are 1-based, offset is a 0-based index into the
    source string.

    Attributes:
        message: Description without location suffix
        line: Line number
        column: Column number
        offset: Character offset
        source_type: "markup" or "document"
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        offset: Optional[int] = None,
        source_type: Optional[str] = None,
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        self.offset = offset
        self.source_type = source_type
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        text = self.message
        if self.line is not None and self.column is not None:
            text += f" at line {self.line}, column {self.column}"
        if self.source_type:
            text += f" in {self.source_type}"
        return text


class EmptyDocumentError(ParseError):
    """Raised when a document source is empty or blank."""
    pass


class SectionError(ParseError):
    """Base for section validation errors; ``sections`` names the offenders."""

    def __init__(
        self,
        message: str,
        sections: Iterable[str],
        line: Optional[int] = None,
        column: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> None:
        self.sections: List[str] = list(sections)
        super().__init__(message, line, column, offset, "document")


class MissingSectionError(SectionError):
    """Raised when required sections are absent."""
    pass


class DuplicateSectionError(SectionError):
    """Raised when a section appears more than once."""
    pass


class UnknownSectionError(SectionError):
    """Raised when a section tag is not recognized."""
    pass


class RenderError(NexaSFCError):
    """Raised when rendering fails."""
    pass


class PartialNotFoundError(RenderError):
    """Raised when a partial cannot be resolved."""

    def __init__(self, partial_name: str) -> None:
        self.partial_name = partial_name
        super().__init__(f"Partial '{partial_name}' not found")


class CompositionError(NexaSFCError):
    """Base exception for view composition errors."""
    pass


class TemplateNotFoundError(CompositionError):
    """Raised when the loader cannot provide a template."""

    def __init__(self, template_name: str, reason: Optional[str] = None) -> None:
        self.template_name = template_name
        self.reason = reason
        message = f"Template not found: {template_name}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class CircularDependencyError(CompositionError):
    """
    Raised when a template depends on itself.

    ``chain`` is the resolution path ending with the repeated name,
    e.g. ``["root", "a", "root"]``.
    """

    def __init__(self, template_name: str, chain: Sequence[str]) -> None:
        self.template_name = template_name
        self.chain = list(chain)
        super().__init__(
            "Circular dependency detected: " + " -> ".join(self.chain)
        )


class HydrationError(NexaSFCError):
    """Raised when hydration data cannot be produced."""
    pass


class HydrationCollisionError(HydrationError):
    """
    Raised when two data sections claim the same window attribute.

    The message lists both claim locations and how to fix the conflict.
    """

    def __init__(
        self,
        window_attribute: str,
        first_location: str,
        conflict_location: str,
    ) -> None:
        self.window_attribute = window_attribute
        self.first_location = first_location
        self.conflict_location = conflict_location
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        window = self.window_attribute
        return (
            "Window attribute collision detected\n"
            "\n"
            f"Attribute: '{window}'\n"
            f"First defined: {self.first_location}\n"
            f"Conflict with: {self.conflict_location}\n"
            "\n"
            "Quick fixes:\n"
            f'  1. Rename one: <data window="{self.suggested_name()}">\n'
            f'  2. Enable merging: <data window="{window}" merge="deep">'
        )

    def suggested_name(self) -> str:
        """Suggest an alternative attribute name based on the conflicting file."""
        location = self.conflict_location.rsplit(":", 1)[0]
        base = re.split(r"[\\/]", location)[-1]
        base = base.rsplit(".", 1)[0]
        base = re.sub(r"[^A-Za-z0-9_]", "_", base)
        if not base:
            return f"{self.window_attribute}2"
        if base[0].isdigit():
            base = f"_{base}"
        return f"{base}Data"


class ValidationError(NexaSFCError, ValueError):
    """Raised when input to a hydration or registry API is malformed."""
    pass


class ConfigurationError(NexaSFCError):
    """Raised when configuration values are invalid."""
    pass
