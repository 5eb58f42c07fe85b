"""
NexaSFC Safe Injection Validator
================================

Classifies offsets of an HTML document so that generated script blocks
are only spliced where they cannot corrupt existing markup.

Unsafe regions, found in one left-to-right pass:

- ``<script>...</script>`` and ``<style>...</style>`` (raw text elements,
  including their opening tags)
- ``<!-- ... -->`` comments and ``<![CDATA[ ... ]]>`` sections
- every other tag from ``<`` to ``>``, so attribute values are covered;
  quotes are honoured, so a ``>`` inside a quoted value does not end the tag

A region that is never closed runs to the end of the document.

An offset is unsafe when it lies strictly inside a region. The region's
start (just before ``<``) and end (just after ``>``) are safe.
"""

from __future__ import annotations

import re
from bisect import bisect_left
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

_RAW_TEXT_OPEN = re.compile(r"<(script|style)(?=[\s/>])", re.IGNORECASE)
_WHITESPACE_THEN_TAG = re.compile(r"\s+<")


class SpanKind(Enum):
    """Lexical classification of an HTML offset."""
    PLAIN = "plain"
    SCRIPT = "script"
    STYLE = "style"
    COMMENT = "comment"
    TAG_ATTRIBUTE = "tag-attribute"


@dataclass(frozen=True)
class HtmlSpan:
    """Unsafe region ``[start, end)``."""
    start: int
    end: int
    kind: SpanKind

    def contains(self, offset: int) -> bool:
        """True when ``offset`` is strictly inside the span."""
        return self.start < offset < self.end


class SafeInjectionValidator:
    """
    Offset classifier for one HTML document.

    Example:
        validator = SafeInjectionValidator(html)
        validator.is_safe(120)
        validator.nearest_safe_before(120)
    """

    def __init__(self, html: str) -> None:
        self.html = html
        self._spans = self._scan(html)
        self._starts = [span.start for span in self._spans]

    @property
    def spans(self) -> List[HtmlSpan]:
        return list(self._spans)

    # Scanning

    @classmethod
    def _scan(cls, html: str) -> List[HtmlSpan]:
        spans: List[HtmlSpan] = []
        length = len(html)
        pos = 0

        while pos < length:
            start = html.find("<", pos)
            if start == -1:
                break

            if html.startswith("<!--", start):
                end = cls._find_end(html, "-->", start + 4)
                spans.append(HtmlSpan(start, end, SpanKind.COMMENT))
            elif html.startswith("<![CDATA[", start):
                end = cls._find_end(html, "]]>", start + 9)
                spans.append(HtmlSpan(start, end, SpanKind.COMMENT))
            elif _RAW_TEXT_OPEN.match(html, start):
                name = _RAW_TEXT_OPEN.match(html, start).group(1).lower()
                kind = SpanKind.SCRIPT if name == "script" else SpanKind.STYLE
                end = cls._raw_text_end(html, name, cls._tag_end(html, start))
                spans.append(HtmlSpan(start, end, kind))
            elif start + 1 < length and (html[start + 1].isalpha() or html[start + 1] in "/!?"):
                end = cls._tag_end(html, start)
                spans.append(HtmlSpan(start, end, SpanKind.TAG_ATTRIBUTE))
            else:
                pos = start + 1
                continue

            pos = end

        return spans

    @staticmethod
    def _find_end(html: str, terminator: str, start: int) -> int:
        index = html.find(terminator, start)
        return len(html) if index == -1 else index + len(terminator)

    @staticmethod
    def _tag_end(html: str, start: int) -> int:
        """Offset just after the ``>`` closing the tag at ``start``."""
        quote: Optional[str] = None
        last = ""
        for index in range(start + 1, len(html)):
            char = html[index]
            if quote:
                if char == quote:
                    quote = None
                    last = char
                continue
            if char in "\"'" and last == "=":
                quote = char
            elif char == ">":
                return index + 1
            if not char.isspace():
                last = char
        return len(html)

    @staticmethod
    def _raw_text_end(html: str, name: str, content_start: int) -> int:
        if content_start >= len(html):
            return len(html)
        closing = re.compile(rf"</{name}\s*>", re.IGNORECASE)
        match = closing.search(html, content_start)
        return match.end() if match else len(html)

    # Queries

    def span_at(self, offset: int) -> Optional[HtmlSpan]:
        """The unsafe span strictly containing ``offset``, if any."""
        index = bisect_left(self._starts, offset) - 1
        if index >= 0 and self._spans[index].contains(offset):
            return self._spans[index]
        return None

    def classify(self, offset: int) -> SpanKind:
        span = self.span_at(offset)
        return span.kind if span else SpanKind.PLAIN

    def is_safe(self, offset: int) -> bool:
        """
        Check whether text may be inserted at ``offset``.

        Returns:
            False for offsets outside the document or strictly inside an
            unsafe span, True otherwise
        """
        if offset < 0 or offset > len(self.html):
            return False
        return self.span_at(offset) is None

    def nearest_safe_before(self, offset: int) -> Optional[int]:
        """
        Closest safe tag boundary strictly before ``offset``.

        Returns:
            Offset, or None when there is none
        """
        pos = min(offset - 1, len(self.html))
        while pos >= 0:
            span = self.span_at(pos)
            if span is not None:
                pos = span.start
                continue
            if self._at_tag_boundary(pos):
                return pos
            pos -= 1
        return None

    def nearest_safe_after(self, offset: int) -> Optional[int]:
        """
        Closest safe tag boundary at or after ``offset``.

        Returns:
            Offset, or None when there is none
        """
        pos = max(offset, 0)
        length = len(self.html)
        while pos <= length:
            span = self.span_at(pos)
            if span is not None:
                pos = span.end
                continue
            if self._at_tag_boundary(pos):
                return pos
            pos += 1
        return None

    def _at_tag_boundary(self, pos: int) -> bool:
        html = self.html
        if pos == 0 or pos == len(html):
            return True
        if html[pos - 1] == ">" or html[pos] == "<":
            return True
        return _WHITESPACE_THEN_TAG.match(html, pos) is not None
