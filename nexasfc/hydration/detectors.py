"""
NexaSFC Injection Point Detectors
=================================

Find where hydration markup should go in a rendered page.

- MountPointDetector: the element client code mounts on (``#app``,
  ``[data-mount]`` ...); early injection goes right before it.
- EarliestInjectionDetector: the earliest safe point in ``<head>``, or
  before ``<body>`` when the page has no head.

EarliestInjectionDetector only reports positions that pass
:class:`SafeInjectionValidator`; a mount point found only inside a script,
style or comment is returned with ``safe=False``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Sequence

from nexasfc.hydration.validator import SafeInjectionValidator, SpanKind

DEFAULT_MOUNT_SELECTORS = ("#app", "#root", "[data-rsfc-mount]", "[data-mount]")

_ID_SELECTOR = re.compile(r"^#([\w-]+)$")
_CLASS_SELECTOR = re.compile(r"^\.([\w-]+)$")
_ATTR_SELECTOR = re.compile(r"""^\[\s*([\w:.-]+)\s*(?:=\s*["']?([^"'\]]*)["']?\s*)?\]$""")

_HEAD_OPEN = re.compile(r"<head(?=[\s/>])[^>]*>", re.IGNORECASE)
_HEAD_CLOSE = re.compile(r"</head\s*>", re.IGNORECASE)
_BODY_OPEN = re.compile(r"<body(?=[\s/>])[^>]*>", re.IGNORECASE)
_LINK_TAG = re.compile(r"<link(?=[\s/>])[^>]*>", re.IGNORECASE)
_META_TAG = re.compile(r"<meta(?=[\s/>])[^>]*>", re.IGNORECASE)
_SCRIPT_CLOSE = re.compile(r"</script\s*>", re.IGNORECASE)
_RAW_TEXT_KINDS = (SpanKind.SCRIPT, SpanKind.STYLE, SpanKind.COMMENT)


@dataclass(frozen=True)
class MountPoint:
    """
    A detected mount element.

    Attributes:
        selector: Selector that matched
        position: Offset of the element's ``<``
        matched: Matched attribute text
        safe: Whether ``position`` is a safe injection point
    """
    selector: str
    position: int
    matched: str
    safe: bool


def selector_pattern(selector: str) -> Optional[Pattern[str]]:
    """
    Build an attribute pattern for a simple CSS selector.

    Supports ``#id``, ``.class``, ``[attr]`` and ``[attr=value]``.
    Returns None for anything else.
    """
    match = _ID_SELECTOR.match(selector)
    if match:
        name = re.escape(match.group(1))
        return re.compile(rf"""\bid\s*=\s*(["']){name}\1""", re.IGNORECASE)

    match = _CLASS_SELECTOR.match(selector)
    if match:
        name = re.escape(match.group(1))
        return re.compile(
            rf"""\bclass\s*=\s*(["'])(?:[^"']*\s)?{name}(?:\s[^"']*)?\1""",
            re.IGNORECASE,
        )

    match = _ATTR_SELECTOR.match(selector)
    if match:
        name = re.escape(match.group(1))
        value = match.group(2)
        if value is None:
            return re.compile(rf"(?<![\w-]){name}(?![\w-])", re.IGNORECASE)
        return re.compile(
            rf"""(?<![\w-]){name}\s*=\s*(["']){re.escape(value)}\1""",
            re.IGNORECASE,
        )

    return None


class MountPointDetector:
    """
    Locate the client mount element.

    Example:
        detector = MountPointDetector(["#main"])
        point = detector.detect(html)
        if point and point.safe:
            html = html[:point.position] + markup + html[point.position:]
    """

    def __init__(self, selectors: Optional[Iterable[str]] = None) -> None:
        self.selectors: List[str] = list(selectors) if selectors is not None else list(DEFAULT_MOUNT_SELECTORS)

    def detect(
        self,
        html: str,
        extra_selectors: Sequence[str] = (),
        validator: Optional[SafeInjectionValidator] = None,
    ) -> Optional[MountPoint]:
        """
        Find the earliest mount element.

        Attribute matches inside real tags are preferred. A selector matched
        only inside a script, style or comment is reported with
        ``safe=False`` at the match offset.

        Returns:
            The earliest safe mount point, else the earliest unsafe one
            (``safe=False``), else None
        """
        validator = validator or SafeInjectionValidator(html)
        candidates: List[MountPoint] = []

        selectors: List[str] = []
        for selector in list(self.selectors) + list(extra_selectors):
            if selector not in selectors:
                selectors.append(selector)

        for selector in selectors:
            pattern = selector_pattern(selector)
            if pattern is None:
                continue
            unsafe: Optional[MountPoint] = None
            for match in pattern.finditer(html):
                span = validator.span_at(match.start())
                if span is None:
                    continue
                if span.kind in _RAW_TEXT_KINDS:
                    if unsafe is None:
                        unsafe = MountPoint(selector, match.start(), match.group(), False)
                    continue
                if span.kind is not SpanKind.TAG_ATTRIBUTE:
                    continue
                position = span.start
                candidates.append(
                    MountPoint(selector, position, match.group(), validator.is_safe(position))
                )
                break
            else:
                if unsafe is not None:
                    candidates.append(unsafe)

        if not candidates:
            return None

        safe = [point for point in candidates if point.safe]
        pool = safe or candidates
        return min(pool, key=lambda point: point.position)


class EarliestInjectionDetector:
    """
    Earliest safe injection point for head-first hydration.

    Candidates, in order: after the last ``<link>`` in head, after the last
    ``<meta>``, after the first ``</script>``, before ``</head>``. Pages
    without a head fall back to just before ``<body>``. Each candidate is
    used as is when safe, else the nearest safe point before it, else
    after it.
    """

    def detect(
        self,
        html: str,
        validator: Optional[SafeInjectionValidator] = None,
    ) -> Optional[int]:
        validator = validator or SafeInjectionValidator(html)

        head = self._find_head(html, validator)
        if head is not None:
            head_start, head_end = head
            candidates = [
                self._after_last(_LINK_TAG, html, head_start, head_end, validator),
                self._after_last(_META_TAG, html, head_start, head_end, validator),
                self._after_first_script(html, head_start, head_end, validator),
                head_end,
            ]
            for candidate in candidates:
                position = self._safe_position(validator, candidate)
                if position is not None:
                    return position

        body = self._first_real(_BODY_OPEN, html, 0, len(html), validator)
        if body is not None:
            return self._safe_position(validator, body.start())

        return None

    def _find_head(self, html: str, validator: SafeInjectionValidator):
        opening = self._first_real(_HEAD_OPEN, html, 0, len(html), validator)
        if opening is None:
            return None
        closing = self._first_real(_HEAD_CLOSE, html, opening.end(), len(html), validator)
        if closing is None:
            return None
        return opening.end(), closing.start()

    @staticmethod
    def _is_tag(match: re.Match, validator: SafeInjectionValidator) -> bool:
        """True when ``match`` is a real tag, not text inside another region."""
        return validator.is_safe(match.start())

    def _first_real(self, pattern: Pattern[str], html: str, start: int, end: int, validator):
        for match in pattern.finditer(html, start, end):
            if self._is_tag(match, validator):
                return match
        return None

    def _after_last(self, pattern, html, start, end, validator) -> Optional[int]:
        last = None
        for match in pattern.finditer(html, start, end):
            if self._is_tag(match, validator):
                last = match.end()
        return last

    def _after_first_script(self, html, start, end, validator) -> Optional[int]:
        for match in _SCRIPT_CLOSE.finditer(html, start, end):
            span = validator.span_at(match.start())
            if span is not None and span.kind is SpanKind.SCRIPT:
                return match.end()
        return None

    @staticmethod
    def _safe_position(validator: SafeInjectionValidator, position: Optional[int]) -> Optional[int]:
        if position is None:
            return None
        if validator.is_safe(position):
            return position
        before = validator.nearest_safe_before(position)
        if before is not None:
            return before
        return validator.nearest_safe_after(position)
