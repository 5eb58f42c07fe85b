"""
NexaSFC Hydration Injector
==========================

Splices hydration markup into a rendered page.

Strategies:
    late           before ``</body>`` (default, always available)
    early          before the detected mount element
    earliest       in ``<head>``, or before ``<body>``
    link, prefetch, preload, modulepreload, lazy
                   resource hints pointing at the hydration endpoint,
                   placed like ``earliest``

When the preferred position is missing or unsafe the injector falls back
to late injection, or leaves the page untouched when fallbacks are
disabled. It never raises for an unsafe page, and the output differs from
the input only at the insertion point.
"""

from __future__ import annotations

import re
from typing import Optional

from nexasfc.core.config import HydrationSettings, InjectionStrategy
from nexasfc.hydration.detectors import (
    EarliestInjectionDetector,
    MountPoint,
    MountPointDetector,
)
from nexasfc.hydration.validator import SafeInjectionValidator
from nexasfc.utils.logger import get_logger

logger = get_logger("nexasfc.hydration")

_BODY_CLOSE = re.compile(r"</body\s*>", re.IGNORECASE)
_HTML_CLOSE = re.compile(r"</html\s*>", re.IGNORECASE)


def splice(html: str, position: int, markup: str) -> str:
    """Insert ``markup`` (plus a newline) at ``position``."""
    return f"{html[:position]}{markup}\n{html[position:]}"


class HydrationInjector:
    """
    Insert hydration markup according to the configured strategy.

    Example:
        injector = HydrationInjector(HydrationSettings(strategy="early"), "pages/home")
        html = injector.inject(page_html, hydration_markup)
    """

    def __init__(
        self,
        settings: Optional[HydrationSettings] = None,
        template_name: Optional[str] = None,
    ) -> None:
        self.settings = settings or HydrationSettings()
        self.template_name = template_name
        self.mount_detector = MountPointDetector(self.settings.mount_point_selectors)
        self.earliest_detector = EarliestInjectionDetector()
        self.logger = logger.with_context(template=template_name or "<inline>")

    @property
    def strategy(self) -> InjectionStrategy:
        return self.settings.strategy

    def early_disabled(self) -> bool:
        """True when this template is excluded from early injection."""
        return bool(
            self.template_name
            and self.template_name in self.settings.disable_early_for_templates
        )

    def inject(
        self,
        html: str,
        markup: str,
        mount_point: Optional[MountPoint] = None,
    ) -> str:
        """
        Insert ``markup`` into ``html``.

        Args:
            html: Rendered page
            markup: Hydration markup
            mount_point: Pre-computed mount point for early injection;
                detected from ``html`` when omitted

        Returns:
            The page with markup inserted, or unchanged when no safe
            position exists and fallbacks are disabled
        """
        if not markup or not markup.strip():
            return html

        strategy = self.strategy
        if strategy is not InjectionStrategy.LATE and self.early_disabled():
            self.logger.debug("Early injection disabled", strategy=strategy.value)
            return self.inject_late(html, markup)

        if strategy is InjectionStrategy.EARLY:
            return self.inject_early(html, markup, mount_point)
        if strategy is InjectionStrategy.EARLIEST or strategy.is_link_based:
            return self.inject_earliest(html, markup)
        return self.inject_late(html, markup)

    def inject_early(
        self,
        html: str,
        markup: str,
        mount_point: Optional[MountPoint] = None,
    ) -> str:
        validator = SafeInjectionValidator(html)
        if mount_point is None:
            mount_point = self.mount_detector.detect(html, validator=validator)

        if mount_point is None:
            self.logger.debug("No mount point found")
            return self._fallback(html, markup, self.settings.fallback_to_late)

        position = mount_point.position
        if not (mount_point.safe and validator.is_safe(position)):
            self.logger.warning(
                "Mount point is not a safe injection point",
                selector=mount_point.selector,
                position=position,
            )
            return self._fallback(html, markup, self.settings.fallback_when_unsafe)

        self.logger.debug("Injecting before mount point", selector=mount_point.selector)
        return splice(html, position, markup)

    def inject_earliest(self, html: str, markup: str) -> str:
        position = self.earliest_detector.detect(html)
        if position is None:
            self.logger.debug("No head or body injection point")
            return self._fallback(html, markup, self.settings.fallback_to_late)
        return splice(html, position, markup)

    def inject_late(self, html: str, markup: str) -> str:
        """
        Insert before the last real ``</body>``, else ``</html>``, else append.
        """
        validator = SafeInjectionValidator(html)
        for pattern in (_BODY_CLOSE, _HTML_CLOSE):
            position = None
            for match in pattern.finditer(html):
                if validator.is_safe(match.start()):
                    position = match.start()
            if position is not None:
                return splice(html, position, markup)

        if html and not html.endswith("\n"):
            return f"{html}\n{markup}"
        return f"{html}{markup}"

    def _fallback(self, html: str, markup: str, allowed: bool) -> str:
        if allowed:
            return self.inject_late(html, markup)
        self.logger.warning("Hydration skipped, no safe injection point")
        return html
