"""
NexaSFC Link-Based Hydration
============================

Markup for strategies that fetch hydration data from an endpoint instead
of embedding it in the page:

    link            plain ``<link>`` plus an on-demand loader
    prefetch        ``rel="prefetch"``, loaded from the browser cache later
    preload         ``rel="preload"``, fetched and assigned immediately
    modulepreload   ``rel="modulepreload"`` of a ``.js`` module import
    lazy            fetched once the mount element becomes visible

Every loader assigns ``window.<name>`` and dispatches a
``nexasfc:hydrated`` event with ``{target, data}`` as detail.
"""

from __future__ import annotations

from typing import Optional, Union

from nexasfc.core.config import HydrationSettings, InjectionStrategy
from nexasfc.errors import ValidationError
from nexasfc.hydration.hydrator import nonce_attribute
from nexasfc.security.xss import escape_attribute, escape_js, is_js_identifier

HYDRATED_EVENT = "nexasfc:hydrated"


class LinkStrategyRenderer:
    """
    Render link hints and loader scripts.

    Example:
        renderer = LinkStrategyRenderer(HydrationSettings(strategy="preload"))
        markup = renderer.render("preload", "pages/home", "appData", nonce)
    """

    def __init__(self, settings: Optional[HydrationSettings] = None) -> None:
        self.settings = settings or HydrationSettings()

    def endpoint_url(self, template_name: str, suffix: str = "") -> str:
        base = self.settings.api_endpoint_path.rstrip("/")
        return f"{base}/{template_name.lstrip('/')}{suffix}"

    def render(
        self,
        strategy: Union[str, InjectionStrategy],
        template_name: str,
        window: str,
        nonce: Optional[str] = None,
    ) -> str:
        """
        Markup for a link-based strategy.

        Raises:
            ValidationError: Unknown or non link-based strategy, or a window
                name that is not a JavaScript identifier
        """
        strategy = InjectionStrategy.parse(strategy)
        if not strategy.is_link_based:
            raise ValidationError(f"Not a link-based strategy: {strategy.value}")
        if not is_js_identifier(window):
            raise ValidationError(f"Invalid window attribute name: {window!r}")

        builder = getattr(self, f"_render_{strategy.value}")
        return builder(template_name, window, nonce)

    def _crossorigin(self) -> str:
        return " crossorigin" if self.settings.link_crossorigin else ""

    def _dispatch(self, window: str) -> str:
        return (
            f"window.dispatchEvent(new CustomEvent('{HYDRATED_EVENT}', "
            f"{{detail: {{target: '{window}', data: data}}}}));"
        )

    def _render_link(self, template_name: str, window: str, nonce: Optional[str]) -> str:
        url = self.endpoint_url(template_name)
        return (
            f'<link href="{escape_attribute(url)}" type="application/json">\n'
            f'<script{nonce_attribute(nonce)} data-hydration-target="{window}">\n'
            "window.__nexasfc__ = window.__nexasfc__ || {};\n"
            "window.__nexasfc__.loadData = function() {\n"
            f"  return fetch('{escape_js(url)}')\n"
            "    .then(function(response) { return response.json(); })\n"
            "    .then(function(data) {\n"
            f"      window.{window} = data;\n"
            f"      {self._dispatch(window)}\n"
            "      return data;\n"
            "    });\n"
            "};\n"
            "</script>"
        )

    def _render_prefetch(self, template_name: str, window: str, nonce: Optional[str]) -> str:
        url = self.endpoint_url(template_name)
        return (
            f'<link rel="prefetch" href="{escape_attribute(url)}" as="fetch"{self._crossorigin()}>\n'
            f'<script{nonce_attribute(nonce)} data-hydration-target="{window}">\n'
            "window.__nexasfc__ = window.__nexasfc__ || {};\n"
            "window.__nexasfc__.loadPrefetched = function() {\n"
            f"  return fetch('{escape_js(url)}')\n"
            "    .then(function(response) { return response.json(); })\n"
            "    .then(function(data) {\n"
            f"      window.{window} = data;\n"
            f"      {self._dispatch(window)}\n"
            "      return data;\n"
            "    });\n"
            "};\n"
            "</script>"
        )

    def _render_preload(self, template_name: str, window: str, nonce: Optional[str]) -> str:
        url = self.endpoint_url(template_name)
        return (
            f'<link rel="preload" href="{escape_attribute(url)}" as="fetch"{self._crossorigin()}>\n'
            f'<script{nonce_attribute(nonce)} data-hydration-target="{window}">\n'
            f"fetch('{escape_js(url)}')\n"
            "  .then(function(response) { return response.json(); })\n"
            "  .then(function(data) {\n"
            f"    window.{window} = data;\n"
            f"    {self._dispatch(window)}\n"
            "  })\n"
            "  .catch(function(error) {\n"
            f"    console.error('Hydration preload failed for {window}:', error);\n"
            "  });\n"
            "</script>"
        )

    def _render_modulepreload(self, template_name: str, window: str, nonce: Optional[str]) -> str:
        url = self.endpoint_url(template_name, ".js")
        return (
            f'<link rel="modulepreload" href="{escape_attribute(url)}">\n'
            f'<script type="module"{nonce_attribute(nonce)} data-hydration-target="{window}">\n'
            f"import data from '{escape_js(url)}';\n"
            f"window.{window} = data;\n"
            f"{self._dispatch(window)}\n"
            "</script>"
        )

    def _render_lazy(self, template_name: str, window: str, nonce: Optional[str]) -> str:
        url = self.endpoint_url(template_name)
        selector = self.settings.lazy_mount_selector
        return (
            f'<script{nonce_attribute(nonce)} data-hydration-target="{window}" '
            f'data-lazy-src="{escape_attribute(url)}">\n'
            "(function() {\n"
            "  function load() {\n"
            f"    var target = document.querySelector('{escape_js(selector)}');\n"
            "    if (!target || !('IntersectionObserver' in window)) { return fetchData(); }\n"
            "    var observer = new IntersectionObserver(function(entries) {\n"
            "      entries.forEach(function(entry) {\n"
            "        if (entry.isIntersecting) {\n"
            "          observer.disconnect();\n"
            "          fetchData();\n"
            "        }\n"
            "      });\n"
            "    });\n"
            "    observer.observe(target);\n"
            "  }\n"
            "  function fetchData() {\n"
            f"    return fetch('{escape_js(url)}')\n"
            "      .then(function(response) { return response.json(); })\n"
            "      .then(function(data) {\n"
            f"        window.{window} = data;\n"
            f"        {self._dispatch(window)}\n"
            "      });\n"
            "  }\n"
            "  if (document.readyState === 'loading') {\n"
            "    document.addEventListener('DOMContentLoaded', load);\n"
            "  } else {\n"
            "    load();\n"
            "  }\n"
            "})();\n"
            "</script>"
        )
