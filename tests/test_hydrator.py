"""Tests for hydration markup and link-based strategies."""

import pytest

from nexasfc.core.config import HydrationSettings
from nexasfc.errors import ValidationError
from nexasfc.hydration.hydrator import Hydrator
from nexasfc.hydration.links import HYDRATED_EVENT, LinkStrategyRenderer
from nexasfc.utils import serializer


class TestHydrator:
    def test_markup_structure(self):
        markup = Hydrator().build_markup("appData", {"user": "Ada"}, nonce="abc123")
        data_script, loader_script = markup.split("\n")
        assert data_script == (
            '<script id="nexa-data-appData" type="application/json" '
            'data-window="appData" nonce="abc123">{"user":"Ada"}</script>'
        )
        assert loader_script == (
            '<script nonce="abc123">window.appData = '
            "JSON.parse(document.getElementById('nexa-data-appData').textContent);</script>"
        )

    def test_without_nonce(self):
        markup = Hydrator().build_markup("data", {})
        assert "nonce" not in markup
        assert "<script>window.data = " in markup

    def test_payload_cannot_close_the_script(self):
        data = {"html": "</script><script>alert(1)</script>", "amp": "a&b"}
        markup = Hydrator().build_markup("data", data)
        payload = markup.split(">", 1)[1].split("</script>", 1)[0]
        assert "<" not in payload
        assert "&" not in payload
        assert serializer.loads(payload) == data

    def test_line_separators_are_escaped(self):
        markup = Hydrator().build_markup("data", {"text": "a\u2028b\u2029c"})
        assert "\u2028" not in markup
        assert "\u2029" not in markup
        assert "\\u2028" in markup and "\\u2029" in markup

    def test_nonce_is_attribute_escaped(self):
        markup = Hydrator().build_markup("data", {}, nonce='x"><script>')
        assert 'nonce="x&quot;&gt;&lt;script&gt;"' in markup

    @pytest.mark.parametrize("window", ["", "1abc", "app-data", "window.x", "class", "a b"])
    def test_invalid_window_names(self, window):
        with pytest.raises(ValidationError):
            Hydrator().build_markup(window, {})

    def test_build_all_keeps_order(self):
        markup = Hydrator().build_all({"b": 1, "a": 2})
        assert markup.index("nexa-data-b") < markup.index("nexa-data-a")
        assert markup.count("<script") == 4

    def test_build_all_empty(self):
        assert Hydrator().build_all({}) == ""


class TestLinkStrategyRenderer:
    @pytest.fixture
    def renderer(self):
        return LinkStrategyRenderer(HydrationSettings(api_endpoint_path="/api/hydration/"))

    def test_link(self, renderer):
        markup = renderer.render("link", "pages/home", "appData", "n1")
        assert markup.startswith('<link href="/api/hydration/pages/home" type="application/json">')
        assert '<script nonce="n1" data-hydration-target="appData">' in markup
        assert "window.appData = data;" in markup
        assert HYDRATED_EVENT in markup

    def test_prefetch_with_crossorigin(self, renderer):
        markup = renderer.render("prefetch", "home", "appData")
        assert '<link rel="prefetch" href="/api/hydration/home" as="fetch" crossorigin>' in markup

    def test_preload_without_crossorigin(self):
        renderer = LinkStrategyRenderer(HydrationSettings(link_crossorigin=False))
        markup = renderer.render("preload", "home", "appData")
        assert '<link rel="preload" href="/api/hydration/home" as="fetch">' in markup
        assert "fetch('/api/hydration/home')" in markup

    def test_modulepreload(self, renderer):
        markup = renderer.render("modulepreload", "home", "appData", "n1")
        assert '<link rel="modulepreload" href="/api/hydration/home.js">' in markup
        assert '<script type="module" nonce="n1" data-hydration-target="appData">' in markup
        assert "import data from '/api/hydration/home.js';" in markup

    def test_lazy(self):
        renderer = LinkStrategyRenderer(HydrationSettings(lazy_mount_selector="#root"))
        markup = renderer.render("lazy", "home", "appData")
        assert 'data-lazy-src="/api/hydration/home"' in markup
        assert "IntersectionObserver" in markup
        assert "document.querySelector('#root')" in markup

    def test_template_names_are_escaped(self, renderer):
        markup = renderer.render("preload", "x'\"<y", "appData")
        assert "x'\"<y" not in markup
        assert "x\\'\\\"\\x3cy" in markup

    def test_rejects_non_link_strategy(self, renderer):
        with pytest.raises(ValidationError):
            renderer.render("late", "home", "appData")

    def test_rejects_bad_window(self, renderer):
        with pytest.raises(ValidationError):
            renderer.render("link", "home", "app-data")
