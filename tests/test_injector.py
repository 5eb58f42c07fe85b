"""Tests for hydration injection strategies."""

import pytest

from nexasfc.core.config import HydrationSettings, InjectionStrategy
from nexasfc.hydration.detectors import MountPoint
from nexasfc.hydration.injector import HydrationInjector, splice

MARKUP = "<script>hydrate()</script>"

PAGE = (
    "<html><head><title>T</title></head>"
    '<body><nav></nav><div id="app"></div></body></html>'
)


def injector(strategy="late", template_name=None, **options):
    return HydrationInjector(HydrationSettings(strategy=strategy, **options), template_name)


def inserted_at(html, position):
    return splice(html, position, MARKUP)


class TestLateInjection:
    def test_before_body_close(self):
        result = injector().inject(PAGE, MARKUP)
        assert result == inserted_at(PAGE, PAGE.index("</body>"))

    def test_ignores_body_close_inside_script(self):
        html = '<body><script>var s = "</body>";</script></body>'
        result = injector().inject(html, MARKUP)
        assert result == inserted_at(html, html.rindex("</body>"))

    def test_falls_back_to_html_close(self):
        html = "<html><p>x</p></html>"
        assert injector().inject(html, MARKUP) == inserted_at(html, html.index("</html>"))

    def test_appends_to_fragments(self):
        assert injector().inject("<p>x</p>", MARKUP) == "<p>x</p>\n" + MARKUP
        assert injector().inject("<p>x</p>\n", MARKUP) == "<p>x</p>\n" + MARKUP

    @pytest.mark.parametrize("markup", ["", "   \n"])
    def test_empty_markup_is_a_no_op(self, markup):
        assert injector("early").inject(PAGE, markup) == PAGE


class TestEarlyInjection:
    def test_before_mount_point(self):
        result = injector("early").inject(PAGE, MARKUP)
        assert result == inserted_at(PAGE, PAGE.index('<div id="app"'))

    def test_missing_mount_falls_back_to_late(self):
        html = "<body><p>x</p></body>"
        result = injector("early").inject(html, MARKUP)
        assert result == inserted_at(html, html.index("</body>"))

    def test_missing_mount_without_fallback(self):
        html = "<body><p>x</p></body>"
        assert injector("early", fallback_to_late=False).inject(html, MARKUP) == html

    def test_unsafe_mount_point(self):
        html = "<body><script>var app = 1;</script></body>"
        inside = html.index("var")
        point = MountPoint("#app", inside, 'id="app"', False)
        late = inserted_at(html, html.index("</body>"))
        assert injector("early").inject(html, MARKUP, point) == late
        assert injector("early", fallback_when_unsafe=False).inject(html, MARKUP, point) == html

    @pytest.mark.parametrize("html", [
        "<body><script>document.write('<div id=\"app\"></div>');</script><p>x</p></body>",
        '<body><!-- <div id="app"></div> --><p>x</p></body>',
    ])
    def test_mount_only_in_raw_text(self, html):
        assert injector("early", fallback_when_unsafe=False).inject(html, MARKUP) == html
        late = inserted_at(html, html.index("</body>"))
        assert injector("early", fallback_to_late=False).inject(html, MARKUP) == late

    def test_custom_selectors(self):
        html = '<body><section class="island"></section></body>'
        result = injector("early", mount_point_selectors=[".island"]).inject(html, MARKUP)
        assert result == inserted_at(html, html.index("<section"))

    def test_disabled_templates_use_late(self):
        inj = injector("early", template_name="pages/admin", disable_early_for_templates=["pages/admin"])
        assert inj.early_disabled()
        assert inj.inject(PAGE, MARKUP) == inserted_at(PAGE, PAGE.index("</body>"))


class TestEarliestInjection:
    def test_in_head(self):
        result = injector("earliest").inject(PAGE, MARKUP)
        assert result == inserted_at(PAGE, PAGE.index("</head>"))

    def test_no_head_or_body_falls_back(self):
        result = injector("earliest").inject("<p>x</p>", MARKUP)
        assert result == "<p>x</p>\n" + MARKUP

    @pytest.mark.parametrize("strategy", ["link", "prefetch", "preload", "modulepreload", "lazy"])
    def test_link_strategies_go_in_head(self, strategy):
        result = injector(strategy).inject(PAGE, MARKUP)
        assert result == inserted_at(PAGE, PAGE.index("</head>"))


def test_only_the_insertion_point_changes():
    inj = injector("early")
    result = inj.inject(PAGE, MARKUP)
    position = PAGE.index('<div id="app"')
    assert result[:position] == PAGE[:position]
    assert result[position + len(MARKUP) + 1:] == PAGE[position:]


def test_strategy_is_parsed():
    assert injector("EARLIEST").strategy is InjectionStrategy.EARLIEST
