"""Tests for full view rendering."""

import re

import pytest

from nexasfc.core.config import HydrationSettings, SFCConfig
from nexasfc.engine.context import Context
from nexasfc.engine.loader import DictLoader
from nexasfc.errors import HydrationCollisionError, RenderError, TemplateNotFoundError
from nexasfc.view import View

PAGE_HTML = (
    "<html><head><title>Home</title></head>"
    '<body><div id="app"><h1>Hello Ada</h1><p>card</p></div></body></html>'
)


@pytest.fixture
def templates(make_sfc):
    return {
        "layouts/main": make_sfc(
            "<html><head><title>{{title}}</title></head><body>{{{content}}}</body></html>",
            '{"site": "Nexa"}',
            window="appData",
        ),
        "pages/home": make_sfc(
            '<div id="app"><h1>Hello {{user.name}}</h1>{{> card}}</div>',
            '{"user": "{{user.name}}"}',
            window="pageData",
            layout="layouts/main",
        ),
        "card": make_sfc("<p>card</p>", ""),
    }


@pytest.fixture
def view(templates, context, sfc_config):
    return View(DictLoader(templates), context, sfc_config)


class TestRendering:
    def test_template_only_wraps_layout(self, view):
        assert view.render_template_only("pages/home") == PAGE_HTML

    def test_data_hash(self, view):
        assert view.data_hash("pages/home") == {
            "appData": {"site": "Nexa"},
            "data": {},
            "pageData": {"user": "Ada"},
        }

    def test_render_injects_before_body_close(self, view):
        html = view.render("pages/home")
        assert html.startswith(PAGE_HTML[:PAGE_HTML.index("</body>")])
        assert html.endswith("</body></html>")
        for window in ("appData", "data", "pageData"):
            assert f"window.{window} = JSON.parse" in html
            assert html.index(f"nexa-data-{window}") < html.index("</body>")

    def test_hydration_only(self, view):
        markup = view.render_hydration_only("pages/home")
        assert markup.startswith('<script id="nexa-data-appData"')
        assert "<html>" not in markup

    def test_nested_layouts(self, make_sfc, sfc_config):
        loader = DictLoader({
            "page": make_sfc("P", layout="inner"),
            "inner": make_sfc("<i>{{{content}}}</i>", window="innerData", layout="outer"),
            "outer": make_sfc("<o>{{{content}}}</o>", window="outerData"),
        })
        assert View(loader, Context(), sfc_config).render_template_only("page") == "<o><i>P</i></o>"

    def test_output_is_repeatable(self, view):
        assert view.render("pages/home") == view.render("pages/home")


class TestStrategies:
    def test_early(self, templates, context):
        config = SFCConfig(auto_nonce=False, hydration=HydrationSettings(strategy="early"))
        html = View(DictLoader(templates), context, config).render("pages/home")
        assert html.index("nexa-data-pageData") < html.index('<div id="app"')
        assert html.index("<body>") < html.index("nexa-data-appData")

    def test_preload_goes_in_head(self, templates, context):
        config = SFCConfig(auto_nonce=False, hydration=HydrationSettings(strategy="preload"))
        html = View(DictLoader(templates), context, config).render("pages/home")
        assert '<link rel="preload" href="/api/hydration/pages/home"' in html
        assert html.index('rel="preload"') < html.index("</head>")
        assert "nexa-data-" not in html


class TestNonces:
    def test_nonce_from_context(self, templates, sfc_config):
        view = View(DictLoader(templates), Context(server={"nonce": "fixed"}), sfc_config)
        assert view.nonce == "fixed"
        assert view.render("pages/home").count('nonce="fixed"') == 6

    def test_generated_nonce(self, make_sfc):
        loader = DictLoader({"page": make_sfc('<script nonce="{{nonce}}"></script>', '{"a": 1}')})
        view = View(loader, Context(), SFCConfig())
        assert re.fullmatch(r"[0-9a-f]{32}", view.nonce)
        assert view.render_template_only("page") == f'<script nonce="{view.nonce}"></script>'
        name, value = view.csp_header()
        assert name == "Content-Security-Policy"
        assert f"'nonce-{view.nonce}'" in value

    def test_no_nonce(self, view):
        assert view.nonce is None
        assert "nonce=" not in view.render("pages/home")

    def test_csp_disabled(self, templates):
        view = View(DictLoader(templates), Context(), SFCConfig(csp_enabled=False))
        assert view.csp_header() is None


class TestErrors:
    def test_missing_template(self, view):
        with pytest.raises(RenderError) as info:
            view.render("pages/missing")
        assert "Failed to render template 'pages/missing'" in str(info.value)
        assert isinstance(info.value.__cause__, TemplateNotFoundError)

    def test_collision(self, make_sfc, sfc_config):
        loader = DictLoader({
            "page": make_sfc("x", '{"a": 1}', window="appData", layout="main"),
            "main": make_sfc("{{{content}}}", '{"b": 1}', window="appData"),
        })
        with pytest.raises(RenderError) as info:
            View(loader, Context(), sfc_config).render("page")
        assert isinstance(info.value.__cause__, HydrationCollisionError)

    def test_each_render_uses_a_fresh_registry(self, view):
        view.render("pages/home")
        view.render("pages/home")


class TestCaching:
    @pytest.fixture
    def counting_loader(self, templates):
        calls = []

        def load(name):
            calls.append(name)
            return templates.get(name)

        load.calls = calls
        return load

    def test_compositions_are_cached(self, counting_loader, context, sfc_config):
        cache = {}
        View(counting_loader, context, sfc_config, cache).render("pages/home")
        View(counting_loader, context, sfc_config, cache).render("pages/home")
        assert counting_loader.calls.count("pages/home") == 1
        assert "pages/home" in cache

    def test_cache_disabled(self, counting_loader, context):
        config = SFCConfig(auto_nonce=False, cache_templates=False)
        view = View(counting_loader, context, config)
        view.render("pages/home")
        view.render("pages/home")
        assert counting_loader.calls.count("pages/home") == 2
