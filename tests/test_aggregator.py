"""Tests for hydration data aggregation."""

import pytest

from nexasfc.engine.composition import resolve_composition
from nexasfc.engine.context import Context
from nexasfc.engine.loader import DictLoader
from nexasfc.errors import HydrationCollisionError, HydrationError, ValidationError
from nexasfc.hydration.aggregator import HydrationDataAggregator, deep_merge
from nexasfc.hydration.registry import HydrationRegistry


def aggregate(templates, context=None, root="page", registry=None):
    composition = resolve_composition(root, DictLoader(templates))
    aggregator = HydrationDataAggregator(context or Context(), registry=registry)
    return aggregator.aggregate(composition)


class TestPayloads:
    def test_data_section_is_rendered_then_parsed(self, make_sfc, context):
        templates = {"page": make_sfc("x", '{"name": "{{user.name}}", "roles": {{{user.roles}}}}', window="appData")}
        assert aggregate(templates, context) == {"appData": {"name": "Ada", "roles": ["admin", "dev"]}}

    def test_default_window(self, make_sfc):
        assert aggregate({"page": make_sfc("x", '{"a": 1}')}) == {"data": {"a": 1}}

    def test_empty_data_section(self, make_sfc):
        assert aggregate({"page": make_sfc("x", "  \n")}) == {"data": {}}

    def test_schema_section_uses_client_layer(self, context):
        templates = {
            "page": '<schema lang="js-zod" window="pageData">z.object({})</schema><template></template>',
        }
        assert aggregate(templates, context) == {
            "pageData": {"user": {"name": "Ada", "roles": ["admin", "dev"]}},
        }

    def test_invalid_json(self, make_sfc):
        with pytest.raises(HydrationError) as info:
            aggregate({"page": make_sfc("x", "{not json}")})
        assert "Invalid JSON in data section of page" in str(info.value)

    def test_windows_from_partials_and_layouts(self, make_sfc):
        templates = {
            "page": make_sfc("{{> card}}", '{"p": 1}', window="pageData", layout="layout"),
            "card": make_sfc("c", '{"c": 1}', window="cardData"),
            "layout": make_sfc("{{{content}}}", '{"l": 1}', window="appData"),
        }
        result = aggregate(templates)
        assert list(result) == ["appData", "cardData", "pageData"]

    def test_registry_records_claims(self, make_sfc):
        registry = HydrationRegistry()
        aggregate({"page": make_sfc("x", "{}", window="w")}, registry=registry)
        assert registry.get("w").source_location == "page:1"


class TestMerging:
    @pytest.fixture
    def layout(self, make_sfc):
        return make_sfc("{{{content}}}", '{"user": {"id": 1}, "theme": "dark"}', window="app")

    def test_collision_without_strategy(self, make_sfc, layout):
        templates = {"page": make_sfc("x", '{"a": 1}', window="app", layout="main"), "main": layout}
        with pytest.raises(HydrationCollisionError) as info:
            aggregate(templates)
        assert info.value.first_location == "main:1"
        assert info.value.conflict_location == "page:1"

    def test_deep_merge(self, make_sfc, layout):
        templates = {
            "page": make_sfc("x", '{"user": {"name": "Ada"}}', window="app", layout="main", merge="deep"),
            "main": layout,
        }
        assert aggregate(templates) == {"app": {"user": {"id": 1, "name": "Ada"}, "theme": "dark"}}

    def test_shallow_merge(self, make_sfc, layout):
        templates = {
            "page": make_sfc("x", '{"page": 2}', window="app", layout="main", merge="shallow"),
            "main": layout,
        }
        assert aggregate(templates) == {"app": {"user": {"id": 1}, "theme": "dark", "page": 2}}

    @pytest.mark.parametrize("strategy", ["shallow", "strict"])
    def test_conflicting_keys(self, make_sfc, layout, strategy):
        templates = {
            "page": make_sfc("x", '{"theme": "light"}', window="app", layout="main", merge=strategy),
            "main": layout,
        }
        with pytest.raises(HydrationCollisionError) as info:
            aggregate(templates)
        assert info.value.window_attribute == "app.theme"

    def test_unknown_strategy(self, make_sfc, layout):
        templates = {
            "page": make_sfc("x", "{}", window="app", layout="main", merge="fancy"),
            "main": layout,
        }
        with pytest.raises(ValidationError):
            aggregate(templates)

    def test_non_object_payloads_cannot_merge(self, make_sfc):
        templates = {
            "page": make_sfc("x", "[1]", window="app", layout="main", merge="deep"),
            "main": make_sfc("{{{content}}}", "[2]", window="app"),
        }
        with pytest.raises(HydrationError):
            aggregate(templates)


def test_deep_merge_does_not_mutate():
    target = {"a": {"b": 1}}
    result = deep_merge(target, {"a": {"c": 2}})
    assert result == {"a": {"b": 1, "c": 2}}
    assert target == {"a": {"b": 1}}
