"""Tests for render contexts."""

import pytest

from nexasfc.engine.context import Context, LoopContext, resolve_path


class TestContext:
    def test_client_wins_over_server_and_request(self):
        ctx = Context(request={"a": 1, "r": "req"}, server={"a": 2, "s": "srv"}, client={"a": 3})
        assert ctx.lookup("a") == 3
        assert ctx.lookup("s") == "srv"
        assert ctx.lookup("r") == "req"

    def test_layer_prefix(self):
        ctx = Context(server={"csrf": "tok"}, client={"csrf": "public"})
        assert ctx.lookup("csrf") == "public"
        assert ctx.lookup("server.csrf") == "tok"
        assert ctx.lookup("request.csrf") is None

    def test_layer_prefix_only_when_not_shadowed(self):
        ctx = Context(client={"server": {"name": "edge-1"}})
        assert ctx.lookup("server.name") == "edge-1"

    def test_paths(self):
        ctx = Context(client={"items": [{"title": "A"}, {"title": "B"}]})
        assert ctx.lookup("items.1.title") == "B"
        assert ctx.lookup("items.length") == 2
        assert ctx.lookup("items.5.title") is None
        assert ctx.lookup("missing.deep.path") is None
        assert ctx.lookup("") is None

    def test_get_and_has(self):
        ctx = Context.minimal(name="Ada")
        assert ctx.get("name") == "Ada"
        assert ctx.get("nope", "fallback") == "fallback"
        assert ctx.has("name")
        assert not ctx.has("nope")

    def test_immutable(self):
        source = {"user": {"name": "Ada"}}
        ctx = Context(client=source)
        source["user"]["name"] = "Grace"
        assert ctx.lookup("user.name") == "Ada"
        with pytest.raises(AttributeError):
            ctx.client = {}
        with pytest.raises(TypeError):
            ctx.client["user"] = {}

    def test_merge_returns_new_context(self):
        ctx = Context(server={"title": "Home"})
        merged = ctx.merge(server={"content": "<p>"})
        assert merged.lookup("content") == "<p>"
        assert merged.lookup("title") == "Home"
        assert ctx.lookup("content") is None

    def test_attribute_lookup_skips_callables_and_private(self):
        class User:
            name = "Ada"
            _secret = "x"

            def delete(self):
                return "boom"

        ctx = Context(client={"user": User()})
        assert ctx.lookup("user.name") == "Ada"
        assert ctx.lookup("user.delete") is None
        assert ctx.lookup("user._secret") is None

    def test_base_context_has_no_current_item(self):
        ctx = Context()
        assert ctx.current_item() is None
        assert ctx.current_index() is None


class TestLoopContext:
    def test_item_and_metadata(self):
        parent = Context(client={"title": "List"})
        loop = parent.for_item({"name": "B"}, 1, 3)
        assert isinstance(loop, LoopContext)
        assert loop.lookup("this.name") == "B"
        assert loop.lookup("name") == "B"
        assert loop.lookup("@index") == 1
        assert loop.lookup("@first") is False
        assert loop.lookup("@last") is False
        assert loop.current_item() == {"name": "B"}
        assert loop.current_index() == 1

    def test_delegates_misses_to_parent(self):
        parent = Context(client={"title": "List"})
        loop = parent.for_item("x", 0, 1)
        assert loop.lookup("title") == "List"
        assert loop.lookup(".") == "x"
        assert loop.lookup("@last") is True

    def test_nested_loops_chain(self):
        parent = Context(client={"title": "T"})
        outer = parent.for_item({"group": "g1"}, 0, 1)
        inner = outer.for_item("leaf", 2, 3, key="k")
        assert inner.lookup("group") == "g1"
        assert inner.lookup("title") == "T"
        assert inner.lookup("@key") == "k"
        assert inner.client["title"] == "T"


def test_resolve_path_on_plain_values():
    assert resolve_path({"a": {"b": [1, 2]}}, "a.b.0") == 1
    assert resolve_path("text", "upper") is None
