"""Tests for template loaders."""

from nexasfc.engine.loader import DictLoader, FileSystemLoader


class TestFileSystemLoader:
    def test_loads_with_extension(self, tmp_path):
        (tmp_path / "pages").mkdir()
        (tmp_path / "pages" / "home.sfc").write_text("<data>{}</data><template>hi</template>")
        loader = FileSystemLoader(tmp_path)
        assert loader("pages/home").endswith("<template>hi</template>")
        assert loader("pages/home.sfc") == loader("pages/home")
        assert loader.exists("pages/home")

    def test_search_order(self, tmp_path):
        first, second = tmp_path / "a", tmp_path / "b"
        first.mkdir()
        second.mkdir()
        (second / "x.sfc").write_text("from b")
        (first / "x.sfc").write_text("from a")
        assert FileSystemLoader(first, second)("x") == "from a"

    def test_missing(self, tmp_path):
        assert FileSystemLoader(tmp_path)("nope") is None

    def test_cannot_escape_search_path(self, tmp_path):
        root = tmp_path / "views"
        root.mkdir()
        (tmp_path / "secret.sfc").write_text("secret")
        loader = FileSystemLoader(root)
        assert loader("../secret") is None
        assert not loader.exists("../secret")

    def test_custom_extension(self, tmp_path):
        (tmp_path / "home.rue").write_text("x")
        assert FileSystemLoader(tmp_path, extension=".rue")("home") == "x"


def test_dict_loader():
    loader = DictLoader({"a": "source"})
    loader.add("b", "other")
    assert loader("a") == "source"
    assert loader("b") == "other"
    assert loader("c") is None
    assert loader.exists("b")
