"""Tests for the document parser."""

import pytest

from nexasfc.engine.document import DocumentParser, looks_like_document, parse_document
from nexasfc.errors import (
    DuplicateSectionError,
    EmptyDocumentError,
    MissingSectionError,
    ParseError,
    UnknownSectionError,
)

FULL = """<data window="appData" layout="layouts/main" merge="deep">
  {"user": "{{user.name}}"}
</data>

<template>
  <h1>{{> header}} Hello {{user.name}}</h1>
</template>

<!-- notes -->
<logic>
  anything goes here {{ not parsed
</logic>
"""


class TestDocumentParser:
    def test_parses_all_sections(self):
        document = parse_document(FULL, name="pages/home")
        assert document.section_names == ["data", "template", "logic"]
        assert document.window == "appData"
        assert document.layout == "layouts/main"
        assert document.merge_strategy == "deep"
        assert document.partials() == ["header"]
        assert "user.name" in document.variables()
        assert "not parsed" in document.logic

    def test_sections_in_any_order(self):
        source = "<template>x</template><logic></logic><data>{}</data>"
        document = parse_document(source)
        assert sorted(document.section_names) == ["data", "logic", "template"]

    def test_defaults(self):
        document = parse_document("<data>{}</data><template>x</template>")
        assert document.window == "data"
        assert document.layout is None
        assert document.merge_strategy is None
        assert document.logic is None
        assert document.is_schema is False

    def test_schema_section(self):
        source = '<schema lang="js-zod" window="pageData">const s = z.object({})</schema><template>x</template>'
        document = parse_document(source)
        assert document.is_schema
        assert document.schema_lang == "js-zod"
        assert document.window == "pageData"

    def test_source_location_uses_data_line(self):
        source = "\n\n<data>{}</data><template>x</template>"
        assert parse_document(source, name="pages/home").source_location() == "pages/home:3"
        assert parse_document(source).source_location() == "<string>:3"

    def test_single_quoted_and_bare_attributes(self):
        document = parse_document("<data window='a' version>{}</data><template></template>")
        assert document.data_attributes["window"] == "a"
        assert document.data_attributes["version"] == ""

    def test_template_errors_are_document_absolute(self):
        source = "<data>{}</data>\n<template>\n  {{#if x}}\n</template>"
        with pytest.raises(ParseError) as info:
            parse_document(source)
        assert (info.value.line, info.value.column) == (3, 3)
        assert info.value.source_type == "markup"

    def test_unknown_data_attribute_logs_warning(self, log_records):
        parse_document('<data bogus="1">{}</data><template></template>', name="x")
        assert "Unknown data section attribute" in log_records.messages()


class TestDocumentValidation:
    def test_empty(self):
        with pytest.raises(EmptyDocumentError):
            parse_document("  \n ")

    def test_missing_template(self):
        with pytest.raises(MissingSectionError) as info:
            parse_document("<data>{}</data>")
        assert info.value.sections == ["template"]
        assert "template" in str(info.value)

    def test_missing_data(self):
        with pytest.raises(MissingSectionError) as info:
            parse_document("<template>x</template>")
        assert info.value.sections == ["data"]
        assert "data (or schema)" in str(info.value)

    def test_missing_both(self):
        with pytest.raises(MissingSectionError) as info:
            parse_document("<logic></logic>")
        assert info.value.sections == ["data", "template"]

    def test_duplicate_section(self):
        with pytest.raises(DuplicateSectionError) as info:
            parse_document("<data>{}</data><template>a</template><template>b</template>")
        assert info.value.sections == ["template"]

    def test_data_and_schema_together(self):
        source = '<data>{}</data><schema lang="js-zod"></schema><template>x</template>'
        with pytest.raises(DuplicateSectionError) as info:
            parse_document(source)
        assert "data/schema" in info.value.sections

    def test_unknown_section(self):
        with pytest.raises(UnknownSectionError) as info:
            parse_document("<data>{}</data><template>x</template><style>p{}</style>")
        assert info.value.sections == ["style"]

    def test_missing_checked_before_unknown(self):
        with pytest.raises(MissingSectionError):
            parse_document("<template>x</template><style></style>")

    @pytest.mark.parametrize("source, message", [
        ("hello <data>{}</data>", "Unexpected text outside of sections"),
        ("<data>{}", "Missing closing tag </data>"),
        ("<data window=app>{}</data>", "must be quoted"),
        ('<data window="a" window="b">{}</data>', "Duplicate attribute"),
        ("<data", "Unterminated opening tag"),
    ])
    def test_malformed_structure(self, source, message):
        with pytest.raises(ParseError) as info:
            parse_document(source)
        assert message in info.value.message
        assert info.value.source_type == "document"

    def test_schema_requires_lang(self):
        with pytest.raises(ParseError) as info:
            parse_document("<schema></schema><template>x</template>")
        assert "lang" in info.value.message


class TestHelpers:
    def test_looks_like_document(self):
        assert looks_like_document("  <template>x</template>")
        assert looks_like_document("<data>{}</data>")
        assert not looks_like_document("<div>{{x}}</div>")
        assert not looks_like_document("{{x}}")

    def test_parser_accepts_custom_tokenizer(self):
        class RecordingTokenizer:
            def __init__(self):
                self.calls = 0

            def tokenize(self, source):
                from nexasfc.engine.document import ScanningTokenizer
                self.calls += 1
                return ScanningTokenizer().tokenize(source)

        tokenizer = RecordingTokenizer()
        DocumentParser(tokenizer).parse("<data>{}</data><template></template>")
        assert tokenizer.calls == 1
