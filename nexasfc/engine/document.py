"""
NexaSFC Document Parser
=======================

Parser for single-file component documents (``.sfc``).

Document Format:
    <data window="appData" layout="layouts/main" merge="deep">
      {"user": "{{ user.name }}"}
    </data>

    <template>
      <h1>Hello {{ user.name }}</h1>
    </template>

    <logic>
      Free text, never evaluated.
    </logic>

A ``<schema lang="js-zod">`` section may replace ``<data>``. Sections can
appear in any order; ``data``/``schema`` and ``template`` are required.

Parser Architecture:
    1. Tokenizer: split the source into raw sections (SectionTokenizer)
    2. Validation: missing, then duplicate, then unknown sections
    3. Assembly: the template section is parsed as markup, the others
       keep their raw text
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Protocol, Tuple

from nexasfc.engine.markup import (
    Location,
    MarkupAST,
    MarkupNode,
    TextNode,
    parse_markup,
)
from nexasfc.errors import (
    DuplicateSectionError,
    EmptyDocumentError,
    MissingSectionError,
    ParseError,
    UnknownSectionError,
)
from nexasfc.utils.logger import get_logger

logger = get_logger("nexasfc.document")

DATA_SECTIONS = ("data", "schema")
KNOWN_SECTIONS = ("data", "schema", "template", "logic")
DATA_ATTRIBUTES = frozenset({"window", "layout", "merge", "lang", "version"})
DEFAULT_WINDOW = "data"

_TAG_NAME = re.compile(r"[A-Za-z]+")
_ATTR_NAME = re.compile(r"[A-Za-z_:][\w:.-]*")
_SECTION_START = re.compile(r"<\s*([A-Za-z]+)[\s>]")


@dataclass(frozen=True)
class RawSection:
    """Section as produced by a tokenizer, before validation."""
    tag: str
    attributes: Mapping[str, str]
    content: str
    location: Location
    content_location: Location


class SectionTokenizer(Protocol):
    """Splits document source into raw sections."""

    def tokenize(self, source: str) -> List[RawSection]:
        ...


class ScanningTokenizer:
    """
    Default section tokenizer.

    Scans ``<tag attr="value">...</tag>`` blocks at the top level. Content
    runs to the first literal closing tag, so sections cannot nest a tag of
    the same name. Whitespace and HTML comments between sections are
    ignored; anything else is an error.
    """

    def tokenize(self, source: str) -> List[RawSection]:
        return _SectionScanner(source).scan()


class _SectionScanner:
    """Cursor over one document source."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1

    def scan(self) -> List[RawSection]:
        sections: List[RawSection] = []
        while True:
            self._skip_whitespace()
            if self.pos >= len(self.source):
                break
            if self.source.startswith("<!--", self.pos):
                self._skip_comment()
            elif self.source[self.pos] == "<":
                sections.append(self._read_section())
            else:
                raise self._error("Unexpected text outside of sections")
        return sections

    def _advance(self, count: int = 1) -> None:
        for _ in range(count):
            if self.pos >= len(self.source):
                return
            if self.source[self.pos] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def _mark(self) -> Tuple[int, int, int]:
        return self.line, self.column, self.pos

    def _error(self, message: str, mark: Optional[Tuple[int, int, int]] = None) -> ParseError:
        line, column, offset = mark or self._mark()
        return ParseError(message, line, column, offset, "document")

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.source) and self.source[self.pos].isspace():
            self._advance()

    def _skip_comment(self) -> None:
        mark = self._mark()
        end = self.source.find("-->", self.pos + 4)
        if end == -1:
            raise self._error("Unterminated comment", mark)
        self._advance(end + 3 - self.pos)

    def _read_section(self) -> RawSection:
        mark = self._mark()
        self._advance()

        match = _TAG_NAME.match(self.source, self.pos)
        if not match:
            raise self._error("Expected section tag name", mark)
        tag = match.group()
        self._advance(len(tag))

        attributes = self._read_attributes(tag, mark)

        closing = f"</{tag}>"
        end = self.source.find(closing, self.pos)
        if end == -1:
            raise self._error(f"Missing closing tag {closing}", mark)

        content_mark = self._mark()
        content = self.source[self.pos:end]
        self._advance(len(content))
        content_location = Location(
            content_mark[0], content_mark[1], content_mark[2], self.pos
        )
        self._advance(len(closing))

        return RawSection(
            tag=tag,
            attributes=MappingProxyType(attributes),
            content=content,
            location=Location(mark[0], mark[1], mark[2], self.pos),
            content_location=content_location,
        )

    def _read_attributes(self, tag: str, mark: Tuple[int, int, int]) -> Dict[str, str]:
        attributes: Dict[str, str] = {}

        while True:
            self._skip_whitespace()
            if self.pos >= len(self.source):
                raise self._error(f"Unterminated opening tag <{tag}", mark)
            if self.source[self.pos] == ">":
                self._advance()
                return attributes

            attr_mark = self._mark()
            match = _ATTR_NAME.match(self.source, self.pos)
            if not match:
                raise self._error(f"Malformed attribute in <{tag}>")
            name = match.group()
            self._advance(len(name))

            self._skip_whitespace()
            value = ""
            if self.pos < len(self.source) and self.source[self.pos] == "=":
                self._advance()
                self._skip_whitespace()
                value = self._read_quoted(name, attr_mark)

            if name in attributes:
                raise self._error(f"Duplicate attribute '{name}' in <{tag}>", attr_mark)
            attributes[name] = value

    def _read_quoted(self, name: str, mark: Tuple[int, int, int]) -> str:
        if self.pos >= len(self.source) or self.source[self.pos] not in "\"'":
            raise self._error(f"Value of attribute '{name}' must be quoted", mark)
        quote = self.source[self.pos]
        end = self.source.find(quote, self.pos + 1)
        if end == -1:
            raise self._error(f"Unterminated value for attribute '{name}'", mark)
        value = self.source[self.pos + 1:end]
        self._advance(end + 1 - self.pos)
        return value


@dataclass(frozen=True)
class Section:
    """
    A validated document section.

    Attributes:
        tag: Section name
        attributes: Opening tag attributes (read-only)
        content: Raw section text
        nodes: Markup nodes for ``template``, a single text node otherwise
        location: Span of the whole section in the document
    """
    tag: str
    attributes: Mapping[str, str]
    content: str
    nodes: Tuple[MarkupNode, ...]
    location: Location
    content_location: Location

    def get(self, attribute: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(attribute, default)


@dataclass(frozen=True)
class Document:
    """
    Parsed single-file component.

    Example:
        doc = parse_document(source, name="home")
        doc.window          # "appData"
        doc.layout          # "layouts/main"
        doc.partials()      # ["header", "footer"]
    """
    sections: Mapping[str, Section]
    name: Optional[str] = None
    source: str = field(default="", compare=False, repr=False)

    def section(self, tag: str) -> Optional[Section]:
        return self.sections.get(tag)

    def has_section(self, tag: str) -> bool:
        return tag in self.sections

    @property
    def section_names(self) -> List[str]:
        return list(self.sections)

    @property
    def template(self) -> Section:
        return self.sections["template"]

    @property
    def template_source(self) -> str:
        return self.template.content

    @property
    def template_nodes(self) -> Tuple[MarkupNode, ...]:
        return self.template.nodes

    @property
    def template_ast(self) -> MarkupAST:
        return MarkupAST(self.template.nodes, self.template.content)

    @property
    def data_section(self) -> Section:
        """The ``data`` or ``schema`` section."""
        for tag in DATA_SECTIONS:
            if tag in self.sections:
                return self.sections[tag]
        raise KeyError("data")

    @property
    def data_attributes(self) -> Mapping[str, str]:
        return self.data_section.attributes

    @property
    def is_schema(self) -> bool:
        return "schema" in self.sections

    @property
    def window(self) -> str:
        """Client-side global the hydration data is exposed under."""
        return self.data_attributes.get("window") or DEFAULT_WINDOW

    @property
    def layout(self) -> Optional[str]:
        return self.data_attributes.get("layout") or None

    @property
    def merge_strategy(self) -> Optional[str]:
        return self.data_attributes.get("merge") or None

    @property
    def schema_lang(self) -> Optional[str]:
        if not self.is_schema:
            return None
        return self.data_attributes.get("lang")

    @property
    def logic(self) -> Optional[str]:
        section = self.sections.get("logic")
        return section.content if section else None

    def partials(self) -> List[str]:
        return self.template_ast.partials()

    def variables(self) -> List[str]:
        return self.template_ast.variables()

    def source_location(self) -> str:
        """``name:line`` of the data section, used in collision reports."""
        name = self.name or "<string>"
        return f"{name}:{self.data_section.location.line}"


class DocumentParser:
    """
    Parser for ``.sfc`` documents.

    Example:
        parser = DocumentParser()
        document = parser.parse(source, name="pages/home")
    """

    def __init__(self, tokenizer: Optional[SectionTokenizer] = None) -> None:
        self.tokenizer = tokenizer or ScanningTokenizer()

    def parse(self, source: str, name: Optional[str] = None) -> Document:
        """
        Parse a document.

        Args:
            source: Document text
            name: Name used in error messages and collision reports

        Returns:
            Document

        Raises:
            ParseError: On malformed or invalid documents
        """
        if not source or not source.strip():
            raise EmptyDocumentError("Document is empty", 1, 1, 0, "document")

        raw_sections = self.tokenizer.tokenize(source)
        self._validate(raw_sections)

        sections: Dict[str, Section] = {}
        for raw in raw_sections:
            sections[raw.tag] = self._build_section(raw, name)

        return Document(MappingProxyType(sections), name, source)

    def _validate(self, raw_sections: List[RawSection]) -> None:
        tags = [raw.tag for raw in raw_sections]

        missing: List[str] = []
        if not any(tag in DATA_SECTIONS for tag in tags):
            missing.append("data")
        if "template" not in tags:
            missing.append("template")
        if missing:
            raise MissingSectionError(
                "Missing required sections: " + ", ".join(
                    "data (or schema)" if tag == "data" else tag for tag in missing
                ),
                missing,
                1,
                1,
                0,
            )

        duplicates: List[str] = []
        first_duplicate: Optional[RawSection] = None
        seen: List[str] = []
        for raw in raw_sections:
            if raw.tag in seen:
                if raw.tag not in duplicates:
                    duplicates.append(raw.tag)
                first_duplicate = first_duplicate or raw
            seen.append(raw.tag)
        if "data" in seen and "schema" in seen:
            duplicates.append("data/schema")
            if first_duplicate is None:
                first_duplicate = next(
                    raw for raw in reversed(raw_sections) if raw.tag in DATA_SECTIONS
                )
        if duplicates:
            location = first_duplicate.location
            raise DuplicateSectionError(
                "Duplicate sections: " + ", ".join(duplicates),
                duplicates,
                location.line,
                location.column,
                location.offset,
            )

        unknown = [raw for raw in raw_sections if raw.tag not in KNOWN_SECTIONS]
        if unknown:
            location = unknown[0].location
            raise UnknownSectionError(
                "Unknown sections: " + ", ".join(raw.tag for raw in unknown),
                [raw.tag for raw in unknown],
                location.line,
                location.column,
                location.offset,
            )

    def _build_section(self, raw: RawSection, name: Optional[str]) -> Section:
        start = raw.content_location

        if raw.tag == "template":
            nodes = parse_markup(raw.content, start.line, start.column, start.offset).nodes
        else:
            nodes = (TextNode(raw.content, start),)

        if raw.tag == "schema" and not raw.attributes.get("lang"):
            location = raw.location
            raise ParseError(
                "Schema section requires a 'lang' attribute",
                location.line,
                location.column,
                location.offset,
                "document",
            )

        if raw.tag in DATA_SECTIONS:
            for attribute in raw.attributes:
                if attribute not in DATA_ATTRIBUTES:
                    logger.warning(
                        "Unknown data section attribute",
                        attribute=attribute,
                        document=name or "<string>",
                    )

        return Section(
            tag=raw.tag,
            attributes=raw.attributes,
            content=raw.content,
            nodes=nodes,
            location=raw.location,
            content_location=raw.content_location,
        )


def parse_document(
    source: str,
    name: Optional[str] = None,
    tokenizer: Optional[SectionTokenizer] = None,
) -> Document:
    """Parse document source. See :class:`DocumentParser`."""
    return DocumentParser(tokenizer).parse(source, name)


def looks_like_document(source: str) -> bool:
    """True when ``source`` starts (after whitespace) with a known section tag."""
    match = _SECTION_START.match(source.lstrip())
    return bool(match) and match.group(1) in KNOWN_SECTIONS
