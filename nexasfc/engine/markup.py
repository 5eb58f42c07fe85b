"""
NexaSFC Markup Parser
=====================

Parser for the inline expression language used inside ``<template>``
sections. It turns markup text into an immutable node tree that the
renderer walks.

Markup Format:
    - {{ name }}: Escaped variable output (dotted paths: user.name, items.0)
    - {{{ name }}}: Raw variable output
    - {{> partial }}: Partial inclusion
    - {{#if cond}}...{{else}}...{{/if}}: Conditional
    - {{#unless cond}}...{{/unless}}: Negated conditional
    - {{#each items}}...{{/each}}: Iteration ({{this}}, {{@index}},
      {{@first}}, {{@last}} inside the body)

Parser Architecture:
    A single left-to-right recursive-descent pass. The cursor tracks
    position, line and column; every node records where it started and
    ended so errors and tools can point back into the source.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterator, List, Optional, Tuple, Union

from nexasfc.errors import ParseError


class NodeType(Enum):
    """Markup node types."""
    TEXT = auto()
    VARIABLE = auto()
    PARTIAL = auto()
    IF = auto()
    UNLESS = auto()
    EACH = auto()


BLOCK_HELPERS = ("if", "unless", "each")

_NAME_PATTERN = re.compile(r"^(?:\.|@?[A-Za-z_$][\w$-]*(?:\.[\w$-]+)*)$")
_PARTIAL_PATTERN = re.compile(r"^[\w$.\-/:]+$")


@dataclass(frozen=True)
class Location:
    """
    Source span of a node.

    ``line`` and ``column`` are 1-based and point at the first character;
    ``offset`` and ``end_offset`` are 0-based indexes, end exclusive.
    """
    line: int
    column: int
    offset: int
    end_offset: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


UNKNOWN_LOCATION = Location(0, 0, 0, 0)


class MarkupNode:
    """Base class for markup nodes."""

    type: NodeType

    def children(self) -> Tuple["MarkupNode", ...]:
        """Direct child nodes in source order."""
        return ()


@dataclass(frozen=True)
class TextNode(MarkupNode):
    """Literal text, emitted verbatim."""
    text: str
    location: Location = field(default=UNKNOWN_LOCATION, compare=False)

    type = NodeType.TEXT


@dataclass(frozen=True)
class VariableNode(MarkupNode):
    """A ``{{name}}`` or ``{{{name}}}`` expression."""
    name: str
    raw: bool = False
    location: Location = field(default=UNKNOWN_LOCATION, compare=False)

    type = NodeType.VARIABLE


@dataclass(frozen=True)
class PartialNode(MarkupNode):
    """A ``{{> name}}`` inclusion."""
    name: str
    location: Location = field(default=UNKNOWN_LOCATION, compare=False)

    type = NodeType.PARTIAL


@dataclass(frozen=True)
class IfNode(MarkupNode):
    condition: str
    then_nodes: Tuple[MarkupNode, ...] = ()
    else_nodes: Tuple[MarkupNode, ...] = ()
    location: Location = field(default=UNKNOWN_LOCATION, compare=False)

    type = NodeType.IF

    def children(self) -> Tuple[MarkupNode, ...]:
        return self.then_nodes + self.else_nodes


@dataclass(frozen=True)
class UnlessNode(MarkupNode):
    condition: str
    body: Tuple[MarkupNode, ...] = ()
    location: Location = field(default=UNKNOWN_LOCATION, compare=False)

    type = NodeType.UNLESS

    def children(self) -> Tuple[MarkupNode, ...]:
        return self.body


@dataclass(frozen=True)
class EachNode(MarkupNode):
    collection: str
    body: Tuple[MarkupNode, ...] = ()
    location: Location = field(default=UNKNOWN_LOCATION, compare=False)

    type = NodeType.EACH

    def children(self) -> Tuple[MarkupNode, ...]:
        return self.body


BlockNode = Union[IfNode, UnlessNode, EachNode]


def walk(nodes: Tuple[MarkupNode, ...]) -> Iterator[MarkupNode]:
    """Yield every node in pre-order (document order)."""
    for node in nodes:
        yield node
        yield from walk(node.children())


@dataclass(frozen=True)
class MarkupAST:
    """
    Parsed markup fragment.

    Example:
        ast = parse_markup("{{#each items}}{{> row}}{{/each}}")
        ast.variables()  # ["items"]
        ast.partials()   # ["row"]
    """
    nodes: Tuple[MarkupNode, ...]
    source: str = field(default="", compare=False, repr=False)

    def walk(self) -> Iterator[MarkupNode]:
        return walk(self.nodes)

    def variables(self) -> List[str]:
        """
        Names referenced by the markup, deduplicated in encounter order.

        Block conditions and ``each`` collections count as references.
        """
        names: List[str] = []
        for node in self.walk():
            if isinstance(node, VariableNode):
                name = node.name
            elif isinstance(node, (IfNode, UnlessNode)):
                name = node.condition
            elif isinstance(node, EachNode):
                name = node.collection
            else:
                continue
            if name not in names:
                names.append(name)
        return names

    def partials(self) -> List[str]:
        """Partial names, deduplicated in encounter order."""
        names: List[str] = []
        for node in self.walk():
            if isinstance(node, PartialNode) and node.name not in names:
                names.append(node.name)
        return names

    def blocks(self) -> List[BlockNode]:
        """Every block node in document order, nested blocks included."""
        return [
            node for node in self.walk()
            if isinstance(node, (IfNode, UnlessNode, EachNode))
        ]


@dataclass
class _Frame:
    """An open block waiting for its closer."""
    kind: str
    location: Location
    in_else: bool = False


class MarkupParser:
    """
    Recursive-descent parser for markup text.

    The start position can be seeded so that nodes parsed out of a larger
    document report document-absolute locations.

    Example:
        parser = MarkupParser("<p>{{ title }}</p>")
        ast = parser.parse()
    """

    def __init__(
        self,
        source: str,
        line: int = 1,
        column: int = 1,
        offset: int = 0,
    ) -> None:
        self.source = source
        self.pos = 0
        self.line = line
        self.column = column
        self._base_offset = offset

    def parse(self) -> MarkupAST:
        """
        Parse the whole source.

        Returns:
            MarkupAST

        Raises:
            ParseError: On malformed markup
        """
        nodes, _ = self._parse_nodes(None)
        return MarkupAST(tuple(nodes), self.source)

    # Cursor

    def _advance(self, count: int = 1) -> None:
        """Move forward ``count`` characters, tracking line and column."""
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
        return self.line, self.column, self._base_offset + self.pos

    def _location_from(self, mark: Tuple[int, int, int]) -> Location:
        line, column, offset = mark
        return Location(line, column, offset, self._base_offset + self.pos)

    def _error(self, message: str, mark: Optional[Tuple[int, int, int]] = None) -> ParseError:
        line, column, offset = mark or self._mark()
        return ParseError(message, line, column, offset, "markup")

    # Grammar

    def _parse_nodes(self, frame: Optional[_Frame]) -> Tuple[List[MarkupNode], str]:
        """
        Parse nodes until end of input or a terminator for ``frame``.

        Returns the nodes and what stopped the scan: "eof", "else" or "close".
        """
        nodes: List[MarkupNode] = []

        while self.pos < len(self.source):
            if self.source.startswith("{{{", self.pos):
                nodes.append(self._parse_raw())
                continue

            if not self.source.startswith("{{", self.pos):
                nodes.append(self._parse_text())
                continue

            mark = self._mark()
            content = self._read_tag("{{", "}}", mark)

            if content.startswith(">"):
                nodes.append(self._make_partial(content[1:].strip(), mark))
            elif content.startswith("#"):
                nodes.append(self._parse_block(content[1:], mark))
            elif content == "else":
                if frame is None or frame.kind != "if":
                    raise self._error("Unexpected 'else' outside of {{#if}} block", mark)
                if frame.in_else:
                    raise self._error("Duplicate {{else}} in {{#if}} block", mark)
                return nodes, "else"
            elif content.startswith("/"):
                kind = content[1:].strip()
                if frame is None:
                    raise self._error(f"Unexpected closing tag {{{{/{kind}}}}}", mark)
                if kind != frame.kind:
                    raise self._error(
                        f"Unexpected closing tag {{{{/{kind}}}}}, "
                        f"expected {{{{/{frame.kind}}}}}",
                        mark,
                    )
                return nodes, "close"
            else:
                nodes.append(self._make_variable(content, False, mark))

        if frame is not None:
            location = frame.location
            raise ParseError(
                f"Missing closing tag for {{{{#{frame.kind}}}}}",
                location.line,
                location.column,
                location.offset,
                "markup",
            )
        return nodes, "eof"

    def _read_tag(self, opener: str, closer: str, mark: Tuple[int, int, int]) -> str:
        """Consume an expression tag and return its trimmed content."""
        start = self.pos + len(opener)
        end = self.source.find(closer, start)
        if end == -1:
            raise self._error(f"Expected '{closer}'", mark)
        content = self.source[start:end].strip()
        self._advance(end + len(closer) - self.pos)
        return content

    def _parse_text(self) -> TextNode:
        mark = self._mark()
        end = self.source.find("{{", self.pos)
        if end == -1:
            end = len(self.source)
        text = self.source[self.pos:end]
        self._advance(len(text))
        return TextNode(text, self._location_from(mark))

    def _parse_raw(self) -> VariableNode:
        mark = self._mark()
        content = self._read_tag("{{{", "}}}", mark)
        return self._make_variable(content, True, mark)

    def _make_variable(
        self,
        name: str,
        raw: bool,
        mark: Tuple[int, int, int],
    ) -> VariableNode:
        if not name:
            raise self._error("Empty expression", mark)
        if not _NAME_PATTERN.match(name):
            raise self._error(f"Invalid expression '{name}'", mark)
        return VariableNode(name, raw, self._location_from(mark))

    def _make_partial(self, name: str, mark: Tuple[int, int, int]) -> PartialNode:
        if not name:
            raise self._error("Missing partial name", mark)
        if not _PARTIAL_PATTERN.match(name):
            raise self._error(f"Invalid partial name '{name}'", mark)
        return PartialNode(name, self._location_from(mark))

    def _parse_block(self, content: str, mark: Tuple[int, int, int]) -> BlockNode:
        parts = content.split(None, 1)
        helper = parts[0] if parts else ""
        argument = parts[1].strip() if len(parts) > 1 else ""

        if helper not in BLOCK_HELPERS:
            raise self._error(f"Unknown block helper '#{helper}'", mark)
        if not argument:
            raise self._error(f"Missing argument for {{{{#{helper}}}}}", mark)
        if not _NAME_PATTERN.match(argument):
            raise self._error(f"Invalid expression '{argument}'", mark)

        frame = _Frame(helper, self._location_from(mark))
        body, terminator = self._parse_nodes(frame)

        if helper == "if":
            else_body: List[MarkupNode] = []
            if terminator == "else":
                frame.in_else = True
                else_body, _ = self._parse_nodes(frame)
            return IfNode(argument, tuple(body), tuple(else_body), self._location_from(mark))
        if helper == "unless":
            return UnlessNode(argument, tuple(body), self._location_from(mark))
        return EachNode(argument, tuple(body), self._location_from(mark))


def parse_markup(
    source: str,
    line: int = 1,
    column: int = 1,
    offset: int = 0,
) -> MarkupAST:
    """
    Parse markup text into an AST.

    Args:
        source: Markup text
        line: Line number of the first character
        column: Column number of the first character
        offset: Offset of the first character in the enclosing source

    Returns:
        MarkupAST

    Raises:
        ParseError: On malformed markup
    """
    return MarkupParser(source, line, column, offset).parse()


def extract_partial_names(source: str) -> List[str]:
    """
    Partial names referenced by markup text.

    This is the one place partial references are discovered; both view
    composition and the renderer go through the parsed tree, so they always
    agree on the ``{{> name}}`` syntax.
    """
    return parse_markup(source).partials()
