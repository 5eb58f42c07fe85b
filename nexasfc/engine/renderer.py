"""
NexaSFC Template Engine
=======================

Renders markup trees against an evaluation context.

Features:
- Escaped ({{ }}) and raw ({{{ }}}) output
- if / unless / each blocks with loop metadata
- Partials resolved through an injected resolver, rendered in the
  caller's context
- Accepts whole documents (only the template section is rendered),
  bare markup strings, parsed ASTs or node sequences

Example:
    engine = TemplateEngine(partial_resolver=loader)
    html = engine.render("<h1>{{ title }}</h1>", Context.minimal(title="Hi"))
"""

from __future__ import annotations

import numbers
from collections.abc import Iterable, Mapping
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from nexasfc.engine.context import Context, LookupContext
from nexasfc.engine.document import Document, looks_like_document, parse_document
from nexasfc.engine.markup import (
    EachNode,
    IfNode,
    MarkupAST,
    MarkupNode,
    PartialNode,
    TextNode,
    UnlessNode,
    VariableNode,
    parse_markup,
)
from nexasfc.errors import ParseError, PartialNotFoundError, RenderError
from nexasfc.security.xss import escape_html
from nexasfc.utils import serializer
from nexasfc.utils.logger import get_logger

logger = get_logger("nexasfc.engine")

PartialSource = Union[str, Document]
PartialResolver = Callable[[str], Optional[PartialSource]]
Renderable = Union[str, Document, MarkupAST, Sequence[MarkupNode]]

DEFAULT_MAX_PARTIAL_DEPTH = 64


def is_truthy(value: Any) -> bool:
    """
    Truthiness used by ``if`` and ``unless``.

    Falsy: None, False, "", "false" in any case, numeric zero, empty
    sequences and mappings. Everything else is truthy.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value != "" and value.lower() != "false"
    if isinstance(value, numbers.Number):
        return value != 0
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        return len(value) > 0
    return True


def stringify(value: Any) -> str:
    """Convert a looked-up value to output text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (Mapping, list, tuple)):
        return serializer.dumps(value)
    return str(value)


class TemplateEngine:
    """
    AST-walking renderer.

    Args:
        partial_resolver: Callable returning partial source (or a parsed
            Document) for a name, or None when it does not exist
        max_partial_depth: Maximum nesting of partial inclusions

    Example:
        engine = TemplateEngine(partial_resolver={"row": "<li>{{ name }}</li>"}.get)
        engine.render("{{#each items}}{{> row}}{{/each}}", context)
    """

    def __init__(
        self,
        partial_resolver: Optional[PartialResolver] = None,
        max_partial_depth: int = DEFAULT_MAX_PARTIAL_DEPTH,
    ) -> None:
        self.partial_resolver = partial_resolver
        self.max_partial_depth = max_partial_depth

    def render(self, source: Renderable, context: Optional[LookupContext] = None) -> str:
        """
        Render a template.

        Args:
            source: Document source, markup text, Document, MarkupAST or nodes
            context: Evaluation context (empty when omitted)

        Returns:
            Rendered text

        Raises:
            RenderError: If parsing or rendering fails
        """
        context = context if context is not None else Context()
        try:
            nodes = self._nodes_for(source)
            return self._render_nodes(nodes, context, ())
        except RenderError:
            raise
        except ParseError as exc:
            raise RenderError(f"Template parsing failed: {exc}") from exc
        except Exception as exc:
            raise RenderError(f"Template rendering failed: {exc}") from exc

    def _nodes_for(self, source: Renderable) -> Tuple[MarkupNode, ...]:
        if isinstance(source, Document):
            return source.template_nodes
        if isinstance(source, MarkupAST):
            return source.nodes
        if isinstance(source, str):
            if looks_like_document(source):
                return parse_document(source).template_nodes
            return parse_markup(source).nodes
        return tuple(source)

    def _render_nodes(
        self,
        nodes: Sequence[MarkupNode],
        context: LookupContext,
        partial_stack: Tuple[str, ...],
    ) -> str:
        parts: List[str] = []
        for node in nodes:
            parts.append(self._render_node(node, context, partial_stack))
        return "".join(parts)

    def _render_node(
        self,
        node: MarkupNode,
        context: LookupContext,
        partial_stack: Tuple[str, ...],
    ) -> str:
        if isinstance(node, TextNode):
            return node.text

        if isinstance(node, VariableNode):
            text = stringify(context.lookup(node.name))
            return text if node.raw else escape_html(text)

        if isinstance(node, IfNode):
            branch = node.then_nodes if is_truthy(context.lookup(node.condition)) else node.else_nodes
            return self._render_nodes(branch, context, partial_stack)

        if isinstance(node, UnlessNode):
            if is_truthy(context.lookup(node.condition)):
                return ""
            return self._render_nodes(node.body, context, partial_stack)

        if isinstance(node, EachNode):
            return self._render_each(node, context, partial_stack)

        if isinstance(node, PartialNode):
            return self._render_partial(node.name, context, partial_stack)

        raise RenderError(f"Unknown node type: {type(node).__name__}")

    def _render_each(
        self,
        node: EachNode,
        context: LookupContext,
        partial_stack: Tuple[str, ...],
    ) -> str:
        collection = context.lookup(node.collection)

        if isinstance(collection, Mapping):
            entries = list(collection.items())
        elif isinstance(collection, (str, bytes)) or not isinstance(collection, Iterable):
            return ""
        else:
            entries = [(None, item) for item in collection]

        length = len(entries)
        parts: List[str] = []
        for index, (key, item) in enumerate(entries):
            child = context.for_item(item, index, length, key)
            parts.append(self._render_nodes(node.body, child, partial_stack))
        return "".join(parts)

    def _render_partial(
        self,
        name: str,
        context: LookupContext,
        partial_stack: Tuple[str, ...],
    ) -> str:
        if name in partial_stack:
            chain = " -> ".join(partial_stack + (name,))
            raise RenderError(f"Circular partial reference: {chain}")
        if len(partial_stack) >= self.max_partial_depth:
            raise RenderError(
                f"Partial nesting deeper than {self.max_partial_depth} at '{name}'"
            )
        if self.partial_resolver is None:
            raise PartialNotFoundError(name)

        source = self.partial_resolver(name)
        if source is None:
            raise PartialNotFoundError(name)

        logger.debug("Rendering partial", partial=name, depth=len(partial_stack) + 1)
        nodes = self._nodes_for(source)
        return self._render_nodes(nodes, context, partial_stack + (name,))


def render(
    source: Renderable,
    context: Optional[LookupContext] = None,
    partial_resolver: Optional[PartialResolver] = None,
) -> str:
    """Render with a one-off :class:`TemplateEngine`."""
    return TemplateEngine(partial_resolver).render(source, context)
