"""
NexaSFC Hydration Data Aggregator
=================================

Collects the hydration payload of every document in a composition.

Documents are visited in render order (layout first, then partials, then
the root). Each data section claims its window attribute in the registry
and contributes one payload:

- ``<data>``: the section text is rendered against the context, then
  parsed as JSON
- ``<schema>``: the context's client layer, serialized as is

Windows claimed more than once are merged with the strategy declared on
the later section (``deep``, ``shallow`` or ``strict``).

Example:
    aggregator = HydrationDataAggregator(context, engine, HydrationRegistry())
    payloads = aggregator.aggregate(composition)
    # {"appData": {"user": {...}}, "pageData": {...}}
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from nexasfc.engine.composition import ViewComposition
from nexasfc.engine.context import Context
from nexasfc.engine.document import Document
from nexasfc.engine.markup import parse_markup
from nexasfc.engine.renderer import TemplateEngine
from nexasfc.errors import (
    HydrationCollisionError,
    HydrationError,
    ValidationError,
)
from nexasfc.hydration.registry import HydrationRegistry
from nexasfc.utils import serializer
from nexasfc.utils.logger import get_logger, timed_operation

logger = get_logger("nexasfc.hydration")

MERGE_STRATEGIES = ("deep", "shallow", "strict")


def plain(value: Any) -> Any:
    """Convert frozen context values back into plain dicts and lists."""
    if isinstance(value, Mapping):
        return {str(key): plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [plain(item) for item in value]
    return value


def deep_merge(target: Dict[str, Any], source: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``source`` into a copy of ``target``; source wins."""
    result = dict(target)
    for key, value in source.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


class HydrationDataAggregator:
    """
    Build per-window payloads for one render.

    Args:
        context: Render context
        engine: Engine used to render ``<data>`` sections
        registry: Per-render registry; a fresh one when omitted
    """

    def __init__(
        self,
        context: Context,
        engine: Optional[TemplateEngine] = None,
        registry: Optional[HydrationRegistry] = None,
    ) -> None:
        self.context = context
        self.engine = engine or TemplateEngine()
        self.registry = registry if registry is not None else HydrationRegistry()
        self._locations: Dict[str, str] = {}

    def aggregate(self, composition: ViewComposition) -> Dict[str, Any]:
        """
        Collect payloads for every data section in ``composition``.

        Returns:
            Mapping of window attribute to payload, in claim order

        Raises:
            HydrationCollisionError: A window is claimed twice without a
                merge strategy, or a merge strategy rejects a key
            HydrationError: A ``<data>`` section is not valid JSON
            ValidationError: A section declares an unknown merge strategy
        """
        payloads: Dict[str, Any] = {}
        self._locations = {}

        with timed_operation(
            logger, "Aggregated hydration data", root=composition.root_name
        ) as extra:
            for name, document in composition.each_document_in_render_order():
                self._collect(name, document, payloads)
            extra["windows"] = list(payloads)

        return payloads

    def payload_for(self, document: Document, name: Optional[str] = None) -> Any:
        """Payload contributed by a single document's data section."""
        if document.is_schema:
            return plain(self.context.client)

        content = document.data_section.content
        if not content.strip():
            return {}

        start = document.data_section.content_location
        markup = parse_markup(content, start.line, start.column, start.offset)
        rendered = self.engine.render(markup, self.context)
        try:
            return serializer.loads(rendered)
        except HydrationError as exc:
            label = name or document.name or "<string>"
            raise HydrationError(f"Invalid JSON in data section of {label}: {exc}") from exc

    def _collect(self, name: str, document: Document, payloads: Dict[str, Any]) -> None:
        window = document.window
        location = document.source_location()
        strategy = document.merge_strategy

        if strategy is not None and strategy not in MERGE_STRATEGIES:
            raise ValidationError(
                f"Unknown merge strategy '{strategy}' in {location}; "
                f"expected one of {', '.join(MERGE_STRATEGIES)}"
            )

        self.registry.register(window, location, strategy)
        payload = self.payload_for(document, name)

        if window not in payloads:
            payloads[window] = payload
            self._locations[window] = location
            return

        logger.debug("Merging hydration data", window=window, strategy=strategy, source=location)
        payloads[window] = self._merge(payloads[window], payload, strategy or "deep", window, location)

    def _merge(
        self,
        target: Any,
        source: Any,
        strategy: str,
        window: str,
        location: str,
    ) -> Any:
        if not isinstance(target, Mapping) or not isinstance(source, Mapping):
            raise HydrationError(
                f"Cannot merge non-object hydration data for '{window}' from {location}"
            )

        if strategy == "deep":
            return deep_merge(dict(target), source)

        if strategy == "shallow":
            conflicts = [key for key in source if key in target]
        else:
            conflicts = [key for key in target if key in source]

        if conflicts:
            raise HydrationCollisionError(
                f"{window}.{conflicts[0]}", self._locations[window], location
            )
        return {**target, **source}
