"""
NexaSFC View
============

Renders a template together with its layouts and hydration data.

A render runs in four steps:

1. Resolve the composition (root, partials, layouts), cached per name
   when ``cache_templates`` is on
2. Render the root template, then wrap it in each layout of the chain;
   the child output is bound to ``content`` in the server layer
3. Aggregate hydration payloads from every data section
4. Build hydration markup and inject it into the page

Example:
    view = View(
        FileSystemLoader("templates"),
        Context(request={"path": "/"}, client={"user": {"name": "Ada"}}),
    )
    html = view.render("pages/home")
    name, value = view.csp_header()
"""

from __future__ import annotations

from typing import Any, Dict, List, MutableMapping, Optional, Tuple

from nexasfc.core.config import SFCConfig
from nexasfc.engine.composition import Loader, ViewComposition
from nexasfc.engine.context import Context
from nexasfc.engine.document import DocumentParser
from nexasfc.engine.renderer import TemplateEngine
from nexasfc.errors import RenderError
from nexasfc.hydration.aggregator import HydrationDataAggregator
from nexasfc.hydration.hydrator import Hydrator
from nexasfc.hydration.injector import HydrationInjector
from nexasfc.hydration.links import LinkStrategyRenderer
from nexasfc.hydration.registry import HydrationRegistry
from nexasfc.security.csp import ContentSecurityPolicy, generate_nonce
from nexasfc.utils.logger import get_logger, timed_operation

logger = get_logger("nexasfc.view")


class View:
    """
    Template renderer bound to one context.

    Args:
        loader: Callable returning template source for a name
        context: Render context; an empty one when omitted
        config: Typed settings; built from the process config when omitted
        compositions: Shared cache of resolved compositions
    """

    def __init__(
        self,
        loader: Loader,
        context: Optional[Context] = None,
        config: Optional[SFCConfig] = None,
        compositions: Optional[MutableMapping[str, ViewComposition]] = None,
    ) -> None:
        self.loader = loader
        self.config = config or SFCConfig.from_config()
        self.compositions: MutableMapping[str, ViewComposition] = (
            compositions if compositions is not None else {}
        )
        self.parser = DocumentParser()
        self.hydrator = Hydrator()
        self.links = LinkStrategyRenderer(self.config.hydration)
        context = context if context is not None else Context()
        self.nonce = self._resolve_nonce(context)
        self.context = self._with_nonce(context)

    # Public API

    def render(self, template_name: str) -> str:
        """
        Render a page with hydration markup injected.

        Raises:
            RenderError: Naming the template, chained to the original error
        """
        try:
            with timed_operation(logger, "Rendered view", template=template_name) as extra:
                composition = self.composition(template_name)
                html = self._render_page(composition)
                markup = self._hydration_markup(composition, template_name)
                injector = HydrationInjector(self.config.hydration, template_name)
                html = injector.inject(html, markup)
                extra["bytes"] = len(html)
            return html
        except Exception as exc:
            raise RenderError(f"Failed to render template '{template_name}': {exc}") from exc

    def render_template_only(self, template_name: str) -> str:
        """Page HTML, layouts included, without hydration markup."""
        return self._render_page(self.composition(template_name))

    def render_hydration_only(self, template_name: str) -> str:
        """Hydration markup alone."""
        return self._hydration_markup(self.composition(template_name), template_name)

    def data_hash(self, template_name: str) -> Dict[str, Any]:
        """Aggregated payloads by window, for API endpoints and tests."""
        return self._aggregate(self.composition(template_name))

    def composition(self, template_name: str) -> ViewComposition:
        """Resolved composition for ``template_name``, cached when enabled."""
        if self.config.cache_templates:
            cached = self.compositions.get(template_name)
            if cached is not None:
                return cached

        composition = ViewComposition(template_name, self.loader, self.parser).resolve()
        if self.config.cache_templates:
            self.compositions[template_name] = composition
        return composition

    def csp_header(self) -> Optional[Tuple[str, str]]:
        """``Content-Security-Policy`` header for this view's nonce, or None."""
        if not self.config.csp_enabled:
            return None
        csp = ContentSecurityPolicy.from_policy(self.config.csp_policy, nonce=self.nonce)
        if csp.nonce_required() and not self.nonce:
            logger.warning("CSP policy uses a nonce but none is available")
        return csp.to_header()

    # Internals

    def _resolve_nonce(self, context: Context) -> Optional[str]:
        nonce = context.lookup("nonce")
        if nonce:
            return str(nonce)
        if self.config.auto_nonce:
            return generate_nonce()
        return None

    def _with_nonce(self, context: Context) -> Context:
        if self.nonce and context.lookup("nonce") is None:
            return context.merge(server={"nonce": self.nonce})
        return context

    def _engine(self, composition: ViewComposition) -> TemplateEngine:
        templates = composition.templates
        return TemplateEngine(
            partial_resolver=templates.get,
            max_partial_depth=self.config.max_partial_depth,
        )

    def _render_page(self, composition: ViewComposition) -> str:
        engine = self._engine(composition)
        html = engine.render(composition.root, self.context)

        for layout in composition.layout_chain():
            logger.debug("Applying layout", layout=layout, template=composition.root_name)
            wrapped = self.context.merge(server={"content": html})
            html = engine.render(composition.template(layout), wrapped)
        return html

    def _aggregate(self, composition: ViewComposition) -> Dict[str, Any]:
        aggregator = HydrationDataAggregator(
            self.context, self._engine(composition), HydrationRegistry()
        )
        return aggregator.aggregate(composition)

    def _hydration_markup(self, composition: ViewComposition, template_name: str) -> str:
        payloads = self._aggregate(composition)
        strategy = self.config.hydration.strategy

        if not strategy.is_link_based:
            return self.hydrator.build_all(payloads, self.nonce)

        blocks: List[str] = [
            self.links.render(strategy, template_name, window, self.nonce)
            for window in payloads
        ]
        return "\n".join(blocks)
