"""
NexaSFC View Composition
========================

Resolves a root template together with every layout and partial it
depends on, before any data is bound.

Resolution is depth-first. A name met again while it is still being
resolved is a cycle and fails with the whole resolution chain; a name
that is already resolved is skipped. Once resolved, the composition is
read-only and can be cached and shared between renders.

Example:
    composition = ViewComposition("pages/home", loader).resolve()

    for name, document in composition.each_document_in_render_order():
        print(name, document.window)
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Set, Tuple, Union

from nexasfc.engine.document import Document, DocumentParser
from nexasfc.errors import (
    CircularDependencyError,
    CompositionError,
    TemplateNotFoundError,
)
from nexasfc.utils.logger import get_logger, timed_operation

logger = get_logger("nexasfc.composition")

Loader = Callable[[str], Optional[Union[str, Document]]]


class ViewComposition:
    """
    Dependency graph of a root template, its partials and layouts.

    Args:
        root_name: Name of the template being rendered
        loader: Callable returning source (or a Document) for a name
        parser: Document parser, a default one when omitted
    """

    def __init__(
        self,
        root_name: str,
        loader: Loader,
        parser: Optional[DocumentParser] = None,
    ) -> None:
        self.root_name = root_name
        self.loader = loader
        self.parser = parser or DocumentParser()
        self._templates: Mapping[str, Document] = {}
        self._dependencies: Mapping[str, Tuple[str, ...]] = {}
        self._in_progress: List[str] = []
        self._resolved = False

    @property
    def resolved(self) -> bool:
        return self._resolved

    def resolve(self) -> "ViewComposition":
        """
        Load and parse every template reachable from the root.

        Returns:
            self, frozen

        Raises:
            TemplateNotFoundError: A template could not be loaded
            CircularDependencyError: A template depends on itself
            ParseError: A template is malformed
        """
        if self._resolved:
            return self

        templates: Dict[str, Document] = {}
        dependencies: Dict[str, List[str]] = {}
        self._in_progress = []

        with timed_operation(logger, "Resolved view composition", root=self.root_name) as extra:
            self._resolve(self.root_name, templates, dependencies)
            extra["templates"] = len(templates)

        self._templates = MappingProxyType(templates)
        self._dependencies = MappingProxyType(
            {name: tuple(deps) for name, deps in dependencies.items()}
        )
        self._resolved = True
        return self

    def _resolve(
        self,
        name: str,
        templates: Dict[str, Document],
        dependencies: Dict[str, List[str]],
    ) -> None:
        if name in self._in_progress:
            raise CircularDependencyError(name, self._in_progress + [name])
        if name in templates:
            return

        self._in_progress.append(name)
        try:
            document = self._load(name)
            templates[name] = document

            deps = document.partials()
            dependencies[name] = deps
            for partial in list(deps):
                self._resolve(partial, templates, dependencies)

            layout = document.layout
            if layout:
                if layout not in deps:
                    deps.append(layout)
                self._resolve(layout, templates, dependencies)
        finally:
            self._in_progress.pop()

    def _load(self, name: str) -> Document:
        try:
            source = self.loader(name)
        except Exception as exc:
            raise TemplateNotFoundError(name, f"loader failed: {exc}") from exc

        if source is None:
            raise TemplateNotFoundError(name)
        if isinstance(source, Document):
            return source
        if isinstance(source, str):
            logger.debug("Parsing template", template=name)
            return self.parser.parse(source, name=name)
        raise CompositionError(
            f"Loader returned {type(source).__name__} for '{name}', expected str or Document"
        )

    def _ensure_resolved(self) -> None:
        if not self._resolved:
            raise CompositionError("Composition has not been resolved")

    # Accessors

    @property
    def templates(self) -> Mapping[str, Document]:
        self._ensure_resolved()
        return self._templates

    @property
    def template_names(self) -> List[str]:
        self._ensure_resolved()
        return list(self._templates)

    @property
    def root(self) -> Document:
        return self.template(self.root_name)

    def template(self, name: str) -> Document:
        self._ensure_resolved()
        try:
            return self._templates[name]
        except KeyError:
            raise TemplateNotFoundError(name) from None

    def has_template(self, name: str) -> bool:
        return self._resolved and name in self._templates

    def dependencies_of(self, name: str) -> Tuple[str, ...]:
        self._ensure_resolved()
        return self._dependencies.get(name, ())

    @property
    def dependencies(self) -> Mapping[str, Tuple[str, ...]]:
        self._ensure_resolved()
        return self._dependencies

    @property
    def layout(self) -> Optional[str]:
        """Layout declared by the root template."""
        return self.root.layout

    def layout_chain(self) -> List[str]:
        """Layouts wrapping the root, innermost first."""
        chain: List[str] = []
        layout = self.root.layout
        while layout:
            chain.append(layout)
            layout = self.template(layout).layout
        return chain

    def each_document_in_render_order(self) -> Iterator[Tuple[str, Document]]:
        """
        Yield ``(name, document)`` with dependencies before dependents.

        The root's layout and everything it needs come first, then the
        root's own dependencies, then the root. Every template is yielded
        once.
        """
        self._ensure_resolved()
        visited: Set[str] = set()
        layout = self.root.layout
        if layout:
            yield from self._visit(layout, visited)
        yield from self._visit(self.root_name, visited)

    def _visit(self, name: str, visited: Set[str]) -> Iterator[Tuple[str, Document]]:
        if name in visited:
            return
        visited.add(name)
        for dependency in self._dependencies.get(name, ()):
            yield from self._visit(dependency, visited)
        yield name, self._templates[name]

    def __contains__(self, name: str) -> bool:
        return self.has_template(name)

    def __len__(self) -> int:
        return len(self._templates)

    def __repr__(self) -> str:
        state = f"{len(self._templates)} templates" if self._resolved else "unresolved"
        return f"<ViewComposition {self.root_name} ({state})>"


def resolve_composition(
    root_name: str,
    loader: Loader,
    parser: Optional[DocumentParser] = None,
) -> ViewComposition:
    """Build and resolve a :class:`ViewComposition`."""
    return ViewComposition(root_name, loader, parser).resolve()
