"""
NexaSFC - Single-File Component Templates
=========================================

Server-side rendering of ``.sfc`` single-file components with client
hydration.

A component keeps its hydration data, its markup and optional notes in
one file:

    <data window="appData" layout="layouts/main">
      {"user": "{{user.name}}"}
    </data>
    <template>
      <h1>Hello {{user.name}}</h1>
    </template>

Features:
---------
- Handlebars-style markup: variables, if/unless/each, partials
- Layouts and partials resolved as a composition before rendering
- Three-layer render context (request, server, client)
- Hydration data aggregated per window attribute with collision checks
- Late, early, earliest and link-based hydration injection
- CSP nonces on every generated script

Quick Start:
    from nexasfc import View, FileSystemLoader, Context

    view = View(FileSystemLoader("templates"), Context(client={"user": user}))
    html = view.render("pages/home")
"""

from __future__ import annotations

__version__ = "1.0.0-alpha.1"
__license__ = "MIT"

from typing import TYPE_CHECKING

# Core imports (always available)
from nexasfc.core.config import Config, SFCConfig, HydrationSettings, InjectionStrategy
from nexasfc.engine.context import Context
from nexasfc.errors import (
    NexaSFCError,
    ParseError,
    RenderError,
    CompositionError,
    HydrationError,
    HydrationCollisionError,
    ValidationError,
    ConfigurationError,
)

if TYPE_CHECKING:
    from nexasfc.view import View
    from nexasfc.engine.loader import FileSystemLoader, DictLoader
    from nexasfc.engine.document import Document, parse_document
    from nexasfc.engine.renderer import TemplateEngine
    from nexasfc.engine.composition import ViewComposition
    from nexasfc.hydration.registry import HydrationRegistry
    from nexasfc.hydration.injector import HydrationInjector
    from nexasfc.utils.logger import Logger, get_logger, configure_logging


def __getattr__(name: str):
    """Lazy loading of the rendering pipeline."""
    _imports = {
        # View
        "View": "nexasfc.view",
        # Engine
        "FileSystemLoader": "nexasfc.engine.loader",
        "DictLoader": "nexasfc.engine.loader",
        "Document": "nexasfc.engine.document",
        "parse_document": "nexasfc.engine.document",
        "TemplateEngine": "nexasfc.engine.renderer",
        "ViewComposition": "nexasfc.engine.composition",
        # Hydration
        "HydrationRegistry": "nexasfc.hydration.registry",
        "HydrationInjector": "nexasfc.hydration.injector",
        # Utils
        "Logger": "nexasfc.utils.logger",
        "get_logger": "nexasfc.utils.logger",
        "configure_logging": "nexasfc.utils.logger",
    }

    if name in _imports:
        import importlib
        module = importlib.import_module(_imports[name])
        return getattr(module, name)

    raise AttributeError(f"module 'nexasfc' has no attribute '{name}'")


__all__ = [
    # Metadata
    "__version__",
    "__license__",
    # Core (always loaded)
    "Config",
    "SFCConfig",
    "HydrationSettings",
    "InjectionStrategy",
    "Context",
    # Errors
    "NexaSFCError",
    "ParseError",
    "RenderError",
    "CompositionError",
    "HydrationError",
    "HydrationCollisionError",
    "ValidationError",
    "ConfigurationError",
    # Rendering (lazy)
    "View",
    "FileSystemLoader",
    "DictLoader",
    "Document",
    "parse_document",
    "TemplateEngine",
    "ViewComposition",
    # Hydration (lazy)
    "HydrationRegistry",
    "HydrationInjector",
    # Utils (lazy)
    "Logger",
    "get_logger",
    "configure_logging",
]
