"""
NexaSFC Engine
==============

Document parsing, markup rendering and view composition.

Components:
- markup: Markup tokenizer and AST
- document: ``.sfc`` section parser
- context: Three-layer render context
- renderer: Template engine
- composition: Dependency resolution for layouts and partials
- loader: Filesystem and in-memory template loaders
"""

from nexasfc.engine.markup import MarkupAST, parse_markup
from nexasfc.engine.document import Document, DocumentParser, parse_document
from nexasfc.engine.context import Context, LoopContext
from nexasfc.engine.renderer import TemplateEngine, render
from nexasfc.engine.composition import ViewComposition, resolve_composition
from nexasfc.engine.loader import DictLoader, FileSystemLoader

__all__ = [
    "MarkupAST",
    "parse_markup",
    "Document",
    "DocumentParser",
    "parse_document",
    "Context",
    "LoopContext",
    "TemplateEngine",
    "render",
    "ViewComposition",
    "resolve_composition",
    "DictLoader",
    "FileSystemLoader",
]
